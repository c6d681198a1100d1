"""
Recovery Orchestrator Exceptions

Errors raised for structurally invalid calls into the orchestrator.
Action-level failures never surface here; they become attempt records.
"""

from typing import Optional


class RecoveryError(Exception):
    """Base exception for recovery orchestration errors"""
    pass


class RecoveryNotFoundError(RecoveryError):
    """Raised when a recovery id is not in the active-recovery table"""

    def __init__(self, recovery_id: str):
        self.recovery_id = recovery_id
        super().__init__(f"Recovery not found: {recovery_id}")


class RecoveryConfigError(RecoveryError):
    """Raised when configuration values fail validation"""

    def __init__(self, message: str, errors: Optional[list] = None):
        self.errors = errors or []
        super().__init__(message)

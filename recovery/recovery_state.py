"""
Recovery State Records

Strategy catalog entries, per-error recovery contexts, attempt history and
circuit breaker state, serializable for the observability API.
"""

from typing import Dict, List, Optional, Any, Callable, Awaitable, Tuple, FrozenSet
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ActionType(Enum):
    """Kinds of remediation a recovery action performs"""
    RETRY = "retry"
    FALLBACK = "fallback"
    RESET = "reset"
    REFRESH = "refresh"
    RECONNECT = "reconnect"
    CLEAR = "clear"
    REBUILD = "rebuild"


class ErrorSeverity(Enum):
    """Error severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CircuitState(Enum):
    """Circuit breaker states"""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


class RecoveryStatus(Enum):
    """Lifecycle of a recovery context"""
    INITIATED = "initiated"
    EXECUTING = "executing"
    RETRY_SCHEDULED = "retry_scheduled"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


class RecoverableErrorKind(Enum):
    """Tagged error classification supplied by callers"""
    NETWORK = "network"
    RUNTIME = "runtime"
    CACHE = "cache"
    SESSION = "session"
    UNKNOWN = "unknown"


ActionOperation = Callable[[], Awaitable[bool]]


@dataclass(frozen=True)
class RecoveryAction:
    """A single remediation operation owned by a strategy"""
    id: str
    type: ActionType
    description: str
    execute: ActionOperation
    timeout: float = 5000  # ms
    retryable: bool = True
    side_effects: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize recovery action (the operation itself is omitted)"""
        return {
            'id': self.id,
            'type': self.type.value,
            'description': self.description,
            'timeout': self.timeout,
            'retryable': self.retryable,
            'side_effects': list(self.side_effects)
        }


@dataclass(frozen=True)
class RecoveryStrategy:
    """Prioritized bundle of actions applicable to a class of errors"""
    id: str
    name: str
    description: str
    priority: int
    conditions: FrozenSet[str] = frozenset()
    actions: Tuple[RecoveryAction, ...] = ()
    fallback_strategies: Tuple[str, ...] = ()
    success_rate: float = 0.0
    average_recovery_time: float = 0.0  # ms
    kinds: FrozenSet[RecoverableErrorKind] = frozenset()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize recovery strategy"""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'priority': self.priority,
            'conditions': sorted(self.conditions),
            'kinds': sorted(kind.value for kind in self.kinds),
            'actions': [action.to_dict() for action in self.actions],
            'fallback_strategies': list(self.fallback_strategies),
            'success_rate': self.success_rate,
            'average_recovery_time': self.average_recovery_time
        }


@dataclass
class AttemptMetrics:
    """Telemetry captured alongside an attempt (informational only)"""
    cpu_usage: Optional[float] = None
    memory_usage: Optional[float] = None
    network_latency: Optional[float] = None
    response_time: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cpu_usage': self.cpu_usage,
            'memory_usage': self.memory_usage,
            'network_latency': self.network_latency,
            'response_time': self.response_time
        }


@dataclass
class RecoveryAttempt:
    """Append-only record of one executed action"""
    id: str
    timestamp: datetime
    strategy: str
    action: str
    success: bool
    duration: float  # ms
    error: Optional[str] = None
    metrics: AttemptMetrics = field(default_factory=AttemptMetrics)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize recovery attempt"""
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'strategy': self.strategy,
            'action': self.action,
            'success': self.success,
            'duration': self.duration,
            'error': self.error,
            'metrics': self.metrics.to_dict()
        }


@dataclass
class PredictiveSuggestion:
    """Strategy recommendation derived from historical outcomes"""
    strategy: str
    confidence: float
    reasoning: str
    expected_success_rate: float
    estimated_recovery_time: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'strategy': self.strategy,
            'confidence': self.confidence,
            'reasoning': self.reasoning,
            'expected_success_rate': self.expected_success_rate,
            'estimated_recovery_time': self.estimated_recovery_time
        }


@dataclass
class CircuitBreakerState:
    """Breaker entry for one error-type/strategy pair"""
    state: CircuitState
    timeout: float  # ms
    threshold: int
    failures: int = 0
    last_failure_time: Optional[datetime] = None
    next_attempt_time: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'state': self.state.value,
            'failures': self.failures,
            'last_failure_time': self.last_failure_time.isoformat() if self.last_failure_time else None,
            'next_attempt_time': self.next_attempt_time.isoformat() if self.next_attempt_time else None,
            'timeout': self.timeout,
            'threshold': self.threshold
        }


@dataclass
class RecoveryContext:
    """
    State of one initiated recovery.

    Lives in the orchestrator's active-recovery table until it succeeds or is
    cancelled. Exhausted contexts stay in the table for inspection.
    """
    error_id: str
    error_type: str
    error_message: str
    severity: ErrorSeverity
    timestamp: datetime
    kind: RecoverableErrorKind = RecoverableErrorKind.UNKNOWN
    attempts: int = 0
    strategies: List[RecoveryStrategy] = field(default_factory=list)
    current_strategy: Optional[RecoveryStrategy] = None
    history: List[RecoveryAttempt] = field(default_factory=list)
    circuit_breaker_state: CircuitState = CircuitState.CLOSED
    predictive_suggestions: List[PredictiveSuggestion] = field(default_factory=list)
    status: RecoveryStatus = RecoveryStatus.INITIATED
    metadata: Dict[str, Any] = field(default_factory=dict)

    def recent_attempts(self, limit: int = 3) -> List[RecoveryAttempt]:
        """Most recent attempts, oldest first"""
        return self.history[-limit:] if limit > 0 else []

    def to_dict(self) -> Dict[str, Any]:
        """Serialize recovery context for API consumers"""
        return {
            'error_id': self.error_id,
            'error_type': self.error_type,
            'error_message': self.error_message,
            'severity': self.severity.value,
            'kind': self.kind.value,
            'timestamp': self.timestamp.isoformat(),
            'attempts': self.attempts,
            'strategies': [strategy.id for strategy in self.strategies],
            'current_strategy': self.current_strategy.id if self.current_strategy else None,
            'history': [attempt.to_dict() for attempt in self.history],
            'circuit_breaker_state': self.circuit_breaker_state.value,
            'predictive_suggestions': [s.to_dict() for s in self.predictive_suggestions],
            'status': self.status.value,
            'metadata': {
                key: value if isinstance(value, (str, int, float, bool, type(None))) else repr(value)
                for key, value in self.metadata.items()
            }
        }

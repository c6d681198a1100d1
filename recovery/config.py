"""
Recovery Orchestrator Configuration

Validated configuration model plus loading from YAML and environment
variables. Durations are milliseconds.
"""

import os
import logging
from typing import Dict, Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import RecoveryConfigError


DEFAULT_CONFIG_PATH = "config/recovery.yaml"
ENV_PREFIX = "RECOVERY_"

logger = logging.getLogger('recovery_config')


class RecoveryConfig(BaseModel):
    """Tunable behaviour of a RecoveryOrchestrator"""
    model_config = ConfigDict(extra='forbid')

    enable_intelligent_retry: bool = Field(True, description="Promote the predicted best strategy to the front of the candidates")
    enable_fallback_strategies: bool = Field(True, description="Schedule fallback strategies after a strategy is exhausted")
    enable_recovery_analytics: bool = Field(True, description="Aggregate recovery analytics")
    max_retry_attempts: int = Field(3, ge=1, description="Executions allowed before a recovery is exhausted")
    base_retry_delay: float = Field(1000, ge=0, description="Base delay between retries (ms)")
    max_retry_delay: float = Field(30000, ge=0, description="Upper bound for the backoff delay (ms)")
    exponential_backoff: bool = Field(True, description="Double the retry delay on every attempt")
    enable_circuit_breaker: bool = Field(True, description="Gate executions on per-key circuit breakers")
    circuit_breaker_threshold: int = Field(5, ge=1, description="Consecutive failures that open a breaker")
    circuit_breaker_timeout: float = Field(60000, ge=0, description="Cool-down before an open breaker allows a probe (ms)")
    enable_recovery_cache: bool = Field(True, description="Cache strategy selection results")
    recovery_cache_size: int = Field(100, ge=1, description="Maximum cached selection results")
    enable_predictive_recovery: bool = Field(True, description="Attach predictive suggestions to new recoveries")
    predictive_accuracy_threshold: float = Field(0.7, ge=0.0, le=1.0, description="Minimum confidence for a suggestion")

    def merged(self, changes: Dict[str, Any]) -> 'RecoveryConfig':
        """Return a validated copy with the given options replaced"""
        try:
            return RecoveryConfig.model_validate({**self.model_dump(), **changes})
        except ValidationError as e:
            raise RecoveryConfigError(f"Invalid recovery configuration: {e}", errors=e.errors()) from e


def _env_overrides() -> Dict[str, str]:
    overrides = {}
    for option in RecoveryConfig.model_fields:
        value = os.getenv(f"{ENV_PREFIX}{option.upper()}")
        if value is not None:
            overrides[option] = value
    return overrides


def load_config(path: Optional[str] = None, use_env: bool = True) -> RecoveryConfig:
    """
    Load configuration from a YAML file and environment overrides.

    Args:
        path: YAML file with option names as keys. Defaults to
            config/recovery.yaml when that file exists.
        use_env: Apply RECOVERY_<OPTION> environment variables (and .env)

    Returns:
        RecoveryConfig: Validated configuration
    """
    values: Dict[str, Any] = {}

    config_path = path or DEFAULT_CONFIG_PATH
    if path or os.path.exists(config_path):
        try:
            with open(config_path, 'r') as file:
                loaded = yaml.safe_load(file) or {}
        except FileNotFoundError:
            logger.error(f"Recovery configuration file not found: {config_path}")
            raise
        except yaml.YAMLError as e:
            raise RecoveryConfigError(f"Error parsing recovery configuration: {e}") from e

        if not isinstance(loaded, dict):
            raise RecoveryConfigError(f"Recovery configuration must be a mapping: {config_path}")

        # Accept either a bare mapping or one nested under a 'recovery' key
        values.update(loaded.get('recovery', loaded))
        logger.info(f"Loaded recovery configuration from {config_path}")

    if use_env:
        load_dotenv()
        values.update(_env_overrides())

    return RecoveryConfig().merged(values)

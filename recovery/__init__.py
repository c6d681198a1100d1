# Error Recovery Orchestrator
# Strategy selection, circuit breaking, backoff retries and recovery analytics

from .config import RecoveryConfig, load_config
from .exceptions import RecoveryError, RecoveryNotFoundError, RecoveryConfigError
from .recovery_state import (
    ActionType,
    ErrorSeverity,
    CircuitState,
    RecoveryStatus,
    RecoverableErrorKind,
    RecoveryAction,
    RecoveryStrategy,
    RecoveryAttempt,
    RecoveryContext,
    AttemptMetrics,
    CircuitBreakerState,
    PredictiveSuggestion
)
from .strategy_catalog import StrategyCatalog
from .circuit_breaker import CircuitBreakerManager, breaker_key
from .backoff import calculate_retry_delay
from .analytics import AnalyticsAggregator, RecoveryAnalytics, StrategyPerformance, ErrorPattern
from .predictive_engine import PredictiveEngine
from .recovery_orchestrator import RecoveryOrchestrator

__all__ = [
    'RecoveryConfig',
    'load_config',
    'RecoveryError',
    'RecoveryNotFoundError',
    'RecoveryConfigError',
    'ActionType',
    'ErrorSeverity',
    'CircuitState',
    'RecoveryStatus',
    'RecoverableErrorKind',
    'RecoveryAction',
    'RecoveryStrategy',
    'RecoveryAttempt',
    'RecoveryContext',
    'AttemptMetrics',
    'CircuitBreakerState',
    'PredictiveSuggestion',
    'StrategyCatalog',
    'CircuitBreakerManager',
    'breaker_key',
    'calculate_retry_delay',
    'AnalyticsAggregator',
    'RecoveryAnalytics',
    'StrategyPerformance',
    'ErrorPattern',
    'PredictiveEngine',
    'RecoveryOrchestrator'
]

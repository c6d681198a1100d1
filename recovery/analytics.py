"""
Recovery Analytics Aggregator

Process-lifetime running averages of recovery outcomes. Feeds the predictive
suggestion engine; lost on restart.
"""

import copy
import logging
from typing import Dict, Optional, Callable, Any
from dataclasses import dataclass, field
from collections import deque

import numpy as np

from .config import RecoveryConfig
from .recovery_state import ActionType, RecoveryStrategy


EWMA_DECAY = 0.9
EWMA_WEIGHT = 0.1
DURATION_WINDOW = 1000


@dataclass
class StrategyPerformance:
    """Outcome counters for one action type"""
    attempts: int = 0
    successes: int = 0
    average_time: float = 0.0
    success_rate: float = 0.0

    def record(self, success: bool, duration: float):
        self.attempts += 1
        if success:
            self.successes += 1
        self.average_time = (self.average_time * (self.attempts - 1) + duration) / self.attempts
        self.success_rate = self.successes / self.attempts

    def to_dict(self) -> Dict[str, Any]:
        return {
            'attempts': self.attempts,
            'successes': self.successes,
            'average_time': self.average_time,
            'success_rate': self.success_rate
        }


@dataclass
class ErrorPattern:
    """Aggregated recovery history for one error type"""
    frequency: int
    best_strategy: str
    average_recovery_time: float = 0.0
    success_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'frequency': self.frequency,
            'average_recovery_time': self.average_recovery_time,
            'best_strategy': self.best_strategy,
            'success_rate': self.success_rate
        }


@dataclass
class RecoveryAnalytics:
    """Snapshot shape of aggregated recovery analytics"""
    total_recoveries: int = 0
    successful_recoveries: int = 0
    average_recovery_time: float = 0.0
    success_rate: float = 0.0
    strategy_performance: Dict[str, StrategyPerformance] = field(default_factory=dict)
    error_patterns: Dict[str, ErrorPattern] = field(default_factory=dict)
    predictive_accuracy: float = 0.0
    circuit_breaker_events: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_recoveries': self.total_recoveries,
            'successful_recoveries': self.successful_recoveries,
            'average_recovery_time': self.average_recovery_time,
            'success_rate': self.success_rate,
            'strategy_performance': {k: v.to_dict() for k, v in self.strategy_performance.items()},
            'error_patterns': {k: v.to_dict() for k, v in self.error_patterns.items()},
            'predictive_accuracy': self.predictive_accuracy,
            'circuit_breaker_events': self.circuit_breaker_events
        }


class AnalyticsAggregator:
    """
    Running-average bookkeeping for recoveries.

    `average_recovery_time` is the mean duration of the winning action,
    accumulated with the number of initiated recoveries as divisor.
    Writes are skipped entirely while enable_recovery_analytics is off.
    """

    def __init__(
        self,
        config_provider: Callable[[], RecoveryConfig],
        logger: Optional[logging.Logger] = None
    ):
        self._config_provider = config_provider
        self.logger = logger or logging.getLogger('recovery_analytics')
        self._reset_state()

    def _reset_state(self):
        self.analytics = RecoveryAnalytics()
        # Per strategy id, compared when choosing an error pattern's best strategy
        self._strategy_outcomes: Dict[str, StrategyPerformance] = {}
        self._recent_durations: deque = deque(maxlen=DURATION_WINDOW)
        self._predictions = 0
        self._prediction_hits = 0

    @property
    def enabled(self) -> bool:
        return self._config_provider().enable_recovery_analytics

    def record_initiated(self):
        if not self.enabled:
            return
        self.analytics.total_recoveries += 1

    def record_action_outcome(
        self,
        action_type: ActionType,
        success: bool,
        duration: float,
        strategy_id: Optional[str] = None
    ):
        """Update per-action-type performance after an action settles"""
        if not self.enabled:
            return

        performance = self.analytics.strategy_performance.setdefault(action_type.value, StrategyPerformance())
        performance.record(success, duration)

        if strategy_id:
            self._strategy_outcomes.setdefault(strategy_id, StrategyPerformance()).record(success, duration)

    def record_success(self, error_type: str, strategy: RecoveryStrategy, duration: float):
        """Fold a successful recovery into the aggregate and the error pattern"""
        if not self.enabled:
            return

        analytics = self.analytics
        analytics.successful_recoveries += 1
        # A reset between initiation and success must not break successful <= total
        analytics.total_recoveries = max(analytics.total_recoveries, analytics.successful_recoveries)

        n = analytics.total_recoveries
        analytics.average_recovery_time = (analytics.average_recovery_time * (n - 1) + duration) / n
        analytics.success_rate = analytics.successful_recoveries / n

        pattern = analytics.error_patterns.get(error_type)
        if pattern is None:
            pattern = ErrorPattern(frequency=0, best_strategy=strategy.id)
            analytics.error_patterns[error_type] = pattern

        pattern.frequency += 1
        pattern.average_recovery_time = (
            pattern.average_recovery_time * (pattern.frequency - 1) + duration
        ) / pattern.frequency

        best = self._strategy_outcomes.get(pattern.best_strategy)
        if strategy.success_rate > (best.success_rate if best else 0.0):
            pattern.best_strategy = strategy.id

        pattern.success_rate = pattern.success_rate * EWMA_DECAY + EWMA_WEIGHT

        self._recent_durations.append(duration)
        self.logger.debug(f"Recorded successful recovery of {error_type} via {strategy.id} in {duration:.1f}ms")

    def record_prediction(self, predicted_strategy: str, winning_strategy: str):
        """Track how often the top suggestion named the strategy that won"""
        if not self.enabled:
            return

        self._predictions += 1
        if predicted_strategy == winning_strategy:
            self._prediction_hits += 1
        self.analytics.predictive_accuracy = self._prediction_hits / self._predictions

    def record_circuit_trip(self, key: Optional[str] = None):
        if not self.enabled:
            return
        self.analytics.circuit_breaker_events += 1

    def get_error_pattern(self, error_type: str) -> Optional[ErrorPattern]:
        return self.analytics.error_patterns.get(error_type)

    def duration_percentiles(self) -> Dict[str, float]:
        """p50/p95 of recent successful recovery durations (ms)"""
        if not self._recent_durations:
            return {'p50': 0.0, 'p95': 0.0}

        durations = np.asarray(self._recent_durations, dtype=float)
        p50, p95 = np.percentile(durations, [50, 95])
        return {'p50': float(p50), 'p95': float(p95)}

    def snapshot(self) -> RecoveryAnalytics:
        """Deep copy, safe to hand to callers"""
        return copy.deepcopy(self.analytics)

    def reset(self):
        self._reset_state()
        self.logger.info("Recovery analytics reset")

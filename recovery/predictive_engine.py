"""
Predictive recovery suggestions from aggregated error patterns.
"""

from typing import List, Callable

from .analytics import AnalyticsAggregator
from .config import RecoveryConfig
from .recovery_state import PredictiveSuggestion


class PredictiveEngine:
    """Turns an error type's recorded pattern into a confidence-gated suggestion"""

    def __init__(self, config_provider: Callable[[], RecoveryConfig], aggregator: AnalyticsAggregator):
        self._config_provider = config_provider
        self.aggregator = aggregator

    def get_suggestions(self, error_type: str) -> List[PredictiveSuggestion]:
        config = self._config_provider()
        if not config.enable_predictive_recovery:
            return []

        pattern = self.aggregator.get_error_pattern(error_type)
        if not pattern:
            return []

        suggestion = PredictiveSuggestion(
            strategy=pattern.best_strategy,
            confidence=pattern.success_rate,
            reasoning=f"Based on {pattern.frequency} previous occurrences",
            expected_success_rate=pattern.success_rate,
            estimated_recovery_time=pattern.average_recovery_time
        )

        if suggestion.confidence < config.predictive_accuracy_threshold:
            return []
        return [suggestion]

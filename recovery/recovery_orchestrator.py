"""
Error Recovery Orchestrator

Selects recovery strategies for raised errors, runs their actions under
per-action timeouts, gates execution on circuit breakers, schedules
backoff-delayed fallbacks and feeds outcomes into recovery analytics.
"""

import time
import uuid
import logging
from types import MappingProxyType
from typing import Dict, List, Optional, Any, Callable, Mapping, Tuple, Union
from datetime import datetime
from collections import Counter

from .analytics import AnalyticsAggregator, RecoveryAnalytics
from .backoff import calculate_retry_delay
from .circuit_breaker import CircuitBreakerManager, breaker_key
from .config import RecoveryConfig
from .exceptions import RecoveryNotFoundError
from .predictive_engine import PredictiveEngine
from .recovery_state import (
    CircuitState,
    ErrorSeverity,
    PredictiveSuggestion,
    RecoverableErrorKind,
    RecoveryAction,
    RecoveryAttempt,
    RecoveryContext,
    RecoveryStatus,
    RecoveryStrategy
)
from .scheduling import CancellationHandle, race_with_timeout, schedule_after
from .strategy_catalog import StrategyCatalog
from .telemetry import TelemetrySampler


class RecoveryOrchestrator:
    """
    Recovery state machine over a table of active recovery contexts.

    A context is created by initiate_recovery() and driven by
    execute_recovery(). It leaves the table when a strategy succeeds or the
    recovery is cancelled; an exhausted context stays for inspection.

    Features:
    - Keyword or tagged strategy selection with a bounded cache
    - Sequential action execution with timeout races
    - Per error-type/strategy circuit breakers
    - Exponential backoff retries through fallback strategies
    - Running analytics and predictive strategy suggestions
    """

    def __init__(
        self,
        config: Optional[RecoveryConfig] = None,
        catalog: Optional[StrategyCatalog] = None,
        clock: Callable[[], datetime] = datetime.now,
        telemetry: Optional[TelemetrySampler] = None,
        include_builtin_strategies: bool = True,
        enable_logging: bool = True
    ):
        """Initialize recovery orchestrator"""
        self._config = config or RecoveryConfig()
        self._clock = clock

        # Logging setup
        if enable_logging:
            self.logger = logging.getLogger('recovery_orchestrator')
            if not self.logger.handlers:
                handler = logging.StreamHandler()
                formatter = logging.Formatter(
                    '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
                )
                handler.setFormatter(formatter)
                self.logger.addHandler(handler)
                self.logger.setLevel(logging.INFO)
        else:
            self.logger = logging.getLogger('null')
            self.logger.addHandler(logging.NullHandler())

        # Collaborators
        self.analytics = AnalyticsAggregator(self._get_config, logger=self.logger.getChild('analytics'))
        self.circuit_breakers = CircuitBreakerManager(
            self._get_config,
            on_trip=self.analytics.record_circuit_trip,
            clock=clock,
            logger=self.logger.getChild('circuit_breaker')
        )
        self.catalog = catalog or StrategyCatalog(
            self._get_config,
            include_builtins=include_builtin_strategies,
            logger=self.logger.getChild('catalog')
        )
        self.predictive_engine = PredictiveEngine(self._get_config, self.analytics)
        self.telemetry = telemetry or TelemetrySampler(logger=self.logger.getChild('telemetry'))

        # Recovery state
        self.active_recoveries: Dict[str, RecoveryContext] = {}
        self.retry_timers: Dict[str, CancellationHandle] = {}

    def _get_config(self) -> RecoveryConfig:
        return self._config

    @property
    def config(self) -> RecoveryConfig:
        return self._config

    def initiate_recovery(
        self,
        error: BaseException,
        context: Optional[Dict[str, Any]] = None,
        kind: Optional[Union[RecoverableErrorKind, str]] = None,
        severity: Optional[Union[ErrorSeverity, str]] = None
    ) -> str:
        """
        Create a recovery context for an error without executing it.

        Args:
            error: The exception that occurred
            context: Caller context stored on the recovery for inspection
            kind: Tagged classification; keyword matching is used without it
            severity: Error severity, medium when unknown

        Returns:
            str: The recovery id
        """
        kind = RecoverableErrorKind(kind) if kind is not None else RecoverableErrorKind.UNKNOWN
        severity = ErrorSeverity(severity) if severity is not None else ErrorSeverity.MEDIUM

        recovery_id = f"recovery-{uuid.uuid4().hex[:12]}"
        error_type = type(error).__name__

        strategies = self.catalog.select_strategies(error, kind)
        suggestions = self.predictive_engine.get_suggestions(error_type)

        if self._config.enable_intelligent_retry and suggestions:
            strategies = self._promote_predicted(strategies, suggestions)

        recovery = RecoveryContext(
            error_id=recovery_id,
            error_type=error_type,
            error_message=str(error),
            severity=severity,
            kind=kind,
            timestamp=self._clock(),
            strategies=strategies,
            predictive_suggestions=suggestions,
            metadata=dict(context or {})
        )

        self.active_recoveries[recovery_id] = recovery
        self.analytics.record_initiated()

        self.logger.info(
            f"Initiated recovery {recovery_id} for {error_type}: "
            f"{[s.id for s in strategies] or 'no applicable strategies'}"
        )
        return recovery_id

    async def execute_recovery(self, recovery_id: str, strategy_id: Optional[str] = None) -> bool:
        """
        Run one strategy of a recovery.

        Args:
            recovery_id: Id returned by initiate_recovery
            strategy_id: Strategy to run; the top-ranked candidate by default

        Returns:
            bool: True when an action succeeded and the recovery completed.
            False when the strategy failed, could not be resolved or its
            circuit breaker is open.

        Raises:
            RecoveryNotFoundError: The id is not an active recovery
        """
        recovery = self.active_recoveries.get(recovery_id)
        if recovery is None:
            raise RecoveryNotFoundError(recovery_id)

        strategy = self._resolve_strategy(recovery, strategy_id)
        if strategy is None:
            if strategy_id is None:
                recovery.status = RecoveryStatus.EXHAUSTED
                self.logger.warning(f"No recovery strategy available for {recovery_id} ({recovery.error_type})")
            else:
                self.logger.warning(f"Unknown strategy {strategy_id} requested for {recovery_id}")
                self._exhaust_stalled_retry(recovery)
            return False

        key = breaker_key(recovery.error_type, strategy.id)
        if not self.circuit_breakers.check_gate(key):
            recovery.circuit_breaker_state = CircuitState.OPEN
            self.logger.info(f"Circuit breaker open for {key}; skipping recovery {recovery_id}")
            self._exhaust_stalled_retry(recovery)
            return False

        recovery.attempts += 1
        recovery.current_strategy = strategy
        recovery.status = RecoveryStatus.EXECUTING
        recovery.circuit_breaker_state = self.circuit_breakers.get_state(key)

        self.logger.info(
            f"Recovery attempt {recovery.attempts}/{self._config.max_retry_attempts} "
            f"for {recovery_id} using {strategy.id}"
        )

        for action in strategy.actions:
            attempt = await self._execute_action(recovery, strategy, action)

            if recovery.status == RecoveryStatus.CANCELLED:
                self.logger.info(f"Recovery {recovery_id} cancelled during {action.id}")
                return False

            self.circuit_breakers.update_outcome(key, attempt.success)
            recovery.circuit_breaker_state = self.circuit_breakers.get_state(key)

            if attempt.success:
                self._complete_recovery(recovery, strategy, attempt)
                return True

        self._handle_strategy_failure(recovery, strategy)
        return False

    def cancel_recovery(self, recovery_id: str):
        """Cancel a recovery and any pending retry; no-op for unknown ids"""
        self._clear_retry_timer(recovery_id)

        recovery = self.active_recoveries.pop(recovery_id, None)
        if recovery is not None:
            recovery.status = RecoveryStatus.CANCELLED
            self.logger.info(f"Cancelled recovery {recovery_id}")

    async def handle_error(
        self,
        error: BaseException,
        context: Optional[Dict[str, Any]] = None,
        kind: Optional[Union[RecoverableErrorKind, str]] = None,
        severity: Optional[Union[ErrorSeverity, str]] = None
    ) -> Tuple[str, bool]:
        """Initiate a recovery and run its top-ranked strategy once"""
        recovery_id = self.initiate_recovery(error, context, kind=kind, severity=severity)
        success = await self.execute_recovery(recovery_id)
        return recovery_id, success

    def get_recovery_suggestions(
        self,
        error_type: str,
        context: Optional[Dict[str, Any]] = None
    ) -> List[PredictiveSuggestion]:
        """Predictive suggestions for an error type"""
        return self.predictive_engine.get_suggestions(error_type)

    def update_config(self, changes: Optional[Dict[str, Any]] = None, **options):
        """Merge option changes into the configuration (validated)"""
        merged = {**(changes or {}), **options}
        self._config = self._config.merged(merged)
        if merged.keys() & {'enable_recovery_cache', 'recovery_cache_size'}:
            self.catalog.clear_cache()
        self.logger.info(f"Recovery configuration updated: {sorted(merged)}")

    def get_analytics(self) -> RecoveryAnalytics:
        """Snapshot of aggregated analytics"""
        return self.analytics.snapshot()

    def reset_analytics(self):
        self.analytics.reset()

    def get_active_recoveries(self) -> Mapping[str, RecoveryContext]:
        """Read-only view of the active-recovery table"""
        return MappingProxyType(self.active_recoveries)

    def get_recovery(self, recovery_id: str) -> Optional[RecoveryContext]:
        return self.active_recoveries.get(recovery_id)

    def get_recovery_statistics(self) -> Dict[str, Any]:
        """Summary of recovery state for monitoring"""
        status_counts = Counter(r.status.value for r in self.active_recoveries.values())

        return {
            'active_recoveries': len(self.active_recoveries),
            'status_distribution': dict(status_counts),
            'pending_retries': sum(1 for handle in self.retry_timers.values() if handle.pending),
            'analytics': self.analytics.snapshot().to_dict(),
            'duration_percentiles': self.analytics.duration_percentiles(),
            'circuit_breaker_status': self.circuit_breakers.get_status(),
            'selection_cache_size': self.catalog.cache_size()
        }

    def shutdown(self):
        """Cancel every pending retry timer"""
        for recovery_id in list(self.retry_timers):
            self._clear_retry_timer(recovery_id)
        self.logger.info("Recovery orchestrator shut down")

    def _promote_predicted(
        self,
        strategies: List[RecoveryStrategy],
        suggestions: List[PredictiveSuggestion]
    ) -> List[RecoveryStrategy]:
        """Move the suggested strategy to the front of the candidates"""
        predicted = suggestions[0].strategy
        promoted = [s for s in strategies if s.id == predicted]
        if not promoted:
            return strategies
        return promoted + [s for s in strategies if s.id != predicted]

    def _resolve_strategy(
        self,
        recovery: RecoveryContext,
        strategy_id: Optional[str]
    ) -> Optional[RecoveryStrategy]:
        if strategy_id is None:
            return recovery.strategies[0] if recovery.strategies else None

        for strategy in recovery.strategies:
            if strategy.id == strategy_id:
                return strategy

        # Fallback strategies are usually not among the selected candidates
        return self.catalog.get_strategy(strategy_id)

    async def _execute_action(
        self,
        recovery: RecoveryContext,
        strategy: RecoveryStrategy,
        action: RecoveryAction
    ) -> RecoveryAttempt:
        """Run one action against its timeout and record the attempt"""
        start_time = time.perf_counter()
        outcome = await race_with_timeout(action.execute, action.timeout)
        duration = (time.perf_counter() - start_time) * 1000

        error_message = None
        if outcome.timed_out:
            success = False
            error_message = f"Action timeout after {action.timeout:g}ms"
        elif outcome.error is not None:
            success = False
            error_message = str(outcome.error) or type(outcome.error).__name__
        else:
            success = bool(outcome.value)

        attempt = RecoveryAttempt(
            id=f"attempt-{uuid.uuid4().hex[:12]}",
            timestamp=self._clock(),
            strategy=strategy.id,
            action=action.id,
            success=success,
            duration=duration,
            error=error_message,
            metrics=self.telemetry.sample(duration, network_latency=recovery.metadata.get('network_latency'))
        )
        recovery.history.append(attempt)

        if recovery.status != RecoveryStatus.CANCELLED:
            self.analytics.record_action_outcome(action.type, success, duration, strategy.id)

        if success:
            self.logger.info(f"Recovery action {action.id} succeeded in {duration:.1f}ms")
        else:
            self.logger.warning(
                f"Recovery action {action.id} failed for {recovery.error_id}: "
                f"{error_message or 'reported failure'}"
            )

        return attempt

    def _complete_recovery(self, recovery: RecoveryContext, strategy: RecoveryStrategy, attempt: RecoveryAttempt):
        self.analytics.record_success(recovery.error_type, strategy, attempt.duration)
        if recovery.predictive_suggestions:
            self.analytics.record_prediction(recovery.predictive_suggestions[0].strategy, strategy.id)

        self._clear_retry_timer(recovery.error_id)
        recovery.status = RecoveryStatus.SUCCEEDED
        self.active_recoveries.pop(recovery.error_id, None)

        self.logger.info(
            f"Recovery {recovery.error_id} succeeded with {strategy.id} "
            f"after {recovery.attempts} attempt(s)"
        )

    def _handle_strategy_failure(self, recovery: RecoveryContext, strategy: RecoveryStrategy):
        """Schedule the first fallback or mark the recovery exhausted"""
        config = self._config

        fallback_id = None
        if config.enable_fallback_strategies and recovery.attempts < config.max_retry_attempts:
            fallback_id = self._first_known_fallback(recovery, strategy)

        if fallback_id is not None:
            delay = calculate_retry_delay(recovery.attempts, config)
            self._schedule_retry(recovery.error_id, fallback_id, delay)
            recovery.status = RecoveryStatus.RETRY_SCHEDULED
            self.logger.info(
                f"Strategy {strategy.id} failed for {recovery.error_id}; "
                f"retrying with {fallback_id} in {delay:g}ms"
            )
            return

        recovery.status = RecoveryStatus.EXHAUSTED
        self._log_exhausted(recovery)

    def _first_known_fallback(self, recovery: RecoveryContext, strategy: RecoveryStrategy) -> Optional[str]:
        """First fallback id the catalog can resolve"""
        for fallback_id in strategy.fallback_strategies:
            if self.catalog.get_strategy(fallback_id) is not None:
                return fallback_id
            self.logger.warning(
                f"Skipping unknown fallback {fallback_id} of {strategy.id} for {recovery.error_id}"
            )
        return None

    def _exhaust_stalled_retry(self, recovery: RecoveryContext):
        """A scheduled retry that cannot run leaves nothing to drive the recovery"""
        handle = self.retry_timers.get(recovery.error_id)
        if recovery.status != RecoveryStatus.RETRY_SCHEDULED or (handle and handle.pending):
            return

        recovery.status = RecoveryStatus.EXHAUSTED
        self._log_exhausted(recovery)

    def _log_exhausted(self, recovery: RecoveryContext):
        last_errors = [a.error or 'reported failure' for a in recovery.recent_attempts()]
        self.logger.error(
            f"Recovery {recovery.error_id} exhausted after {recovery.attempts} attempt(s); "
            f"last errors: {last_errors}"
        )

    def _schedule_retry(self, recovery_id: str, strategy_id: str, delay: float):
        self._clear_retry_timer(recovery_id)
        self.retry_timers[recovery_id] = schedule_after(
            delay,
            lambda: self._run_scheduled_retry(recovery_id, strategy_id)
        )

    async def _run_scheduled_retry(self, recovery_id: str, strategy_id: str) -> bool:
        self.retry_timers.pop(recovery_id, None)

        if recovery_id not in self.active_recoveries:
            return False

        try:
            return await self.execute_recovery(recovery_id, strategy_id)
        except Exception as e:
            # Nothing awaits a scheduled retry, so report instead of raising
            self.logger.error(f"Scheduled retry of {recovery_id} with {strategy_id} failed: {e}")
            return False

    def _clear_retry_timer(self, recovery_id: str):
        handle = self.retry_timers.pop(recovery_id, None)
        if handle is not None:
            handle.cancel()

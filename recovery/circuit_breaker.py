"""
Circuit Breaker Manager

Per error-type/strategy breakers that stop the orchestrator from repeatedly
running a remediation path that keeps failing.
"""

import logging
from typing import Dict, Optional, Callable
from datetime import datetime, timedelta

from .config import RecoveryConfig
from .recovery_state import CircuitBreakerState, CircuitState


def breaker_key(error_type: str, strategy_id: str) -> str:
    return f"{error_type}:{strategy_id}"


class CircuitBreakerManager:
    """
    Tracks consecutive failures per key.

    Entries are created on the first observed failure. A key opens once its
    failures reach the threshold, blocks until the timeout elapses, then lets
    calls through as half-open. Any success closes it again.

    Half-open does not limit concurrent probes: every caller passes the gate
    until the first reported outcome. Because the failure count is kept, one
    failed probe reopens the key.
    """

    def __init__(
        self,
        config_provider: Callable[[], RecoveryConfig],
        on_trip: Optional[Callable[[str], None]] = None,
        clock: Callable[[], datetime] = datetime.now,
        logger: Optional[logging.Logger] = None
    ):
        self._config_provider = config_provider
        self._on_trip = on_trip
        self._clock = clock
        self.logger = logger or logging.getLogger('recovery_circuit_breaker')
        self.circuit_breakers: Dict[str, CircuitBreakerState] = {}

    @property
    def config(self) -> RecoveryConfig:
        return self._config_provider()

    def check_gate(self, key: str) -> bool:
        """Return True when an attempt on `key` may proceed"""
        if not self.config.enable_circuit_breaker:
            return True

        breaker = self.circuit_breakers.get(key)
        if not breaker:
            return True

        if breaker.state == CircuitState.OPEN:
            if breaker.next_attempt_time and self._clock() < breaker.next_attempt_time:
                return False
            breaker.state = CircuitState.HALF_OPEN
            self.logger.info(f"Circuit breaker half-open for {key}")

        return True

    def update_outcome(self, key: str, success: bool):
        """Record the outcome of an attempt on `key`"""
        if not self.config.enable_circuit_breaker:
            return

        breaker = self.circuit_breakers.get(key)

        if success:
            if breaker and (breaker.state != CircuitState.CLOSED or breaker.failures):
                self.logger.info(f"Circuit breaker closed for {key}")
            if breaker:
                breaker.state = CircuitState.CLOSED
                breaker.failures = 0
                breaker.last_failure_time = None
                breaker.next_attempt_time = None
            return

        if breaker is None:
            breaker = CircuitBreakerState(
                state=CircuitState.CLOSED,
                timeout=self.config.circuit_breaker_timeout,
                threshold=self.config.circuit_breaker_threshold
            )
            self.circuit_breakers[key] = breaker

        breaker.failures += 1

        if breaker.failures >= breaker.threshold:
            now = self._clock()
            breaker.state = CircuitState.OPEN
            breaker.last_failure_time = now
            breaker.next_attempt_time = now + timedelta(milliseconds=breaker.timeout)
            self.logger.warning(
                f"Circuit breaker opened for {key} after {breaker.failures} failures"
            )
            if self._on_trip:
                self._on_trip(key)

    def get_state(self, key: str) -> CircuitState:
        breaker = self.circuit_breakers.get(key)
        return breaker.state if breaker else CircuitState.CLOSED

    def get_breaker(self, key: str) -> Optional[CircuitBreakerState]:
        return self.circuit_breakers.get(key)

    def get_status(self) -> Dict[str, str]:
        """Get current state of all circuit breakers"""
        return {key: breaker.state.value for key, breaker in self.circuit_breakers.items()}

    def reset(self):
        self.circuit_breakers.clear()
        self.logger.info("All circuit breakers reset")

"""
Test Suite: Circuit Breaker

Tests for per-key breaker creation, opening at the failure threshold,
cool-down blocking, half-open probing and reset on success.
"""

import unittest
import os
import sys
from unittest.mock import Mock
from datetime import datetime, timedelta

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from recovery import CircuitBreakerManager, CircuitState, RecoveryConfig, breaker_key


class FakeClock:
    """Manually advanced clock"""

    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, milliseconds):
        self.now += timedelta(milliseconds=milliseconds)


class TestCircuitBreakerManager(unittest.TestCase):
    """Test circuit breaker state transitions"""

    def setUp(self):
        self.config = RecoveryConfig(circuit_breaker_threshold=3, circuit_breaker_timeout=60000)
        self.clock = FakeClock()
        self.on_trip = Mock()
        self.manager = CircuitBreakerManager(
            lambda: self.config,
            on_trip=self.on_trip,
            clock=self.clock
        )
        self.key = breaker_key('NetworkError', 'network-retry')

    def fail(self, times):
        for _ in range(times):
            self.manager.update_outcome(self.key, False)

    def test_breaker_key_format(self):
        self.assertEqual(self.key, 'NetworkError:network-retry')

    def test_unknown_key_passes_gate(self):
        self.assertTrue(self.manager.check_gate(self.key))
        self.assertEqual(self.manager.get_state(self.key), CircuitState.CLOSED)
        self.assertIsNone(self.manager.get_breaker(self.key))

    def test_breaker_created_on_first_failure(self):
        self.fail(1)

        breaker = self.manager.get_breaker(self.key)
        self.assertIsNotNone(breaker)
        self.assertEqual(breaker.failures, 1)
        self.assertEqual(breaker.state, CircuitState.CLOSED)
        self.assertEqual(breaker.threshold, 3)
        self.assertTrue(self.manager.check_gate(self.key))

    def test_success_without_breaker_creates_nothing(self):
        self.manager.update_outcome(self.key, True)
        self.assertEqual(self.manager.get_status(), {})

    def test_opens_at_threshold(self):
        """Three failures open the breaker and block until the timeout"""
        self.fail(3)

        breaker = self.manager.get_breaker(self.key)
        self.assertEqual(breaker.state, CircuitState.OPEN)
        self.assertEqual(breaker.last_failure_time, self.clock.now)
        self.assertEqual(breaker.next_attempt_time, self.clock.now + timedelta(milliseconds=60000))
        self.on_trip.assert_called_once_with(self.key)

        self.clock.advance(59999)
        self.assertFalse(self.manager.check_gate(self.key))
        self.assertEqual(self.manager.get_state(self.key), CircuitState.OPEN)

    def test_half_open_after_timeout(self):
        """After the cool-down one probe is let through"""
        self.fail(3)
        self.clock.advance(60000)

        self.assertTrue(self.manager.check_gate(self.key))
        self.assertEqual(self.manager.get_state(self.key), CircuitState.HALF_OPEN)

    def test_half_open_admits_concurrent_callers(self):
        """Every caller passes a half-open key until an outcome is reported"""
        self.fail(3)
        self.clock.advance(60000)

        self.assertTrue(self.manager.check_gate(self.key))
        self.assertTrue(self.manager.check_gate(self.key))
        self.assertEqual(self.manager.get_state(self.key), CircuitState.HALF_OPEN)

    def test_half_open_failure_reopens(self):
        self.fail(3)
        self.clock.advance(60000)
        self.manager.check_gate(self.key)

        self.fail(1)

        self.assertEqual(self.manager.get_state(self.key), CircuitState.OPEN)
        self.assertFalse(self.manager.check_gate(self.key))
        self.assertEqual(self.on_trip.call_count, 2)

    def test_success_resets_breaker(self):
        """A success closes the breaker and clears the failure count"""
        self.fail(3)
        self.clock.advance(60000)
        self.manager.check_gate(self.key)

        self.manager.update_outcome(self.key, True)

        breaker = self.manager.get_breaker(self.key)
        self.assertEqual(breaker.state, CircuitState.CLOSED)
        self.assertEqual(breaker.failures, 0)
        self.assertIsNone(breaker.next_attempt_time)
        self.assertTrue(self.manager.check_gate(self.key))

        # The count restarts from zero
        self.fail(2)
        self.assertEqual(self.manager.get_state(self.key), CircuitState.CLOSED)

    def test_keys_are_independent(self):
        other = breaker_key('NetworkError', 'offline-mode')
        self.fail(3)

        self.assertFalse(self.manager.check_gate(self.key))
        self.assertTrue(self.manager.check_gate(other))

    def test_disabled_breaker_never_blocks(self):
        self.config = RecoveryConfig(enable_circuit_breaker=False, circuit_breaker_threshold=1)
        self.fail(5)

        self.assertTrue(self.manager.check_gate(self.key))
        self.assertEqual(self.manager.get_status(), {})
        self.on_trip.assert_not_called()

    def test_reset_clears_all_breakers(self):
        self.fail(3)
        self.manager.reset()
        self.assertEqual(self.manager.get_status(), {})
        self.assertTrue(self.manager.check_gate(self.key))


if __name__ == "__main__":
    unittest.main()

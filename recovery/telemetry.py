"""
Runtime telemetry captured with each recovery attempt.
"""

import logging
from typing import Optional

import psutil

from .recovery_state import AttemptMetrics


class TelemetrySampler:
    """Samples process CPU and memory usage for attempt records"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('recovery_telemetry')
        self._process: Optional[psutil.Process] = None

    def sample(self, response_time: float, network_latency: Optional[float] = None) -> AttemptMetrics:
        """Capture a metrics snapshot; unavailable readings are left as None"""
        metrics = AttemptMetrics(network_latency=network_latency, response_time=response_time)

        try:
            if self._process is None:
                self._process = psutil.Process()
            metrics.cpu_usage = self._process.cpu_percent()
            metrics.memory_usage = self._process.memory_percent()
        except psutil.Error as e:
            self.logger.warning(f"Failed to capture process metrics: {e}")

        return metrics

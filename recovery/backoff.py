"""
Retry backoff policy.
"""

from .config import RecoveryConfig


def calculate_retry_delay(attempt: int, config: RecoveryConfig) -> float:
    """Delay in ms before retry number `attempt` (1-based)"""
    if not config.exponential_backoff:
        return config.base_retry_delay

    # Exponent capped so large attempt counts cannot overflow a float
    exponent = min(max(attempt - 1, 0), 64)
    delay = config.base_retry_delay * (2 ** exponent)
    return min(delay, config.max_retry_delay)

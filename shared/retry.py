"""
Backoff policy shared by retry loops.
"""

import random
from typing import Optional

from shared.config import ReconcilerConfig


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(self,
                 timeout: float = 900.0,
                 base_delay: float = 1.0,
                 max_delay: float = 30.0,
                 exponential_base: float = 2.0,
                 jitter: bool = True,
                 backoff_strategy: str = "exponential"):
        self.timeout = timeout
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.backoff_strategy = backoff_strategy

    @classmethod
    def from_settings(cls, settings: Optional[ReconcilerConfig] = None) -> "RetryConfig":
        """Build a retry config from reconciler settings."""
        settings = settings or ReconcilerConfig()
        return cls(
            timeout=settings.retry_timeout_seconds,
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
            exponential_base=settings.retry_exponential_base,
            jitter=settings.retry_jitter,
            backoff_strategy=settings.retry_backoff_strategy
        )


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay before retry number ``attempt`` (1-based)."""
    if config.backoff_strategy == "exponential":
        delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    elif config.backoff_strategy == "linear":
        delay = config.base_delay * attempt
    elif config.backoff_strategy == "fixed":
        delay = config.base_delay
    else:
        delay = config.base_delay

    # Apply max delay cap
    delay = min(delay, config.max_delay)

    if config.jitter:
        jitter_amount = delay * 0.1  # 10% jitter
        delay += random.uniform(-jitter_amount, jitter_amount)

    return max(0.0, delay)

"""Retry policy and exponential backoff for LLM calls."""

import logging
import random
from dataclasses import dataclass

from quizgen.config.config import settings

logger = logging.getLogger(__name__)

# Floor for any computed backoff delay, in seconds
MIN_RETRY_DELAY = 0.1

# Jitter applied to each delay as a fraction of the delay (+-25%)
JITTER_FRACTION = 0.25


@dataclass
class RetryPolicy:
    """How many times to retry a generation attempt and how long to wait."""

    max_retries: int = 3
    """Retries after the first attempt; total attempts is max_retries + 1."""

    base_delay: float = 1.0
    """Backoff delay before the first retry, in seconds."""

    max_delay: float = 30.0
    """Upper bound for the un-jittered backoff delay, in seconds."""

    exponential_base: float = 2.0
    """Growth factor between consecutive backoff delays."""

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.base_delay < 0:
            raise ValueError("base_delay must be non-negative")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be at least base_delay")
        if self.exponential_base < 1.0:
            raise ValueError("exponential_base must be at least 1.0")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        """Create a policy from application settings."""
        return cls(
            max_retries=settings.max_retries,
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
            exponential_base=settings.retry_exponential_base,
        )

    def backoff_delay(self, attempt: int) -> float:
        """Delay to wait after the failed ``attempt`` (0-based)."""
        return calculate_backoff_delay(
            attempt=attempt,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            exponential_base=self.exponential_base,
        )


def calculate_backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float,
) -> float:
    """Calculate an exponential backoff delay with jitter.

    Args:
        attempt: 0-based attempt number that just failed
        base_delay: Delay for attempt 0, before jitter
        max_delay: Cap applied before jitter
        exponential_base: Growth factor per attempt

    Returns:
        Delay in seconds, never below MIN_RETRY_DELAY
    """
    delay = min(base_delay * (exponential_base**attempt), max_delay)
    jitter = delay * JITTER_FRACTION * random.uniform(-1.0, 1.0)
    return max(MIN_RETRY_DELAY, delay + jitter)

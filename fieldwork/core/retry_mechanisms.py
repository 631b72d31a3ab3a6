"""
Retry Mechanisms with Exponential Backoff

Retry configuration and delay schedule for workflow transactions that lose a
write conflict in the transactional store.
"""

import random
import time
from dataclasses import dataclass, field
from enum import Enum

from .config import Settings, get_settings


class RetryStrategy(Enum):
    """Backoff schedules for replaying a conflicted transaction."""

    FIXED_DELAY = "fixed_delay"
    EXPONENTIAL_BACKOFF = "exponential_backoff"
    LINEAR_BACKOFF = "linear_backoff"


@dataclass
class RetryConfig:
    """Attempt budget and backoff for store write conflicts."""

    max_attempts: int = 5
    strategy: RetryStrategy = RetryStrategy.EXPONENTIAL_BACKOFF
    base_delay_seconds: float = 0.01
    max_delay_seconds: float = 0.5
    exponential_base: float = 2.0
    jitter: bool = True

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RetryConfig":
        settings = settings or get_settings()
        return cls(
            max_attempts=settings.TRANSACTION_MAX_ATTEMPTS,
            base_delay_seconds=settings.TRANSACTION_BASE_DELAY_SECONDS,
            max_delay_seconds=settings.TRANSACTION_MAX_DELAY_SECONDS,
            jitter=settings.TRANSACTION_JITTER,
        )


@dataclass
class RetryAttempt:
    """Timing of one transaction attempt, for logging."""

    attempt_number: int
    error: Exception | None = None
    start_time: float = field(default_factory=time.monotonic)
    end_time: float | None = None
    success: bool = False

    def complete(self, success: bool = False, error: Exception | None = None) -> None:
        """Stop the attempt clock and record the outcome."""
        self.end_time = time.monotonic()
        self.success = success
        self.error = error

    @property
    def duration_seconds(self) -> float:
        end = self.end_time or time.monotonic()
        return end - self.start_time


class RetryDelayCalculator:
    """Delay before each replay of a workflow transaction."""

    def __init__(self, config: RetryConfig):
        self.config = config

    def calculate_delay(self, attempt_number: int) -> float:
        """Calculate delay before the given retry (1-based)."""
        base_delay = self._calculate_base_delay(attempt_number)

        # Full jitter keeps colliding writers from retrying in lockstep
        if self.config.jitter:
            base_delay = random.uniform(0, base_delay)

        return min(base_delay, self.config.max_delay_seconds)

    def _calculate_base_delay(self, attempt_number: int) -> float:
        if self.config.strategy == RetryStrategy.FIXED_DELAY:
            return self.config.base_delay_seconds

        elif self.config.strategy == RetryStrategy.EXPONENTIAL_BACKOFF:
            return self.config.base_delay_seconds * (
                self.config.exponential_base ** (attempt_number - 1)
            )

        else:  # LINEAR_BACKOFF
            return self.config.base_delay_seconds * attempt_number

    def sleep(self, attempt_number: int) -> float:
        """Sleep for the delay of the given retry and return it."""
        delay = self.calculate_delay(attempt_number)
        if delay > 0:
            time.sleep(delay)
        return delay

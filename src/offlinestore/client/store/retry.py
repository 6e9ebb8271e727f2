"""Failure classification and exponential backoff for queued effects.

This module provides:
- FailurePolicy: Decides whether a failed effect is retried or rolled back
- NETWORK_EXCEPTIONS: Exceptions that indicate connectivity issues

The default policy treats every failure as permanent and never times out,
so a failed effect is rolled back immediately. ``FailurePolicy.network_aware()``
keeps the entry queued on connectivity errors and retries it with backoff,
rolling back only application-level rejections.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Default retry configuration
DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_BACKOFF = 1.0  # seconds
DEFAULT_MAX_BACKOFF = 60.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0

# Network-related exceptions that indicate connectivity issues
NETWORK_EXCEPTIONS: tuple[type[Exception], ...] = (
    ConnectionError,
    TimeoutError,
    OSError,
)


@dataclass
class FailurePolicy:
    """How the executor reacts to a failed effect.

    Attributes:
        transient_exceptions: Exception types worth retrying (empty = none)
        max_retries: Maximum retries per entry before giving up
        initial_backoff: Delay before the first retry in seconds
        max_backoff: Upper bound for the delay in seconds
        backoff_multiplier: Multiplier applied after each retry
        effect_timeout: Seconds before an effect counts as failed (None = wait forever)
    """

    transient_exceptions: tuple[type[BaseException], ...] = ()
    max_retries: int = 0
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF
    max_backoff: float = DEFAULT_MAX_BACKOFF
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    effect_timeout: float | None = None

    @classmethod
    def network_aware(
        cls,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
        max_backoff: float = DEFAULT_MAX_BACKOFF,
        effect_timeout: float | None = None,
    ) -> FailurePolicy:
        """Policy retrying connectivity errors with exponential backoff."""
        return cls(
            transient_exceptions=NETWORK_EXCEPTIONS,
            max_retries=max_retries,
            initial_backoff=initial_backoff,
            max_backoff=max_backoff,
            effect_timeout=effect_timeout,
        )

    def is_transient(self, error: BaseException) -> bool:
        """Check if an error is classified as transient."""
        return bool(self.transient_exceptions) and isinstance(
            error, self.transient_exceptions
        )

    def should_retry(self, error: BaseException, attempts: int) -> bool:
        """Decide whether a failed entry stays queued for another attempt.

        Args:
            error: Exception raised by the effect
            attempts: Number of invocations made so far (including this one)

        Returns:
            True to retry, False to roll back
        """
        if not self.is_transient(error):
            return False
        if attempts > self.max_retries:
            logger.error("All %d retries failed: %s", self.max_retries, error)
            return False
        return True

    def backoff_for(self, attempts: int) -> float:
        """Delay before the next attempt.

        Args:
            attempts: Number of invocations made so far (1 after the first)

        Returns:
            Seconds to wait
        """
        delay = self.initial_backoff * self.backoff_multiplier ** max(attempts - 1, 0)
        return min(delay, self.max_backoff)

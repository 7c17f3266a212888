"""Bounded exponential backoff for transient datastore failures.

Only ``VaultDatastoreError`` instances flagged ``retryable`` are retried.
Every other error propagates on the first attempt.
"""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Callable, TypeVar

from core.constants import (
    DEFAULT_RETRY_BACKOFF_FACTOR,
    DEFAULT_RETRY_INITIAL_DELAY_SECONDS,
    DEFAULT_RETRY_MAX_ATTEMPTS,
    DEFAULT_RETRY_MAX_DELAY_SECONDS,
)
from core.errors import VaultDatastoreError
from core.logging_config import get_logger

T = TypeVar("T")

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff settings for one backend.

    Attributes:
        max_attempts: Attempts including the first call.
        initial_delay: Delay before the first retry in seconds.
        backoff_factor: Multiplier applied per retry.
        max_delay: Upper bound on a single delay in seconds.
    """

    max_attempts: int = DEFAULT_RETRY_MAX_ATTEMPTS
    initial_delay: float = DEFAULT_RETRY_INITIAL_DELAY_SECONDS
    backoff_factor: float = DEFAULT_RETRY_BACKOFF_FACTOR
    max_delay: float = DEFAULT_RETRY_MAX_DELAY_SECONDS

    def delay_for(self, attempt: int) -> float:
        """Return the sleep before retrying after a failed one-based attempt."""
        delay = self.initial_delay * (self.backoff_factor ** (attempt - 1))
        return min(delay, self.max_delay)


def call_with_backoff(
    operation: Callable[[], T],
    description: str,
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run an operation, retrying transient datastore failures.

    Args:
        operation: Zero-argument callable performing one backend call.
        description: Short label used in logs, e.g. ``put metadata/x``.
        policy: Backoff settings.
        sleep: Sleep function, injectable for tests.

    Returns:
        The operation result.

    Raises:
        VaultDatastoreError: The non-retryable error, or the last retryable
            error once attempts are exhausted.
    """
    attempt = 1
    while True:
        try:
            return operation()
        except VaultDatastoreError as error:
            if not error.retryable or attempt >= policy.max_attempts:
                raise
            delay = policy.delay_for(attempt)
            _LOGGER.warning(
                "datastore_retry",
                operation=description,
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay_seconds=delay,
                error=str(error),
            )
            sleep(delay)
            attempt += 1

"""
Retry utilities with exception-aware handling.

Uses the exception hierarchy to make retry decisions:
- Transient errors: retry with linearly increasing delay
- Auth errors: not retried here; the caller refreshes credentials
- Permanent errors: fail immediately (no retry)
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from core.errors.exceptions import ResolutionError, is_transient_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    # Total attempts including the first one
    max_attempts: int = 3
    # Seconds; the delay after attempt n is base_delay * n
    base_delay: float = 1.0

    def __post_init__(self):
        """Ensure proper types from YAML/env vars."""
        self.max_attempts = int(self.max_attempts)
        self.base_delay = float(self.base_delay)

    def get_delay(self, attempt: int) -> float:
        """
        Calculate the linear backoff delay.

        Args:
            attempt: 1-indexed number of the attempt that just failed

        Returns:
            Delay in seconds before the next attempt
        """
        return self.base_delay * attempt

    def should_retry(self, error: Exception, attempt: int) -> bool:
        """
        Determine if error should be retried.

        Args:
            error: The exception that occurred
            attempt: 1-indexed number of the attempt that just failed

        Returns:
            True if another attempt should be made
        """
        if attempt >= self.max_attempts:
            return False
        return is_transient_error(error)


DEFAULT_RETRY = RetryConfig(max_attempts=3, base_delay=1.0)


@dataclass
class RetryStats:
    """Statistics from a retry operation."""

    attempts: int = 0
    total_delay: float = 0.0
    final_error: Exception | None = None
    success: bool = False

    @property
    def retried(self) -> bool:
        """Whether any retries occurred."""
        return self.attempts > 1


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    operation_name: str = "operation",
    on_retry: Callable[[Exception, int, float], None] | None = None,
    stats: RetryStats | None = None,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> T:
    """
    Run an async operation, retrying transient failures with linear backoff.

    Attempts are strictly sequential. Non-transient errors propagate on the
    first occurrence; the last transient error propagates once max_attempts
    is exhausted.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        config: Retry configuration (defaults to DEFAULT_RETRY)
        operation_name: Name used in log records
        on_retry: Callback before each retry (error, attempt, delay)
        stats: Optional RetryStats updated in place
        sleep: Awaitable sleep function (defaults to asyncio.sleep)

    Returns:
        The operation's result
    """
    config = config or DEFAULT_RETRY
    sleep = sleep or asyncio.sleep
    stats = stats if stats is not None else RetryStats()

    attempt = 0
    while True:
        attempt += 1
        stats.attempts = attempt
        try:
            result = await operation()
        except ResolutionError as e:
            stats.final_error = e
            if not config.should_retry(e, attempt):
                if e.is_retryable:
                    logger.error(
                        "Max retries exhausted for %s: %s",
                        operation_name,
                        str(e)[:200],
                        extra={
                            "operation": operation_name,
                            "error_category": e.category.value,
                            "max_attempts": config.max_attempts,
                            "error_message": str(e)[:200],
                        },
                    )
                raise

            delay = config.get_delay(attempt)
            logger.warning(
                "Retryable error for %s, will retry",
                operation_name,
                extra={
                    "operation": operation_name,
                    "attempt": attempt,
                    "max_attempts": config.max_attempts,
                    "error_category": e.category.value,
                    "delay_seconds": round(delay, 3),
                    "error_message": str(e)[:200],
                },
            )
            if on_retry:
                on_retry(e, attempt, delay)

            stats.total_delay += delay
            await sleep(delay)
            continue

        if attempt > 1:
            logger.info(
                "Retry succeeded for %s after %d attempts",
                operation_name,
                attempt,
                extra={"operation": operation_name, "attempt": attempt},
            )
        stats.success = True
        stats.final_error = None
        return result


__all__ = [
    "RetryConfig",
    "RetryStats",
    "retry_async",
    "DEFAULT_RETRY",
]

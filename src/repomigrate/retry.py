"""
Bounded retries with exponential backoff.

Transient infrastructure, destination and review-lookup errors are retried
a fixed number of times. Whether an error is transient is decided by
``repomigrate.exceptions.is_transient`` unless the caller passes its own
predicate.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from repomigrate.exceptions import is_transient

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryConfig:
    """
    How often and how patiently to retry.

    Attributes:
        max_retries: Retries after the first attempt (0 disables retrying)
        initial_delay: Seconds to wait before the first retry
        max_delay: Upper bound for any single wait, in seconds
        exponential_base: Growth factor of the wait between retries
        jitter: Random spread applied to each wait, as a fraction of it

    Example:
        >>> RetryConfig(max_retries=5, initial_delay=0.5).max_attempts
        6
    """

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: float = 0.1

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(
                f"max_retries must be >= 0, got {self.max_retries}. Use 0 to disable retries."
            )
        if self.initial_delay <= 0:
            raise ValueError(f"initial_delay must be positive, got {self.initial_delay}.")
        if self.max_delay <= 0:
            raise ValueError(f"max_delay must be positive, got {self.max_delay}.")
        if self.max_delay < self.initial_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= initial_delay ({self.initial_delay})."
            )
        if self.exponential_base <= 1.0:
            raise ValueError(f"exponential_base must be > 1.0, got {self.exponential_base}.")
        if not 0.0 <= self.jitter <= 1.0:
            raise ValueError(f"jitter must be between 0.0 and 1.0, got {self.jitter}.")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


class RetryError(Exception):
    """
    Raised once every attempt of an operation has failed.

    Attributes:
        attempts: Attempts made, the first one included
        last_error: Error raised by the final attempt
        total_delay: Seconds spent waiting between attempts
    """

    def __init__(
        self,
        message: str,
        attempts: int,
        last_error: Exception,
        total_delay: float = 0.0,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error
        self.total_delay = total_delay


def calculate_backoff(attempt: int, config: RetryConfig) -> float:
    """
    Seconds to wait after the failed attempt number ``attempt`` (0-based).

    The wait grows geometrically from ``initial_delay``, is capped at
    ``max_delay`` and then spread by up to ``jitter`` in either direction.
    """
    base = min(config.initial_delay * config.exponential_base**attempt, config.max_delay)
    spread = base * config.jitter
    return max(0.0, base + random.uniform(-spread, spread))  # nosec B311 - not crypto


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    is_retryable: Callable[[Exception], bool] = is_transient,
    operation_name: str = "operation",
    sleep: SleepFunc = asyncio.sleep,
) -> T:
    """
    Await ``operation`` until it succeeds or the retry budget runs out.

    Args:
        operation: Zero-argument coroutine function, called once per attempt
        config: Retry settings (defaults to RetryConfig())
        is_retryable: Decides whether a failure is worth another attempt
        operation_name: Used in log messages
        sleep: Waits between attempts (swapped out in tests)

    Returns:
        The operation's result

    Raises:
        RetryError: Every attempt failed with a retryable error
        Exception: The first non-retryable error, unchanged
    """
    config = config or RetryConfig()
    waited = 0.0
    attempt = 0

    while True:
        try:
            result = await operation()
        except Exception as e:
            if not is_retryable(e):
                raise
            last_error = e
        else:
            if attempt:
                logger.info(
                    f"{operation_name} succeeded on attempt {attempt + 1}",
                    extra={"operation": operation_name, "attempt": attempt + 1},
                )
            return result

        if attempt >= config.max_retries:
            break

        delay = calculate_backoff(attempt, config)
        waited += delay
        attempt += 1
        logger.warning(
            f"{operation_name} failed, retrying in {delay:.2f}s: {last_error}",
            extra={
                "operation": operation_name,
                "attempt": attempt,
                "max_retries": config.max_retries,
                "delay_seconds": delay,
                "error_type": type(last_error).__name__,
            },
        )
        await sleep(delay)

    attempts = attempt + 1
    logger.error(
        f"{operation_name} failed after {attempts} attempts: {last_error}",
        extra={
            "operation": operation_name,
            "attempts": attempts,
            "total_delay_seconds": waited,
            "error_type": type(last_error).__name__,
        },
    )
    raise RetryError(
        f"Failed after {attempts} attempts: {last_error}",
        attempts=attempts,
        last_error=last_error,
        total_delay=waited,
    )


__all__ = [
    "RetryConfig",
    "RetryError",
    "SleepFunc",
    "calculate_backoff",
    "retry_async",
]

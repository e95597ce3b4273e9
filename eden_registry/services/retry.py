"""
Retry-with-backoff policy.

Only transient failures are retried: timeouts, transport errors and 5xx
responses (anything whose `retryable` flag is set). 4xx and other errors
surface on the first attempt without any delay.

Delay before attempt n (1-indexed, n >= 2) is `base_delay_ms * n`.
"""

import asyncio
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from eden_registry.services.errors import ServiceError

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


def is_retryable(error: BaseException) -> bool:
    """Check whether an error is worth another attempt."""
    return isinstance(error, ServiceError) and error.retryable


def backoff_delay_ms(attempt: int, base_delay_ms: int) -> int:
    """Delay to wait before `attempt` (1-indexed). First attempt never waits."""
    if attempt < 2:
        return 0
    return base_delay_ms * attempt


async def with_retries(
    attempt_fn: Callable[[int], Awaitable[T]],
    max_attempts: int = 3,
    base_delay_ms: int = 1000,
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """
    Run `attempt_fn` until it succeeds or the attempt budget is spent.

    Args:
        attempt_fn: Coroutine factory, called with the 1-indexed attempt number
        max_attempts: Total number of calls allowed (>= 1)
        base_delay_ms: Backoff unit
        sleep: Awaitable sleep in seconds, injectable for tests

    Returns:
        Result of the first successful attempt

    Raises:
        The last failure, unchanged, once attempts are exhausted or
        immediately for non-retryable failures.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    attempt = 1
    while True:
        try:
            return await attempt_fn(attempt)
        except Exception as e:
            if not is_retryable(e) or attempt >= max_attempts:
                raise

            attempt += 1
            delay_ms = backoff_delay_ms(attempt, base_delay_ms)
            logger.debug(
                f"Retrying after {type(e).__name__}: {e} "
                f"(attempt {attempt}/{max_attempts} in {delay_ms}ms)"
            )
            await sleep(delay_ms / 1000)

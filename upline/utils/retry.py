"""
Retry logic for transient store errors.

Provides bounded retries with exponential backoff around a unit of work
that is safe to repeat (a whole database transaction).
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loguru import logger

from upline.utils.exceptions import TRANSIENT_ERRORS

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """
    Delay before the next attempt.

    Args:
        attempt: Zero-based attempt that just failed
        base_delay: Delay after the first failure (seconds)
        max_delay: Ceiling (seconds)

    Returns:
        base_delay * 2 ** attempt, capped at max_delay
    """
    return min(base_delay * (2 ** attempt), max_delay)


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int,
    base_delay: float,
    max_delay: float,
    operation_name: str = "operation",
    retry_on: tuple[type[BaseException], ...] = TRANSIENT_ERRORS,
    on_retry: Callable[[BaseException], Awaitable[Any]] | None = None,
    exhausted_error: type[Exception] | None = None,
) -> T:
    """
    Execute an async operation, retrying transient failures.

    Exceptions not listed in retry_on propagate immediately.

    Args:
        operation: Factory returning a fresh coroutine per attempt
        max_attempts: Total attempts (>= 1)
        base_delay: Initial backoff in seconds
        max_delay: Backoff ceiling in seconds
        operation_name: Operation name for logging
        retry_on: Exception types considered transient
        on_retry: Awaited after each transient failure (e.g. rollback)
        exhausted_error: Raised (chained) when attempts run out; the last
            transient error is re-raised if not given

    Returns:
        Result of the operation
    """
    last_error: BaseException | None = None

    for attempt in range(max_attempts):
        try:
            result = await operation()

            if attempt > 0:
                logger.success(
                    f"{operation_name} succeeded on attempt {attempt + 1}"
                )

            return result

        except retry_on as e:
            last_error = e

            if on_retry is not None:
                await on_retry(e)

            if attempt < max_attempts - 1:
                delay = backoff_delay(attempt, base_delay, max_delay)
                logger.warning(
                    f"{operation_name} failed on attempt "
                    f"{attempt + 1}/{max_attempts}: {e}. "
                    f"Retrying in {delay:.3f}s..."
                )
                await asyncio.sleep(delay)
            else:
                logger.error(
                    f"{operation_name} failed after {max_attempts} attempts: {e}"
                )

    if exhausted_error is None:
        raise last_error
    raise exhausted_error(
        f"{operation_name} failed after {max_attempts} attempts: {last_error}"
    ) from last_error

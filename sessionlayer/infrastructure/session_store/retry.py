"""Bounded retry for exhausted connection pools.

Only ResourceExhaustedError is retried: timeouts and broken connections are
handed straight to the manager, and version conflicts are its business.
Delay doubles after each attempt (initial_delay * 2 ** attempt).
"""

import asyncio
from collections.abc import Awaitable, Callable

from sessionlayer.core.result import Failure, Result
from sessionlayer.domain.errors import ResourceExhaustedError, SessionStoreError


def calculate_delay(attempt: int, initial_delay: float, max_delay: float = 1.0) -> float:
    """Exponential backoff for a 0-indexed attempt, capped at max_delay."""
    return min(initial_delay * (2**attempt), max_delay)


async def retry_when_exhausted[T](
    operation: Callable[[], Awaitable[Result[T, SessionStoreError]]],
    *,
    attempts: int,
    initial_delay: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Result[T, SessionStoreError]:
    """Run operation, retrying while the pool reports exhaustion.

    Args:
        operation: Zero-argument coroutine factory returning a Result.
        attempts: Total attempts (1 = no retry).
        initial_delay: Seconds before the first retry.
        sleep: Awaitable sleep (injected in tests).

    Returns:
        The first non-exhausted result, or the last exhausted failure.
    """
    result = await operation()
    for attempt in range(max(attempts, 1) - 1):
        if not (
            isinstance(result, Failure)
            and isinstance(result.error, ResourceExhaustedError)
        ):
            break
        await sleep(calculate_delay(attempt, initial_delay))
        result = await operation()
    return result

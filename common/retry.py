"""
Bounded retry combinator for async calls.

The attempt budget and the pause between attempts are independent
parameters, so callers can test each on its own:

    result = await with_retry(
        fetch_state,
        max_attempts=10,
        backoff=constant_backoff(5.0),
        retry_on=(NoNodeAvailableError,),
    )
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def constant_backoff(seconds: float) -> Callable[[int], float]:
    """Backoff function that always waits the same amount of time."""
    def backoff(attempt: int) -> float:
        return seconds
    return backoff


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    backoff: Callable[[int], float],
    retry_on: tuple[type[BaseException], ...],
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
) -> T:
    """
    Await ``fn()`` until it succeeds or the attempt budget is spent.

    Args:
        fn: Zero-argument coroutine factory, called once per attempt.
        max_attempts: Total number of attempts, at least 1.
        backoff: Maps the 1-based number of the failed attempt to the
            seconds to sleep before the next one.
        retry_on: Exception types that trigger another attempt. Anything
            else propagates immediately.
        on_retry: Called with the attempt number and error before sleeping.

    Raises:
        The last ``retry_on`` error once ``max_attempts`` is reached.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 1
    while True:
        try:
            return await fn()
        except retry_on as e:
            if attempt >= max_attempts:
                raise
            if on_retry is not None:
                on_retry(attempt, e)
            delay = backoff(attempt)
            logger.debug(f"Attempt {attempt}/{max_attempts} failed, retrying in {delay}s")
            await asyncio.sleep(delay)
            attempt += 1

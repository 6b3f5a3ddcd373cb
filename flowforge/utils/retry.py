from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def compute_backoff(
    attempt: int, base: float = 1.0, factor: float = 2.0, jitter: float = 0.5
) -> float:
    """Compute exponential backoff with jitter for a 1-based ``attempt``."""
    delay = base * factor ** (attempt - 1)
    return delay + random.uniform(0, jitter)


async def schedule_retry(attempt: int, base: float = 1.0) -> None:
    """Sleep for computed backoff delay before retrying."""
    delay = compute_backoff(attempt, base=base)
    await asyncio.sleep(delay)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    is_retryable: Callable[[BaseException], bool],
    base_delay: float = 1.0,
    label: str = "operation",
) -> T:
    """Run ``operation`` up to ``attempts`` times.

    Only failures accepted by ``is_retryable`` are retried; anything else, and
    the failure of the final attempt, propagates unchanged.
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= attempts or not is_retryable(exc):
                raise
            logger.warning(
                f"{label} attempt {attempt}/{attempts} failed ({exc}); retrying"
            )
            await schedule_retry(attempt, base=base_delay)
            attempt += 1

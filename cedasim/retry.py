"""Rate-limit retry with exponential backoff around a single capability call."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from cedasim.providers.base import is_rate_limit

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_rate_limit_retry(
    operation: Callable[[], Awaitable[T]],
    retries: int = 10,
    delay_sec: float = 10.0,
    backoff_factor: float = 1.5,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation``, retrying only on rate-limit errors.

    Waits ``delay_sec`` before the first retry and multiplies the wait by
    ``backoff_factor`` after each one. Any other error, or a rate limit once
    ``retries`` are used up, propagates unchanged.
    """
    remaining = retries
    delay = delay_sec
    while True:
        try:
            return await operation()
        except Exception as exc:
            if remaining <= 0 or not is_rate_limit(exc):
                raise
            logger.warning(
                "Rate limit hit (429). Retrying in %.1fs (%d retries left)",
                delay, remaining,
            )
            await sleep(delay)
            remaining -= 1
            delay *= backoff_factor

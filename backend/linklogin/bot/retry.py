"""Retry strategy for Bot API calls.

Exponential backoff with jitter for transient errors.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from linklogin.bot.errors import TransientError

__all__ = ["RetryConfig", "backoff_delay", "with_retries"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Backoff settings.

    Attributes:
        max_retries: Retries after the first attempt.
        base_delay_ms: Delay before the first retry.
        max_delay_ms: Cap for any single delay.
    """

    max_retries: int = 5
    base_delay_ms: int = 500
    max_delay_ms: int = 30_000


def backoff_delay(attempt: int, config: RetryConfig) -> float:
    """Seconds to wait before retry number ``attempt`` (0-based)."""
    base_delay = config.base_delay_ms * (2**attempt)
    jitter = random.uniform(0, base_delay * 0.1)
    return min(base_delay + jitter, config.max_delay_ms) / 1000


async def with_retries(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig,
    retryable_errors: tuple[type[Exception], ...] = (TransientError,),
) -> T:
    """Execute function with exponential backoff retry.

    Args:
        func: Async function to execute (no arguments).
        config: Retry settings.
        retryable_errors: Error types that should trigger a retry.

    Returns:
        Result from successful function execution.

    Raises:
        TransientError: If all retries are exhausted.
        RuntimeError: If the retry loop exits without error or result.

    Note:
        A TransientError carrying retry_after_seconds uses that delay
        instead of the computed backoff.
    """
    last_error: Exception | None = None

    for attempt in range(config.max_retries + 1):
        try:
            return await func()
        except retryable_errors as e:
            last_error = e

            if attempt == config.max_retries:
                break

            if isinstance(e, TransientError) and e.retry_after_seconds:
                delay = e.retry_after_seconds
            else:
                delay = backoff_delay(attempt, config)

            logger.warning(
                "Bot API error (attempt %d/%d): %s. Retrying in %.2fs",
                attempt + 1,
                config.max_retries + 1,
                e,
                delay,
            )

            await asyncio.sleep(delay)

    if last_error is not None:
        raise last_error
    raise RuntimeError("Retry loop exited without error or result")

"""
Bounded retry with exponential backoff for async calls
"""
import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from diary_analyzer.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

T = TypeVar("T")


def exponential_backoff(initial_delay_ms: int = 1000, factor: float = 2.0) -> Callable[[int], float]:
    """
    Delay policy: seconds to wait after the failed attempt with the given index.

    Attempt indexes start at 0, so the first retry waits initial_delay_ms,
    the second waits initial_delay_ms * factor, and so on.
    """
    def delay_for(attempt: int) -> float:
        return (initial_delay_ms / 1000.0) * (factor ** attempt)

    return delay_for


async def retry_async(
    attempt: Callable[[int], Awaitable[T]],
    *,
    should_retry: Callable[[Exception], bool],
    delay_for: Callable[[int], float],
    max_attempts: int = 3,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """
    Run attempt(n) until it succeeds, fails with a non-retryable error,
    or max_attempts have been made. The last failure is re-raised.

    Args:
        attempt: Coroutine function receiving the zero-based attempt index
        should_retry: Predicate deciding whether a failure is worth another attempt
        delay_for: Maps attempt index to the delay (seconds) before the next attempt
        max_attempts: Total attempts including the first
        sleep: Awaitable sleep, injectable for tests
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    sleep = sleep or asyncio.sleep

    for index in range(max_attempts):
        try:
            return await attempt(index)
        except Exception as e:
            is_last = index == max_attempts - 1
            if is_last or not should_retry(e):
                raise

            delay = delay_for(index)
            logger.warning(
                f"Attempt {index + 1}/{max_attempts} failed, retrying in {delay:.2f}s",
                extra={"attempt": index + 1, "max_attempts": max_attempts, "delay_seconds": delay, "error": str(e)}
            )
            await sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("retry_async exhausted without result")

"""
Async Retry with Exponential Backoff
Shared retry policy for outbound collaborator calls (webhooks, LLM refinement).
"""
import asyncio
import random
from typing import Awaitable, Callable, Tuple, Type, TypeVar
from loguru import logger

T = TypeVar("T")


class RetryExhaustedError(Exception):
    """Raised when every attempt of a retried call has failed."""

    def __init__(self, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed after {attempts} attempts: {last_error}")


def backoff_delay(attempt: int, min_wait: float, max_wait: float) -> float:
    """
    Exponential backoff for a 1-based attempt number, with +/-20% jitter.

    Example:
        >>> 0.8 <= backoff_delay(1, 1.0, 8.0) <= 1.2
        True
    """
    wait_time = min(min_wait * (2 ** (attempt - 1)), max_wait)
    # Jitter prevents synchronized retries across workers
    return wait_time * (0.8 + 0.4 * random.random())


async def retry_async(
    func: Callable[[], Awaitable[T]],
    max_attempts: int,
    min_wait: float,
    max_wait: float,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    label: str = "call",
) -> T:
    """
    Execute an async callable with exponential backoff between attempts.

    Args:
        func: Zero-argument coroutine factory
        max_attempts: Total attempts (>= 1)
        min_wait: Delay before the second attempt, in seconds
        max_wait: Upper bound on any single delay
        retry_on: Exception types considered recoverable
        label: Name used in log lines

    Returns:
        The first successful result

    Raises:
        RetryExhaustedError: After max_attempts recoverable failures
    """
    attempts = max(1, max_attempts)
    last_error: BaseException | None = None

    for attempt in range(1, attempts + 1):
        try:
            logger.debug(f"{label} attempt {attempt}/{attempts}")
            return await func()
        except retry_on as e:
            last_error = e
            if attempt == attempts:
                logger.error(f"❌ {label}: max attempts ({attempts}) exhausted. Last error: {e}")
                break

            wait_time = backoff_delay(attempt, min_wait, max_wait)
            logger.warning(f"⏳ {label} failed ({e}); retrying in {wait_time:.1f}s")
            await asyncio.sleep(wait_time)

    raise RetryExhaustedError(attempts, last_error)

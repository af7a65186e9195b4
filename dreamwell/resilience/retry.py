"""Retry logic with exponential backoff and jitter

Implements retry logic for notification delivery that:
1. Retries any delivery failure except HTTP client errors (bad request, auth)
2. Uses exponential backoff with jitter to prevent thundering herd
3. Gives up after max retries and re-raises the last error
"""

import asyncio
import random
import logging
from typing import Awaitable, Callable, Any, TypeVar
from functools import wraps
import httpx

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Retry configuration
MAX_RETRIES = 3
INITIAL_DELAY = 1.0  # seconds
MAX_DELAY = 10.0  # seconds
BACKOFF_FACTOR = 2.0
JITTER = 0.1  # 10% random jitter


def is_retryable_error(exc: Exception) -> bool:
    """
    Determine if a delivery error is worth retrying.

    Non-retryable errors:
    - HTTP 4xx responses other than 429 (the request itself is wrong)

    Everything else (timeouts, connection errors, 5xx, errors raised by a
    local notifier) is treated as transient.

    Args:
        exc: The exception to check

    Returns:
        True if error should be retried, False otherwise
    """
    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
        return status_code == 429 or status_code >= 500

    return True


def calculate_backoff(
    attempt: int,
    initial_delay: float = INITIAL_DELAY,
    max_delay: float = MAX_DELAY,
    backoff_factor: float = BACKOFF_FACTOR,
    jitter: float = JITTER,
) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Formula: delay = min(initial_delay * (backoff_factor ** attempt), max_delay) + jitter
    Jitter is random value between -jitter and +jitter fraction of delay

    Args:
        attempt: The retry attempt number (0-indexed)

    Returns:
        Delay in seconds

    Example:
        Attempt 0: ~1s
        Attempt 1: ~2s
        Attempt 2: ~4s
    """
    delay = min(initial_delay * (backoff_factor ** attempt), max_delay)

    jitter_amount = random.uniform(-jitter * delay, jitter * delay) if jitter else 0.0

    return max(delay + jitter_amount, 0.0)


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_retries: int = MAX_RETRIES,
    initial_delay: float = INITIAL_DELAY,
    max_delay: float = MAX_DELAY,
    backoff_factor: float = BACKOFF_FACTOR,
    jitter: float = JITTER,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **kwargs: Any
) -> T:
    """
    Retry async function with exponential backoff.

    Gives up after max_retries additional attempts, or at once on a
    non-retryable error.

    Args:
        func: Async function to retry
        max_retries: Maximum number of retry attempts (default: 3)
        initial_delay: Delay before the first retry, in seconds
        sleep: Awaitable used to wait between attempts
        *args, **kwargs: Arguments to pass to func

    Returns:
        Result from func

    Raises:
        Last exception if all retries exhausted or non-retryable error

    Example:
        await retry_with_backoff(notifier.trigger_alarm_notification, alarm, max_retries=3)
    """
    name = getattr(func, "__name__", repr(func))

    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)

        except Exception as e:
            if attempt == max_retries:
                logger.error(
                    f"[RETRY] All {max_retries} retries exhausted for {name}"
                )
                raise

            if not is_retryable_error(e):
                logger.warning(
                    f"[RETRY] Non-retryable error for {name}: "
                    f"{type(e).__name__}: {e}"
                )
                raise

            backoff = calculate_backoff(attempt, initial_delay, max_delay, backoff_factor, jitter)

            from dreamwell.resilience.metrics import record_retry
            record_retry(name)

            logger.info(
                f"[RETRY] Attempt {attempt + 1}/{max_retries} for {name} "
                f"after {backoff:.2f}s (error: {type(e).__name__})"
            )

            await sleep(backoff)

    raise RuntimeError("Retry logic failed unexpectedly")


def with_retry(max_retries: int = MAX_RETRIES, initial_delay: float = INITIAL_DELAY, **options: Any) -> Callable:
    """
    Decorator to add retry logic to async functions.

    Example:
        @with_retry(max_retries=3, initial_delay=0.5)
        async def deliver():
            ...
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await retry_with_backoff(
                func, *args, max_retries=max_retries, initial_delay=initial_delay, **options, **kwargs
            )
        return wrapper
    return decorator

"""Retry decorator with exponential backoff."""
import asyncio
import time
import functools
import inspect
from typing import Callable, Type, Tuple

from .exceptions import RetryableError
from .logger import get_logger

logger = get_logger()


def retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (RetryableError,)
):
    """
    Decorator for retrying functions with exponential backoff.

    Works for plain functions and coroutine functions. Coroutines sleep with
    asyncio.sleep so the event loop is not blocked between attempts.

    Args:
        max_retries: Maximum number of attempts
        initial_delay: Wait time before the second attempt, in seconds
        backoff_factor: Multiplier for wait time between retries
        retryable_exceptions: Tuple of exception types that trigger retry
    """
    def _wait_time(attempt: int) -> float:
        return initial_delay * (backoff_factor ** attempt)

    def _log_retry(func: Callable, attempt: int, wait_time: float, error: Exception):
        logger.warning(
            f"Retry {attempt + 1}/{max_retries} for {func.__name__} "
            f"after {wait_time:.1f}s: {error}"
        )

    def decorator(func: Callable):
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                for attempt in range(max_retries):
                    try:
                        return await func(*args, **kwargs)
                    except retryable_exceptions as e:
                        if attempt == max_retries - 1:
                            logger.error(f"Max retries ({max_retries}) exceeded for {func.__name__}: {e}")
                            raise
                        wait_time = _wait_time(attempt)
                        _log_retry(func, attempt, wait_time, e)
                        await asyncio.sleep(wait_time)

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    if attempt == max_retries - 1:
                        logger.error(f"Max retries ({max_retries}) exceeded for {func.__name__}: {e}")
                        raise
                    wait_time = _wait_time(attempt)
                    _log_retry(func, attempt, wait_time, e)
                    time.sleep(wait_time)

        return wrapper
    return decorator

# chaoslinks/utils/retry.py
# Retry and timeout decorators for store round trips

import asyncio
import logging
import random
from functools import wraps
from typing import Callable

logger = logging.getLogger(__name__)


# Retry with exponential backoff decorator
def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 0.05,
    max_delay: float = 2.0,
    exceptions: tuple = (Exception,),
    jitter: bool = True,
):
    """
    Decorator for async functions with exponential backoff retry.

    Only exceptions listed in ``exceptions`` are retried; anything else
    propagates on the first attempt. Jitter spreads concurrent retries so
    that transactions which just conflicted do not collide again.

    Usage:
        @retry_with_backoff(max_retries=3, exceptions=(SerializationFailure,))
        async def run_transaction():
            ...
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_retries:
                        logger.error(
                            f"All {max_retries + 1} attempts failed for {func.__name__}: {e}"
                        )
                        raise

                    delay = min(base_delay * (2 ** attempt), max_delay)
                    if jitter:
                        delay *= random.uniform(0.5, 1.5)
                    logger.warning(
                        f"Attempt {attempt + 1} failed for {func.__name__}: {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )
                    await asyncio.sleep(delay)

            raise RuntimeError("Retry failed without exception")

        return wrapper
    return decorator


# Timeout decorator
def with_timeout(seconds: float):
    """
    Decorator to add timeout to async functions.

    The wrapped coroutine is cancelled on timeout, so an open transaction
    inside it rolls back before the TimeoutError reaches the caller.

    Usage:
        @with_timeout(10.0)
        async def slow_operation():
            ...
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await asyncio.wait_for(
                    func(*args, **kwargs),
                    timeout=seconds
                )
            except asyncio.TimeoutError:
                logger.error(f"Timeout ({seconds}s) exceeded for {func.__name__}")
                raise

        return wrapper
    return decorator

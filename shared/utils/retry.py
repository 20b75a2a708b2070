"""Retry with exponential backoff"""
import asyncio
import inspect
from typing import Callable, Any, Type, Tuple


async def retry_with_backoff(
    func: Callable,
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,)
) -> Any:
    """
    Call ``func`` until it succeeds or ``max_retries`` retries are spent.

    Args:
        func: Zero-argument callable, sync or async
        max_retries: Number of retries after the first attempt
        initial_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for the delay, in seconds
        exponential_base: Delay multiplier between retries
        exceptions: Exceptions that trigger a retry; others propagate at once

    Returns:
        Whatever ``func`` returns
    """
    delay = initial_delay

    for attempt in range(max_retries + 1):
        try:
            result = func()
            if inspect.isawaitable(result):
                result = await result
            return result
        except exceptions:
            if attempt == max_retries:
                raise

            await asyncio.sleep(delay)
            delay = min(delay * exponential_base, max_delay)

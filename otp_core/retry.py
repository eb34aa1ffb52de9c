"""
Caller-Side Retry
=================
Backoff for operations that came back ``STORE_UNAVAILABLE``.

Every other failure kind is definitive until its TTL lapses and is returned
immediately.
"""

import logging
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from .results import Result

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _last_result(retry_state) -> Any:
    return retry_state.outcome.result()


async def with_store_retry(
    func: Callable[..., Awaitable[Result[T]]],
    *args,
    max_attempts: int = 3,
    min_delay: float = 0.2,
    max_delay: float = 2.0,
    **kwargs,
) -> Result[T]:
    """
    Call a core operation, retrying with exponential backoff while the store
    is unavailable.

    Args:
        func: Async core operation returning a Result
        *args: Positional arguments for func
        max_attempts: Maximum number of calls
        min_delay: Lower bound on the wait between calls, in seconds
        max_delay: Upper bound on the wait between calls, in seconds
        **kwargs: Keyword arguments for func

    Returns:
        The first non-retryable result, or the last result once attempts
        run out
    """
    retrying = AsyncRetrying(
        retry=retry_if_result(lambda result: result.retryable),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=min_delay, min=min_delay, max=max_delay),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        retry_error_callback=_last_result,
    )
    return await retrying(func, *args, **kwargs)

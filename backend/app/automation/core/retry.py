"""
Retry combinator.

`with_retry` re-runs an async operation while its failure is judged
retryable, sleeping `backoff(attempt)` seconds between attempts.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt

# Configure logging
logger = logging.getLogger(__name__)

T = TypeVar("T")

# Message fragments that mark a network failure as transient
TRANSIENT_MARKERS = (
    "fetch",
    "connection",
    "network",
    "timed out",
    "timeout",
    "econnreset",
    "econnrefused",
    "temporarily unavailable",
)


def exponential_backoff(base: float = 1.0, factor: float = 2.0) -> Callable[[int], float]:
    """Delay before retry n (1-based): base, base*factor, base*factor^2, ..."""
    def backoff(attempt: int) -> float:
        return base * (factor ** (attempt - 1))
    return backoff


def is_transient_network_error(error: BaseException) -> bool:
    """True for transport-level failures worth retrying"""
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return False
    message = str(error).lower()
    return any(marker in message for marker in TRANSIENT_MARKERS)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    backoff: Optional[Callable[[int], float]] = None,
    is_retryable: Callable[[BaseException], bool] = is_transient_network_error,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
) -> T:
    """
    Run `operation`, retrying retryable failures up to `max_attempts` times.

    The last error is re-raised unchanged once attempts are exhausted or a
    non-retryable error occurs.
    """
    backoff = backoff or exponential_backoff()

    def _log_retry(retry_state):
        error = retry_state.outcome.exception()
        logger.warning(
            f"Attempt {retry_state.attempt_number}/{max_attempts} failed: {error}; "
            f"retrying in {backoff(retry_state.attempt_number):.1f}s"
        )

    async def _attempt():
        return await operation()

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=lambda retry_state: backoff(retry_state.attempt_number),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=True,
    )
    return await retrying(_attempt)

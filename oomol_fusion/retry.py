"""
Async retry decorator with linear backoff and tracking.

Used by the single-shot uploader: attempt ``n`` that fails waits
``n * base_delay`` seconds before attempt ``n + 1``. The multipart path
deliberately has no retry.

Integrates with retry tracking for per-upload observability.
"""

import asyncio
import logging
from functools import wraps
from typing import Tuple, Type

from oomol_fusion.exceptions import TransportError
from oomol_fusion.retries.tracking import RetryReason, get_retry_tracker

logger = logging.getLogger(__name__)

RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (TransportError,)

_sleep = asyncio.sleep


def _classify_exception(exc: Exception) -> RetryReason:
    """Classify an exception into a RetryReason."""
    if isinstance(exc, TransportError):
        if exc.status_code is not None:
            return RetryReason.STATUS_ERROR
        return RetryReason.TRANSPORT_ERROR
    return RetryReason.UNKNOWN


def linear_delay(attempt: int, base_delay: float) -> float:
    """Delay after the given 1-based failed attempt."""
    return attempt * base_delay


def with_linear_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    retry_on: Tuple[Type[Exception], ...] = RETRYABLE_EXCEPTIONS,
):
    """
    Decorator for linear backoff retry of a coroutine function.

    Args:
        max_attempts: Maximum number of attempts (including initial).
        base_delay: Seconds multiplied by the attempt number between attempts.
        retry_on: Exception types that trigger another attempt.

    Returns:
        Decorated coroutine function; the last exception is re-raised once
        attempts are exhausted.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    last_exception = e

                if attempt < max_attempts:
                    delay = linear_delay(attempt, base_delay)
                    reason = _classify_exception(last_exception)
                    logger.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        func.__name__,
                        attempt,
                        max_attempts,
                        reason.value,
                        delay,
                    )

                    tracker = get_retry_tracker()
                    if tracker is not None:
                        tracker.record_retry(reason, backoff_seconds=delay)

                    await _sleep(delay)

            assert last_exception is not None
            raise last_exception

        return wrapper

    return decorator

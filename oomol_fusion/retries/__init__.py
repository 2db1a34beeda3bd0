"""
Retry tracking for upload observability.

Tracks retry counts, reasons and backoff time per upload.
Uses contextvars so tracking follows the asyncio task that set it.

Usage:
    from oomol_fusion.retries import retry_tracking_context

    async with retry_tracking_context() as tracker:
        await client.upload_file(payload, "photo.png")
        print(f"Total retries: {tracker.total_retries}")
        print(f"By reason: {tracker.to_dict()}")
"""

from oomol_fusion.retries.tracking import (
    RetryAttempt,
    RetryReason,
    RetryTracker,
    get_retry_tracker,
    retry_tracking_context,
)

__all__ = [
    "RetryAttempt",
    "RetryReason",
    "RetryTracker",
    "get_retry_tracker",
    "retry_tracking_context",
]

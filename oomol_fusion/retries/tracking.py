from __future__ import annotations

import contextvars
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class RetryReason(str, Enum):
    STATUS_ERROR = "status_error"  # storage answered with a non-2xx status
    TRANSPORT_ERROR = "transport_error"  # no response at all
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RetryAttempt:
    reason: RetryReason
    backoff_seconds: float


@dataclass
class RetryTracker:
    """
    Log of the retries made while a tracking scope is active.

    One tracker may be shared by several uploads (pass it to
    ``retry_tracking_context``) to get totals for a whole batch of files.
    """

    attempts: List[RetryAttempt] = field(default_factory=list)

    def record_retry(self, reason: RetryReason, *, backoff_seconds: float = 0.0) -> None:
        self.attempts.append(RetryAttempt(reason, backoff_seconds))

    @property
    def total_retries(self) -> int:
        return len(self.attempts)

    @property
    def retries_by_reason(self) -> Dict[RetryReason, int]:
        return dict(Counter(a.reason for a in self.attempts))

    @property
    def backoff_seconds_total(self) -> float:
        return sum(a.backoff_seconds for a in self.attempts)

    @property
    def last_retry_reason(self) -> Optional[RetryReason]:
        return self.attempts[-1].reason if self.attempts else None

    def to_dict(self) -> Dict[str, int]:
        return {reason.value: n for reason, n in self.retries_by_reason.items()}


_active_tracker: contextvars.ContextVar[Optional[RetryTracker]] = contextvars.ContextVar(
    "oomol_fusion_retry_tracker", default=None
)


def get_retry_tracker() -> Optional[RetryTracker]:
    return _active_tracker.get()


class retry_tracking_context:
    """
    Make ``tracker`` (or a fresh one) the active tracker for this context.

    Works with ``with`` and ``async with``; nested scopes restore the outer
    tracker on exit.
    """

    __slots__ = ("tracker", "_reset")

    def __init__(self, tracker: Optional[RetryTracker] = None) -> None:
        self.tracker = tracker if tracker is not None else RetryTracker()
        self._reset: Optional[contextvars.Token] = None

    def __enter__(self) -> RetryTracker:
        self._reset = _active_tracker.set(self.tracker)
        return self.tracker

    def __exit__(self, *exc_info) -> None:
        if self._reset is not None:
            _active_tracker.reset(self._reset)
            self._reset = None

    async def __aenter__(self) -> RetryTracker:
        return self.__enter__()

    async def __aexit__(self, *exc_info) -> None:
        self.__exit__(*exc_info)

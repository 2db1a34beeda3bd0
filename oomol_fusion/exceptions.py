"""
Typed exceptions for oomol_fusion.

Every error derives from FusionError and carries a ``kind`` taken from the
closed ErrorKind enumeration, so callers can dispatch on ``err.kind``:

- SubmissionError: task submission rejected
- TaskTimeoutError: client-side wait exceeded
- TaskFailureError: remote reported a failed/error state
- TransportError: an HTTP call could not complete or returned non-success
- FileTooLargeError: pre-flight size-ceiling violation
- UploadPhaseError: negotiate/authorize/upload/finalize failure

All exceptions include structured attributes for programmatic handling.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Closed set of error kinds raised by the client."""

    GENERIC = "fusion_error"
    CONFIG = "config"
    SUBMISSION = "submission"
    TASK_TIMEOUT = "task_timeout"
    TASK_FAILURE = "task_failure"
    TRANSPORT = "transport"
    FILE_TOO_LARGE = "file_too_large"
    UPLOAD_PHASE = "upload_phase"


class UploadPhase(str, Enum):
    """Upload protocol phase in which an UploadPhaseError occurred."""

    NEGOTIATE = "negotiate"
    AUTHORIZE = "authorize"
    UPLOAD = "upload"
    FINALIZE = "finalize"


class FusionError(Exception):
    """Base exception for all oomol_fusion errors.

    Attributes:
        message: Human-readable error description
        kind: Machine-readable error kind for programmatic handling
        details: Additional context as key-value pairs
    """

    kind: ErrorKind = ErrorKind.GENERIC

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging."""
        return {
            "error": self.kind.value,
            "message": self.message,
            "details": self.details,
        }


class FusionConfigError(FusionError):
    """Configuration error, e.g. no token available."""

    kind = ErrorKind.CONFIG


class SubmissionError(FusionError):
    """Task submission was rejected by the service.

    Attributes:
        service: Service the task was submitted to
        status_code: HTTP status code, if the rejection was an HTTP error
        body: Raw response body, if any
    """

    kind = ErrorKind.SUBMISSION

    def __init__(
        self,
        message: str,
        *,
        service: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        self.service = service
        self.status_code = status_code
        self.body = body
        details: Dict[str, Any] = {}
        if service:
            details["service"] = service
        if status_code is not None:
            details["status_code"] = status_code
        if body:
            details["body"] = body[:1000]
        super().__init__(message, details=details)


class TaskTimeoutError(FusionError):
    """Waiting for a task exceeded the configured timeout (seconds)."""

    kind = ErrorKind.TASK_TIMEOUT

    def __init__(self, session_id: str, service: str, timeout: float) -> None:
        self.session_id = session_id
        self.service = service
        self.timeout = timeout
        super().__init__(
            f"Task timed out: {session_id} (timeout: {timeout}s)",
            details={
                "session_id": session_id,
                "service": service,
                "timeout": timeout,
            },
        )


class TaskFailureError(FusionError):
    """Task reached a failure state, or completed without a payload.

    Attributes:
        session_id: Session the failure belongs to
        service: Service name
        state: Literal state string reported by the service
    """

    kind = ErrorKind.TASK_FAILURE

    def __init__(
        self,
        message: str,
        *,
        session_id: str,
        service: str,
        state: str,
    ) -> None:
        self.session_id = session_id
        self.service = service
        self.state = state
        super().__init__(
            message,
            details={"session_id": session_id, "service": service, "state": state},
        )


class TransportError(FusionError):
    """HTTP call failed to complete or returned a non-success status.

    Attributes:
        url: Request URL
        status_code: HTTP status code, None when no response was received
        body: Response body, if any
    """

    kind = ErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        self.body = body
        details: Dict[str, Any] = {}
        if url:
            details["url"] = url
        if status_code is not None:
            details["status_code"] = status_code
        if body:
            details["body"] = body[:1000]
        super().__init__(message, details=details)


class FileTooLargeError(FusionError):
    """Payload exceeds the absolute upload ceiling."""

    kind = ErrorKind.FILE_TOO_LARGE

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(
            f"File size {size} bytes exceeds the maximum of {limit} bytes",
            details={"size": size, "limit": limit},
        )


class UploadPhaseError(FusionError):
    """A phase of the upload protocol failed.

    Attributes:
        phase: Which phase failed
        status_code: HTTP status code, if the failure was an HTTP error
        body: Response body, if any
    """

    kind = ErrorKind.UPLOAD_PHASE

    def __init__(
        self,
        message: str,
        *,
        phase: UploadPhase,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        self.phase = phase
        self.status_code = status_code
        self.body = body
        details: Dict[str, Any] = {"phase": phase.value}
        if status_code is not None:
            details["status_code"] = status_code
        if body:
            details["body"] = body[:1000]
        super().__init__(message, details=details)


__all__ = [
    "ErrorKind",
    "UploadPhase",
    "FusionError",
    "FusionConfigError",
    "SubmissionError",
    "TaskTimeoutError",
    "TaskFailureError",
    "TransportError",
    "FileTooLargeError",
    "UploadPhaseError",
]

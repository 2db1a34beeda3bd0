from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TaskState(str, Enum):
    """
    Task states the client recognizes.

    The service may report other states; those are treated as still running.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    ERROR = "error"


class UploadStrategy(str, Enum):
    SINGLE = "single"
    MULTIPART = "multipart"


class _WireModel(BaseModel):
    # Service payloads are camelCase; attributes are snake_case.
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# =============================================================================
# Task wire models
# =============================================================================


class SubmitResponse(_WireModel):
    """Response of ``POST {service}/submit``."""

    session_id: str = Field(alias="sessionID")
    # A response without the flag is not an acceptance.
    success: bool = False


class TaskStatus(_WireModel):
    """
    One read-only snapshot of ``GET {service}/result/{sessionID}``.

    Attributes:
        state: Current task state. Values outside TaskState are non-terminal.
        data: Result payload, present only when completed.
        error: Remote error, present only on failed/error. Any JSON value.
        progress: Progress percentage (0-100), if the service reports one.
    """

    state: str
    data: Any = None
    error: Any = None
    progress: Optional[float] = None


class TaskResult(BaseModel):
    """Final result of a completed task."""

    data: Any
    session_id: str
    service: str


# =============================================================================
# Upload wire models
# =============================================================================


class CreateMultipartUploadResponse(_WireModel):
    upload_id: str = Field(alias="uploadID")
    key: str
    part_size: int = Field(alias="partSize")


class PresignedPartURL(_WireModel):
    part_number: int = Field(alias="partNumber")
    upload_url: str = Field(alias="uploadURL")


class CompleteMultipartUploadResponse(_WireModel):
    download_url: str = Field(alias="downloadURL")


class PresignedPost(_WireModel):
    """Signed single-shot upload target: URL plus opaque form fields."""

    upload_url: str = Field(alias="uploadURL")
    download_url: str = Field(alias="downloadURL")
    fields: Dict[str, str]


# =============================================================================
# Upload in-memory models
# =============================================================================


@dataclass(frozen=True)
class Chunk:
    """One contiguous byte range ``[start, end)`` of a payload."""

    index: int
    start: int
    end: int
    size: int
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class UploadedPart:
    """Integrity token recorded for one uploaded part."""

    part_number: int
    etag: str

    def to_wire(self) -> Dict[str, Any]:
        return {"partNumber": self.part_number, "etag": self.etag}


@dataclass(frozen=True)
class UploadProgress:
    """Cumulative multipart progress, emitted after each completed batch."""

    uploaded_bytes: int
    total_bytes: int
    percentage: int
    uploaded_chunks: int
    total_chunks: int


@dataclass
class MultipartUpload:
    """State of one multipart upload between negotiate and finalize."""

    upload_id: str
    key: str
    part_size: int
    part_urls: List[PresignedPartURL] = field(default_factory=list)
    parts: List[UploadedPart] = field(default_factory=list)


@dataclass(frozen=True)
class MultipartUploadResult:
    download_url: str
    upload_id: str
    key: str


@dataclass(frozen=True)
class UploadSession:
    """
    One call to the upload entry point.

    The size ceiling is checked when the session is created (see
    oomol_fusion.upload.strategy.new_session), before any network access.
    """

    payload: bytes = field(repr=False)
    file_name: str
    file_suffix: str
    size: int
    strategy: UploadStrategy


ProgressCallback = Callable[[float], None]
# Multipart emits UploadProgress; single-shot emits the bare int 100.
UploadProgressCallback = Callable[[Union[UploadProgress, int]], None]

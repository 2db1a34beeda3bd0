"""
oomol_fusion - async client for the OOMOL Fusion API.

Run a task and wait for it:
    from oomol_fusion import Fusion

    async with Fusion(token="...") as client:
        result = await client.run("fal-nano-banana-pro", {"prompt": "a kitten"})

Upload a file:
    async with Fusion() as client:
        url = await client.upload_file("report.pdf")

Advanced usage via submodules:
    from oomol_fusion.polling import TaskPoller
    from oomol_fusion.upload import MultipartUploader, slice_payload
    from oomol_fusion.retries import retry_tracking_context
"""

# =============================================================================
# Core API
# =============================================================================
from oomol_fusion.client import Fusion  # noqa: F401
from oomol_fusion.config import Settings, get_settings  # noqa: F401
from oomol_fusion.doctor import run_doctor  # noqa: F401

# =============================================================================
# Data types
# =============================================================================
from oomol_fusion.models import (  # noqa: F401
    Chunk,
    MultipartUploadResult,
    SubmitResponse,
    TaskResult,
    TaskState,
    TaskStatus,
    UploadedPart,
    UploadProgress,
    UploadStrategy,
)
from oomol_fusion.upload import (  # noqa: F401
    MAX_FILE_SIZE,
    select_strategy,
    should_use_multipart_upload,
)

# =============================================================================
# Typed exceptions
# =============================================================================
from oomol_fusion.exceptions import (
    ErrorKind,
    FileTooLargeError,
    FusionConfigError,
    FusionError,
    SubmissionError,
    TaskFailureError,
    TaskTimeoutError,
    TransportError,
    UploadPhase,
    UploadPhaseError,
)

__all__ = [
    "Fusion",
    "Settings",
    "get_settings",
    "run_doctor",
    "Chunk",
    "MultipartUploadResult",
    "SubmitResponse",
    "TaskResult",
    "TaskState",
    "TaskStatus",
    "UploadedPart",
    "UploadProgress",
    "UploadStrategy",
    "MAX_FILE_SIZE",
    "select_strategy",
    "should_use_multipart_upload",
    "ErrorKind",
    "FileTooLargeError",
    "FusionConfigError",
    "FusionError",
    "SubmissionError",
    "TaskFailureError",
    "TaskTimeoutError",
    "TransportError",
    "UploadPhase",
    "UploadPhaseError",
]


"""
File upload to Fusion cloud storage.

    strategy   - single vs multipart decision, size ceiling, file types
    chunking   - payload slicing for multipart
    scheduler  - batched concurrent part upload
    multipart  - negotiate / authorize / upload / finalize
    single     - one signed POST with linear-backoff retry
"""

from oomol_fusion.upload.chunking import count_parts, slice_payload
from oomol_fusion.upload.multipart import MultipartUploader
from oomol_fusion.upload.scheduler import ChunkScheduler
from oomol_fusion.upload.single import SingleFileUploader
from oomol_fusion.upload.strategy import (
    CONTENT_TYPES,
    DEFAULT_MULTIPART_THRESHOLD,
    MAX_FILE_SIZE,
    content_type_for,
    new_session,
    resolve_suffix,
    select_strategy,
    should_use_multipart_upload,
)

__all__ = [
    "CONTENT_TYPES",
    "DEFAULT_MULTIPART_THRESHOLD",
    "MAX_FILE_SIZE",
    "ChunkScheduler",
    "MultipartUploader",
    "SingleFileUploader",
    "content_type_for",
    "count_parts",
    "new_session",
    "resolve_suffix",
    "select_strategy",
    "should_use_multipart_upload",
    "slice_payload",
]

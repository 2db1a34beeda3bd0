"""
Upload strategy selection and file-type resolution.

Payloads at or below the multipart threshold go through a single signed POST;
larger ones through the multipart protocol. Anything above MAX_FILE_SIZE is
rejected before any network access, whatever the strategy.
"""

from __future__ import annotations

from typing import Dict

from oomol_fusion.exceptions import FileTooLargeError
from oomol_fusion.models import UploadSession, UploadStrategy

MAX_FILE_SIZE = 500 * 1024 * 1024  # 500 MiB, not overridable
DEFAULT_MULTIPART_THRESHOLD = 5 * 1024 * 1024  # 5 MiB

DEFAULT_SUFFIX = "txt"

# File types accepted by the upload API, with the Content-Type sent for each.
CONTENT_TYPES: Dict[str, str] = {
    # Images
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    # Audio/Video
    "mp3": "audio/mpeg",
    "mp4": "video/mp4",
    # Documents
    "txt": "text/plain",
    "md": "text/markdown",
    "pdf": "application/pdf",
    "epub": "application/epub+zip",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    # Data
    "csv": "text/csv",
    "json": "application/json",
    "zip": "application/zip",
}


def resolve_suffix(file_name: str) -> str:
    """
    Lower-cased extension of ``file_name`` if the API supports it.

    Unsupported or missing extensions are downgraded to ``txt``; they are
    never rejected.
    """
    _, dot, ext = file_name.rpartition(".")
    suffix = ext.lower() if dot else ""
    return suffix if suffix in CONTENT_TYPES else DEFAULT_SUFFIX


def content_type_for(suffix: str) -> str:
    return CONTENT_TYPES.get(suffix, CONTENT_TYPES[DEFAULT_SUFFIX])


def check_size(size: int) -> None:
    if size > MAX_FILE_SIZE:
        raise FileTooLargeError(size, MAX_FILE_SIZE)


def select_strategy(
    size: int, threshold: int = DEFAULT_MULTIPART_THRESHOLD
) -> UploadStrategy:
    """Pick single vs multipart. Raises FileTooLargeError above the ceiling."""
    check_size(size)
    if size <= threshold:
        return UploadStrategy.SINGLE
    return UploadStrategy.MULTIPART


def should_use_multipart_upload(
    size: int, threshold: int = DEFAULT_MULTIPART_THRESHOLD
) -> bool:
    return size > threshold


def new_session(
    payload: bytes,
    file_name: str,
    threshold: int = DEFAULT_MULTIPART_THRESHOLD,
) -> UploadSession:
    size = len(payload)
    return UploadSession(
        payload=payload,
        file_name=file_name,
        file_suffix=resolve_suffix(file_name),
        size=size,
        strategy=select_strategy(size, threshold),
    )

"""
Multipart upload: negotiate, authorize parts, upload parts, finalize.

Each phase is one round-trip that must succeed before the next begins. There
is no resumability: if any phase fails, the caller restarts from negotiate.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from oomol_fusion import telemetry
from oomol_fusion.api import FusionAPI, error_detail, json_body, response_text, unwrap_data
from oomol_fusion.exceptions import TransportError, UploadPhase, UploadPhaseError
from oomol_fusion.models import (
    CompleteMultipartUploadResponse,
    CreateMultipartUploadResponse,
    MultipartUpload,
    MultipartUploadResult,
    PresignedPartURL,
    UploadProgressCallback,
    UploadSession,
)
from oomol_fusion.upload.chunking import count_parts, slice_payload
from oomol_fusion.upload.scheduler import DEFAULT_MAX_CONCURRENT_UPLOADS, ChunkScheduler

logger = logging.getLogger(__name__)

CREATE_PATH = "file-upload/action/create-multipart-upload"
PRESIGN_PATH = "file-upload/action/generate-presigned-urls"
COMPLETE_PATH = "file-upload/action/complete-multipart-upload"


def _phase_error(
    phase: UploadPhase, what: str, response: httpx.Response
) -> UploadPhaseError:
    detail = error_detail(response) or "Unknown error"
    return UploadPhaseError(
        f"Failed to {what}: {response.status_code} - {detail}",
        phase=phase,
        status_code=response.status_code,
        body=response_text(response),
    )


class MultipartUploader:
    """Runs the multipart protocol for one UploadSession."""

    def __init__(
        self,
        api: FusionAPI,
        session: UploadSession,
        *,
        max_concurrent_uploads: int = DEFAULT_MAX_CONCURRENT_UPLOADS,
        on_progress: Optional[UploadProgressCallback] = None,
    ) -> None:
        self._api = api
        self._session = session
        self._scheduler = ChunkScheduler(
            api, max_concurrent=max_concurrent_uploads, on_progress=on_progress
        )

    async def upload(self) -> MultipartUploadResult:
        session = self._session
        with telemetry.span(
            "fusion.upload.multipart",
            file_name=session.file_name,
            size=session.size,
        ):
            upload = await self._negotiate()
            upload.part_urls = await self._authorize(upload)

            chunks = slice_payload(session.payload, upload.part_size)
            upload.parts = await self._scheduler.upload(chunks, upload.part_urls)

            download_url = await self._finalize(upload)
            logger.info(
                "Multipart upload %s finished (%d parts)",
                upload.upload_id,
                len(upload.parts),
            )
            return MultipartUploadResult(
                download_url=download_url,
                upload_id=upload.upload_id,
                key=upload.key,
            )

    async def _call(self, phase: UploadPhase, path: str, body: dict) -> httpx.Response:
        try:
            return await self._api.request("POST", path, json=body)
        except TransportError as e:
            raise UploadPhaseError(e.message, phase=phase) from e

    async def _negotiate(self) -> MultipartUpload:
        session = self._session
        response = await self._call(
            UploadPhase.NEGOTIATE,
            CREATE_PATH,
            {"fileSuffix": session.file_suffix, "fileSize": session.size},
        )
        if not response.is_success:
            raise _phase_error(
                UploadPhase.NEGOTIATE, "create multipart upload", response
            )

        try:
            created = CreateMultipartUploadResponse.model_validate(
                unwrap_data(json_body(response))
            )
        except (ValidationError, TransportError) as e:
            raise UploadPhaseError(
                f"Invalid create-multipart-upload response: {e}",
                phase=UploadPhase.NEGOTIATE,
                status_code=response.status_code,
                body=response_text(response),
            ) from e
        if created.part_size <= 0:
            raise UploadPhaseError(
                f"Service returned invalid part size {created.part_size}",
                phase=UploadPhase.NEGOTIATE,
                status_code=response.status_code,
            )

        logger.debug(
            "Negotiated upload %s, part size %d", created.upload_id, created.part_size
        )
        return MultipartUpload(
            upload_id=created.upload_id,
            key=created.key,
            part_size=created.part_size,
        )

    async def _authorize(self, upload: MultipartUpload) -> List[PresignedPartURL]:
        part_count = count_parts(self._session.size, upload.part_size)
        part_numbers = list(range(1, part_count + 1))
        response = await self._call(
            UploadPhase.AUTHORIZE,
            PRESIGN_PATH,
            {
                "uploadID": upload.upload_id,
                "key": upload.key,
                "partNumbers": part_numbers,
            },
        )
        if not response.is_success:
            raise _phase_error(
                UploadPhase.AUTHORIZE, "generate presigned URLs", response
            )

        try:
            raw = unwrap_data(json_body(response))
            urls = [PresignedPartURL.model_validate(item) for item in raw]
        except (ValidationError, TransportError, TypeError) as e:
            raise UploadPhaseError(
                f"Invalid generate-presigned-urls response: {e}",
                phase=UploadPhase.AUTHORIZE,
                status_code=response.status_code,
                body=response_text(response),
            ) from e

        urls.sort(key=lambda u: u.part_number)
        returned = [u.part_number for u in urls]
        if returned != part_numbers:
            raise UploadPhaseError(
                f"Requested {part_count} part URLs, service returned {len(urls)}",
                phase=UploadPhase.AUTHORIZE,
                status_code=response.status_code,
            )
        return urls

    async def _finalize(self, upload: MultipartUpload) -> str:
        response = await self._call(
            UploadPhase.FINALIZE,
            COMPLETE_PATH,
            {
                "uploadID": upload.upload_id,
                "key": upload.key,
                "parts": [p.to_wire() for p in upload.parts],
            },
        )
        if not response.is_success:
            raise _phase_error(UploadPhase.FINALIZE, "complete upload", response)

        try:
            completed = CompleteMultipartUploadResponse.model_validate(
                unwrap_data(json_body(response))
            )
        except (ValidationError, TransportError) as e:
            raise UploadPhaseError(
                f"Invalid complete-multipart-upload response: {e}",
                phase=UploadPhase.FINALIZE,
                status_code=response.status_code,
                body=response_text(response),
            ) from e
        return completed.download_url

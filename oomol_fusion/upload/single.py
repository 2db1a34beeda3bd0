"""
Single-shot upload for payloads at or below the multipart threshold.

One signed POST target is requested from the API, then the payload is
posted to storage as a multipart form together with the opaque fields the
storage backend requires. Only the storage POST is retried.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from oomol_fusion import retry as retry_module
from oomol_fusion import telemetry
from oomol_fusion.api import FusionAPI, json_body, response_text, unwrap_data
from oomol_fusion.exceptions import TransportError, UploadPhase, UploadPhaseError
from oomol_fusion.models import PresignedPost, UploadProgressCallback, UploadSession
from oomol_fusion.upload.strategy import content_type_for

logger = logging.getLogger(__name__)

PRESIGN_PATH = "file-upload/action/generate-presigned-url"
DEFAULT_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds, multiplied by the attempt number


class SingleFileUploader:
    """Uploads one UploadSession with a single signed POST."""

    def __init__(
        self,
        api: FusionAPI,
        session: UploadSession,
        *,
        retries: int = DEFAULT_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        on_progress: Optional[UploadProgressCallback] = None,
    ) -> None:
        if retries < 1:
            raise ValueError(f"retries must be >= 1, got {retries}")
        self._api = api
        self._session = session
        self._retries = retries
        self._retry_delay = retry_delay
        self._on_progress = on_progress

    async def upload(self) -> str:
        """Upload the payload and return its public download URL."""
        with telemetry.span(
            "fusion.upload.single",
            file_name=self._session.file_name,
            size=self._session.size,
        ):
            target = await self._presign()
            await self._upload_with_retry(target)
            if self._on_progress is not None:
                self._on_progress(100)
            return target.download_url

    async def _presign(self) -> PresignedPost:
        try:
            response = await self._api.request(
                "POST", PRESIGN_PATH, json={"fileSuffix": self._session.file_suffix}
            )
        except TransportError as e:
            raise UploadPhaseError(e.message, phase=UploadPhase.NEGOTIATE) from e

        if not response.is_success:
            raise UploadPhaseError(
                f"Failed to initialize upload: {response.status_code} "
                f"{response.reason_phrase}",
                phase=UploadPhase.NEGOTIATE,
                status_code=response.status_code,
                body=response_text(response),
            )
        try:
            return PresignedPost.model_validate(unwrap_data(json_body(response)))
        except (ValidationError, TransportError) as e:
            raise UploadPhaseError(
                "Invalid API response: missing uploadURL, downloadURL or fields",
                phase=UploadPhase.NEGOTIATE,
                status_code=response.status_code,
                body=response_text(response),
            ) from e

    async def _upload_with_retry(self, target: PresignedPost) -> None:
        attempt = retry_module.with_linear_retry(
            max_attempts=self._retries, base_delay=self._retry_delay
        )(self._post_to_storage)
        try:
            await attempt(target)
        except TransportError as e:
            raise UploadPhaseError(
                f"File upload failed after {self._retries} attempts: {e.message}",
                phase=UploadPhase.UPLOAD,
                status_code=e.status_code,
                body=e.body,
            ) from e

    async def _post_to_storage(self, target: PresignedPost) -> None:
        session = self._session
        files = {
            "file": (
                session.file_name,
                session.payload,
                content_type_for(session.file_suffix),
            )
        }
        response = await self._api.send_signed(
            "POST", target.upload_url, data=target.fields, files=files
        )
        if not response.is_success:
            raise TransportError(
                f"Upload failed: {response.status_code} - {response_text(response)}",
                url=target.upload_url,
                status_code=response.status_code,
                body=response_text(response),
            )
        logger.debug("Uploaded %s (%d bytes)", session.file_name, session.size)

"""
Fusion client - submit tasks, wait for results, upload files.

Simplest usage:
    from oomol_fusion import Fusion

    async with Fusion() as client:  # token from FUSION_TOKEN
        result = await client.run("fal-nano-banana-pro", {"prompt": "a kitten"})
        print(result.data)

Progress:
    result = await client.run(
        "fal-nano-banana-pro",
        {"prompt": "a kitten"},
        on_progress=lambda p: print(f"{p}%"),
    )

Submit now, wait later:
    submitted = await client.submit("fal-nano-banana-pro", {"prompt": "a puppy"})
    result = await client.wait_for("fal-nano-banana-pro", submitted.session_id)

Uploads (single-shot up to 5 MiB, multipart above, 500 MiB max):
    url = await client.upload_file("photo.jpg")
    url = await client.upload_file(raw_bytes, "clip.mp4", max_concurrent_uploads=4)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, Tuple, Union

import httpx

from oomol_fusion import telemetry
from oomol_fusion.api import FusionAPI
from oomol_fusion.config import get_settings
from oomol_fusion.doctor import validate_environment
from oomol_fusion.exceptions import FusionConfigError, SubmissionError
from oomol_fusion.models import (
    MultipartUploadResult,
    ProgressCallback,
    SubmitResponse,
    TaskResult,
    TaskStatus,
    UploadProgressCallback,
    UploadStrategy,
)
from oomol_fusion.polling import TaskPoller
from oomol_fusion.upload.multipart import MultipartUploader
from oomol_fusion.upload.scheduler import DEFAULT_MAX_CONCURRENT_UPLOADS
from oomol_fusion.upload.single import DEFAULT_RETRIES, SingleFileUploader
from oomol_fusion.upload.strategy import (
    DEFAULT_MULTIPART_THRESHOLD,
    check_size,
    new_session,
)

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "file.bin"

FileInput = Union[bytes, bytearray, memoryview, str, os.PathLike, BinaryIO]


def _read_file(file: FileInput, file_name: Optional[str]) -> Tuple[bytes, str]:
    """Load ``file`` into memory and pick its logical name."""
    if isinstance(file, (bytes, bytearray, memoryview)):
        return bytes(file), file_name or DEFAULT_FILE_NAME

    if isinstance(file, (str, os.PathLike)):
        path = Path(file)
        # Fail on the ceiling before reading a huge file into memory.
        check_size(path.stat().st_size)
        return path.read_bytes(), file_name or path.name

    data = file.read()
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError("file objects must be opened in binary mode")
    name = getattr(file, "name", None)
    default = os.path.basename(name) if isinstance(name, str) else DEFAULT_FILE_NAME
    return bytes(data), file_name or default


class Fusion:
    """
    Fusion API client.

    One instance holds one token, one base URL and one HTTP connection pool.
    None of them change after construction, so a client can be shared by
    concurrent tasks.

    Examples:
        # Token from FUSION_TOKEN
        client = Fusion()

        # Explicit configuration (seconds)
        client = Fusion("token", polling_interval=1.0, timeout=600)
    """

    __slots__ = (
        "token",
        "base_url",
        "polling_interval",
        "timeout",
        "_http",
        "_owns_http",
        "_api",
        "_poller",
    )

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        polling_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        http_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Create a Fusion client.

        Args:
            token: Bearer token. If None, uses FUSION_TOKEN / OOMOL_TOKEN.
            base_url: API base URL. Default: https://fusion-api.oomol.com/v1
            polling_interval: Seconds between status reads. Default: 2.0
            timeout: Seconds to wait for a task before giving up. Default: 300
            http_timeout: Per-request timeout in seconds. Default: 60
            transport: Custom httpx transport (e.g. httpx.MockTransport).
            http_client: Use this AsyncClient instead of creating one. The
                caller keeps ownership and must close it.
        """
        settings = get_settings()
        token = token or settings.token
        if not token:
            raise FusionConfigError(
                "No token found. Set FUSION_TOKEN or use Fusion(token='...')"
            )

        self.token: str = token
        self.base_url: str = (base_url or settings.base_url).rstrip("/")
        self.polling_interval: float = (
            polling_interval if polling_interval is not None else settings.polling_interval
        )
        self.timeout: float = timeout if timeout is not None else settings.timeout

        if http_client is None:
            http_client = httpx.AsyncClient(
                timeout=http_timeout if http_timeout is not None else settings.http_timeout,
                transport=transport,
            )
            self._owns_http = True
        else:
            self._owns_http = False
        self._http: httpx.AsyncClient = http_client

        self._api = FusionAPI(self._http, self.base_url, self.token)
        self._poller = TaskPoller(
            self._api, polling_interval=self.polling_interval, timeout=self.timeout
        )

        validate_environment(token=self.token, base_url=self.base_url)

    async def __aenter__(self) -> "Fusion":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def __repr__(self) -> str:
        return f"Fusion(base_url={self.base_url!r})"

    # =========================================================================
    # Tasks
    # =========================================================================

    async def run(
        self,
        service: str,
        inputs: Dict[str, Any],
        *,
        on_progress: Optional[ProgressCallback] = None,
    ) -> TaskResult:
        """
        Submit a task and wait for its result.

        Args:
            service: Service name, e.g. "fal-nano-banana-pro".
            inputs: Service-specific task inputs.
            on_progress: Called with each reported percentage, and with 100
                on completion.

        Raises:
            SubmissionError, TaskTimeoutError, TaskFailureError, TransportError
        """
        with telemetry.span("fusion.run", service=service):
            submitted = await self.submit(service, inputs)
            if not submitted.success:
                raise SubmissionError("Task submission failed", service=service)
            return await self.wait_for(
                service, submitted.session_id, on_progress=on_progress
            )

    async def submit(self, service: str, inputs: Dict[str, Any]) -> SubmitResponse:
        """Submit a task without waiting. Use wait_for() with the session id."""
        return await self._poller.submit(service, inputs)

    async def wait_for(
        self,
        service: str,
        session_id: str,
        *,
        on_progress: Optional[ProgressCallback] = None,
    ) -> TaskResult:
        """Wait for a previously submitted task to finish."""
        return await self._poller.wait(service, session_id, on_progress)

    async def get_task_status(self, service: str, session_id: str) -> TaskStatus:
        """Read a task's status once, without waiting."""
        return await self._poller.status(service, session_id)

    # =========================================================================
    # Uploads
    # =========================================================================

    async def upload_file(
        self,
        file: FileInput,
        file_name: Optional[str] = None,
        *,
        on_progress: Optional[UploadProgressCallback] = None,
        max_concurrent_uploads: int = DEFAULT_MAX_CONCURRENT_UPLOADS,
        multipart_threshold: int = DEFAULT_MULTIPART_THRESHOLD,
        retries: int = DEFAULT_RETRIES,
    ) -> str:
        """
        Upload a file and return its download URL.

        Payloads up to ``multipart_threshold`` bytes use one signed POST
        (retried ``retries`` times); larger ones use multipart upload with
        ``max_concurrent_uploads`` parts in flight.

        ``on_progress`` receives an UploadProgress after each multipart batch,
        or the bare int 100 when a single-shot upload finishes.

        Raises:
            FileTooLargeError: payload above 500 MiB; nothing is sent.
            UploadPhaseError: a phase of the upload failed.
        """
        payload, name = _read_file(file, file_name)
        session = new_session(payload, name, multipart_threshold)
        logger.debug(
            "Uploading %s (%d bytes, %s)", name, session.size, session.strategy.value
        )

        if session.strategy is UploadStrategy.MULTIPART:
            uploader = MultipartUploader(
                self._api,
                session,
                max_concurrent_uploads=max_concurrent_uploads,
                on_progress=on_progress,
            )
            result = await uploader.upload()
            return result.download_url

        single = SingleFileUploader(
            self._api, session, retries=retries, on_progress=on_progress
        )
        return await single.upload()

    async def upload_file_multipart(
        self,
        file: FileInput,
        file_name: Optional[str] = None,
        *,
        on_progress: Optional[UploadProgressCallback] = None,
        max_concurrent_uploads: int = DEFAULT_MAX_CONCURRENT_UPLOADS,
    ) -> MultipartUploadResult:
        """Upload via the multipart protocol regardless of size."""
        payload, name = _read_file(file, file_name)
        session = new_session(payload, name, threshold=-1)
        uploader = MultipartUploader(
            self._api,
            session,
            max_concurrent_uploads=max_concurrent_uploads,
            on_progress=on_progress,
        )
        return await uploader.upload()

"""
Batched concurrent upload of multipart chunks.

Chunks are sent in consecutive batches of at most ``max_concurrent`` parts.
All parts of a batch are in flight together and the whole batch settles
before the next one starts; there is no sliding window. Any failed part
aborts the upload after its batch settles. Parts are never retried here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from oomol_fusion.api import FusionAPI, response_text
from oomol_fusion.exceptions import TransportError, UploadPhase, UploadPhaseError
from oomol_fusion.models import (
    Chunk,
    PresignedPartURL,
    UploadedPart,
    UploadProgress,
    UploadProgressCallback,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT_UPLOADS = 3


def percentage(done: int, total: int) -> int:
    """``done / total`` as a percentage rounded half-up."""
    if total <= 0:
        return 100
    return (done * 200 + total) // (2 * total)


def batched(chunks: Sequence[Chunk], size: int) -> List[List[Chunk]]:
    return [list(chunks[i : i + size]) for i in range(0, len(chunks), size)]


class ChunkScheduler:
    """Uploads chunks to their signed part URLs, batch by batch."""

    def __init__(
        self,
        api: FusionAPI,
        *,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT_UPLOADS,
        on_progress: Optional[UploadProgressCallback] = None,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        self._api = api
        self.max_concurrent = max_concurrent
        self._on_progress = on_progress

    async def upload(
        self,
        chunks: Sequence[Chunk],
        part_urls: Sequence[PresignedPartURL],
    ) -> List[UploadedPart]:
        """
        Upload every chunk and return their integrity tokens.

        Returns:
            UploadedPart list sorted by part number.

        Raises:
            UploadPhaseError: a part failed or returned no ETag.
        """
        urls: Dict[int, str] = {p.part_number: p.upload_url for p in part_urls}
        missing = [c.index for c in chunks if c.index not in urls]
        if missing:
            raise UploadPhaseError(
                f"No signed URL for parts {missing}", phase=UploadPhase.UPLOAD
            )

        total_bytes = sum(c.size for c in chunks)
        uploaded_bytes = 0
        results: List[UploadedPart] = []

        for batch in batched(chunks, self.max_concurrent):
            outcomes = await asyncio.gather(
                *(self._upload_part(c, urls[c.index]) for c in batch),
                return_exceptions=True,
            )
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    raise outcome
            results.extend(outcomes)

            uploaded_bytes += sum(c.size for c in batch)
            logger.debug(
                "Uploaded parts %d-%d (%d/%d bytes)",
                batch[0].index,
                batch[-1].index,
                uploaded_bytes,
                total_bytes,
            )
            if self._on_progress is not None:
                self._on_progress(
                    UploadProgress(
                        uploaded_bytes=uploaded_bytes,
                        total_bytes=total_bytes,
                        percentage=percentage(uploaded_bytes, total_bytes),
                        uploaded_chunks=len(results),
                        total_chunks=len(chunks),
                    )
                )

        return sorted(results, key=lambda p: p.part_number)

    async def _upload_part(self, chunk: Chunk, url: str) -> UploadedPart:
        try:
            response = await self._api.send_signed(
                "PUT",
                url,
                content=chunk.data,
                headers={
                    "Content-Type": "application/octet-stream",
                    "Content-Length": str(chunk.size),
                },
            )
        except TransportError as e:
            raise UploadPhaseError(
                f"Chunk {chunk.index} upload failed: {e.message}",
                phase=UploadPhase.UPLOAD,
            ) from e

        if not response.is_success:
            raise UploadPhaseError(
                f"Chunk {chunk.index} upload failed: {response.status_code}",
                phase=UploadPhase.UPLOAD,
                status_code=response.status_code,
                body=response_text(response),
            )

        etag = response.headers.get("etag")
        if not etag:
            raise UploadPhaseError(
                f"Chunk {chunk.index} upload returned no ETag",
                phase=UploadPhase.UPLOAD,
                status_code=response.status_code,
            )
        return UploadedPart(part_number=chunk.index, etag=etag.replace('"', ""))

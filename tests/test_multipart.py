from __future__ import annotations

import json

import pytest

from oomol_fusion.exceptions import ErrorKind, UploadPhase, UploadPhaseError
from oomol_fusion.upload.multipart import MultipartUploader
from oomol_fusion.upload.strategy import new_session
from tests.fakes.fusion_server import FakeFusionServer


def _body(request) -> dict:
    return json.loads(request.content)


@pytest.mark.anyio
async def test_three_phase_protocol_end_to_end() -> None:
    server = FakeFusionServer(part_size=4)
    session = new_session(b"0123456789", "clip.mp4", threshold=5)
    progress: list = []

    async with server.http() as http:
        uploader = MultipartUploader(
            server.api(http), session, max_concurrent_uploads=2, on_progress=progress.append
        )
        result = await uploader.upload()

    assert result.download_url == "https://cdn.test/uploads/file"
    assert result.upload_id == "up-1"
    assert result.key == "uploads/file.mp4"

    (create,) = server.api_requests("create-multipart-upload")
    assert _body(create) == {"fileSuffix": "mp4", "fileSize": 10}

    (presign,) = server.api_requests("generate-presigned-urls")
    assert _body(presign) == {
        "uploadID": "up-1",
        "key": "uploads/file.mp4",
        "partNumbers": [1, 2, 3],
    }

    assert server.received_parts == {1: b"0123", 2: b"4567", 3: b"89"}
    assert server.completed_parts == [
        {"partNumber": 1, "etag": "etag-1"},
        {"partNumber": 2, "etag": "etag-2"},
        {"partNumber": 3, "etag": "etag-3"},
    ]
    assert [p.percentage for p in progress] == [80, 100]


@pytest.mark.anyio
async def test_phases_run_strictly_in_order() -> None:
    server = FakeFusionServer(part_size=3)
    session = new_session(b"abcdefgh", "data.csv", threshold=1)

    async with server.http() as http:
        await MultipartUploader(server.api(http), session).upload()

    order = [
        r.url.path.rsplit("/", 1)[-1] if r.url.host != "storage.test" else "PUT"
        for r in server.requests
    ]
    assert order == [
        "create-multipart-upload",
        "generate-presigned-urls",
        "PUT",
        "PUT",
        "PUT",
        "complete-multipart-upload",
    ]
    for request in server.requests:
        if request.url.host == "storage.test":
            assert "authorization" not in request.headers
        else:
            assert request.headers["authorization"] == "Bearer test-token"


@pytest.mark.anyio
async def test_negotiate_failure_carries_status_and_body() -> None:
    server = FakeFusionServer()
    server.fail_actions["create-multipart-upload"] = (413, {"error": "quota exceeded"})
    session = new_session(b"x" * 10, "a.bin", threshold=1)

    async with server.http() as http:
        with pytest.raises(UploadPhaseError) as exc_info:
            await MultipartUploader(server.api(http), session).upload()

    err = exc_info.value
    assert err.kind is ErrorKind.UPLOAD_PHASE
    assert err.phase is UploadPhase.NEGOTIATE
    assert err.status_code == 413
    assert "quota exceeded" in err.body
    assert "413 - quota exceeded" in err.message
    assert server.storage_requests() == []


@pytest.mark.anyio
async def test_non_positive_part_size_fails_negotiation() -> None:
    server = FakeFusionServer(part_size=0)
    session = new_session(b"x" * 10, "a.bin", threshold=1)

    async with server.http() as http:
        with pytest.raises(UploadPhaseError) as exc_info:
            await MultipartUploader(server.api(http), session).upload()

    assert exc_info.value.phase is UploadPhase.NEGOTIATE
    assert server.api_requests("generate-presigned-urls") == []


@pytest.mark.anyio
async def test_part_count_mismatch_fails_authorization() -> None:
    server = FakeFusionServer(part_size=4)
    server.presigned_url_limit = 2
    session = new_session(b"x" * 10, "a.bin", threshold=1)

    async with server.http() as http:
        with pytest.raises(UploadPhaseError) as exc_info:
            await MultipartUploader(server.api(http), session).upload()

    assert exc_info.value.phase is UploadPhase.AUTHORIZE
    assert server.storage_requests() == []
    assert server.api_requests("complete-multipart-upload") == []


@pytest.mark.anyio
async def test_authorize_http_failure() -> None:
    server = FakeFusionServer()
    server.fail_actions["generate-presigned-urls"] = (500, {"error": "boom"})
    session = new_session(b"x" * 10, "a.bin", threshold=1)

    async with server.http() as http:
        with pytest.raises(UploadPhaseError) as exc_info:
            await MultipartUploader(server.api(http), session).upload()

    assert exc_info.value.phase is UploadPhase.AUTHORIZE
    assert exc_info.value.status_code == 500


@pytest.mark.anyio
async def test_part_failure_prevents_finalize() -> None:
    server = FakeFusionServer(part_size=2)
    server.part_failures = {3: 403}
    session = new_session(b"x" * 10, "a.bin", threshold=1)

    async with server.http() as http:
        with pytest.raises(UploadPhaseError) as exc_info:
            await MultipartUploader(server.api(http), session).upload()

    assert exc_info.value.phase is UploadPhase.UPLOAD
    assert server.api_requests("complete-multipart-upload") == []


@pytest.mark.anyio
async def test_finalize_failure() -> None:
    server = FakeFusionServer()
    server.fail_actions["complete-multipart-upload"] = (502, {})
    session = new_session(b"x" * 10, "a.bin", threshold=1)

    async with server.http() as http:
        with pytest.raises(UploadPhaseError) as exc_info:
            await MultipartUploader(server.api(http), session).upload()

    assert exc_info.value.phase is UploadPhase.FINALIZE
    assert exc_info.value.status_code == 502
    assert "Unknown error" in exc_info.value.message


@pytest.mark.anyio
async def test_empty_payload_finalizes_with_no_parts() -> None:
    server = FakeFusionServer()
    session = new_session(b"", "empty.txt", threshold=-1)

    async with server.http() as http:
        result = await MultipartUploader(server.api(http), session).upload()

    assert result.download_url == "https://cdn.test/uploads/file"
    (presign,) = server.api_requests("generate-presigned-urls")
    assert _body(presign)["partNumbers"] == []
    assert server.storage_requests() == []
    assert server.completed_parts == []

from __future__ import annotations

from typing import List

import pytest

import oomol_fusion.retry as retry_module
from oomol_fusion.exceptions import TransportError, UploadPhase, UploadPhaseError
from oomol_fusion.retries import RetryReason, retry_tracking_context


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> List[float]:
    recorded: List[float] = []

    async def _sleep(delay: float) -> None:
        recorded.append(delay)

    monkeypatch.setattr(retry_module, "_sleep", _sleep)
    return recorded


def test_linear_delay_grows_with_attempt() -> None:
    assert [retry_module.linear_delay(n, 1.0) for n in (1, 2, 3)] == [1.0, 2.0, 3.0]
    assert retry_module.linear_delay(2, 0.5) == 1.0


@pytest.mark.anyio
async def test_with_linear_retry_retries_and_succeeds(sleeps: List[float]) -> None:
    calls = {"count": 0}

    @retry_module.with_linear_retry(max_attempts=3, base_delay=1.0)
    async def _work():
        calls["count"] += 1
        if calls["count"] < 3:
            raise TransportError("boom", status_code=503)
        return "ok"

    assert await _work() == "ok"
    assert calls["count"] == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.anyio
async def test_with_linear_retry_reraises_last_exception(sleeps: List[float]) -> None:
    calls = {"count": 0}

    @retry_module.with_linear_retry(max_attempts=3)
    async def _work():
        calls["count"] += 1
        raise TransportError(f"attempt {calls['count']}")

    with pytest.raises(TransportError, match="attempt 3"):
        await _work()
    assert calls["count"] == 3
    # No sleep after the final attempt.
    assert sleeps == [1.0, 2.0]


@pytest.mark.anyio
async def test_with_linear_retry_does_not_retry_other_errors(sleeps: List[float]) -> None:
    calls = {"count": 0}

    @retry_module.with_linear_retry(max_attempts=3)
    async def _work():
        calls["count"] += 1
        raise UploadPhaseError("bad", phase=UploadPhase.NEGOTIATE)

    with pytest.raises(UploadPhaseError):
        await _work()
    assert calls["count"] == 1
    assert sleeps == []


@pytest.mark.anyio
async def test_single_attempt_never_sleeps(sleeps: List[float]) -> None:
    @retry_module.with_linear_retry(max_attempts=1)
    async def _work():
        raise TransportError("boom")

    with pytest.raises(TransportError):
        await _work()
    assert sleeps == []


def test_with_linear_retry_rejects_zero_attempts() -> None:
    with pytest.raises(ValueError):
        retry_module.with_linear_retry(max_attempts=0)


def test_classify_exception() -> None:
    classify = retry_module._classify_exception
    assert classify(TransportError("x", status_code=500)) is RetryReason.STATUS_ERROR
    assert classify(TransportError("x")) is RetryReason.TRANSPORT_ERROR
    assert classify(RuntimeError("x")) is RetryReason.UNKNOWN


@pytest.mark.anyio
async def test_retries_recorded_in_active_tracker(sleeps: List[float]) -> None:
    calls = {"count": 0}

    @retry_module.with_linear_retry(max_attempts=3, base_delay=0.5)
    async def _work():
        calls["count"] += 1
        if calls["count"] == 1:
            raise TransportError("connection reset")
        if calls["count"] == 2:
            raise TransportError("busy", status_code=503)
        return "ok"

    async with retry_tracking_context() as tracker:
        await _work()

    assert tracker.total_retries == 2
    assert tracker.to_dict() == {"transport_error": 1, "status_error": 1}
    assert tracker.backoff_seconds_total == 1.5
    assert tracker.last_retry_reason is RetryReason.STATUS_ERROR

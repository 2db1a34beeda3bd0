from __future__ import annotations

import httpx
import pytest

from oomol_fusion.api import FusionAPI, error_detail, json_body, unwrap_data
from oomol_fusion.exceptions import TransportError


def _response(status: int, **kwargs) -> httpx.Response:
    return httpx.Response(
        status, request=httpx.Request("GET", "https://fusion.test/v1/x"), **kwargs
    )


def test_url_joins_paths_onto_base() -> None:
    api = FusionAPI(None, "https://fusion.test/v1/", "t")  # type: ignore[arg-type]

    assert api.base_url == "https://fusion.test/v1"
    assert api.url("svc/submit") == "https://fusion.test/v1/svc/submit"
    assert api.url("/svc/result/1") == "https://fusion.test/v1/svc/result/1"


def test_unwrap_data_accepts_both_shapes() -> None:
    assert unwrap_data({"data": {"key": "k"}}) == {"key": "k"}
    assert unwrap_data({"key": "k"}) == {"key": "k"}
    assert unwrap_data([1, 2]) == [1, 2]


def test_json_body_rejects_malformed_payload() -> None:
    with pytest.raises(TransportError) as exc_info:
        json_body(_response(200, text="<html>oops</html>"))

    assert exc_info.value.status_code == 200
    assert exc_info.value.body == "<html>oops</html>"


def test_error_detail() -> None:
    assert error_detail(_response(400, json={"error": "bad"})) == "bad"
    assert error_detail(_response(400, json={"message": "bad"})) is None
    assert error_detail(_response(500, text="plain")) is None


@pytest.mark.anyio
async def test_request_sends_bearer_token() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        api = FusionAPI(http, "https://fusion.test/v1", "secret")
        await api.request("POST", "svc/submit", json={"a": 1})
        await api.send_signed("PUT", "https://storage.test/p/1", content=b"x")

    assert seen[0].headers["authorization"] == "Bearer secret"
    assert "authorization" not in seen[1].headers

"""
Thin request helper shared by the task poller and the uploaders.

FusionAPI only knows how to reach the service: it joins paths onto the base
URL, attaches the bearer token, and turns httpx transport failures into
TransportError. Status-code interpretation is left to each caller because
every phase maps a bad status to a different error.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from oomol_fusion.exceptions import TransportError

logger = logging.getLogger(__name__)


class FusionAPI:
    """Authenticated access to one Fusion endpoint. Immutable after init."""

    __slots__ = ("_http", "_base_url", "_token")

    def __init__(self, http: httpx.AsyncClient, base_url: str, token: str) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._token = token

    @property
    def base_url(self) -> str:
        return self._base_url

    def url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self._token}"}

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
    ) -> httpx.Response:
        """Authenticated call against the API base URL."""
        url = self.url(path)
        logger.debug("%s %s", method, url)
        try:
            return await self._http.request(
                method, url, json=json, headers=self._headers()
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Network request failed: {e}", url=url) from e

    async def send_signed(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Unauthenticated call against a pre-signed storage URL."""
        try:
            return await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"Network request failed: {e}", url=url) from e


def response_text(response: httpx.Response) -> str:
    try:
        return response.text
    except (UnicodeDecodeError, httpx.ResponseNotRead):
        return response.reason_phrase


def json_body(response: httpx.Response) -> Any:
    """Decode a JSON body, failing as a TransportError on malformed payloads."""
    try:
        return response.json()
    except ValueError as e:
        raise TransportError(
            "Invalid JSON in response",
            url=str(response.request.url),
            status_code=response.status_code,
            body=response_text(response),
        ) from e


def unwrap_data(payload: Any) -> Any:
    """File-upload endpoints wrap their result as ``{"data": ...}``."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def error_detail(response: httpx.Response) -> Optional[str]:
    """Best-effort ``error`` member of a JSON error body."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return None

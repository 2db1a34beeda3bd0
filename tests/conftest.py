"""Pytest configuration shared by the test suite."""

import sys
from pathlib import Path

import pytest

# Ensure the project root is in sys.path so tests can import tests.fakes
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from oomol_fusion.config import reset_settings  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    # Settings are cached per process; keep the developer's env out of tests.
    for name in (
        "FUSION_TOKEN",
        "OOMOL_TOKEN",
        "FUSION_BASE_URL",
        "FUSION_POLLING_INTERVAL",
        "FUSION_TIMEOUT",
        "FUSION_HTTP_TIMEOUT",
        "FUSION_LOGFIRE",
        "FUSION_LOGFIRE_INSTRUMENT_HTTPX",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("FUSION_LOGFIRE", "false")
    reset_settings()
    yield
    reset_settings()

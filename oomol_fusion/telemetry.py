"""Optional Logfire integration for tracing client calls."""
from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator, Optional

logger = logging.getLogger(__name__)

_logfire = None
_configured = False


def _load_logfire():
    global _logfire
    if _logfire is not None:
        return _logfire
    try:
        import logfire
    except ImportError:
        _logfire = False
        return _logfire
    _logfire = logfire
    return _logfire


def _env_truthy(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def enabled() -> bool:
    logfire = _load_logfire()
    if not logfire:
        return False
    flag = os.getenv("FUSION_LOGFIRE")
    if flag is not None:
        return _env_truthy(flag)
    return True


def configure() -> bool:
    logfire = _load_logfire()
    if not logfire or not enabled():
        return False
    global _configured
    if not _configured:
        try:
            logfire.configure(send_to_logfire="if-token-present")
            _configured = True
        except Exception:
            logger.debug("logfire.configure failed", exc_info=True)
            return False
        _instrument_logfire(logfire)
    return True


def _instrument_logfire(logfire: Any) -> None:
    # Request spans for every httpx call, including signed-URL transfers.
    flag = os.getenv("FUSION_LOGFIRE_INSTRUMENT_HTTPX")
    if flag is None or _env_truthy(flag):
        try:
            logfire.instrument_httpx()
        except Exception:
            logger.debug("logfire.instrument_httpx failed", exc_info=True)


@contextmanager
def span(name: str, **attrs: Any) -> Iterator[None]:
    if not configure():
        yield
        return
    with _load_logfire().span(name, **attrs):
        yield

"""
Client configuration from environment variables.

Usage:
    from oomol_fusion.config import get_settings

    settings = get_settings()
    print(settings.base_url, settings.timeout)
"""

from functools import lru_cache
from typing import Optional
import os

DEFAULT_BASE_URL = "https://fusion-api.oomol.com/v1"
DEFAULT_POLLING_INTERVAL = 2.0
DEFAULT_TIMEOUT = 300.0
DEFAULT_HTTP_TIMEOUT = 60.0


class Settings:
    """Client configuration loaded from environment variables."""

    def __init__(self) -> None:
        # Authentication
        self.token: Optional[str] = os.getenv("FUSION_TOKEN") or os.getenv(
            "OOMOL_TOKEN"
        )

        # Endpoint
        self.base_url: str = os.getenv("FUSION_BASE_URL", DEFAULT_BASE_URL).rstrip(
            "/"
        )

        # Task polling (seconds)
        self.polling_interval: float = float(
            os.getenv("FUSION_POLLING_INTERVAL", str(DEFAULT_POLLING_INTERVAL))
        )
        self.timeout: float = float(os.getenv("FUSION_TIMEOUT", str(DEFAULT_TIMEOUT)))

        # Per-request httpx timeout (seconds)
        self.http_timeout: float = float(
            os.getenv("FUSION_HTTP_TIMEOUT", str(DEFAULT_HTTP_TIMEOUT))
        )

    @property
    def has_token(self) -> bool:
        return bool(self.token)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def reset_settings() -> None:
    """Clear settings cache. For testing only."""
    get_settings.cache_clear()

"""
Core Module - Configuration.

============================================================
PURPOSE
============================================================
All runtime configuration for the fleet telemetry handlers.

Values come from the process environment; a local .env file
is loaded first for development.

============================================================
"""

import os
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not a number, using default {default}")
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not an integer, using default {default}")
        return default


# ============================================================
# SETTINGS
# ============================================================

@dataclass
class FleetSettings:
    """
    Configuration for both request handlers.
    """

    telemetry_api_key: Optional[str] = None
    """Shared secret expected in the x-api-key header. None disables device auth."""

    identity_url: Optional[str] = None
    """Base URL of the token verification service."""

    identity_api_key: Optional[str] = None
    """Public API key sent alongside bearer tokens to the identity service."""

    identity_timeout_seconds: float = 5.0
    """Timeout for one token verification call."""

    store_timeout_seconds: float = 10.0
    """Statement timeout applied to every store step."""

    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"
    environment: str = "production"

    @classmethod
    def from_env(cls) -> "FleetSettings":
        """Build settings from the process environment."""
        return cls(
            telemetry_api_key=os.getenv("TELEMETRY_API_KEY") or None,
            identity_url=os.getenv("FLEET_IDENTITY_URL") or None,
            identity_api_key=os.getenv("FLEET_IDENTITY_API_KEY") or None,
            identity_timeout_seconds=_env_float("FLEET_IDENTITY_TIMEOUT_SECONDS", 5.0),
            store_timeout_seconds=_env_float("FLEET_STORE_TIMEOUT_SECONDS", 10.0),
            api_host=os.getenv("FLEET_API_HOST", "0.0.0.0"),
            api_port=_env_int("FLEET_API_PORT", _env_int("PORT", 8000)),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            environment=os.getenv("ENVIRONMENT", "production"),
        )

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache(maxsize=1)
def get_settings() -> FleetSettings:
    """Process-wide settings, read once."""
    settings = FleetSettings.from_env()
    if not settings.telemetry_api_key:
        logger.warning("TELEMETRY_API_KEY not set, device ingestion will be rejected")
    if not settings.identity_url:
        logger.warning("FLEET_IDENTITY_URL not set, bearer tokens will be rejected")
    return settings


__all__ = ["FleetSettings", "get_settings"]

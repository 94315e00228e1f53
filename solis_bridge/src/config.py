"""
Bridge daemon configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
All configuration values come from environment variables or .env files;
no hardcoded credentials.

CHANGELOG:
- 2026-10-19: Validate LOG_LEVEL with the rest of the configuration
- 2026-10-18: Initial creation

TODO:
- None
"""

import logging

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings

from solis_bridge.src.client import DEFAULT_BASE_URL
from solis_bridge.src.errors import ConfigurationError

MIN_POLL_INTERVAL_S = 60
"""SolisCloud rate-limits API keys; polling faster than this gets throttled."""


class BridgeSettings(BaseSettings):
    """Bridge daemon configuration.

    Attributes:
        solis_api_key: SolisCloud API key id.
        solis_api_secret: SolisCloud API secret.
        solis_device_id: Inverter device id to poll (see solis-bridge-discover).
        solis_base_url: API base URL override (must be HTTPS).
        poll_interval_s: Seconds between poll cycles (min 60).
        request_timeout_s: Per-request timeout in seconds.
        accessory_cache_path: SQLite file persisting accessory shells.
        health_path: Health JSON file path.
        log_level: Root logger level name (DEBUG, INFO, WARNING, ...).
    """

    solis_api_key: str
    solis_api_secret: str
    solis_device_id: str
    solis_base_url: str = DEFAULT_BASE_URL
    poll_interval_s: int = 300
    request_timeout_s: float = 10.0
    accessory_cache_path: str = "/data/accessories.db"
    health_path: str = "/data/health.json"
    log_level: str = "INFO"

    @field_validator("solis_api_key", "solis_api_secret", "solis_device_id")
    @classmethod
    def credentials_must_not_be_blank(cls, v: str) -> str:
        """Reject empty or whitespace-only credentials."""
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("solis_base_url")
    @classmethod
    def base_url_must_be_https(cls, v: str) -> str:
        """Validate that the API base URL uses HTTPS."""
        if not v.lower().startswith("https://"):
            raise ValueError(f"SOLIS_BASE_URL must use HTTPS (got: '{v[:30]}...')")
        return v.rstrip("/")

    @field_validator("poll_interval_s")
    @classmethod
    def poll_interval_must_respect_rate_limit(cls, v: int) -> int:
        """Minimum interval keeps the API key under the upstream rate limit."""
        if v < MIN_POLL_INTERVAL_S:
            raise ValueError(f"POLL_INTERVAL_S must be >= {MIN_POLL_INTERVAL_S}")
        return v

    @field_validator("request_timeout_s")
    @classmethod
    def request_timeout_must_be_bounded(cls, v: float) -> float:
        """Validate request timeout is between 1 and 60 seconds."""
        if v < 1 or v > 60:
            raise ValueError("REQUEST_TIMEOUT_S must be between 1 and 60")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        """Accept only level names the logging module knows."""
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping() or level == "NOTSET":
            raise ValueError(f"LOG_LEVEL must be a logging level name (got: '{v}')")
        return level

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


def load_settings() -> BridgeSettings:
    """Load settings, turning validation failures into one ConfigurationError."""
    try:
        return BridgeSettings()
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise ConfigurationError(
            f"Invalid or missing configuration: {', '.join(fields)}"
        ) from exc

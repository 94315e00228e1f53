"""
Unit tests for bridge daemon configuration (BridgeSettings).

Tests verify:
- All env vars are loaded correctly when fully specified.
- Default values are applied when optional vars are omitted.
- Missing or blank credentials raise a ConfigurationError naming the field.
- Non-HTTPS base URL is rejected; a trailing slash is stripped.
- Poll interval below the rate-limit floor is rejected.
- Request timeout must be between 1 and 60 seconds.

CHANGELOG:
- 2026-10-19: Cover LOG_LEVEL validation
- 2026-10-18: Initial creation
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError
from solis_bridge.src.config import MIN_POLL_INTERVAL_S, BridgeSettings, load_settings
from solis_bridge.src.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestBridgeSettingsLoading:
    def test_full_config(self, env_vars_full: dict[str, str]) -> None:
        settings = BridgeSettings()

        assert settings.solis_api_key == "1300386381676"
        assert settings.solis_api_secret == "test-api-secret"
        assert settings.solis_device_id == "1308675217948611111"
        assert settings.solis_base_url == "https://eu.soliscloud.example.com:13333"
        assert settings.poll_interval_s == 120
        assert settings.request_timeout_s == 5.0
        assert settings.accessory_cache_path == "/tmp/test-accessories.db"
        assert settings.health_path == "/tmp/test-health.json"

    def test_defaults(self, env_vars_required_only: dict[str, str]) -> None:
        settings = BridgeSettings()

        assert settings.solis_base_url == "https://www.soliscloud.com:13333"
        assert settings.poll_interval_s == 300
        assert settings.request_timeout_s == 10.0
        assert settings.accessory_cache_path == "/data/accessories.db"
        assert settings.health_path == "/data/health.json"
        assert settings.log_level == "INFO"

    def test_credentials_are_stripped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SOLIS_API_KEY", "  key-abc  ")
        monkeypatch.setenv("SOLIS_API_SECRET", "secret")
        monkeypatch.setenv("SOLIS_DEVICE_ID", " 42 ")

        settings = BridgeSettings()

        assert settings.solis_api_key == "key-abc"
        assert settings.solis_device_id == "42"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestBridgeSettingsValidation:
    @pytest.mark.parametrize("missing", ["SOLIS_API_KEY", "SOLIS_API_SECRET", "SOLIS_DEVICE_ID"])
    def test_missing_credential_names_field(
        self,
        env_vars_required_only: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
        missing: str,
    ) -> None:
        monkeypatch.delenv(missing)

        with pytest.raises(ConfigurationError, match=missing.lower()):
            load_settings()

    def test_blank_secret_rejected(
        self, env_vars_required_only: dict[str, str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SOLIS_API_SECRET", "   ")

        with pytest.raises(ValidationError, match="must not be blank"):
            BridgeSettings()

    def test_http_base_url_rejected(
        self, env_vars_required_only: dict[str, str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SOLIS_BASE_URL", "http://www.soliscloud.com:13333")

        with pytest.raises(ValidationError, match="HTTPS"):
            BridgeSettings()

    def test_poll_interval_floor(
        self, env_vars_required_only: dict[str, str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("POLL_INTERVAL_S", str(MIN_POLL_INTERVAL_S - 1))
        with pytest.raises(ValidationError, match="POLL_INTERVAL_S"):
            BridgeSettings()

        monkeypatch.setenv("POLL_INTERVAL_S", str(MIN_POLL_INTERVAL_S))
        assert BridgeSettings().poll_interval_s == MIN_POLL_INTERVAL_S

    @pytest.mark.parametrize("value", ["0.5", "61"])
    def test_request_timeout_out_of_range(
        self,
        env_vars_required_only: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
        value: str,
    ) -> None:
        monkeypatch.setenv("REQUEST_TIMEOUT_S", value)

        with pytest.raises(ValidationError, match="REQUEST_TIMEOUT_S"):
            BridgeSettings()

    def test_log_level_normalized(
        self, env_vars_required_only: dict[str, str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("LOG_LEVEL", " debug ")

        assert BridgeSettings().log_level == "DEBUG"

    @pytest.mark.parametrize("value", ["verbose", "NOTSET", ""])
    def test_unknown_log_level_rejected(
        self,
        env_vars_required_only: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
        value: str,
    ) -> None:
        monkeypatch.setenv("LOG_LEVEL", value)

        with pytest.raises(ConfigurationError, match="log_level"):
            load_settings()

    def test_env_file_is_read(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / ".env").write_text(
            "SOLIS_API_KEY=from-file\nSOLIS_API_SECRET=s\nSOLIS_DEVICE_ID=d\n"
        )

        settings = load_settings()

        assert settings.solis_api_key == "from-file"

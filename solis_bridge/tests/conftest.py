"""
Shared test fixtures for bridge daemon tests.

Provides environment variable fixtures for BridgeSettings tests, an
in-memory accessory host double, and snapshot/response factories.
All bridge env vars are cleaned before each test to ensure isolation.

CHANGELOG:
- 2026-10-18: Initial creation
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

import pytest
from solis_bridge.src.accessory import Accessory
from solis_bridge.src.models import TelemetrySnapshot

# All BridgeSettings environment variable names, used for cleanup.
_ALL_BRIDGE_ENV_VARS = (
    "SOLIS_API_KEY",
    "SOLIS_API_SECRET",
    "SOLIS_DEVICE_ID",
    "SOLIS_BASE_URL",
    "POLL_INTERVAL_S",
    "REQUEST_TIMEOUT_S",
    "ACCESSORY_CACHE_PATH",
    "HEALTH_PATH",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_bridge_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all bridge env vars and isolate from .env files before each test."""
    for var in _ALL_BRIDGE_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set all required and optional environment variables for BridgeSettings."""
    env = {
        "SOLIS_API_KEY": "1300386381676",
        "SOLIS_API_SECRET": "test-api-secret",
        "SOLIS_DEVICE_ID": "1308675217948611111",
        "SOLIS_BASE_URL": "https://eu.soliscloud.example.com:13333/",
        "POLL_INTERVAL_S": "120",
        "REQUEST_TIMEOUT_S": "5",
        "ACCESSORY_CACHE_PATH": "/tmp/test-accessories.db",
        "HEALTH_PATH": "/tmp/test-health.json",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def env_vars_required_only(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set only the three required credentials."""
    env = {
        "SOLIS_API_KEY": "key-abc",
        "SOLIS_API_SECRET": "secret-xyz",
        "SOLIS_DEVICE_ID": "device-42",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


class InMemoryHost:
    """AccessoryHost double that records every call."""

    def __init__(self) -> None:
        self.store: dict[str, Accessory] = {}
        self.registered: list[str] = []
        self.updated: list[str] = []
        self.unregistered: list[str] = []

    def create_accessory(self, display_name: str, uuid: str) -> Accessory:
        return Accessory.create(display_name, uuid)

    async def register_accessories(self, accessories: Sequence[Accessory]) -> None:
        for accessory in accessories:
            self.registered.append(accessory.uuid)
            self.store[accessory.uuid] = accessory

    async def update_accessories(self, accessories: Sequence[Accessory]) -> None:
        for accessory in accessories:
            self.updated.append(accessory.uuid)
            self.store[accessory.uuid] = accessory

    async def unregister_accessories(self, accessories: Sequence[Accessory]) -> None:
        for accessory in accessories:
            self.unregistered.append(accessory.uuid)
            self.store.pop(accessory.uuid, None)

    def restored_copies(self) -> list[Accessory]:
        """Deep copies of the stored shells, as a host would hand them back."""
        return [Accessory.model_validate_json(a.model_dump_json()) for a in self.store.values()]


@pytest.fixture()
def memory_host() -> InMemoryHost:
    return InMemoryHost()


def make_snapshot(**overrides: Any) -> TelemetrySnapshot:
    """Create a TelemetrySnapshot with plausible defaults."""
    values: dict[str, Any] = {
        "fetched_at": datetime(2024, 2, 5, 10, 0, 0, tzinfo=UTC),
        "pv_power_kw": 1.5,
        "battery_power_kw": -0.2,
        "battery_percent": 42.0,
        "grid_import_kw": 0.4,
        "grid_export_kw": 0.0,
        "house_load_kw": 0.3,
        "day_pv_energy_kwh": 5.2,
        "month_pv_energy_kwh": 80.1,
        "year_pv_energy_kwh": 410.0,
        "total_pv_energy_kwh": 12000.5,
        "day_grid_purchased_kwh": 3.1,
        "day_grid_sold_kwh": 1.2,
        "day_house_load_kwh": 7.4,
        "data_timestamp": "Mon Feb  5 10:00:00 2024",
    }
    values.update(overrides)
    return TelemetrySnapshot(**values)


def make_response(success: bool = True, **record: Any) -> dict[str, Any]:
    """Create a stationDetailList-style response with one record."""
    base: dict[str, Any] = {
        "power": 1.5,
        "batteryPower": -0.2,
        "batteryPercent": 42,
        "psum": -0.4,
        "familyLoadPower": 0.3,
        "dayEnergy": 5.2,
        "monthEnergy": 80.1,
        "yearEnergy": 410,
        "allEnergy": 12000.5,
        "gridPurchasedDayEnergy": 3.1,
        "gridSellDayEnergy": 1.2,
        "homeLoadTodayEnergy": 7.4,
        "dataTimestamp": 1707127200000,
    }
    base.update(record)
    return {"success": success, "code": "0", "msg": "success", "data": {"records": [base]}}

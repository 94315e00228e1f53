"""
Unit tests for the sensor publisher.

Tests verify:
- Power/energy values of 0 (or below) publish the positive floor.
- Values above the upper bound publish the upper bound.
- Percentages clamp into 0..100 and drive the low-battery status.
- Text timestamps are written verbatim and mirrored to firmware revision.
- Unchanged values are not rewritten.
- Missing accessories are skipped without aborting the pass.

CHANGELOG:
- 2026-10-18: Initial creation
"""

from __future__ import annotations

import math

import pytest
from conftest import make_snapshot
from solis_bridge.src.accessory import (
    BATTERY_LEVEL,
    BATTERY_LEVEL_LOW,
    BATTERY_LEVEL_NORMAL,
    CURRENT_AMBIENT_LIGHT_LEVEL,
    DATA_TIMESTAMP,
    FIRMWARE_REVISION,
    STATUS_LOW_BATTERY,
    Accessory,
    ServiceType,
)
from solis_bridge.src.publisher import SensorPublisher, adjust_value
from solis_bridge.src.reconciler import accessory_uuid, build_service
from solis_bridge.src.registry import LIGHT_LEVEL_FLOOR, LIGHT_LEVEL_MAX, METRICS

_BY_ID = {m.identifier: m for m in METRICS}

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_accessories(skip: tuple[str, ...] = ()) -> dict[str, Accessory]:
    """Build one fresh accessory per registry metric."""
    accessories: dict[str, Accessory] = {}
    for metric in METRICS:
        if metric.identifier in skip:
            continue
        accessory = Accessory.create(metric.display_name, accessory_uuid("dev", metric.identifier))
        accessory.add_service(build_service(metric))
        accessories[metric.identifier] = accessory
    return accessories


def _light_level(accessories: dict[str, Accessory], metric_id: str) -> float:
    service = accessories[metric_id].get_service(ServiceType.LIGHT_SENSOR, metric_id)
    return service.get_characteristic(CURRENT_AMBIENT_LIGHT_LEVEL).value


def _battery(accessories: dict[str, Accessory]) -> tuple[float, int]:
    service = accessories["batteryPercent"].get_service(ServiceType.BATTERY, "batteryPercent")
    return (
        service.get_characteristic(BATTERY_LEVEL).value,
        service.get_characteristic(STATUS_LOW_BATTERY).value,
    )


# ---------------------------------------------------------------------------
# adjust_value
# ---------------------------------------------------------------------------


class TestAdjustValue:
    """Per-kind value adjustment."""

    @pytest.mark.parametrize("metric_id", ["pvPower", "dayPvEnergy"])
    @pytest.mark.parametrize("raw", [0, 0.0, -1.5])
    def test_zero_and_negative_raised_to_floor(self, metric_id: str, raw: float) -> None:
        value = adjust_value(_BY_ID[metric_id], raw)
        assert 0 < value <= _BY_ID[metric_id].fallback_value

    @pytest.mark.parametrize("metric_id", ["pvPower", "totalPvEnergy"])
    def test_above_upper_bound_clamped(self, metric_id: str) -> None:
        assert adjust_value(_BY_ID[metric_id], 250000.0) == LIGHT_LEVEL_MAX

    def test_in_range_unchanged(self) -> None:
        assert adjust_value(_BY_ID["pvPower"], 1.5) == 1.5

    def test_nan_uses_fallback(self) -> None:
        assert adjust_value(_BY_ID["pvPower"], math.nan) == LIGHT_LEVEL_FLOOR

    @pytest.mark.parametrize(("raw", "expected"), [(-5, 0.0), (42, 42), (130, 100.0)])
    def test_percentage_clamped(self, raw: float, expected: float) -> None:
        assert adjust_value(_BY_ID["batteryPercent"], raw) == expected

    def test_text_verbatim(self) -> None:
        assert adjust_value(_BY_ID["dataTimestamp"], "05/02/2024 10:00") == "05/02/2024 10:00"


# ---------------------------------------------------------------------------
# publish
# ---------------------------------------------------------------------------


class TestPublish:
    """Full publish pass."""

    def test_publishes_all_metrics(self) -> None:
        accessories = _make_accessories()
        snapshot = make_snapshot()

        changed = SensorPublisher(accessories).publish(snapshot)

        # gridExport (0) and batteryPower (-0.2) stay at the initial floor.
        assert changed == len(METRICS) - 2
        assert _light_level(accessories, "pvPower") == 1.5
        assert _light_level(accessories, "gridImport") == 0.4
        assert _light_level(accessories, "gridExport") == LIGHT_LEVEL_FLOOR
        assert _light_level(accessories, "totalPvEnergy") == 12000.5
        assert _battery(accessories) == (42.0, BATTERY_LEVEL_NORMAL)

    def test_zero_power_stored_above_zero(self) -> None:
        accessories = _make_accessories()
        SensorPublisher(accessories).publish(make_snapshot(pv_power_kw=0.0))

        stored = _light_level(accessories, "pvPower")
        assert 0 < stored <= _BY_ID["pvPower"].fallback_value

    def test_above_bound_stored_as_bound(self) -> None:
        accessories = _make_accessories()
        SensorPublisher(accessories).publish(make_snapshot(total_pv_energy_kwh=1e9))
        assert _light_level(accessories, "totalPvEnergy") == LIGHT_LEVEL_MAX

    def test_negative_battery_power_floored(self) -> None:
        accessories = _make_accessories()
        SensorPublisher(accessories).publish(make_snapshot(battery_power_kw=-2.0))
        assert _light_level(accessories, "batteryPower") == LIGHT_LEVEL_FLOOR

    def test_low_battery_status(self) -> None:
        accessories = _make_accessories()
        SensorPublisher(accessories).publish(make_snapshot(battery_percent=12.0))
        assert _battery(accessories) == (12.0, BATTERY_LEVEL_LOW)

    def test_timestamp_written_verbatim_and_mirrored(self) -> None:
        accessories = _make_accessories()
        SensorPublisher(accessories).publish(make_snapshot(data_timestamp="Mon Feb  5 10:00:00 2024"))

        accessory = accessories["dataTimestamp"]
        service = accessory.get_service(ServiceType.STATELESS_SWITCH, "dataTimestamp")
        assert service.get_characteristic(DATA_TIMESTAMP).value == "Mon Feb  5 10:00:00 2024"
        assert accessory.information.get_characteristic(FIRMWARE_REVISION).value == (
            "Mon Feb  5 10:00:00 2024"
        )

    def test_unchanged_values_not_rewritten(self) -> None:
        accessories = _make_accessories()
        publisher = SensorPublisher(accessories)
        snapshot = make_snapshot()

        publisher.publish(snapshot)
        assert publisher.publish(snapshot) == 0

    def test_only_changed_metric_counted(self) -> None:
        accessories = _make_accessories()
        publisher = SensorPublisher(accessories)
        publisher.publish(make_snapshot())

        assert publisher.publish(make_snapshot(pv_power_kw=2.0)) == 1

    def test_missing_accessory_skipped(self) -> None:
        accessories = _make_accessories(skip=("pvPower",))

        changed = SensorPublisher(accessories).publish(make_snapshot(grid_export_kw=0.5))

        assert changed == len(METRICS) - 2
        assert _light_level(accessories, "gridImport") == 0.4

    def test_accessory_without_service_skipped(self) -> None:
        accessories = _make_accessories()
        shell = accessories["houseLoad"]
        shell.services = [shell.information]

        changed = SensorPublisher(accessories).publish(make_snapshot(grid_export_kw=0.5))

        assert changed == len(METRICS) - 2

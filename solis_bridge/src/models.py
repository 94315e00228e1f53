"""
Pydantic models for normalized SolisCloud telemetry.

Defines the TelemetrySnapshot model that represents one poll cycle's worth
of inverter telemetry after the raw API record has been coerced into a fixed
schema with fallback defaults.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class TelemetrySnapshot(BaseModel):
    """A single normalized telemetry record.

    Values are in the vendor's units: kW for power, kWh for energy. No
    accessory-level clamping has been applied; a snapshot is a faithful (if
    defaulted) copy of the source record. Snapshots are replaced wholesale
    on every successful poll and never patched field by field.

    Attributes:
        fetched_at: When the record was normalized (injected by the caller).
        pv_power_kw: Instantaneous PV generation.
        battery_power_kw: Battery power, signed as reported by the vendor.
        battery_percent: Battery state of charge.
        grid_import_kw: Power drawn from the grid (>= 0).
        grid_export_kw: Power fed into the grid (>= 0).
        house_load_kw: Household consumption.
        day_pv_energy_kwh: PV energy today.
        month_pv_energy_kwh: PV energy this month.
        year_pv_energy_kwh: PV energy this year.
        total_pv_energy_kwh: Lifetime PV energy.
        day_grid_purchased_kwh: Energy bought from the grid today.
        day_grid_sold_kwh: Energy sold to the grid today.
        day_house_load_kwh: Household energy today.
        data_timestamp: Vendor timestamp formatted for display.
    """

    model_config = {"frozen": True}

    fetched_at: datetime
    pv_power_kw: float
    battery_power_kw: float
    battery_percent: float
    grid_import_kw: float
    grid_export_kw: float
    house_load_kw: float
    day_pv_energy_kwh: float
    month_pv_energy_kwh: float
    year_pv_energy_kwh: float
    total_pv_energy_kwh: float
    day_grid_purchased_kwh: float
    day_grid_sold_kwh: float
    day_house_load_kwh: float
    data_timestamp: str

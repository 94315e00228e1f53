"""
SolisCloud metric registry -- single source of truth for exposed sensors.

Each :class:`MetricDescriptor` names one accessory the bridge exposes: its
stable identifier (part of the accessory UUID, so never reuse one for a
different meaning), display name, value kind, the snapshot field it reads,
and the inclusive bounds and fallback legal for its representation.

Value kinds map to representations through :data:`KIND_SPECS`, which the
reconciler (attach/repair) and the publisher (update) both consume. Adding
or removing a :data:`METRICS` entry is the supported way to evolve the set
of exposed sensors; removed entries are retired on the next startup.

Units follow the vendor: kW for power, kWh for energy. Both are exposed
through the light-level representation, whose range excludes zero, so both
floor at :data:`LIGHT_LEVEL_FLOOR`.

CHANGELOG:
- 2026-10-19: Document fallbacks that sit on a bound
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from solis_bridge.src.accessory import (
    BATTERY_LEVEL,
    CURRENT_AMBIENT_LIGHT_LEVEL,
    DATA_TIMESTAMP,
    ServiceType,
)

LIGHT_LEVEL_FLOOR: float = 0.0001
"""Smallest legal light level; zero reads as "no reading" on the host."""

LIGHT_LEVEL_MAX: float = 100000.0

LOW_BATTERY_THRESHOLD: float = 20.0
"""Battery percentages below this raise the low-battery status."""


class ValueKind(StrEnum):
    """What a metric's value means, which decides its representation."""

    INSTANTANEOUS_POWER = "instantaneous_power"
    CUMULATIVE_ENERGY = "cumulative_energy"
    PERCENTAGE = "percentage"
    TEXT_TIMESTAMP = "text_timestamp"


@dataclass(frozen=True, slots=True)
class KindSpec:
    """How one value kind is represented on an accessory.

    Attributes:
        service_type: Service attached to the accessory.
        characteristic: Characteristic holding the published value.
        forbids_zero: Whether the representation treats zero as absent.
        numeric: False for verbatim text values.
    """

    service_type: ServiceType
    characteristic: str
    forbids_zero: bool = False
    numeric: bool = True


KIND_SPECS: dict[ValueKind, KindSpec] = {
    ValueKind.INSTANTANEOUS_POWER: KindSpec(
        ServiceType.LIGHT_SENSOR, CURRENT_AMBIENT_LIGHT_LEVEL, forbids_zero=True
    ),
    ValueKind.CUMULATIVE_ENERGY: KindSpec(
        ServiceType.LIGHT_SENSOR, CURRENT_AMBIENT_LIGHT_LEVEL, forbids_zero=True
    ),
    ValueKind.PERCENTAGE: KindSpec(ServiceType.BATTERY, BATTERY_LEVEL),
    ValueKind.TEXT_TIMESTAMP: KindSpec(
        ServiceType.STATELESS_SWITCH, DATA_TIMESTAMP, numeric=False
    ),
}


@dataclass(frozen=True, slots=True)
class MetricDescriptor:
    """Definition of a single exposed metric.

    Attributes:
        identifier: Stable short key, e.g. ``"pvPower"``.
        display_name: Human label shown by the host.
        value_kind: One of :class:`ValueKind`.
        field: Attribute of
            :class:`~solis_bridge.src.models.TelemetrySnapshot` to publish.
        bounds: Inclusive ``(min, max)`` legal for the representation.
            ``None`` for text metrics.
        fallback_value: Published when the snapshot value is unusable.
            Must lie within the inclusive bounds and may equal one. The
            shipped numeric fallbacks sit on the lower bound, the smallest
            value the representation accepts, so a missing reading and a
            clamped zero publish the same floor.
    """

    identifier: str
    display_name: str
    value_kind: ValueKind
    field: str
    bounds: tuple[float, float] | None = None
    fallback_value: float | str = ""

    def __post_init__(self) -> None:  # noqa: D105
        spec = KIND_SPECS[self.value_kind]
        if not spec.numeric:
            return
        if self.bounds is None or isinstance(self.fallback_value, str):
            msg = f"Metric '{self.identifier}': numeric kinds need bounds and a numeric fallback"
            raise ValueError(msg)
        lo, hi = self.bounds
        if not lo <= self.fallback_value <= hi:
            msg = (
                f"Metric '{self.identifier}': fallback {self.fallback_value} "
                f"outside bounds ({lo}, {hi})"
            )
            raise ValueError(msg)
        if spec.forbids_zero and (lo <= 0 or self.fallback_value <= 0):
            msg = f"Metric '{self.identifier}': {self.value_kind.value} cannot report zero"
            raise ValueError(msg)

    @property
    def kind_spec(self) -> KindSpec:
        return KIND_SPECS[self.value_kind]


def _power(identifier: str, display_name: str, field: str) -> MetricDescriptor:
    return MetricDescriptor(
        identifier=identifier,
        display_name=display_name,
        value_kind=ValueKind.INSTANTANEOUS_POWER,
        field=field,
        bounds=(LIGHT_LEVEL_FLOOR, LIGHT_LEVEL_MAX),
        fallback_value=LIGHT_LEVEL_FLOOR,
    )


def _energy(identifier: str, display_name: str, field: str) -> MetricDescriptor:
    return MetricDescriptor(
        identifier=identifier,
        display_name=display_name,
        value_kind=ValueKind.CUMULATIVE_ENERGY,
        field=field,
        bounds=(LIGHT_LEVEL_FLOOR, LIGHT_LEVEL_MAX),
        fallback_value=LIGHT_LEVEL_FLOOR,
    )


# ---------------------------------------------------------------------------
# Exposed metrics. Identifiers are part of accessory UUIDs; do not rename.
# ---------------------------------------------------------------------------

METRICS: tuple[MetricDescriptor, ...] = (
    _power("pvPower", "PV Power kW", "pv_power_kw"),
    _power("batteryPower", "Battery Power kW", "battery_power_kw"),
    _power("gridImport", "Grid Import kW", "grid_import_kw"),
    _power("gridExport", "Grid Export kW", "grid_export_kw"),
    _power("houseLoad", "House Load kW", "house_load_kw"),
    _energy("dayPvEnergy", "PV Today Energy kWh", "day_pv_energy_kwh"),
    _energy("monthPvEnergy", "PV Month Energy kWh", "month_pv_energy_kwh"),
    _energy("yearPvEnergy", "PV Year Energy kWh", "year_pv_energy_kwh"),
    _energy("totalPvEnergy", "PV Total Energy kWh", "total_pv_energy_kwh"),
    _energy("dayGridPurchased", "Grid Purchased Today kWh", "day_grid_purchased_kwh"),
    _energy("dayGridSold", "Grid Sold Today kWh", "day_grid_sold_kwh"),
    _energy("dayHouseLoadEnergy", "House Load Today kWh", "day_house_load_kwh"),
    MetricDescriptor(
        identifier="batteryPercent",
        display_name="Battery Percentage",
        value_kind=ValueKind.PERCENTAGE,
        field="battery_percent",
        bounds=(0.0, 100.0),
        fallback_value=0.0,
    ),
    MetricDescriptor(
        identifier="dataTimestamp",
        display_name="Solis Data Timestamp",
        value_kind=ValueKind.TEXT_TIMESTAMP,
        field="data_timestamp",
    ),
)


def metric_ids(metrics: tuple[MetricDescriptor, ...] = METRICS) -> list[str]:
    """Return the identifiers of *metrics*, rejecting duplicates."""
    ids = [m.identifier for m in metrics]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Duplicate metric identifiers in registry: {ids}")
    return ids

"""
Pure normalizer that converts a raw ``stationDetailList`` response into a
TelemetrySnapshot.

The SolisCloud API is loosely typed: numbers arrive as numbers, numeric
strings, ``null`` or are missing altogether. Every field is coerced through
:func:`safe_number` with a zero fallback, the signed grid flow (``psum``,
negative = import) is split into two unsigned fields, and the vendor epoch
millisecond timestamp is formatted for display.

A response that does not report success, or carries no records, is rejected
as a whole. Nothing here clamps to accessory bounds; that happens at publish
time.

CHANGELOG:
- 2026-10-19: Treat integers beyond float range as unusable
- 2026-10-18: Accept ISO-8601 strings for dataTimestamp
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime, tzinfo
from typing import Any

from solis_bridge.src.errors import RejectedResponseError
from solis_bridge.src.models import TelemetrySnapshot

logger = logging.getLogger(__name__)

DISPLAY_FORMAT = "%c"
"""strftime format for the data timestamp (locale dependent)."""

# ---------------------------------------------------------------------------
# Mapping from TelemetrySnapshot field names to API record keys.
# Keys are tried in order; the first one present (not None) wins.
# ---------------------------------------------------------------------------

_FIELD_MAP: dict[str, tuple[str, ...]] = {
    "pv_power_kw": ("power",),
    "battery_power_kw": ("batteryPower",),
    "battery_percent": ("batteryPercent",),
    "house_load_kw": ("familyLoadPower", "loadPower"),
    "day_pv_energy_kwh": ("dayEnergy",),
    "month_pv_energy_kwh": ("monthEnergy",),
    "year_pv_energy_kwh": ("yearEnergy",),
    "total_pv_energy_kwh": ("allEnergy",),
    "day_grid_purchased_kwh": ("gridPurchasedDayEnergy",),
    "day_grid_sold_kwh": ("gridSellDayEnergy",),
    "day_house_load_kwh": ("homeLoadTodayEnergy",),
}
"""Maps TelemetrySnapshot field name -> candidate record keys."""


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def safe_number(value: Any, fallback: float = 0.0) -> float:
    """Return *value* as a float when it is finite and numeric, else *fallback*.

    Numeric strings (``"1.5"``) are parsed. Booleans, ``None``, NaN,
    infinities, integers too large for a float and anything unparsable
    yield *fallback*.
    """
    if isinstance(value, bool) or value is None:
        return fallback
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return fallback
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return fallback
    else:
        return fallback
    return number if math.isfinite(number) else fallback


def split_grid_flow(psum: float) -> tuple[float, float]:
    """Split a signed grid flow into ``(import, export)``.

    Negative *psum* is import, positive is export. At most one side is
    non-zero and ``import - export == -psum``.
    """
    return max(0.0, -psum), max(0.0, psum)


def format_timestamp(
    raw: Any,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> str:
    """Format a vendor timestamp for display.

    Args:
        raw: Epoch milliseconds (number or numeric string) or an ISO-8601
            string.
        now: Fallback instant when *raw* is absent or invalid. Defaults to
            the current time.
        tz: Display timezone. Defaults to the local timezone.

    Returns:
        The timestamp rendered with :data:`DISPLAY_FORMAT`.
    """
    moment: datetime | None = None
    millis = safe_number(raw, math.nan)
    if not math.isnan(millis):
        try:
            moment = datetime.fromtimestamp(millis / 1000.0, tz=UTC)
        except (OverflowError, OSError, ValueError):
            logger.warning("dataTimestamp %r out of range, using current time", raw)
    elif isinstance(raw, str) and raw.strip():
        try:
            moment = datetime.fromisoformat(raw.strip())
        except ValueError:
            logger.warning("dataTimestamp %r not parsable, using current time", raw)
        else:
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=UTC)

    if moment is None:
        moment = now or datetime.now(tz=UTC)
    return moment.astimezone(tz).strftime(DISPLAY_FORMAT)


def _first_present(record: dict[str, Any], keys: tuple[str, ...]) -> Any:
    """Return the first value among *keys* that is present and not None."""
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def first_record(response: Any) -> dict[str, Any]:
    """Validate the response envelope and return its first record.

    Raises:
        RejectedResponseError: If ``success`` is not true or no record is
            present.
    """
    if not isinstance(response, dict):
        raise RejectedResponseError("Response is not a JSON object")
    if response.get("success") is not True:
        raise RejectedResponseError(
            f"API reported failure: code={response.get('code')!r} "
            f"msg={response.get('msg')!r}"
        )
    data = response.get("data")
    records = data.get("records") if isinstance(data, dict) else None
    if not isinstance(records, list) or not records:
        raise RejectedResponseError("Response carries no records")
    record = records[0]
    if not isinstance(record, dict):
        raise RejectedResponseError(
            f"First record is {type(record).__name__}, expected object"
        )
    return record


def normalize(
    response: Any,
    *,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> TelemetrySnapshot:
    """Convert a raw API response into a TelemetrySnapshot.

    This is a pure function apart from defaulting *now* to the clock.

    Args:
        response: Decoded JSON body of ``stationDetailList``.
        now: Normalization instant, also the fallback for a missing vendor
            timestamp.
        tz: Display timezone for the data timestamp.

    Returns:
        The normalized snapshot.

    Raises:
        RejectedResponseError: If the envelope fails validation. No partial
            snapshot is ever produced.
    """
    record = first_record(response)
    now = now or datetime.now(tz=UTC)

    fields: dict[str, float] = {
        name: safe_number(_first_present(record, keys))
        for name, keys in _FIELD_MAP.items()
    }
    grid_import, grid_export = split_grid_flow(safe_number(record.get("psum")))

    return TelemetrySnapshot(
        fetched_at=now,
        grid_import_kw=grid_import,
        grid_export_kw=grid_export,
        data_timestamp=format_timestamp(record.get("dataTimestamp"), now=now, tz=tz),
        **fields,
    )

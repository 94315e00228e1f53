"""
Publishes a TelemetrySnapshot into the reconciled accessories.

One generic routine handles every value kind through the registry's kind
specs: numeric kinds are clamped into the metric's bounds (so power and
energy never report zero, percentages stay in 0..100), unusable numbers fall
back to the metric's fallback value, and text is written verbatim. A value
is only written when it differs from the cached one, so unchanged readings
do not notify subscribers.

The publisher mutates values only; accessory structure belongs to the
reconciler.

CHANGELOG:
- 2026-10-18: Mirror data timestamp into firmware revision
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping

from solis_bridge.src.accessory import (
    BATTERY_LEVEL_LOW,
    BATTERY_LEVEL_NORMAL,
    FIRMWARE_REVISION,
    STATUS_LOW_BATTERY,
    Accessory,
)
from solis_bridge.src.models import TelemetrySnapshot
from solis_bridge.src.normalizer import safe_number
from solis_bridge.src.registry import (
    LOW_BATTERY_THRESHOLD,
    METRICS,
    MetricDescriptor,
    ValueKind,
)

logger = logging.getLogger(__name__)


def adjust_value(metric: MetricDescriptor, raw: object) -> float | str:
    """Return the value to expose for *metric* given a raw snapshot value."""
    if not metric.kind_spec.numeric:
        return "" if raw is None else str(raw)
    lo, hi = metric.bounds  # type: ignore[misc]
    value = safe_number(raw, math.nan)
    if math.isnan(value):
        return metric.fallback_value
    return min(max(value, lo), hi)


class SensorPublisher:
    """Writes snapshot values into accessory representations.

    Args:
        accessories: Live accessories keyed by metric identifier, as
            returned by the reconciler.
        metrics: Registry to publish.
    """

    def __init__(
        self,
        accessories: Mapping[str, Accessory],
        metrics: tuple[MetricDescriptor, ...] = METRICS,
    ) -> None:
        self._accessories = accessories
        self._metrics = metrics

    def publish(self, snapshot: TelemetrySnapshot) -> int:
        """Publish *snapshot* and return how many metrics changed value.

        Metrics without an accessory are skipped silently. A failure on one
        metric is logged and does not stop the others.
        """
        changed = 0
        for metric in self._metrics:
            accessory = self._accessories.get(metric.identifier)
            if accessory is None:
                continue
            try:
                changed += self._publish_metric(
                    accessory, metric, getattr(snapshot, metric.field)
                )
            except Exception:
                logger.warning("Failed to publish metric '%s'", metric.identifier, exc_info=True)
        logger.debug("Published snapshot: %d metrics changed", changed)
        return changed

    def _publish_metric(
        self,
        accessory: Accessory,
        metric: MetricDescriptor,
        raw: object,
    ) -> bool:
        spec = metric.kind_spec
        service = accessory.get_service(spec.service_type, metric.identifier)
        if service is None:
            logger.debug("Accessory for '%s' has no %s service", metric.identifier, spec.service_type)
            return False

        value = adjust_value(metric, raw)
        changed = service.update_characteristic(spec.characteristic, value)

        if metric.value_kind is ValueKind.PERCENTAGE:
            status = (
                BATTERY_LEVEL_LOW if value < LOW_BATTERY_THRESHOLD else BATTERY_LEVEL_NORMAL  # type: ignore[operator]
            )
            if service.get_characteristic(STATUS_LOW_BATTERY) is not None:
                changed = service.update_characteristic(STATUS_LOW_BATTERY, status) or changed
        elif metric.value_kind is ValueKind.TEXT_TIMESTAMP:
            info = accessory.information
            if info is not None:
                current = info.get_characteristic(FIRMWARE_REVISION)
                if current is None or current.value != value:
                    info.set_characteristic(FIRMWARE_REVISION, value)
                    changed = True
        return changed

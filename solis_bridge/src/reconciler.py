"""
Startup reconciliation of registry metrics against host-restored accessories.

For every metric in the registry the reconciler computes the accessory's
stable UUID (a pure function of device id and metric identifier) and then:

- creates and registers a new shell when none was restored,
- keeps a restored shell whose representation matches the metric,
- repairs a restored shell whose representation is missing or of the wrong
  shape, by stripping every non-information service and attaching a fresh
  one (the shell's UUID is preserved),
- retires restored shells of this device whose metric left the registry.

A failure on one metric is logged and only that metric is skipped. Running
:meth:`AccessoryReconciler.reconcile` twice yields the same accessory set.

CHANGELOG:
- 2026-10-18: Refresh display names of restored shells
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
import uuid as uuid_lib
from enum import StrEnum

from solis_bridge.src.accessory import (
    BATTERY_LEVEL_NORMAL,
    MANUFACTURER,
    MODEL,
    NAME,
    SERIAL_NUMBER,
    STATUS_LOW_BATTERY,
    Accessory,
    Service,
    ServiceType,
)
from solis_bridge.src.errors import ReconciliationError
from solis_bridge.src.host import AccessoryHost
from solis_bridge.src.registry import METRICS, MetricDescriptor, ValueKind

logger = logging.getLogger(__name__)

ACCESSORY_NAMESPACE = uuid_lib.UUID("5b0f3c1e-8d2a-4f6b-9c47-2e1d6a8f0b93")
"""Fixed namespace for accessory UUIDs. Changing it orphans every accessory."""

MANUFACTURER_NAME = "Solis"

CONTEXT_DEVICE_ID = "device_id"
CONTEXT_METRIC_ID = "metric_id"


class ReconcileOutcome(StrEnum):
    CREATED = "created"
    RESTORED_VALID = "restored_valid"
    RESTORED_REPAIRED = "restored_repaired"
    RETIRED = "retired"
    FAILED = "failed"


def accessory_uuid(device_id: str, metric_id: str) -> str:
    """Return the stable accessory UUID for *metric_id* on *device_id*."""
    return str(uuid_lib.uuid5(ACCESSORY_NAMESPACE, f"solis-{device_id}-{metric_id}"))


def build_service(metric: MetricDescriptor) -> Service:
    """Build the representation service for *metric* from its kind spec."""
    spec = metric.kind_spec
    service = Service(
        service_type=spec.service_type,
        name=metric.display_name,
        subtype=metric.identifier,
    )
    service.add_characteristic(NAME, metric.display_name)
    if spec.numeric:
        lo, hi = metric.bounds  # type: ignore[misc]
        service.add_characteristic(
            spec.characteristic, metric.fallback_value, min_value=lo, max_value=hi
        )
    else:
        service.add_characteristic(spec.characteristic, metric.fallback_value)
    if metric.value_kind is ValueKind.PERCENTAGE:
        service.add_characteristic(
            STATUS_LOW_BATTERY, BATTERY_LEVEL_NORMAL, min_value=0, max_value=1
        )
    return service


def representation_matches(accessory: Accessory, metric: MetricDescriptor) -> bool:
    """Return True if *accessory* carries exactly the expected representation."""
    spec = metric.kind_spec
    others = [
        s for s in accessory.services
        if s.service_type is not ServiceType.ACCESSORY_INFORMATION
    ]
    if len(others) != 1:
        return False
    service = others[0]
    if service.service_type is not spec.service_type or service.subtype != metric.identifier:
        return False
    characteristic = service.get_characteristic(spec.characteristic)
    if characteristic is None:
        return False
    if spec.numeric:
        lo, hi = metric.bounds  # type: ignore[misc]
        return (characteristic.min_value, characteristic.max_value) == (lo, hi)
    return True


class AccessoryReconciler:
    """Owns the structural lifecycle of this device's accessories.

    Args:
        host: The home-automation host.
        device_id: SolisCloud device id; part of every accessory UUID.
        metrics: Registry to reconcile against.
    """

    def __init__(
        self,
        host: AccessoryHost,
        device_id: str,
        metrics: tuple[MetricDescriptor, ...] = METRICS,
    ) -> None:
        self._host = host
        self._device_id = device_id
        self._metrics = metrics
        self._restored: dict[str, Accessory] = {}
        self.accessories: dict[str, Accessory] = {}
        self.outcomes: dict[str, ReconcileOutcome] = {}

    def configure_accessory(self, accessory: Accessory) -> None:
        """Restore hook: remember a cached shell handed over by the host."""
        logger.debug("Restored accessory %s (%s)", accessory.display_name, accessory.uuid)
        self._restored[accessory.uuid] = accessory

    async def reconcile(self) -> dict[str, Accessory]:
        """Align the restored accessory set with the registry.

        Returns:
            Live accessories keyed by metric identifier.
        """
        live: dict[str, Accessory] = {}
        outcomes: dict[str, ReconcileOutcome] = {}
        expected: set[str] = set()

        for metric in self._metrics:
            uid = accessory_uuid(self._device_id, metric.identifier)
            expected.add(uid)
            try:
                accessory, outcome = await self._reconcile_metric(metric, uid)
            except Exception:
                logger.error(
                    "Reconciliation failed for metric '%s', skipping it",
                    metric.identifier,
                    exc_info=True,
                )
                outcomes[metric.identifier] = ReconcileOutcome.FAILED
                continue
            live[metric.identifier] = accessory
            outcomes[metric.identifier] = outcome

        retired = [
            accessory
            for uid, accessory in self._restored.items()
            if uid not in expected
            and accessory.context.get(CONTEXT_DEVICE_ID) == self._device_id
        ]
        if retired:
            try:
                await self._host.unregister_accessories(retired)
            except Exception:
                logger.error("Failed to unregister %d retired accessories", len(retired), exc_info=True)
            else:
                for accessory in retired:
                    del self._restored[accessory.uuid]
                    outcomes[accessory.context.get(CONTEXT_METRIC_ID, accessory.uuid)] = (
                        ReconcileOutcome.RETIRED
                    )

        self.accessories = live
        self.outcomes = outcomes
        logger.info(
            "Reconciled %d accessories for device %s: %s",
            len(live),
            self._device_id,
            {o.value: sum(1 for v in outcomes.values() if v is o) for o in ReconcileOutcome},
        )
        return live

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _reconcile_metric(
        self,
        metric: MetricDescriptor,
        uid: str,
    ) -> tuple[Accessory, ReconcileOutcome]:
        accessory = self._restored.get(uid)

        if accessory is None:
            accessory = self._host.create_accessory(metric.display_name, uid)
            self._describe(accessory, metric)
            self._attach(accessory, metric)
            await self._host.register_accessories([accessory])
            self._restored[uid] = accessory
            logger.info("Created accessory: %s", metric.display_name)
            return accessory, ReconcileOutcome.CREATED

        before = accessory.model_dump()
        outcome = ReconcileOutcome.RESTORED_VALID
        if not representation_matches(accessory, metric):
            for service in list(accessory.services):
                if service.service_type is not ServiceType.ACCESSORY_INFORMATION:
                    accessory.remove_service(service)
            self._attach(accessory, metric)
            outcome = ReconcileOutcome.RESTORED_REPAIRED
            logger.warning("Repaired representation of accessory %s", metric.display_name)

        accessory.display_name = metric.display_name
        self._describe(accessory, metric)

        if accessory.model_dump() != before:
            await self._host.update_accessories([accessory])
        return accessory, outcome

    def _describe(self, accessory: Accessory, metric: MetricDescriptor) -> None:
        """Fill context and accessory-information fields."""
        accessory.context[CONTEXT_DEVICE_ID] = self._device_id
        accessory.context[CONTEXT_METRIC_ID] = metric.identifier
        info = accessory.information
        if info is None:
            info = accessory.add_service(
                Service(service_type=ServiceType.ACCESSORY_INFORMATION, name=metric.display_name)
            )
        info.name = metric.display_name
        info.set_characteristic(NAME, metric.display_name)
        info.set_characteristic(MANUFACTURER, MANUFACTURER_NAME)
        info.set_characteristic(MODEL, metric.kind_spec.service_type.value)
        info.set_characteristic(SERIAL_NUMBER, f"{self._device_id}-{metric.identifier}")

    def _attach(self, accessory: Accessory, metric: MetricDescriptor) -> None:
        try:
            accessory.add_service(build_service(metric))
        except ValueError as exc:
            raise ReconciliationError(
                f"Cannot attach {metric.value_kind.value} representation "
                f"to {accessory.display_name!r}: {exc}"
            ) from exc

"""
Accessory shell data model shared between the bridge core and its host.

An :class:`Accessory` is the host-persisted structure for one exposed metric:
a stable ``uuid``, a display name, a small ``context`` dict (which device and
metric it belongs to) and a list of typed :class:`Service` objects. Every
accessory carries an accessory-information service; the metric itself lives
in exactly one additional service whose primary :class:`Characteristic`
holds the published value.

The models are pydantic so a host can persist shells as JSON and hand them
back at restore time.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import math
from enum import StrEnum

from pydantic import BaseModel, Field


class ServiceType(StrEnum):
    """Typed representations an accessory can carry."""

    ACCESSORY_INFORMATION = "accessory_information"
    LIGHT_SENSOR = "light_sensor"
    BATTERY = "battery"
    STATELESS_SWITCH = "stateless_switch"


# Characteristic names.
NAME = "name"
MANUFACTURER = "manufacturer"
MODEL = "model"
SERIAL_NUMBER = "serial_number"
FIRMWARE_REVISION = "firmware_revision"
CURRENT_AMBIENT_LIGHT_LEVEL = "current_ambient_light_level"
BATTERY_LEVEL = "battery_level"
STATUS_LOW_BATTERY = "status_low_battery"
DATA_TIMESTAMP = "data_timestamp"

BATTERY_LEVEL_NORMAL = 0
BATTERY_LEVEL_LOW = 1


class Characteristic(BaseModel):
    """A single observable value with optional numeric bounds."""

    name: str
    value: float | int | str | None = None
    min_value: float | None = None
    max_value: float | None = None

    def check(self, value: float | int | str) -> None:
        """Raise ValueError if *value* is outside this characteristic's bounds."""
        if isinstance(value, str):
            return
        if not math.isfinite(value):
            raise ValueError(f"{self.name}: non-finite value {value!r}")
        if self.min_value is not None and value < self.min_value:
            raise ValueError(f"{self.name}: {value} below minimum {self.min_value}")
        if self.max_value is not None and value > self.max_value:
            raise ValueError(f"{self.name}: {value} above maximum {self.max_value}")


class Service(BaseModel):
    """A typed representation attached to an accessory."""

    service_type: ServiceType
    name: str
    subtype: str | None = None
    characteristics: dict[str, Characteristic] = Field(default_factory=dict)

    def get_characteristic(self, name: str) -> Characteristic | None:
        return self.characteristics.get(name)

    def add_characteristic(
        self,
        name: str,
        value: float | int | str | None = None,
        *,
        min_value: float | None = None,
        max_value: float | None = None,
    ) -> Characteristic:
        characteristic = Characteristic(
            name=name, value=value, min_value=min_value, max_value=max_value
        )
        self.characteristics[name] = characteristic
        return characteristic

    def set_characteristic(self, name: str, value: float | int | str) -> Service:
        """Set a characteristic unconditionally, creating it if missing."""
        characteristic = self.characteristics.get(name)
        if characteristic is None:
            self.add_characteristic(name, value)
        else:
            characteristic.check(value)
            characteristic.value = value
        return self

    def update_characteristic(self, name: str, value: float | int | str) -> bool:
        """Write *value* only if it differs from the current one.

        Returns:
            True if the value changed (subscribers would be notified).

        Raises:
            KeyError: If the characteristic does not exist.
            ValueError: If *value* violates the characteristic's bounds.
        """
        characteristic = self.characteristics[name]
        if characteristic.value == value:
            return False
        characteristic.check(value)
        characteristic.value = value
        return True


class Accessory(BaseModel):
    """Host-persisted shell for one exposed metric."""

    uuid: str
    display_name: str
    context: dict[str, str] = Field(default_factory=dict)
    services: list[Service] = Field(default_factory=list)

    @classmethod
    def create(cls, display_name: str, uuid: str) -> Accessory:
        """Return a new shell carrying an empty accessory-information service."""
        accessory = cls(uuid=uuid, display_name=display_name)
        accessory.add_service(
            Service(service_type=ServiceType.ACCESSORY_INFORMATION, name=display_name)
        )
        return accessory

    def get_service(
        self,
        service_type: ServiceType,
        subtype: str | None = None,
    ) -> Service | None:
        """Return the service of *service_type* (and *subtype*, if given)."""
        for service in self.services:
            if service.service_type is not service_type:
                continue
            if subtype is None or service.subtype == subtype:
                return service
        return None

    def add_service(self, service: Service) -> Service:
        """Attach *service*.

        Raises:
            ValueError: If a service with the same type and subtype exists.
        """
        for existing in self.services:
            if (existing.service_type, existing.subtype) == (
                service.service_type,
                service.subtype,
            ):
                raise ValueError(
                    f"Accessory {self.display_name!r} already has "
                    f"{service.service_type.value}/{service.subtype}"
                )
        self.services.append(service)
        return service

    def remove_service(self, service: Service) -> None:
        self.services = [s for s in self.services if s is not service]

    @property
    def information(self) -> Service | None:
        return self.get_service(ServiceType.ACCESSORY_INFORMATION)

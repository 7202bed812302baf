"""JSON-file registries of devices and user access grants."""

from registry.base import (
    RegistryError,
    DeviceNotFoundError,
    AccessDeniedError,
)
from registry.devices import Device, DeviceRegistry
from registry.access import AccessRegistry, WILDCARD

__all__ = [
    "RegistryError",
    "DeviceNotFoundError",
    "AccessDeniedError",
    "Device",
    "DeviceRegistry",
    "AccessRegistry",
    "WILDCARD",
]

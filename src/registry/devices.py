"""Device registry backed by devices.json.

    {
      "devices": [
        {"name": "Main entrance", "ip": "192.168.1.100", "login": "admin",
         "password": "...", "doorNo": 1, "lastStatus": 3,
         "lastUpdate": "2026-10-17T09:12:03.511+00:00"}
      ]
    }
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from common import DeviceTarget
from registry.base import DeviceNotFoundError, JsonStore, RegistryError

logger = logging.getLogger(__name__)


@dataclass
class Device:
    """A registered access-control panel."""
    ip: str
    login: str = ''
    password: str = field(default='', repr=False)
    name: str = ''
    door_no: int = 1
    last_status: Optional[int] = None
    last_update: str = ''

    @classmethod
    def from_dict(cls, data: dict) -> "Device":
        """Build a Device from a devices.json entry.

        Raises:
            RegistryError: If the entry is not an object or doorNo is not
                an integer >= 1
        """
        if not isinstance(data, dict):
            raise RegistryError("E500", f"Device entry must be an object, got {data!r}")

        raw_door = data.get('doorNo', 1)
        try:
            door_no = None if isinstance(raw_door, (bool, float)) else int(raw_door)
        except (TypeError, ValueError):
            door_no = None
        if door_no is None or door_no < 1:
            raise RegistryError(
                "E500", f"Invalid doorNo for device {data.get('ip')}: {raw_door!r}"
            )

        return cls(
            ip=str(data.get('ip', '')),
            login=data.get('login', ''),
            password=data.get('password', ''),
            name=data.get('name', ''),
            door_no=door_no,
            last_status=data.get('lastStatus'),
            last_update=data.get('lastUpdate', ''),
        )

    def public_dict(self) -> dict:
        """Device fields safe to return to API clients (no password)."""
        return {
            'name': self.name,
            'ip': self.ip,
            'doorNo': self.door_no,
            'lastStatus': self.last_status,
            'lastUpdate': self.last_update,
        }

    def to_target(self) -> DeviceTarget:
        return DeviceTarget(
            host=self.ip,
            login=self.login,
            secret=self.password,
            door_no=self.door_no,
        )


class DeviceRegistry:
    """Lookup and status updates for registered devices."""

    def __init__(self, path: Path):
        self.store = JsonStore(path, 'devices')

    @property
    def path(self) -> Path:
        return self.store.path

    def list_devices(self) -> list[Device]:
        devices = [Device.from_dict(d) for d in self.store.load()['devices']]
        logger.debug("Loaded %d devices from %s", len(devices), self.path)
        return devices

    def find(self, ip: str) -> Optional[Device]:
        for device in self.list_devices():
            if device.ip == ip:
                return device
        return None

    def get(self, ip: str) -> Device:
        """Get a device by address.

        Raises:
            DeviceNotFoundError: If no device has this address
        """
        device = self.find(ip)
        if device is None:
            raise DeviceNotFoundError(ip)
        return device

    def update_status(self, ip: str, status: int) -> bool:
        """Record the last state applied to a device.

        Returns:
            True if the device exists and was updated
        """
        def apply(data: dict) -> bool:
            for entry in data['devices']:
                if isinstance(entry, dict) and entry.get('ip') == ip:
                    entry['lastStatus'] = int(status)
                    entry['lastUpdate'] = datetime.now(timezone.utc).isoformat(
                        timespec='milliseconds'
                    )
                    return True
            return False

        updated = self.store.update(apply)
        if updated:
            logger.info("Updated status for device %s to %s", ip, status)
        return updated

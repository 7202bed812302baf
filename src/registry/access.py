"""User access grants backed by users.json.

    {"users": [{"login": "ops", "devices": ["all"]},
               {"login": "block_a", "devices": ["192.168.10.48"]}]}

"all" grants every registered device.
"""

import logging
from pathlib import Path

from registry.base import AccessDeniedError, JsonStore
from registry.devices import DeviceRegistry

logger = logging.getLogger(__name__)

WILDCARD = 'all'


class AccessRegistry:
    """Membership checks of (user, device address)."""

    def __init__(self, path: Path, devices: DeviceRegistry):
        self.store = JsonStore(path, 'users')
        self.devices = devices

    def list_users(self) -> dict:
        return self.store.load()

    def _grants(self, login: str) -> list[str]:
        for user in self.store.load()['users']:
            if user.get('login') == login:
                return [str(d) for d in user.get('devices') or []]
        logger.info("User %s not found", login)
        return []

    def is_wildcard(self, login: str) -> bool:
        return WILDCARD in self._grants(login)

    def user_devices(self, login: str) -> list[str]:
        """Device addresses a user may control (wildcard expanded)."""
        grants = self._grants(login)
        if WILDCARD in grants:
            logger.debug("User %s has access to all devices", login)
            return [d.ip for d in self.devices.list_devices()]
        return grants

    def has_access(self, login: str, ip: str) -> bool:
        grants = self._grants(login)
        return WILDCARD in grants or ip in grants

    def check_access(self, login: str, ip: str):
        """Raise AccessDeniedError unless the user may control the device."""
        if not self.has_access(login, ip):
            raise AccessDeniedError(login, ip)

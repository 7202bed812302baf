"""Periodic device status check running beside the HTTP server."""

import logging
import threading

from registry.base import RegistryError
from registry.devices import DeviceRegistry

logger = logging.getLogger(__name__)


class StatusPoller(threading.Thread):
    """Background thread that reloads the device registry every interval."""

    def __init__(self, devices: DeviceRegistry, interval: float = 15.0):
        super().__init__(name="status-poller", daemon=True)
        self.devices = devices
        self.interval = interval
        self.ticks = 0
        self._stopped = threading.Event()

    def poll_once(self) -> int:
        """Run one check; returns the number of registered devices."""
        count = len(self.devices.list_devices())
        logger.info("Checking device statuses (%d devices)", count)
        self.ticks += 1
        return count

    def run(self):
        while not self._stopped.wait(self.interval):
            try:
                self.poll_once()
            except RegistryError as e:
                logger.error("Status check failed: %s", e.message)

    def stop(self, timeout: float = 5.0):
        self._stopped.set()
        if self.is_alive():
            self.join(timeout)

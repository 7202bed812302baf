"""Shared JSON file handling for the registries."""

import json
import logging
import threading
from pathlib import Path

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Base exception for registry errors."""

    def __init__(self, code: str, message: str, http_status: int = 500):
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(f"{code}: {message}")


class DeviceNotFoundError(RegistryError):
    """No device registered under an address."""

    def __init__(self, ip: str):
        super().__init__("E200", f"Device not found: {ip}", 404)


class AccessDeniedError(RegistryError):
    """User has no grant for a device."""

    def __init__(self, login: str, ip: str):
        super().__init__("E300", f"Access to device {ip} denied for {login}", 403)


class JsonStore:
    """A JSON document holding one top-level list under `key`.

    Reads and writes are serialized with a lock; writes go to a temp file
    that is renamed into place.
    """

    def __init__(self, path: Path, key: str):
        self.path = Path(path)
        self.key = key
        self._lock = threading.RLock()

    def _read(self) -> dict:
        if not self.path.exists():
            data = {self.key: []}
            self._write(data)
            logger.info("Created empty %s file: %s", self.key, self.path)
            return data

        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except (OSError, json.JSONDecodeError) as e:
            raise RegistryError("E500", f"Cannot read {self.path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get(self.key), list):
            raise RegistryError("E500", f"{self.path} must contain a '{self.key}' list")
        return data

    def _write(self, data: dict):
        tmp_file = self.path.with_suffix(self.path.suffix + '.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_file.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding='utf-8')
            tmp_file.replace(self.path)
        except OSError as e:
            if tmp_file.exists():
                tmp_file.unlink()
            raise RegistryError("E500", f"Cannot write {self.path}: {e}") from e

    def load(self) -> dict:
        """Load the document, creating an empty one if missing."""
        with self._lock:
            return self._read()

    def save(self, data: dict):
        with self._lock:
            self._write(data)

    def update(self, func):
        """Read, apply func(data) and write back under one lock.

        Returns:
            Whatever func returns; nothing is written if it returns False
        """
        with self._lock:
            data = self._read()
            result = func(data)
            if result is not False:
                self._write(data)
            return result

"""Append-only operation log.

One line per door operation in a file per UTC day:

    logs/door_control_2026-10-17.log
    [2026-10-17T09:12:03.511+00:00] IP: 192.168.1.100, Door: 1, State: OPEN (1), Message: ...
"""

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from common import DoorCommand

logger = logging.getLogger(__name__)


class OperationLog:
    """Writes one line per control operation; never raises on I/O errors."""

    def __init__(self, log_dir: Path):
        self.log_dir = Path(log_dir)
        self._lock = threading.Lock()

    def path_for(self, when: datetime) -> Path:
        return self.log_dir / f"door_control_{when.strftime('%Y-%m-%d')}.log"

    def format_entry(self, when: datetime, host: str, door_no: int, state, message: str) -> str:
        timestamp = when.isoformat(timespec='milliseconds')
        state_name = DoorCommand.describe(state)
        if isinstance(state, int):
            state = int(state)
        return (
            f"[{timestamp}] IP: {host}, Door: {door_no}, "
            f"State: {state_name} ({state}), Message: {message}\n"
        )

    def write(
        self,
        host: str,
        door_no: int,
        state,
        message: str,
        when: Optional[datetime] = None,
    ) -> Optional[Path]:
        """Append an entry.

        Returns:
            Path written to, or None if the write failed
        """
        when = when or datetime.now(timezone.utc)
        entry = self.format_entry(when, host, door_no, state, message)
        path = self.path_for(when)

        try:
            with self._lock:
                self.log_dir.mkdir(parents=True, exist_ok=True)
                with open(path, 'a', encoding='utf-8') as f:
                    f.write(entry)
        except OSError as e:
            logger.error("Error writing to log file %s: %s", path, e)
            return None

        logger.debug("Log written to: %s", path)
        return path

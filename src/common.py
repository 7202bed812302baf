"""Common types shared by the protocol client, the CLI and the server."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

DEVICE_PORT = 80


class DoorCommand(IntEnum):
    """Door state requested by the caller."""
    OPEN = 1
    CLOSE = 2
    RESUME = 3

    @classmethod
    def parse(cls, value) -> "DoorCommand":
        """Convert a CLI/API value ("1", 1, ...) to a DoorCommand.

        Raises:
            ValueError: If value is not 1, 2 or 3
        """
        try:
            if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
                raise ValueError(value)
            return cls(int(value))
        except (TypeError, ValueError):
            raise ValueError(
                f"Invalid state: {value!r}. Use: 1 (open), 2 (close), 3 (resume)"
            ) from None

    @classmethod
    def describe(cls, value) -> str:
        """Return the state name for logging, or UNKNOWN."""
        try:
            return cls(int(value)).name
        except (TypeError, ValueError):
            return 'UNKNOWN'


@dataclass(frozen=True)
class DeviceTarget:
    """Access-control panel addressed by one control operation."""
    host: str
    login: str
    secret: str = field(repr=False)
    door_no: int = 1
    port: int = DEVICE_PORT

    def __post_init__(self):
        if self.door_no < 1:
            raise ValueError(f"Door number must be >= 1, got {self.door_no}")


@dataclass(frozen=True)
class OperationOutcome:
    """Result of one protocol step (configure or control)."""
    step: str
    succeeded: bool
    raw: str = ''
    error: str = ''
    skipped: bool = False

    def to_dict(self) -> dict:
        data = {'step': self.step, 'success': self.succeeded}
        if self.skipped:
            data['skipped'] = True
        if self.error:
            data['error'] = self.error
        return data


@dataclass
class ControlResult:
    """Outcome of a full door state change."""
    success: bool
    message: str = ''
    error_count: int = 0
    outcomes: list[OperationOutcome] = field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: list[OperationOutcome], messages: list[str]) -> "ControlResult":
        error_count = sum(1 for o in outcomes if not o.succeeded)
        return cls(
            success=error_count == 0,
            message=' | '.join(messages),
            error_count=error_count,
            outcomes=list(outcomes),
        )

    def outcome(self, step: str) -> Optional[OperationOutcome]:
        """Get the outcome recorded for a step by name."""
        for o in self.outcomes:
            if o.step == step:
                return o
        return None

    def to_dict(self) -> dict:
        """Serialize for the HTTP API."""
        return {
            'success': self.success,
            'message': self.message,
            'errorCount': self.error_count,
            'steps': [o.to_dict() for o in self.outcomes],
        }

"""Request builders for the two door state operations.

Changing a door's state takes two PUTs: the door parameters (magnetic
lock policy) and then a remote-control command. Closing is done by the
lock policy alone, so CLOSE has no remote-control request.
"""

from dataclasses import dataclass
from typing import Optional

from common import DoorCommand

ISAPI_NAMESPACE = "http://www.isapi.org/ver20/XMLSchema"
OPEN_DURATION = 4

_MAGNETIC_TYPES = {
    DoorCommand.OPEN: 'alwaysClose',
    DoorCommand.CLOSE: 'alwaysOpen',
    DoorCommand.RESUME: 'alwaysClose',
}

_CONTROL_VERBS = {
    DoorCommand.OPEN: 'alwaysOpen',
    DoorCommand.RESUME: 'resume',
}


@dataclass(frozen=True)
class IsapiRequest:
    """One device request: method, path and XML body."""
    method: str
    path: str
    body: str


def _check_door_no(door_no: int):
    if door_no < 1:
        raise ValueError(f"Door number must be >= 1, got {door_no}")


def magnetic_type_for(command) -> str:
    """Lock policy for a command ('none' for unknown commands)."""
    return _MAGNETIC_TYPES.get(command, 'none')


def control_verb_for(command) -> Optional[str]:
    """Remote-control verb for a command, or None when the step is skipped."""
    if command == DoorCommand.CLOSE:
        return None
    return _CONTROL_VERBS.get(command, 'resume')


def build_config_payload(command, door_no: int) -> IsapiRequest:
    """Build the DoorParam request that sets the magnetic lock policy."""
    _check_door_no(door_no)
    body = (
        f'<DoorParam xmlns="{ISAPI_NAMESPACE}" version="2.0">\n'
        f'<doorNo>{door_no}</doorNo>\n'
        f'<enable>false</enable>\n'
        f'<doorName>Door{door_no}</doorName>\n'
        f'<openDuration>{OPEN_DURATION}</openDuration>\n'
        f'<magneticType>{magnetic_type_for(command)}</magneticType>\n'
        f'</DoorParam>'
    )
    return IsapiRequest(
        method='PUT',
        path=f'/ISAPI/AccessControl/Door/param/{door_no}',
        body=body,
    )


def build_control_payload(command, door_no: int) -> Optional[IsapiRequest]:
    """Build the RemoteControlDoor request, or None for CLOSE."""
    _check_door_no(door_no)
    verb = control_verb_for(command)
    if verb is None:
        return None
    return IsapiRequest(
        method='PUT',
        path=f'/ISAPI/AccessControl/RemoteControl/door/{door_no}',
        body=f'<RemoteControlDoor><cmd>{verb}</cmd></RemoteControlDoor>',
    )

"""Door state orchestration on top of the ISAPI client."""

from controller.door import (
    DoorStateController,
    set_door_state,
    STEP_CONFIGURE,
    STEP_CONTROL,
)

__all__ = [
    "DoorStateController",
    "set_door_state",
    "STEP_CONFIGURE",
    "STEP_CONTROL",
]

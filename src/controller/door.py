"""Door state change: configure the lock policy, then send the control verb.

Both steps always run (CLOSE has no control request and records a
skipped success). A failing step is recorded and does not stop the next
one; only an unexpected exception aborts the operation.
"""

import logging
from typing import Callable, Optional

from common import ControlResult, DeviceTarget, DoorCommand, OperationOutcome
from isapi.digest import DigestAuth
from isapi.errors import CriticalError, IsapiError
from isapi.payloads import IsapiRequest, build_config_payload, build_control_payload
from isapi.response import check_response_status
from isapi.transport import DEFAULT_TIMEOUT, DigestHttpTransport
from oplog import OperationLog

logger = logging.getLogger(__name__)

STEP_CONFIGURE = 'configure'
STEP_CONTROL = 'control'

_MESSAGES = {
    (STEP_CONFIGURE, True): 'relay configured',
    (STEP_CONFIGURE, False): 'relay configuration failed',
    (STEP_CONTROL, True): 'door status set',
    (STEP_CONTROL, False): 'door status setting failed',
}


class DoorStateController:
    """Runs door state changes against ISAPI panels."""

    def __init__(
        self,
        operation_log: Optional[OperationLog] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport_factory: Callable[..., DigestHttpTransport] = DigestHttpTransport,
    ):
        """Initialize controller.

        Args:
            operation_log: Where each operation is recorded (optional)
            timeout: Per-attempt HTTP timeout in seconds
            transport_factory: Called as factory(auth, timeout=...) per operation
        """
        self.operation_log = operation_log
        self.timeout = timeout
        self.transport_factory = transport_factory

    def _run_step(
        self,
        step: str,
        transport: DigestHttpTransport,
        target: DeviceTarget,
        request: IsapiRequest,
    ) -> OperationOutcome:
        try:
            raw = transport.execute(target, request.path, request.method, request.body)
            check_response_status(raw)
        except IsapiError as e:
            logger.warning("Door %s request failed on %s: %s", step, target.host, e.message)
            return OperationOutcome(step=step, succeeded=False, error=e.message)
        return OperationOutcome(step=step, succeeded=True, raw=raw)

    def _record(self, target: DeviceTarget, door_no: int, command, message: str):
        if self.operation_log is not None:
            self.operation_log.write(target.host, door_no, command, message)

    def set_door_state(
        self,
        target: DeviceTarget,
        command,
        door_no: Optional[int] = None,
    ) -> ControlResult:
        """Change a door's state.

        Args:
            target: Device address and credentials
            command: DoorCommand (or its int value)
            door_no: Door to act on (default: target.door_no)

        Returns:
            ControlResult; success is True only if both steps succeeded

        Raises:
            CriticalError: On any unexpected exception (logged first)
        """
        door_no = target.door_no if door_no is None else door_no

        logger.info("Starting door control for %s", target.host)
        logger.info("Using login: %s", target.login)
        logger.info("Target state: %s (%s)", DoorCommand.describe(command), command)

        # One DigestAuth per operation: the nonce count runs across both steps
        auth = DigestAuth(target.login, target.secret)
        transport = self.transport_factory(auth, timeout=self.timeout)

        try:
            outcomes = [
                self._run_step(
                    STEP_CONFIGURE, transport, target, build_config_payload(command, door_no)
                )
            ]

            control_request = build_control_payload(command, door_no)
            if control_request is None:
                outcomes.append(OperationOutcome(step=STEP_CONTROL, succeeded=True, skipped=True))
            else:
                outcomes.append(
                    self._run_step(STEP_CONTROL, transport, target, control_request)
                )
        except Exception as e:
            logger.exception("Critical error controlling %s", target.host)
            self._record(target, door_no, command, f"Critical error: {e}")
            raise CriticalError(str(e)) from e

        result = ControlResult.from_outcomes(
            outcomes,
            [_MESSAGES[(o.step, o.succeeded)] for o in outcomes],
        )

        if result.success:
            logger.info("All operations completed successfully")
        else:
            logger.warning("Completed with %d error(s)", result.error_count)

        self._record(target, door_no, command, result.message)
        return result


def set_door_state(
    target: DeviceTarget,
    command,
    door_no: Optional[int] = None,
    **kwargs,
) -> ControlResult:
    """Convenience wrapper: run one operation with a fresh controller."""
    return DoorStateController(**kwargs).set_door_state(target, command, door_no)

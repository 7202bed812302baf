"""API endpoint handlers.

Each handler returns (response_body, http_status) and never raises, so
the request handler only has to serialize the result.
"""

import json
import logging
from typing import Any, Optional, Tuple

from common import DoorCommand
from controller.door import DoorStateController
from isapi.errors import CriticalError
from registry.access import AccessRegistry
from registry.base import RegistryError
from registry.devices import DeviceRegistry

logger = logging.getLogger(__name__)


def handle_devices_list(
    login: Optional[str],
    devices: DeviceRegistry,
    access: AccessRegistry,
) -> Tuple[Any, int]:
    """Handle GET /api/devices?login=...

    Returns:
        Tuple of (device list or error dict, http_status)
    """
    if not login:
        return _error_response("E101", "Missing user login"), 400

    logger.info("Device list request from user: %s", login)
    try:
        allowed = access.user_devices(login)
        if not allowed:
            return _error_response("E300", "Access denied or user not found"), 403

        if access.is_wildcard(login):
            visible = devices.list_devices()
        else:
            visible = [d for d in devices.list_devices() if d.ip in allowed]
    except RegistryError as e:
        return _error_response(e.code, e.message), e.http_status
    except Exception as e:
        logger.exception("Unexpected error listing devices for %s", login)
        return _error_response("E500", f"Internal error: {e}"), 500

    logger.info("Sending %d devices to user %s", len(visible), login)
    return [d.public_dict() for d in visible], 200


def handle_control_request(
    body: bytes,
    devices: DeviceRegistry,
    access: AccessRegistry,
    controller: DoorStateController,
) -> Tuple[dict, int]:
    """Handle POST /api/control with body {"ip", "state", "login"}.

    Authorization and lookup failures are 4xx; a completed operation is
    200 whether or not the device accepted the command.

    Returns:
        Tuple of (response_dict, http_status)
    """
    try:
        payload = json.loads(body.decode("utf-8") or "{}")
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return _error_response("E100", f"Invalid JSON body: {e}"), 400
    if not isinstance(payload, dict):
        return _error_response("E100", "Request body must be a JSON object"), 400

    login = payload.get("login")
    ip = payload.get("ip")
    if not login:
        return _error_response("E101", "Missing user login"), 400
    if not ip:
        return _error_response("E102", "Missing device ip"), 400

    try:
        command = DoorCommand.parse(payload.get("state"))
    except ValueError as e:
        return _error_response("E103", str(e)), 400

    try:
        access.check_access(login, ip)
        device = devices.get(ip)
    except RegistryError as e:
        logger.warning("Control request rejected: %s", e.message)
        return _error_response(e.code, e.message), e.http_status

    logger.info("User %s setting door state for %s to %s", login, ip, command.name)
    try:
        result = controller.set_door_state(device.to_target(), command, device.door_no)
    except CriticalError as e:
        return _error_response(e.code, e.message), 500
    except Exception as e:
        logger.exception("Unexpected error controlling %s", ip)
        return _error_response("E500", f"Internal error: {e}"), 500

    if result.success:
        try:
            devices.update_status(ip, int(command))
        except RegistryError as e:
            logger.error("Failed to record status for %s: %s", ip, e.message)

    return result.to_dict(), 200


def handle_users_list(access: AccessRegistry) -> Tuple[dict, int]:
    """Handle GET /api/users (administration)."""
    try:
        return access.list_users(), 200
    except RegistryError as e:
        return _error_response(e.code, e.message), e.http_status


def _error_response(code: str, message: str) -> dict:
    """Build error response dict."""
    return {"success": False, "code": code, "message": message}

"""CLI for the door command.

Usage:
    doorctl door --ip 192.168.1.100 --login admin --password secret --state 1 [--door 1]
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from common import DeviceTarget, DoorCommand
from config import ConfigError, load_settings
from controller.door import DoorStateController
from isapi.errors import CriticalError
from oplog import OperationLog

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def get_credentials_from_env() -> dict:
    """Get device credentials from environment variables.

    Returns:
        Dict with login, password (if set)
    """
    creds = {}

    if login := os.environ.get("DOORCTL_LOGIN"):
        creds["login"] = login

    if password := os.environ.get("DOORCTL_PASSWORD"):
        creds["password"] = password

    return creds


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="doorctl door",
        description="Set a door state on an access-control panel",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--ip", help="Device IP address")
    parser.add_argument(
        "--login",
        help="Device login. Env: DOORCTL_LOGIN",
    )
    parser.add_argument(
        "--password",
        help="Device password. Env: DOORCTL_PASSWORD",
    )
    parser.add_argument(
        "--state",
        help="1 (open), 2 (close), 3 (resume)",
    )
    parser.add_argument(
        "--door",
        type=_positive_int,
        default=1,
        help="Door number",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Per-request timeout in seconds (default: from doorctl.yaml or 10)",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        help="Operation log directory (default: from doorctl.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )
    return parser


def validate_params(ip, login, password, state) -> list[str]:
    """Check required parameters.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []

    if not ip:
        errors.append("Missing --ip parameter")
    if not login:
        errors.append("Missing --login parameter")
    if not password:
        errors.append("Missing --password parameter")
    if not state:
        errors.append("Missing --state parameter")
    elif state not in ("1", "2", "3"):
        errors.append("Invalid --state. Use: 1 (open), 2 (close), 3 (resume)")

    return errors


def main(argv=None) -> int:
    """CLI entry point for door command.

    Returns:
        0 if both protocol steps succeeded, 1 otherwise
    """
    args = build_parser().parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    env_creds = get_credentials_from_env()
    login = args.login or env_creds.get("login")
    password = args.password or env_creds.get("password")

    errors = validate_params(args.ip, login, password, args.state)
    if errors:
        print("Parameter errors:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return EXIT_FAILURE

    try:
        settings = load_settings()
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return EXIT_FAILURE

    controller = DoorStateController(
        operation_log=OperationLog(args.log_dir or settings.log_dir),
        timeout=args.timeout or settings.request_timeout,
    )
    target = DeviceTarget(host=args.ip, login=login, secret=password, door_no=args.door)
    command = DoorCommand.parse(args.state)

    print("Door Control (CLI Mode)")
    print("=" * 50)

    try:
        result = controller.set_door_state(target, command)
    except CriticalError as e:
        print(f"\nFatal error: {e.message}", file=sys.stderr)
        return EXIT_FAILURE

    print("\n" + "=" * 50)
    if result.success:
        print("Operation completed successfully!")
    else:
        print(f"Operation completed with {result.error_count} error(s)")
    print(f"Message: {result.message}")

    return EXIT_SUCCESS if result.success else EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())

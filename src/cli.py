#!/usr/bin/env python3
"""CLI entry point for doorctl.

Nouns:
- door: Set a door state on a panel (open/close/resume)
- server: Run the HTTP API
- devices: List registered devices
"""

import argparse
import json
import sys
from pathlib import Path

from common import DoorCommand
from config import ConfigError, load_settings

# Noun commands
NOUN_COMMANDS = {
    "door": "Set a door state on a panel (open/close/resume)",
    "server": "Run the HTTP API",
    "devices": "List registered devices",
}


def _print_usage():
    print("Usage: doorctl <command> [options]")
    print()
    print("Commands:")
    for noun, description in NOUN_COMMANDS.items():
        print(f"  {noun:<9}{description}")
    print()
    print("Run 'doorctl <command> --help' for command-specific options.")


def devices_main(argv: list) -> int:
    """List devices from the registry, optionally filtered by user access."""
    from registry import AccessRegistry, DeviceRegistry, RegistryError

    parser = argparse.ArgumentParser(
        prog="doorctl devices",
        description="List registered devices",
    )
    parser.add_argument("--config-dir", "-c", type=Path, help="Config directory")
    parser.add_argument("--login", help="Only devices this user may control")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config_dir)
        devices = DeviceRegistry(settings.devices_file)
        listed = devices.list_devices()
        if args.login:
            access = AccessRegistry(settings.users_file, devices)
            listed = [d for d in listed if access.has_access(args.login, d.ip)]
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except RegistryError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps([d.public_dict() for d in listed], indent=2, ensure_ascii=False))
        return 0

    if not listed:
        print("No devices registered")
        return 0
    for device in listed:
        status = DoorCommand.describe(device.last_status) if device.last_status else "-"
        print(f"  {device.ip:<16} door {device.door_no}  {status:<8} {device.name}")
    return 0


def dispatch_noun(noun: str, argv: list) -> int:
    """Dispatch to noun-specific CLI handler.

    Args:
        noun: The noun command (e.g., "door", "server")
        argv: Remaining command line arguments

    Returns:
        Exit code
    """
    if noun == "door":
        from controller.cli import main as door_main
        rc: int = door_main(argv)
        return rc

    if noun == "server":
        from server.cli import main as server_main
        rc = server_main(argv)
        return rc

    if noun == "devices":
        return devices_main(argv)

    print(f"Error: Unknown command '{noun}'")
    print(f"Available commands: {', '.join(NOUN_COMMANDS)}")
    return 1


def main(argv=None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if not argv or argv[0] in ("-h", "--help"):
        _print_usage()
        return 0 if argv else 1

    return dispatch_noun(argv[0], argv[1:])


if __name__ == '__main__':
    sys.exit(main())

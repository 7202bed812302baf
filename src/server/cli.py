"""CLI for the server command.

Runs the HTTP API in the foreground.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from config import ConfigError, load_settings
from server.httpd import Server

logger = logging.getLogger(__name__)


def main(argv=None):
    """CLI entry point for server command.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        prog="doorctl server",
        description="Run the door control HTTP API",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--config-dir", "-c",
        type=Path,
        help="Directory with doorctl.yaml, devices.json, users.json "
        "(default: $DOORCTL_ETC or ./config)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: from doorctl.yaml, $PORT or 3000)",
    )
    parser.add_argument(
        "--bind", "-b",
        help="Address to bind to (default: from doorctl.yaml or 0.0.0.0)",
    )
    parser.add_argument(
        "--no-poll",
        action="store_true",
        help="Disable the periodic device status check",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output startup info as JSON",
    )

    args = parser.parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        settings = load_settings(args.config_dir)
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    if args.port is not None:
        settings.port = args.port
    if args.bind:
        settings.bind = args.bind

    server = Server(settings, enable_poller=not args.no_poll)
    try:
        server.start()
    except (RuntimeError, OSError) as e:
        logger.error("Failed to start server: %s", e)
        return 1

    if args.json:
        info = {
            "url": f"http://{settings.bind}:{settings.port}",
            "port": settings.port,
            "devices_file": str(settings.devices_file),
            "users_file": str(settings.users_file),
            "log_dir": str(settings.log_dir),
        }
        print(json.dumps(info, indent=2))
    else:
        print(f"\nDoor control service running at http://{settings.bind}:{settings.port}")
        print(f"Device API: http://localhost:{settings.port}/api/devices?login=<user>")
        print("\nPress Ctrl+C to stop...")

    server.serve_forever()
    return 0


if __name__ == "__main__":
    sys.exit(main())

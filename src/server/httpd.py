"""HTTP server exposing the device list and door control API."""

import json
import logging
import signal
import sys
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qs, urlparse

from config import DEFAULT_BIND, DEFAULT_PORT, Settings
from controller.door import DoorStateController
from oplog import OperationLog
from registry.access import AccessRegistry
from registry.base import RegistryError
from registry.devices import DeviceRegistry
from server.api import handle_control_request, handle_devices_list, handle_users_list
from server.poller import StatusPoller

logger = logging.getLogger(__name__)

MAX_BODY_SIZE = 64 * 1024


class ServerHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the door control API."""

    # Class-level state (shared across requests)
    devices: Optional[DeviceRegistry] = None
    access: Optional[AccessRegistry] = None
    controller: Optional[DoorStateController] = None
    html_file: Optional[Path] = None

    def log_message(self, format: str, *args):
        """Override to use Python logging."""
        logger.info("%s - %s", self.address_string(), format % args)

    def end_headers(self):
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        super().end_headers()

    def send_json(self, data, status: int = 200):
        """Send JSON response."""
        body = json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")
        self.send_bytes(body, status, "application/json")

    def send_bytes(self, content: bytes, status: int, content_type: str):
        """Send bytes response."""
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(content)))
        self.end_headers()
        self.wfile.write(content)

    def do_OPTIONS(self):
        """Handle CORS preflight."""
        self.send_response(200)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_GET(self):
        """Handle GET requests."""
        parsed = urlparse(self.path)
        path = parsed.path.rstrip("/") or "/"

        if path == "/health":
            self.send_json({"status": "ok"})
            return

        if path == "/api/devices":
            login = parse_qs(parsed.query).get("login", [""])[0]
            response, status = handle_devices_list(login, self.devices, self.access)
            self.send_json(response, status)
            return

        if path == "/api/users":
            response, status = handle_users_list(self.access)
            self.send_json(response, status)
            return

        if path == "/":
            self._serve_html()
            return

        self._not_found()

    def do_POST(self):
        """Handle POST requests."""
        path = urlparse(self.path).path.rstrip("/")

        if path == "/api/control":
            try:
                length = int(self.headers.get("Content-Length") or 0)
            except ValueError:
                length = -1
            if length < 0:
                self.send_json(
                    {"success": False, "code": "E100", "message": "Invalid Content-Length"}, 400
                )
                return
            if length > MAX_BODY_SIZE:
                self.send_json(
                    {"success": False, "code": "E100", "message": "Request body too large"}, 413
                )
                return
            body = self.rfile.read(length) if length else b""
            response, status = handle_control_request(
                body, self.devices, self.access, self.controller
            )
            self.send_json(response, status)
            return

        self._not_found()

    def _not_found(self):
        self.send_json({"success": False, "code": "E404", "message": "Route not found"}, 404)

    def _serve_html(self):
        """Serve the configured index page."""
        if not self.html_file or not self.html_file.is_file():
            self.send_bytes(
                b"HTML file not found. Please create index.html", 404, "text/plain"
            )
            return
        try:
            content = self.html_file.read_bytes()
        except OSError as e:
            logger.error("Error serving HTML: %s", e)
            self.send_bytes(b"Error loading HTML file", 500, "text/plain")
            return
        self.send_bytes(content, 200, "text/html; charset=utf-8")


class Server:
    """Door control HTTP server with its background status poller."""

    def __init__(
        self,
        settings: Settings,
        devices: Optional[DeviceRegistry] = None,
        access: Optional[AccessRegistry] = None,
        controller: Optional[DoorStateController] = None,
        enable_poller: bool = True,
    ):
        """Initialize server.

        Args:
            settings: Resolved settings (paths, bind, port, intervals)
            devices: DeviceRegistry (created from settings if None)
            access: AccessRegistry (created from settings if None)
            controller: DoorStateController (created from settings if None)
            enable_poller: Run the periodic status check thread
        """
        self.settings = settings
        self.bind = settings.bind
        self.port = settings.port
        self.devices = devices or DeviceRegistry(settings.devices_file)
        self.access = access or AccessRegistry(settings.users_file, self.devices)
        self.controller = controller or DoorStateController(
            operation_log=OperationLog(settings.log_dir),
            timeout=settings.request_timeout,
        )
        self.enable_poller = enable_poller
        self.poller: Optional[StatusPoller] = None
        self.server: Optional[ThreadingHTTPServer] = None

    def start(self):
        """Bind the server and load the registries.

        Raises:
            RuntimeError: If the registries cannot be loaded
        """
        try:
            device_count = len(self.devices.list_devices())
            user_count = len(self.access.list_users()["users"])
        except RegistryError as e:
            logger.error("Failed to load registries: %s", e.message)
            raise RuntimeError(f"Registry init failed: {e.message}") from e

        ServerHandler.devices = self.devices
        ServerHandler.access = self.access
        ServerHandler.controller = self.controller
        ServerHandler.html_file = self.settings.html_file

        self.server = ThreadingHTTPServer((self.bind, self.port), ServerHandler)
        self.server.daemon_threads = True

        logger.info("Server starting on http://%s:%d", self.bind, self.port)
        logger.info("Devices file: %s (%d devices)", self.devices.path, device_count)
        logger.info("Users file: %s (%d users)", self.access.store.path, user_count)
        logger.info("HTML file: %s", self.settings.html_file)
        logger.info("Log directory: %s", self.settings.log_dir)

        if self.enable_poller:
            self.poller = StatusPoller(self.devices, self.settings.poll_interval)
            self.poller.start()

        self._setup_signal_handlers()

    def serve_forever(self):
        """Start serving requests."""
        if not self.server:
            raise RuntimeError("Server not started")

        try:
            self.server.serve_forever()
        except KeyboardInterrupt:
            logger.info("Shutdown requested")
        finally:
            self.shutdown()

    def shutdown(self):
        """Shutdown the server and the poller."""
        poller, self.poller = self.poller, None
        server, self.server = self.server, None
        if server is None and poller is None:
            return

        logger.info("Shutting down server")
        if poller:
            poller.stop()
        if server:
            server.shutdown()
            server.server_close()

    def _setup_signal_handlers(self):
        """Setup SIGTERM handler for graceful shutdown (main thread only)."""

        def handle_sigterm(signum, frame):
            # serve_forever unwinds and its finally block shuts down
            logger.info("Received SIGTERM")
            sys.exit(0)

        try:
            signal.signal(signal.SIGTERM, handle_sigterm)
        except ValueError:
            # Not in the main thread (tests)
            pass


def create_server(
    settings: Settings,
    bind: str = DEFAULT_BIND,
    port: int = DEFAULT_PORT,
    **kwargs,
) -> Server:
    """Create a server instance, overriding bind/port from settings.

    Returns:
        Server instance (not yet started)
    """
    settings.bind = bind
    settings.port = port
    return Server(settings, **kwargs)

"""Server package for the door control HTTP API.

Serves the per-user device list and the door control endpoint, with a
background thread that periodically re-reads the device registry.
"""

from server.httpd import (
    Server,
    ServerHandler,
    create_server,
)
from server.poller import StatusPoller

__all__ = [
    "Server",
    "ServerHandler",
    "create_server",
    "StatusPoller",
]

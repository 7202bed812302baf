"""Shared pytest fixtures for door control tests."""

import json
import re
import sys
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from common import DeviceTarget

OK_RESPONSE = """<?xml version="1.0" encoding="UTF-8"?>
<ResponseStatus version="2.0" xmlns="http://www.hikvision.com/ver20/XMLSchema">
<requestURL>/ISAPI/AccessControl/Door/param/1</requestURL>
<statusCode>1</statusCode>
<statusString>OK</statusString>
<subStatusCode>ok</subStatusCode>
</ResponseStatus>
"""

CHALLENGE = 'Digest qop="auth", realm="R", nonce="N", stale="FALSE"'


class MockDevice:
    """Scripted ISAPI panel.

    Each entry in `script` is (status, headers, body) answered in order;
    when the script runs out, `default` is used. Every request is recorded
    in `requests` as a dict.
    """

    def __init__(self):
        self.script = []
        self.default = (200, {}, OK_RESPONSE)
        self.requests = []
        self._lock = threading.Lock()

    def next_response(self, record: dict):
        with self._lock:
            self.requests.append(record)
            if self.script:
                return self.script.pop(0)
            return self.default

    def paths(self) -> list:
        return [r['path'] for r in self.requests]


def _handler_for(device: MockDevice):
    class Handler(BaseHTTPRequestHandler):
        def log_message(self, format, *args):
            pass

        def do_PUT(self):
            length = int(self.headers.get('Content-Length') or 0)
            body = self.rfile.read(length).decode('utf-8') if length else ''
            status, headers, reply = device.next_response({
                'method': 'PUT',
                'path': self.path,
                'headers': dict(self.headers),
                'body': body,
            })
            data = reply.encode('utf-8')
            self.send_response(status)
            for key, value in headers.items():
                self.send_header(key, value)
            self.send_header('Content-Type', 'application/xml')
            self.send_header('Content-Length', str(len(data)))
            self.end_headers()
            self.wfile.write(data)

    return Handler


@pytest.fixture
def mock_device():
    """Start a scripted device on 127.0.0.1 and yield (MockDevice, port)."""
    device = MockDevice()
    httpd = ThreadingHTTPServer(('127.0.0.1', 0), _handler_for(device))
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield device, httpd.server_address[1]
    httpd.shutdown()
    httpd.server_close()


@pytest.fixture
def device_target(mock_device):
    """DeviceTarget pointing at the mock device."""
    _, port = mock_device
    return DeviceTarget(host='127.0.0.1', login='admin', secret='secret', door_no=1, port=port)


def parse_authorization(header: str) -> dict:
    """Split a Digest Authorization header into its attributes."""
    assert header.startswith('Digest ')
    return {
        m.group(1): m.group(2) if m.group(2) is not None else m.group(3)
        for m in re.finditer(r'(\w+)=(?:"([^"]*)"|([^,\s]+))', header[7:])
    }


@pytest.fixture
def config_dir(tmp_path):
    """Create a config directory with two devices and three users."""
    config = tmp_path / 'config'
    config.mkdir()
    (config / 'devices.json').write_text(json.dumps({
        'devices': [
            {
                'name': 'Main entrance',
                'ip': '192.168.10.48',
                'login': 'admin',
                'password': 'admin123',
                'doorNo': 1,
                'lastStatus': 3,
                'lastUpdate': '2026-01-01T00:00:00.000+00:00',
            },
            {
                'name': 'Back exit',
                'ip': '192.168.10.49',
                'login': 'admin',
                'password': 'admin456',
                'doorNo': 2,
                'lastStatus': 3,
                'lastUpdate': '2026-01-01T00:00:00.000+00:00',
            },
        ]
    }))
    (config / 'users.json').write_text(json.dumps({
        'users': [
            {'login': 'ops@example.com', 'devices': ['all']},
            {'login': 'block_a', 'devices': ['192.168.10.48']},
            {'login': 'ghost', 'devices': ['192.168.10.99']},
        ]
    }))
    return config

"""Tests for isapi/transport.py - HTTP with Digest retry."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from common import DeviceTarget
from isapi.digest import DigestAuth
from isapi.errors import ChallengeParseError, RequestTimeoutError, TransportError
from isapi.transport import DEFAULT_TIMEOUT, DigestHttpTransport

from conftest import CHALLENGE, OK_RESPONSE, parse_authorization

PATH = "/ISAPI/AccessControl/Door/param/1"
BODY = "<DoorParam/>"


def _response(status: int, headers=None, text=""):
    response = MagicMock()
    response.status_code = status
    response.headers = headers or {}
    response.text = text
    return response


@pytest.fixture
def target():
    return DeviceTarget(host="192.168.1.100", login="admin", secret="secret")


@pytest.fixture
def transport():
    return DigestHttpTransport(DigestAuth("admin", "secret"))


class TestExecuteMocked:
    """Transport behaviour with requests.request patched."""

    def test_default_timeout(self):
        """Each attempt uses a 10 second timeout by default."""
        assert DEFAULT_TIMEOUT == 10.0
        assert DigestHttpTransport(DigestAuth("a", "b")).timeout == 10.0

    def test_no_challenge_needed(self, transport, target):
        """2xx on the first attempt returns the body without auth."""
        with patch("isapi.transport.requests.request") as mock_request:
            mock_request.return_value = _response(200, text=OK_RESPONSE)
            assert transport.execute(target, PATH, "PUT", BODY) == OK_RESPONSE

        mock_request.assert_called_once()
        args, kwargs = mock_request.call_args
        assert args == ("PUT", f"http://192.168.1.100:80{PATH}")
        assert kwargs["headers"]["Content-Type"] == "text/xml"
        assert kwargs["headers"]["Connection"] == "close"
        assert "Authorization" not in kwargs["headers"]
        assert kwargs["timeout"] == DEFAULT_TIMEOUT
        assert kwargs["data"] == BODY.encode()

    def test_challenge_then_success(self, transport, target):
        """401 with challenge is answered once with a Digest header."""
        with patch("isapi.transport.requests.request") as mock_request:
            mock_request.side_effect = [
                _response(401, {"WWW-Authenticate": CHALLENGE}),
                _response(200, text=OK_RESPONSE),
            ]
            assert transport.execute(target, PATH, "PUT", BODY) == OK_RESPONSE

        assert mock_request.call_count == 2
        retry_headers = mock_request.call_args_list[1][1]["headers"]
        attrs = parse_authorization(retry_headers["Authorization"])
        assert attrs["uri"] == PATH
        assert attrs["realm"] == "R"
        assert attrs["nonce"] == "N"
        assert attrs["nc"] == "00000001"

    def test_401_without_challenge(self, transport, target):
        """401 without WWW-Authenticate fails after a single attempt."""
        with patch("isapi.transport.requests.request") as mock_request:
            mock_request.return_value = _response(401)
            with pytest.raises(TransportError) as exc_info:
                transport.execute(target, PATH, "PUT", BODY)

        assert mock_request.call_count == 1
        assert exc_info.value.code == "E122"
        assert exc_info.value.status_code == 401

    def test_second_401_is_not_retried(self, transport, target):
        """A rejected credential is surfaced, not retried again."""
        with patch("isapi.transport.requests.request") as mock_request:
            mock_request.return_value = _response(401, {"WWW-Authenticate": CHALLENGE}, "Unauthorized")
            with pytest.raises(TransportError) as exc_info:
                transport.execute(target, PATH, "PUT", BODY)

        assert mock_request.call_count == 2
        assert exc_info.value.status_code == 401

    def test_incomplete_challenge(self, transport, target):
        """Challenge without nonce is an authentication failure."""
        with patch("isapi.transport.requests.request") as mock_request:
            mock_request.return_value = _response(401, {"WWW-Authenticate": 'Digest realm="R"'})
            with pytest.raises(ChallengeParseError):
                transport.execute(target, PATH, "PUT", BODY)

        assert mock_request.call_count == 1

    def test_server_error_on_retry(self, transport, target):
        """Non-2xx on the authenticated attempt raises TransportError."""
        with patch("isapi.transport.requests.request") as mock_request:
            mock_request.side_effect = [
                _response(401, {"WWW-Authenticate": CHALLENGE}),
                _response(500, text="boom"),
            ]
            with pytest.raises(TransportError) as exc_info:
                transport.execute(target, PATH, "PUT", BODY)

        assert exc_info.value.code == "E121"
        assert exc_info.value.status_code == 500
        assert "HTTP 500" in exc_info.value.message

    def test_timeout(self, transport, target):
        """A timed-out attempt raises RequestTimeoutError."""
        with patch("isapi.transport.requests.request") as mock_request:
            mock_request.side_effect = requests.exceptions.ReadTimeout("slow")
            with pytest.raises(RequestTimeoutError) as exc_info:
                transport.execute(target, PATH, "PUT", BODY)

        assert exc_info.value.code == "E123"
        assert exc_info.value.timeout == DEFAULT_TIMEOUT

    def test_connection_error(self, transport, target):
        """Connection failures raise TransportError."""
        with patch("isapi.transport.requests.request") as mock_request:
            mock_request.side_effect = requests.exceptions.ConnectionError("refused")
            with pytest.raises(TransportError) as exc_info:
                transport.execute(target, PATH, "PUT", BODY)

        assert exc_info.value.code == "E120"
        assert "192.168.1.100" in exc_info.value.message

    def test_nonce_count_continues_across_requests(self, transport, target):
        """The same transport keeps incrementing nc for the next request."""
        with patch("isapi.transport.requests.request") as mock_request:
            mock_request.side_effect = [
                _response(401, {"WWW-Authenticate": CHALLENGE}),
                _response(200, text=OK_RESPONSE),
                _response(401, {"WWW-Authenticate": CHALLENGE}),
                _response(200, text=OK_RESPONSE),
            ]
            transport.execute(target, PATH, "PUT", BODY)
            transport.execute(target, PATH, "PUT", BODY)

        auth_headers = [
            c[1]["headers"]["Authorization"]
            for c in mock_request.call_args_list
            if "Authorization" in c[1]["headers"]
        ]
        assert [parse_authorization(h)["nc"] for h in auth_headers] == ["00000001", "00000002"]


class TestExecuteIntegration:
    """Transport against a real local HTTP device."""

    def test_digest_handshake(self, mock_device, device_target):
        """Unauthenticated attempt, challenge, authenticated retry."""
        device, _ = mock_device
        device.script = [(401, {"WWW-Authenticate": CHALLENGE}, "")]
        transport = DigestHttpTransport(DigestAuth("admin", "secret"), timeout=5)

        body = transport.execute(device_target, PATH, "PUT", BODY)

        assert "<statusCode>1</statusCode>" in body
        assert len(device.requests) == 2
        first, second = device.requests
        assert "Authorization" not in first["headers"]
        assert first["body"] == BODY
        assert second["body"] == BODY
        attrs = parse_authorization(second["headers"]["Authorization"])
        assert attrs["username"] == "admin"
        assert attrs["uri"] == PATH

    def test_connection_refused(self):
        """Nothing listening on the port raises TransportError."""
        import socket
        with socket.socket() as s:
            s.bind(("127.0.0.1", 0))
            port = s.getsockname()[1]
        target = DeviceTarget(host="127.0.0.1", login="a", secret="b", port=port)
        transport = DigestHttpTransport(DigestAuth("a", "b"), timeout=2)

        with pytest.raises(TransportError):
            transport.execute(target, PATH, "PUT", BODY)

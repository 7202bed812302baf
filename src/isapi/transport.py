"""HTTP transport with one-shot Digest challenge/response.

Each physical attempt is its own connection (``Connection: close``, no
pooled session), so nothing carries over from the unauthenticated attempt
to the authenticated one.
"""

import logging
from typing import Optional

import requests

from common import DeviceTarget
from isapi.digest import DigestAuth
from isapi.errors import RequestTimeoutError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class DigestHttpTransport:
    """Send ISAPI requests, answering at most one Digest challenge each."""

    def __init__(self, auth: DigestAuth, timeout: float = DEFAULT_TIMEOUT):
        """Initialize transport.

        Args:
            auth: DigestAuth for the current operation (shared by its requests)
            timeout: Per-attempt timeout in seconds
        """
        self.auth = auth
        self.timeout = timeout

    def _send(
        self,
        target: DeviceTarget,
        path: str,
        method: str,
        body: Optional[str],
        authorization: Optional[str] = None,
    ) -> requests.Response:
        """Perform one physical HTTP attempt."""
        url = f"http://{target.host}:{target.port}{path}"
        headers = {
            "Content-Type": "text/xml",
            "Connection": "close",
        }
        if authorization:
            headers["Authorization"] = authorization

        logger.debug("%s %s (auth=%s)", method, url, bool(authorization))
        try:
            return requests.request(
                method,
                url,
                data=body.encode("utf-8") if body else None,
                headers=headers,
                timeout=self.timeout,
                allow_redirects=False,
            )
        except requests.exceptions.Timeout as e:
            raise RequestTimeoutError(url, self.timeout) from e
        except requests.exceptions.RequestException as e:
            raise TransportError("E120", f"Cannot connect to {target.host}: {e}") from e

    def execute(
        self,
        target: DeviceTarget,
        path: str,
        method: str,
        body: Optional[str] = None,
    ) -> str:
        """Send a request and return the response body.

        Args:
            target: Device to talk to
            path: Request path (also the Digest uri)
            method: HTTP method
            body: XML body

        Returns:
            Raw response body of the final 2xx response

        Raises:
            TransportError: Connection failure, non-2xx status, or a 401
                without a challenge
            RequestTimeoutError: An attempt exceeded the timeout
            ChallengeParseError: The challenge lacks realm or nonce
        """
        response = self._send(target, path, method, body)

        if response.status_code == 401:
            www_authenticate = response.headers.get("WWW-Authenticate")
            if not www_authenticate:
                raise TransportError(
                    "E122",
                    f"HTTP 401 without Digest challenge from {target.host}",
                    status_code=401,
                )

            challenge = self.auth.parse_challenge(www_authenticate)
            authorization, credential = self.auth.build_credential(challenge, method, path)
            logger.debug(
                "Answering Digest challenge realm=%s nc=%s", challenge.realm, credential.nc
            )
            response = self._send(target, path, method, body, authorization)

        logger.info("Response status from %s%s: %d", target.host, path, response.status_code)

        if not 200 <= response.status_code < 300:
            raise TransportError(
                "E121",
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        return response.text

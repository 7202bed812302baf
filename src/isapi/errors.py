"""Exceptions raised by the ISAPI protocol client."""

from typing import Optional


class IsapiError(Exception):
    """Base exception for device protocol errors."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


class ChallengeParseError(IsapiError):
    """Digest challenge missing, incomplete or unsupported."""

    def __init__(self, message: str):
        super().__init__("E110", message)


class TransportError(IsapiError):
    """Connection failure, write failure or non-2xx final status."""

    def __init__(self, code: str, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(code, message)


class RequestTimeoutError(TransportError):
    """A single HTTP attempt exceeded its deadline."""

    def __init__(self, url: str, timeout: float):
        self.timeout = timeout
        super().__init__("E123", f"Request timeout after {timeout}s: {url}")


class ProtocolStatusError(IsapiError):
    """Device answered with a status code other than 1, or garbage."""

    def __init__(self, code: str, message: str, status_code: Optional[str] = None):
        self.status_code = status_code
        super().__init__(code, message)


class CriticalError(IsapiError):
    """Unexpected failure while orchestrating a door state change."""

    def __init__(self, message: str):
        super().__init__("E500", message)

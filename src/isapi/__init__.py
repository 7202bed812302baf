"""ISAPI protocol client for access-control panels.

Builds the door configuration and remote-control requests, sends them
over HTTP with Digest authentication, and interprets the XML status the
device answers with.
"""

from isapi.errors import (
    IsapiError,
    ChallengeParseError,
    TransportError,
    RequestTimeoutError,
    ProtocolStatusError,
    CriticalError,
)
from isapi.digest import (
    DigestAuth,
    DigestChallenge,
    DigestCredential,
    parse_challenge,
)
from isapi.payloads import (
    IsapiRequest,
    build_config_payload,
    build_control_payload,
)
from isapi.response import (
    ResponseStatus,
    parse_response_status,
    check_response_status,
)
from isapi.transport import (
    DigestHttpTransport,
    DEFAULT_TIMEOUT,
)

__all__ = [
    # Errors
    "IsapiError",
    "ChallengeParseError",
    "TransportError",
    "RequestTimeoutError",
    "ProtocolStatusError",
    "CriticalError",
    # Digest
    "DigestAuth",
    "DigestChallenge",
    "DigestCredential",
    "parse_challenge",
    # Payloads
    "IsapiRequest",
    "build_config_payload",
    "build_control_payload",
    # Responses
    "ResponseStatus",
    "parse_response_status",
    "check_response_status",
    # Transport
    "DigestHttpTransport",
    "DEFAULT_TIMEOUT",
]

"""HTTP Digest authentication (RFC 2617, qop=auth, MD5).

The panels only speak MD5 with qop=auth and expect the Authorization
attributes in a fixed order, so this is hand-built rather than delegated
to requests.auth.HTTPDigestAuth.
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass, field

from isapi.errors import ChallengeParseError

logger = logging.getLogger(__name__)

_TOKEN_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_-"
)


@dataclass(frozen=True)
class DigestChallenge:
    """Parsed WWW-Authenticate challenge.

    An empty challenge (no realm, no nonce) stands for an absent or
    unparseable header.
    """
    realm: str = ''
    nonce: str = ''
    qop: str = ''
    opaque: str = ''
    algorithm: str = ''
    params: dict = field(default_factory=dict, compare=False)

    @property
    def is_complete(self) -> bool:
        return bool(self.realm and self.nonce)


@dataclass(frozen=True)
class DigestCredential:
    """Values sent in one Authorization header."""
    username: str
    response: str
    nc: str
    cnonce: str


def _tokenize(value: str) -> dict[str, str]:
    """Split 'key=value, key="quoted value"' pairs into a dict.

    Returns an empty dict if a quoted value is unterminated or a pair
    is missing its '='.
    """
    params: dict[str, str] = {}
    i = 0
    n = len(value)
    while i < n:
        while i < n and value[i] in ' \t,':
            i += 1
        if i >= n:
            break

        start = i
        while i < n and value[i] in _TOKEN_CHARS:
            i += 1
        key = value[start:i].lower()
        while i < n and value[i] in ' \t':
            i += 1
        if not key or i >= n or value[i] != '=':
            return {}
        i += 1
        while i < n and value[i] in ' \t':
            i += 1

        if i < n and value[i] == '"':
            i += 1
            chars = []
            while i < n and value[i] != '"':
                if value[i] == '\\' and i + 1 < n:
                    i += 1
                chars.append(value[i])
                i += 1
            if i >= n:
                return {}
            i += 1  # closing quote
            params[key] = ''.join(chars)
        else:
            start = i
            while i < n and value[i] not in ' \t,':
                i += 1
            params[key] = value[start:i]

    return params


def parse_challenge(header) -> DigestChallenge:
    """Parse a WWW-Authenticate header value.

    Args:
        header: Header value, e.g. 'Digest realm="R", nonce="N", qop="auth"'

    Returns:
        DigestChallenge; empty if the header is absent, not a Digest
        challenge, or unparseable
    """
    text = header.strip() if header else ''
    if not text:
        return DigestChallenge()

    scheme, *rest = text.split(None, 1)
    if scheme.lower() == 'digest':
        text = rest[0] if rest else ''
    elif '=' not in scheme:
        # Some other scheme (Basic, Bearer, ...)
        return DigestChallenge()

    params = _tokenize(text)
    if not params:
        logger.debug("Unparseable Digest challenge: %r", header)
        return DigestChallenge()

    return DigestChallenge(
        realm=params.get('realm', ''),
        nonce=params.get('nonce', ''),
        qop=params.get('qop', ''),
        opaque=params.get('opaque', ''),
        algorithm=params.get('algorithm', ''),
        params=params,
    )


def _md5(data: str) -> str:
    return hashlib.md5(data.encode('utf-8')).hexdigest()


class DigestAuth:
    """Digest credential generator for one control operation.

    The nonce count is per instance: it starts at 1 and grows with every
    credential built, including across the configure and control steps of
    the same operation. Create a new instance per operation.
    """

    def __init__(self, username: str, password: str):
        self.username = username
        self.password = password
        self.nonce_count = 0

    @staticmethod
    def parse_challenge(header) -> DigestChallenge:
        return parse_challenge(header)

    def build_credential(
        self,
        challenge: DigestChallenge,
        method: str,
        uri: str,
    ) -> tuple[str, DigestCredential]:
        """Compute the Authorization header for a request.

        Args:
            challenge: Challenge from the device's 401 response
            method: HTTP method of the request being retried
            uri: Request path, exactly as sent on the request line

        Returns:
            (header value, DigestCredential)

        Raises:
            ChallengeParseError: If realm or nonce is missing, or the
                challenge asks for an algorithm other than MD5
        """
        if not challenge.realm:
            raise ChallengeParseError("Digest challenge has no realm")
        if not challenge.nonce:
            raise ChallengeParseError("Digest challenge has no nonce")
        if challenge.algorithm and challenge.algorithm.upper() != 'MD5':
            raise ChallengeParseError(
                f"Unsupported Digest algorithm: {challenge.algorithm}"
            )

        self.nonce_count += 1
        nc = f"{self.nonce_count:08d}"
        cnonce = secrets.token_hex(8)

        ha1 = _md5(f"{self.username}:{challenge.realm}:{self.password}")
        ha2 = _md5(f"{method}:{uri}")
        response = _md5(f"{ha1}:{challenge.nonce}:{nc}:{cnonce}:auth:{ha2}")

        parts = [
            f'Digest username="{self.username}"',
            f'realm="{challenge.realm}"',
            f'nonce="{challenge.nonce}"',
            f'uri="{uri}"',
            'qop=auth',
            f'nc={nc}',
            f'cnonce="{cnonce}"',
            f'response="{response}"',
        ]
        if challenge.opaque:
            parts.append(f'opaque="{challenge.opaque}"')

        credential = DigestCredential(
            username=self.username,
            response=response,
            nc=nc,
            cnonce=cnonce,
        )
        return ', '.join(parts), credential

"""Interpretation of the device's ResponseStatus document.

Devices answer a PUT with something like:

    <ResponseStatus xmlns="http://www.hikvision.com/ver20/XMLSchema">
      <requestURL>/ISAPI/AccessControl/Door/param/1</requestURL>
      <statusCode>1</statusCode>
      <statusString>OK</statusString>
      <subStatusCode>ok</subStatusCode>
    </ResponseStatus>

Several firmware versions send an empty body or omit statusCode on
success, so a missing status code counts as success.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from xml.etree import ElementTree as ET

from isapi.errors import ProtocolStatusError

logger = logging.getLogger(__name__)

STATUS_OK = 1


@dataclass(frozen=True)
class ResponseStatus:
    """Fields of a ResponseStatus document (empty string when absent)."""
    status_code: str = ''
    status_string: str = ''
    sub_status_code: str = ''


def _local_name(tag: str) -> str:
    return tag.rsplit('}', 1)[-1]


def _child_text(element: ET.Element, name: str) -> str:
    # First match only; repeated elements are not collected into a list
    for child in element:
        if _local_name(child.tag) == name:
            return (child.text or '').strip()
    return ''


def parse_response_status(raw: str) -> Optional[ResponseStatus]:
    """Parse a device response body.

    Returns:
        ResponseStatus, or None if the body is blank or is not a
        ResponseStatus document

    Raises:
        ProtocolStatusError: If the body is not well-formed XML
    """
    if not raw or not raw.strip():
        return None

    try:
        root = ET.fromstring(raw.strip())
    except ET.ParseError as e:
        raise ProtocolStatusError("E131", f"Malformed device response: {e}") from e

    if _local_name(root.tag) != 'ResponseStatus':
        return None

    return ResponseStatus(
        status_code=_child_text(root, 'statusCode'),
        status_string=_child_text(root, 'statusString'),
        sub_status_code=_child_text(root, 'subStatusCode'),
    )


def check_response_status(raw: str) -> Optional[ResponseStatus]:
    """Raise unless the response reports success.

    Absent or empty statusCode is success; otherwise it must be exactly 1.

    Raises:
        ProtocolStatusError: On any other status code
    """
    status = parse_response_status(raw)
    if status is None or not status.status_code:
        return status

    try:
        code = int(status.status_code)
    except ValueError:
        code = None

    if code != STATUS_OK:
        detail = status.status_string or status.sub_status_code or 'no status string'
        logger.debug("Device status %s (%s)", status.status_code, detail)
        raise ProtocolStatusError(
            "E130",
            f"Device returned status {status.status_code}: {detail}",
            status_code=status.status_code,
        )
    return status

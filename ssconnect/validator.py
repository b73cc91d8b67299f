"""Validation of ss:// access keys."""

import re
from typing import Optional, Tuple

# ss://<userinfo>@<host>:<port>[/][?plugin=...][#tag]
# Userinfo is base64 (SIP002) or method:password; it must not contain '@'.
# Host: hostname, IPv4, or bracketed IPv6.
RE_TRANSPORT = re.compile(
    r'^ss://'
    r'(?P<userinfo>[^@\s]+)@'
    r'(?P<host>\[[0-9A-Fa-f:.]+\]|[A-Za-z0-9](?:[-A-Za-z0-9.]*[A-Za-z0-9])?)'
    r':(?P<port>\d{1,5})'
    r'(?P<rest>[/?#]\S*)?'
)

MAX_TRANSPORT_LEN = 8192
MAX_PORT = 65535


def _match(transport: str) -> Optional[re.Match]:
    if not transport or len(transport) > MAX_TRANSPORT_LEN:
        return None
    match = RE_TRANSPORT.fullmatch(transport)
    if not match or not 0 < int(match.group("port")) <= MAX_PORT:
        return None
    return match


def is_valid_transport(transport: str) -> bool:
    """Check whether a transport string has the ss:// access key shape."""
    return _match(transport) is not None


def parse_endpoint(transport: str) -> Tuple[Optional[str], Optional[str]]:
    """Extract (host, port) following the '@' identity marker.

    Returns:
        (host, port) strings, or (None, None) if the transport is malformed.
        IPv6 hosts are returned without brackets.
    """
    match = _match(transport)
    if not match:
        return None, None
    return match.group("host").strip("[]"), match.group("port")

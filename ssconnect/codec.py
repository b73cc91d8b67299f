"""Escaping of key names for single-line `name=transport` records."""

import re

SEPARATOR = "="

# The escape character must be escaped too, otherwise a name that already
# contains "%3D" would decode to "=".
_ESCAPES = {
    "%": "%25",
    SEPARATOR: "%3D",
    "\n": "%0A",
    "\r": "%0D",
}
_UNESCAPES = {code: char for char, code in _ESCAPES.items()}

_RE_ENCODE = re.compile("|".join(re.escape(char) for char in _ESCAPES))
_RE_DECODE = re.compile("|".join(re.escape(code) for code in _UNESCAPES))


def encode_name(name: str) -> str:
    """Encode a key name so it contains no separator or line break."""
    return _RE_ENCODE.sub(lambda m: _ESCAPES[m.group(0)], name)


def decode_name(token: str) -> str:
    """Inverse of encode_name()."""
    return _RE_DECODE.sub(lambda m: _UNESCAPES[m.group(0)], token)

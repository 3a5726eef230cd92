"""State numbering and character classes used by the HTTP parser."""

from __future__ import annotations

import enum
import string
from typing import Optional


class State(enum.IntEnum):
    """Parser states. Every state after HEADERS_ALMOST_DONE is a body state."""

    DEAD = 1
    START_REQ_OR_RES = enum.auto()
    RES_OR_RESP_H = enum.auto()
    START_RES = enum.auto()
    RES_H = enum.auto()
    RES_HT = enum.auto()
    RES_HTT = enum.auto()
    RES_HTTP = enum.auto()
    RES_FIRST_HTTP_MAJOR = enum.auto()
    RES_HTTP_MAJOR = enum.auto()
    RES_FIRST_HTTP_MINOR = enum.auto()
    RES_HTTP_MINOR = enum.auto()
    RES_FIRST_STATUS_CODE = enum.auto()
    RES_STATUS_CODE = enum.auto()
    RES_STATUS = enum.auto()
    RES_LINE_ALMOST_DONE = enum.auto()

    START_REQ = enum.auto()

    REQ_METHOD = enum.auto()
    REQ_SPACES_BEFORE_URL = enum.auto()
    REQ_SCHEMA = enum.auto()
    REQ_SCHEMA_SLASH = enum.auto()
    REQ_SCHEMA_SLASH_SLASH = enum.auto()
    REQ_HOST = enum.auto()
    REQ_PORT = enum.auto()
    REQ_PATH = enum.auto()
    REQ_QUERY_STRING_START = enum.auto()
    REQ_QUERY_STRING = enum.auto()
    REQ_FRAGMENT_START = enum.auto()
    REQ_FRAGMENT = enum.auto()
    REQ_HTTP_START = enum.auto()
    REQ_HTTP_H = enum.auto()
    REQ_HTTP_HT = enum.auto()
    REQ_HTTP_HTT = enum.auto()
    REQ_HTTP_HTTP = enum.auto()
    REQ_FIRST_HTTP_MAJOR = enum.auto()
    REQ_HTTP_MAJOR = enum.auto()
    REQ_FIRST_HTTP_MINOR = enum.auto()
    REQ_HTTP_MINOR = enum.auto()
    REQ_LINE_ALMOST_DONE = enum.auto()

    HEADER_FIELD_START = enum.auto()
    HEADER_FIELD = enum.auto()
    HEADER_VALUE_START = enum.auto()
    HEADER_VALUE = enum.auto()
    HEADER_ALMOST_DONE = enum.auto()
    HEADERS_ALMOST_DONE = enum.auto()

    CHUNK_SIZE_START = enum.auto()
    CHUNK_SIZE = enum.auto()
    CHUNK_SIZE_ALMOST_DONE = enum.auto()
    CHUNK_PARAMETERS = enum.auto()
    CHUNK_DATA = enum.auto()
    CHUNK_DATA_ALMOST_DONE = enum.auto()
    CHUNK_DATA_DONE = enum.auto()

    BODY_IDENTITY = enum.auto()
    BODY_IDENTITY_EOF = enum.auto()


class HeaderState(enum.IntEnum):
    """Progress while recognising the headers the parser cares about."""

    GENERAL = 0
    C = enum.auto()
    CO = enum.auto()
    CON = enum.auto()

    MATCHING_CONNECTION = enum.auto()
    MATCHING_PROXY_CONNECTION = enum.auto()
    MATCHING_CONTENT_LENGTH = enum.auto()
    MATCHING_TRANSFER_ENCODING = enum.auto()
    MATCHING_UPGRADE = enum.auto()

    CONNECTION = enum.auto()
    CONTENT_LENGTH = enum.auto()
    TRANSFER_ENCODING = enum.auto()
    UPGRADE = enum.auto()

    MATCHING_TRANSFER_ENCODING_CHUNKED = enum.auto()
    MATCHING_CONNECTION_KEEP_ALIVE = enum.auto()
    MATCHING_CONNECTION_CLOSE = enum.auto()

    TRANSFER_ENCODING_CHUNKED = enum.auto()
    CONNECTION_KEEP_ALIVE = enum.auto()
    CONNECTION_CLOSE = enum.auto()


class Flags(enum.IntFlag):
    """Per-message facts gathered from the headers."""

    CHUNKED = 1 << 0
    CONNECTION_KEEP_ALIVE = 1 << 1
    CONNECTION_CLOSE = 1 << 2
    TRAILING = 1 << 3
    UPGRADE = 1 << 4
    SKIPBODY = 1 << 5


# Header-name characters: RFC 2616 tokens, plus space, which the table admits.
_TOKEN_CHARS = frozenset(
    " !\"#$%&'*+-./" + string.digits + string.ascii_letters + "^_`|}~"
)

_HEX_VALUES = {ord(c): int(c, 16) for c in string.hexdigits}

# Printable ASCII that may appear unescaped in a path, query or fragment.
_URL_CHARS = frozenset(b for b in range(0x21, 0x7F) if b not in b"#?")


def _byte(ch: int) -> int:
    if not 0 <= ch <= 0xFF:
        raise ValueError(f"not a byte value: {ch!r}")
    return ch


def token(ch: int) -> Optional[str]:
    """Return the lower-cased header-name character for byte ``ch``, or None."""
    char = chr(_byte(ch))
    return char.lower() if char in _TOKEN_CHARS else None


def unhex(ch: int) -> Optional[int]:
    """Return the value of hexadecimal digit byte ``ch``, or None."""
    return _HEX_VALUES.get(_byte(ch))


def is_url_char(ch: int) -> bool:
    """Tell whether byte ``ch`` may appear as-is inside a URL component."""
    return _byte(ch) in _URL_CHARS
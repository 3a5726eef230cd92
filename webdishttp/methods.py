"""HTTP request methods and parser types."""

from __future__ import annotations

import enum


class HttpMethod(enum.IntEnum):
    """Request methods recognised by the parser, numbered as on the wire table."""

    DELETE = 0
    GET = 1
    HEAD = 2
    POST = 3
    PUT = 4
    CONNECT = 5
    OPTIONS = 6
    TRACE = 7
    COPY = 8
    LOCK = 9
    MKCOL = 10
    MOVE = 11
    PROPFIND = 12
    PROPPATCH = 13
    UNLOCK = 14
    REPORT = 15
    MKACTIVITY = 16
    CHECKOUT = 17
    MERGE = 18
    MSEARCH = 19
    NOTIFY = 20
    SUBSCRIBE = 21
    UNSUBSCRIBE = 22

    @property
    def text(self) -> str:
        """The method as it appears in a request line."""
        return _METHOD_STRINGS[self]


class ParserType(enum.IntEnum):
    """Kind of message a parser expects."""

    REQUEST = 0
    RESPONSE = 1
    BOTH = 2


_METHOD_STRINGS = {
    method: ("M-SEARCH" if method is HttpMethod.MSEARCH else method.name)
    for method in HttpMethod
}


def http_method_str(method: int) -> str:
    """Return the request-line spelling of ``method``.

    Raises ValueError for a number that names no method.
    """
    return _METHOD_STRINGS[HttpMethod(method)]
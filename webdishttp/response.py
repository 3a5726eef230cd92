"""HTTP responses as the server writes them: status line, headers and body."""

from __future__ import annotations

from typing import List, Optional, Tuple, Union

WEBDIS_VERSION = "0.1.2-dev"
SERVER_NAME = "Webdis"

_DEFAULT_HEADERS = (
    ("Server", SERVER_NAME),
    # Cross-Origin Resource Sharing.
    ("Allow", "GET,POST,PUT,OPTIONS"),
    # Some browsers ignore Allow and need Access-Control-Allow-Methods.
    ("Access-Control-Allow-Methods", "GET,POST,PUT,OPTIONS"),
    ("Access-Control-Allow-Origin", "*"),
    # Access-Control-Allow-Headers cannot be a wildcard.
    ("Access-Control-Allow-Headers", "X-Requested-With, Content-Type, Authorization"),
)

CROSSDOMAIN_POLICY = (
    b'<?xml version="1.0"?>\n'
    b'<!DOCTYPE cross-domain-policy SYSTEM '
    b'"http://www.macromedia.com/xml/dtds/cross-domain-policy.dtd">\n'
    b"<cross-domain-policy>\n"
    b'<allow-access-from domain="*" />\n'
    b"</cross-domain-policy>\n"
)

Body = Union[bytes, bytearray, memoryview, str]


def _to_bytes(body: Optional[Body]) -> Optional[bytes]:
    if body is None:
        return None
    if isinstance(body, str):
        return body.encode("utf-8")
    return bytes(body)


def format_chunk(data: Body) -> bytes:
    """Frame ``data`` as one chunk of a chunked transfer encoding."""
    payload = _to_bytes(data) or b""
    return b"%x\r\n" % len(payload) + payload + b"\r\n"


class HttpResponse:
    """A response under construction; ``render`` turns it into wire bytes.

    Every response starts with the server name and the CORS headers. After
    rendering, ``keep_alive`` tells whether the connection may stay open.
    """

    def __init__(self, code: int, msg: str) -> None:
        self.code = code
        self.msg = msg
        self.http_version = 0
        self.keep_alive = False
        self.chunked = False
        self.body: Optional[bytes] = None
        self._headers: List[List[str]] = []
        for key, value in _DEFAULT_HEADERS:
            self.set_header(key, value)

    @property
    def headers(self) -> List[Tuple[str, str]]:
        """The headers in the order they will be written."""
        return [(key, value) for key, value in self._headers]

    def set_header(self, key: str, value: str) -> None:
        """Set a header, replacing the first one whose name starts with ``key``."""
        for entry in self._headers:
            if entry[0].startswith(key):
                entry[0] = key
                entry[1] = value
                break
        else:
            self._headers.append([key, value])

        if not self.chunked and key == "Transfer-Encoding" and value == "chunked":
            self.chunked = True

    def set_body(self, body: Optional[Body]) -> None:
        """Use ``body`` as the response body, or send none when it is None."""
        self.body = _to_bytes(body)

    def set_keep_alive(self, enabled: bool) -> None:
        """Set the Connection header to Keep-Alive or Close."""
        self.keep_alive = bool(enabled)
        self.set_header("Connection", "Keep-Alive" if enabled else "Close")

    def render(self) -> bytes:
        """Return the complete response as it goes on the wire."""
        minor = 1 if self.http_version else 0
        status = f"HTTP/1.{minor} {self.code} {self.msg}\r\n"

        if not self.chunked:
            if self.code == 200 and self.body is not None:
                self.set_header("Content-Length", str(len(self.body)))
            else:
                self.set_header("Content-Length", "0")

        lines = [status]
        for key, value in self._headers:
            lines.append(f"{key}: {value}\r\n")
            if "connection".startswith(key.lower()) and "keep-alive".startswith(
                value.lower()
            ):
                self.keep_alive = True
        lines.append("\r\n")

        out = "".join(lines).encode("latin-1")
        if self.body:
            out += format_chunk(self.body) if self.chunked else self.body
        return out


def _client_response(
    code: int, msg: str, http_version: int, keep_alive: bool
) -> HttpResponse:
    response = HttpResponse(code, msg)
    response.http_version = http_version
    response.set_keep_alive(keep_alive)
    return response


def crossdomain_response(http_version: int, keep_alive: bool) -> HttpResponse:
    """The cross-domain policy document that allows every origin."""
    response = _client_response(200, "OK", http_version, keep_alive)
    response.set_header("Content-Type", "application/xml")
    response.set_body(CROSSDOMAIN_POLICY)
    return response


def error_response(
    code: int, msg: str, http_version: int, keep_alive: bool
) -> HttpResponse:
    """A body-less response carrying only a status code and message."""
    response = _client_response(code, msg, http_version, keep_alive)
    response.set_body(None)
    return response


def options_response(http_version: int, keep_alive: bool) -> HttpResponse:
    """The answer to an OPTIONS request."""
    response = _client_response(200, "OK", http_version, keep_alive)
    response.set_header("Content-Type", "text/html")
    response.set_header("Content-Length", "0")
    return response
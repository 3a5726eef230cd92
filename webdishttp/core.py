"""Parser state shared by the request-line, header and body stages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from .methods import HttpMethod, ParserType
from .tables import Flags, HeaderState, State

MAX_HEADER_SIZE = 80 * 1024
STRICT = True

_DATA_CALLBACKS = (
    "path",
    "query_string",
    "url",
    "fragment",
    "header_field",
    "header_value",
    "body",
)
_MARKED = ("header_field", "header_value", "fragment", "query_string", "path", "url")
_NOTIFICATIONS = ("message_begin", "headers_complete", "message_complete")

DataCallback = Callable[["ParserContext", bytes], Any]
Notification = Callable[["ParserContext"], Any]


class HttpParseError(ValueError):
    """Raised when the input is not a valid HTTP message."""

    def __init__(self, message: str, position: Optional[int] = None) -> None:
        super().__init__(message)
        self.position = position


@dataclass
class ParserSettings:
    """Callbacks invoked while parsing.

    Data callbacks get the parser and a bytes slice; they may be called several
    times for one value as data arrives in pieces. Notifications get only the
    parser. A truthy result from ``on_headers_complete`` means the message has
    no body. To abort parsing, a callback raises.
    """

    on_message_begin: Optional[Notification] = None
    on_path: Optional[DataCallback] = None
    on_query_string: Optional[DataCallback] = None
    on_url: Optional[DataCallback] = None
    on_fragment: Optional[DataCallback] = None
    on_header_field: Optional[DataCallback] = None
    on_header_value: Optional[DataCallback] = None
    on_headers_complete: Optional[Notification] = None
    on_body: Optional[DataCallback] = None
    on_message_complete: Optional[Notification] = None


class ParserContext:
    """Mutable parser state plus the settings whose callbacks it fires."""

    def __init__(
        self,
        parser_type: ParserType = ParserType.REQUEST,
        settings: Optional[ParserSettings] = None,
    ) -> None:
        self.parser_type = ParserType(parser_type)
        self.settings = settings if settings is not None else ParserSettings()
        if self.parser_type is ParserType.REQUEST:
            self.state = State.START_REQ
        elif self.parser_type is ParserType.RESPONSE:
            self.state = State.START_RES
        else:
            self.state = State.START_REQ_OR_RES
        self.header_state = HeaderState.GENERAL
        self.flags = Flags(0)
        self.index = 0
        self.nread = 0
        self.content_length = -1
        self.http_major = 0
        self.http_minor = 0
        self.status_code = 0
        self.method = HttpMethod.DELETE
        self.upgrade = False
        self.data: Any = None
        self.marks: dict[str, Optional[int]] = dict.fromkeys(_MARKED)

    def mark(self, name: str, pos: Optional[int]) -> None:
        """Record where the value ``name`` starts in the current chunk."""
        if name not in self.marks:
            raise ValueError(f"no mark named {name!r}")
        self.marks[name] = pos

    def emit(self, name: str, data: bytes, pos: int, clear: bool = True) -> None:
        """Hand the marked part of ``data`` up to ``pos`` to the ``name`` callback."""
        if name not in self.marks:
            raise ValueError(f"no mark named {name!r}")
        start = self.marks[name]
        if start is not None:
            callback = getattr(self.settings, f"on_{name}")
            if callback is not None:
                callback(self, bytes(data[start:pos]))
        if clear:
            self.marks[name] = None

    def notify(self, name: str) -> Any:
        """Fire the ``name`` notification and return what the callback returned."""
        if name not in _NOTIFICATIONS:
            raise ValueError(f"no notification named {name!r}")
        callback = getattr(self.settings, f"on_{name}")
        if callback is None:
            return None
        return callback(self)

    def should_keep_alive(self) -> bool:
        """Tell whether the connection stays open after the current message."""
        if self.http_major > 0 and self.http_minor > 0:
            return not self.flags & Flags.CONNECTION_CLOSE
        return bool(self.flags & Flags.CONNECTION_KEEP_ALIVE)
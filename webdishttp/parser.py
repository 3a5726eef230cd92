"""Incremental HTTP/1.x message parser driven by callbacks."""

from __future__ import annotations

from typing import Callable, Dict, Optional, Union

from .core import (
    MAX_HEADER_SIZE,
    STRICT,
    HttpParseError,
    ParserContext,
    ParserSettings,
)
from .headers import step_header
from .methods import ParserType
from .startline import step_request_line, step_response_line
from .tables import Flags, State, unhex

CR = 0x0D
LF = 0x0A
SP = 0x20

# Values still open at the end of a chunk are handed up in this order.
_FLUSH_ORDER = ("header_field", "header_value", "fragment", "query_string", "path", "url")

# States in which a URL is being read, so its mark resumes at a chunk's start.
_URL_STATES = frozenset(
    {
        State.REQ_PATH,
        State.REQ_SCHEMA,
        State.REQ_SCHEMA_SLASH,
        State.REQ_SCHEMA_SLASH_SLASH,
        State.REQ_PORT,
        State.REQ_QUERY_STRING_START,
        State.REQ_QUERY_STRING,
        State.REQ_HOST,
        State.REQ_FRAGMENT_START,
        State.REQ_FRAGMENT,
    }
)

_RESUMED_MARKS = {
    State.HEADER_FIELD: "header_field",
    State.HEADER_VALUE: "header_value",
    State.REQ_FRAGMENT: "fragment",
    State.REQ_QUERY_STRING: "query_string",
    State.REQ_PATH: "path",
}

BodyStep = Callable[["HttpParser", int, bytes, int], int]


def _fail(ctx: ParserContext, pos: int, reason: str) -> None:
    ctx.state = State.DEAD
    raise HttpParseError(reason, pos)


def _deliver_body(ctx: ParserContext, chunk: bytes) -> None:
    callback = ctx.settings.on_body
    if callback is not None:
        callback(ctx, chunk)


def _new_message_state(ctx: ParserContext) -> State:
    if STRICT and not ctx.should_keep_alive():
        return State.DEAD
    if ctx.parser_type is ParserType.REQUEST:
        return State.START_REQ
    return State.START_RES


def _complete_message(ctx: ParserContext) -> None:
    ctx.notify("message_complete")
    ctx.state = _new_message_state(ctx)


# --- body states -------------------------------------------------------------
# Each step gets the byte at ``pos`` and returns the position of the last
# byte it consumed.


def _body_identity(ctx: "HttpParser", ch: int, data: bytes, pos: int) -> int:
    to_read = min(len(data) - pos, ctx.content_length)
    if to_read > 0:
        _deliver_body(ctx, data[pos : pos + to_read])
        pos += to_read - 1
        ctx.content_length -= to_read
        if ctx.content_length == 0:
            _complete_message(ctx)
    return pos


def _body_identity_eof(ctx: "HttpParser", ch: int, data: bytes, pos: int) -> int:
    to_read = len(data) - pos
    if to_read > 0:
        _deliver_body(ctx, data[pos:])
        pos += to_read - 1
    return pos


def _chunk_size_start(ctx: "HttpParser", ch: int, data: bytes, pos: int) -> int:
    value = unhex(ch)
    if value is None:
        _fail(ctx, pos, "bad chunk size")
    ctx.content_length = value
    ctx.state = State.CHUNK_SIZE
    return pos


def _chunk_size(ctx: "HttpParser", ch: int, data: bytes, pos: int) -> int:
    if ch == CR:
        ctx.state = State.CHUNK_SIZE_ALMOST_DONE
        return pos
    value = unhex(ch)
    if value is None:
        if ch in (ord(";"), SP):
            ctx.state = State.CHUNK_PARAMETERS
            return pos
        _fail(ctx, pos, "bad chunk size")
    ctx.content_length = ctx.content_length * 16 + value
    return pos


def _chunk_parameters(ctx: "HttpParser", ch: int, data: bytes, pos: int) -> int:
    if ch == CR:
        ctx.state = State.CHUNK_SIZE_ALMOST_DONE
    return pos


def _chunk_size_almost_done(ctx: "HttpParser", ch: int, data: bytes, pos: int) -> int:
    if STRICT and ch != LF:
        _fail(ctx, pos, "chunk size line not ended by LF")
    if ctx.content_length == 0:
        ctx.flags |= Flags.TRAILING
        ctx.state = State.HEADER_FIELD_START
    else:
        ctx.state = State.CHUNK_DATA
    return pos


def _chunk_data(ctx: "HttpParser", ch: int, data: bytes, pos: int) -> int:
    to_read = min(len(data) - pos, ctx.content_length)
    if to_read > 0:
        _deliver_body(ctx, data[pos : pos + to_read])
        pos += to_read - 1
    if to_read == ctx.content_length:
        ctx.state = State.CHUNK_DATA_ALMOST_DONE
    ctx.content_length -= to_read
    return pos


def _chunk_data_almost_done(ctx: "HttpParser", ch: int, data: bytes, pos: int) -> int:
    if STRICT and ch != CR:
        _fail(ctx, pos, "chunk data not followed by CR")
    ctx.state = State.CHUNK_DATA_DONE
    return pos


def _chunk_data_done(ctx: "HttpParser", ch: int, data: bytes, pos: int) -> int:
    if STRICT and ch != LF:
        _fail(ctx, pos, "chunk data not followed by LF")
    ctx.state = State.CHUNK_SIZE_START
    return pos


_BODY_STEPS: Dict[State, BodyStep] = {
    State.BODY_IDENTITY: _body_identity,
    State.BODY_IDENTITY_EOF: _body_identity_eof,
    State.CHUNK_SIZE_START: _chunk_size_start,
    State.CHUNK_SIZE: _chunk_size,
    State.CHUNK_PARAMETERS: _chunk_parameters,
    State.CHUNK_SIZE_ALMOST_DONE: _chunk_size_almost_done,
    State.CHUNK_DATA: _chunk_data,
    State.CHUNK_DATA_ALMOST_DONE: _chunk_data_almost_done,
    State.CHUNK_DATA_DONE: _chunk_data_done,
}


class HttpParser(ParserContext):
    """Parses HTTP requests or responses fed to it in arbitrary pieces.

    Callbacks from the settings receive this parser, so they can read
    ``method``, ``status_code``, ``http_major`` and the like, and keep their
    own state in ``data``.
    """

    def __init__(
        self,
        parser_type: ParserType = ParserType.REQUEST,
        settings: Optional[ParserSettings] = None,
    ) -> None:
        super().__init__(parser_type, settings)

    def execute(self, data: Union[bytes, bytearray, memoryview]) -> int:
        """Parse the next piece of the stream and return how many bytes were used.

        An empty piece signals end of input, which completes a body that runs
        until the connection closes. When the connection is upgraded the
        returned count is the offset of the LF that ended the headers, and
        ``upgrade`` is set. Raises HttpParseError on bad input, after which
        the parser stays dead.
        """
        data = bytes(data)
        size = len(data)
        if size == 0:
            if self.state is State.BODY_IDENTITY_EOF:
                self.notify("message_complete")
            return 0

        self._resume_marks()

        pos = 0
        while pos < size:
            ch = data[pos]
            state = self.state

            if state <= State.HEADERS_ALMOST_DONE and not self.flags & Flags.TRAILING:
                self.nread += 1
                if self.nread > MAX_HEADER_SIZE:
                    _fail(self, pos, "header section too large")

            if state <= State.RES_LINE_ALMOST_DONE:
                step_response_line(self, ch, data, pos)
            elif state <= State.REQ_LINE_ALMOST_DONE:
                step_request_line(self, ch, data, pos)
            elif state <= State.HEADERS_ALMOST_DONE:
                step_header(self, ch, data, pos)
                if self._stopped_for_upgrade(state, ch):
                    return pos
            else:
                pos = _BODY_STEPS[state](self, ch, data, pos)
            pos += 1

        for name in _FLUSH_ORDER:
            self.emit(name, data, size, clear=False)
        return size

    def should_keep_alive(self) -> bool:
        """Tell whether the connection stays open after the current message."""
        return super().should_keep_alive()

    def _resume_marks(self) -> None:
        for name in self.marks:
            self.marks[name] = None
        resumed = _RESUMED_MARKS.get(self.state)
        if resumed is not None:
            self.marks[resumed] = 0
        if self.state in _URL_STATES:
            self.marks["url"] = 0

    def _stopped_for_upgrade(self, previous: State, ch: int) -> bool:
        ended_headers = previous is State.HEADERS_ALMOST_DONE or (
            previous is State.HEADER_FIELD_START and ch == LF
        )
        return (
            ended_headers
            and self.upgrade
            and self.state is State.HEADERS_ALMOST_DONE
        )
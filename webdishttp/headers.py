"""Byte-at-a-time handling of HTTP header lines and the end of the header block."""

from __future__ import annotations

from typing import Callable, Dict

from .core import STRICT, HttpParseError, ParserContext
from .methods import HttpMethod, ParserType
from .tables import Flags, HeaderState, State, token

CR = 0x0D
LF = 0x0A
SP = 0x20

_CONNECTION = "connection"
_PROXY_CONNECTION = "proxy-connection"
_CONTENT_LENGTH = "content-length"
_TRANSFER_ENCODING = "transfer-encoding"
_UPGRADE = "upgrade"
_CHUNKED = "chunked"
_KEEP_ALIVE = "keep-alive"
_CLOSE = "close"

# Header names being matched, the word they are matched against, and the
# state reached once the whole word has been seen.
_NAME_MATCHERS = {
    HeaderState.MATCHING_CONNECTION: (_CONNECTION, HeaderState.CONNECTION),
    HeaderState.MATCHING_PROXY_CONNECTION: (_PROXY_CONNECTION, HeaderState.CONNECTION),
    HeaderState.MATCHING_CONTENT_LENGTH: (_CONTENT_LENGTH, HeaderState.CONTENT_LENGTH),
    HeaderState.MATCHING_TRANSFER_ENCODING: (
        _TRANSFER_ENCODING,
        HeaderState.TRANSFER_ENCODING,
    ),
    HeaderState.MATCHING_UPGRADE: (_UPGRADE, HeaderState.UPGRADE),
}

_VALUE_MATCHERS = {
    HeaderState.MATCHING_TRANSFER_ENCODING_CHUNKED: (
        _CHUNKED,
        HeaderState.TRANSFER_ENCODING_CHUNKED,
    ),
    HeaderState.MATCHING_CONNECTION_KEEP_ALIVE: (
        _KEEP_ALIVE,
        HeaderState.CONNECTION_KEEP_ALIVE,
    ),
    HeaderState.MATCHING_CONNECTION_CLOSE: (_CLOSE, HeaderState.CONNECTION_CLOSE),
}

_NAME_COMPLETE = frozenset(
    {
        HeaderState.CONNECTION,
        HeaderState.CONTENT_LENGTH,
        HeaderState.TRANSFER_ENCODING,
        HeaderState.UPGRADE,
    }
)

_VALUE_COMPLETE = frozenset(
    {
        HeaderState.TRANSFER_ENCODING_CHUNKED,
        HeaderState.CONNECTION_KEEP_ALIVE,
        HeaderState.CONNECTION_CLOSE,
    }
)

_FIELD_START_STATES = {
    "c": HeaderState.C,
    "p": HeaderState.MATCHING_PROXY_CONNECTION,
    "t": HeaderState.MATCHING_TRANSFER_ENCODING,
    "u": HeaderState.MATCHING_UPGRADE,
}

_FLAG_FOR_HEADER = {
    HeaderState.CONNECTION_KEEP_ALIVE: Flags.CONNECTION_KEEP_ALIVE,
    HeaderState.CONNECTION_CLOSE: Flags.CONNECTION_CLOSE,
    HeaderState.TRANSFER_ENCODING_CHUNKED: Flags.CHUNKED,
}

Step = Callable[[ParserContext, int, bytes, int], None]


def _fail(ctx: ParserContext, pos: int, reason: str) -> None:
    ctx.state = State.DEAD
    raise HttpParseError(reason, pos)


def _is_digit(ch: int) -> bool:
    return 0x30 <= ch <= 0x39


def _lower(ch: int) -> str:
    return chr((ch | 0x20) & 0xFF)


def _advance_match(
    ctx: ParserContext, char: str, word: str, complete: HeaderState
) -> None:
    """Compare ``char`` with the next letter of ``word``."""
    ctx.index += 1
    if ctx.index >= len(word) or char != word[ctx.index]:
        ctx.header_state = HeaderState.GENERAL
    elif ctx.index == len(word) - 1:
        ctx.header_state = complete


def _new_message_state(ctx: ParserContext) -> State:
    if STRICT and not ctx.should_keep_alive():
        return State.DEAD
    if ctx.parser_type is ParserType.REQUEST:
        return State.START_REQ
    return State.START_RES


def _complete_message(ctx: ParserContext) -> None:
    ctx.notify("message_complete")
    ctx.state = _new_message_state(ctx)


def _header_done(ctx: ParserContext) -> None:
    ctx.state = State.HEADER_FIELD_START
    flag = _FLAG_FOR_HEADER.get(ctx.header_state)
    if flag is not None:
        ctx.flags |= flag


# --- header names ----------------------------------------------------------


def _field_start(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if ch == CR:
        ctx.state = State.HEADERS_ALMOST_DONE
        return
    if ch == LF:
        # A bare LF ends the header block just as CR LF does.
        ctx.state = State.HEADERS_ALMOST_DONE
        finish_headers(ctx, data, pos)
        return
    char = token(ch)
    if char is None:
        _fail(ctx, pos, "bad character in header name")
    ctx.mark("header_field", pos)
    ctx.index = 0
    ctx.state = State.HEADER_FIELD
    ctx.header_state = _FIELD_START_STATES.get(char, HeaderState.GENERAL)


def _match_name(ctx: ParserContext, char: str, ch: int) -> None:
    state = ctx.header_state
    if state is HeaderState.GENERAL:
        return
    if state is HeaderState.C:
        ctx.index += 1
        ctx.header_state = HeaderState.CO if char == "o" else HeaderState.GENERAL
    elif state is HeaderState.CO:
        ctx.index += 1
        ctx.header_state = HeaderState.CON if char == "n" else HeaderState.GENERAL
    elif state is HeaderState.CON:
        ctx.index += 1
        if char == "n":
            ctx.header_state = HeaderState.MATCHING_CONNECTION
        elif char == "t":
            ctx.header_state = HeaderState.MATCHING_CONTENT_LENGTH
        else:
            ctx.header_state = HeaderState.GENERAL
    elif state in _NAME_MATCHERS:
        word, complete = _NAME_MATCHERS[state]
        _advance_match(ctx, char, word, complete)
    elif state in _NAME_COMPLETE:
        if ch != SP:
            ctx.header_state = HeaderState.GENERAL


def _field(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    char = token(ch)
    if char is not None:
        _match_name(ctx, char, ch)
        return
    if ch == ord(":"):
        ctx.emit("header_field", data, pos)
        ctx.state = State.HEADER_VALUE_START
    elif ch == CR:
        ctx.state = State.HEADER_ALMOST_DONE
        ctx.emit("header_field", data, pos)
    elif ch == LF:
        ctx.emit("header_field", data, pos)
        ctx.state = State.HEADER_FIELD_START
    else:
        _fail(ctx, pos, "bad character in header name")


# --- header values ---------------------------------------------------------


def _value_start(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if ch == SP:
        return
    ctx.mark("header_value", pos)
    ctx.state = State.HEADER_VALUE
    ctx.index = 0
    if ch == CR:
        ctx.emit("header_value", data, pos)
        ctx.header_state = HeaderState.GENERAL
        ctx.state = State.HEADER_ALMOST_DONE
        return
    if ch == LF:
        ctx.emit("header_value", data, pos)
        ctx.state = State.HEADER_FIELD_START
        return

    char = _lower(ch)
    state = ctx.header_state
    if state is HeaderState.UPGRADE:
        ctx.flags |= Flags.UPGRADE
        ctx.header_state = HeaderState.GENERAL
    elif state is HeaderState.TRANSFER_ENCODING:
        ctx.header_state = (
            HeaderState.MATCHING_TRANSFER_ENCODING_CHUNKED
            if char == "c"
            else HeaderState.GENERAL
        )
    elif state is HeaderState.CONTENT_LENGTH:
        if not _is_digit(ch):
            _fail(ctx, pos, "bad Content-Length")
        ctx.content_length = ch - 0x30
    elif state is HeaderState.CONNECTION:
        if char == "k":
            ctx.header_state = HeaderState.MATCHING_CONNECTION_KEEP_ALIVE
        elif char == "c":
            ctx.header_state = HeaderState.MATCHING_CONNECTION_CLOSE
        else:
            ctx.header_state = HeaderState.GENERAL
    else:
        ctx.header_state = HeaderState.GENERAL


def _value(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if ch == CR:
        ctx.emit("header_value", data, pos)
        ctx.state = State.HEADER_ALMOST_DONE
        return
    if ch == LF:
        ctx.emit("header_value", data, pos)
        _header_done(ctx)
        return

    state = ctx.header_state
    if state is HeaderState.GENERAL:
        return
    if state is HeaderState.CONTENT_LENGTH:
        if ch == SP:
            return
        if not _is_digit(ch):
            _fail(ctx, pos, "bad Content-Length")
        ctx.content_length = ctx.content_length * 10 + ch - 0x30
    elif state in _VALUE_MATCHERS:
        word, complete = _VALUE_MATCHERS[state]
        _advance_match(ctx, _lower(ch), word, complete)
    elif state in _VALUE_COMPLETE:
        if ch != SP:
            ctx.header_state = HeaderState.GENERAL
    else:
        ctx.header_state = HeaderState.GENERAL


def _almost_done(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if STRICT and ch != LF:
        _fail(ctx, pos, "header line not ended by LF")
    _header_done(ctx)


def _headers_almost_done(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if STRICT and ch != LF:
        _fail(ctx, pos, "header block not ended by LF")
    finish_headers(ctx, data, pos)


_HEADER_STEPS: Dict[State, Step] = {
    State.HEADER_FIELD_START: _field_start,
    State.HEADER_FIELD: _field,
    State.HEADER_VALUE_START: _value_start,
    State.HEADER_VALUE: _value,
    State.HEADER_ALMOST_DONE: _almost_done,
    State.HEADERS_ALMOST_DONE: _headers_almost_done,
}


def step_header(ctx: ParserContext, ch: int, data: bytes, pos: int) -> State:
    """Consume byte ``ch`` (at ``pos`` in ``data``) of the header block.

    Returns the new state. When the parser has to stop because the
    connection is being upgraded, ``ctx.upgrade`` is set. Raises
    HttpParseError, leaving the parser dead, on bad input.
    """
    step = _HEADER_STEPS.get(ctx.state)
    if step is None:
        raise ValueError(f"state {ctx.state.name} is not part of the headers")
    step(ctx, ch, data, pos)
    return ctx.state


def finish_headers(ctx: ParserContext, data: bytes, pos: int) -> bool:
    """Act on the end of the header block, whose last LF is at ``pos``.

    Decides how the body is to be read, or completes the message when there
    is none. Returns True when parsing has to stop here because the
    connection switches to another protocol.
    """
    if ctx.flags & Flags.TRAILING:
        # End of a chunked message's trailer.
        _complete_message(ctx)
        return False

    ctx.nread = 0

    if ctx.flags & Flags.UPGRADE or ctx.method is HttpMethod.CONNECT:
        ctx.upgrade = True

    if ctx.notify("headers_complete"):
        ctx.flags |= Flags.SKIPBODY

    if ctx.upgrade:
        ctx.notify("message_complete")
        return True

    if ctx.flags & Flags.SKIPBODY:
        _complete_message(ctx)
    elif ctx.flags & Flags.CHUNKED:
        ctx.state = State.CHUNK_SIZE_START
    elif ctx.content_length == 0:
        _complete_message(ctx)
    elif ctx.content_length > 0:
        ctx.state = State.BODY_IDENTITY
    elif ctx.parser_type is ParserType.REQUEST or ctx.should_keep_alive():
        _complete_message(ctx)
    else:
        ctx.state = State.BODY_IDENTITY_EOF
    return False
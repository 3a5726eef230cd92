"""Byte-at-a-time handling of HTTP request lines and status lines."""

from __future__ import annotations

from typing import Callable, Dict

from .core import STRICT, HttpParseError, ParserContext
from .methods import HttpMethod, ParserType
from .tables import Flags, State, is_url_char

CR = 0x0D
LF = 0x0A
SP = 0x20

_MAX_VERSION_PART = 999
_MAX_STATUS_CODE = 999

_METHOD_BY_INITIAL = {
    ord("C"): HttpMethod.CONNECT,  # or COPY, CHECKOUT
    ord("D"): HttpMethod.DELETE,
    ord("G"): HttpMethod.GET,
    ord("H"): HttpMethod.HEAD,
    ord("L"): HttpMethod.LOCK,
    ord("M"): HttpMethod.MKCOL,  # or MOVE, MKACTIVITY, MERGE, M-SEARCH
    ord("N"): HttpMethod.NOTIFY,
    ord("O"): HttpMethod.OPTIONS,
    ord("P"): HttpMethod.POST,  # or PROPFIND, PROPPATCH, PUT
    ord("R"): HttpMethod.REPORT,
    ord("S"): HttpMethod.SUBSCRIBE,
    ord("T"): HttpMethod.TRACE,
    ord("U"): HttpMethod.UNLOCK,  # or UNSUBSCRIBE
}

Step = Callable[[ParserContext, int, bytes, int], None]


def _fail(ctx: ParserContext, pos: int, reason: str) -> None:
    ctx.state = State.DEAD
    raise HttpParseError(reason, pos)


def _strict_expect(ctx: ParserContext, ch: int, expected: str, pos: int) -> None:
    if STRICT and ch != ord(expected):
        _fail(ctx, pos, f"expected {expected!r}, got byte {ch:#04x}")


def _is_digit(ch: int) -> bool:
    return 0x30 <= ch <= 0x39


def _is_lower_alpha(ch: int) -> bool:
    lowered = (ch | 0x20) & 0xFF
    return 0x61 <= lowered <= 0x7A


def _begin_message(ctx: ParserContext) -> None:
    ctx.flags = Flags(0)
    ctx.content_length = -1
    ctx.notify("message_begin")


def _http09(ctx: ParserContext) -> None:
    ctx.http_major = 0
    ctx.http_minor = 9


def _start_method(ctx: ParserContext, ch: int, pos: int) -> None:
    method = _METHOD_BY_INITIAL.get(ch)
    if method is None:
        _fail(ctx, pos, "unknown request method")
    ctx.method = method
    ctx.index = 1
    ctx.state = State.REQ_METHOD


# --- status line -----------------------------------------------------------


def _dead(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    _fail(ctx, pos, "data after the connection was closed")


def _start_req_or_res(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if ch in (CR, LF):
        return
    _begin_message(ctx)
    if ch == ord("H"):
        ctx.state = State.RES_OR_RESP_H
    else:
        ctx.parser_type = ParserType.REQUEST
        _start_method(ctx, ch, pos)


def _res_or_resp_h(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if ch == ord("T"):
        ctx.parser_type = ParserType.RESPONSE
        ctx.state = State.RES_HT
        return
    if ch != ord("E"):
        _fail(ctx, pos, "neither a request nor a response")
    ctx.parser_type = ParserType.REQUEST
    ctx.method = HttpMethod.HEAD
    ctx.index = 2
    ctx.state = State.REQ_METHOD


def _start_res(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    _begin_message(ctx)
    if ch == ord("H"):
        ctx.state = State.RES_H
    elif ch not in (CR, LF):
        _fail(ctx, pos, "response does not start with HTTP")


def _literal(expected: str, next_state: State) -> Step:
    def step(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
        _strict_expect(ctx, ch, expected, pos)
        ctx.state = next_state

    return step


def _first_major(next_state: State) -> Step:
    def step(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
        if not 0x31 <= ch <= 0x39:
            _fail(ctx, pos, "bad HTTP major version")
        ctx.http_major = ch - 0x30
        ctx.state = next_state

    return step


def _major(minor_state: State) -> Step:
    def step(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
        if ch == ord("."):
            ctx.state = minor_state
            return
        if not _is_digit(ch):
            _fail(ctx, pos, "bad HTTP major version")
        ctx.http_major = ctx.http_major * 10 + ch - 0x30
        if ctx.http_major > _MAX_VERSION_PART:
            _fail(ctx, pos, "HTTP major version too large")

    return step


def _first_minor(next_state: State) -> Step:
    def step(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
        if not _is_digit(ch):
            _fail(ctx, pos, "bad HTTP minor version")
        ctx.http_minor = ch - 0x30
        ctx.state = next_state

    return step


def _add_minor_digit(ctx: ParserContext, ch: int, pos: int) -> None:
    if not _is_digit(ch):
        _fail(ctx, pos, "bad HTTP minor version")
    ctx.http_minor = ctx.http_minor * 10 + ch - 0x30
    if ctx.http_minor > _MAX_VERSION_PART:
        _fail(ctx, pos, "HTTP minor version too large")


def _res_http_minor(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if ch == SP:
        ctx.state = State.RES_FIRST_STATUS_CODE
        return
    _add_minor_digit(ctx, ch, pos)


def _res_first_status_code(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if not _is_digit(ch):
        if ch == SP:
            return
        _fail(ctx, pos, "bad status code")
    ctx.status_code = ch - 0x30
    ctx.state = State.RES_STATUS_CODE


def _res_status_code(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if not _is_digit(ch):
        if ch == SP:
            ctx.state = State.RES_STATUS
        elif ch == CR:
            ctx.state = State.RES_LINE_ALMOST_DONE
        elif ch == LF:
            ctx.state = State.HEADER_FIELD_START
        else:
            _fail(ctx, pos, "bad status code")
        return
    ctx.status_code = ctx.status_code * 10 + ch - 0x30
    if ctx.status_code > _MAX_STATUS_CODE:
        _fail(ctx, pos, "status code too large")


def _res_status(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if ch == CR:
        ctx.state = State.RES_LINE_ALMOST_DONE
    elif ch == LF:
        ctx.state = State.HEADER_FIELD_START


def _res_line_almost_done(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    _strict_expect(ctx, ch, "\n", pos)
    ctx.state = State.HEADER_FIELD_START


_RESPONSE_STEPS: Dict[State, Step] = {
    State.DEAD: _dead,
    State.START_REQ_OR_RES: _start_req_or_res,
    State.RES_OR_RESP_H: _res_or_resp_h,
    State.START_RES: _start_res,
    State.RES_H: _literal("T", State.RES_HT),
    State.RES_HT: _literal("T", State.RES_HTT),
    State.RES_HTT: _literal("P", State.RES_HTTP),
    State.RES_HTTP: _literal("/", State.RES_FIRST_HTTP_MAJOR),
    State.RES_FIRST_HTTP_MAJOR: _first_major(State.RES_HTTP_MAJOR),
    State.RES_HTTP_MAJOR: _major(State.RES_FIRST_HTTP_MINOR),
    State.RES_FIRST_HTTP_MINOR: _first_minor(State.RES_HTTP_MINOR),
    State.RES_HTTP_MINOR: _res_http_minor,
    State.RES_FIRST_STATUS_CODE: _res_first_status_code,
    State.RES_STATUS_CODE: _res_status_code,
    State.RES_STATUS: _res_status,
    State.RES_LINE_ALMOST_DONE: _res_line_almost_done,
}


# --- request line ----------------------------------------------------------


def _start_req(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if ch in (CR, LF):
        return
    _begin_message(ctx)
    if not ord("A") <= ch <= ord("Z"):
        _fail(ctx, pos, "request method must be upper case")
    _start_method(ctx, ch, pos)


def _req_method(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if ch == 0:
        _fail(ctx, pos, "NUL in request method")
    matcher = ctx.method.text
    index = ctx.index
    method = ctx.method
    if ch == SP and index == len(matcher):
        ctx.state = State.REQ_SPACES_BEFORE_URL
    elif index < len(matcher) and ch == ord(matcher[index]):
        pass
    elif method is HttpMethod.CONNECT:
        if index == 1 and ch == ord("H"):
            ctx.method = HttpMethod.CHECKOUT
        elif index == 2 and ch == ord("P"):
            ctx.method = HttpMethod.COPY
    elif method is HttpMethod.MKCOL:
        if index == 1 and ch == ord("O"):
            ctx.method = HttpMethod.MOVE
        elif index == 1 and ch == ord("E"):
            ctx.method = HttpMethod.MERGE
        elif index == 1 and ch == ord("-"):
            ctx.method = HttpMethod.MSEARCH
        elif index == 2 and ch == ord("A"):
            ctx.method = HttpMethod.MKACTIVITY
    elif index == 1 and method is HttpMethod.POST and ch == ord("R"):
        ctx.method = HttpMethod.PROPFIND
    elif index == 1 and method is HttpMethod.POST and ch == ord("U"):
        ctx.method = HttpMethod.PUT
    elif index == 2 and method is HttpMethod.UNLOCK and ch == ord("S"):
        ctx.method = HttpMethod.UNSUBSCRIBE
    elif index == 4 and method is HttpMethod.PROPFIND and ch == ord("P"):
        ctx.method = HttpMethod.PROPPATCH
    else:
        _fail(ctx, pos, "unknown request method")
    ctx.index = index + 1


def _req_spaces_before_url(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if ch == SP:
        return
    if ch in (ord("/"), ord("*")):
        ctx.mark("url", pos)
        ctx.mark("path", pos)
        ctx.state = State.REQ_PATH
    elif _is_lower_alpha(ch):
        ctx.mark("url", pos)
        ctx.state = State.REQ_SCHEMA
    else:
        _fail(ctx, pos, "bad request target")


def _req_schema(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if _is_lower_alpha(ch):
        return
    if ch == ord(":"):
        ctx.state = State.REQ_SCHEMA_SLASH
    elif ch == ord(".") or _is_digit(ch):
        ctx.state = State.REQ_HOST
    else:
        _fail(ctx, pos, "bad URL scheme")


def _url_without_path(ctx: ParserContext, data: bytes, pos: int) -> None:
    ctx.emit("url", data, pos)
    ctx.state = State.REQ_HTTP_START


def _req_host(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if _is_lower_alpha(ch) or _is_digit(ch) or ch in (ord("."), ord("-")):
        return
    if ch == ord(":"):
        ctx.state = State.REQ_PORT
    elif ch == ord("/"):
        ctx.mark("path", pos)
        ctx.state = State.REQ_PATH
    elif ch == SP:
        _url_without_path(ctx, data, pos)
    else:
        _fail(ctx, pos, "bad host")


def _req_port(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if _is_digit(ch):
        return
    if ch == ord("/"):
        ctx.mark("path", pos)
        ctx.state = State.REQ_PATH
    elif ch == SP:
        _url_without_path(ctx, data, pos)
    else:
        _fail(ctx, pos, "bad port")


def _end_of_target(
    ctx: ParserContext, ch: int, data: bytes, pos: int, *parts: str
) -> bool:
    """Close the URL on space, CR or LF; return False for any other byte."""
    if ch not in (SP, CR, LF):
        return False
    ctx.emit("url", data, pos)
    for part in parts:
        ctx.emit(part, data, pos)
    if ch == SP:
        ctx.state = State.REQ_HTTP_START
    else:
        _http09(ctx)
        ctx.state = State.REQ_LINE_ALMOST_DONE if ch == CR else State.HEADER_FIELD_START
    return True


def _req_path(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if is_url_char(ch) or _end_of_target(ctx, ch, data, pos, "path"):
        return
    if ch == ord("?"):
        ctx.emit("path", data, pos)
        ctx.state = State.REQ_QUERY_STRING_START
    elif ch == ord("#"):
        ctx.emit("path", data, pos)
        ctx.state = State.REQ_FRAGMENT_START
    else:
        _fail(ctx, pos, "bad character in path")


def _req_query_string_start(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if is_url_char(ch):
        ctx.mark("query_string", pos)
        ctx.state = State.REQ_QUERY_STRING
        return
    if ch == ord("?") or _end_of_target(ctx, ch, data, pos):
        return
    if ch == ord("#"):
        ctx.state = State.REQ_FRAGMENT_START
    else:
        _fail(ctx, pos, "bad character in query string")


def _req_query_string(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if is_url_char(ch) or ch == ord("?"):
        return
    if _end_of_target(ctx, ch, data, pos, "query_string"):
        return
    if ch == ord("#"):
        ctx.emit("query_string", data, pos)
        ctx.state = State.REQ_FRAGMENT_START
    else:
        _fail(ctx, pos, "bad character in query string")


def _req_fragment_start(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if is_url_char(ch) or ch == ord("?"):
        ctx.mark("fragment", pos)
        ctx.state = State.REQ_FRAGMENT
        return
    if ch == ord("#") or _end_of_target(ctx, ch, data, pos):
        return
    _fail(ctx, pos, "bad character in fragment")


def _req_fragment(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if is_url_char(ch) or ch in (ord("?"), ord("#")):
        return
    if not _end_of_target(ctx, ch, data, pos, "fragment"):
        _fail(ctx, pos, "bad character in fragment")


def _req_http_start(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if ch == ord("H"):
        ctx.state = State.REQ_HTTP_H
    elif ch != SP:
        _fail(ctx, pos, "expected HTTP version")


def _req_http_minor(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if ch == CR:
        ctx.state = State.REQ_LINE_ALMOST_DONE
    elif ch == LF:
        ctx.state = State.HEADER_FIELD_START
    else:
        _add_minor_digit(ctx, ch, pos)


def _req_line_almost_done(ctx: ParserContext, ch: int, data: bytes, pos: int) -> None:
    if ch != LF:
        _fail(ctx, pos, "request line not ended by LF")
    ctx.state = State.HEADER_FIELD_START


_REQUEST_STEPS: Dict[State, Step] = {
    State.DEAD: _dead,
    State.START_REQ: _start_req,
    State.REQ_METHOD: _req_method,
    State.REQ_SPACES_BEFORE_URL: _req_spaces_before_url,
    State.REQ_SCHEMA: _req_schema,
    State.REQ_SCHEMA_SLASH: _literal("/", State.REQ_SCHEMA_SLASH_SLASH),
    State.REQ_SCHEMA_SLASH_SLASH: _literal("/", State.REQ_HOST),
    State.REQ_HOST: _req_host,
    State.REQ_PORT: _req_port,
    State.REQ_PATH: _req_path,
    State.REQ_QUERY_STRING_START: _req_query_string_start,
    State.REQ_QUERY_STRING: _req_query_string,
    State.REQ_FRAGMENT_START: _req_fragment_start,
    State.REQ_FRAGMENT: _req_fragment,
    State.REQ_HTTP_START: _req_http_start,
    State.REQ_HTTP_H: _literal("T", State.REQ_HTTP_HT),
    State.REQ_HTTP_HT: _literal("T", State.REQ_HTTP_HTT),
    State.REQ_HTTP_HTT: _literal("P", State.REQ_HTTP_HTTP),
    State.REQ_HTTP_HTTP: _literal("/", State.REQ_FIRST_HTTP_MAJOR),
    State.REQ_FIRST_HTTP_MAJOR: _first_major(State.REQ_HTTP_MAJOR),
    State.REQ_HTTP_MAJOR: _major(State.REQ_FIRST_HTTP_MINOR),
    State.REQ_FIRST_HTTP_MINOR: _first_minor(State.REQ_HTTP_MINOR),
    State.REQ_HTTP_MINOR: _req_http_minor,
    State.REQ_LINE_ALMOST_DONE: _req_line_almost_done,
}


def _run(
    table: Dict[State, Step], kind: str, ctx: ParserContext, ch: int, data: bytes, pos: int
) -> State:
    step = table.get(ctx.state)
    if step is None:
        raise ValueError(f"state {ctx.state.name} is not part of the {kind}")
    step(ctx, ch, data, pos)
    return ctx.state


def step_response_line(ctx: ParserContext, ch: int, data: bytes, pos: int) -> State:
    """Consume byte ``ch`` (at ``pos`` in ``data``) of a status line.

    Also handles the start of a message whose kind is not yet known. Returns
    the new state; raises HttpParseError, leaving the parser dead, on bad input.
    """
    return _run(_RESPONSE_STEPS, "status line", ctx, ch, data, pos)


def step_request_line(ctx: ParserContext, ch: int, data: bytes, pos: int) -> State:
    """Consume byte ``ch`` (at ``pos`` in ``data``) of a request line.

    Returns the new state; raises HttpParseError, leaving the parser dead,
    on bad input.
    """
    return _run(_REQUEST_STEPS, "request line", ctx, ch, data, pos)
import pytest

from webdishttp.core import HttpParseError, ParserContext, ParserSettings
from webdishttp.headers import finish_headers, step_header
from webdishttp.methods import HttpMethod, ParserType
from webdishttp.tables import Flags, State


class Recorder:
    def __init__(self, skip_body=False):
        self.fields = []
        self.values = []
        self.completed = 0
        self.headers_completed = 0
        self.skip_body = skip_body

    def settings(self):
        return ParserSettings(
            on_header_field=lambda ctx, b: self.fields.append(b),
            on_header_value=lambda ctx, b: self.values.append(b),
            on_headers_complete=self._headers_complete,
            on_message_complete=self._complete,
        )

    def _headers_complete(self, ctx):
        self.headers_completed += 1
        return self.skip_body

    def _complete(self, ctx):
        self.completed += 1


def make_ctx(recorder, parser_type=ParserType.REQUEST, major=1, minor=1):
    ctx = ParserContext(parser_type, recorder.settings())
    ctx.state = State.HEADER_FIELD_START
    ctx.http_major = major
    ctx.http_minor = minor
    ctx.method = HttpMethod.GET
    return ctx


def feed(ctx, data):
    for pos, ch in enumerate(data):
        step_header(ctx, ch, data, pos)
        if ctx.upgrade:
            break
    return ctx.state


def test_collects_fields_and_values():
    rec = Recorder()
    ctx = make_ctx(rec)
    state = feed(ctx, b"Host: example.com\r\nX-Foo: bar\r\n\r\n")
    assert rec.fields == [b"Host", b"X-Foo"]
    assert rec.values == [b"example.com", b"bar"]
    assert rec.completed == 1
    assert state is State.START_REQ


def test_bare_lf_line_endings():
    rec = Recorder()
    ctx = make_ctx(rec)
    state = feed(ctx, b"Host: a\n\n")
    assert rec.fields == [b"Host"]
    assert rec.values == [b"a"]
    assert rec.completed == 1
    assert state is State.START_REQ


def test_content_length_selects_identity_body():
    rec = Recorder()
    ctx = make_ctx(rec)
    state = feed(ctx, b"Content-Length: 42\r\n\r\n")
    assert ctx.content_length == 42
    assert state is State.BODY_IDENTITY
    assert rec.completed == 0


def test_content_length_trailing_spaces_ignored():
    rec = Recorder()
    ctx = make_ctx(rec)
    feed(ctx, b"Content-Length: 12  \r\n\r\n")
    assert ctx.content_length == 12


def test_zero_content_length_completes_message():
    rec = Recorder()
    ctx = make_ctx(rec)
    state = feed(ctx, b"Content-Length: 0\r\n\r\n")
    assert rec.completed == 1
    assert state is State.START_REQ


def test_bad_content_length_raises_and_kills_parser():
    ctx = make_ctx(Recorder())
    with pytest.raises(HttpParseError):
        feed(ctx, b"Content-Length: abc\r\n")
    assert ctx.state is State.DEAD


def test_chunked_transfer_encoding_case_insensitive():
    ctx = make_ctx(Recorder())
    state = feed(ctx, b"Transfer-Encoding: Chunked\r\n\r\n")
    assert ctx.flags & Flags.CHUNKED
    assert state is State.CHUNK_SIZE_START


def test_chunked_overrides_content_length():
    ctx = make_ctx(Recorder())
    state = feed(ctx, b"Content-Length: 5\r\nTransfer-Encoding: chunked\r\n\r\n")
    assert state is State.CHUNK_SIZE_START


def test_connection_close_on_http11_ends_connection():
    rec = Recorder()
    ctx = make_ctx(rec)
    state = feed(ctx, b"Connection: close\r\n\r\n")
    assert ctx.flags & Flags.CONNECTION_CLOSE
    assert not ctx.should_keep_alive()
    assert rec.completed == 1
    assert state is State.DEAD


def test_proxy_connection_close_ends_connection():
    rec = Recorder()
    ctx = make_ctx(rec)
    state = feed(ctx, b"Proxy-Connection: close\r\n\r\n")
    assert ctx.flags & Flags.CONNECTION_CLOSE
    assert ctx.should_keep_alive() is False
    assert rec.completed == 1
    assert state is State.DEAD


def test_keep_alive_on_http10_keeps_connection():
    rec = Recorder()
    ctx = make_ctx(rec, major=1, minor=0)
    state = feed(ctx, b"Connection: keep-alive\r\n\r\n")
    assert ctx.flags & Flags.CONNECTION_KEEP_ALIVE
    assert state is State.START_REQ


def test_http10_without_keep_alive_is_dead_after_message():
    rec = Recorder()
    ctx = make_ctx(rec, major=1, minor=0)
    state = feed(ctx, b"Host: a\r\n\r\n")
    assert rec.completed == 1
    assert state is State.DEAD


def test_similar_header_name_is_not_recognised():
    ctx = make_ctx(Recorder())
    state = feed(ctx, b"Connectionx: close\r\n\r\n")
    assert not ctx.flags & Flags.CONNECTION_CLOSE
    assert state is State.START_REQ


def test_upgrade_header_stops_parsing():
    rec = Recorder()
    ctx = make_ctx(rec)
    feed(ctx, b"Upgrade: websocket\r\n\r\nrest")
    assert ctx.upgrade is True
    assert ctx.flags & Flags.UPGRADE
    assert rec.completed == 1


def test_headers_complete_truthy_skips_body():
    rec = Recorder(skip_body=True)
    ctx = make_ctx(rec, parser_type=ParserType.RESPONSE)
    state = feed(ctx, b"Content-Length: 10\r\n\r\n")
    assert ctx.flags & Flags.SKIPBODY
    assert rec.completed == 1
    assert state is State.START_RES


def test_response_http10_without_length_reads_to_eof():
    ctx = make_ctx(Recorder(), parser_type=ParserType.RESPONSE, major=1, minor=0)
    state = feed(ctx, b"Server: x\r\n\r\n")
    assert state is State.BODY_IDENTITY_EOF


def test_trailing_headers_complete_chunked_message():
    rec = Recorder()
    ctx = make_ctx(rec)
    ctx.flags = Flags.CHUNKED | Flags.TRAILING
    state = feed(ctx, b"\r\n")
    assert rec.completed == 1
    assert rec.headers_completed == 0
    assert state is State.START_REQ


def test_bad_character_in_header_name():
    ctx = make_ctx(Recorder())
    with pytest.raises(HttpParseError) as info:
        feed(ctx, b"Bad@Name: x\r\n")
    assert info.value.position == 3
    assert ctx.state is State.DEAD


def test_cr_without_lf_is_an_error():
    ctx = make_ctx(Recorder())
    with pytest.raises(HttpParseError):
        feed(ctx, b"Host: a\rX")
    assert ctx.state is State.DEAD


def test_step_header_rejects_non_header_state():
    ctx = make_ctx(Recorder())
    ctx.state = State.BODY_IDENTITY
    with pytest.raises(ValueError):
        step_header(ctx, ord("a"), b"a", 0)


def test_finish_headers_resets_nread_and_picks_body():
    rec = Recorder()
    ctx = make_ctx(rec)
    ctx.state = State.HEADERS_ALMOST_DONE
    ctx.nread = 100
    ctx.content_length = 5
    assert finish_headers(ctx, b"\n", 0) is False
    assert ctx.nread == 0
    assert ctx.state is State.BODY_IDENTITY
    assert rec.headers_completed == 1


def test_finish_headers_connect_method_upgrades():
    rec = Recorder()
    ctx = make_ctx(rec)
    ctx.method = HttpMethod.CONNECT
    assert finish_headers(ctx, b"\n", 0) is True
    assert ctx.upgrade is True
    assert rec.completed == 1
from collections import defaultdict

import pytest

from webdishttp.core import MAX_HEADER_SIZE, HttpParseError, ParserSettings
from webdishttp.methods import HttpMethod, ParserType
from webdishttp.parser import HttpParser
from webdishttp.tables import State


class Recorder:
    def __init__(self, skip_body=False):
        self.parts = defaultdict(bytes)
        self.headers = []
        self.urls = []
        self.completed = 0
        self.headers_done = 0
        self.skip_body = skip_body
        self._last = None

    def _part(self, name):
        def callback(parser, chunk):
            self.parts[name] += chunk

        return callback

    def _url(self, parser, chunk):
        self.parts["url"] += chunk

    def _field(self, parser, chunk):
        if self._last != "field":
            self.headers.append([b"", b""])
        self.headers[-1][0] += chunk
        self._last = "field"

    def _value(self, parser, chunk):
        self.headers[-1][1] += chunk
        self._last = "value"

    def _headers_complete(self, parser):
        self.headers_done += 1
        return 1 if self.skip_body else 0

    def _complete(self, parser):
        self.completed += 1
        self.urls.append(self.parts["url"])
        self.parts["url"] = b""

    def settings(self):
        return ParserSettings(
            on_path=self._part("path"),
            on_query_string=self._part("query_string"),
            on_url=self._url,
            on_fragment=self._part("fragment"),
            on_header_field=self._field,
            on_header_value=self._value,
            on_headers_complete=self._headers_complete,
            on_body=self._part("body"),
            on_message_complete=self._complete,
        )


def make(parser_type=ParserType.REQUEST, **kwargs):
    recorder = Recorder(**kwargs)
    return HttpParser(parser_type, recorder.settings()), recorder


REQUEST = (
    b"GET /path/to?x=1&y=2#frag HTTP/1.1\r\n"
    b"Host: example.com\r\n"
    b"Accept: */*\r\n"
    b"\r\n"
)


def test_simple_request_parts():
    parser, rec = make()
    assert parser.execute(REQUEST) == len(REQUEST)
    assert parser.method is HttpMethod.GET
    assert (parser.http_major, parser.http_minor) == (1, 1)
    assert rec.urls == [b"/path/to?x=1&y=2#frag"]
    assert rec.parts["path"] == b"/path/to"
    assert rec.parts["query_string"] == b"x=1&y=2"
    assert rec.parts["fragment"] == b"frag"
    assert rec.headers == [[b"Host", b"example.com"], [b"Accept", b"*/*"]]
    assert rec.completed == 1
    assert parser.state is State.START_REQ


def test_byte_by_byte_matches_whole():
    whole, whole_rec = make()
    whole.execute(REQUEST)
    pieces, piece_rec = make()
    for i in range(len(REQUEST)):
        assert pieces.execute(REQUEST[i : i + 1]) == 1
    assert piece_rec.urls == whole_rec.urls
    assert piece_rec.headers == whole_rec.headers
    assert piece_rec.parts["path"] == whole_rec.parts["path"]
    assert piece_rec.parts["query_string"] == whole_rec.parts["query_string"]
    assert piece_rec.completed == 1


def test_content_length_body_split_across_calls():
    body = b"0123456789"
    head = b"POST /set HTTP/1.1\r\nContent-Length: 10\r\n\r\n"
    parser, rec = make()
    parser.execute(head + body[:4])
    assert rec.completed == 0
    assert parser.state is State.BODY_IDENTITY
    parser.execute(body[4:])
    assert rec.parts["body"] == body
    assert rec.completed == 1
    assert parser.method is HttpMethod.POST


def test_chunked_request_body():
    data = (
        b"POST /upload HTTP/1.1\r\n"
        b"Transfer-Encoding: chunked\r\n"
        b"\r\n"
        b"5\r\nhello\r\n"
        b"6\r\n world\r\n"
        b"0\r\n\r\n"
    )
    parser, rec = make()
    assert parser.execute(data) == len(data)
    assert rec.parts["body"] == b"hello world"
    assert rec.completed == 1
    assert parser.state is State.START_REQ


def test_chunk_parameters_are_ignored():
    data = (
        b"POST / HTTP/1.1\r\nTransfer-Encoding: chunked\r\n\r\n"
        b"3;name=value\r\nabc\r\n0\r\n\r\n"
    )
    parser, rec = make()
    parser.execute(data)
    assert rec.parts["body"] == b"abc"
    assert rec.completed == 1


def test_bad_chunk_size_raises_at_position():
    data = b"POST / HTTP/1.1\r\nTransfer-Encoding: chunked\r\n\r\nzz\r\n"
    parser, _ = make()
    with pytest.raises(HttpParseError) as info:
        parser.execute(data)
    assert info.value.position == data.index(b"zz")
    assert parser.state is State.DEAD


def test_pipelined_keep_alive_requests():
    data = b"GET /a HTTP/1.1\r\n\r\nGET /b HTTP/1.1\r\n\r\n"
    parser, rec = make()
    parser.execute(data)
    assert rec.urls == [b"/a", b"/b"]
    assert rec.completed == 2


def test_connection_close_kills_parser():
    parser, rec = make()
    parser.execute(b"GET / HTTP/1.1\r\nConnection: close\r\n\r\n")
    assert rec.completed == 1
    assert parser.should_keep_alive() is False
    assert parser.state is State.DEAD
    with pytest.raises(HttpParseError):
        parser.execute(b"GET / HTTP/1.1\r\n\r\n")


def test_http10_keep_alive_header():
    parser, rec = make()
    parser.execute(b"GET / HTTP/1.0\r\nConnection: Keep-Alive\r\n\r\n")
    assert parser.should_keep_alive() is True
    parser.execute(b"GET /again HTTP/1.0\r\n\r\n")
    assert rec.urls == [b"/", b"/again"]
    assert parser.should_keep_alive() is False
    assert parser.state is State.DEAD


def test_unknown_method_raises():
    parser, _ = make()
    with pytest.raises(HttpParseError) as info:
        parser.execute(b"FOO / HTTP/1.1\r\n\r\n")
    assert info.value.position == 0
    with pytest.raises(HttpParseError):
        parser.execute(b"GET / HTTP/1.1\r\n\r\n")


def test_header_section_too_large():
    parser, _ = make()
    data = b"GET / HTTP/1.1\r\nX-Big: " + b"a" * MAX_HEADER_SIZE
    with pytest.raises(HttpParseError):
        parser.execute(data)
    assert parser.state is State.DEAD


def test_upgrade_stops_at_end_of_headers():
    data = b"GET /chat HTTP/1.1\r\nUpgrade: websocket\r\n\r\nrest"
    parser, rec = make()
    used = parser.execute(data)
    assert parser.upgrade is True
    assert data[used] == ord("\n")
    assert data[used + 1 :] == b"rest"
    assert rec.completed == 1
    assert rec.parts["body"] == b""


def test_response_status_code():
    data = b"HTTP/1.1 404 Not Found\r\nContent-Length: 0\r\n\r\n"
    parser, rec = make(ParserType.RESPONSE)
    assert parser.execute(data) == len(data)
    assert parser.status_code == 404
    assert rec.completed == 1
    assert parser.state is State.START_RES


def test_response_body_until_eof():
    data = b"HTTP/1.0 200 OK\r\nServer: Webdis\r\n\r\nsome body"
    parser, rec = make(ParserType.RESPONSE)
    parser.execute(data)
    assert parser.state is State.BODY_IDENTITY_EOF
    assert rec.parts["body"] == b"some body"
    assert rec.completed == 0
    assert parser.execute(b"") == 0
    assert rec.completed == 1


def test_headers_complete_can_skip_body():
    data = b"HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\n"
    parser, rec = make(ParserType.RESPONSE, skip_body=True)
    parser.execute(data)
    assert rec.completed == 1
    assert rec.parts["body"] == b""
    assert parser.state is State.START_RES


def test_both_type_detects_response():
    data = b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nhi"
    parser, rec = make(ParserType.BOTH)
    parser.execute(data)
    assert parser.parser_type is ParserType.RESPONSE
    assert parser.status_code == 200
    assert rec.parts["body"] == b"hi"
    assert rec.completed == 1


def test_both_type_detects_head_request():
    parser, rec = make(ParserType.BOTH)
    parser.execute(b"HEAD /x HTTP/1.1\r\n\r\n")
    assert parser.parser_type is ParserType.REQUEST
    assert parser.method is HttpMethod.HEAD
    assert rec.urls == [b"/x"]


def test_empty_input_on_fresh_parser():
    parser, rec = make()
    assert parser.execute(b"") == 0
    assert rec.completed == 0
    assert parser.state is State.START_REQ


def test_parser_without_settings():
    parser = HttpParser()
    data = b"PUT /k HTTP/1.1\r\nContent-Length: 3\r\n\r\nabc"
    assert parser.execute(data) == len(data)
    assert parser.method is HttpMethod.PUT
    assert parser.state is State.START_REQ


def test_callback_exception_propagates():
    def boom(parser):
        raise RuntimeError("stop")

    parser = HttpParser(ParserType.REQUEST, ParserSettings(on_message_complete=boom))
    with pytest.raises(RuntimeError):
        parser.execute(b"GET / HTTP/1.1\r\n\r\n")
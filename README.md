# webdishttp

A small HTTP/1.x toolkit with no dependencies:

- an incremental parser for HTTP requests and responses that calls you back
  as it goes. It copes with data that arrives in arbitrary pieces. It handles
  chunked bodies, `Content-Length` bodies and bodies that run until the
  connection closes. It detects keep-alive and `Upgrade`/`CONNECT`.
- helpers that build and serialise HTTP responses. They add the CORS headers,
  handle `Content-Length` and frame chunked transfers.

## Installation

```
pip install webdishttp
```

## Parsing

`webdishttp.parser.HttpParser` takes a `ParserType` (`REQUEST`, `RESPONSE`
or `BOTH`) and a `webdishttp.core.ParserSettings` that holds your callbacks.

- **Data callbacks** get the parser and a `bytes` slice:
  - `on_url`
  - `on_path`
  - `on_query_string`
  - `on_fragment`
  - `on_header_field`
  - `on_header_value`
  - `on_body`
- **Notifications** get only the parser:
  - `on_message_begin`
  - `on_headers_complete`
  - `on_message_complete`

A truthy return value from `on_headers_complete` tells the parser that the
message has no body. To stop parsing, raise from a callback.

```python
from webdishttp.core import ParserSettings
from webdishttp.methods import ParserType
from webdishttp.parser import HttpParser

seen = {}

settings = ParserSettings(
    on_url=lambda p, data: seen.setdefault("url", bytearray()).extend(data),
    on_body=lambda p, data: seen.setdefault("body", bytearray()).extend(data),
)

parser = HttpParser(ParserType.REQUEST, settings)
raw = b"POST /SET/key HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"
consumed = parser.execute(raw)

assert consumed == len(raw)
print(bytes(seen["url"]), bytes(seen["body"]), parser.should_keep_alive())
print(parser.method.text, parser.http_major, parser.http_minor)
```

`execute` returns the number of bytes it consumed.

- **Split input:** when one item is split across calls to `execute`, data
  callbacks may be called several times for it. Concatenate what they
  deliver.
- **End of input:** passing an empty piece signals end of input. This
  completes a response body that runs until the connection closes.
- **Upgrades:** if the connection is upgraded (an `Upgrade` header or a
  `CONNECT` request), `execute` stops at the end of the headers. It returns
  the offset of the LF that ended them and sets `parser.upgrade`. The
  remaining bytes belong to the other protocol.
- **Errors:** malformed input raises `webdishttp.core.HttpParseError`, a
  subclass of `ValueError`. Its `position` is the offset of the offending
  byte. A header section larger than 80 KiB also raises it. After an error
  the parser is dead, and it rejects any further data.
- **After a message:** once a message has completed and the connection is not
  to be kept alive, the parser accepts no further message.

While parsing, the parser exposes these attributes:

- `method` (an `HttpMethod`), `status_code`, `http_major` and `http_minor`
- `content_length` and `flags`
- `data`, a free slot for your own state

`webdishttp.methods.http_method_str` gives a method's name on the wire, for
example `M-SEARCH` for `HttpMethod.MSEARCH`.

## Responses

```python
from webdishttp.response import (
    HttpResponse,
    crossdomain_response,
    error_response,
    format_chunk,
    options_response,
)

resp = HttpResponse(200, "OK")
resp.http_version = 1           # 1 renders HTTP/1.1, 0 renders HTTP/1.0
resp.set_header("Content-Type", "application/json")
resp.set_body(b'{"GET":"value"}')
resp.set_keep_alive(True)
wire = resp.render()            # status line, headers and body as bytes

error = error_response(404, "Not Found", http_version=1, keep_alive=False)
options = options_response(http_version=1, keep_alive=True)
policy = crossdomain_response(http_version=1, keep_alive=False)
chunk = format_chunk(b"hello")  # b"5\r\nhello\r\n"
```

### Headers

Every response starts with these headers:

- `Server: Webdis`
- `Allow`
- `Access-Control-Allow-Methods`
- `Access-Control-Allow-Origin`
- `Access-Control-Allow-Headers`

`set_header` replaces the first existing header whose name starts with the
given key. Otherwise it appends the header. `headers` lists them in the order
they are written.

### Content-Length and chunked bodies

`render` sets `Content-Length` to the body length for a `200` response that
has a body, and to `0` otherwise.

Setting `Transfer-Encoding: chunked` changes this: `render` leaves out
`Content-Length` and frames the body as a single chunk.

### Keep-alive

After `render`, `keep_alive` tells whether the connection may stay open.

### Ready-made responses

- `error_response` builds a response with no body.
- `options_response` answers an OPTIONS request.
- `crossdomain_response` serves a permissive cross-domain policy document as
  `application/xml`.

## What this package does not do

This package parses bytes and produces bytes. It does not open sockets, run a
server or provide a command-line program. Reading from and writing to
connections, and deciding what to send, is left to the application using it.

## Running the tests

```
pip install -e ".[test]"
pytest
```
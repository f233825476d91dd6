# mcuweb

A small, dependency-free HTTP/1.1 and WebSocket client whose response
parser works byte by byte, plus the helpers that go with it: Base64 and URL
encoding, byte strings with a storage policy, a fixed-capacity memory pool
for strings, and simple byte readers and writers.

## Installation

```
pip install mcuweb
```

To run the tests:

```
pip install "mcuweb[test]"
pytest
```

## HTTP requests

`mcuweb.http_client.HttpClient` writes requests to a connection and reads the
response from it. `mcuweb.http_response.SocketConnection` is a plain TCP
connection that can be used as one.

```python
from mcuweb.http_response import SocketConnection
from mcuweb.http_client import HttpClient

client = HttpClient(SocketConnection(timeout=5.0), "example.com", 80)
client.get("/index.html")
status = client.response_status_code()
while client.header_available():
    print(client.read_header_name(), "=", client.read_header_value())
body = client.response_body()
client.stop()
```

To send a body, pass a content type and the body; the `Content-Type` and
`Content-Length` headers are added:

```python
client.post("/api", "application/json", '{"ok": true}')
```

`put`, `patch` and `delete` take the same arguments. For more headers, call
`begin_request()` first, then the method, then `send_header(name, value)` or
`send_basic_auth(user, password)`, and finally `end_request()`:

```python
password = "password"
client.begin_request()
client.get("/private")
client.send_basic_auth("user", password)
client.end_request()
```

By default every request opens a new connection and sends
`Connection: close`; `connection_keep_alive()` keeps it open, and
`no_default_request_headers()` leaves out `Host` and `User-Agent`.
When the server is given as an `ipaddress` object no `Host` header is sent.

Responses are read by `mcuweb.http_response.ResponseReader`, which
`HttpClient` extends. It skips `1xx` status lines (except `101`), notices
`Content-Length` and `Transfer-Encoding: chunked`, and in chunked bodies
`available()` and `read()` stay within the current chunk.

Failures raise subclasses of `mcuweb.http_response.HttpError`, each with a
numeric `code`: `ConnectionFailedError` (-1), `ApiError` (-2),
`TimedOutError` (-3) and `InvalidResponseError` (-4).

## WebSockets

```python
from mcuweb.http_response import SocketConnection
from mcuweb.websocket import WebSocketClient, MessageType

ws = WebSocketClient(SocketConnection(timeout=5.0), "example.com", 80)
ws.begin("/chat")
ws.begin_message(MessageType.TEXT)
ws.write(b"hello")
ws.end_message()

if ws.parse_message():
    print(ws.message_type(), ws.read_string())
```

`begin` raises `InvalidResponseError` unless the server answers `101`.
Outgoing messages are masked and hold at most 128 bytes; what does not fit
is dropped. `parse_message` answers pings with pongs, drops pongs and stops
the connection on a close message, returning 0 in each case. `ping()` sends a
ping with random data.

## Encoders

```python
from mcuweb.b64 import b64_encode
from mcuweb.urlencoder import url_encode

b64_encode(b"hello")   # "aGVsbG8="
url_encode("a b&c")    # "a%20b%26c"
```

Text is encoded as UTF-8 first. `url_encode` leaves letters, digits and
`-._~` alone and writes everything else as `%XX` with upper-case hex.

## Strings and memory

```python
from mcuweb.strings import JsonString, string_compare, string_equals
from mcuweb.memory_pool import MemoryPool, StringCopier, store_string

JsonString("hi").is_linked()        # True
string_compare("abc", "abd")        # -1
string_equals(b"abc", "abc")        # True

pool = MemoryPool(64)               # 16-byte variant slots by default
pool.save_string("hello")           # b"hello"; uses 6 bytes
pool.save_string("hello")           # the same copy again, when deduplicating
pool.alloc_variant()                # 0, the index of the slot
pool.size()                         # 22
```

When a string or slot does not fit, the pool's `overflowed` flag is set and
`None` is returned. `store_string` keeps linked strings by reference and
copies the rest into the pool. `StringCopier` builds a string in the pool's
free space and `save()` commits it; `StringMover` builds strings in place in
a `bytearray`.

## Readers and writers

```python
import io
from mcuweb.readers import make_reader
from mcuweb.writers import StaticStringWriter, CountingDecorator, StreamWriter

make_reader(b"ab").read()           # 97; -1 at the end
make_reader(io.BytesIO(b"xy")).read_bytes(5)   # b"xy"

writer = CountingDecorator(StaticStringWriter(4))
writer.write(b"hello")              # 4
writer.count()                      # 4
```

`make_reader` gives a `BoundedReader` for byte or text sequences, a
`StreamReader` for anything with a `read` method and a
`ZeroTerminatedReader` for `None`. `DummyWriter` only counts, and
`StreamWriter` writes to a binary stream.

## What the package does not do

- It does not parse or produce JSON documents: there is no document model,
  no number parsing or formatting and no serializer, only the string, memory,
  reader and writer building blocks above.
- `SocketConnection` speaks plain TCP; there is no TLS, even on port 443.
- There is no server and no command-line tool.
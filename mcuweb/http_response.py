"""Reading HTTP responses from a byte connection: status line, headers and body."""

from __future__ import annotations

import contextlib
import enum
import select
import socket
import time

CR = 0x0D
LF = 0x0A

NO_CONTENT_LENGTH = -1
DEFAULT_RESPONSE_TIMEOUT = 30.0
DEFAULT_WAIT_FOR_DATA_DELAY = 0.1
DEFAULT_STREAM_TIMEOUT = 1.0

_STATUS_PREFIX = b"HTTP/*.* "
_CONTENT_LENGTH_PREFIX = b"Content-Length: "
_CHUNKED_HEADER = b"Transfer-Encoding: chunked"
_LONG_MAX = 2**31 - 1
_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")
_SPACES = " \t\n\v\f\r"


def _is_digit(c: int) -> bool:
    return 0x30 <= c <= 0x39


class HttpState(enum.IntEnum):
    """Progress of a request and of reading its response, in order."""

    IDLE = 0
    REQUEST_STARTED = 1
    REQUEST_SENT = 2
    READING_STATUS_CODE = 3
    STATUS_CODE_READ = 4
    READING_CONTENT_LENGTH = 5
    SKIP_TO_END_OF_HEADER = 6
    LINE_STARTING_CR_FOUND = 7
    READING_BODY = 8
    READING_CHUNK_LENGTH = 9
    READING_BODY_CHUNK = 10


class HttpError(Exception):
    """Base class of HTTP client errors."""

    code = 0


class ConnectionFailedError(HttpError):
    """The connection to the server could not be opened."""

    code = -1


class ApiError(HttpError):
    """A method was called in a state where it is not allowed."""

    code = -2


class TimedOutError(HttpError):
    """The server did not answer in time."""

    code = -3


class InvalidResponseError(HttpError):
    """The server sent something that is not a valid response."""

    code = -4


def _as_bytes(data: int | bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(data, int):
        if not 0 <= data <= 0xFF:
            raise ValueError(f"not a byte value: {data}")
        return bytes((data,))
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class SocketConnection:
    """A TCP connection with non-blocking, byte-at-a-time reading."""

    def __init__(self, timeout: float = 10.0) -> None:
        self.timeout = timeout
        self._sock: socket.socket | None = None
        self._rx = bytearray()
        self._eof = False

    def __enter__(self) -> "SocketConnection":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def connect(self, host: str, port: int) -> None:
        """Open a connection; raises ConnectionFailedError on failure."""
        self.stop()
        try:
            self._sock = socket.create_connection((host, port), timeout=self.timeout)
        except OSError as exc:
            raise ConnectionFailedError(f"cannot connect to {host}:{port}: {exc}") from exc
        self._rx = bytearray()
        self._eof = False

    def _fill(self) -> None:
        if self._sock is None or self._eof:
            return
        while True:
            try:
                ready, _, _ = select.select([self._sock], [], [], 0)
            except (OSError, ValueError):
                self._eof = True
                return
            if not ready:
                return
            try:
                chunk = self._sock.recv(4096)
            except BlockingIOError:
                return
            except OSError:
                self._eof = True
                return
            if not chunk:
                self._eof = True
                return
            self._rx += chunk

    def connected(self) -> bool:
        """True while the peer is connected or received data remains unread."""
        self._fill()
        return self._sock is not None and (not self._eof or bool(self._rx))

    def available(self) -> int:
        """Number of bytes that can be read without waiting."""
        self._fill()
        return len(self._rx)

    def read(self) -> int:
        """Return the next byte, or -1 when none is available."""
        if not self.available():
            return -1
        byte = self._rx[0]
        del self._rx[0]
        return byte

    def read_bytes(self, size: int) -> bytes:
        """Return up to ``size`` bytes that are already available."""
        self._fill()
        chunk = bytes(self._rx[: max(size, 0)])
        del self._rx[: len(chunk)]
        return chunk

    def peek(self) -> int:
        """Return the next byte without consuming it, or -1."""
        return self._rx[0] if self.available() else -1

    def write(self, data: int | bytes | bytearray | memoryview | str) -> int:
        if self._sock is None:
            raise ConnectionError("not connected")
        chunk = _as_bytes(data)
        self._sock.sendall(chunk)
        return len(chunk)

    def stop(self) -> None:
        """Close the connection and drop unread data."""
        if self._sock is not None:
            with contextlib.suppress(OSError):
                self._sock.close()
        self._sock = None
        self._rx = bytearray()
        self._eof = False


class ResponseReader:
    """State machine that reads an HTTP response from a connection.

    The connection needs ``available``, ``read``, ``read_bytes`` and ``peek``.
    Timeouts and delays are in seconds.
    """

    def __init__(
        self,
        connection,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        wait_for_data_delay: float = DEFAULT_WAIT_FOR_DATA_DELAY,
    ) -> None:
        self.connection = connection
        self._default_response_timeout = response_timeout
        self._default_wait_for_data_delay = wait_for_data_delay
        self.stream_timeout = DEFAULT_STREAM_TIMEOUT
        self._header_line = ""
        self.reset_state()

    def reset_state(self) -> None:
        """Forget everything about the current response."""
        self.state = HttpState.IDLE
        self.status_code = 0
        self._content_length = NO_CONTENT_LENGTH
        self._body_consumed = 0
        self._cl_pos = 0
        self._te_pos = 0
        self._is_chunked = False
        self._chunk_length = 0
        self.response_timeout = self._default_response_timeout
        self.wait_for_data_delay = self._default_wait_for_data_delay

    def response_status_code(self) -> int:
        """Read the status line and return its code, skipping 1xx responses except 101."""
        if self.state < HttpState.REQUEST_SENT:
            raise ApiError("no request has been sent")
        c = 0
        while True:
            self.status_code = 0
            self.state = HttpState.REQUEST_SENT
            start = time.monotonic()
            pos = 0
            while c != LF and time.monotonic() - start < self.response_timeout:
                if self._http_available():
                    c = self._http_read()
                    if c == -1:
                        continue
                    if self.state == HttpState.REQUEST_SENT:
                        expected = _STATUS_PREFIX[pos]
                        if expected == ord("*") or expected == c:
                            pos += 1
                            if pos == len(_STATUS_PREFIX):
                                self.state = HttpState.READING_STATUS_CODE
                        else:
                            raise InvalidResponseError("malformed status line")
                    elif self.state == HttpState.READING_STATUS_CODE:
                        if _is_digit(c):
                            self.status_code = self.status_code * 10 + (c - 0x30)
                        else:
                            self.state = HttpState.STATUS_CODE_READ
                    start = time.monotonic()
                else:
                    time.sleep(self.wait_for_data_delay)
            informational = self.status_code < 200 and self.status_code != 101
            if c == LF and informational:
                c = 0
            if not (self.state == HttpState.STATUS_CODE_READ and informational):
                break

        if c == LF and self.state == HttpState.STATUS_CODE_READ:
            return self.status_code
        if c != LF:
            raise TimedOutError("timed out reading the status line")
        raise InvalidResponseError("malformed status line")

    def skip_response_headers(self) -> None:
        """Read up to the end of the headers; raises TimedOutError on timeout."""
        start = time.monotonic()
        while (
            not self.end_of_headers_reached()
            and time.monotonic() - start < self.response_timeout
        ):
            if self._http_available():
                self.read_header()
                start = time.monotonic()
            else:
                time.sleep(self.wait_for_data_delay)
        if not self.end_of_headers_reached():
            raise TimedOutError("timed out reading the headers")

    def end_of_headers_reached(self) -> bool:
        return self.state in (
            HttpState.READING_BODY,
            HttpState.READING_CHUNK_LENGTH,
            HttpState.READING_BODY_CHUNK,
        )

    def content_length(self) -> int:
        """The Content-Length of the response, or -1 when it has none."""
        if not self.end_of_headers_reached():
            with contextlib.suppress(TimedOutError):
                self.skip_response_headers()
        return self._content_length

    def _timed_read(self) -> int:
        start = time.monotonic()
        while True:
            c = self.read()
            if c >= 0:
                return c
            if time.monotonic() - start >= self.stream_timeout:
                return -1
            time.sleep(0.001)

    def response_body(self) -> str:
        """Read the rest of the body as text.

        Raises TimedOutError when fewer bytes than the Content-Length arrive.
        """
        body_length = self.content_length()
        body = bytearray()
        while self._body_consumed != body_length:
            c = self._timed_read()
            if c == -1:
                break
            body.append(c)
        if body_length > 0 and len(body) != body_length:
            raise TimedOutError(f"body ended after {len(body)} of {body_length} bytes")
        return body.decode("utf-8", "replace")

    def end_of_body_reached(self) -> bool:
        if self.end_of_headers_reached() and self.content_length() != NO_CONTENT_LENGTH:
            return self._body_consumed >= self.content_length()
        return False

    def _http_available(self) -> int:
        if self.state == HttpState.READING_CHUNK_LENGTH:
            while self.connection.available():
                c = self.connection.read()
                if c == LF:
                    self.state = HttpState.READING_BODY_CHUNK
                    break
                if c in _HEX_DIGITS:
                    self._chunk_length = self._chunk_length * 16 + int(chr(c), 16)

        if self.state == HttpState.READING_BODY_CHUNK and self._chunk_length == 0:
            self.state = HttpState.READING_CHUNK_LENGTH

        if self.state == HttpState.READING_CHUNK_LENGTH:
            return 0

        client_available = self.connection.available()
        if self.state == HttpState.READING_BODY_CHUNK:
            return min(client_available, self._chunk_length)
        return client_available

    def available(self) -> int:
        """Bytes that can be read now; in chunked bodies, within the current chunk."""
        return self._http_available()

    def _http_read(self) -> int:
        if self._is_chunked and not self._http_available():
            return -1
        c = self.connection.read()
        if c >= 0:
            if self.end_of_headers_reached() and self._content_length > 0:
                self._body_consumed += 1
            if self.state == HttpState.READING_BODY_CHUNK:
                self._chunk_length -= 1
                if self._chunk_length == 0:
                    self.state = HttpState.READING_CHUNK_LENGTH
        return c

    def read(self) -> int:
        """Return the next byte, or -1 when none is available."""
        return self._http_read()

    def read_bytes(self, size: int) -> bytes:
        """Read up to ``size`` bytes straight from the connection."""
        data = self.connection.read_bytes(size)
        if self.end_of_headers_reached() and self._content_length > 0:
            self._body_consumed += len(data)
        return data

    def peek(self) -> int:
        return self.connection.peek()

    def header_available(self) -> bool:
        """Read the next header line; False once the headers have ended."""
        line: list[str] = []
        start = time.monotonic()
        while not self.end_of_headers_reached():
            if not self._http_available():
                if time.monotonic() - start >= self.response_timeout:
                    break
                time.sleep(self.wait_for_data_delay)
                continue
            c = self.read_header()
            start = time.monotonic()
            if c in (CR, LF):
                if line:
                    break
                continue
            if c >= 0:
                line.append(chr(c))
        self._header_line = "".join(line)
        return bool(self._header_line)

    def read_header_name(self) -> str:
        """Name of the last header line read, or '' when it has no colon."""
        name, colon, _ = self._header_line.partition(":")
        return name if colon else ""

    def read_header_value(self) -> str:
        """Value of the last header line read, without leading whitespace."""
        _, colon, value = self._header_line.partition(":")
        return value.lstrip(_SPACES) if colon else ""

    def read_header(self) -> int:
        """Read one byte of the headers, watching for Content-Length and chunking."""
        c = self._http_read()
        if self.end_of_headers_reached():
            return c

        if self.state == HttpState.STATUS_CODE_READ:
            if _CONTENT_LENGTH_PREFIX[self._cl_pos] == c:
                self._cl_pos += 1
                if self._cl_pos == len(_CONTENT_LENGTH_PREFIX):
                    self.state = HttpState.READING_CONTENT_LENGTH
                    self._content_length = 0
                    self._body_consumed = 0
            elif _CHUNKED_HEADER[self._te_pos] == c:
                self._te_pos += 1
                if self._te_pos == len(_CHUNKED_HEADER):
                    self._is_chunked = True
                    self.state = HttpState.SKIP_TO_END_OF_HEADER
            elif self._cl_pos == 0 and self._te_pos == 0 and c == CR:
                self.state = HttpState.LINE_STARTING_CR_FOUND
            else:
                self.state = HttpState.SKIP_TO_END_OF_HEADER
        elif self.state == HttpState.READING_CONTENT_LENGTH:
            if _is_digit(c):
                value = self._content_length * 10 + (c - 0x30)
                if self._content_length < value <= _LONG_MAX:
                    self._content_length = value
            else:
                self.state = HttpState.SKIP_TO_END_OF_HEADER
        elif self.state == HttpState.LINE_STARTING_CR_FOUND:
            if c == LF:
                if self._is_chunked:
                    self.state = HttpState.READING_CHUNK_LENGTH
                    self._chunk_length = 0
                else:
                    self.state = HttpState.READING_BODY

        if c == LF and not self.end_of_headers_reached():
            self.state = HttpState.STATUS_CODE_READ
            self._cl_pos = 0
            self._te_pos = 0
        return c

    def flush_client_rx(self) -> None:
        """Discard everything the connection has received."""
        while self.connection.available():
            self.connection.read()
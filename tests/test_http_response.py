import socket
import time

import pytest

from mcuweb.http_response import (
    ApiError,
    ConnectionFailedError,
    HttpState,
    InvalidResponseError,
    ResponseReader,
    SocketConnection,
    TimedOutError,
)


class FakeConnection:
    def __init__(self, data=b""):
        self.rx = bytearray(data)
        self.tx = bytearray()

    def available(self):
        return len(self.rx)

    def read(self):
        if not self.rx:
            return -1
        byte = self.rx[0]
        del self.rx[0]
        return byte

    def read_bytes(self, size):
        chunk = bytes(self.rx[:size])
        del self.rx[: len(chunk)]
        return chunk

    def peek(self):
        return self.rx[0] if self.rx else -1

    def write(self, data):
        self.tx += data
        return len(data)


def make_reader(data):
    reader = ResponseReader(FakeConnection(data), response_timeout=0.05, wait_for_data_delay=0.001)
    reader.stream_timeout = 0.05
    reader.state = HttpState.REQUEST_SENT
    return reader


def test_status_code_ok():
    reader = make_reader(b"HTTP/1.1 200 OK\r\n")
    assert reader.response_status_code() == 200
    assert reader.state is HttpState.STATUS_CODE_READ


def test_informational_response_is_skipped():
    reader = make_reader(b"HTTP/1.1 100 Continue\r\nHTTP/1.1 404 Not Found\r\n")
    assert reader.response_status_code() == 404


def test_switching_protocols_is_returned():
    reader = make_reader(b"HTTP/1.1 101 Switching Protocols\r\n")
    assert reader.response_status_code() == 101


def test_status_before_request_is_api_error():
    reader = make_reader(b"HTTP/1.1 200 OK\r\n")
    reader.state = HttpState.IDLE
    with pytest.raises(ApiError):
        reader.response_status_code()


def test_bad_prefix_is_invalid():
    reader = make_reader(b"FTP/1.0 200 OK\r\n")
    with pytest.raises(InvalidResponseError):
        reader.response_status_code()


def test_no_data_times_out():
    reader = make_reader(b"")
    with pytest.raises(TimedOutError):
        reader.response_status_code()


def test_incomplete_status_line_times_out():
    reader = make_reader(b"HTTP/1.1 200")
    with pytest.raises(TimedOutError):
        reader.response_status_code()


def test_headers_and_body_with_content_length():
    reader = make_reader(
        b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\nX-Trace:   abc\r\n"
        b"Content-Length: 2\r\n\r\nok"
    )
    assert reader.response_status_code() == 200
    headers = []
    while reader.header_available():
        headers.append((reader.read_header_name(), reader.read_header_value()))
    assert headers == [
        ("Content-Type", "text/plain"),
        ("X-Trace", "abc"),
        ("Content-Length", "2"),
    ]
    assert reader.end_of_headers_reached()
    assert reader.content_length() == 2
    assert not reader.end_of_body_reached()
    assert reader.response_body() == "ok"
    assert reader.end_of_body_reached()


def test_header_without_colon():
    reader = make_reader(b"HTTP/1.1 200 OK\r\nNoColonHere\r\n\r\n")
    reader.response_status_code()
    assert reader.header_available() is True
    assert reader.read_header_name() == ""
    assert reader.read_header_value() == ""
    assert reader.header_available() is False


def test_response_body_via_content_length():
    reader = make_reader(b"HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\nhello")
    reader.response_status_code()
    assert reader.content_length() == 5
    assert reader.response_body() == "hello"


def test_no_content_length():
    reader = make_reader(b"HTTP/1.1 200 OK\r\nServer: x\r\n\r\nsome body")
    reader.response_status_code()
    assert reader.content_length() == -1
    assert reader.response_body() == "some body"
    assert reader.end_of_body_reached() is False


def test_short_body_raises():
    reader = make_reader(b"HTTP/1.1 200 OK\r\nContent-Length: 10\r\n\r\nabc")
    reader.response_status_code()
    with pytest.raises(TimedOutError):
        reader.response_body()


def test_chunked_body():
    reader = make_reader(
        b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n"
        b"5\r\nhello\r\n6\r\n world\r\n0\r\n\r\n"
    )
    reader.response_status_code()
    reader.skip_response_headers()
    assert reader.state is HttpState.READING_CHUNK_LENGTH
    assert reader.content_length() == -1
    assert reader.response_body() == "hello world"


def test_chunk_available_is_limited_to_chunk():
    reader = make_reader(
        b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n3\r\nabcdef"
    )
    reader.response_status_code()
    reader.skip_response_headers()
    assert reader.available() == 3
    assert bytes(reader.read() for _ in range(3)) == b"abc"
    assert reader.read() == -1


def test_skip_headers_times_out_when_incomplete():
    reader = make_reader(b"HTTP/1.1 200 OK\r\nContent-Type: text")
    reader.response_status_code()
    with pytest.raises(TimedOutError):
        reader.skip_response_headers()


def test_last_content_length_wins():
    reader = make_reader(
        b"HTTP/1.1 200 OK\r\nContent-Length: 9\r\nContent-Length: 3\r\n\r\nabc"
    )
    reader.response_status_code()
    assert reader.content_length() == 3


def test_read_bytes_tracks_body():
    reader = make_reader(b"HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\nhello")
    reader.response_status_code()
    reader.skip_response_headers()
    assert reader.read_bytes(3) == b"hel"
    assert not reader.end_of_body_reached()
    assert reader.read_bytes(10) == b"lo"
    assert reader.end_of_body_reached()


def test_peek_does_not_consume():
    reader = make_reader(b"HTTP/1.1 200 OK\r\nContent-Length: 1\r\n\r\nz")
    reader.response_status_code()
    reader.skip_response_headers()
    assert reader.peek() == ord("z")
    assert reader.read() == ord("z")
    assert reader.read() == -1


def test_reset_state_and_flush():
    reader = make_reader(b"HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\nhello")
    reader.response_status_code()
    reader.skip_response_headers()
    reader.flush_client_rx()
    assert reader.connection.available() == 0
    reader.reset_state()
    assert reader.state is HttpState.IDLE
    assert reader.status_code == 0
    assert reader.end_of_headers_reached() is False


def _wait_for(predicate, deadline=2.0):
    end = time.monotonic() + deadline
    while time.monotonic() < end:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_socket_connection_round_trip():
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    port = server.getsockname()[1]
    conn = SocketConnection(timeout=2.0)
    try:
        conn.connect("127.0.0.1", port)
        peer, _ = server.accept()
        with peer:
            peer.sendall(b"abc")
            assert _wait_for(lambda: conn.available() == 3)
            assert conn.connected()
            assert conn.peek() == ord("a")
            assert conn.read() == ord("a")
            assert conn.read_bytes(5) == b"bc"
            assert conn.read() == -1
            assert conn.write(b"xyz") == 3
            peer.settimeout(2.0)
            received = b""
            while len(received) < 3:
                received += peer.recv(16)
            assert received == b"xyz"
        conn.stop()
        assert conn.connected() is False
    finally:
        conn.stop()
        server.close()


def test_socket_connection_refused():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    conn = SocketConnection(timeout=1.0)
    with pytest.raises(ConnectionFailedError):
        conn.connect("127.0.0.1", port)
    assert conn.connected() is False
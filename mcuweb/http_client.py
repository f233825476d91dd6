"""An HTTP/1.1 client that writes requests to a byte connection."""

from __future__ import annotations

import ipaddress

from mcuweb.b64 import b64_encode
from mcuweb.http_response import (
    DEFAULT_RESPONSE_TIMEOUT,
    DEFAULT_WAIT_FOR_DATA_DELAY,
    ApiError,
    ConnectionFailedError,
    HttpState,
    ResponseReader,
    SocketConnection,
)

HTTP_PORT = 80
HTTPS_PORT = 443
USER_AGENT = "Arduino/2.2.0"

METHOD_GET = "GET"
METHOD_POST = "POST"
METHOD_PUT = "PUT"
METHOD_PATCH = "PATCH"
METHOD_DELETE = "DELETE"

_CRLF = b"\r\n"

_BODY_STATES = (
    HttpState.READING_BODY,
    HttpState.READING_CHUNK_LENGTH,
    HttpState.READING_BODY_CHUNK,
)


def _as_bytes(data: int | bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(data, int):
        if not 0 <= data <= 0xFF:
            raise ValueError(f"not a byte value: {data}")
        return bytes((data,))
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class HttpClient(ResponseReader):
    """Sends HTTP requests to one server and reads the responses.

    ``server`` is a host name (sent in the Host header) or an IP address
    (``ipaddress`` object, no Host header). By default a connection is opened
    for every request and closed by the server afterwards.
    """

    def __init__(
        self,
        connection=None,
        server: str | ipaddress.IPv4Address | ipaddress.IPv6Address = "localhost",
        port: int = HTTP_PORT,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        wait_for_data_delay: float = DEFAULT_WAIT_FOR_DATA_DELAY,
    ) -> None:
        if connection is None:
            connection = SocketConnection()
        super().__init__(connection, response_timeout, wait_for_data_delay)
        self.server = server
        self.port = port
        self._connection_close = True
        self._send_default_request_headers = True

    @property
    def _server_name(self) -> str | None:
        if isinstance(self.server, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
            return None
        return self.server

    def _send(self, data: bytes | str) -> None:
        self.connection.write(_as_bytes(data))

    def stop(self) -> None:
        """Close the connection and forget the current response."""
        self.connection.stop()
        self.reset_state()

    def connection_keep_alive(self) -> None:
        """Keep the connection open between requests."""
        self._connection_close = False

    def no_default_request_headers(self) -> None:
        """Do not send the Host and User-Agent headers."""
        self._send_default_request_headers = False

    def begin_request(self) -> None:
        """Start a request whose headers are finished by ``end_request``."""
        self.state = HttpState.REQUEST_STARTED

    def _connect(self) -> None:
        host = self._server_name if self._server_name is not None else str(self.server)
        result = self.connection.connect(host, self.port)
        if isinstance(result, int) and result <= 0:
            raise ConnectionFailedError(f"cannot connect to {host}:{self.port}")

    def _send_initial_headers(self, path: str, method: str) -> None:
        self._send(f"{method} {path} HTTP/1.1\r\n")
        if self._send_default_request_headers:
            name = self._server_name
            if name is not None:
                host = name
                if self.port not in (HTTP_PORT, HTTPS_PORT):
                    host = f"{host}:{self.port}"
                self.send_header("Host", host)
            self.send_header("User-Agent", USER_AGENT)
        if self._connection_close:
            self.send_header("Connection", "close")
        self.state = HttpState.REQUEST_STARTED

    def start_request(
        self,
        path: str,
        method: str,
        content_type: str | None = None,
        body: str | bytes | bytearray | None = None,
    ) -> None:
        """Connect if needed and send the request line and headers.

        With a body, or when ``begin_request`` was not called, the headers
        are finished and the body is sent. Raises ApiError when a request is
        already under way and ConnectionFailedError when connecting fails.
        """
        if self.state in _BODY_STATES:
            self.flush_client_rx()
            self.reset_state()

        initial_state = self.state
        if self.state not in (HttpState.IDLE, HttpState.REQUEST_STARTED):
            raise ApiError("a request is already in progress")

        if self._connection_close or not self.connection.connected():
            self._connect()

        self._send_initial_headers(path, method)

        payload = _as_bytes(body) if body is not None else b""
        if content_type is not None:
            self.send_header("Content-Type", content_type)
        if payload:
            self.send_header("Content-Length", len(payload))

        if initial_state == HttpState.IDLE or payload:
            self.finish_headers()
        if payload:
            self.write(payload)

    def send_header(self, name: str, value: str | int) -> None:
        """Send one ``name: value`` header line."""
        self._send(f"{name}: {value}\r\n")

    def send_header_line(self, line: str) -> None:
        """Send a complete header line as given."""
        self._send(f"{line}\r\n")

    def send_basic_auth(self, user: str, password: str) -> None:
        """Send an Authorization header with Basic credentials."""
        self._send(f"Authorization: Basic {b64_encode(f'{user}:{password}')}\r\n")

    def finish_headers(self) -> None:
        """End the headers with an empty line."""
        self._send(_CRLF)
        self.state = HttpState.REQUEST_SENT

    def end_request(self) -> None:
        """Finish a request started with ``begin_request``."""
        self.begin_body()

    def begin_body(self) -> None:
        """Finish the headers if that has not been done yet."""
        if self.state < HttpState.REQUEST_SENT:
            self.finish_headers()

    def get(self, path: str) -> None:
        self.start_request(path, METHOD_GET)

    def post(self, path: str, content_type: str | None = None, body=None) -> None:
        self.start_request(path, METHOD_POST, content_type, body)

    def put(self, path: str, content_type: str | None = None, body=None) -> None:
        self.start_request(path, METHOD_PUT, content_type, body)

    def patch(self, path: str, content_type: str | None = None, body=None) -> None:
        self.start_request(path, METHOD_PATCH, content_type, body)

    def delete(self, path: str, content_type: str | None = None, body=None) -> None:
        self.start_request(path, METHOD_DELETE, content_type, body)

    def write(self, data: int | bytes | bytearray | memoryview | str) -> int:
        """Send body data, finishing the headers first if still open."""
        if self.state == HttpState.REQUEST_STARTED:
            self.begin_body()
        return self.connection.write(_as_bytes(data))
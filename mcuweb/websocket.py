"""A WebSocket client on top of the HTTP client: handshake and framing."""

from __future__ import annotations

import contextlib
import enum
import ipaddress
import random

from mcuweb.b64 import b64_encode
from mcuweb.http_client import HTTP_PORT, HttpClient
from mcuweb.http_response import (
    DEFAULT_RESPONSE_TIMEOUT,
    DEFAULT_WAIT_FOR_DATA_DELAY,
    ApiError,
    HttpError,
    HttpState,
    InvalidResponseError,
    TimedOutError,
)

TX_BUFFER_SIZE = 128
SWITCHING_PROTOCOLS = 101
_KEY_SIZE = 16
_MASK_SIZE = 4
_PING_SIZE = 16


class MessageType(enum.IntEnum):
    """WebSocket frame opcodes."""

    CONTINUATION = 0x0
    TEXT = 0x1
    BINARY = 0x2
    CONNECTION_CLOSE = 0x8
    PING = 0x9
    PONG = 0xA


def _as_bytes(data: int | bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(data, int):
        if not 0 <= data <= 0xFF:
            raise ValueError(f"not a byte value: {data}")
        return bytes((data,))
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class WebSocketClient(HttpClient):
    """Opens a WebSocket over an HTTP connection and exchanges messages.

    Outgoing messages are built with ``begin_message``, ``write`` and
    ``end_message``; they are masked and hold at most 128 bytes. Incoming
    messages are found with ``parse_message`` and read with ``read``,
    ``read_bytes`` or ``read_string``.
    """

    def __init__(
        self,
        connection=None,
        server: str | ipaddress.IPv4Address | ipaddress.IPv6Address = "localhost",
        port: int = HTTP_PORT,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        wait_for_data_delay: float = DEFAULT_WAIT_FOR_DATA_DELAY,
    ) -> None:
        super().__init__(connection, server, port, response_timeout, wait_for_data_delay)
        self.random = random.Random()
        self._tx_started = False
        self._tx_message_type = 0
        self._tx_buffer = bytearray()
        self._rx_opcode = 0
        self._rx_size = 0
        self._rx_masked = False
        self._rx_mask_index = 0
        self._rx_mask_key = bytes(_MASK_SIZE)

    def begin(self, path: str = "/") -> None:
        """Perform the upgrade handshake on ``path``.

        Raises InvalidResponseError when the server does not switch protocols.
        """
        try:
            self.begin_request()
            self.connection_keep_alive()
            self.get(path)

            key = bytes(self.random.randint(0x01, 0xFE) for _ in range(_KEY_SIZE))
            self.send_header("Upgrade", "websocket")
            self.send_header("Connection", "Upgrade")
            self.send_header("Sec-WebSocket-Key", b64_encode(key))
            self.send_header("Sec-WebSocket-Version", "13")
            self.end_request()

            status = self.response_status_code()
            if status > 0:
                with contextlib.suppress(TimedOutError):
                    self.skip_response_headers()
        finally:
            self._rx_size = 0

        if status != SWITCHING_PROTOCOLS:
            raise InvalidResponseError(f"upgrade refused with status {status}")

    def begin_message(self, message_type: int) -> None:
        """Start an outgoing message of the given type."""
        if self._tx_started:
            raise ApiError("a message is already being built")
        self._tx_started = True
        self._tx_message_type = int(message_type) & 0x0F
        self._tx_buffer = bytearray()

    def end_message(self) -> None:
        """Mask and send the message started with ``begin_message``."""
        if not self._tx_started:
            raise ApiError("no message has been started")

        size = len(self._tx_buffer)
        frame = bytearray((0x80 | self._tx_message_type,))
        if size < 126:
            frame.append(0x80 | size)
        elif size < 0xFFFF:
            frame.append(0x80 | 126)
            frame += size.to_bytes(2, "big")
        else:
            frame.append(0x80 | 127)
            frame += size.to_bytes(8, "big")

        mask = bytes(self.random.randrange(0xFF) for _ in range(_MASK_SIZE))
        frame += mask
        frame += bytes(b ^ mask[i % _MASK_SIZE] for i, b in enumerate(self._tx_buffer))

        self._tx_started = False
        self._tx_buffer = bytearray()

        if super().write(bytes(frame)) != len(frame):
            raise HttpError("the message was not sent completely")

    def write(self, data: int | bytes | bytearray | memoryview | str) -> int:
        """Add data to the current message; before the upgrade, send it raw.

        Returns how many bytes were taken; data beyond the buffer is dropped
        and nothing is taken when no message has been started.
        """
        if self.state < HttpState.READING_BODY:
            return super().write(data)
        if not self._tx_started:
            return 0
        chunk = _as_bytes(data)[: TX_BUFFER_SIZE - len(self._tx_buffer)]
        self._tx_buffer += chunk
        return len(chunk)

    def _flush_rx(self) -> None:
        while self.available():
            self.read()

    def _read_raw(self) -> int:
        return self._http_read()

    def parse_message(self) -> int:
        """Look for the next incoming message and return its size, or 0.

        Pings are answered with pongs, pongs are dropped and a close message
        stops the connection; all of these return 0.
        """
        self._flush_rx()

        if self._http_available() < 2:
            return 0

        opcode = self._read_raw() & 0xFF
        length = self._read_raw()

        if opcode & 0x0F == 0:
            self._rx_opcode |= opcode
        else:
            self._rx_opcode = opcode

        self._rx_masked = bool(length & 0x80)
        length &= 0x7F

        if length < 126:
            self._rx_size = length
        elif length == 126:
            self._rx_size = int.from_bytes(bytes(self._read_raw() & 0xFF for _ in range(2)), "big")
        else:
            self._rx_size = int.from_bytes(bytes(self._read_raw() & 0xFF for _ in range(8)), "big")

        if self._rx_masked:
            self._rx_mask_key = bytes(self._read_raw() & 0xFF for _ in range(_MASK_SIZE))
        self._rx_mask_index = 0

        kind = self._rx_opcode & 0x0F
        if kind == MessageType.CONNECTION_CLOSE:
            self._flush_rx()
            self.stop()
            self._rx_size = 0
        elif kind == MessageType.PING:
            self.begin_message(MessageType.PONG)
            while self.available():
                self.write(self.read())
            self.end_message()
            self._rx_size = 0
        elif kind == MessageType.PONG:
            self._flush_rx()
            self._rx_size = 0

        return self._rx_size

    def message_type(self) -> MessageType | int:
        """Type of the message last parsed."""
        value = self._rx_opcode & 0x0F
        try:
            return MessageType(value)
        except ValueError:
            return value

    def is_final(self) -> bool:
        """True when the message last parsed is the last part of its message."""
        return bool(self._rx_opcode & 0x80)

    def read_string(self) -> str:
        """Read what is left of the current message as text."""
        count = self.available()
        if count <= 0:
            return ""
        data = bytearray()
        for _ in range(count):
            c = self.read()
            if c < 0:
                break
            data.append(c)
        return data.decode("utf-8", "replace")

    def ping(self) -> None:
        """Send a ping with random data."""
        payload = bytes(self.random.randrange(0xFF) for _ in range(_PING_SIZE))
        self.begin_message(MessageType.PING)
        self.write(payload)
        self.end_message()

    def available(self) -> int:
        """Bytes left in the current message; before the upgrade, HTTP bytes."""
        if self.state < HttpState.READING_BODY:
            return super().available()
        return self._rx_size

    def read(self) -> int:
        """Return the next byte, or -1 when there is none."""
        data = self.read_bytes(1)
        return data[0] if data else -1

    def read_bytes(self, size: int) -> bytes:
        """Read up to ``size`` bytes of the current message, unmasked."""
        if self.state >= HttpState.READING_BODY:
            size = min(size, self._rx_size)
        if size <= 0:
            return b""
        data = super().read_bytes(size)
        if not data:
            return data
        self._rx_size -= len(data)
        if self._rx_masked:
            key, start = self._rx_mask_key, self._rx_mask_index
            data = bytes(b ^ key[(start + i) % _MASK_SIZE] for i, b in enumerate(data))
            self._rx_mask_index += len(data)
        return data

    def peek(self) -> int:
        """Return the next byte, unmasked, without consuming it, or -1."""
        p = super().peek()
        if p != -1 and self._rx_masked:
            p = (p & 0xFF) ^ self._rx_mask_key[self._rx_mask_index % _MASK_SIZE]
        return p
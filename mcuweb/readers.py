"""Byte sources used by deserializers.

``read`` returns the next byte, or -1 at the end of the input.
"""

from __future__ import annotations

from typing import BinaryIO, Iterable


def _as_bytes(data: str | bytes | bytearray | memoryview | Iterable[int] | None) -> bytes:
    if data is None:
        return b""
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class BoundedReader:
    """Reads from a byte sequence of known length."""

    def __init__(self, data: str | bytes | bytearray | memoryview | Iterable[int] | None) -> None:
        self._data = _as_bytes(data)
        self._pos = 0

    def read(self) -> int:
        if self._pos >= len(self._data):
            return -1
        byte = self._data[self._pos]
        self._pos += 1
        return byte

    def read_bytes(self, length: int) -> bytes:
        """Return up to ``length`` bytes; fewer at the end of the input."""
        chunk = self._data[self._pos:self._pos + max(length, 0)]
        self._pos += len(chunk)
        return chunk


class ZeroTerminatedReader:
    """Reads from a zero-terminated string; past its end every byte is 0."""

    def __init__(self, data: str | bytes | bytearray | memoryview | None) -> None:
        self._data = _as_bytes(data)
        self._pos = 0

    def read(self) -> int:
        byte = self._data[self._pos] if self._pos < len(self._data) else 0
        self._pos += 1
        return byte

    def read_bytes(self, length: int) -> bytes:
        """Return exactly ``length`` bytes, zero-filled past the end."""
        length = max(length, 0)
        chunk = self._data[self._pos:self._pos + length]
        self._pos += length
        return chunk + bytes(length - len(chunk))


class StreamReader:
    """Reads from a file-like object."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def _read(self, size: int) -> bytes:
        chunk = self._stream.read(size)
        if chunk is None:
            return b""
        if isinstance(chunk, str):
            return chunk.encode("utf-8")
        return bytes(chunk)

    def read(self) -> int:
        chunk = self._read(1)
        return chunk[0] if chunk else -1

    def read_bytes(self, length: int) -> bytes:
        if length <= 0:
            return b""
        return self._read(length)


def make_reader(source, size: int | None = None):
    """Choose a reader for ``source``.

    With ``size`` the first ``size`` bytes are read. Streams (anything with a
    ``read`` method) get a StreamReader, None a ZeroTerminatedReader, and
    other byte or text sequences a BoundedReader.
    """
    if size is not None:
        if size < 0:
            raise ValueError(f"size must not be negative, not {size}")
        return BoundedReader(_as_bytes(source)[:size])
    if source is None:
        return ZeroTerminatedReader(None)
    if hasattr(source, "read"):
        return StreamReader(source)
    return BoundedReader(source)
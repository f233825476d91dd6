"""Byte sinks used by serializers."""

from __future__ import annotations

from typing import BinaryIO


def _as_bytes(data: int | bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(data, int):
        if not 0 <= data <= 0xFF:
            raise ValueError(f"not a byte value: {data}")
        return bytes((data,))
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class DummyWriter:
    """Discards everything; used to measure output length."""

    def write(self, data: int | bytes | bytearray | memoryview | str) -> int:
        return len(_as_bytes(data))


class StaticStringWriter:
    """Writes into a buffer of fixed size, dropping what does not fit."""

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError(f"size must not be negative, not {size}")
        self._size = size
        self._buffer = bytearray()

    def write(self, data: int | bytes | bytearray | memoryview | str) -> int:
        """Write as many bytes as fit and return how many were written."""
        chunk = _as_bytes(data)[: self._size - len(self._buffer)]
        self._buffer += chunk
        return len(chunk)

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


class StreamWriter:
    """Writes to a binary stream."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def write(self, data: int | bytes | bytearray | memoryview | str) -> int:
        chunk = _as_bytes(data)
        self._stream.write(chunk)
        return len(chunk)


class CountingDecorator:
    """Wraps a writer and counts the bytes it accepted."""

    def __init__(self, writer) -> None:
        self._writer = writer
        self._count = 0

    def write(self, data: int | bytes | bytearray | memoryview | str) -> int:
        written = self._writer.write(data)
        self._count += written
        return written

    def count(self) -> int:
        return self._count
"""Strings that are either borrowed or copied, and byte-wise comparison."""

from __future__ import annotations

import enum


class StoragePolicy(enum.Enum):
    """Whether a string is kept by reference or must be copied."""

    LINK = "link"
    COPY = "copy"


class JsonString:
    """A possibly-null byte string together with how it is stored."""

    __slots__ = ("_data", "_policy")

    def __init__(
        self,
        data: str | bytes | bytearray | None = None,
        size: int | None = None,
        policy: StoragePolicy = StoragePolicy.LINK,
    ) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        if data is not None:
            data = bytes(data)
            if size is None:
                data = data.split(b"\0", 1)[0]
            elif not 0 <= size <= len(data):
                raise ValueError(f"size {size} out of range for {len(data)} bytes")
            else:
                data = data[:size]
        elif size:
            raise ValueError("a null string has no size")
        self._data = data
        self._policy = policy

    @property
    def data(self) -> bytes | None:
        return self._data

    @property
    def storage_policy(self) -> StoragePolicy:
        return self._policy

    def is_null(self) -> bool:
        return self._data is None

    def is_linked(self) -> bool:
        return self._policy is StoragePolicy.LINK

    def size(self) -> int:
        return 0 if self._data is None else len(self._data)

    def __len__(self) -> int:
        return self.size()

    def __bool__(self) -> bool:
        return self._data is not None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JsonString):
            return NotImplemented
        return self._data == other._data

    def __hash__(self) -> int:
        return hash(self._data)

    def __str__(self) -> str:
        return "" if self._data is None else self._data.decode("utf-8", "replace")

    def __repr__(self) -> str:
        return f"JsonString({self._data!r}, policy={self._policy.name})"


def _as_bytes(value: JsonString | str | bytes | bytearray | None) -> bytes:
    if isinstance(value, JsonString):
        value = value.data
    elif isinstance(value, str):
        value = value.encode("utf-8")
    if value is None:
        raise ValueError("cannot compare a null string")
    return bytes(value)


def string_compare(
    a: JsonString | str | bytes | bytearray,
    b: JsonString | str | bytes | bytearray,
) -> int:
    """Compare byte by byte: negative, zero or positive like ``strcmp``."""
    left, right = _as_bytes(a), _as_bytes(b)
    for x, y in zip(left, right):
        if x != y:
            return x - y
    if len(left) < len(right):
        return -1
    if len(left) > len(right):
        return 1
    return 0


def string_equals(
    a: JsonString | str | bytes | bytearray,
    b: JsonString | str | bytes | bytearray,
) -> bool:
    """Tell whether two non-null strings hold the same bytes."""
    return _as_bytes(a) == _as_bytes(b)
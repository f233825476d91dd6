"""A fixed-capacity memory pool for strings and variant slots.

Strings are stored from the left end of the pool and variant slots from the
right end. When they meet, the pool is marked as overflowed.
"""

from __future__ import annotations

from mcuweb.strings import JsonString, StoragePolicy

DEFAULT_SLOT_SIZE = 16
_ALIGNMENT = 8


def _add_padding(nbytes: int) -> int:
    return (nbytes + _ALIGNMENT - 1) & ~(_ALIGNMENT - 1)


def _to_bytes(value: JsonString | str | bytes | bytearray | None) -> bytes | None:
    if isinstance(value, JsonString):
        return value.data
    if value is None:
        return None
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def _chars(text: str | bytes | bytearray | int) -> bytes:
    if isinstance(text, int):
        if not 0 <= text <= 0xFF:
            raise ValueError(f"not a byte value: {text}")
        return bytes((text,))
    if isinstance(text, str):
        return text.encode("utf-8")
    return bytes(text)


class MemoryPool:
    """Bookkeeping for a pool of ``capacity`` bytes shared by strings and slots."""

    def __init__(
        self,
        capacity: int,
        slot_size: int = DEFAULT_SLOT_SIZE,
        deduplicate: bool = True,
    ) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must not be negative, not {capacity}")
        if slot_size <= 0:
            raise ValueError(f"slot size must be positive, not {slot_size}")
        self._slot_size = slot_size
        self._deduplicate = deduplicate
        self._left = 0
        self._right = capacity
        self._end = capacity
        self._overflowed = False
        self._strings: list[bytes] = []
        self._variants = 0

    @property
    def capacity(self) -> int:
        """Total number of bytes the pool manages."""
        return self._end

    @property
    def overflowed(self) -> bool:
        """True once an allocation has failed since the last clear."""
        return self._overflowed

    def size(self) -> int:
        """Number of bytes in use by strings and variant slots."""
        return self._left + (self._end - self._right)

    def can_alloc(self, nbytes: int) -> bool:
        return self._left + nbytes <= self._right

    def alloc_variant(self) -> int | None:
        """Reserve one variant slot and return its index, or None when full."""
        if not self.can_alloc(self._slot_size):
            self._overflowed = True
            return None
        self._right -= self._slot_size
        index = self._variants
        self._variants += 1
        return index

    def _find_string(self, data: bytes) -> bytes | None:
        if not self._deduplicate:
            return None
        for stored in self._strings:
            if stored == data:
                return stored
        return None

    def save_string(self, value: JsonString | str | bytes | bytearray | None) -> bytes | None:
        """Copy ``value`` into the pool and return the stored bytes.

        Returns None for a null string or when the pool is full; in the latter
        case the pool is marked as overflowed. With deduplication an equal
        string already in the pool is returned instead of a new copy.
        """
        data = _to_bytes(value)
        if data is None:
            return None
        existing = self._find_string(data)
        if existing is not None:
            return existing
        needed = len(data) + 1
        if not self.can_alloc(needed):
            self._overflowed = True
            return None
        self._left += needed
        self._strings.append(data)
        return data

    def free_space(self) -> int:
        """Bytes left between the strings and the variant slots."""
        return self._right - self._left

    def commit_string(self, value: JsonString | str | bytes | bytearray) -> bytes:
        """Store a string built in the free space, with its terminator.

        Raises ValueError when the string and its terminator do not fit.
        """
        data = _to_bytes(value)
        if data is None:
            raise ValueError("cannot commit a null string")
        existing = self._find_string(data)
        if existing is not None:
            return existing
        if len(data) + 1 > self.free_space():
            raise ValueError("string does not fit in the free space")
        self._left += len(data) + 1
        self._strings.append(data)
        return data

    def mark_as_overflowed(self) -> None:
        self._overflowed = True

    def clear(self) -> None:
        """Release every string and slot and forget the overflow."""
        self._left = 0
        self._right = self._end
        self._overflowed = False
        self._strings.clear()
        self._variants = 0

    def squash(self) -> int:
        """Move the slots next to the strings and return the bytes reclaimed."""
        new_right = _add_padding(self._left)
        if new_right >= self._right:
            return 0
        right_size = self._end - self._right
        reclaimed = self._right - new_right
        self._right = new_right
        self._end = new_right + right_size
        return reclaimed


def store_string(pool: MemoryPool, value: JsonString | str | bytes | bytearray | None) -> JsonString:
    """Store ``value`` according to its storage policy.

    Linked strings are kept by reference; others are copied into the pool.
    The result is a null string when the copy failed.
    """
    if isinstance(value, JsonString):
        policy = value.storage_policy
    else:
        policy = StoragePolicy.COPY
    data = _to_bytes(value)
    if policy is StoragePolicy.LINK:
        if data is None:
            return JsonString(None, policy=StoragePolicy.LINK)
        return JsonString(data, len(data), StoragePolicy.LINK)
    copy = pool.save_string(data)
    if copy is None:
        return JsonString(None, policy=StoragePolicy.COPY)
    return JsonString(copy, len(copy), StoragePolicy.COPY)


class StringCopier:
    """Builds a string in a pool's free space, then commits it."""

    def __init__(self, pool: MemoryPool) -> None:
        self._pool = pool
        self._buffer = bytearray()
        self._capacity = 0

    def start_string(self) -> None:
        self._capacity = self._pool.free_space()
        self._buffer = bytearray()
        if self._capacity == 0:
            self._pool.mark_as_overflowed()

    def append(self, text: str | bytes | bytearray | int) -> None:
        """Append characters; those that do not fit mark the pool as overflowed."""
        for byte in _chars(text):
            if len(self._buffer) + 1 < self._capacity:
                self._buffer.append(byte)
            else:
                self._pool.mark_as_overflowed()

    def save(self) -> JsonString:
        """Commit the string to the pool and return it."""
        stored = self._pool.commit_string(bytes(self._buffer))
        return JsonString(stored, len(stored), StoragePolicy.COPY)

    def is_valid(self) -> bool:
        return not self._pool.overflowed

    def size(self) -> int:
        return len(self._buffer)

    def str(self) -> JsonString:
        """The string built so far, without committing it."""
        data = bytes(self._buffer)
        return JsonString(data, len(data), StoragePolicy.COPY)


class StringMover:
    """Builds strings in place inside a mutable input buffer."""

    def __init__(self, buffer: bytearray) -> None:
        if not isinstance(buffer, bytearray):
            raise TypeError("StringMover needs a bytearray to write into")
        self._buffer = buffer
        self._write = 0
        self._start = 0

    def _put(self, byte: int) -> None:
        if self._write == len(self._buffer):
            self._buffer.append(byte)
        else:
            self._buffer[self._write] = byte
        self._write += 1

    def start_string(self) -> None:
        self._start = self._write

    def append(self, text: str | bytes | bytearray | int) -> None:
        for byte in _chars(text):
            self._put(byte)

    def save(self) -> JsonString:
        """Terminate the current string and move past its terminator."""
        result = self.str()
        self._write += 1
        return result

    def is_valid(self) -> bool:
        return True

    def size(self) -> int:
        return self._write - self._start

    def str(self) -> JsonString:
        """Write the terminator and return the current string, linked."""
        self._put(0)
        self._write -= 1
        data = bytes(self._buffer[self._start:self._write])
        return JsonString(data, len(data), StoragePolicy.LINK)
"""Base64 encoding in three-byte chunks, padded with '='."""

from __future__ import annotations

import string

_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits + "+/"


def _encode_chunk(chunk: bytes) -> str:
    """Encode one to three bytes as four Base64 characters."""
    b0 = chunk[0]
    b1 = chunk[1] if len(chunk) > 1 else 0
    b2 = chunk[2] if len(chunk) > 2 else 0
    chars = [
        _ALPHABET[b0 >> 2],
        _ALPHABET[((b0 & 0x03) << 4) | (b1 >> 4)],
        _ALPHABET[((b1 & 0x0F) << 2) | (b2 >> 6)],
        _ALPHABET[b2 & 0x3F],
    ]
    if len(chunk) < 3:
        chars[3] = "="
    if len(chunk) < 2:
        chars[2] = "="
    return "".join(chars)


def b64_encode(data: bytes | bytearray | str) -> str:
    """Return the Base64 encoding of ``data``; text is encoded as UTF-8 first."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    data = bytes(data)
    return "".join(
        _encode_chunk(data[start:start + 3]) for start in range(0, len(data), 3)
    )
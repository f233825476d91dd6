import string
from urllib.parse import unquote, unquote_to_bytes

import pytest

from mcuweb.urlencoder import url_encode

UNRESERVED = string.ascii_letters + string.digits + "-._~"


def test_unreserved_characters_unchanged():
    assert url_encode(UNRESERVED) == UNRESERVED


def test_space_is_escaped():
    assert url_encode("a b") == "a%20b"


def test_non_ascii_is_utf8_escaped():
    assert url_encode("é") == "%C3%A9"


def test_empty():
    assert url_encode("") == ""


@pytest.mark.parametrize(
    "text",
    ["hello world", "a/b?c=d&e=f", "100%", "snow ☃ man", "tab\there", "~user.name_x-y"],
)
def test_round_trip(text):
    assert unquote(url_encode(text)) == text


def test_bytes_round_trip():
    data = bytes(range(256))
    assert unquote_to_bytes(url_encode(data)) == data


def test_output_only_uses_safe_characters_and_upper_hex():
    encoded = url_encode(bytes(range(256)))
    allowed = set(UNRESERVED) | set("%0123456789ABCDEF")
    assert set(encoded) <= allowed
    assert encoded == encoded.replace("%", "%")  # sanity of content
    escapes = [encoded[i + 1:i + 3] for i, ch in enumerate(encoded) if ch == "%"]
    assert all(esc == esc.upper() for esc in escapes)
    assert len(escapes) == 256 - len(UNRESERVED)
import pytest

from mcuweb.strings import JsonString, StoragePolicy, string_compare, string_equals


def test_size_and_defaults():
    s = JsonString("hello")
    assert s.size() == len("hello")
    assert s.is_linked()
    assert not s.is_null()
    assert str(s) == "hello"


def test_copied_string_is_not_linked():
    s = JsonString("abc", policy=StoragePolicy.COPY)
    assert not s.is_linked()
    assert s.storage_policy is StoragePolicy.COPY


def test_null_string():
    s = JsonString()
    assert s.is_null()
    assert s.size() == 0
    assert not s


def test_implicit_size_stops_at_terminator():
    assert JsonString("a\0b").data == b"a"


def test_explicit_size_keeps_embedded_nul():
    s = JsonString(b"a\0b", 3)
    assert s.data == b"a\0b"
    assert JsonString(b"abcdef", 2).data == b"ab"


def test_explicit_size_out_of_range():
    with pytest.raises(ValueError):
        JsonString(b"ab", 3)


def test_equality_ignores_ownership():
    assert JsonString("x", policy=StoragePolicy.COPY) == JsonString("x")
    assert JsonString("x") != JsonString("y")
    assert JsonString() == JsonString()
    assert JsonString() != JsonString("")


def test_compare_sign():
    assert string_compare("abc", "abd") < 0
    assert string_compare("abd", "abc") > 0
    assert string_compare("abc", JsonString("abc")) == 0


def test_compare_prefix_fixed_values():
    assert string_compare("ab", "abc") == -1
    assert string_compare(b"abc", "ab") == 1


def test_compare_is_antisymmetric():
    for a, b in [("apple", "apricot"), ("z", "aaaa"), ("", "x")]:
        assert string_compare(a, b) == -string_compare(b, a) or (
            string_compare(a, b) < 0 < string_compare(b, a)
            or string_compare(b, a) < 0 < string_compare(a, b)
        )
        assert (string_compare(a, b) < 0) == (string_compare(b, a) > 0)


def test_equals():
    assert string_equals("key", JsonString(b"key"))
    assert not string_equals("key", "keys")
    assert string_equals(b"", "")


def test_null_cannot_be_compared():
    with pytest.raises(ValueError):
        string_compare(JsonString(), "a")
    with pytest.raises(ValueError):
        string_equals("a", JsonString())
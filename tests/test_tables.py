import pytest

from webdishttp.tables import is_url_char, token, unhex


def test_token_lowercases_letters():
    assert token(ord("A")) == "a"
    assert token(ord("Z")) == "z"


@pytest.mark.parametrize("sep", list("()<>@,;:\\[]?={\t"))
def test_separators_are_not_tokens(sep):
    assert token(ord(sep)) is None


def test_token_keeps_non_letters():
    for ch in "-_0123456789!~":
        assert token(ord(ch)) == ch


@pytest.mark.parametrize("value", [0, 13, 10, 127, 128, 200, 255])
def test_controls_and_high_bytes_are_rejected(value):
    assert token(value) is None
    assert is_url_char(value) is False


def test_unhex_digits():
    for ch in "0123456789abcdefABCDEF":
        assert unhex(ord(ch)) == int(ch, 16)


@pytest.mark.parametrize("ch", "gGxz -;")
def test_unhex_rejects_non_hex(ch):
    assert unhex(ord(ch)) is None


@pytest.mark.parametrize("ch,expected", [
    ("a", True), ("/", True), ("%", True), ("&", True),
    ("?", False), ("#", False), (" ", False), ("\r", False),
])
def test_url_chars(ch, expected):
    assert is_url_char(ord(ch)) is expected


@pytest.mark.parametrize("func", [token, unhex, is_url_char])
@pytest.mark.parametrize("bad", [-1, 256])
def test_out_of_range_raises(func, bad):
    with pytest.raises(ValueError):
        func(bad)
import pytest

from dk_codec import b64url_decode, b64url_encode, bytes_to_hex, hex_to_bytes
from dk_errors import InvalidEncoding

SAMPLES = [b"", b"f", b"fo", b"foo", b"foob", b"\x00\xff\xfe\xfb", bytes(range(256)), "héllo wörld ✓".encode("utf-8")]

@pytest.mark.parametrize("data", SAMPLES)
def test_b64url_roundtrip(data):
    enc = b64url_encode(data)
    assert "=" not in enc and "+" not in enc and "/" not in enc
    assert b64url_decode(enc) == data

def test_b64url_uses_url_alphabet():
    assert b64url_encode(b"\xfb\xff") == "-_8"

def test_b64url_accepts_unpadded_lengths():
    assert b64url_decode("eyJzdWIiOiJ0ZXN0In0") == b'{"sub":"test"}'

@pytest.mark.parametrize("bad", ["ab+c", "ab/c", "YQ==", "a b", "é", "abcde"])
def test_b64url_rejects_bad_input(bad):
    with pytest.raises(InvalidEncoding):
        b64url_decode(bad)

def test_hex_roundtrip():
    s = b"hello\x00world"
    assert hex_to_bytes(bytes_to_hex(s)) == s

def test_b64url_rejects_non_canonical_trailing_bits():
    assert b64url_decode("QQ") == b"A"
    with pytest.raises(InvalidEncoding):
        b64url_decode("QR")

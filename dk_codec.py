from __future__ import annotations
from typing import Any
import base64, binascii, re

from dk_errors import InvalidEncoding

B64URL_ALPHABET = re.compile(r"[A-Za-z0-9_\-]*")

# ------------------------------
# Byte helpers
# ------------------------------
def clamp_bytes(b: bytes, max_len: int = 2_000_000) -> bytes:
    if len(b) > max_len:
        return b[:max_len]
    return b

def to_bytes(x: Any, encoding: str = "utf-8") -> bytes:
    if isinstance(x, bytes):
        return x
    return str(x).encode(encoding, errors="replace")

def try_decode_utf8(b: bytes) -> str:
    try:
        return b.decode("utf-8")
    except UnicodeDecodeError:
        return b.decode("latin-1", errors="replace")

def bytes_to_hex(b: bytes) -> str:
    return binascii.hexlify(b).decode("ascii")

def hex_to_bytes(s: str) -> bytes:
    s = s.strip().replace(" ", "").replace("\n", "")
    return binascii.unhexlify(s)

# ------------------------------
# Base64URL (unpadded, JWT segments)
# ------------------------------
def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")

def b64url_decode(text: str) -> bytes:
    """Decode unpadded URL-safe Base64. Padding characters are rejected."""
    if B64URL_ALPHABET.fullmatch(text) is None:
        raise InvalidEncoding("invalid character for URL-safe Base64")
    if len(text) % 4 == 1:
        raise InvalidEncoding(f"invalid length {len(text)} for Base64")
    padded = text + "=" * (-len(text) % 4)
    try:
        out = base64.urlsafe_b64decode(padded)
    except binascii.Error as e:
        raise InvalidEncoding(str(e)) from e
    if b64url_encode(out) != text:
        raise InvalidEncoding("non-canonical trailing bits")
    return out

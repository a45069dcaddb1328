"""
AES-256-GCM with a user-supplied hex key.

By default every encryption uses FIXED_NONCE, so the same key and plaintext
always give the same ciphertext. Reusing a GCM nonce under one key leaks the
XOR of plaintexts and allows tag forgery; ``nonce_mode="random"`` draws a
fresh nonce per call and prepends it to the output instead.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import logging, secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from dk_codec import bytes_to_hex, hex_to_bytes
from dk_errors import (
    AuthenticationFailed, CipherError, InvalidHexEncoding, InvalidKeyLength, InvalidNonceLength, Utf8DecodeError,
)

log = logging.getLogger(__name__)

KEY_BYTES = 32
NONCE_BYTES = 12
TAG_BYTES = 16
FIXED_NONCE = b"unique nonce"


@dataclass
class CipherResult:
    output: str = ""
    error: Optional[str] = None
    failure: Optional[CipherError] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def _fail(exc: CipherError) -> CipherResult:
    log.info("cipher operation failed: %s", type(exc).__name__)
    return CipherResult(error=str(exc), failure=exc)


def _unhex(text: str, what: str) -> bytes:
    try:
        return hex_to_bytes(text)
    except ValueError as e:
        raise InvalidHexEncoding(f"{what} is not valid hex: {e}") from e


def validate_key(key_hex: str) -> bytes:
    key = _unhex(key_hex, "key")
    if len(key) != KEY_BYTES:
        raise InvalidKeyLength(len(key))
    return key


def generate_key() -> str:
    return secrets.token_hex(KEY_BYTES)


# ------------------------------
# Primitive
# ------------------------------
def _check(key: bytes, nonce: bytes) -> None:
    if len(key) != KEY_BYTES:
        raise InvalidKeyLength(len(key))
    if len(nonce) != NONCE_BYTES:
        raise InvalidNonceLength(f"nonce must be {NONCE_BYTES} bytes, got {len(nonce)}")


def encrypt(key: bytes, nonce: bytes, plaintext: bytes) -> bytes:
    """Return ciphertext || 16-byte tag. No associated data."""
    _check(key, nonce)
    return AESGCM(key).encrypt(nonce, plaintext, None)


def decrypt(key: bytes, nonce: bytes, sealed: bytes) -> bytes:
    _check(key, nonce)
    if len(sealed) < TAG_BYTES:
        raise AuthenticationFailed()
    try:
        return AESGCM(key).decrypt(nonce, sealed, None)
    except InvalidTag as e:
        raise AuthenticationFailed() from e


# ------------------------------
# Boundary (hex in, hex/text out)
# ------------------------------
def encrypt_text(plaintext: str, key_hex: str, nonce_mode: Optional[str] = None) -> CipherResult:
    if not plaintext:
        return CipherResult()
    try:
        key = validate_key(key_hex)
    except CipherError as e:
        return _fail(e)

    if nonce_mode == "random":
        nonce = secrets.token_bytes(NONCE_BYTES)
        sealed = nonce + encrypt(key, nonce, plaintext.encode("utf-8"))
    else:
        sealed = encrypt(key, FIXED_NONCE, plaintext.encode("utf-8"))
    log.debug("encrypted %d plaintext bytes (nonce_mode=%s)", len(plaintext.encode("utf-8")), nonce_mode or "fixed")
    return CipherResult(output=bytes_to_hex(sealed))


def decrypt_text(cipher_hex: str, key_hex: str, nonce_mode: Optional[str] = None) -> CipherResult:
    if not cipher_hex.strip():
        return CipherResult()
    try:
        key = validate_key(key_hex)
        sealed = _unhex(cipher_hex, "ciphertext")
        if nonce_mode == "random":
            if len(sealed) < NONCE_BYTES:
                raise AuthenticationFailed()
            nonce, sealed = sealed[:NONCE_BYTES], sealed[NONCE_BYTES:]
        else:
            nonce = FIXED_NONCE
        plain = decrypt(key, nonce, sealed)
        try:
            text = plain.decode("utf-8")
        except UnicodeDecodeError as e:
            raise Utf8DecodeError(f"decrypted bytes are not valid UTF-8: {e}") from e
    except CipherError as e:
        return _fail(e)
    log.debug("decrypted %d bytes", len(plain))
    return CipherResult(output=text)

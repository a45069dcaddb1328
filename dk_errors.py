from __future__ import annotations
from typing import Optional


class InvalidEncoding(ValueError):
    pass


# ------------------------------
# Token path
# ------------------------------
class TokenError(ValueError):
    """Base for everything the token inspector can report."""


class MalformedToken(TokenError):
    pass


class SegmentError(TokenError):
    segment = "segment"

    def __init__(self, stage: str, detail: str):
        self.stage = stage  # "base64" | "utf8" | "json"
        self.detail = detail
        super().__init__(f"{self.segment} {stage} decode failed: {detail}")


class HeaderError(SegmentError):
    segment = "header"


class PayloadError(SegmentError):
    segment = "payload"


class ComputationError(TokenError):
    pass


# ------------------------------
# Cipher path
# ------------------------------
class CipherError(ValueError):
    """Base for everything the AES tool can report."""


class InvalidKeyLength(CipherError):
    def __init__(self, got: Optional[int] = None):
        msg = "key must be 32 bytes (64 hex characters)"
        if got is not None:
            msg += f", got {got} bytes"
        super().__init__(msg)
        self.got = got


class InvalidHexEncoding(CipherError):
    pass


class AuthenticationFailed(CipherError):
    def __init__(self):
        super().__init__("authentication failed: ciphertext, key or nonce does not match")


class Utf8DecodeError(CipherError):
    pass


class InvalidNonceLength(CipherError):
    pass

"""
Signed-token inspection: segment parsing and HS256 signature checks.

A token is ``header.payload[.signature]`` where every segment is unpadded
Base64URL. Header and payload are decoded independently so that a broken
header never hides a readable payload. The signature is recomputed over the
*encoded* segments exactly as they appear in the input.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Type
import hashlib, hmac, json, logging

import jwt  # pyjwt, used only to mint tokens

from dk_codec import b64url_decode, b64url_encode
from dk_errors import (
    ComputationError, HeaderError, InvalidEncoding, MalformedToken, PayloadError, SegmentError, TokenError,
)

log = logging.getLogger(__name__)


class Verdict(Enum):
    NOT_CHECKED = "not_checked"
    VALID = "valid"
    INVALID = "invalid"
    COMPUTATION_ERROR = "computation_error"

    @property
    def label(self) -> str:
        return VERDICT_LABELS[self]


VERDICT_LABELS = {
    Verdict.NOT_CHECKED: "Signature not checked",
    Verdict.VALID: "✓ Signature valid",
    Verdict.INVALID: "✗ Signature invalid",
    Verdict.COMPUTATION_ERROR: "Signature could not be computed",
}


@dataclass
class SignatureCheck:
    verdict: Verdict
    detail: Optional[str] = None


@dataclass
class TokenView:
    header_json: Optional[str] = None
    payload_json: Optional[str] = None
    verdict: Verdict = Verdict.NOT_CHECKED
    error: Optional[str] = None
    errors: List[TokenError] = field(default_factory=list)
    verdict_detail: Optional[str] = None

    @property
    def idle(self) -> bool:
        return self.header_json is None and self.payload_json is None and not self.errors


# ------------------------------
# Segment parsing
# ------------------------------
def decode_segment(segment: str, error_cls: Type[SegmentError]) -> Any:
    """Base64URL -> UTF-8 -> JSON. Failures name the stage that broke."""
    try:
        raw = b64url_decode(segment)
    except InvalidEncoding as e:
        raise error_cls("base64", str(e)) from e
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise error_cls("utf8", str(e)) from e
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except RecursionError as e:
        raise error_cls("json", "nesting too deep") from e
    except ValueError as e:
        raise error_cls("json", str(e)) from e


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def pretty_json(value: Any, indent: int = 2) -> str:
    return json.dumps(value, indent=indent, ensure_ascii=False)


def render_segment(segment: str, error_cls: Type[SegmentError], indent: int = 2) -> str:
    value = decode_segment(segment, error_cls)
    try:
        return pretty_json(value, indent)
    except RecursionError as e:
        raise error_cls("json", "nesting too deep") from e


def split_token(raw: str) -> List[str]:
    parts = raw.split(".")
    if len(parts) < 2:
        raise MalformedToken("must have at least 2 parts")
    return parts


# ------------------------------
# Signature
# ------------------------------
def compute_signature(header_segment: str, payload_segment: str, secret: str) -> str:
    message = f"{header_segment}.{payload_segment}".encode("utf-8")
    try:
        mac = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()
    except (TypeError, ValueError) as e:
        raise ComputationError(f"HMAC keying failed: {e}") from e
    return b64url_encode(mac)


def verify_signature(header_segment: str, payload_segment: str, signature_segment: str, secret: str) -> SignatureCheck:
    try:
        expected = compute_signature(header_segment, payload_segment, secret)
    except ComputationError as e:
        return SignatureCheck(Verdict.COMPUTATION_ERROR, str(e))
    # compare_digest runs over the full length regardless of where bytes differ
    if hmac.compare_digest(expected.encode("utf-8"), signature_segment.encode("utf-8")):
        return SignatureCheck(Verdict.VALID)
    return SignatureCheck(Verdict.INVALID)


def sign_token(payload: Dict[str, Any], secret: str, headers: Optional[Dict[str, Any]] = None) -> str:
    """Mint an HS256 token whose signature verify_signature accepts."""
    try:
        return jwt.encode(payload, secret, algorithm="HS256", headers=headers)
    except (TypeError, ValueError, jwt.PyJWTError) as e:
        raise ComputationError(f"signing failed: {e}") from e


def resign_token(raw: str, secret: str) -> str:
    """Re-sign the decoded header/payload of `raw` with `secret` as HS256.
    Header fields other than alg are carried over."""
    parts = split_token(raw.strip())
    header = decode_segment(parts[0], HeaderError)
    payload = decode_segment(parts[1], PayloadError)
    if not isinstance(header, dict):
        raise HeaderError("json", "header must be a JSON object to re-sign")
    if not isinstance(payload, dict):
        raise PayloadError("json", "payload must be a JSON object to re-sign")
    if not secret:
        raise ComputationError("a secret is required to sign")
    headers = {k: v for k, v in header.items() if k != "alg"}
    token = sign_token(payload, secret, headers=headers or None)
    log.debug("token re-signed: %d header fields", len(headers))
    return token


# ------------------------------
# Boundary
# ------------------------------
def decode_token(raw: str, secret: str = "", indent: int = 2) -> TokenView:
    view = TokenView()
    raw = raw.strip()
    if not raw:
        return view

    try:
        parts = split_token(raw)
    except MalformedToken as e:
        view.errors.append(e)
        view.error = str(e)
        log.debug("token rejected: %d segment(s)", raw.count(".") + 1)
        return view

    header_segment, payload_segment = parts[0], parts[1]

    try:
        view.header_json = render_segment(header_segment, HeaderError, indent)
    except HeaderError as e:
        view.errors.append(e)

    try:
        view.payload_json = render_segment(payload_segment, PayloadError, indent)
    except PayloadError as e:
        view.errors.append(e)

    if len(parts) >= 3 and secret:
        check = verify_signature(header_segment, payload_segment, parts[2], secret)
        view.verdict = check.verdict
        view.verdict_detail = check.detail
        if check.verdict is Verdict.COMPUTATION_ERROR:
            view.errors.append(ComputationError(check.detail))

    if view.errors:
        view.error = str(view.errors[0])
    log.debug("token decoded: %d segments, verdict=%s, errors=%s",
              len(parts), view.verdict.value, [type(e).__name__ for e in view.errors])
    return view

import json

import jwt
import pytest

from dk_codec import b64url_encode
from dk_errors import HeaderError, MalformedToken, PayloadError
from dk_token import Verdict, compute_signature, decode_token, resign_token, sign_token, verify_signature

SAMPLE = "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9.eyJzdWIiOiJ0ZXN0In0.signature"
SECRET = "a-reasonably-long-shared-secret-value-for-hs256"


def make_token(payload=None, secret=SECRET):
    return jwt.encode(payload or {"sub": "alice", "admin": True}, secret, algorithm="HS256")


def flip(s, i):
    return s[:i] + ("A" if s[i] != "A" else "B") + s[i + 1:]


def test_sample_token_without_secret_is_not_checked():
    view = decode_token(SAMPLE, "")
    assert view.verdict is Verdict.NOT_CHECKED
    assert view.error is None
    assert json.loads(view.header_json) == {"alg": "HS256", "typ": "JWT"}
    assert json.loads(view.payload_json) == {"sub": "test"}

def test_output_is_pretty_printed_with_two_spaces():
    view = decode_token(SAMPLE)
    assert view.payload_json == '{\n  "sub": "test"\n}'

def test_single_segment_is_malformed():
    view = decode_token("abc")
    assert isinstance(view.errors[0], MalformedToken)
    assert "at least 2 parts" in view.error
    assert view.header_json is None and view.payload_json is None

def test_empty_input_is_idle():
    view = decode_token("", SECRET)
    assert view.idle
    assert view.error is None
    assert view.verdict is Verdict.NOT_CHECKED

def test_pyjwt_token_verifies():
    token = make_token()
    view = decode_token(token, SECRET)
    assert view.verdict is Verdict.VALID
    assert json.loads(view.payload_json) == {"sub": "alice", "admin": True}

def test_sign_token_matches_manual_hmac():
    token = sign_token({"sub": "bob"}, SECRET)
    h, p, s = token.split(".")
    assert s == compute_signature(h, p, SECRET)
    assert verify_signature(h, p, s, SECRET).verdict is Verdict.VALID

def test_wrong_secret_is_invalid():
    view = decode_token(make_token(), SECRET + "x")
    assert view.verdict is Verdict.INVALID

def test_sample_token_with_secret_is_invalid():
    assert decode_token(SAMPLE, "secret").verdict is Verdict.INVALID

def test_two_segments_never_checked():
    h, p, _ = make_token().split(".")
    assert decode_token(f"{h}.{p}", SECRET).verdict is Verdict.NOT_CHECKED

@pytest.mark.parametrize("part", [0, 1, 2])
def test_single_character_change_flips_verdict(part):
    segments = make_token().split(".")
    segments[part] = flip(segments[part], 3)
    view = decode_token(".".join(segments), SECRET)
    assert view.verdict is Verdict.INVALID

def test_secret_change_flips_verdict():
    token = make_token()
    assert decode_token(token, SECRET).verdict is Verdict.VALID
    assert decode_token(token, flip(SECRET, 0)).verdict is Verdict.INVALID

def test_signature_is_over_encoded_segments():
    h = b64url_encode(b'{"alg":"HS256"}')
    p = b64url_encode(b'{ "sub" : "spaced" }')
    sig = compute_signature(h, p, "k")
    assert decode_token(f"{h}.{p}.{sig}", "k").verdict is Verdict.VALID

def test_non_object_json_segments_are_accepted():
    h = b64url_encode(b"[1,2,3]")
    p = b64url_encode(b'"just a string"')
    view = decode_token(f"{h}.{p}")
    assert json.loads(view.header_json) == [1, 2, 3]
    assert json.loads(view.payload_json) == "just a string"

def test_bad_header_still_decodes_payload():
    p = b64url_encode(b'{"sub":"test"}')
    view = decode_token(f"!!!.{p}")
    assert isinstance(view.errors[0], HeaderError)
    assert view.errors[0].stage == "base64"
    assert view.header_json is None
    assert json.loads(view.payload_json) == {"sub": "test"}

def test_bad_payload_keeps_header():
    h = b64url_encode(b'{"alg":"HS256"}')
    p = b64url_encode(b"not json")
    view = decode_token(f"{h}.{p}")
    assert json.loads(view.header_json) == {"alg": "HS256"}
    assert isinstance(view.errors[0], PayloadError)
    assert view.errors[0].stage == "json"
    assert view.error.startswith("payload json decode failed")

def test_invalid_utf8_stage_is_reported():
    h = b64url_encode(b"\xff\xfe")
    view = decode_token(f"{h}.{h}")
    assert [e.stage for e in view.errors] == ["utf8", "utf8"]

def test_signature_checked_even_if_header_is_garbage():
    h, p = "bm90LWpzb24", b64url_encode(b"{}")
    sig = compute_signature(h, p, SECRET)
    view = decode_token(f"{h}.{p}.{sig}", SECRET)
    assert view.verdict is Verdict.VALID
    assert isinstance(view.errors[0], HeaderError)

def test_deeply_nested_header_reports_json_stage():
    h = b64url_encode(b"[" * 5000)
    view = decode_token(f"{h}.e30")
    assert isinstance(view.errors[0], HeaderError)
    assert view.errors[0].stage == "json"
    assert json.loads(view.payload_json) == {}

@pytest.mark.parametrize("constant", [b"NaN", b"Infinity", b"-Infinity"])
def test_non_json_constants_are_rejected(constant):
    p = b64url_encode(b'{"a":' + constant + b"}")
    view = decode_token(f"e30.{p}")
    assert view.payload_json is None
    assert isinstance(view.errors[0], PayloadError)
    assert view.errors[0].stage == "json"

def test_resign_token_verifies_with_new_secret():
    token = resign_token(SAMPLE, SECRET)
    view = decode_token(token, SECRET)
    assert view.verdict is Verdict.VALID
    assert json.loads(view.header_json) == {"alg": "HS256", "typ": "JWT"}
    assert json.loads(view.payload_json) == {"sub": "test"}

def test_resign_token_needs_object_payload():
    p = b64url_encode(b"[1,2]")
    with pytest.raises(PayloadError):
        resign_token(f"e30.{p}", SECRET)
    with pytest.raises(MalformedToken):
        resign_token("abc", SECRET)

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Tuple
import base64, binascii, difflib, hashlib, hmac, html, json, re, urllib.parse, uuid
import regex as regex_lib  # supports timeouts

from dk_cipher import decrypt_text, encrypt_text
from dk_codec import b64url_decode, b64url_encode, bytes_to_hex, hex_to_bytes, to_bytes, try_decode_utf8
from dk_errors import InvalidEncoding, TokenError
from dk_token import decode_token, resign_token

# ------------------------------
# Operation registry
# ------------------------------
@dataclass
class Operation:
    key: str
    name: str
    category: str
    fn: Callable[[bytes, Dict[str, Any]], Tuple[bytes, Dict[str, Any]]]
    params_schema: Dict[str, Any] = field(default_factory=dict)
    output_hint: str = "auto"  # "auto" | "text" | "hex" | "json"

OPS: Dict[str, Operation] = {}

def register(op: Operation):
    OPS[op.key] = op

def run_op(key: str, data: bytes, params: Dict[str, Any] = None) -> Tuple[bytes, Dict[str, Any]]:
    op = OPS.get(key)
    if op is None:
        raise ValueError(f"Unknown operation: {key}")
    merged = {k: (v[0] if isinstance(v, list) else v) for k, v in op.params_schema.items()}
    merged.update(params or {})
    return op.fn(data, merged)

# ------------------------------
# Implementations
# ------------------------------

# --- Encoding ---
def base64_encode(data: bytes, p: Dict[str, Any]):
    return base64.b64encode(data), {}

def base64_decode(data: bytes, p: Dict[str, Any]):
    try:
        return base64.b64decode(data.strip(), validate=True), {}
    except binascii.Error as e:
        raise ValueError(f"Base64 decode failed: {e}")

def base64url_encode(data: bytes, p: Dict[str, Any]):
    return b64url_encode(data).encode("ascii"), {}

def base64url_decode(data: bytes, p: Dict[str, Any]):
    try:
        return b64url_decode(try_decode_utf8(data).strip()), {}
    except InvalidEncoding as e:
        raise ValueError(f"Base64URL decode failed: {e}")

def base32_encode(data: bytes, p: Dict[str, Any]):
    return base64.b32encode(data), {}

def base32_decode(data: bytes, p: Dict[str, Any]):
    s = try_decode_utf8(data).strip().upper()
    s += "=" * (-len(s) % 8)
    try:
        return base64.b32decode(s), {}
    except binascii.Error as e:
        raise ValueError(f"Base32 decode failed: {e}")

B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

def base58_encode(data: bytes, p: Dict[str, Any]):
    n = int.from_bytes(data, "big")
    out = []
    while n > 0:
        n, rem = divmod(n, 58)
        out.append(B58_ALPHABET[rem])
    # leading zero bytes map to leading '1's
    pad = len(data) - len(data.lstrip(b"\x00"))
    return ("1" * pad + "".join(reversed(out))).encode("ascii"), {}

def base58_decode(data: bytes, p: Dict[str, Any]):
    s = try_decode_utf8(data).strip()
    n = 0
    for ch in s:
        idx = B58_ALPHABET.find(ch)
        if idx < 0:
            raise ValueError(f"Base58 decode failed: invalid character {ch!r}")
        n = n * 58 + idx
    body = n.to_bytes((n.bit_length() + 7) // 8, "big") if n else b""
    pad = len(s) - len(s.lstrip("1"))
    return b"\x00" * pad + body, {}

def url_encode(data: bytes, p: Dict[str, Any]):
    return urllib.parse.quote_from_bytes(data).encode("ascii"), {}

def url_decode(data: bytes, p: Dict[str, Any]):
    s = try_decode_utf8(data)
    return urllib.parse.unquote_plus(s).encode("utf-8", errors="replace"), {}

def html_escape(data: bytes, p: Dict[str, Any]):
    return html.escape(try_decode_utf8(data), quote=True).encode("utf-8"), {}

def html_unescape(data: bytes, p: Dict[str, Any]):
    return html.unescape(try_decode_utf8(data)).encode("utf-8"), {}

def hex_to_ascii(data: bytes, p: Dict[str, Any]):
    s = try_decode_utf8(data)
    try:
        return hex_to_bytes(s), {}
    except ValueError as e:
        raise ValueError(f"Hex parse failed: {e}")

def ascii_to_hex(data: bytes, p: Dict[str, Any]):
    return bytes(bytes_to_hex(data), "ascii"), {"format":"hex"}

BASES = {"bin": 2, "oct": 8, "dec": 10, "hex": 16}

def base_convert(data: bytes, p: Dict[str, Any]):
    src, dst = p.get("from","dec"), p.get("to","hex")
    if src not in BASES or dst not in BASES:
        raise ValueError("Unsupported base")
    s = try_decode_utf8(data).strip().replace("_", "")
    try:
        n = int(s, BASES[src])
    except ValueError:
        raise ValueError(f"Not a valid {src} number: {s!r}")
    out = format(n, {"bin": "b", "oct": "o", "dec": "d", "hex": "x"}[dst])
    return out.encode("ascii"), {}

HEX_COLOR = re.compile(r"#?([0-9A-Fa-f]{3}|[0-9A-Fa-f]{6})")
RGB_COLOR = re.compile(r"(?:rgb\s*\()?\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*\)?", re.IGNORECASE)

def color_convert(data: bytes, p: Dict[str, Any]):
    # "#ff0000" <-> "rgb(255, 0, 0)", direction picked from the input
    s = try_decode_utf8(data).strip()
    m = HEX_COLOR.fullmatch(s)
    if m:
        h = m.group(1)
        if len(h) == 3:
            h = "".join(c * 2 for c in h)
        r, g, b = (int(h[i:i+2], 16) for i in (0, 2, 4))
        return f"rgb({r}, {g}, {b})".encode("ascii"), {"rgb": [r, g, b]}
    m = RGB_COLOR.fullmatch(s)
    if m:
        rgb = [int(x) for x in m.groups()]
        if any(c > 255 for c in rgb):
            raise ValueError("RGB components must be 0-255")
        return ("#" + "".join(f"{c:02x}" for c in rgb)).encode("ascii"), {"rgb": rgb}
    raise ValueError(f"Not a hex or rgb() colour: {s!r}")

IMAGE_MAGIC = [
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"BM", "image/bmp"),
]

def sniff_image_mime(data: bytes) -> str:
    for magic, mime in IMAGE_MAGIC:
        if data.startswith(magic):
            return mime
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if b"<svg" in data[:1024].lower():
        return "image/svg+xml"
    return ""

def image_data_uri(data: bytes, p: Dict[str, Any]):
    if not data:
        raise ValueError("No image data")
    mime = p.get("mime","auto")
    if mime == "auto":
        mime = sniff_image_mime(data)
        if not mime:
            raise ValueError("Unrecognised image format; pick a MIME type")
    uri = f"data:{mime};base64," + base64.b64encode(data).decode("ascii")
    return uri.encode("ascii"), {"mime": mime}

# --- Crypto ---
def hash_digest(data: bytes, p: Dict[str, Any]):
    algo = p.get("algo","sha256").lower()
    if algo not in {"md5","sha1","sha256","sha512"}:
        raise ValueError("Unsupported hash algo")
    h = getattr(hashlib, algo)()
    h.update(data)
    return h.hexdigest().encode("ascii"), {"algo":algo}

def hmac_sha256(data: bytes, p: Dict[str, Any]):
    key = p.get("key","")
    use_hex = bool(p.get("hex_key", False))
    try:
        key_bytes = hex_to_bytes(key) if use_hex else to_bytes(key)
    except ValueError as e:
        raise ValueError(f"HMAC key is not valid hex: {e}")
    mac = hmac.new(key_bytes, data, hashlib.sha256).hexdigest()
    return mac.encode("ascii"), {}

def jwt_inspect(data: bytes, p: Dict[str, Any]):
    view = decode_token(try_decode_utf8(data), p.get("secret",""))
    if view.error and view.header_json is None and view.payload_json is None:
        raise ValueError(f"JWT parse failed: {view.error}")
    out = {
        "header": json.loads(view.header_json) if view.header_json else None,
        "payload": json.loads(view.payload_json) if view.payload_json else None,
        "signature": view.verdict.value,
        "errors": [str(e) for e in view.errors],
    }
    return json.dumps(out, indent=2, ensure_ascii=False).encode("utf-8"), {"format":"json", "verdict": view.verdict.value}

def jwt_resign(data: bytes, p: Dict[str, Any]):
    try:
        return resign_token(try_decode_utf8(data), p.get("secret","")).encode("ascii"), {}
    except TokenError as e:
        raise ValueError(f"JWT sign failed: {e}")

def aes_encrypt(data: bytes, p: Dict[str, Any]):
    res = encrypt_text(try_decode_utf8(data), p.get("key_hex",""), p.get("nonce_mode","fixed"))
    if not res.ok:
        raise ValueError(f"AES encrypt failed: {res.error}")
    return res.output.encode("ascii"), {"format":"hex"}

def aes_decrypt(data: bytes, p: Dict[str, Any]):
    res = decrypt_text(try_decode_utf8(data), p.get("key_hex",""), p.get("nonce_mode","fixed"))
    if not res.ok:
        raise ValueError(f"AES decrypt failed: {res.error}")
    return res.output.encode("utf-8"), {}

# --- Generate ---
def uuid_v4(data: bytes, p: Dict[str, Any]):
    count = int(p.get("count", 1) or 1)
    return "\n".join(str(uuid.uuid4()) for _ in range(max(1, min(count, 1000)))).encode("ascii"), {}

# --- Text ---
def json_format(data: bytes, p: Dict[str, Any]):
    try:
        obj = json.loads(try_decode_utf8(data))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}")
    if p.get("mode","pretty") == "minify":
        out = json.dumps(obj, separators=(",",":"), ensure_ascii=False)
    else:
        out = json.dumps(obj, indent=int(p.get("indent", 2) or 2), ensure_ascii=False)
    return out.encode("utf-8"), {"format":"json"}

def regex_matches(data: bytes, p: Dict[str, Any]):
    pattern = p.get("pattern","")
    flags = 0
    if p.get("ignore_case"): flags |= regex_lib.IGNORECASE
    timeout = float(p.get("timeout", 0.5))
    try:
        s = try_decode_utf8(data)
        found = [m.group(0) for m in regex_lib.finditer(pattern, s, flags=flags, timeout=timeout)]
    except TimeoutError:
        raise TimeoutError("Regex timed out")
    except regex_lib.error as e:
        raise ValueError(f"Regex error: {e}")
    return "\n".join(found).encode("utf-8"), {"count": len(found)}

def line_diff(data: bytes, p: Dict[str, Any]):
    before = try_decode_utf8(data).splitlines()
    after = str(p.get("other","")).splitlines()
    out = difflib.unified_diff(before, after, fromfile="input", tofile="other", lineterm="")
    return "\n".join(out).encode("utf-8"), {}

# --- Time ---
def timestamp_convert(data: bytes, p: Dict[str, Any]):
    s = try_decode_utf8(data).strip()
    if s.lstrip("-").isdigit():
        n = int(s)
        if p.get("unit","s") == "ms":
            n = n / 1000
        try:
            dt = datetime.fromtimestamp(n, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise ValueError(f"Timestamp out of range: {e}")
        return dt.isoformat().encode("ascii"), {}
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"Not a Unix timestamp or ISO-8601 date: {s!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    ts = dt.timestamp()
    if p.get("unit","s") == "ms":
        return str(int(ts * 1000)).encode("ascii"), {}
    return str(int(ts)).encode("ascii"), {}

# --- Schedule ---
CRON_FIELDS = ("minute", "hour", "day_of_month", "month", "day_of_week")

def cron_split(data: bytes, p: Dict[str, Any]):
    fields = try_decode_utf8(data).split()
    if len(fields) != len(CRON_FIELDS):
        raise ValueError(f"Cron expression needs {len(CRON_FIELDS)} fields, got {len(fields)}")
    return json.dumps(dict(zip(CRON_FIELDS, fields)), indent=2).encode("utf-8"), {"format":"json"}

# Register ops
register(Operation("b64e","Base64 Encode","Encoding", base64_encode))
register(Operation("b64d","Base64 Decode","Encoding", base64_decode))
register(Operation("b64ue","Base64URL Encode","Encoding", base64url_encode))
register(Operation("b64ud","Base64URL Decode","Encoding", base64url_decode))
register(Operation("b32e","Base32 Encode","Encoding", base32_encode))
register(Operation("b32d","Base32 Decode","Encoding", base32_decode))
register(Operation("b58e","Base58 Encode","Encoding", base58_encode))
register(Operation("b58d","Base58 Decode","Encoding", base58_decode))
register(Operation("urle","URL Encode","Encoding", url_encode))
register(Operation("urld","URL Decode","Encoding", url_decode))
register(Operation("htmle","HTML Escape","Encoding", html_escape))
register(Operation("htmld","HTML Unescape","Encoding", html_unescape))
register(Operation("hex2bin","Hex → Bytes","Encoding", hex_to_ascii))
register(Operation("bin2hex","Bytes → Hex","Encoding", ascii_to_hex, output_hint="hex"))
register(Operation("base","Number Base Convert","Encoding", base_convert, params_schema={"from":["dec","hex","oct","bin"], "to":["hex","dec","oct","bin"]}))
register(Operation("color","Colour Hex ↔ RGB","Encoding", color_convert))
register(Operation("img64","Image → Base64 Data URI","Encoding", image_data_uri, params_schema={"mime":["auto","image/png","image/jpeg","image/gif","image/webp","image/svg+xml"]}))

register(Operation("hash","Hash","Crypto", hash_digest, params_schema={"algo":["sha256","md5","sha1","sha512"]}))
register(Operation("hmac256","HMAC-SHA256","Crypto", hmac_sha256, params_schema={"key":"", "hex_key": False}))
register(Operation("jwt","JWT Decode / Verify","Crypto", jwt_inspect, params_schema={"secret":""}, output_hint="json"))
register(Operation("jwts","JWT Re-sign (HS256)","Crypto", jwt_resign, params_schema={"secret":""}))
register(Operation("aese","AES-256-GCM Encrypt","Crypto", aes_encrypt, params_schema={"key_hex":"", "nonce_mode":["fixed","random"]}, output_hint="hex"))
register(Operation("aesd","AES-256-GCM Decrypt","Crypto", aes_decrypt, params_schema={"key_hex":"", "nonce_mode":["fixed","random"]}))

register(Operation("uuid","UUID v4","Generate", uuid_v4, params_schema={"count":"1"}))

register(Operation("json","JSON Format","Text", json_format, params_schema={"mode":["pretty","minify"]}, output_hint="json"))
register(Operation("re_find","Regex Matches","Text", regex_matches, params_schema={"pattern":"", "ignore_case": False}))
register(Operation("diff","Line Diff","Text", line_diff, params_schema={"other":""}))

register(Operation("ts","Timestamp ↔ ISO-8601","Time", timestamp_convert, params_schema={"unit":["s","ms"]}))
register(Operation("cron","Cron Split","Schedule", cron_split, output_hint="json"))

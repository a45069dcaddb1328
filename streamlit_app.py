from __future__ import annotations
from typing import Any, Dict
import streamlit as st

from dk_cipher import decrypt_text, encrypt_text, generate_key
from dk_codec import bytes_to_hex, clamp_bytes, try_decode_utf8
from dk_config import DEFAULT_CONFIG, load_config
from dk_errors import TokenError
from dk_log import setup_logging
from dk_ops import OPS, run_op
from dk_state import DEFAULT_LANG, tool_state, toggle_lang, unmount_except
from dk_token import Verdict, decode_token, resign_token

APP = "DivineKit"
st.set_page_config(page_title=APP, page_icon="⚡", layout="wide")

try:
    CONFIG = load_config()
    config_error = None
except (OSError, ValueError) as e:
    CONFIG = DEFAULT_CONFIG.copy()
    config_error = f"Config ignored: {e}"

log = setup_logging(CONFIG["log_level"])

TEXT: Dict[str, Dict[str, str]] = {
    "en": {
        "title": "Do Everything Like a God",
        "switch": "中文",
        "jwt": "JWT Inspector", "aes": "AES-256-GCM", "tools": "Quick Tools",
        "token": "Token", "secret": "Secret (HS256)", "header": "Header", "payload": "Payload",
        "plaintext": "Plaintext", "ciphertext": "Ciphertext (hex)", "key": "Key (64 hex characters)",
        "genkey": "Generate key", "encrypt": "Encrypt", "decrypt": "Decrypt",
        "input": "Input", "output": "Output", "run": "Run", "op": "Operation",
        "sign": "Re-sign with secret (HS256)", "signed": "Signed token", "file": "Image file",
        "nonce_warning": "Every encryption reuses the same fixed nonce. Never encrypt two different messages under one key.",
    },
    "zh": {
        "title": "做甚麼都有如神助",
        "switch": "English",
        "jwt": "JWT 解析", "aes": "AES-256-GCM", "tools": "常用工具",
        "token": "令牌", "secret": "密鑰 (HS256)", "header": "標頭", "payload": "內容",
        "plaintext": "明文", "ciphertext": "密文 (hex)", "key": "金鑰 (64 個十六進位字元)",
        "genkey": "產生金鑰", "encrypt": "加密", "decrypt": "解密",
        "input": "輸入", "output": "輸出", "run": "執行", "op": "操作",
        "sign": "以密鑰重新簽署 (HS256)", "signed": "已簽署的令牌", "file": "圖片檔案",
        "nonce_warning": "每次加密都使用相同的固定 nonce。切勿以同一金鑰加密兩段不同的訊息。",
    },
}

PAGES = ("jwt", "aes", "tools")
ui = tool_state(st.session_state, "ui", lang=DEFAULT_LANG)
T = TEXT[ui["lang"]]

# ------------------------------
# Sidebar
# ------------------------------
with st.sidebar:
    st.markdown("### ⚡ GOD MODE")
    st.button(T["switch"], on_click=toggle_lang, args=(ui,), use_container_width=True)
    page = st.radio("Tool", list(PAGES), format_func=lambda k: T[k], key="ui.page")
    if config_error:
        st.warning(config_error)

# leaving a page discards its state
unmount_except(st.session_state, page, PAGES)

st.title(T["title"])

# ------------------------------
# JWT Inspector
# ------------------------------
def render_jwt():
    cell = tool_state(st.session_state, "jwt", token="", secret="", signed="", sign_error=None)
    cell["token"] = st.text_area(T["token"], height=140, key="jwt.token")
    cell["secret"] = st.text_input(T["secret"], type="password", key="jwt.secret")

    view = decode_token(cell["token"], cell["secret"], indent=CONFIG["json_indent"])
    if view.idle:
        return
    for err in view.errors:
        st.error(str(err))

    left, right = st.columns(2)
    with left:
        st.subheader(T["header"])
        st.code(view.header_json or "∅", language="json")
    with right:
        st.subheader(T["payload"])
        st.code(view.payload_json or "∅", language="json")

    if view.verdict is Verdict.VALID:
        st.success(view.verdict.label)
    elif view.verdict is Verdict.INVALID:
        st.error(view.verdict.label)
    elif view.verdict is Verdict.COMPUTATION_ERROR:
        st.warning(f"{view.verdict.label}: {view.verdict_detail}")
    else:
        st.caption(view.verdict.label)

    if cell["secret"] and view.payload_json is not None:
        if st.button(T["sign"], key="jwt.sign"):
            try:
                cell["signed"], cell["sign_error"] = resign_token(cell["token"], cell["secret"]), None
            except TokenError as e:
                cell["signed"], cell["sign_error"] = "", str(e)
        if cell["sign_error"]:
            st.error(cell["sign_error"])
        elif cell["signed"]:
            st.subheader(T["signed"])
            st.code(cell["signed"], language="text")

# ------------------------------
# AES-256-GCM
# ------------------------------
def _fill_key():
    st.session_state["aes.key"] = generate_key()

def render_aes():
    cell = tool_state(st.session_state, "aes", key="", plaintext="", ciphertext="",
                      enc_output="", enc_error=None, dec_output="", dec_error=None)
    k1, k2 = st.columns([4, 1])
    with k1:
        cell["key"] = st.text_input(T["key"], key="aes.key")
    with k2:
        st.button(T["genkey"], on_click=_fill_key, key="aes.genkey", use_container_width=True)

    if CONFIG["nonce_mode"] == "fixed":
        st.caption(T["nonce_warning"])

    enc, dec = st.columns(2)
    with enc:
        cell["plaintext"] = st.text_area(T["plaintext"], height=160, key="aes.plaintext")
        if st.button(T["encrypt"], key="aes.encrypt", use_container_width=True):
            res = encrypt_text(cell["plaintext"], cell["key"], CONFIG["nonce_mode"])
            cell["enc_output"], cell["enc_error"] = res.output, res.error
        _show_result(cell["enc_output"], cell["enc_error"])
    with dec:
        cell["ciphertext"] = st.text_area(T["ciphertext"], height=160, key="aes.ciphertext")
        if st.button(T["decrypt"], key="aes.decrypt", use_container_width=True):
            res = decrypt_text(cell["ciphertext"], cell["key"], CONFIG["nonce_mode"])
            cell["dec_output"], cell["dec_error"] = res.output, res.error
        _show_result(cell["dec_output"], cell["dec_error"])

def _show_result(output: str, error):
    if error:
        st.error(error)
    elif output:
        st.subheader(T["output"])
        st.code(output, language="text")

# ------------------------------
# Quick Tools (one-shot operations)
# ------------------------------
def render_tools():
    cell = tool_state(st.session_state, "tools", op_key="b64e", params={})
    keys = list(OPS.keys())
    cell["op_key"] = st.selectbox(T["op"], keys, format_func=lambda k: f"{OPS[k].category} · {OPS[k].name}", key="tools.op")
    op = OPS[cell["op_key"]]

    params: Dict[str, Any] = {}
    schema = op.params_schema or {}
    cols = st.columns(3)
    for slot, (pname, default) in enumerate(schema.items()):
        wkey = f"tools.{op.key}.{pname}"
        with cols[slot % 3]:
            if isinstance(default, list):
                params[pname] = st.selectbox(pname, options=default, index=0, key=wkey)
            elif isinstance(default, bool):
                params[pname] = st.checkbox(pname, value=default, key=wkey)
            elif pname == "other":
                params[pname] = st.text_area(pname, value=default, key=wkey)
            else:
                params[pname] = st.text_input(pname, value=default, key=wkey)
    if "timeout" not in params and op.key == "re_find":
        params["timeout"] = CONFIG["regex_timeout_seconds"]
    cell["params"] = params

    if op.key == "img64":
        f = st.file_uploader(T["file"], type=["png", "jpg", "jpeg", "gif", "webp", "svg", "bmp"], key="tools.file")
        data = clamp_bytes(f.read(), CONFIG["max_input_bytes"]) if f else b""
    else:
        txt = st.text_area(T["input"], height=200, key="tools.input")
        data = clamp_bytes(txt.encode("utf-8", errors="replace"), CONFIG["max_input_bytes"])

    if not st.button(T["run"], key="tools.run"):
        return
    try:
        out, meta = run_op(op.key, data, params)
    except (ValueError, TimeoutError) as e:
        log.info("operation %s failed: %s", op.key, type(e).__name__)
        st.error(f"{op.name}: {e}")
        return
    out = clamp_bytes(out, CONFIG["max_input_bytes"])
    vt, vh = st.tabs(["Text", "Hex"])
    with vt: st.code(try_decode_utf8(out)[:8000] or "∅", language="json" if op.output_hint == "json" else "text")
    with vh: st.code(bytes_to_hex(out)[:16000] or "∅")
    st.caption(f"Bytes out: {len(out)}")

RENDER = {"jwt": render_jwt, "aes": render_aes, "tools": render_tools}
RENDER[page]()

st.markdown("---")
st.caption("DivineKit • all processing happens in memory; nothing is stored")

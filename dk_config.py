from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Optional
import json, os

CONFIG_ENV = "DIVINEKIT_CONFIG"
NONCE_MODES = ("fixed", "random")

DEFAULT_CONFIG: Dict[str, Any] = {
    "nonce_mode": "fixed",  # "fixed" reuses FIXED_NONCE, "random" prepends a fresh nonce
    "max_input_bytes": 2_000_000,
    "regex_timeout_seconds": 0.5,
    "json_indent": 2,
    "log_level": "INFO",
}


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load a JSON config file over DEFAULT_CONFIG.
    Falls back to $DIVINEKIT_CONFIG, then to the defaults alone.
    """
    config = DEFAULT_CONFIG.copy()

    if path is None:
        path = os.environ.get(CONFIG_ENV) or None
    if path is None:
        return config

    cfg_path = Path(path)
    if not cfg_path.is_file():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")

    with cfg_path.open("r", encoding="utf-8") as f:
        user_cfg = json.load(f)

    if not isinstance(user_cfg, dict):
        raise ValueError("Config file must contain a JSON object at the root")

    config.update(user_cfg)

    if config["nonce_mode"] not in NONCE_MODES:
        raise ValueError(f"nonce_mode must be one of {NONCE_MODES}, got {config['nonce_mode']!r}")

    return config

"""
Logging setup shared by the app and the core modules.

Only shapes are logged (segment counts, byte lengths, verdicts, error kinds),
never tokens, secrets, keys or plaintext.
"""
from __future__ import annotations
from typing import Union
import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logging(level: Union[str, int] = "INFO") -> logging.Logger:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
    return logging.getLogger("divinekit")

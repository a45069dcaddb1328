from __future__ import annotations
from typing import Any, Dict, Iterable, MutableMapping

PREFIX = "tool::"

# ------------------------------
# Per-tool state cells
# ------------------------------
def tool_state(session: MutableMapping[str, Any], tool: str, **defaults: Any) -> Dict[str, Any]:
    """Return the state cell owned by `tool`, creating it from `defaults` on first use.
    Cells are plain dicts; no two tools share one."""
    key = PREFIX + tool
    if key not in session:
        session[key] = dict(defaults)
    cell = session[key]
    for name, value in defaults.items():
        cell.setdefault(name, value)
    return cell

def drop_tool_state(session: MutableMapping[str, Any], tool: str) -> None:
    """Discard the cell of `tool` and every widget value keyed `<tool>.*`."""
    session.pop(PREFIX + tool, None)
    for key in [k for k in list(session.keys()) if k.startswith(tool + ".")]:
        del session[key]

def unmount_except(session: MutableMapping[str, Any], active: str, tools: Iterable[str]) -> None:
    for tool in tools:
        if tool != active:
            drop_tool_state(session, tool)

def active_tools(session: MutableMapping[str, Any]):
    return sorted(k[len(PREFIX):] for k in list(session.keys()) if k.startswith(PREFIX))

# ------------------------------
# Language toggle
# ------------------------------
LANGS = ("zh", "en")
DEFAULT_LANG = "zh"

def toggle_lang(cell: Dict[str, Any]) -> str:
    cell["lang"] = "en" if cell.get("lang", DEFAULT_LANG) == "zh" else "zh"
    return cell["lang"]

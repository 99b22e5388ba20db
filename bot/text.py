"""
bot/text.py – chat component / formatting-code helpers
"""

from __future__ import annotations

import json
import re
from typing import Any

import config

# "§" followed by any single character is a legacy formatting code
_FORMAT_CODE_RE = re.compile(r"§.", re.DOTALL)


def strip_formatting(text: str) -> str:
    """Remove every ``§x`` formatting code from *text*."""
    return _FORMAT_CODE_RE.sub("", text)


def component_text(component: Any) -> str:
    """Flatten a chat component (str / dict / list) into plain text.

    Uses ``text``, then the ``extra`` children (recursively), then a
    ``translate`` key with its ``with`` arguments.
    """
    if component is None:
        return ""
    if isinstance(component, str):
        return component
    if isinstance(component, list):
        return "".join(component_text(c) for c in component)
    if not isinstance(component, dict):
        return str(component)

    parts = [component.get("text") or ""]
    parts.extend(component_text(c) for c in component.get("extra") or [])
    text = "".join(parts)
    if text:
        return text

    translate = component.get("translate")
    if translate:
        args = [component_text(a) for a in component.get("with") or []]
        return " ".join([translate, *args]) if args else translate
    return ""


def parse_kick_reason(reason: Any) -> str:
    """Return a printable kick reason, or ``config.UNKNOWN_KICK_REASON``.

    *reason* may be a JSON-encoded component, a plain string, an already
    decoded component, or missing entirely.
    """
    if isinstance(reason, str):
        try:
            reason = json.loads(reason)
        except json.JSONDecodeError:
            pass  # plain text reason
    text = strip_formatting(component_text(reason)).strip()
    return text or config.UNKNOWN_KICK_REASON

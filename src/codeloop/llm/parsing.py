"""Recover JSON from model output that may be wrapped in code fences."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_OPEN = re.compile(r"^`{1,4}\s*(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*`{1,4}$")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def clear_json_string(text: str) -> str:
    """Strip code fences, stray backticks, a leading ``json`` tag and control chars."""
    cleaned = (text or "").strip()
    previous = None
    while cleaned != previous:
        previous = cleaned
        cleaned = _FENCE_OPEN.sub("", cleaned)
        cleaned = _FENCE_CLOSE.sub("", cleaned)
        if cleaned[:4].lower() == "json":
            cleaned = cleaned[4:]
        cleaned = cleaned.strip()
    return _CONTROL_CHARS.sub("", cleaned)


def parse_json_response(text: str) -> Any | None:
    """Parse model output as JSON, falling back to the outermost ``{...}`` span.

    Returns ``None`` when nothing parses.
    """
    cleaned = clear_json_string(text)
    if not cleaned:
        return None
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        return json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError:
        return None

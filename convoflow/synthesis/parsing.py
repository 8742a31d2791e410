"""Locate a structured object inside oracle text."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Index just past the brace closing the one at ``start``, string-aware."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def extract_structured(text: Any) -> Optional[Dict[str, Any]]:
    """Return the oracle's structured object, or ``None`` if there is none.

    The whole text is tried first; otherwise each top-level balanced
    ``{...}`` span is tried in order and the first one that decodes to an
    object wins.
    """
    if isinstance(text, dict):
        return text
    if not isinstance(text, str):
        return None

    stripped = text.strip()
    try:
        data = json.loads(stripped)
    except ValueError:
        data = None
    if isinstance(data, dict):
        return data

    start = stripped.find("{")
    while start != -1:
        end = _balanced_end(stripped, start)
        if end is None:
            return None
        try:
            data = json.loads(stripped[start:end])
        except ValueError:
            data = None
        if isinstance(data, dict):
            return data
        start = stripped.find("{", end)
    return None

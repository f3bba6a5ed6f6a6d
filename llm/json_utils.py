"""Helpers for reading JSON out of LLM replies."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"```(?:json)?\s*|```\s*")


def parse_json_object(text: Any) -> dict[str, Any] | None:
    """Return the first JSON object found in ``text``, or None."""
    if isinstance(text, dict):
        return text
    if not isinstance(text, str):
        return None
    cleaned = _FENCE_RE.sub("", text).strip()
    try:
        data = json.loads(cleaned)
        return data if isinstance(data, dict) else None
    except json.JSONDecodeError:
        pass
    start = cleaned.find("{")
    if start < 0:
        return None
    try:
        data, _ = json.JSONDecoder().raw_decode(cleaned[start:])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None

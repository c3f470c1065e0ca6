"""Utility helpers for the TasteTrail session core."""

from __future__ import annotations

import json
from typing import Any, Optional


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    if not value:
        return "unset"
    if len(value) <= visible * 2:
        return "*" * len(value)
    return f"{value[:visible]}...{value[-visible:]}"


def strip_thinking_tokens(text: str) -> str:
    """Remove <think>...</think> blocks if present."""
    if not text:
        return text
    while True:
        start = text.find("<think>")
        if start == -1:
            break
        end = text.find("</think>", start)
        if end == -1:
            break
        text = text[:start] + text[end + len("</think>") :]
    return text


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """Locate the outermost JSON object in a model reply.

    Returns None when no braces are found or the slice does not parse.
    """
    cleaned = strip_thinking_tokens(text or "").strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    try:
        data = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def dedupe(items: Any) -> list[str]:
    """Stringify, strip and de-duplicate while preserving order."""
    seen: set[str] = set()
    out: list[str] = []
    for item in items or []:
        s = str(item).strip()
        if s and s not in seen:
            seen.add(s)
            out.append(s)
    return out

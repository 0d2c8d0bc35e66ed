"""Parsing of model-generated tag lists."""

from __future__ import annotations

import json
import re

from app.text import normalize_tags

MAX_AI_TAGS = 7

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)
_QUOTED = re.compile(r"[\"']([^\"']+)[\"']")


def _strict_parse(raw: str) -> list[str] | None:
    """JSON array of strings, possibly fenced or wrapped in prose."""
    text = raw.strip()
    fenced = _FENCE.search(text)
    if fenced:
        text = fenced.group(1).strip()
    if "[" in text and "]" in text:
        text = text[text.find("["):text.rfind("]") + 1]

    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    if not isinstance(parsed, list):
        return None
    return [tag for tag in parsed if isinstance(tag, str)]


def _heuristic_parse(raw: str) -> list[str]:
    """Quoted substrings from free-form output."""
    return _QUOTED.findall(raw)


def parse_tags(raw: str | None) -> list[str]:
    """Turn model output into at most seven normalized tags. Never raises."""
    if not raw or not isinstance(raw, str):
        return []

    tags = _strict_parse(raw)
    if tags is None:
        tags = _heuristic_parse(raw)
    return normalize_tags(tags)[:MAX_AI_TAGS]

"""Text normalization helpers shared by retrieval, augmentation and the API."""

from __future__ import annotations

from typing import Iterable, Optional

from app.errors import InvalidQuery

ELLIPSIS = "..."


def normalize_query(query: Optional[str]) -> str:
    """Trim a raw query string; raise InvalidQuery when nothing is left."""
    if query is None or not isinstance(query, str):
        raise InvalidQuery()
    normalized = query.strip()
    if not normalized:
        raise InvalidQuery()
    return normalized


def clamp_limit(limit: Optional[int], maximum: int, default: int = 20) -> int:
    """Clamp a requested result count into ``[1, maximum]``."""
    if limit is None:
        limit = default
    return max(1, min(int(limit), maximum))


def prefix(text: Optional[str], length: int, ellipsis: bool = False) -> str:
    """First ``length`` characters of ``text``; optionally mark truncation."""
    if not text:
        return ""
    if len(text) <= length:
        return text
    head = text[:length]
    return head + ELLIPSIS if ellipsis else head


def normalize_tags(tags: Optional[Iterable[str]]) -> list[str]:
    """Lowercase and trim tags, drop empties, collapse duplicates.

    Order of first occurrence is preserved:
    ``["Foo", "foo", " Bar "]`` -> ``["foo", "bar"]``.
    """
    seen: dict[str, None] = {}
    for tag in tags or []:
        if not isinstance(tag, str):
            continue
        cleaned = tag.strip().lower()
        if cleaned and cleaned not in seen:
            seen[cleaned] = None
    return list(seen)

"""Tag frequency aggregation across the corpus."""

from __future__ import annotations

from typing import Any, Iterable


def aggregate_tags(rows: Iterable[dict[str, list[str]]]) -> list[dict[str, Any]]:
    """Count tags over items and classify where each one comes from.

    ``source`` is ``user``, ``ai`` or ``both``. Sorted by count, most
    frequent first; ties keep first-seen order.
    """
    counts: dict[str, dict[str, int]] = {}
    for row in rows:
        for origin in ("user", "ai"):
            for tag in row.get(f"{origin}_tags") or []:
                if not isinstance(tag, str) or not tag.strip():
                    continue
                entry = counts.setdefault(tag.strip().lower(), {"user": 0, "ai": 0})
                entry[origin] += 1

    tags = []
    for tag, entry in counts.items():
        if entry["user"] and entry["ai"]:
            source = "both"
        elif entry["user"]:
            source = "user"
        else:
            source = "ai"
        tags.append({"tag": tag, "count": entry["user"] + entry["ai"], "source": source})

    tags.sort(key=lambda t: t["count"], reverse=True)
    return tags

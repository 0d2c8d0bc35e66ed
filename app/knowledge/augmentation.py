"""AI augmentation of captured items: summary, tags and embedding."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from config import Config, logger
from app.results import ErrorKind, guarded
from app.text import prefix

SUMMARY_FALLBACK_CHARS = 200


@dataclass
class Augmentation:
    """AI fields for one item. Any of them may be a fallback value."""
    summary: str
    tags: list[str] = field(default_factory=list)
    embedding: Optional[list[float]] = None


def fallback_summary(content: str) -> str:
    """Content prefix used when no summary could be generated."""
    return prefix(content, SUMMARY_FALLBACK_CHARS, ellipsis=True)


class AugmentationPipeline:
    """Runs the three AI sub-tasks concurrently with isolated failures.

    Never raises for provider problems, so item creation is never blocked.
    """

    def __init__(self, provider, timeout: Optional[float] = None):
        self.provider = provider
        self.timeout = timeout or Config.PROVIDER_TIMEOUT_SECONDS

    async def augment(self, title: str, content: str) -> Augmentation:
        summary, tags, embedding = await asyncio.gather(
            guarded(self.provider.summarize(title, content), "summarize", self.timeout),
            guarded(self.provider.tag(title, content), "auto_tag", self.timeout),
            guarded(self.provider.embed(f"{title}\n\n{content}"), "embed_item", self.timeout),
        )

        if not summary.ok or not summary.value:
            logger.warning("Summary generation failed, using content prefix")
        if not tags.ok:
            logger.warning("Tag generation failed, using empty tags")
        if not embedding.ok and embedding.error is not ErrorKind.DISABLED:
            logger.warning("Embedding generation failed, item relies on text search")

        return Augmentation(
            summary=summary.value if summary.ok and summary.value else fallback_summary(content),
            tags=list(tags.unwrap_or([])),
            embedding=embedding.value if embedding.ok and embedding.value else None,
        )

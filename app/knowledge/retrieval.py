"""Retrieval cascade: text search, substring fallback, recency, and semantic modes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from config import Config, logger
from app.errors import SemanticUnavailable
from app.knowledge.models import KnowledgeItem, KnowledgeType
from app.results import ErrorKind, guarded
from app.text import clamp_limit, normalize_query


class SearchMode(str, Enum):
    """How the rich search path finds candidates."""
    TEXT = "text"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


@dataclass
class ScoredItem:
    """A retrieved item and its relevance in [0, 1]."""
    item: KnowledgeItem
    relevance: float = Config.NEUTRAL_RELEVANCE

    @property
    def id(self) -> Optional[str]:
        return self.item.id


def merge_results(
    primary: list[ScoredItem],
    secondary: list[ScoredItem],
    limit: int,
) -> list[ScoredItem]:
    """Primary results first, then unseen secondary results, capped at limit."""
    merged: list[ScoredItem] = []
    seen: set[Optional[str]] = set()
    for result in [*primary, *secondary]:
        if result.id in seen:
            continue
        seen.add(result.id)
        merged.append(result)
        if len(merged) >= limit:
            break
    return merged


def filter_results(
    results: list[ScoredItem],
    type: Optional[str | KnowledgeType] = None,
    tags: Optional[Iterable[str]] = None,
) -> list[ScoredItem]:
    """Apply the category and tag post-filters.

    A result passes the tag filter when any requested tag is a
    case-insensitive substring of any of its user or AI tags.
    """
    if type:
        wanted_type = type.value if isinstance(type, KnowledgeType) else str(type)
        results = [r for r in results if r.item.type.value == wanted_type]

    wanted_tags = [t.strip().lower() for t in tags or [] if t and t.strip()]
    if wanted_tags:
        results = [
            r for r in results
            if any(
                wanted in item_tag.lower()
                for wanted in wanted_tags
                for item_tag in r.item.all_tags
            )
        ]
    return results


class RetrievalCascade:
    """Turns a query into a ranked list of knowledge items.

    ``retrieve`` runs the availability-first cascade used for question
    answering: text search, then a substring match, then the newest items.
    ``search`` is the richer path with explicit text/semantic/hybrid modes.
    Storage failures inside a stage count as an empty stage.
    """

    def __init__(
        self,
        store,
        provider,
        max_limit: Optional[int] = None,
        semantic_threshold: Optional[float] = None,
        storage_timeout: Optional[float] = None,
        provider_timeout: Optional[float] = None,
    ):
        self.store = store
        self.provider = provider
        self.max_limit = max_limit or Config.SEARCH_MAX_LIMIT
        self.semantic_threshold = (
            Config.SEMANTIC_MATCH_THRESHOLD if semantic_threshold is None else semantic_threshold
        )
        self.storage_timeout = storage_timeout or Config.STORAGE_TIMEOUT_SECONDS
        self.provider_timeout = provider_timeout or Config.PROVIDER_TIMEOUT_SECONDS

    async def retrieve(self, query: str, limit: int) -> list[ScoredItem]:
        """Fallback cascade; empty only when nothing at all can be read."""
        query = normalize_query(query)
        limit = clamp_limit(limit, self.max_limit)

        results = await self._text_stage(query, limit)
        if results:
            return results

        recent = await guarded(self.store.get_recent(limit), "recent_items", self.storage_timeout)
        items = recent.unwrap_or([])
        if items:
            logger.info(f"No text matches for query, returning {len(items)} recent items")
        return [ScoredItem(item) for item in items]

    async def search(
        self,
        query: str,
        mode: SearchMode | str = SearchMode.HYBRID,
        limit: int = 20,
        type: Optional[str | KnowledgeType] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> list[ScoredItem]:
        """Rich search with an explicit mode, followed by the post-filters."""
        query = normalize_query(query)
        limit = clamp_limit(limit, self.max_limit)
        mode = SearchMode(mode)

        if mode is SearchMode.TEXT:
            results = await self._text_stage(query, limit)
        elif mode is SearchMode.SEMANTIC:
            results = await self._semantic_stage(query, limit, required=True)
        else:
            results = await self._semantic_stage(query, limit, required=False)
            if len(results) < limit:
                text_results = await self._text_stage(query, limit)
                results = merge_results(results, text_results, limit)

        return filter_results(results, type=type, tags=tags)

    async def _text_stage(self, query: str, limit: int) -> list[ScoredItem]:
        """Full-text search, then the case-insensitive substring backstop."""
        text = await guarded(self.store.text_search(query, limit), "text_search", self.storage_timeout)
        if text.ok and text.value:
            return [ScoredItem(item, score) for item, score in text.value]

        substring = await guarded(
            self.store.substring_search(query, limit), "substring_search", self.storage_timeout
        )
        return [ScoredItem(item) for item in substring.unwrap_or([])]

    async def _semantic_stage(self, query: str, limit: int, required: bool) -> list[ScoredItem]:
        """Vector similarity search on the query embedding.

        When ``required`` is set, a missing query embedding raises
        SemanticUnavailable; otherwise it yields no results.
        """
        embedding = await guarded(self.provider.embed(query), "embed_query", self.provider_timeout)
        if not embedding.ok or not embedding.value:
            if required:
                raise SemanticUnavailable()
            if embedding.error is not ErrorKind.DISABLED:
                logger.warning("Query embedding failed, hybrid search continues with text only")
            return []

        vector = await guarded(
            self.store.vector_search(embedding.value, self.semantic_threshold, limit),
            "vector_search",
            self.storage_timeout,
        )
        return [ScoredItem(item, max(0.0, min(1.0, score))) for item, score in vector.unwrap_or([])]

"""Shapes retrieval and answer results into the public query payload."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from config import Config
from app.knowledge.answers import ComposedAnswer
from app.knowledge.retrieval import ScoredItem

NO_KNOWLEDGE_ANSWER = (
    "I couldn't find any relevant information in the knowledge base for your query. "
    "Try adding some knowledge first!"
)

PUBLIC_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def source_entry(result: ScoredItem) -> dict[str, Any]:
    relevance: Optional[float] = result.relevance
    return {
        "id": result.item.id,
        "title": result.item.title,
        "summary": result.item.summary,
        "relevance": Config.NEUTRAL_RELEVANCE if relevance is None else relevance,
    }


def query_payload(composed: ComposedAnswer, results: Sequence[ScoredItem]) -> dict[str, Any]:
    """``{answer, sources, tokens_used}`` for a composed answer."""
    return {
        "answer": composed.answer,
        "sources": [source_entry(result) for result in results],
        "tokens_used": composed.tokens_used,
    }


def empty_corpus_payload() -> dict[str, Any]:
    """Terminal answer when there is nothing to ground on."""
    return {"answer": NO_KNOWLEDGE_ANSWER, "sources": [], "tokens_used": 0}

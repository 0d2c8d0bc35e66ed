"""Answer composition over retrieved knowledge items."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from config import Config, logger
from app.knowledge.models import KnowledgeItem
from app.knowledge.retrieval import ScoredItem
from app.results import guarded
from app.text import prefix

CONTEXT_PREFIX_CHARS = 500
CONTEXT_SEPARATOR = "\n\n---\n\n"
EXTRACTIVE_ITEMS = 3
EXTRACTIVE_PREFIX_CHARS = 200
CHARS_PER_TOKEN = 4

EXTRACTIVE_INTRO = "Based on your knowledge base, here are the most relevant items:"
EXTRACTIVE_NOTE = "_Note: AI-powered response is currently unavailable. Showing matched results instead._"


@dataclass
class ComposedAnswer:
    answer: str
    tokens_used: int = 0


def _as_item(entry: KnowledgeItem | ScoredItem) -> KnowledgeItem:
    return entry.item if isinstance(entry, ScoredItem) else entry


def build_context(items: Sequence[KnowledgeItem | ScoredItem]) -> str:
    """Numbered title + summary (or content prefix) blocks, in ranked order."""
    blocks = []
    for i, entry in enumerate(items, start=1):
        item = _as_item(entry)
        body = item.summary or prefix(item.content, CONTEXT_PREFIX_CHARS)
        blocks.append(f"[{i}] {item.title}\n{body}")
    return CONTEXT_SEPARATOR.join(blocks)


def extractive_answer(items: Sequence[KnowledgeItem | ScoredItem]) -> str:
    """Non-generative answer listing the top retrieved items."""
    lines = []
    for i, entry in enumerate(items[:EXTRACTIVE_ITEMS], start=1):
        item = _as_item(entry)
        body = item.summary or prefix(item.content, EXTRACTIVE_PREFIX_CHARS) or "No summary available"
        lines.append(f"{i}. **{item.title}**\n   {body}")
    return f"{EXTRACTIVE_INTRO}\n\n" + "\n\n".join(lines) + f"\n\n{EXTRACTIVE_NOTE}"


def estimate_tokens(prompt: str, answer: str) -> int:
    """Rough token count at four characters per token."""
    return math.ceil((len(prompt) + len(answer)) / CHARS_PER_TOKEN)


class AnswerComposer:
    """Grounds a generative answer on retrieved items.

    The extractive answer is the terminal safety net: ``compose`` never
    raises because of the provider.
    """

    def __init__(self, provider, timeout: Optional[float] = None):
        self.provider = provider
        self.timeout = timeout or Config.PROVIDER_TIMEOUT_SECONDS

    async def compose(
        self,
        question: str,
        items: Sequence[KnowledgeItem | ScoredItem],
    ) -> ComposedAnswer:
        context = build_context(items)
        result = await guarded(self.provider.answer(question, context), "answer", self.timeout)

        generated = result.value if result.ok else None
        if generated is None or not generated.answer:
            logger.warning("AI answer unavailable, using extractive fallback")
            return ComposedAnswer(answer=extractive_answer(items), tokens_used=0)

        tokens = generated.total_tokens
        if not tokens:
            tokens = estimate_tokens(generated.prompt, generated.answer)
        return ComposedAnswer(answer=generated.answer, tokens_used=int(tokens))

# Answer Composer Tests
"""Tests for context building, generated answers and the extractive fallback."""
import pytest

from app.knowledge.answers import (
    EXTRACTIVE_NOTE,
    AnswerComposer,
    build_context,
    estimate_tokens,
    extractive_answer,
)
from app.knowledge.responses import empty_corpus_payload, query_payload
from app.knowledge.retrieval import ScoredItem


def test_build_context_uses_summary_or_prefix(store):
    with_summary = store.add("First", "long content", summary="Short summary")
    without_summary = store.add("Second", "c" * 800)

    context = build_context([ScoredItem(with_summary), without_summary])

    blocks = context.split("\n\n---\n\n")
    assert blocks[0] == "[1] First\nShort summary"
    assert blocks[1] == "[2] Second\n" + "c" * 500


def test_extractive_answer_lists_top_three(store):
    items = [store.add(f"Item {i}", f"content {i}") for i in range(5)]

    answer = extractive_answer(items)

    assert "1. **Item 0**" in answer
    assert "3. **Item 2**" in answer
    assert "Item 3" not in answer
    assert answer.endswith(EXTRACTIVE_NOTE)


def test_estimate_tokens():
    assert estimate_tokens("a" * 10, "b" * 3) == 4


@pytest.mark.asyncio
async def test_compose_estimates_tokens_without_usage(store, provider):
    item = store.add("Title", "Body", summary="Sum")
    composer = AnswerComposer(provider)

    composed = await composer.compose("question?", [ScoredItem(item)])

    assert composed.answer == "Generated answer"
    _, (question, context) = provider.calls[-1]
    assert question == "question?"
    assert context == "[1] Title\nSum"
    expected = estimate_tokens(f"{context}\n\nUser question: question?", "Generated answer")
    assert composed.tokens_used == expected


@pytest.mark.asyncio
async def test_compose_prefers_provider_usage(store, provider):
    provider.total_tokens = 321
    composed = await AnswerComposer(provider).compose("q", [store.add("T", "B")])
    assert composed.tokens_used == 321


@pytest.mark.asyncio
async def test_compose_falls_back_when_generation_fails(store, provider):
    provider.fail.add("answer")
    items = [ScoredItem(store.add("Only item", "Some content"))]

    composed = await AnswerComposer(provider).compose("q", items)

    assert "Only item" in composed.answer
    assert "AI-powered response is currently unavailable" in composed.answer
    assert composed.tokens_used == 0


@pytest.mark.asyncio
async def test_compose_falls_back_on_empty_answer(store, provider):
    provider.answer_text = ""
    composed = await AnswerComposer(provider).compose("q", [store.add("T", "B")])
    assert composed.tokens_used == 0
    assert "**T**" in composed.answer


def test_query_payload_shapes_sources(store):
    from app.knowledge.answers import ComposedAnswer

    item = store.add("Title", "Body", summary="Sum")
    payload = query_payload(ComposedAnswer("answer", 12), [ScoredItem(item, 0.8), ScoredItem(item)])

    assert payload["tokens_used"] == 12
    assert payload["sources"][0] == {"id": item.id, "title": "Title", "summary": "Sum", "relevance": 0.8}
    assert payload["sources"][1]["relevance"] == 0.5


def test_empty_corpus_payload():
    payload = empty_corpus_payload()
    assert payload["answer"]
    assert payload["sources"] == []
    assert payload["tokens_used"] == 0

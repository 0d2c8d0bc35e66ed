# Retrieval Cascade Tests
"""Tests for the text/substring/recency cascade and the search modes."""
import pytest

from app.errors import InvalidQuery, SemanticUnavailable
from app.knowledge.models import KnowledgeType
from app.knowledge.retrieval import (
    RetrievalCascade,
    ScoredItem,
    SearchMode,
    filter_results,
    merge_results,
)


@pytest.fixture
def cascade(store, provider):
    return RetrievalCascade(store, provider, max_limit=100, semantic_threshold=0.5)


@pytest.mark.asyncio
async def test_text_search_hit_short_circuits(cascade, store):
    """A text match is returned without touching the fallbacks."""
    match = store.add("Python asyncio", "Event loops and coroutines")
    store.add("Gardening", "Tomatoes need sun")

    results = await cascade.retrieve("asyncio", 5)

    assert [r.id for r in results] == [match.id]
    assert 0.0 <= results[0].relevance <= 1.0
    assert "substring_search" not in store.calls
    assert "get_recent" not in store.calls


@pytest.mark.asyncio
async def test_text_search_error_falls_back_to_substring(cascade, store):
    store.fail.add("text_search")
    match = store.add("Mongo indexes", "Compound index ordering")

    results = await cascade.retrieve("index", 5)

    assert [r.id for r in results] == [match.id]
    assert results[0].relevance == 0.5


@pytest.mark.asyncio
async def test_no_matches_returns_recent_items_newest_first(cascade, store):
    oldest = store.add("First", "aaa", age_minutes=30)
    middle = store.add("Second", "bbb", age_minutes=20)
    newest = store.add("Third", "ccc", age_minutes=10)

    results = await cascade.retrieve("zzz-unmatched", 2)

    assert [r.id for r in results] == [newest.id, middle.id]
    assert oldest.id not in [r.id for r in results]
    assert all(r.relevance == 0.5 for r in results)


@pytest.mark.asyncio
async def test_empty_corpus_returns_empty(cascade, store):
    assert await cascade.retrieve("anything", 5) == []


@pytest.mark.asyncio
async def test_storage_down_returns_empty(cascade, store):
    store.add("Something", "content")
    store.fail.update({"text_search", "substring_search", "get_recent"})

    assert await cascade.retrieve("something", 5) == []


@pytest.mark.asyncio
async def test_soft_deleted_items_never_retrieved(cascade, store):
    from datetime import datetime, timezone

    store.add("Deleted python note", "python", deleted_at=datetime.now(timezone.utc))
    kept = store.add("Kept", "unrelated", age_minutes=5)

    by_text = await cascade.retrieve("python", 5)
    by_search = await cascade.search("python", mode=SearchMode.TEXT, limit=5)

    assert [r.id for r in by_text] == [kept.id]
    assert by_search == []


@pytest.mark.asyncio
async def test_blank_query_is_invalid(cascade):
    with pytest.raises(InvalidQuery):
        await cascade.retrieve("   ", 5)


@pytest.mark.asyncio
async def test_limit_is_clamped(store, provider):
    cascade = RetrievalCascade(store, provider, max_limit=3)
    for i in range(5):
        store.add(f"Note {i}", "shared words", age_minutes=i)

    results = await cascade.retrieve("shared", 50)

    assert len(results) == 3


@pytest.mark.asyncio
async def test_hybrid_merges_semantic_first(cascade, store):
    """2 semantic + 3 text results with one overlap give 4 unique items."""
    a = store.add("Alpha", "vector only")
    b = store.add("Beta", "both lists keyword")
    c = store.add("Gamma", "keyword")
    d = store.add("Delta", "keyword")
    store.vector_results = [(a, 0.9), (b, 0.8)]

    results = await cascade.search("keyword", mode=SearchMode.HYBRID, limit=10)

    ids = [r.id for r in results]
    assert len(ids) == 4
    assert ids[:2] == [a.id, b.id]
    assert set(ids[2:]) == {c.id, d.id}


@pytest.mark.asyncio
async def test_hybrid_skips_text_when_semantic_fills_limit(cascade, store):
    a = store.add("Alpha", "one")
    b = store.add("Beta", "two")
    store.vector_results = [(a, 0.9), (b, 0.7)]

    results = await cascade.search("anything", mode=SearchMode.HYBRID, limit=2)

    assert [r.id for r in results] == [a.id, b.id]
    assert "text_search" not in store.calls


@pytest.mark.asyncio
async def test_hybrid_with_embeddings_disabled_uses_text(store, provider):
    provider.embeddings_enabled = False
    cascade = RetrievalCascade(store, provider)
    match = store.add("Rust ownership", "borrow checker")

    results = await cascade.search("borrow", mode=SearchMode.HYBRID, limit=5)

    assert [r.id for r in results] == [match.id]
    assert "vector_search" not in store.calls


@pytest.mark.asyncio
async def test_hybrid_survives_embedding_failure(cascade, store, provider):
    provider.fail.add("embed")
    match = store.add("Rust ownership", "borrow checker")

    results = await cascade.search("borrow", limit=5)

    assert [r.id for r in results] == [match.id]


@pytest.mark.asyncio
async def test_semantic_mode_requires_embedding(cascade, provider):
    provider.fail.add("embed")
    with pytest.raises(SemanticUnavailable):
        await cascade.search("anything", mode=SearchMode.SEMANTIC, limit=5)


@pytest.mark.asyncio
async def test_semantic_mode_disabled_embeddings(store, provider):
    provider.embeddings_enabled = False
    cascade = RetrievalCascade(store, provider)
    with pytest.raises(SemanticUnavailable):
        await cascade.search("anything", mode="semantic", limit=5)


@pytest.mark.asyncio
async def test_semantic_mode_uses_threshold(cascade, store, provider):
    close = store.add("Close", "x", embedding=[0.9, 0.1, 0.0])
    store.add("Far", "y", embedding=[0.0, 0.0, 1.0])

    results = await cascade.search("query", mode=SearchMode.SEMANTIC, limit=5)

    assert [r.id for r in results] == [close.id]
    assert results[0].relevance > 0.5


@pytest.mark.asyncio
async def test_semantic_mode_vector_store_error_is_empty(cascade, store):
    store.fail.add("vector_search")
    assert await cascade.search("query", mode=SearchMode.SEMANTIC, limit=5) == []


@pytest.mark.asyncio
async def test_text_mode_never_embeds(cascade, store, provider):
    store.add("Note", "keyword")
    await cascade.search("keyword", mode=SearchMode.TEXT, limit=5)
    assert provider.called("embed") == 0


@pytest.mark.asyncio
async def test_search_applies_filters(cascade, store):
    store.add("Link one", "keyword", type=KnowledgeType.LINK, user_tags=["web"])
    note = store.add("Note one", "keyword", type=KnowledgeType.NOTE, ai_tags=["machine-learning"])

    by_type = await cascade.search("keyword", mode="text", limit=10, type="note")
    by_tag = await cascade.search("keyword", mode="text", limit=10, tags=["LEARN"])

    assert [r.id for r in by_type] == [note.id]
    assert [r.id for r in by_tag] == [note.id]


def test_merge_results_caps_and_dedupes(store):
    a, b, c = (store.add(name, "x") for name in ("A", "B", "C"))
    merged = merge_results(
        [ScoredItem(a, 0.9)],
        [ScoredItem(a, 0.4), ScoredItem(b), ScoredItem(c)],
        limit=2,
    )
    assert [r.id for r in merged] == [a.id, b.id]
    assert merged[0].relevance == 0.9


def test_filter_results_without_filters_is_identity(store):
    results = [ScoredItem(store.add("A", "x"))]
    assert filter_results(results) == results

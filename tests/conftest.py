# Test Configuration
"""Pytest configuration and in-memory collaborators for testing."""
import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import httpx
import openai
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pymongo.errors import ConnectionFailure

from app.ai.provider import GeneratedAnswer
from app.errors import ProviderDisabled
from app.knowledge.models import KnowledgeItem, KnowledgeType
from app.knowledge.store import cosine_similarity
from api.dependencies import Services
from api.main import create_app


def provider_error() -> Exception:
    return openai.APIConnectionError(request=httpx.Request("POST", "http://llm.test/v1"))


class FakeStore:
    """In-memory stand-in for KnowledgeStore."""

    def __init__(self):
        self.items: dict[str, KnowledgeItem] = {}
        self.query_logs = []
        self.api_usage = []
        self.fail: set[str] = set()
        self.vector_results = None
        self.calls: list[str] = []

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail:
            raise ConnectionFailure(f"{name} unavailable")

    def _live(self) -> list[KnowledgeItem]:
        return [item for item in self.items.values() if item.deleted_at is None]

    def add(self, title: str, content: str, age_minutes: int = 0, **fields) -> KnowledgeItem:
        """Seed an item directly, bypassing augmentation."""
        created = datetime.now(timezone.utc) - timedelta(minutes=age_minutes)
        item = KnowledgeItem(
            _id=uuid.uuid4().hex[:24],
            title=title,
            content=content,
            type=fields.pop("type", KnowledgeType.NOTE),
            created_at=created,
            updated_at=created,
            **fields,
        )
        self.items[item.id] = item
        return item

    async def text_search(self, query, limit):
        self._check("text_search")
        words = query.lower().split()
        scored = []
        for item in self._live():
            haystack = f"{item.title} {item.content}".lower().split()
            hits = sum(1 for word in words if word in haystack)
            if hits:
                scored.append((item, hits / len(words)))
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:limit]

    async def substring_search(self, query, limit):
        self._check("substring_search")
        needle = query.lower()
        matches = [
            item for item in self._live()
            if needle in item.title.lower() or needle in item.content.lower()
        ]
        matches.sort(key=lambda item: item.created_at, reverse=True)
        return matches[:limit]

    async def vector_search(self, embedding, threshold, limit):
        self._check("vector_search")
        if self.vector_results is not None:
            return self.vector_results[:limit]
        scored = [
            (item, cosine_similarity(embedding, item.embedding))
            for item in self._live()
            if item.embedding
        ]
        scored = [pair for pair in scored if pair[1] >= threshold]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:limit]

    async def get_recent(self, limit):
        self._check("get_recent")
        return sorted(self._live(), key=lambda item: item.created_at, reverse=True)[:limit]

    async def insert(self, item):
        self._check("insert")
        stored = item.model_copy(update={"id": uuid.uuid4().hex[:24]})
        self.items[stored.id] = stored
        return stored

    async def get(self, item_id):
        self._check("get")
        item = self.items.get(item_id)
        if item is None or item.deleted_at is not None:
            return None
        return item

    async def list_items(self, type=None, tag=None, limit=50, offset=0, sort="created_at", order="desc"):
        self._check("list_items")
        items = self._live()
        if type:
            items = [item for item in items if item.type.value == type]
        if tag:
            tag = tag.lower()
            items = [item for item in items if tag in item.user_tags or tag in item.ai_tags]
        field = sort if sort in ("created_at", "updated_at", "title") else "created_at"
        items.sort(key=lambda item: getattr(item, field), reverse=order != "asc")
        return items[offset:offset + limit], len(items)

    async def update(self, item_id, fields):
        self._check("update")
        item = await self.get(item_id)
        if item is None:
            return None
        updated = KnowledgeItem.model_validate(
            {**item.model_dump(by_alias=True), **fields, "updated_at": datetime.now(timezone.utc)}
        )
        self.items[item_id] = updated
        return updated

    async def soft_delete(self, item_id):
        self._check("soft_delete")
        item = self.items.get(item_id)
        if item is None or item.deleted_at is not None:
            return False
        self.items[item_id] = item.model_copy(update={"deleted_at": datetime.now(timezone.utc)})
        return True

    async def tag_rows(self):
        self._check("tag_rows")
        return [{"user_tags": item.user_tags, "ai_tags": item.ai_tags} for item in self._live()]

    async def insert_query_log(self, entry):
        self._check("insert_query_log")
        self.query_logs.append(entry)

    async def insert_api_usage(self, entry):
        self._check("insert_api_usage")
        self.api_usage.append(entry)


class FakeProvider:
    """In-memory stand-in for AIProvider that records every call."""

    def __init__(self, embeddings_enabled: bool = True, dimensions: int = 3):
        self.embeddings_enabled = embeddings_enabled
        self.dimensions = dimensions
        self.fail: set[str] = set()
        self.calls: list[tuple[str, tuple]] = []
        self.delay = 0.0
        self.tags = ["python", "testing"]
        self.embedding = [1.0, 0.0, 0.0]
        self.answer_text = "Generated answer"
        self.total_tokens = None

    async def _enter(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if self.delay:
            await asyncio.sleep(self.delay)
        if name in self.fail:
            raise provider_error()

    def called(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    async def summarize(self, title, content):
        await self._enter("summarize", title, content)
        return f"Summary of {title}"

    async def tag(self, title, content):
        await self._enter("tag", title, content)
        return list(self.tags)

    async def embed(self, text):
        if not self.embeddings_enabled:
            self.calls.append(("embed", (text,)))
            raise ProviderDisabled("Embeddings disabled")
        await self._enter("embed", text)
        return list(self.embedding)

    async def answer(self, question, context):
        await self._enter("answer", question, context)
        prompt = f"{context}\n\nUser question: {question}"
        return GeneratedAnswer(answer=self.answer_text, prompt=prompt, total_tokens=self.total_tokens)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def services(store, provider):
    return Services.build(store, provider)


@pytest_asyncio.fixture
async def client(services):
    """Async HTTP client bound to an app wired with the fakes."""
    app = create_app(services)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

"""Knowledge storage operations."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import OperationFailure, PyMongoError

from config import Config, logger
from app.knowledge.models import ApiUsageEntry, KnowledgeItem, QueryLogEntry

TEXT_INDEX_NAME = "title_content_text_idx"
VECTOR_INDEX_NAME = "embedding_vector_search_idx"
SORTABLE_FIELDS = ("created_at", "updated_at", "title")

# Soft-deleted items never leave the store
NOT_DELETED: dict[str, Any] = {"deleted_at": None}


def _object_id(item_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(item_id)
    except (InvalidId, TypeError):
        return None


def cosine_similarity(vec1: list[float], vec2: list[float]) -> float:
    """Compute cosine similarity between two vectors."""
    if not vec1 or not vec2 or len(vec1) != len(vec2):
        return 0.0

    dot_product = sum(a * b for a, b in zip(vec1, vec2))
    magnitude1 = sum(a * a for a in vec1) ** 0.5
    magnitude2 = sum(b * b for b in vec2) ** 0.5

    if magnitude1 == 0 or magnitude2 == 0:
        return 0.0

    return dot_product / (magnitude1 * magnitude2)


class KnowledgeStore:
    """Knowledge items, query logs and API usage records in MongoDB.

    Methods raise ``PyMongoError`` on failure; callers decide whether a
    failure is fatal or recoverable.
    """

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        query_logs: Optional[AsyncIOMotorCollection] = None,
        api_usage: Optional[AsyncIOMotorCollection] = None,
    ):
        self.collection = collection
        self.query_logs = query_logs
        self.api_usage = api_usage

    async def ensure_indexes(self) -> None:
        """Ensure required indexes exist."""
        try:
            await self.collection.create_index(
                [("title", "text"), ("content", "text")],
                name=TEXT_INDEX_NAME,
                weights={"title": 3, "content": 1},
            )
            await self.collection.create_index(
                [("deleted_at", ASCENDING), ("created_at", DESCENDING)],
                name="deleted_created_idx",
            )
            await self.collection.create_index(
                [("user_tags", ASCENDING)], name="user_tags_idx"
            )
            await self.collection.create_index(
                [("ai_tags", ASCENDING)], name="ai_tags_idx"
            )
            logger.info("Knowledge collection indexes ensured")
        except PyMongoError as e:
            logger.error(f"Failed to create knowledge indexes: {e}")

        if Config.EMBEDDINGS_ENABLED:
            await self._ensure_vector_index()

    async def _ensure_vector_index(self) -> None:
        try:
            from pymongo.operations import SearchIndexModel

            existing = await self.collection.list_search_indexes().to_list(length=None)
            if any(idx.get("name") == VECTOR_INDEX_NAME for idx in existing):
                return

            dimensions = Config.EMBEDDING_DIMENSIONS or 1536
            await self.collection.create_search_index(
                SearchIndexModel(
                    definition={
                        "fields": [
                            {
                                "type": "vector",
                                "path": "embedding",
                                "numDimensions": dimensions,
                                "similarity": "cosine",
                            },
                            {"type": "filter", "path": "deleted_at"},
                        ]
                    },
                    name=VECTOR_INDEX_NAME,
                    type="vectorSearch",
                )
            )
            logger.info(f"Created {VECTOR_INDEX_NAME} with {dimensions} dimensions")
        except PyMongoError as e:
            # Not every deployment supports search indexes
            logger.warning(f"Could not create vector search index (may not be supported): {e}")

    # ==================== Retrieval ====================

    async def text_search(self, query: str, limit: int) -> list[tuple[KnowledgeItem, float]]:
        """Full-text search over title and content.

        Scores are MongoDB text scores scaled so the best match is 1.0.
        """
        cursor = (
            self.collection.find(
                {"$text": {"$search": query}, **NOT_DELETED},
                {"score": {"$meta": "textScore"}},
            )
            .sort([("score", {"$meta": "textScore"})])
            .limit(limit)
        )
        docs = await cursor.to_list(length=limit)
        if not docs:
            return []

        best = max(doc.get("score", 0.0) for doc in docs) or 1.0
        return [
            (KnowledgeItem.from_mongo_dict(doc), min(1.0, doc.pop("score", 0.0) / best))
            for doc in docs
        ]

    async def substring_search(self, query: str, limit: int) -> list[KnowledgeItem]:
        """Case-insensitive substring match on title or content, newest first."""
        pattern = {"$regex": re.escape(query), "$options": "i"}
        cursor = (
            self.collection.find(
                {"$or": [{"title": pattern}, {"content": pattern}], **NOT_DELETED}
            )
            .sort("created_at", DESCENDING)
            .limit(limit)
        )
        docs = await cursor.to_list(length=limit)
        return [KnowledgeItem.from_mongo_dict(doc) for doc in docs]

    async def vector_search(
        self,
        embedding: list[float],
        threshold: float,
        limit: int,
    ) -> list[tuple[KnowledgeItem, float]]:
        """Vector similarity search using $vectorSearch."""
        pipeline = [
            {
                "$vectorSearch": {
                    "index": VECTOR_INDEX_NAME,
                    "path": "embedding",
                    "queryVector": embedding,
                    "numCandidates": limit * 10,
                    "limit": limit,
                    "filter": NOT_DELETED,
                }
            },
            {"$addFields": {"vector_score": {"$meta": "vectorSearchScore"}}},
            {"$match": {"vector_score": {"$gte": threshold}}},
        ]
        try:
            docs = await self.collection.aggregate(pipeline).to_list(length=limit)
        except OperationFailure as e:
            logger.warning(f"$vectorSearch unavailable, using brute-force scan: {e}")
            return await self._fallback_vector_search(embedding, threshold, limit)

        return [
            (KnowledgeItem.from_mongo_dict(doc), float(doc.pop("vector_score", 0.0)))
            for doc in docs
        ]

    async def _fallback_vector_search(
        self,
        embedding: list[float],
        threshold: float,
        limit: int,
    ) -> list[tuple[KnowledgeItem, float]]:
        """Fallback brute-force cosine scan over items with embeddings."""
        cursor = self.collection.find({"embedding": {"$ne": None}, **NOT_DELETED}).limit(1000)
        scored = []
        async for doc in cursor:
            score = cosine_similarity(embedding, doc.get("embedding") or [])
            if score >= threshold:
                scored.append((KnowledgeItem.from_mongo_dict(doc), score))

        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:limit]

    async def get_recent(self, limit: int) -> list[KnowledgeItem]:
        """The newest non-deleted items."""
        cursor = self.collection.find(NOT_DELETED).sort("created_at", DESCENDING).limit(limit)
        docs = await cursor.to_list(length=limit)
        return [KnowledgeItem.from_mongo_dict(doc) for doc in docs]

    # ==================== CRUD ====================

    async def insert(self, item: KnowledgeItem) -> KnowledgeItem:
        """Insert a new item and return it with its id."""
        result = await self.collection.insert_one(item.to_mongo_dict())
        logger.info(f"Created knowledge item {result.inserted_id}")
        return item.model_copy(update={"id": str(result.inserted_id)})

    async def get(self, item_id: str) -> Optional[KnowledgeItem]:
        """Get a non-deleted item by id."""
        oid = _object_id(item_id)
        if oid is None:
            return None
        doc = await self.collection.find_one({"_id": oid, **NOT_DELETED})
        return KnowledgeItem.from_mongo_dict(doc) if doc else None

    async def list_items(
        self,
        type: Optional[str] = None,
        tag: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
        sort: str = "created_at",
        order: str = "desc",
    ) -> tuple[list[KnowledgeItem], int]:
        """List non-deleted items with filters; returns the page and the total."""
        query: dict[str, Any] = dict(NOT_DELETED)
        if type:
            query["type"] = type
        if tag:
            tag = tag.strip().lower()
            query["$or"] = [{"user_tags": tag}, {"ai_tags": tag}]

        sort_field = sort if sort in SORTABLE_FIELDS else "created_at"
        direction = ASCENDING if order == "asc" else DESCENDING

        total = await self.collection.count_documents(query)
        cursor = self.collection.find(query).sort(sort_field, direction).skip(offset).limit(limit)
        docs = await cursor.to_list(length=limit)
        return [KnowledgeItem.from_mongo_dict(doc) for doc in docs], total

    async def update(self, item_id: str, fields: dict[str, Any]) -> Optional[KnowledgeItem]:
        """Set fields on a non-deleted item and return the updated record."""
        oid = _object_id(item_id)
        if oid is None:
            return None

        update_data = dict(fields)
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

        result = await self.collection.update_one(
            {"_id": oid, **NOT_DELETED},
            {"$set": update_data},
        )
        if result.matched_count == 0:
            return None
        logger.info(f"Updated knowledge item {item_id}")
        return await self.get(item_id)

    async def soft_delete(self, item_id: str) -> bool:
        """Mark an item deleted. False when it is absent or already deleted."""
        oid = _object_id(item_id)
        if oid is None:
            return False

        now = datetime.now(timezone.utc).isoformat()
        result = await self.collection.update_one(
            {"_id": oid, **NOT_DELETED},
            {"$set": {"deleted_at": now, "updated_at": now}},
        )
        if result.modified_count:
            logger.info(f"Soft-deleted knowledge item {item_id}")
        return result.modified_count > 0

    async def tag_rows(self) -> list[dict[str, list[str]]]:
        """User and AI tag lists of every non-deleted item."""
        cursor = self.collection.find(NOT_DELETED, {"user_tags": 1, "ai_tags": 1, "_id": 0})
        return [
            {"user_tags": doc.get("user_tags") or [], "ai_tags": doc.get("ai_tags") or []}
            async for doc in cursor
        ]

    # ==================== Audit logs ====================

    async def insert_query_log(self, entry: QueryLogEntry) -> None:
        if self.query_logs is None:
            return
        await self.query_logs.insert_one(entry.to_mongo_dict())

    async def insert_api_usage(self, entry: ApiUsageEntry) -> None:
        if self.api_usage is None:
            return
        await self.api_usage.insert_one(entry.to_mongo_dict())

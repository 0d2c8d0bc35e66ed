"""Knowledge item models.

Knowledge items are the notes, links and insights a user captures. The
AI fields (summary, ai_tags, embedding) are filled in by the augmentation
pipeline and may stay empty when a provider is unavailable. Deletion is
soft: ``deleted_at`` is set and the record is retained.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KnowledgeType(str, Enum):
    """Category of a captured item."""
    NOTE = "note"
    LINK = "link"
    INSIGHT = "insight"


class KnowledgeItem(BaseModel):
    """A captured knowledge item as stored in MongoDB."""

    id: Optional[str] = Field(default=None, alias="_id")  # MongoDB ObjectId as string
    title: str
    content: str
    type: KnowledgeType
    source_url: Optional[str] = None
    summary: Optional[str] = None
    user_tags: list[str] = Field(default_factory=list)
    ai_tags: list[str] = Field(default_factory=list)
    embedding: Optional[list[float]] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    deleted_at: Optional[datetime] = None

    model_config = {
        "populate_by_name": True,
    }

    @property
    def all_tags(self) -> list[str]:
        """User tags followed by AI tags."""
        return [*self.user_tags, *self.ai_tags]

    def to_mongo_dict(self) -> dict[str, Any]:
        """Convert to MongoDB document format."""
        data = self.model_dump(by_alias=True, exclude={"id"}, mode="python")
        data["type"] = self.type.value
        # Datetimes are stored as ISO strings; UTC keeps them sortable
        for field in ["created_at", "updated_at", "deleted_at"]:
            if data.get(field):
                data[field] = data[field].isoformat()
        return data

    @classmethod
    def from_mongo_dict(cls, data: dict[str, Any]) -> "KnowledgeItem":
        """Create KnowledgeItem from MongoDB document."""
        if data is None:
            raise ValueError("Cannot create KnowledgeItem from None")

        data = dict(data)
        if "_id" in data:
            data["_id"] = str(data["_id"])

        for field in ["created_at", "updated_at", "deleted_at"]:
            if field in data and isinstance(data[field], str):
                data[field] = datetime.fromisoformat(data[field].replace("Z", "+00:00"))

        return cls(**data)


class QueryLogEntry(BaseModel):
    """Audit record of one question-answering call."""
    query_text: str
    response: str
    source_ids: list[str] = Field(default_factory=list)
    tokens_used: int = 0
    response_time_ms: int = 0
    created_at: datetime = Field(default_factory=_utcnow)

    def to_mongo_dict(self) -> dict[str, Any]:
        data = self.model_dump()
        data["created_at"] = self.created_at.isoformat()
        return data


class ApiUsageEntry(BaseModel):
    """Audit record of one API call."""
    endpoint: str
    ip_address: str = "unknown"
    created_at: datetime = Field(default_factory=_utcnow)

    def to_mongo_dict(self) -> dict[str, Any]:
        data = self.model_dump()
        data["created_at"] = self.created_at.isoformat()
        return data

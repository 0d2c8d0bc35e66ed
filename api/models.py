"""Pydantic models for API requests and responses."""

from datetime import datetime
from typing import Any, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

from config import Config
from app.knowledge.models import KnowledgeItem, KnowledgeType
from app.knowledge.retrieval import SearchMode
from app.text import normalize_tags


def format_validation_errors(errors: list[dict[str, Any]]) -> list[str]:
    """``field: message`` strings from pydantic error dicts."""
    messages = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "request"
        messages.append(f"{field}: {error.get('msg', 'Invalid value')}")
    return messages


# ==================== Envelope ====================

class Meta(BaseModel):
    """Pagination and count metadata."""
    total: int
    page: Optional[int] = None
    limit: int


def success(data: Any = None, meta: Optional[Meta] = None) -> dict[str, Any]:
    """``{success: true, data, meta?}`` response body."""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if meta is not None:
        body["meta"] = meta.model_dump(exclude_none=True)
    return body


def failure(error: str) -> dict[str, Any]:
    return {"success": False, "error": error}


# ==================== Knowledge Models ====================

class KnowledgeItemInput(BaseModel):
    """A complete, valid item as submitted by a user."""
    title: str = Field(min_length=1, max_length=500)
    content: str = Field(min_length=1, max_length=50_000)
    type: KnowledgeType
    source_url: Optional[str] = None
    user_tags: list[str] = Field(default_factory=list, max_length=20)

    @field_validator("source_url", mode="before")
    @classmethod
    def _empty_url_is_none(cls, value):
        if value == "":
            return None
        return value

    @field_validator("source_url")
    @classmethod
    def _valid_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Please enter a valid URL")
        return value

    @field_validator("user_tags", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return [] if value is None else value

    @field_validator("user_tags")
    @classmethod
    def _normalize_tags(cls, value: list[str]) -> list[str]:
        for tag in value:
            if len(tag) > 50:
                raise ValueError("Tag must be less than 50 characters")
        return normalize_tags(value)


class CreateKnowledgeRequest(KnowledgeItemInput):
    """Request to capture a new item."""


class UpdateKnowledgeRequest(BaseModel):
    """Partial update; missing or null fields keep their stored values."""
    title: Optional[str] = None
    content: Optional[str] = None
    type: Optional[str] = None
    source_url: Optional[str] = None
    user_tags: Optional[list[str]] = None


class KnowledgeItemResponse(BaseModel):
    """A knowledge item as returned to clients."""
    id: str
    title: str
    content: str
    type: str
    source_url: Optional[str] = None
    summary: Optional[str] = None
    user_tags: list[str]
    ai_tags: list[str]
    embedding: Optional[list[float]] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    @classmethod
    def from_item(cls, item: KnowledgeItem) -> "KnowledgeItemResponse":
        return cls(
            id=item.id or "",
            title=item.title,
            content=item.content,
            type=item.type.value,
            source_url=item.source_url,
            summary=item.summary,
            user_tags=item.user_tags,
            ai_tags=item.ai_tags,
            embedding=item.embedding,
            created_at=item.created_at,
            updated_at=item.updated_at,
            deleted_at=item.deleted_at,
        )


# ==================== Search Models ====================

class SearchRequest(BaseModel):
    """Rich search request."""
    query: str = Field(max_length=500)
    mode: SearchMode = SearchMode.HYBRID
    type: Optional[KnowledgeType] = None
    tags: Optional[list[str]] = None
    limit: int = Field(default=20, ge=1, le=Config.SEARCH_MAX_LIMIT)


class PublicQueryParams(BaseModel):
    """Query-string parameters of the public question endpoint."""
    q: str = Field(min_length=1, max_length=1000)
    limit: int = Field(default=5, ge=1, le=20)

    @field_validator("q", mode="before")
    @classmethod
    def _missing_query(cls, value):
        if value is None:
            raise ValueError("Query is required")
        return value

    @field_validator("limit", mode="before")
    @classmethod
    def _blank_limit_is_default(cls, value):
        if value is None or value == "":
            return 5
        return value


class SourceResponse(BaseModel):
    """A cited source of an answer."""
    id: Optional[str]
    title: str
    summary: Optional[str] = None
    relevance: float


class PublicQueryResponse(BaseModel):
    answer: str
    sources: list[SourceResponse]
    tokens_used: int


# ==================== Tag Models ====================

class TagInfo(BaseModel):
    tag: str
    count: int
    source: str  # "user", "ai" or "both"

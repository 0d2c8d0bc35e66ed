"""Search routes over the knowledge base."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError as PydanticValidationError

from app.errors import ValidationError
from app.knowledge import RetrievalCascade, SearchMode

from api.models import KnowledgeItemResponse, Meta, SearchRequest, format_validation_errors, success
from api.dependencies import get_cascade


router = APIRouter()


@router.post("")
async def search_knowledge(
    request: SearchRequest,
    cascade: RetrievalCascade = Depends(get_cascade),
):
    """Search with an explicit text, semantic or hybrid mode."""
    results = await cascade.search(
        request.query,
        mode=request.mode,
        limit=request.limit,
        type=request.type,
        tags=request.tags,
    )
    return success(
        [KnowledgeItemResponse.from_item(r.item).model_dump(mode="json") for r in results],
        Meta(total=len(results), limit=request.limit),
    )


@router.get("")
async def search_knowledge_get(
    q: str = Query("", description="Search query"),
    type: Optional[str] = Query(None, description="Filter by type"),
    limit: int = Query(20),
    cascade: RetrievalCascade = Depends(get_cascade),
):
    """Hybrid search via query parameters."""
    try:
        request = SearchRequest(query=q, type=type or None, limit=limit, mode=SearchMode.HYBRID)
    except PydanticValidationError as e:
        raise ValidationError(fields=format_validation_errors(e.errors()))
    return await search_knowledge(request, cascade)

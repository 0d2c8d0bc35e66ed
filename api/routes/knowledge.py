"""Knowledge item routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError as PydanticValidationError

from config import logger
from app.errors import NotFoundError, ValidationError
from app.knowledge import AugmentationPipeline, KnowledgeItem, KnowledgeStore, KnowledgeType

from api.models import (
    CreateKnowledgeRequest,
    KnowledgeItemInput,
    KnowledgeItemResponse,
    Meta,
    UpdateKnowledgeRequest,
    format_validation_errors,
    success,
)
from api.dependencies import get_augmentation, get_store


router = APIRouter()

_KNOWLEDGE_TYPES = {t.value for t in KnowledgeType}


@router.get("")
async def list_knowledge(
    type: Optional[str] = Query(None, description="Filter by type"),
    tag: Optional[str] = Query(None, description="Filter by user or AI tag"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    sort: str = Query("created_at", description="created_at, updated_at or title"),
    order: str = Query("desc", description="asc or desc"),
    store: KnowledgeStore = Depends(get_store),
):
    """List non-deleted knowledge items."""
    # Unknown types are ignored rather than rejected
    effective_type = type if type in _KNOWLEDGE_TYPES else None

    try:
        items, total = await store.list_items(
            type=effective_type,
            tag=tag or None,
            limit=limit,
            offset=offset,
            sort=sort,
            order=order,
        )
    except Exception as e:
        logger.error(f"Knowledge list error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch knowledge items",
        )

    return success(
        [KnowledgeItemResponse.from_item(item).model_dump(mode="json") for item in items],
        Meta(total=total, page=offset // limit + 1, limit=limit),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_knowledge(
    request: CreateKnowledgeRequest,
    store: KnowledgeStore = Depends(get_store),
    augmentation: AugmentationPipeline = Depends(get_augmentation),
):
    """Capture a new item; AI fields fall back when providers fail."""
    ai = await augmentation.augment(request.title, request.content)

    item = KnowledgeItem(
        title=request.title,
        content=request.content,
        type=request.type,
        source_url=request.source_url,
        user_tags=request.user_tags,
        summary=ai.summary or None,
        ai_tags=ai.tags,
        embedding=ai.embedding,
    )

    try:
        created = await store.insert(item)
    except Exception as e:
        logger.error(f"Failed to create knowledge: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create knowledge item",
        )

    return success(KnowledgeItemResponse.from_item(created).model_dump(mode="json"))


@router.get("/{item_id}")
async def get_knowledge(
    item_id: str,
    store: KnowledgeStore = Depends(get_store),
):
    """Get a single item."""
    try:
        item = await store.get(item_id)
    except Exception as e:
        logger.error(f"Failed to get knowledge: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get knowledge item",
        )

    if not item:
        raise NotFoundError()
    return success(KnowledgeItemResponse.from_item(item).model_dump(mode="json"))


@router.patch("/{item_id}")
async def update_knowledge(
    item_id: str,
    request: UpdateKnowledgeRequest,
    store: KnowledgeStore = Depends(get_store),
    augmentation: AugmentationPipeline = Depends(get_augmentation),
):
    """Partially update an item.

    The patch is merged over the stored record and validated as a whole.
    AI fields are regenerated only when the title or content changed.
    """
    try:
        existing = await store.get(item_id)
    except Exception as e:
        logger.error(f"Failed to load knowledge for update: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update knowledge item",
        )
    if not existing:
        raise NotFoundError()

    merged = {
        "title": request.title if request.title is not None else existing.title,
        "content": request.content if request.content is not None else existing.content,
        "type": request.type if request.type is not None else existing.type,
        "source_url": request.source_url if request.source_url is not None else existing.source_url,
        "user_tags": request.user_tags if request.user_tags is not None else existing.user_tags,
    }
    try:
        validated = KnowledgeItemInput.model_validate(merged)
    except PydanticValidationError as e:
        raise ValidationError(fields=format_validation_errors(e.errors()))

    update_data = validated.model_dump()
    update_data["type"] = validated.type.value

    if validated.title != existing.title or validated.content != existing.content:
        ai = await augmentation.augment(validated.title, validated.content)
        update_data.update(
            summary=ai.summary or None,
            ai_tags=ai.tags,
            embedding=ai.embedding,
        )

    try:
        updated = await store.update(item_id, update_data)
    except Exception as e:
        logger.error(f"Failed to update knowledge: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update knowledge item",
        )
    if not updated:
        # Deleted between the read and the write
        raise NotFoundError()

    return success(KnowledgeItemResponse.from_item(updated).model_dump(mode="json"))


@router.delete("/{item_id}")
async def delete_knowledge(
    item_id: str,
    store: KnowledgeStore = Depends(get_store),
):
    """Soft-delete an item. Deleting twice yields 404."""
    try:
        deleted = await store.soft_delete(item_id)
    except Exception as e:
        logger.error(f"Failed to delete knowledge: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete knowledge item",
        )

    if not deleted:
        raise NotFoundError()
    return success()

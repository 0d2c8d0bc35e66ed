"""Tag listing route."""

from fastapi import APIRouter, Depends, HTTPException, status

from config import logger
from app.knowledge import KnowledgeStore
from app.knowledge.tag_index import aggregate_tags

from api.models import TagInfo, success
from api.dependencies import get_store


router = APIRouter()


@router.get("")
async def list_tags(store: KnowledgeStore = Depends(get_store)):
    """All tags on non-deleted items with counts and origin."""
    try:
        rows = await store.tag_rows()
    except Exception as e:
        logger.error(f"Failed to fetch tags: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch tags",
        )

    return success([TagInfo(**entry).model_dump() for entry in aggregate_tags(rows)])

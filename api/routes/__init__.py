"""API route modules."""

from api.routes.knowledge import router as knowledge_router
from api.routes.search import router as search_router
from api.routes.public import router as public_router
from api.routes.tags import router as tags_router

__all__ = [
    "knowledge_router",
    "search_router",
    "public_router",
    "tags_router",
]

"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from config import Config, logger
from database import create_client, get_collections, ping
from app.ai import AIProvider
from app.errors import KnowledgeError
from app.knowledge import KnowledgeStore

from api.dependencies import Services
from api.models import failure, format_validation_errors
from api.routes import (
    knowledge_router,
    public_router,
    search_router,
    tags_router,
)

PUBLIC_PREFIX = "/api/public"


class FrontendCORSMiddleware(CORSMiddleware):
    """CORS for the application frontend; public routes set their own headers."""

    def __init__(self, app, exempt_prefixes: tuple[str, ...] = (), **kwargs):
        super().__init__(app, **kwargs)
        self.exempt_prefixes = exempt_prefixes

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and scope["path"].startswith(self.exempt_prefixes):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting knowledge API server...")

    if getattr(app.state, "services", None) is not None:
        # Collaborators injected by the caller
        yield
        return

    for problem in Config.validate():
        logger.warning(f"Configuration problem: {problem}")

    client = create_client()
    await ping(client)
    collections = get_collections(client)
    store = KnowledgeStore(collections.knowledge, collections.query_logs, collections.api_usage)
    await store.ensure_indexes()

    provider = AIProvider()
    app.state.services = Services.build(store, provider)

    yield

    # Shutdown
    logger.info("Shutting down knowledge API server...")
    await provider.close()
    client.close()


async def knowledge_error_handler(request: Request, exc: KnowledgeError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=failure(exc.message))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    messages = format_validation_errors(exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=failure(", ".join(messages)),
    )


async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=failure(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc!r}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=failure("Internal server error"),
    )


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Build the application; ``services`` replaces the MongoDB/LLM wiring."""
    app = FastAPI(
        title="Second Brain API",
        description="Personal knowledge capture with AI summaries, search and Q&A",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services

    # CORS configuration for frontend
    app.add_middleware(
        FrontendCORSMiddleware,
        exempt_prefixes=(PUBLIC_PREFIX,),
        allow_origins=Config.FRONTEND_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(KnowledgeError, knowledge_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Include routers
    app.include_router(knowledge_router, prefix="/api/knowledge", tags=["Knowledge"])
    app.include_router(search_router, prefix="/api/search", tags=["Search"])
    app.include_router(tags_router, prefix="/api/tags", tags=["Tags"])
    app.include_router(public_router, prefix=PUBLIC_PREFIX, tags=["Public"])

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "second-brain-api"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )

"""FastAPI dependencies for shared collaborators."""

from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request, status

from app.ai import AIProvider
from app.knowledge import (
    AnswerComposer,
    AugmentationPipeline,
    KnowledgeStore,
    RetrievalCascade,
    UsageRecorder,
)


@dataclass
class Services:
    """Collaborators built once at startup and shared by every request."""
    store: KnowledgeStore
    provider: AIProvider
    cascade: RetrievalCascade
    augmentation: AugmentationPipeline
    composer: AnswerComposer
    recorder: UsageRecorder

    @classmethod
    def build(cls, store: KnowledgeStore, provider: AIProvider) -> "Services":
        """Wire the core components around a store and an AI provider."""
        return cls(
            store=store,
            provider=provider,
            cascade=RetrievalCascade(store, provider),
            augmentation=AugmentationPipeline(provider),
            composer=AnswerComposer(provider),
            recorder=UsageRecorder(store),
        )


def get_services(request: Request) -> Services:
    """Services attached to the application at startup."""
    services: Optional[Services] = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Knowledge service unavailable",
        )
    return services


def get_store(request: Request) -> KnowledgeStore:
    return get_services(request).store


def get_cascade(request: Request) -> RetrievalCascade:
    return get_services(request).cascade


def get_augmentation(request: Request) -> AugmentationPipeline:
    return get_services(request).augmentation


def get_composer(request: Request) -> AnswerComposer:
    return get_services(request).composer


def get_recorder(request: Request) -> UsageRecorder:
    return get_services(request).recorder


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, then the peer address, else "unknown"."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"

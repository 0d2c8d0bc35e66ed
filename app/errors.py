"""Error taxonomy surfaced by the knowledge service."""

from __future__ import annotations

from typing import Optional


class KnowledgeError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(KnowledgeError):
    """Malformed or missing input. Never retried."""

    status_code = 400
    default_message = "Invalid request"

    def __init__(self, message: Optional[str] = None, fields: Optional[list[str]] = None):
        self.fields = fields or []
        super().__init__(message or (", ".join(self.fields) if self.fields else None))


class InvalidQuery(ValidationError):
    """Query text is empty after normalization."""

    default_message = "query: Query is required"


class NotFoundError(KnowledgeError):
    """Item is absent or soft-deleted."""

    status_code = 404
    default_message = "Knowledge item not found"


class SemanticUnavailable(KnowledgeError):
    """Semantic-only search was requested but no query embedding is available."""

    status_code = 503
    default_message = "Semantic search unavailable"


class ProviderDisabled(Exception):
    """A collaborator capability is switched off by configuration."""

"""Generative text and embedding collaborators."""

from app.ai.provider import AIProvider, GeneratedAnswer
from app.ai.tags import parse_tags

__all__ = [
    "AIProvider",
    "GeneratedAnswer",
    "parse_tags",
]

"""OpenAI-compatible client for summaries, tags, embeddings and answers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from openai import AsyncOpenAI

from config import Config, logger
from app.ai import prompts
from app.ai.tags import parse_tags
from app.errors import ProviderDisabled

EMBEDDING_INPUT_CHARS = 8000


@dataclass
class GeneratedAnswer:
    """Model answer plus what is needed for token accounting."""
    answer: str
    prompt: str
    total_tokens: Optional[int] = None


class AIProvider:
    """Generative-text and embedding collaborator.

    Every method raises on failure (``openai.APIError``, ``ValueError`` for
    unusable output, ``ProviderDisabled`` for switched-off embeddings).
    Fallback decisions belong to the callers.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        embedding_model: Optional[str] = None,
        embeddings_enabled: Optional[bool] = None,
        dimensions: Optional[int] = None,
    ):
        self._client = client or AsyncOpenAI(
            base_url=Config.LLM_URI,
            api_key=Config.LLM_API_KEY or "not-needed",
            timeout=Config.PROVIDER_TIMEOUT_SECONDS,
            max_retries=1,
        )
        self.model = model or Config.LLM_MODEL
        self.embedding_model = embedding_model or Config.LLM_EMBEDDING_MODEL
        self.embeddings_enabled = (
            Config.EMBEDDINGS_ENABLED if embeddings_enabled is None else embeddings_enabled
        )
        self.dimensions = dimensions if dimensions is not None else Config.EMBEDDING_DIMENSIONS

    async def _complete(self, prompt: str, max_tokens: int, temperature: float):
        return await self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
        )

    @staticmethod
    def _text(response) -> str:
        if not response.choices:
            raise ValueError("Model returned no choices")
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise ValueError("Model returned an empty message")
        return content.strip()

    async def summarize(self, title: str, content: str) -> str:
        """A 1-3 sentence summary of an item."""
        prompt = f"{prompts.SUMMARIZE}\n\n{prompts.item_input(title, content)}"
        response = await self._complete(prompt, max_tokens=200, temperature=0.3)
        return self._text(response)

    async def tag(self, title: str, content: str) -> list[str]:
        """Up to seven lowercase tags for an item."""
        prompt = f"{prompts.AUTO_TAG}\n\n{prompts.item_input(title, content)}"
        response = await self._complete(prompt, max_tokens=100, temperature=0.3)
        raw = self._text(response)
        tags = parse_tags(raw)
        logger.debug(f"Parsed {len(tags)} tags from model output")
        return tags

    async def embed(self, text: str) -> list[float]:
        """Embedding vector for text; never a partial vector."""
        if not self.embeddings_enabled:
            raise ProviderDisabled("Embeddings disabled - using text search")
        if not text or not text.strip():
            raise ValueError("Cannot generate embedding for empty text")

        kwargs = {"model": self.embedding_model, "input": text[:EMBEDDING_INPUT_CHARS]}
        if self.dimensions:
            kwargs["dimensions"] = self.dimensions

        response = await self._client.embeddings.create(**kwargs)
        if not response.data:
            raise ValueError("Embedding response contained no data")

        embedding = list(response.data[0].embedding)
        if not embedding:
            raise ValueError("Embedding response contained an empty vector")
        if self.dimensions and len(embedding) != self.dimensions:
            raise ValueError(
                f"Embedding has {len(embedding)} dims, expected {self.dimensions}"
            )
        return embedding

    async def answer(self, question: str, context: str) -> GeneratedAnswer:
        """Answer a question grounded on the given context block."""
        system_prompt = prompts.query_prompt(context)
        prompt = f"{system_prompt}\n\nUser question: {question}"
        response = await self._complete(prompt, max_tokens=500, temperature=0.5)
        answer = self._text(response)

        usage = getattr(response, "usage", None)
        total_tokens = getattr(usage, "total_tokens", None) if usage else None
        return GeneratedAnswer(answer=answer, prompt=prompt, total_tokens=total_tokens)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.close()

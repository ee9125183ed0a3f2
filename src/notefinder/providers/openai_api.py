"""OpenAI-backed embedding, moderation and chat-completion providers."""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
import openai
from openai import OpenAI

from notefinder.errors import EmbeddingProviderError
from notefinder.models import Embedding

LOGGER = logging.getLogger(__name__)

# Output sizes of the hosted embedding models.
EMBEDDING_DIMENSIONS = {
    "text-embedding-ada-002": 1536,
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
}


class OpenAIEmbeddingProvider:
    def __init__(self, client: OpenAI, *, model: str = "text-embedding-ada-002") -> None:
        self.client = client
        self.model = model
        self.dimension: int | None = EMBEDDING_DIMENSIONS.get(model)

    def embed(self, text: str) -> Embedding:
        try:
            response = self.client.embeddings.create(model=self.model, input=text)
        except openai.OpenAIError as exc:
            raise EmbeddingProviderError(f"Embedding request failed: {exc}") from exc
        if not response.data:
            raise EmbeddingProviderError("Embedding response contained no vectors")
        vector = np.asarray(response.data[0].embedding, dtype="float32")
        return Embedding(vector=vector, token_count=int(response.usage.total_tokens))


class OpenAIModerationProvider:
    def __init__(self, client: OpenAI) -> None:
        self.client = client

    def moderate(self, text: str) -> bool:
        """Return True when OpenAI flags the text."""
        try:
            response = self.client.moderations.create(input=text)
        except openai.OpenAIError as exc:
            raise EmbeddingProviderError(f"Moderation request failed: {exc}") from exc
        return any(result.flagged for result in response.results)


class OpenAIChatProvider:
    def __init__(self, client: OpenAI, *, model: str = "gpt-3.5-turbo") -> None:
        self.client = client
        self.model = model

    def complete(self, messages: Sequence[dict[str, str]]) -> list[str]:
        """Return the text of every choice, best first."""
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=list(messages),
            )
        except openai.OpenAIError as exc:
            raise EmbeddingProviderError(f"Chat completion failed: {exc}") from exc
        LOGGER.debug("Chat completion returned %d choice(s)", len(response.choices))
        return [choice.message.content or "" for choice in response.choices]

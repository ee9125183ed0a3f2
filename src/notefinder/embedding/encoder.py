"""Embedding model management."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import numpy as np
from sentence_transformers import SentenceTransformer

from notefinder.errors import EmbeddingProviderError
from notefinder.models import Embedding

DEFAULT_MODEL = "sentence-transformers/all-mpnet-base-v2"

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    """Turns a piece of text into a fixed-dimension vector."""

    dimension: int | None

    def embed(self, text: str) -> Embedding: ...


@dataclass(slots=True)
class EmbeddingConfig:
    model_name: str = DEFAULT_MODEL
    normalize: bool = True
    device: str | None = None


class EmbeddingModel:
    """Thin wrapper around `SentenceTransformer` producing one embedding per call.

    The token count reported with each vector comes from the model's own
    tokenizer, so it reflects what the model actually consumed.
    """

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig()
        self._model = SentenceTransformer(self.config.model_name, device=self.config.device)
        self.dimension: int | None = int(self._model.get_sentence_embedding_dimension())
        logger.info(
            "Loaded embedding model %s (dimension: %d)",
            self.config.model_name,
            self.dimension,
        )

    def count_tokens(self, text: str) -> int:
        return len(self._model.tokenizer.encode(text, add_special_tokens=True))

    def embed(self, text: str) -> Embedding:
        """Return a float32 embedding for a single text."""
        try:
            vectors = self._model.encode(
                [text],
                show_progress_bar=False,
                convert_to_numpy=True,
                normalize_embeddings=self.config.normalize,
            )
        except Exception as exc:
            raise EmbeddingProviderError(f"Local embedding failed: {exc}") from exc
        vector = np.asarray(vectors[0], dtype="float32")
        return Embedding(vector=vector, token_count=self.count_tokens(text))

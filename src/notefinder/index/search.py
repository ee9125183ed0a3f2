"""Semantic search interface."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from notefinder.config import SearchSettings
from notefinder.embedding.encoder import EmbeddingProvider
from notefinder.errors import FetchError, RetrievalError
from notefinder.index.storage import VectorStore
from notefinder.moderation import ModerationGate
from notefinder.utils.text import fold_newlines

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SearchResult:
    document_id: int
    path: str
    content: str
    similarity: float


class Searcher:
    """High-level API to query the vector store."""

    def __init__(
        self,
        embedder: EmbeddingProvider,
        store: VectorStore,
        *,
        moderation: ModerationGate | None = None,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.moderation = moderation

    def search(
        self,
        query: str,
        settings: SearchSettings | None = None,
        *,
        public_only: bool = False,
    ) -> List[SearchResult]:
        """Return sections ranked by descending similarity to ``query``.

        Raises FlaggedContentError if moderation rejects the query and
        RetrievalError if the store cannot answer the match. No matches is
        an empty list.
        """
        settings = settings or SearchSettings()
        query = query.strip()
        if not query:
            return []

        if self.moderation is not None:
            self.moderation.check(query)

        embedding = self.embedder.embed(fold_newlines(query))
        try:
            matches = self.store.match(
                embedding.vector,
                match_threshold=settings.match_threshold,
                match_count=settings.match_count,
                min_content_length=settings.min_content_length,
                public_only=public_only,
            )
        except FetchError as exc:
            raise RetrievalError("Failed to match document sections") from exc

        results: List[SearchResult] = []
        for match in matches:
            try:
                document = self.store.get_document(match.document_id)
            except FetchError as exc:
                raise RetrievalError(f"Failed to load document {match.document_id}") from exc
            if document is None:
                raise RetrievalError(f"Matched section has no document {match.document_id}")
            results.append(
                SearchResult(
                    document_id=document.id,
                    path=document.path,
                    content=match.content,
                    similarity=match.similarity,
                )
            )
        LOGGER.info("Search returned %d result(s)", len(results))
        return results

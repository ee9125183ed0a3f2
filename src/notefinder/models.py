"""Core NoteFinder data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np


@dataclass(slots=True)
class SourceDocument:
    """One item of the corpus, identified by its path."""

    path: str
    read_content: Callable[[], str]


@dataclass(slots=True)
class StoredDocument:
    """Document row as persisted in the vector store."""

    id: int
    path: str
    checksum: str | None
    public: bool


@dataclass(slots=True)
class DocumentRef:
    """Identity of the document a section belongs to."""

    id: int
    path: str


@dataclass(slots=True)
class SectionRecord:
    """Paragraph-level chunk ready to be inserted for a document."""

    document_id: int
    content: str
    token_count: int
    embedding: np.ndarray


@dataclass(slots=True)
class SectionMatch:
    document_id: int
    content: str
    similarity: float


@dataclass(slots=True)
class Embedding:
    """Vector returned by an embedding provider plus the tokens it consumed."""

    vector: np.ndarray
    token_count: int

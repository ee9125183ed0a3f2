"""Shared fixtures and provider fakes."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Dict, List

import numpy as np
import pytest

from notefinder.errors import EmbeddingProviderError
from notefinder.index.storage import SQLiteVectorStore
from notefinder.models import Embedding

DIMENSION = 16

_CONFIG_ENV = {
    "OPENAI_API_KEY",
    "PROMPT_INTRO",
    "TOKEN_BUDGET",
    "MATCH_THRESHOLD",
    "MATCH_COUNT",
    "MIN_CONTENT_LENGTH",
    "ASK_MATCH_THRESHOLD",
    "ASK_MATCH_COUNT",
    "ASK_MIN_CONTENT_LENGTH",
}


class FakeEmbedder:
    """Bag-of-words embedder: texts sharing words get similar vectors."""

    dimension = DIMENSION

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.calls: List[str] = []

    def embed(self, text: str) -> Embedding:
        self.calls.append(text)
        if self.fail_on is not None and self.fail_on in text:
            raise EmbeddingProviderError("Embedding failed")
        vector = np.zeros(DIMENSION, dtype="float32")
        words = text.lower().split()
        for word in words:
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % DIMENSION
            vector[bucket] += 1.0
        if not words:
            vector[0] = 1.0
        return Embedding(vector=vector, token_count=len(words))


class FakeModerationProvider:
    def __init__(self, flagged_words: tuple[str, ...] = ()) -> None:
        self.flagged_words = flagged_words
        self.calls: List[str] = []

    def moderate(self, text: str) -> bool:
        self.calls.append(text)
        return any(word in text for word in self.flagged_words)


class FakeChat:
    def __init__(self, choices: List[str] | None = None) -> None:
        self.choices = ["An answer."] if choices is None else choices
        self.messages: List[List[Dict[str, str]]] = []

    def complete(self, messages):
        self.messages.append(list(messages))
        return list(self.choices)


class DictCorpus:
    """In-memory corpus keyed by path."""

    def __init__(self, files: Dict[str, str]) -> None:
        self.files = dict(files)

    def list_documents(self):
        from notefinder.models import SourceDocument

        return [
            SourceDocument(path=path, read_content=(lambda p=path: self.files[p]))
            for path in sorted(self.files)
        ]


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("NOTEFINDER_") or name in _CONFIG_ENV:
            monkeypatch.delenv(name)


@pytest.fixture
def temp_store(tmp_path: Path):
    store = SQLiteVectorStore(tmp_path / "test.db", dimension=DIMENSION)
    yield store
    store.close()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()

"""Exception hierarchy shared by the sync and retrieval paths."""

from __future__ import annotations


class NoteFinderError(Exception):
    """Base exception for NoteFinder errors."""


class ConfigurationError(NoteFinderError):
    """Required configuration (usually a provider credential) is missing."""


class FetchError(NoteFinderError):
    """A read or write against the vector store failed."""


class EmbeddingProviderError(NoteFinderError):
    """An embedding, moderation or completion provider returned a non-success response."""


class FlaggedContentError(NoteFinderError):
    """The moderation provider flagged the submitted text."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__("Flagged content")


class ReindexError(NoteFinderError):
    """Wraps any failure raised while syncing a single document."""

    def __init__(self, path: str, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to sync {path}: {cause}")


class DanglingCleanupError(NoteFinderError):
    """Listing or deleting stray document records failed."""


class RetrievalError(NoteFinderError):
    """The nearest-neighbour query against the store failed."""


class SyncInProgressError(NoteFinderError):
    """Another sync pass is already running."""

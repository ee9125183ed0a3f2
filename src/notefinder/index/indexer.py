"""Synchronisation of the vector store with the current corpus."""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field

from notefinder.config import AppConfig, require_openai_key
from notefinder.corpus import Corpus, is_in_directories, scan
from notefinder.embedding.encoder import EmbeddingProvider
from notefinder.errors import DanglingCleanupError, ReindexError, SyncInProgressError
from notefinder.index.detector import SyncState, classify, compute_checksum
from notefinder.index.storage import VectorStore
from notefinder.ingestion.markdown_loader import split_document
from notefinder.models import SectionRecord, SourceDocument
from notefinder.moderation import ModerationGate
from notefinder.utils.text import fold_newlines

LOGGER = logging.getLogger(__name__)

# Serialises sync passes within the process.
_SYNC_LOCK = threading.Lock()

PREVIEW_CHARS = 40


class DocumentOutcome(enum.Enum):
    UNCHANGED = "unchanged"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass(slots=True)
class SyncStats:
    succeeded: int = 0
    updated: int = 0
    errored: int = 0
    deleted: int = 0
    processed_paths: list[str] = field(default_factory=list)

    def increment(self, outcome: DocumentOutcome, path: str) -> None:
        if outcome is DocumentOutcome.UNCHANGED:
            self.succeeded += 1
        elif outcome is DocumentOutcome.UPDATED:
            self.succeeded += 1
            self.updated += 1
        else:
            self.errored += 1
        self.processed_paths.append(path)


class Indexer:
    """Coordinates change detection, section embedding and persistence."""

    def __init__(
        self,
        embedder: EmbeddingProvider,
        store: VectorStore,
        *,
        moderation: ModerationGate | None = None,
        run_lock: threading.Lock | None = None,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.moderation = moderation
        self._run_lock = run_lock if run_lock is not None else _SYNC_LOCK

    def sync(self, corpus: Corpus, config: AppConfig) -> SyncStats:
        """Run one full sync pass and return aggregate counts.

        Only one pass may run at a time; an overlapping call raises
        SyncInProgressError without touching the store.
        """
        if config.needs_openai:
            require_openai_key(config)
        if config.moderate_content and self.moderation is None:
            LOGGER.warning("Content moderation requested but no moderation gate configured")

        if not self._run_lock.acquire(blocking=False):
            raise SyncInProgressError("A sync pass is already running")
        try:
            return self._sync(corpus, config)
        finally:
            self._run_lock.release()

    def _sync(self, corpus: Corpus, config: AppConfig) -> SyncStats:
        documents = scan(corpus, config.excluded_dirs)
        LOGGER.info("Syncing %d document(s)", len(documents))

        stats = SyncStats()
        for document in documents:
            outcome = self._sync_document(document, config)
            stats.increment(outcome, document.path)

        self._delete_dangling({document.path for document in documents}, stats)
        LOGGER.info(
            "Sync finished: %d succeeded, %d updated, %d errored, %d deleted",
            stats.succeeded,
            stats.updated,
            stats.errored,
            stats.deleted,
        )
        return stats

    def _sync_document(self, document: SourceDocument, config: AppConfig) -> DocumentOutcome:
        content = ""
        try:
            existing = self.store.find_by_path(document.path)
            content = document.read_content()
            checksum = compute_checksum(content)
            is_public = is_in_directories(document.path, config.public_dirs)

            state = classify(existing, checksum, is_public)
            LOGGER.debug("%s: %s", document.path, state.value)

            if state is SyncState.UNCHANGED:
                return DocumentOutcome.UNCHANGED

            if state is SyncState.ACCESS_CHANGED:
                LOGGER.info("Updating access for %s, public=%s", document.path, is_public)
                self.store.update_public(document.path, is_public)
                return DocumentOutcome.UPDATED

            if state is SyncState.STALE:
                LOGGER.info("Reindexing %s", document.path)
                # Sentinel goes in before any section is removed.
                self.store.update_checksum(document.path, None)
                self.store.delete_sections(existing.id)

            self._reindex(document.path, content, checksum, is_public, config)
            return DocumentOutcome.UPDATED
        except Exception as exc:
            error = ReindexError(document.path, exc)
            LOGGER.error(
                "%s (content starts with %r). Checksum left empty so it is retried next sync.",
                error,
                content[:PREVIEW_CHARS],
            )
            return DocumentOutcome.FAILED

    def _reindex(
        self, path: str, content: str, checksum: str, is_public: bool, config: AppConfig
    ) -> None:
        frontmatter, sections = split_document(content)

        # Checksum stays empty until every section is stored.
        record = self.store.upsert_by_path(path, checksum=None, meta=frontmatter, public=is_public)
        LOGGER.debug("[%s] Adding %d section(s)", path, len(sections))

        for section in sections:
            text = fold_newlines(section)
            try:
                if config.moderate_content and self.moderation is not None:
                    self.moderation.check(text)
                embedding = self.embedder.embed(text)
            except Exception:
                LOGGER.error(
                    "Failed to generate embeddings for '%s' section starting with '%s...'",
                    path,
                    text[:PREVIEW_CHARS],
                )
                raise
            self.store.insert_section(
                SectionRecord(
                    document_id=record.id,
                    content=section,
                    token_count=embedding.token_count,
                    embedding=embedding.vector,
                )
            )

        self.store.update_checksum(path, checksum)

    def _delete_dangling(self, scanned_paths: set[str], stats: SyncStats) -> None:
        try:
            stored = self.store.list_all()
        except Exception as exc:
            LOGGER.error("%s", DanglingCleanupError(f"Unable to list stored documents: {exc}"))
            stats.errored += 1
            return

        for document in stored:
            if document.path in scanned_paths:
                continue
            try:
                self.store.delete_by_path(document.path)
            except Exception as exc:
                LOGGER.error(
                    "%s", DanglingCleanupError(f"Unable to delete {document.path}: {exc}")
                )
                stats.errored += 1
                continue
            LOGGER.info("Removed dangling document %s", document.path)
            stats.deleted += 1

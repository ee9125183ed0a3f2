"""Checksum-based change detection."""

from __future__ import annotations

import base64
import enum
import hashlib

from notefinder.models import StoredDocument


class SyncState(enum.Enum):
    UNCHANGED = "unchanged"
    ACCESS_CHANGED = "access_changed"
    STALE = "stale"
    NEW = "new"


def compute_checksum(content: str) -> str:
    """Base64-encoded SHA-256 of the raw note body."""
    digest = hashlib.sha256(content.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def classify(existing: StoredDocument | None, checksum: str, is_public: bool) -> SyncState:
    """Decide what a sync pass has to do with a document.

    A stored checksum of ``None`` never matches, so documents whose sections
    were not fully committed are always reindexed.
    """
    if existing is None:
        return SyncState.NEW
    if existing.checksum == checksum:
        if existing.public == is_public:
            return SyncState.UNCHANGED
        return SyncState.ACCESS_CHANGED
    return SyncState.STALE

"""Tests for checksum-based change detection."""

from __future__ import annotations

import pytest

from notefinder.index.detector import SyncState, classify, compute_checksum
from notefinder.models import StoredDocument


def _stored(checksum, public=False) -> StoredDocument:
    return StoredDocument(id=1, path="a.md", checksum=checksum, public=public)


class TestComputeChecksum:
    def test_known_digest(self) -> None:
        assert compute_checksum("") == "47DEQpj8HBSa+/TImW+5JCeuQeRkm5NMpJWZG3hSuFU="

    def test_different_content_differs(self) -> None:
        assert compute_checksum("a") != compute_checksum("b")

    def test_frontmatter_is_part_of_checksum(self) -> None:
        assert compute_checksum("---\nx: 1\n---\nBody") != compute_checksum("Body")


class TestClassify:
    @pytest.mark.parametrize(
        ("existing", "checksum", "is_public", "expected"),
        [
            (None, "abc", False, SyncState.NEW),
            (_stored("abc"), "abc", False, SyncState.UNCHANGED),
            (_stored("abc"), "abc", True, SyncState.ACCESS_CHANGED),
            (_stored("abc", public=True), "abc", False, SyncState.ACCESS_CHANGED),
            (_stored("abc"), "xyz", False, SyncState.STALE),
            (_stored("abc"), "xyz", True, SyncState.STALE),
            (_stored(None), "abc", False, SyncState.STALE),
        ],
    )
    def test_classify(self, existing, checksum, is_public, expected) -> None:
        assert classify(existing, checksum, is_public) is expected

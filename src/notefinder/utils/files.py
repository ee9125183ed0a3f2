"""Utility helpers for working with files."""

from __future__ import annotations

import posixpath
from pathlib import Path
from typing import Iterable, Iterator

MARKDOWN_SUFFIXES = (".md", ".markdown")


def iter_markdown_paths(root: Path, suffixes: Iterable[str] = MARKDOWN_SUFFIXES) -> Iterator[Path]:
    """Yield note files below ``root`` in sorted order, skipping hidden directories."""
    wanted = {suffix.lower() for suffix in suffixes}
    for item in sorted(root.rglob("*")):
        relative = item.relative_to(root)
        if any(part.startswith(".") for part in relative.parts):
            continue
        if item.is_file() and item.suffix.lower() in wanted:
            yield item


def normalize_path(path: str) -> str:
    """Normalise a vault-relative path to POSIX form without ``./`` or ``..`` segments."""
    return posixpath.normpath(path.replace("\\", "/"))

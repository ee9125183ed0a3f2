"""Corpus access and scanning."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Protocol, Sequence

from notefinder.models import SourceDocument
from notefinder.utils.files import MARKDOWN_SUFFIXES, iter_markdown_paths, normalize_path

LOGGER = logging.getLogger(__name__)


class Corpus(Protocol):
    """Source of documents handed to the engine by the host."""

    def list_documents(self) -> List[SourceDocument]: ...


class FileSystemCorpus:
    """Markdown notes stored below a vault directory."""

    def __init__(self, root: Path, *, suffixes: Iterable[str] = MARKDOWN_SUFFIXES) -> None:
        self.root = Path(root)
        self.suffixes = tuple(suffixes)

    def list_documents(self) -> List[SourceDocument]:
        if not self.root.is_dir():
            raise NotADirectoryError(f"Vault not found: {self.root}")
        documents = []
        for path in iter_markdown_paths(self.root, self.suffixes):
            relative = path.relative_to(self.root).as_posix()
            documents.append(SourceDocument(path=relative, read_content=_reader(path)))
        return documents


def _reader(path: Path):
    return lambda: path.read_text(encoding="utf-8")


def is_in_directories(path: str, directories: Iterable[str]) -> bool:
    """Return True if the normalised path starts with any normalised directory prefix."""
    normalized = normalize_path(path)
    for directory in directories:
        if not directory or not directory.strip():
            continue
        if normalized.startswith(normalize_path(directory.strip())):
            return True
    return False


def scan(corpus: Corpus, excluded_dirs: Sequence[str] = ()) -> List[SourceDocument]:
    """List the corpus documents to process, in order, minus excluded ones."""
    documents = [
        document
        for document in corpus.list_documents()
        if not is_in_directories(document.path, excluded_dirs)
    ]
    LOGGER.debug("Scanned %d document(s) (excluded dirs: %s)", len(documents), list(excluded_dirs))
    return documents

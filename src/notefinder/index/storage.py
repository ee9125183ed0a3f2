"""SQLite vector store."""

from __future__ import annotations

import functools
import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Protocol

import numpy as np

from notefinder.errors import FetchError
from notefinder.models import DocumentRef, SectionMatch, SectionRecord, StoredDocument


class VectorStore(Protocol):
    """Repository the engine talks to; every call is its own unit of work."""

    def find_by_path(self, path: str) -> StoredDocument | None: ...

    def upsert_by_path(
        self, path: str, *, checksum: str | None, meta: Dict[str, Any], public: bool
    ) -> StoredDocument: ...

    def update_public(self, path: str, public: bool) -> None: ...

    def update_checksum(self, path: str, checksum: str | None) -> None: ...

    def delete_by_path(self, path: str) -> bool: ...

    def list_all(self) -> List[StoredDocument]: ...

    def get_document(self, document_id: int) -> DocumentRef | None: ...

    def delete_sections(self, document_id: int) -> None: ...

    def insert_section(self, section: SectionRecord) -> None: ...

    def match(
        self,
        embedding: np.ndarray,
        *,
        match_threshold: float,
        match_count: int,
        min_content_length: int,
        public_only: bool = False,
    ) -> List[SectionMatch]: ...


def _store_errors(func):
    """Surface sqlite failures as FetchError."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except sqlite3.Error as exc:
            raise FetchError(f"{func.__name__} failed: {exc}") from exc

    return wrapper


def _to_document(row: sqlite3.Row) -> StoredDocument:
    return StoredDocument(
        id=row["id"], path=row["path"], checksum=row["checksum"], public=bool(row["public"])
    )


class SQLiteVectorStore:
    """Persistence layer for documents and their section embeddings."""

    def __init__(self, db_path: Path, *, dimension: int | None = None) -> None:
        self.db_path = Path(db_path)
        self.dimension = dimension
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._conn.execute("PRAGMA foreign_keys=ON;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    id INTEGER PRIMARY KEY,
                    path TEXT NOT NULL UNIQUE,
                    checksum TEXT,
                    meta TEXT NOT NULL DEFAULT '{}',
                    public INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE TRIGGER IF NOT EXISTS documents_updated
                AFTER UPDATE ON documents
                BEGIN
                    UPDATE documents SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.id;
                END;
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sections (
                    id INTEGER PRIMARY KEY,
                    document_id INTEGER NOT NULL,
                    content TEXT NOT NULL,
                    token_count INTEGER NOT NULL,
                    embedding BLOB NOT NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY(document_id) REFERENCES documents(id) ON DELETE CASCADE
                )
                """
            )
            conn.execute(
                """CREATE INDEX IF NOT EXISTS idx_sections_document_id
                    ON sections(document_id)
                """
            )

    # Document table

    @_store_errors
    def find_by_path(self, path: str) -> StoredDocument | None:
        row = self._conn.execute(
            "SELECT id, path, checksum, public FROM documents WHERE path = ?", (path,)
        ).fetchone()
        return _to_document(row) if row else None

    @_store_errors
    def upsert_by_path(
        self, path: str, *, checksum: str | None, meta: Dict[str, Any], public: bool
    ) -> StoredDocument:
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO documents(path, checksum, meta, public)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(path) DO UPDATE SET
                    checksum = excluded.checksum,
                    meta = excluded.meta,
                    public = excluded.public
                """,
                (path, checksum, json.dumps(meta, ensure_ascii=True, default=str), int(public)),
            )
            row = conn.execute(
                "SELECT id, path, checksum, public FROM documents WHERE path = ?", (path,)
            ).fetchone()
        return _to_document(row)

    @_store_errors
    def update_public(self, path: str, public: bool) -> None:
        with self.transaction() as conn:
            conn.execute("UPDATE documents SET public = ? WHERE path = ?", (int(public), path))

    @_store_errors
    def update_checksum(self, path: str, checksum: str | None) -> None:
        with self.transaction() as conn:
            conn.execute("UPDATE documents SET checksum = ? WHERE path = ?", (checksum, path))

    @_store_errors
    def delete_by_path(self, path: str) -> bool:
        with self.transaction() as conn:
            row = conn.execute("SELECT id FROM documents WHERE path = ?", (path,)).fetchone()
            if row is None:
                return False
            conn.execute("DELETE FROM sections WHERE document_id = ?", (row["id"],))
            conn.execute("DELETE FROM documents WHERE id = ?", (row["id"],))
        return True

    @_store_errors
    def list_all(self) -> List[StoredDocument]:
        rows = self._conn.execute(
            "SELECT id, path, checksum, public FROM documents ORDER BY path"
        ).fetchall()
        return [_to_document(row) for row in rows]

    @_store_errors
    def get_document(self, document_id: int) -> DocumentRef | None:
        row = self._conn.execute(
            "SELECT id, path FROM documents WHERE id = ?", (document_id,)
        ).fetchone()
        return DocumentRef(id=row["id"], path=row["path"]) if row else None

    # Section table

    @_store_errors
    def delete_sections(self, document_id: int) -> None:
        with self.transaction() as conn:
            conn.execute("DELETE FROM sections WHERE document_id = ?", (document_id,))

    @_store_errors
    def insert_section(self, section: SectionRecord) -> None:
        vector = np.asarray(section.embedding, dtype="float32")
        if self.dimension is not None and vector.shape[-1] != self.dimension:
            raise ValueError(
                f"Embedding dimension mismatch: expected {self.dimension}, got {vector.shape[-1]}"
            )
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO sections(document_id, content, token_count, embedding)
                VALUES (?, ?, ?, ?)
                """,
                (
                    section.document_id,
                    section.content,
                    section.token_count,
                    sqlite3.Binary(vector.tobytes()),
                ),
            )

    @_store_errors
    def count_sections(self, document_id: int) -> int:
        row = self._conn.execute(
            "SELECT COUNT(*) FROM sections WHERE document_id = ?", (document_id,)
        ).fetchone()
        return int(row[0])

    # Similarity search

    @_store_errors
    def match(
        self,
        embedding: np.ndarray,
        *,
        match_threshold: float,
        match_count: int,
        min_content_length: int,
        public_only: bool = False,
    ) -> List[SectionMatch]:
        """Sections at or above the cosine threshold, best first."""
        sql = """
            SELECT s.document_id AS document_id, s.content AS content, s.embedding AS embedding
            FROM sections s
            JOIN documents d ON d.id = s.document_id
            WHERE length(s.content) >= ?
        """
        if public_only:
            sql += " AND d.public = 1"
        rows = self._conn.execute(sql, (min_content_length,)).fetchall()
        if not rows or match_count < 1:
            return []

        query = np.asarray(embedding, dtype="float32")
        matrix = np.vstack([np.frombuffer(row["embedding"], dtype="float32") for row in rows])
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        norms[norms == 0] = 1.0
        scores = (matrix @ query) / norms

        candidates = np.flatnonzero(scores >= match_threshold)
        ranked = candidates[np.argsort(scores[candidates], kind="stable")[::-1]][:match_count]
        return [
            SectionMatch(
                document_id=rows[idx]["document_id"],
                content=rows[idx]["content"],
                similarity=float(scores[idx]),
            )
            for idx in ranked
        ]

    @_store_errors
    def list_documents(self) -> List[dict]:
        rows = self._conn.execute(
            """
            SELECT d.id, d.path, d.checksum, d.public, d.meta, d.updated_at,
                   COUNT(s.id) AS section_count,
                   COALESCE(SUM(s.token_count), 0) AS token_count
            FROM documents d
            LEFT JOIN sections s ON s.document_id = d.id
            GROUP BY d.id
            ORDER BY d.path
            """
        ).fetchall()
        return [
            {
                "id": row["id"],
                "path": row["path"],
                "checksum": row["checksum"],
                "public": bool(row["public"]),
                "meta": json.loads(row["meta"]) if row["meta"] else {},
                "updated_at": row["updated_at"],
                "section_count": row["section_count"],
                "token_count": row["token_count"],
            }
            for row in rows
        ]

    @_store_errors
    def get_stats(self) -> dict:
        documents = self._conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]
        sections = self._conn.execute("SELECT COUNT(*) FROM sections").fetchone()[0]
        pending = self._conn.execute(
            "SELECT COUNT(*) FROM documents WHERE checksum IS NULL"
        ).fetchone()[0]
        return {"document_count": documents, "section_count": sections, "pending_count": pending}

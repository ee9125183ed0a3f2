"""FastAPI application exposing search, answers and sync over HTTP."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import os
from pathlib import Path
from typing import Any, List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from notefinder import __version__
from notefinder.config import AppConfig, parse_dir_list
from notefinder.corpus import FileSystemCorpus
from notefinder.errors import (
    ConfigurationError,
    EmbeddingProviderError,
    FlaggedContentError,
    RetrievalError,
    SyncInProgressError,
)
from notefinder.index.answer import NO_ANSWER, Answerer
from notefinder.index.indexer import Indexer
from notefinder.index.search import Searcher
from notefinder.index.storage import SQLiteVectorStore
from notefinder.providers import build_chat_provider, build_embedder, build_moderation_gate

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="NoteFinder API", version=__version__)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class SearchPayload(BaseModel):
    query: str
    db: Path | None = None
    public_only: bool = True


class AskPayload(BaseModel):
    query: str
    db: Path | None = None
    public_only: bool = True


class SyncPayload(BaseModel):
    vault: str
    db: Path | None = None
    excluded_dirs: List[str] | None = None
    public_dirs: List[str] | None = None


def _load_config(db: Path | None) -> AppConfig:
    config = AppConfig.from_env()
    if db is not None:
        config = dataclasses.replace(config, db_path=db)
    return config


def _resolve_db_path(config: AppConfig) -> Path:
    return config.resolve_db_path(Path.cwd())


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _open_existing_store(config: AppConfig, dimension: int | None = None) -> SQLiteVectorStore:
    resolved_db = _resolve_db_path(config)
    if not resolved_db.exists():
        raise HTTPException(
            status_code=404,
            detail=f"Database not found at {resolved_db}. Sync a vault first.",
        )
    return SQLiteVectorStore(resolved_db, dimension=dimension)


def _build_searcher(config: AppConfig, store: SQLiteVectorStore, embedder) -> Searcher:
    gate = build_moderation_gate(config) if config.moderate_queries else None
    return Searcher(embedder, store, moderation=gate)


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.post("/search")
async def search_documents(payload: SearchPayload) -> dict[str, Any]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    config = _load_config(payload.db)
    try:
        embedder = build_embedder(config)
        store = _open_existing_store(config, embedder.dimension)
        try:
            searcher = _build_searcher(config, store, embedder)
            results = searcher.search(
                query, config.semantic_search, public_only=payload.public_only
            )
        finally:
            store.close()
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except FlaggedContentError as exc:
        raise HTTPException(status_code=400, detail="Flagged content") from exc
    except (RetrievalError, EmbeddingProviderError) as exc:
        LOGGER.error("Search failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {"results": [dataclasses.asdict(result) for result in results]}


@app.post("/ask")
async def ask_question(payload: AskPayload) -> dict[str, Any]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    config = _load_config(payload.db)
    try:
        embedder = build_embedder(config)
        chat = build_chat_provider(config)
        store = _open_existing_store(config, embedder.dimension)
        try:
            answerer = Answerer(_build_searcher(config, store, embedder), chat)
            answer = answerer.ask(query, config, public_only=payload.public_only)
        finally:
            store.close()
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except FlaggedContentError as exc:
        raise HTTPException(status_code=400, detail="Flagged content") from exc
    except (RetrievalError, EmbeddingProviderError) as exc:
        LOGGER.error("Answer failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return {"answer": None if answer is NO_ANSWER else answer}


@app.get("/documents")
async def list_documents(db: Path | None = None) -> dict[str, Any]:
    """List all indexed documents in the database."""
    config = _load_config(db)
    resolved_db = _resolve_db_path(config)
    if not resolved_db.exists():
        return {"documents": [], "stats": {"document_count": 0, "section_count": 0, "pending_count": 0}}

    store = SQLiteVectorStore(resolved_db)
    try:
        documents = store.list_documents()
        stats = store.get_stats()
    finally:
        store.close()
    return {"documents": documents, "stats": stats}


def _validate_vault(raw: str) -> Path:
    clean_path = raw.strip().replace("\r", "").replace("\n", "")
    if not clean_path:
        raise HTTPException(status_code=400, detail="No vault provided")
    if "\0" in clean_path:
        raise HTTPException(status_code=400, detail="Invalid path: contains null byte")

    vault = Path(os.path.realpath(os.path.expanduser(clean_path)))
    if not vault.exists():
        raise HTTPException(status_code=404, detail="Path not found: %s" % clean_path)
    if not vault.is_dir():
        raise HTTPException(status_code=400, detail="Path must be a directory: %s" % clean_path)
    return vault


def _run_sync_job(vault: Path, config: AppConfig, resolved_db: Path) -> dict[str, Any]:
    embedder = build_embedder(config)
    moderation = build_moderation_gate(config) if config.moderate_content else None
    store = SQLiteVectorStore(resolved_db, dimension=embedder.dimension)
    try:
        stats = Indexer(embedder, store, moderation=moderation).sync(FileSystemCorpus(vault), config)
    finally:
        store.close()

    return {
        "succeeded": stats.succeeded,
        "updated": stats.updated,
        "errored": stats.errored,
        "deleted": stats.deleted,
        "processed_paths": stats.processed_paths,
    }


@app.post("/sync")
async def sync_vault(payload: SyncPayload) -> dict[str, Any]:
    vault = _validate_vault(payload.vault)

    config = _load_config(payload.db)
    overrides: dict[str, Any] = {"vault_path": vault}
    if payload.excluded_dirs is not None:
        overrides["excluded_dirs"] = parse_dir_list(payload.excluded_dirs)
    if payload.public_dirs is not None:
        overrides["public_dirs"] = parse_dir_list(payload.public_dirs)
    config = dataclasses.replace(config, **overrides)

    resolved_db = _resolve_db_path(config)
    _ensure_db_parent(resolved_db)

    try:
        stats = await asyncio.to_thread(_run_sync_job, vault, config, resolved_db)
    except SyncInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    return {"status": "ok", "db": str(resolved_db), "stats": stats}

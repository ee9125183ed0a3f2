"""Command line interface for NoteFinder."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from notefinder.config import AppConfig, SearchSettings
from notefinder.corpus import FileSystemCorpus
from notefinder.errors import (
    ConfigurationError,
    FlaggedContentError,
    NoteFinderError,
    SyncInProgressError,
)
from notefinder.index.answer import NO_ANSWER, Answerer
from notefinder.index.indexer import Indexer
from notefinder.index.search import Searcher
from notefinder.index.storage import SQLiteVectorStore
from notefinder.providers import build_chat_provider, build_embedder, build_moderation_gate
from notefinder.utils.text import remove_markdown, truncate_string
from notefinder.web.app import app as web_app


console = Console()
app = typer.Typer(help="NoteFinder - semantic search and answers over your markdown notes")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _load_config(db: Optional[Path], **overrides) -> AppConfig:
    config = AppConfig.from_env()
    if db is not None:
        overrides["db_path"] = db
    overrides = {key: value for key, value in overrides.items() if value is not None}
    return dataclasses.replace(config, **overrides)


def _fail(message: str) -> NoReturn:
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(code=1)


@app.command()
def sync(
    vault: Path = typer.Argument(..., help="Vault directory with markdown notes.", resolve_path=True),
    exclude: List[str] = typer.Option([], "--exclude", "-x", help="Directory to skip (repeatable)"),
    public: List[str] = typer.Option([], "--public", "-p", help="Directory marked public (repeatable)"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    provider: Optional[str] = typer.Option(None, help="Embedding provider: local or openai"),
    model: Optional[str] = typer.Option(None, help="Sentence-transformer model name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Bring the index in line with the notes in VAULT."""
    _setup_logging(verbose)
    config = _load_config(
        db,
        vault_path=vault,
        excluded_dirs=tuple(exclude) or None,
        public_dirs=tuple(public) or None,
        embedding_provider=provider,
        model_name=model,
    )
    if not vault.is_dir():
        raise typer.BadParameter(f"Vault not found: {vault}")

    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)

    try:
        embedder = build_embedder(config)
        moderation = build_moderation_gate(config) if config.moderate_content else None
    except ConfigurationError as exc:
        _fail(str(exc))

    store = SQLiteVectorStore(resolved_db, dimension=embedder.dimension)
    indexer = Indexer(embedder, store, moderation=moderation)
    console.print(f"Syncing [bold]{vault}[/bold] into [bold]{resolved_db}[/bold]...")
    try:
        stats = indexer.sync(FileSystemCorpus(vault), config)
    except (ConfigurationError, SyncInProgressError) as exc:
        _fail(str(exc))
    finally:
        store.close()

    console.print(
        f"Succeeded: {stats.succeeded}, updated: {stats.updated}, "
        f"errored: {stats.errored}, deleted: {stats.deleted}"
    )
    if stats.errored:
        console.print("[yellow]Some documents failed; they will be retried on the next sync.[/yellow]")


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    threshold: Optional[float] = typer.Option(None, help="Minimum similarity (0-1)"),
    count: Optional[int] = typer.Option(None, help="Maximum number of results"),
    min_length: Optional[int] = typer.Option(None, help="Minimum section length in characters"),
    moderation: bool = typer.Option(True, "--moderation/--no-moderation", help="Moderate the query"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Execute a semantic search."""
    _setup_logging(verbose)
    config = _load_config(db)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        raise typer.BadParameter(f"Database not found: {resolved_db}")

    defaults = config.semantic_search
    try:
        settings = SearchSettings(
            match_threshold=defaults.match_threshold if threshold is None else threshold,
            match_count=defaults.match_count if count is None else count,
            min_content_length=defaults.min_content_length if min_length is None else min_length,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        embedder = build_embedder(config)
        gate = build_moderation_gate(config) if moderation and config.moderate_queries else None
    except ConfigurationError as exc:
        _fail(str(exc))

    store = SQLiteVectorStore(resolved_db, dimension=embedder.dimension)
    try:
        results = Searcher(embedder, store, moderation=gate).search(query, settings)
    except FlaggedContentError:
        _fail("Query was flagged by moderation.")
    except NoteFinderError as exc:
        _fail(str(exc))
    finally:
        store.close()

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Similarity")
    table.add_column("Note")
    table.add_column("Snippet")
    for result in results:
        snippet = remove_markdown(result.content).replace("\n", " ")
        table.add_row(f"{result.similarity:.4f}", result.path, truncate_string(snippet, 180))
    console.print(table)


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to answer from the notes"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    budget: Optional[int] = typer.Option(None, help="Token budget for the context"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Answer a question grounded in the most relevant notes."""
    _setup_logging(verbose)
    config = _load_config(db, token_budget=budget)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        raise typer.BadParameter(f"Database not found: {resolved_db}")

    try:
        embedder = build_embedder(config)
        gate = build_moderation_gate(config) if config.moderate_queries else None
        chat = build_chat_provider(config)
    except ConfigurationError as exc:
        _fail(str(exc))

    store = SQLiteVectorStore(resolved_db, dimension=embedder.dimension)
    try:
        answerer = Answerer(Searcher(embedder, store, moderation=gate), chat)
        answer = answerer.ask(question, config)
    except FlaggedContentError:
        _fail("Question was flagged by moderation.")
    except NoteFinderError as exc:
        _fail(str(exc))
    finally:
        store.close()

    if answer is NO_ANSWER:
        console.print("[yellow]No answer was returned.[/yellow]")
        return
    console.print(answer)


@app.command()
def documents(
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """List indexed notes."""
    config = _load_config(db)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        console.print("[yellow]Database not found, nothing indexed yet.[/yellow]")
        return

    store = SQLiteVectorStore(resolved_db)
    try:
        rows = store.list_documents()
    finally:
        store.close()

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Note")
    table.add_column("Public")
    table.add_column("Sections")
    table.add_column("Status")
    for row in rows:
        status = "indexed" if row["checksum"] else "pending"
        table.add_row(row["path"], "yes" if row["public"] else "no", str(row["section_count"]), status)
    console.print(table)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - optional extra
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    console.print(f"Starting HTTP API on http://{host}:{port}")
    uvicorn.run(web_app, host=host, port=port, reload=False, log_level="info")

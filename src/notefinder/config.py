"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from notefinder.embedding.encoder import DEFAULT_MODEL
from notefinder.errors import ConfigurationError

DEFAULT_PROMPT_PREAMBLE = (
    "You are a helpful assistant with access to the owner's notes. Given the "
    "following sections from the notes, answer the question using only that "
    "information. If you are unsure and the notes don't include relevant "
    'information, say "Sorry, I don\'t know the answer to this question :("'
)


def _get_default_db_path() -> Path:
    """Prefer a local data/ database when running from a checkout."""
    local_db = Path("data/notefinder.db")
    if local_db.exists():
        return local_db
    return Path.home() / ".local" / "share" / "notefinder" / "notefinder.db"


def parse_dir_list(raw: str | Iterable[str] | None) -> tuple[str, ...]:
    """Turn a comma separated setting (or a list of entries) into a tuple of directories."""
    if raw is None:
        return ()
    items = raw.split(",") if isinstance(raw, str) else raw
    return tuple(item.strip() for item in items if item and item.strip())


def _parse_flag(raw: str) -> bool:
    return raw.strip().lower() not in ("0", "false", "no", "off")


@dataclass(frozen=True, slots=True)
class SearchSettings:
    """Retrieval parameters, tuned separately for plain search and answer grounding."""

    match_threshold: float = 0.78
    match_count: int = 10
    min_content_length: int = 50

    def __post_init__(self) -> None:
        if not 0.0 <= self.match_threshold <= 1.0:
            raise ValueError("match_threshold must be between 0 and 1")
        if self.match_count < 1:
            raise ValueError("match_count must be positive")
        if self.min_content_length < 0:
            raise ValueError("min_content_length must not be negative")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Immutable settings snapshot handed to each sync or query call.

    Use ``dataclasses.replace`` to derive a modified snapshot.
    """

    db_path: Path = field(default_factory=_get_default_db_path)
    vault_path: Path | None = None
    excluded_dirs: tuple[str, ...] = ()
    public_dirs: tuple[str, ...] = ()
    embedding_provider: str = "local"
    model_name: str = DEFAULT_MODEL
    openai_embedding_model: str = "text-embedding-ada-002"
    chat_model: str = "gpt-3.5-turbo"
    openai_api_key: str | None = None
    semantic_search: SearchSettings = field(default_factory=SearchSettings)
    generative_search: SearchSettings = field(default_factory=SearchSettings)
    prompt_preamble: str = DEFAULT_PROMPT_PREAMBLE
    token_budget: int = 1500
    moderate_queries: bool = True
    moderate_content: bool = False

    def __post_init__(self) -> None:
        if self.embedding_provider not in ("local", "openai"):
            raise ValueError(f"Unknown embedding provider: {self.embedding_provider}")
        if self.token_budget < 1:
            raise ValueError("token_budget must be positive")

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path

    @property
    def needs_openai(self) -> bool:
        """Whether a sync pass talks to OpenAI."""
        return self.embedding_provider == "openai" or self.moderate_content

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        """Build a snapshot from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        kwargs: dict = {}
        if env.get("NOTEFINDER_DB"):
            kwargs["db_path"] = Path(env["NOTEFINDER_DB"])
        if env.get("NOTEFINDER_VAULT"):
            kwargs["vault_path"] = Path(env["NOTEFINDER_VAULT"])
        if env.get("NOTEFINDER_EMBEDDING_PROVIDER"):
            kwargs["embedding_provider"] = env["NOTEFINDER_EMBEDDING_PROVIDER"]
        if env.get("NOTEFINDER_MODEL"):
            kwargs["model_name"] = env["NOTEFINDER_MODEL"]
        if env.get("PROMPT_INTRO"):
            kwargs["prompt_preamble"] = env["PROMPT_INTRO"]
        if env.get("TOKEN_BUDGET"):
            kwargs["token_budget"] = int(env["TOKEN_BUDGET"])
        if env.get("NOTEFINDER_MODERATE_QUERIES"):
            kwargs["moderate_queries"] = _parse_flag(env["NOTEFINDER_MODERATE_QUERIES"])
        if env.get("NOTEFINDER_MODERATE_CONTENT"):
            kwargs["moderate_content"] = _parse_flag(env["NOTEFINDER_MODERATE_CONTENT"])

        excluded = parse_dir_list(env.get("NOTEFINDER_EXCLUDED_DIRS"))
        public = parse_dir_list(env.get("NOTEFINDER_PUBLIC_DIRS"))
        return cls(
            excluded_dirs=excluded,
            public_dirs=public,
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            semantic_search=_search_settings(env, ""),
            generative_search=_search_settings(env, "ASK_"),
            **kwargs,
        )


def _search_settings(env: Mapping[str, str], prefix: str) -> SearchSettings:
    """Read MATCH_* settings; prefixed names override the shared ones."""

    def lookup(name: str, default: str) -> str:
        return env.get(prefix + name) or env.get(name) or default

    return SearchSettings(
        match_threshold=float(lookup("MATCH_THRESHOLD", "0.78")),
        match_count=int(lookup("MATCH_COUNT", "10")),
        min_content_length=int(lookup("MIN_CONTENT_LENGTH", "50")),
    )


def require_openai_key(config: AppConfig) -> str:
    """Return the configured OpenAI key or fail before any work starts."""
    key = config.openai_api_key or os.environ.get("OPENAI_API_KEY")
    if not key:
        raise ConfigurationError("Missing OpenAI API key (set OPENAI_API_KEY)")
    return key

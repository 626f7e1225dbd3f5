"""Runtime configuration sourced from environment variables."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

LOGGER = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_OPENAI_EMBEDDING_MODEL = "text-embedding-3-small"


def _str_from_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _int_from_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _flag_from_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class Settings:
    """Resolved configuration for a docchat process."""

    database_url: str = "sqlite+aiosqlite:///./docchat.db"
    database_echo: bool = False
    embedding_provider: str = "mock"
    embedding_model: str = DEFAULT_OPENAI_EMBEDDING_MODEL
    embedding_dimensions: int = 1536
    embedding_device: str | None = None
    chat_provider: str = "mock"
    chat_model: str = "gpt-4o-mini"
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    chunk_max_tokens: int = 800
    chunk_overlap_tokens: int = 100
    retrieval_top_k: int = 5
    context_max_chars: int = 4000
    default_system_prompt: str = DEFAULT_SYSTEM_PROMPT
    log_dir: str = "logs"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            database_url=_str_from_env("DATABASE_URL", defaults.database_url),
            database_echo=_flag_from_env("DATABASE_ECHO", defaults.database_echo),
            embedding_provider=_str_from_env("EMBEDDING_PROVIDER", defaults.embedding_provider).lower(),
            embedding_model=_str_from_env("EMBEDDING_MODEL", defaults.embedding_model),
            embedding_dimensions=_int_from_env("EMBEDDING_DIMENSIONS", defaults.embedding_dimensions),
            embedding_device=os.getenv("EMBEDDING_DEVICE") or None,
            chat_provider=_str_from_env("CHAT_PROVIDER", defaults.chat_provider).lower(),
            chat_model=_str_from_env("CHAT_MODEL", defaults.chat_model),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            chunk_max_tokens=_int_from_env("CHUNK_MAX_TOKENS", defaults.chunk_max_tokens),
            chunk_overlap_tokens=_int_from_env("CHUNK_OVERLAP_TOKENS", defaults.chunk_overlap_tokens),
            retrieval_top_k=_int_from_env("RETRIEVAL_TOP_K", defaults.retrieval_top_k),
            context_max_chars=_int_from_env("CONTEXT_MAX_CHARS", defaults.context_max_chars),
            default_system_prompt=_str_from_env("DEFAULT_SYSTEM_PROMPT", defaults.default_system_prompt),
            log_dir=_str_from_env("LOG_DIR", defaults.log_dir),
            log_level=_str_from_env("LOG_LEVEL", defaults.log_level).upper(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Return the cached process settings."""

    return Settings.from_env()


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for testing)."""

    get_settings.cache_clear()  # type: ignore[attr-defined]

"""Shared fixtures: in-memory SQLite stacks and a configured FastAPI app."""
from __future__ import annotations

from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import AsyncIterator, Optional

import pytest

from docchat.config import reset_settings_cache
from docchat.dependencies import reset_dependencies
from docchat.embeddings import EmbeddingClient
from docchat.ingest import ChunkingConfig, TextChunker
from docchat.providers import EmbeddingProvider, MockEmbeddingProvider
from docchat.services import DocumentVectorizationService, RetrievalService
from docchat.vectorstore import Database, VectorStore

MEMORY_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def make_stack():
    """Return an async context manager building a fresh in-memory stack.

    Each stack owns its own database, so it must be entered inside the same
    ``asyncio.run`` call that uses it.
    """

    @asynccontextmanager
    async def _factory(
        dimension: int = 8,
        provider: Optional[EmbeddingProvider] = None,
        chunking: Optional[ChunkingConfig] = None,
    ) -> AsyncIterator[SimpleNamespace]:
        database = Database(MEMORY_URL)
        await database.create_all()
        store = VectorStore(database, dimension=dimension)
        embedding_client = EmbeddingClient(provider or MockEmbeddingProvider(dimension=dimension))
        try:
            yield SimpleNamespace(
                database=database,
                store=store,
                embedding_client=embedding_client,
                vectorization=DocumentVectorizationService(
                    store=store,
                    embedding_client=embedding_client,
                    chunker=TextChunker(chunking) if chunking else None,
                ),
                retrieval=RetrievalService(store=store, embedding_client=embedding_client),
            )
        finally:
            await database.dispose()

    return _factory


@pytest.fixture
def app_env(monkeypatch, tmp_path):
    """Point the process configuration at an in-memory database and temp logs."""

    monkeypatch.setenv("DATABASE_URL", MEMORY_URL)
    monkeypatch.setenv("EMBEDDING_PROVIDER", "mock")
    monkeypatch.setenv("EMBEDDING_DIMENSIONS", "8")
    monkeypatch.setenv("CHAT_PROVIDER", "mock")
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    reset_settings_cache()
    reset_dependencies()
    yield tmp_path
    reset_settings_cache()
    reset_dependencies()

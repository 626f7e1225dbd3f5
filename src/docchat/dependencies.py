"""Process-wide component wiring exposed as FastAPI dependencies."""
from __future__ import annotations

from functools import lru_cache

from docchat.chat import ChatOrchestrator
from docchat.config import get_settings
from docchat.embeddings import EmbeddingClient
from docchat.ingest import ChunkingConfig, TextChunker
from docchat.providers import ChatModel, build_chat_model, build_embedding_provider
from docchat.services import DocumentVectorizationService, RetrievalService
from docchat.sessions import SessionManager
from docchat.vectorstore import Database, VectorStore


@lru_cache()
def get_database() -> Database:
    settings = get_settings()
    return Database(settings.database_url, echo=settings.database_echo)


@lru_cache()
def get_vector_store() -> VectorStore:
    return VectorStore(get_database(), dimension=get_settings().embedding_dimensions)


@lru_cache()
def get_embedding_client() -> EmbeddingClient:
    return EmbeddingClient(build_embedding_provider(get_settings()))


@lru_cache()
def get_vectorization_service() -> DocumentVectorizationService:
    settings = get_settings()
    chunker = TextChunker(
        ChunkingConfig(
            max_tokens=settings.chunk_max_tokens,
            overlap_tokens=settings.chunk_overlap_tokens,
        )
    )
    return DocumentVectorizationService(
        store=get_vector_store(),
        embedding_client=get_embedding_client(),
        chunker=chunker,
    )


@lru_cache()
def get_retrieval_service() -> RetrievalService:
    return RetrievalService(store=get_vector_store(), embedding_client=get_embedding_client())


@lru_cache()
def get_chat_model() -> ChatModel:
    return build_chat_model(get_settings())


@lru_cache()
def get_session_manager() -> SessionManager:
    return SessionManager(get_settings().default_system_prompt)


@lru_cache()
def get_chat_orchestrator() -> ChatOrchestrator:
    settings = get_settings()
    return ChatOrchestrator(
        sessions=get_session_manager(),
        retrieval=get_retrieval_service(),
        chat_model=get_chat_model(),
        top_k=settings.retrieval_top_k,
        context_max_chars=settings.context_max_chars,
    )


def reset_dependencies() -> None:
    """Drop every cached component so the next lookup rebuilds it."""

    for factory in (
        get_chat_orchestrator,
        get_session_manager,
        get_chat_model,
        get_retrieval_service,
        get_vectorization_service,
        get_embedding_client,
        get_vector_store,
        get_database,
    ):
        factory.cache_clear()

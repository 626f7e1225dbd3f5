"""Embedding providers and chat models, selected by configuration."""
from __future__ import annotations

from docchat.config import DEFAULT_OPENAI_EMBEDDING_MODEL, Settings

from .base import ChatModel, EmbeddingProvider
from .mock_embedding import MockEmbeddingProvider
from .mock_llm import MockChatModel

__all__ = [
    "ChatModel",
    "EmbeddingProvider",
    "MockChatModel",
    "MockEmbeddingProvider",
    "build_chat_model",
    "build_embedding_provider",
]


def build_embedding_provider(settings: Settings) -> EmbeddingProvider:
    """Instantiate the embedding provider named by ``EMBEDDING_PROVIDER``."""

    backend = settings.embedding_provider
    if backend == "mock":
        return MockEmbeddingProvider(dimension=settings.embedding_dimensions)
    if backend in {"sentence-transformers", "sentence_transformers"}:
        from .sentence_transformer import DEFAULT_MODEL_NAME, SentenceTransformerEmbeddingProvider

        model_name = settings.embedding_model
        if model_name == DEFAULT_OPENAI_EMBEDDING_MODEL:
            model_name = DEFAULT_MODEL_NAME
        return SentenceTransformerEmbeddingProvider(model_name, device=settings.embedding_device)
    if backend == "openai":
        from .openai_provider import OpenAIEmbeddingProvider

        return OpenAIEmbeddingProvider(
            settings.embedding_model,
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
        )
    raise ValueError(f"Unsupported EMBEDDING_PROVIDER backend: {backend!r}")


def build_chat_model(settings: Settings) -> ChatModel:
    """Instantiate the chat model named by ``CHAT_PROVIDER``."""

    backend = settings.chat_provider
    if backend == "mock":
        return MockChatModel()
    if backend == "openai":
        from .openai_provider import OpenAIChatModel

        return OpenAIChatModel(api_key=settings.openai_api_key, base_url=settings.openai_base_url)
    raise ValueError(f"Unsupported CHAT_PROVIDER backend: {backend!r}")

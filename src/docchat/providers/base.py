"""Base provider interfaces for embeddings and chat models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, List, Sequence

from docchat.models import ChatMessage

__all__ = ["ChatModel", "EmbeddingProvider"]


class EmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    model_name: str = "unknown"

    @abstractmethod
    async def encode(self, texts: Sequence[str]) -> List[List[float]]:
        """Encode the provided texts into embeddings, one vector per text."""


class ChatModel(ABC):
    """Abstract interface for streaming chat-completion models."""

    @abstractmethod
    def stream(
        self,
        messages: Sequence[ChatMessage],
        *,
        model_id: str,
        temperature: float,
        max_tokens: int,
    ) -> AsyncIterator[str]:
        """Yield response fragments for the conversation in *messages*."""

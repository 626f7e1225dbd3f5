"""OpenAI-backed embedding provider and streaming chat model."""
from __future__ import annotations

import logging
from typing import AsyncIterator, List, Optional, Sequence

from openai import AsyncOpenAI

from docchat.config import DEFAULT_OPENAI_EMBEDDING_MODEL
from docchat.models import ChatMessage

from .base import ChatModel, EmbeddingProvider

LOGGER = logging.getLogger(__name__)


def _build_client(api_key: Optional[str], base_url: Optional[str]) -> AsyncOpenAI:
    return AsyncOpenAI(api_key=api_key, base_url=base_url or None)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Batch embeddings through the OpenAI embeddings endpoint."""

    def __init__(
        self,
        model_name: str = DEFAULT_OPENAI_EMBEDDING_MODEL,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.model_name = model_name
        self._client = client or _build_client(api_key, base_url)

    async def encode(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        response = await self._client.embeddings.create(model=self.model_name, input=list(texts))
        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]


class OpenAIChatModel(ChatModel):
    """Stream chat completions from OpenAI (or any compatible endpoint)."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self._client = client or _build_client(api_key, base_url)

    async def stream(
        self,
        messages: Sequence[ChatMessage],
        *,
        model_id: str,
        temperature: float,
        max_tokens: int,
    ) -> AsyncIterator[str]:
        payload = [{"role": message.role.value, "content": message.content} for message in messages]
        LOGGER.debug("Opening OpenAI stream for model %s with %s messages", model_id, len(payload))
        stream = await self._client.chat.completions.create(
            model=model_id,
            messages=payload,
            temperature=temperature,
            max_tokens=max_tokens,
            stream=True,
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                yield content

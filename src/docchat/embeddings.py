"""Embedding client: one batched provider call per request, with shape checks."""
from __future__ import annotations

import logging
import time
from typing import List, Sequence

from docchat.errors import DimensionMismatch, EmbeddingProviderError, NoEmbeddingsReturned
from docchat.providers.base import EmbeddingProvider
from docchat.telemetry import emit_embeddings_event

LOGGER = logging.getLogger(__name__)


class EmbeddingClient:
    """Send passage texts to an :class:`EmbeddingProvider` in a single batch."""

    def __init__(self, provider: EmbeddingProvider) -> None:
        self.provider = provider

    @property
    def model_name(self) -> str:
        return getattr(self.provider, "model_name", type(self.provider).__name__)

    async def generate_embeddings(self, texts: Sequence[str]) -> List[List[float]]:
        """Return one vector per text, in input order.

        Provider failures surface as :class:`EmbeddingProviderError`; retries
        belong to the provider transport, not to this client.
        """

        batch = list(texts)
        if not batch:
            return []

        started = time.perf_counter()
        try:
            vectors = list(await self.provider.encode(batch) or [])
        except Exception as error:
            emit_embeddings_event(
                model=self.model_name,
                count=len(batch),
                duration_ms=(time.perf_counter() - started) * 1000.0,
                errors=[str(error)],
            )
            raise EmbeddingProviderError(
                f"Embedding provider {self.model_name!r} failed", cause=error
            ) from error

        emit_embeddings_event(
            model=self.model_name,
            count=len(batch),
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        if vectors and len(vectors) != len(batch):
            raise EmbeddingProviderError(
                f"Embedding provider returned {len(vectors)} vectors for {len(batch)} inputs"
            )
        return [list(map(float, vector)) for vector in vectors]


def validate_embeddings(vectors: Sequence[Sequence[float]], dimension: int) -> None:
    """Reject empty batches and vectors whose length is not ``dimension``."""

    if not vectors:
        raise NoEmbeddingsReturned("Embedding service returned no vectors")
    for vector in vectors:
        if len(vector) != dimension:
            LOGGER.error("Embedding dimension %s does not match configured %s", len(vector), dimension)
            raise DimensionMismatch(expected=dimension, actual=len(vector))

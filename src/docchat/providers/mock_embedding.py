"""Mock embedding provider for tests and offline development."""
from __future__ import annotations

import hashlib
import random
from typing import List, Sequence

from .base import EmbeddingProvider


class MockEmbeddingProvider(EmbeddingProvider):
    """Return deterministic embedding vectors derived from each text."""

    model_name = "mock-embedding"

    def __init__(self, dimension: int = 8) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be a positive integer")
        self.dimension = dimension

    async def encode(self, texts: Sequence[str]) -> List[List[float]]:
        vectors: List[List[float]] = []
        for text in texts:
            seed = hashlib.sha256(text.encode("utf-8")).hexdigest()
            rng = random.Random(seed)
            vectors.append([(rng.random() * 2.0) - 1.0 for _ in range(self.dimension)])
        return vectors

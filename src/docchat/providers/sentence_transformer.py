"""Embedding provider backed by a local Sentence Transformers model."""
from __future__ import annotations

import logging
import threading
from typing import List, Optional, Sequence

from fastapi.concurrency import run_in_threadpool

from .base import EmbeddingProvider

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "sentence-transformers/all-MiniLM-L6-v2"


class SentenceTransformerEmbeddingProvider(EmbeddingProvider):
    """Lazy-loading wrapper around ``SentenceTransformer``; encodes off the event loop."""

    def __init__(self, model_name_or_path: str = DEFAULT_MODEL_NAME, *, device: Optional[str] = None) -> None:
        self.model_name = model_name_or_path
        self._device = device
        self._model = None
        self._lock = threading.Lock()

    def _load(self):
        with self._lock:
            if self._model is None:
                from sentence_transformers import SentenceTransformer

                LOGGER.info("Loading sentence-transformers model %s", self.model_name)
                self._model = SentenceTransformer(self.model_name, device=self._device)
            return self._model

    def _encode_sync(self, texts: Sequence[str]) -> List[List[float]]:
        embeddings = self._load().encode(
            list(texts),
            convert_to_numpy=True,
            show_progress_bar=False,
            normalize_embeddings=False,
        )
        return embeddings.tolist()

    async def encode(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        return await run_in_threadpool(self._encode_sync, texts)

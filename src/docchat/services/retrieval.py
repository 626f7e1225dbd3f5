"""Query-time retrieval over the stored chunks."""
from __future__ import annotations

import logging
import time
from typing import List

from docchat.embeddings import EmbeddingClient
from docchat.errors import NoEmbeddingsReturned
from docchat.models import RetrievedChunk
from docchat.telemetry import emit_exception, emit_retriever_event
from docchat.vectorstore import VectorStore

LOGGER = logging.getLogger(__name__)

DEFAULT_TOP_K = 5


class RetrievalService:
    """Embed a query with the ingestion model and rank stored chunks."""

    def __init__(self, *, store: VectorStore, embedding_client: EmbeddingClient) -> None:
        self.store = store
        self.embedding_client = embedding_client

    async def retrieve(self, query: str, top_k: int = DEFAULT_TOP_K) -> List[RetrievedChunk]:
        if not query or not query.strip() or top_k <= 0:
            return []

        started = time.perf_counter()
        try:
            vectors = await self.embedding_client.generate_embeddings([query])
            if not vectors:
                raise NoEmbeddingsReturned("Embedding service returned no vector for the query")
            results = await self.store.retrieve(vectors[0], top_k)
        except Exception as error:
            emit_exception(module=f"{__name__}.retrieve", error=error)
            raise

        LOGGER.debug("Query returned %d of %d requested chunks", len(results), top_k)
        emit_retriever_event(
            query=query,
            top_k=top_k,
            results=[
                {
                    "document_id": str(result.document_id),
                    "chunk_index": result.chunk_index,
                    "score": round(result.score, 6),
                }
                for result in results
            ],
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return results

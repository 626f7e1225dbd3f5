"""Relational vector store: documents, raw uploads and embedded chunks."""
from __future__ import annotations

import logging
import math
import time
import uuid
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from pgvector.sqlalchemy import Vector
from sqlalchemy import Float, Select, bindparam, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from docchat.embeddings import validate_embeddings
from docchat.errors import DimensionMismatch, InvalidInput, StorageError
from docchat.models import RetrievedChunk, VectorizationResult
from docchat.telemetry import emit_vectorstore_event

from .database import Database
from .entities import RagChunk, RagDocument, StoredDocument

LOGGER = logging.getLogger(__name__)


def cosine_distances(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Return ``1 - cos(row, query)`` for every row, clipped to ``[0, 2]``.

    Zero-norm rows or queries have similarity 0, i.e. distance 1.
    """

    row_norms = np.linalg.norm(matrix, axis=1)
    query_norm = float(np.linalg.norm(query))
    denominators = row_norms * query_norm
    dots = matrix @ query
    similarities = np.divide(
        dots,
        denominators,
        out=np.zeros_like(dots, dtype=np.float64),
        where=denominators > 0,
    )
    return np.clip(1.0 - similarities, 0.0, 2.0)


class VectorStore:
    """Persist documents with their chunk embeddings and rank chunks by cosine distance."""

    def __init__(self, database: Database, *, dimension: int) -> None:
        if dimension <= 0:
            raise ValueError("Embedding dimension must be positive")
        self.database = database
        self.dimension = dimension

    async def add_document(
        self,
        *,
        file_name: str,
        content: bytes,
        chunks: Sequence[str],
        embeddings: Sequence[Sequence[float]],
        title: Optional[str] = None,
        source_path: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> VectorizationResult:
        """Write the document, its raw bytes and its chunks in one transaction."""

        if len(chunks) != len(embeddings):
            raise InvalidInput(
                f"Chunk count {len(chunks)} does not match embedding count {len(embeddings)}"
            )
        validate_embeddings(embeddings, self.dimension)

        resolved_title = title.strip() if title and title.strip() else file_name
        document = RagDocument(
            doc_id=uuid.uuid4(),
            title=resolved_title,
            source_path=source_path or file_name,
            doc_metadata=dict(metadata) if metadata else None,
        )
        document.stored_document = StoredDocument(
            id=uuid.uuid4(),
            file_name=file_name,
            size_bytes=len(content),
            content=bytes(content),
        )
        document.chunks = [
            RagChunk(chunk_index=index, content=text, embedding=list(vector))
            for index, (text, vector) in enumerate(zip(chunks, embeddings))
        ]

        started = time.perf_counter()
        try:
            async with self.database.session() as session:
                async with session.begin():
                    session.add(document)
        except SQLAlchemyError as error:
            emit_vectorstore_event(
                "vectorstore.add",
                count=len(chunks),
                duration_ms=(time.perf_counter() - started) * 1000.0,
                error=error,
            )
            raise StorageError(f"Failed to store document {file_name!r}", cause=error) from error

        emit_vectorstore_event(
            "vectorstore.add",
            count=len(chunks),
            duration_ms=(time.perf_counter() - started) * 1000.0,
            document_id=str(document.doc_id),
        )
        return VectorizationResult(
            document_id=document.doc_id,
            title=resolved_title,
            chunk_count=len(chunks),
        )

    async def retrieve(self, query_vector: Sequence[float], top_k: int) -> List[RetrievedChunk]:
        """Return up to ``top_k`` chunks ordered by ascending cosine distance.

        PostgreSQL ranks inside the database through pgvector's ``<=>``
        operator. Other backends load the stored vectors and rank them with
        numpy.
        """

        if top_k <= 0:
            return []
        if len(query_vector) != self.dimension:
            raise DimensionMismatch(expected=self.dimension, actual=len(query_vector))

        started = time.perf_counter()
        if self.database.dialect_name == "postgresql":
            results = await self._rank_in_database(query_vector, top_k)
        else:
            results = await self._rank_in_memory(query_vector, top_k)

        emit_vectorstore_event(
            "vectorstore.query",
            count=len(results),
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return results

    def ranking_statement(self, query_vector: Sequence[float], top_k: int) -> Select:
        """Nearest-neighbour query for pgvector, ordered and limited in SQL."""

        query = bindparam(
            "query_vector",
            value=[float(component) for component in query_vector],
            type_=Vector(self.dimension),
        )
        distance = RagChunk.embedding.op("<=>", return_type=Float)(query).label("distance")
        return (
            select(RagChunk.doc_id, RagChunk.chunk_index, RagChunk.content, distance)
            .order_by(distance, RagChunk.chunk_id)
            .limit(top_k)
        )

    async def _rank_in_database(self, query_vector: Sequence[float], top_k: int) -> List[RetrievedChunk]:
        rows = await self._fetch(self.ranking_statement(query_vector, top_k))
        return [
            RetrievedChunk(
                document_id=row.doc_id,
                chunk_index=row.chunk_index,
                content=row.content,
                # pgvector yields NaN for zero-norm vectors.
                score=1.0 if math.isnan(row.distance) else float(row.distance),
            )
            for row in rows
        ]

    async def _rank_in_memory(self, query_vector: Sequence[float], top_k: int) -> List[RetrievedChunk]:
        statement = select(
            RagChunk.doc_id, RagChunk.chunk_index, RagChunk.content, RagChunk.embedding
        ).order_by(RagChunk.chunk_id)
        rows = await self._fetch(statement)
        if not rows:
            return []

        for row in rows:
            if len(row.embedding) != self.dimension:
                LOGGER.error(
                    "Stored chunk %s/%s has %s dimensions, store is configured for %s",
                    row.doc_id,
                    row.chunk_index,
                    len(row.embedding),
                    self.dimension,
                )
                raise DimensionMismatch(expected=self.dimension, actual=len(row.embedding))

        matrix = np.asarray([row.embedding for row in rows], dtype=np.float64)
        query = np.asarray(query_vector, dtype=np.float64)
        distances = cosine_distances(matrix, query)
        order = np.argsort(distances, kind="stable")[:top_k]
        return [
            RetrievedChunk(
                document_id=rows[position].doc_id,
                chunk_index=rows[position].chunk_index,
                content=rows[position].content,
                score=float(distances[position]),
            )
            for position in order
        ]

    async def _fetch(self, statement: Select) -> List[Any]:
        try:
            async with self.database.session() as session:
                return list((await session.execute(statement)).all())
        except SQLAlchemyError as error:
            emit_vectorstore_event("vectorstore.query", count=0, error=error)
            raise StorageError("Vector store query failed", cause=error) from error

    async def delete_document(self, doc_id: uuid.UUID) -> bool:
        """Delete a document with its chunks and raw bytes. ``False`` when absent."""

        statement = (
            select(RagDocument)
            .where(RagDocument.doc_id == doc_id)
            .options(selectinload(RagDocument.chunks), selectinload(RagDocument.stored_document))
        )
        try:
            async with self.database.session() as session:
                async with session.begin():
                    document = (await session.execute(statement)).scalar_one_or_none()
                    if document is None:
                        return False
                    await session.delete(document)
        except SQLAlchemyError as error:
            emit_vectorstore_event("vectorstore.delete", count=0, document_id=str(doc_id), error=error)
            raise StorageError(f"Failed to delete document {doc_id}", cause=error) from error

        emit_vectorstore_event("vectorstore.delete", count=1, document_id=str(doc_id))
        LOGGER.info("Deleted document %s", doc_id)
        return True

    async def get_document(self, doc_id: uuid.UUID) -> Optional[RagDocument]:
        try:
            async with self.database.session() as session:
                return await session.get(RagDocument, doc_id)
        except SQLAlchemyError as error:
            raise StorageError(f"Failed to load document {doc_id}", cause=error) from error

    async def list_documents(self) -> List[RagDocument]:
        statement = select(RagDocument).order_by(RagDocument.created_at, RagDocument.title)
        try:
            async with self.database.session() as session:
                return list((await session.execute(statement)).scalars().all())
        except SQLAlchemyError as error:
            raise StorageError("Failed to list documents", cause=error) from error

    async def count_documents(self) -> int:
        return await self._count(RagDocument.doc_id)

    async def count_chunks(self) -> int:
        return await self._count(RagChunk.chunk_id)

    async def count_stored_documents(self) -> int:
        return await self._count(StoredDocument.id)

    async def _count(self, column: Any) -> int:
        try:
            async with self.database.session() as session:
                return int((await session.execute(select(func.count(column)))).scalar_one())
        except SQLAlchemyError as error:
            raise StorageError("Failed to count rows", cause=error) from error


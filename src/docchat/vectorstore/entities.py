"""ORM entities for documents, their raw uploads and embedded chunks."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from pgvector.sqlalchemy import Vector
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from docchat.config import get_settings

# Column width of ``rag_chunks.embedding`` on PostgreSQL.
EMBEDDING_DIMENSION = get_settings().embedding_dimensions


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for every vector store table."""


class EmbeddingVector(TypeDecorator):
    """Fixed-width pgvector column on PostgreSQL, JSON float array elsewhere."""

    impl = JSON
    cache_ok = True

    def __init__(self, dimension: int) -> None:
        super().__init__()
        self.dimension = dimension

    def load_dialect_impl(self, dialect: Any) -> Any:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(Vector(self.dimension))
        return dialect.type_descriptor(JSON())

    def process_bind_param(self, value: Any, dialect: Any) -> Optional[List[float]]:
        if value is None:
            return None
        return [float(component) for component in value]

    def process_result_value(self, value: Any, dialect: Any) -> Optional[List[float]]:
        if value is None:
            return None
        return [float(component) for component in value]


class RagDocument(Base):
    __tablename__ = "rag_documents"

    doc_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    source_path: Mapped[str] = mapped_column(Text, nullable=False)
    # ``metadata`` is reserved on declarative classes.
    doc_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    chunks: Mapped[List["RagChunk"]] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="RagChunk.chunk_index",
    )
    stored_document: Mapped[Optional["StoredDocument"]] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        uselist=False,
    )


class StoredDocument(Base):
    __tablename__ = "stored_documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    doc_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("rag_documents.doc_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    file_name: Mapped[str] = mapped_column(String(512), nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    content: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    document: Mapped[RagDocument] = relationship(back_populates="stored_document")


class RagChunk(Base):
    __tablename__ = "rag_chunks"
    __table_args__ = (
        UniqueConstraint("doc_id", "chunk_index", name="uq_rag_chunks_doc_chunk"),
        Index("ix_rag_chunks_doc_id", "doc_id"),
    )

    # SQLite only auto-increments INTEGER primary keys.
    chunk_id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    doc_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("rag_documents.doc_id", ondelete="CASCADE"),
        nullable=False,
    )
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[List[float]] = mapped_column(
        EmbeddingVector(EMBEDDING_DIMENSION), nullable=False
    )

    document: Mapped[RagDocument] = relationship(back_populates="chunks")

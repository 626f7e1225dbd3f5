"""Vector persistence: async database wiring, ORM entities and the store."""
from __future__ import annotations

from .database import Database
from .entities import Base, RagChunk, RagDocument, StoredDocument
from .store import VectorStore, cosine_distances

__all__ = [
    "Base",
    "Database",
    "RagChunk",
    "RagDocument",
    "StoredDocument",
    "VectorStore",
    "cosine_distances",
]

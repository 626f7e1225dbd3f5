"""Application services built on the ingestion and storage layers."""
from __future__ import annotations

from .retrieval import RetrievalService
from .vectorization import DocumentVectorizationService

__all__ = ["DocumentVectorizationService", "RetrievalService"]

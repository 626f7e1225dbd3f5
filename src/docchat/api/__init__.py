"""HTTP and WebSocket routers."""
from __future__ import annotations

from .chat import router as chat_router
from .retrieval import router as retrieval_router
from .vectorization import router as vectorization_router

__all__ = ["chat_router", "retrieval_router", "vectorization_router"]

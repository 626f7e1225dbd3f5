"""Plain data containers shared across the ingestion and chat layers."""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum


class ChatRole(str, Enum):
    """Role attached to every conversation message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """A single role-tagged message in a conversation history."""

    role: ChatRole
    content: str

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(ChatRole.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(ChatRole.USER, content)

    @classmethod
    def assistant(cls, content: str) -> "ChatMessage":
        return cls(ChatRole.ASSISTANT, content)


@dataclass(frozen=True, slots=True)
class RetrievedChunk:
    """A stored chunk ranked against a query; smaller score is closer."""

    document_id: uuid.UUID
    chunk_index: int
    content: str
    score: float


@dataclass(frozen=True, slots=True)
class VectorizationResult:
    """Structured result returned from a successful ingestion."""

    document_id: uuid.UUID
    title: str
    chunk_count: int

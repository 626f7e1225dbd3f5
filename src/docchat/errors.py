"""Exception taxonomy shared by ingestion, retrieval and chat."""
from __future__ import annotations


class DocChatError(RuntimeError):
    """Base class for every error raised by the docchat core."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class InvalidInput(DocChatError):
    """Raised for empty or unreadable content and blank names or paths."""


class UnsupportedFormat(DocChatError):
    """Raised when no registered extractor handles a file name."""


class NoExtractableContent(DocChatError):
    """Raised when extraction produces blank text."""


class NoEmbeddingsReturned(DocChatError):
    """Raised when the embedding provider returns an empty vector list."""


class DimensionMismatch(DocChatError):
    """Raised when an embedding length differs from the configured dimension."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Embedding dimension mismatch: got {actual}, expected {expected}. "
            "Check your embedding model vs DB schema."
        )
        self.expected = expected
        self.actual = actual


class EmbeddingProviderError(DocChatError):
    """Raised when the embedding provider fails; never retried here."""


class StorageError(DocChatError):
    """Raised when the vector store cannot read or write."""


__all__ = [
    "DimensionMismatch",
    "DocChatError",
    "EmbeddingProviderError",
    "InvalidInput",
    "NoEmbeddingsReturned",
    "NoExtractableContent",
    "StorageError",
    "UnsupportedFormat",
]

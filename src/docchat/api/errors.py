"""Translate core errors into HTTP responses."""
from __future__ import annotations

from fastapi import HTTPException

from docchat.errors import (
    DimensionMismatch,
    DocChatError,
    EmbeddingProviderError,
    InvalidInput,
    NoEmbeddingsReturned,
    NoExtractableContent,
    StorageError,
    UnsupportedFormat,
)

_STATUS_CODES: tuple[tuple[type[DocChatError], int], ...] = (
    (InvalidInput, 400),
    (NoExtractableContent, 400),
    (UnsupportedFormat, 415),
    (NoEmbeddingsReturned, 502),
    (DimensionMismatch, 502),
    (EmbeddingProviderError, 502),
    (StorageError, 503),
)


def status_code_for(error: DocChatError) -> int:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


def to_http_exception(error: DocChatError) -> HTTPException:
    return HTTPException(status_code=status_code_for(error), detail=str(error))

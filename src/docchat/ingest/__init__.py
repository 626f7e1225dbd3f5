"""Ingestion building blocks: extraction, normalisation and chunking."""
from __future__ import annotations

from .chunking import ChunkingConfig, TextChunker, chunk_by_approx_tokens
from .extractors import (
    DocxExtractor,
    ExtractorRegistry,
    PDFExtractor,
    PlainTextExtractor,
    TextExtractor,
)
from .language import LanguageDetector
from .normalization import normalize_text

__all__ = [
    "ChunkingConfig",
    "DocxExtractor",
    "ExtractorRegistry",
    "LanguageDetector",
    "PDFExtractor",
    "PlainTextExtractor",
    "TextChunker",
    "TextExtractor",
    "chunk_by_approx_tokens",
    "normalize_text",
]

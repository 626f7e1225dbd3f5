"""Chunking utilities for breaking text into embedding-friendly passages.

Token counts are approximated as four characters per token. Paragraphs are
packed greedily into chunks; a paragraph longer than a chunk is cut with a
fixed-size sliding window.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator, List

LOGGER = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
MIN_CHUNK_CHARS = 100

_PARAGRAPH_BREAK_RE = re.compile(r"\r?\n\r?\n")


@dataclass(frozen=True, slots=True)
class ChunkingConfig:
    max_tokens: int = 800
    overlap_tokens: int = 100

    @property
    def max_chars(self) -> int:
        return max(MIN_CHUNK_CHARS, self.max_tokens * CHARS_PER_TOKEN)

    @property
    def overlap_chars(self) -> int:
        return min(max(self.overlap_tokens * CHARS_PER_TOKEN, 0), self.max_chars - 1)

    @property
    def stride(self) -> int:
        return max(1, self.max_chars - self.overlap_chars)


def chunk_by_approx_tokens(text: str, max_tokens: int, overlap_tokens: int) -> List[str]:
    """Split *text* into passages of at most ``max_tokens`` approximate tokens."""

    if max_tokens <= 0 or not text:
        return []

    config = ChunkingConfig(max_tokens=max_tokens, overlap_tokens=overlap_tokens)
    max_chars = config.max_chars

    chunks: List[str] = []
    buffer = ""
    for paragraph in _paragraphs(text):
        if len(buffer) + len(paragraph) + 1 <= max_chars:
            buffer = f"{buffer}\n{paragraph}" if buffer else paragraph
            continue

        if buffer:
            chunks.append(buffer.rstrip("\r\n"))
            buffer = ""

        if len(paragraph) <= max_chars:
            buffer = paragraph
            continue

        chunks.extend(_sliding_windows(paragraph, max_chars, config.stride))

    if buffer:
        chunks.append(buffer.rstrip("\r\n"))

    LOGGER.debug(
        "Chunked %s chars into %s chunks (max_chars=%s, stride=%s)",
        len(text),
        len(chunks),
        max_chars,
        config.stride,
    )
    return chunks


def _paragraphs(text: str) -> Iterator[str]:
    for raw in _PARAGRAPH_BREAK_RE.split(text):
        paragraph = raw.strip()
        if paragraph:
            yield paragraph


def _sliding_windows(paragraph: str, max_chars: int, stride: int) -> Iterator[str]:
    start = 0
    length = len(paragraph)
    while start < length:
        end = min(start + max_chars, length)
        yield paragraph[start:end]
        if end >= length:
            break
        start += stride


class TextChunker:
    """Chunker bound to configured token limits."""

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()

    def split(self, text: str) -> List[str]:
        return chunk_by_approx_tokens(text, self.config.max_tokens, self.config.overlap_tokens)

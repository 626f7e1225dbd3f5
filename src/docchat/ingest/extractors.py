"""Extractors for supported document types and the registry that picks one."""
from __future__ import annotations

import io
import logging
from pathlib import PurePath
from typing import Iterable, List, Optional, Sequence

import docx
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from docchat.errors import InvalidInput, UnsupportedFormat

from .normalization import normalize_text

LOGGER = logging.getLogger(__name__)


class TextExtractor:
    """Base class: handles file names ending in one of ``suffixes``."""

    suffixes: Sequence[str] = ()

    def can_handle(self, name: str) -> bool:
        lowered = name.lower()
        return any(lowered.endswith(suffix) for suffix in self.suffixes)

    def extract(self, data: bytes) -> str:
        raise NotImplementedError


class PlainTextExtractor(TextExtractor):
    """Extract text from plaintext and Markdown documents."""

    suffixes = (".txt", ".md", ".markdown")

    def extract(self, data: bytes) -> str:
        if not data:
            return ""
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError:
            LOGGER.info("Content is not valid UTF-8; decoding as latin-1")
            text = data.decode("latin-1")
        return normalize_text(text)


class PDFExtractor(TextExtractor):
    """Extract text from PDF documents page by page."""

    suffixes = (".pdf",)

    def extract(self, data: bytes) -> str:
        if not data:
            return ""
        try:
            reader = PdfReader(io.BytesIO(data))
        except (PdfReadError, ValueError, OSError) as error:
            raise InvalidInput("Unreadable PDF content", cause=error) from error

        pages: List[str] = []
        for index, page in enumerate(reader.pages, start=1):
            try:
                pages.append(page.extract_text() or "")
            except Exception as error:  # pragma: no cover - depends on PDF internals
                LOGGER.warning("Failed to extract text from PDF page %s: %s", index, error)
                pages.append("")
        return normalize_text("\n".join(pages), collapse_spaces=True)


class DocxExtractor(TextExtractor):
    """Extract text from Microsoft Word documents."""

    suffixes = (".docx",)

    def extract(self, data: bytes) -> str:
        if not data:
            return ""
        try:
            document = docx.Document(io.BytesIO(data))
        except Exception as error:
            raise InvalidInput("Unreadable DOCX content", cause=error) from error
        text = "\n".join(paragraph.text for paragraph in document.paragraphs)
        return normalize_text(text)


def default_extractors() -> List[TextExtractor]:
    return [PlainTextExtractor(), PDFExtractor(), DocxExtractor()]


class ExtractorRegistry:
    """Ordered registry; the first extractor that handles a name wins."""

    def __init__(self, extractors: Optional[Iterable[TextExtractor]] = None) -> None:
        self._extractors: List[TextExtractor] = (
            list(extractors) if extractors is not None else default_extractors()
        )

    def register(self, extractor: TextExtractor) -> None:
        self._extractors.append(extractor)

    def find_extractor(self, name: str) -> Optional[TextExtractor]:
        """Return the matching extractor, or ``None`` when the format is unsupported."""

        file_name = PurePath(name).name if name else ""
        for extractor in self._extractors:
            if extractor.can_handle(file_name):
                return extractor
        return None

    def get_extractor(self, name: str) -> TextExtractor:
        if not name or not name.strip():
            raise InvalidInput("File name or path is required")
        extractor = self.find_extractor(name)
        if extractor is None:
            raise UnsupportedFormat(f"No extractor registered for file: {name}")
        return extractor

    def supports(self, name: str) -> bool:
        return self.find_extractor(name) is not None

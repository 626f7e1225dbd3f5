"""Document ingestion: extract, chunk, embed and persist."""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool

from docchat.embeddings import EmbeddingClient, validate_embeddings
from docchat.errors import InvalidInput, NoExtractableContent
from docchat.ingest import ExtractorRegistry, LanguageDetector, TextChunker
from docchat.logging_config import AUDIT_LOGGER_NAME
from docchat.models import VectorizationResult
from docchat.telemetry import emit_exception, emit_ingest_event, traced_duration
from docchat.vectorstore import VectorStore

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)


class DocumentVectorizationService:
    """Turn uploaded documents into stored, embedded chunks."""

    def __init__(
        self,
        *,
        store: VectorStore,
        embedding_client: EmbeddingClient,
        registry: Optional[ExtractorRegistry] = None,
        chunker: Optional[TextChunker] = None,
        language_detector: Optional[LanguageDetector] = None,
    ) -> None:
        self.store = store
        self.embedding_client = embedding_client
        self.registry = registry or ExtractorRegistry()
        self.chunker = chunker or TextChunker()
        self.language_detector = language_detector or LanguageDetector()

    async def ingest(
        self,
        content: bytes,
        file_name: str,
        title: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        *,
        source_path: Optional[str] = None,
    ) -> VectorizationResult:
        """Ingest one document.

        Validation happens before anything is written; a failure at any
        step leaves the store unchanged.
        """

        if not content:
            raise InvalidInput("Document content is empty")
        if not file_name or not file_name.strip():
            raise InvalidInput("File name is required")

        display_name = Path(file_name).name
        started = time.perf_counter()
        emit_ingest_event("ingest.file.start", file_name=display_name, size_bytes=len(content))

        try:
            extractor = self.registry.get_extractor(file_name)
            text = await run_in_threadpool(extractor.extract, content)
            if not text or not text.strip():
                raise NoExtractableContent(f"No text could be extracted from {display_name}")

            chunks = self.chunker.split(text)
            if not chunks:
                raise NoExtractableContent(f"No chunks produced for {display_name}")
            LOGGER.info("Generated %s chunks for %s", len(chunks), display_name)

            embeddings = await self.embedding_client.generate_embeddings(chunks)
            validate_embeddings(embeddings, self.store.dimension)

            document_metadata: Dict[str, Any] = dict(metadata or {})
            language = self.language_detector.detect(text)
            if language:
                document_metadata.setdefault("language", language)

            result = await self.store.add_document(
                file_name=display_name,
                content=content,
                chunks=chunks,
                embeddings=embeddings,
                title=title,
                source_path=source_path or file_name,
                metadata=document_metadata or None,
            )
        except Exception as error:
            emit_exception(module=f"{__name__}.ingest", error=error)
            raise

        emit_ingest_event(
            "ingest.file.complete",
            file_name=display_name,
            size_bytes=len(content),
            duration_ms=(time.perf_counter() - started) * 1000.0,
            language=language,
            chunks=result.chunk_count,
            document_id=str(result.document_id),
        )
        AUDIT_LOGGER.info(
            {
                "event": "ingest_file",
                "document_id": str(result.document_id),
                "file_name": display_name,
                "title": result.title,
                "chunks": result.chunk_count,
            }
        )
        LOGGER.info(
            "Ingested %s as document %s with %s chunks",
            display_name,
            result.document_id,
            result.chunk_count,
        )
        return result

    async def ingest_file(
        self,
        path: str | Path,
        title: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> VectorizationResult:
        """Ingest a file from disk; the path becomes the document's source locator."""

        if path is None or not str(path).strip():
            raise InvalidInput("File path is required")
        file_path = Path(path)
        if not file_path.is_file():
            raise InvalidInput(f"File not found: {file_path}")

        content = await run_in_threadpool(file_path.read_bytes)
        return await self.ingest(
            content,
            file_path.name,
            title,
            metadata,
            source_path=str(file_path),
        )

    async def ingest_folder(self, root: str | Path, pattern: str = "*", recurse: bool = True) -> int:
        """Ingest every supported file under ``root`` in sorted order.

        The first failure propagates and stops the batch.
        """

        if root is None or not str(root).strip():
            raise InvalidInput("Folder path is required")
        folder = Path(root)
        if not folder.is_dir():
            raise InvalidInput(f"Folder not found: {folder}")

        glob_pattern = pattern or "*"
        candidates = folder.rglob(glob_pattern) if recurse else folder.glob(glob_pattern)
        files: List[Path] = sorted(
            candidate
            for candidate in candidates
            if candidate.is_file() and self.registry.supports(candidate.name)
        )

        ingested = 0
        with traced_duration("ingest.folder", logger=LOGGER, root=str(folder), files=len(files)):
            for file_path in files:
                await self.ingest_file(file_path)
                ingested += 1
        return ingested

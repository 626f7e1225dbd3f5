"""API router exposing document ingestion and deletion."""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from pydantic import BaseModel, Field

from docchat.dependencies import get_vector_store, get_vectorization_service
from docchat.errors import DocChatError
from docchat.models import VectorizationResult
from docchat.services import DocumentVectorizationService
from docchat.vectorstore import VectorStore

from .errors import to_http_exception

router = APIRouter(prefix="/api/vectorization", tags=["vectorization"])


class VectorizationResponse(BaseModel):
    """Response body returned for every successful ingestion."""

    document_id: uuid.UUID
    title: str
    chunk_count: int


class IngestFolderRequest(BaseModel):
    path: str = Field(..., min_length=1, description="Folder to scan for supported documents.")
    pattern: str = Field("*", description="Glob pattern matched against file paths.")
    recurse: bool = Field(True, description="Descend into sub-folders.")


class IngestFolderResponse(BaseModel):
    ingested: int


def _to_response(result: VectorizationResult) -> VectorizationResponse:
    return VectorizationResponse(
        document_id=result.document_id,
        title=result.title,
        chunk_count=result.chunk_count,
    )


@router.post("/ingest", response_model=VectorizationResponse)
async def ingest_document(
    file: UploadFile = File(...),
    title: str | None = Form(None),
    service: DocumentVectorizationService = Depends(get_vectorization_service),
) -> VectorizationResponse:
    """Ingest an uploaded document."""

    content = await file.read()
    try:
        result = await service.ingest(content, file.filename or "", title)
    except DocChatError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(result)


@router.post("/ingest-file", response_model=VectorizationResponse)
async def ingest_file(
    path: str,
    title: str | None = None,
    service: DocumentVectorizationService = Depends(get_vectorization_service),
) -> VectorizationResponse:
    """Ingest a document that already exists on the server's filesystem."""

    try:
        result = await service.ingest_file(path, title)
    except DocChatError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(result)


@router.post("/ingest-folder", response_model=IngestFolderResponse)
async def ingest_folder(
    request: IngestFolderRequest,
    service: DocumentVectorizationService = Depends(get_vectorization_service),
) -> IngestFolderResponse:
    try:
        ingested = await service.ingest_folder(request.path, request.pattern, request.recurse)
    except DocChatError as exc:
        raise to_http_exception(exc) from exc
    return IngestFolderResponse(ingested=ingested)


@router.delete("/documents/{doc_id}", status_code=204)
async def delete_document(
    doc_id: uuid.UUID,
    store: VectorStore = Depends(get_vector_store),
) -> Response:
    try:
        deleted = await store.delete_document(doc_id)
    except DocChatError as exc:
        raise to_http_exception(exc) from exc
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Document {doc_id} not found")
    return Response(status_code=204)

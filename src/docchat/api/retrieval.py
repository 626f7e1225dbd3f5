"""API router exposing similarity search over stored chunks."""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from docchat.dependencies import get_retrieval_service
from docchat.errors import DocChatError
from docchat.services import RetrievalService

from .errors import to_http_exception

router = APIRouter(prefix="/api/retrieval", tags=["retrieval"])


class SearchRequest(BaseModel):
    query: str = Field(..., description="Text to search for.")
    top_k: int = Field(5, ge=0, le=100, description="Maximum number of chunks to return.")


class SearchResultItem(BaseModel):
    document_id: uuid.UUID
    chunk_index: int
    content: str
    score: float


class SearchResponse(BaseModel):
    results: list[SearchResultItem]


@router.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    service: RetrievalService = Depends(get_retrieval_service),
) -> SearchResponse:
    """Return the stored chunks closest to the query, best first."""

    try:
        results = await service.retrieve(request.query, request.top_k)
    except DocChatError as exc:
        raise to_http_exception(exc) from exc
    return SearchResponse(
        results=[
            SearchResultItem(
                document_id=result.document_id,
                chunk_index=result.chunk_index,
                content=result.content,
                score=result.score,
            )
            for result in results
        ]
    )

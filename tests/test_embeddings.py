"""Tests for the embedding client and vector validation."""
from __future__ import annotations

import asyncio
from typing import List, Sequence

import pytest

from docchat.embeddings import EmbeddingClient, validate_embeddings
from docchat.errors import DimensionMismatch, EmbeddingProviderError, NoEmbeddingsReturned
from docchat.providers import EmbeddingProvider, MockEmbeddingProvider


class RecordingProvider(EmbeddingProvider):
    model_name = "recording"

    def __init__(self, vectors: List[List[float]] | None = None, error: Exception | None = None) -> None:
        self.calls: List[List[str]] = []
        self.vectors = vectors
        self.error = error

    async def encode(self, texts: Sequence[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        if self.error is not None:
            raise self.error
        if self.vectors is not None:
            return self.vectors
        return [[float(len(text)), 1] for text in texts]


def test_generate_embeddings_batches_in_a_single_call() -> None:
    provider = RecordingProvider()
    client = EmbeddingClient(provider)

    vectors = asyncio.run(client.generate_embeddings(["a", "bbb", "cc"]))

    assert provider.calls == [["a", "bbb", "cc"]]
    assert vectors == [[1.0, 1.0], [3.0, 1.0], [2.0, 1.0]]
    assert all(isinstance(value, float) for vector in vectors for value in vector)


def test_empty_input_skips_the_provider() -> None:
    provider = RecordingProvider()

    assert asyncio.run(EmbeddingClient(provider).generate_embeddings([])) == []
    assert provider.calls == []


def test_provider_failures_are_wrapped() -> None:
    error = ConnectionError("boom")
    client = EmbeddingClient(RecordingProvider(error=error))

    with pytest.raises(EmbeddingProviderError) as excinfo:
        asyncio.run(client.generate_embeddings(["text"]))

    assert excinfo.value.__cause__ is error


def test_vector_count_mismatch_is_a_provider_error() -> None:
    client = EmbeddingClient(RecordingProvider(vectors=[[0.1, 0.2]]))

    with pytest.raises(EmbeddingProviderError):
        asyncio.run(client.generate_embeddings(["one", "two"]))


def test_validate_embeddings_rejects_empty_and_wrong_dimensions() -> None:
    with pytest.raises(NoEmbeddingsReturned):
        validate_embeddings([], 3)

    with pytest.raises(DimensionMismatch) as excinfo:
        validate_embeddings([[0.0, 0.0, 0.0], [0.0, 0.0]], 3)

    assert excinfo.value.expected == 3
    assert excinfo.value.actual == 2
    validate_embeddings([[0.0, 0.0, 0.0]], 3)


def test_mock_provider_through_client_is_deterministic() -> None:
    client = EmbeddingClient(MockEmbeddingProvider(dimension=5))

    first = asyncio.run(client.generate_embeddings(["hello", "world"]))
    second = asyncio.run(client.generate_embeddings(["hello", "world"]))

    assert first == second
    assert client.model_name == "mock-embedding"


def test_provider_returning_none_yields_no_vectors() -> None:
    class SilentProvider(EmbeddingProvider):
        async def encode(self, texts: Sequence[str]):
            return None

    vectors = asyncio.run(EmbeddingClient(SilentProvider()).generate_embeddings(["text"]))

    assert vectors == []
    with pytest.raises(NoEmbeddingsReturned):
        validate_embeddings(vectors, 2)

"""Tests for query-time retrieval."""
from __future__ import annotations

import asyncio

import pytest

from docchat.errors import EmbeddingProviderError
from docchat.providers import MockEmbeddingProvider


def test_exact_text_match_ranks_first(make_stack) -> None:
    async def scenario():
        async with make_stack(dimension=16) as stack:
            await stack.vectorization.ingest(b"alpha passage", "alpha.txt")
            await stack.vectorization.ingest(b"beta passage", "beta.txt")
            await stack.vectorization.ingest(b"gamma passage", "gamma.txt")
            return await stack.retrieval.retrieve("beta passage", top_k=2)

    results = asyncio.run(scenario())

    assert len(results) == 2
    assert results[0].content == "beta passage"
    assert results[0].score == pytest.approx(0.0, abs=1e-9)
    assert results[0].score <= results[1].score


def test_results_are_bounded_by_corpus_size(make_stack) -> None:
    async def scenario():
        async with make_stack() as stack:
            await stack.vectorization.ingest(b"only passage", "only.txt")
            return await stack.retrieval.retrieve("anything", top_k=5)

    assert len(asyncio.run(scenario())) == 1


def test_blank_query_and_non_positive_top_k_return_nothing(make_stack) -> None:
    class CountingProvider(MockEmbeddingProvider):
        calls = 0

        async def encode(self, texts):
            CountingProvider.calls += 1
            return await super().encode(texts)

    async def scenario():
        async with make_stack(provider=CountingProvider(dimension=8)) as stack:
            return (
                await stack.retrieval.retrieve("   "),
                await stack.retrieval.retrieve("query", top_k=0),
            )

    assert asyncio.run(scenario()) == ([], [])
    assert CountingProvider.calls == 0


def test_provider_errors_propagate(make_stack) -> None:
    class BrokenProvider(MockEmbeddingProvider):
        async def encode(self, texts):
            raise RuntimeError("offline")

    async def scenario():
        async with make_stack(provider=BrokenProvider(dimension=8)) as stack:
            await stack.retrieval.retrieve("query")

    with pytest.raises(EmbeddingProviderError):
        asyncio.run(scenario())

"""Shared pytest configuration, fakes and fixtures.

The fakes stand in for the three external services (embedding model,
vector index, chat model) so the suite runs without Chroma, HuggingFace
or an LLM server.
"""

from __future__ import annotations

import asyncio
import hashlib
import math
from collections.abc import AsyncIterator, Sequence
from typing import Any

import pytest
from langchain_core.embeddings import Embeddings
from langchain_core.messages import AIMessageChunk

from pdf_rag.ingestion.embedder import Embedder
from pdf_rag.retrieval.base import VectorStoreBase
from pdf_rag.retrieval.models import MetadataFilter, QueryMatch, Record

DIM = 8


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Embeddings ──────────────────────────────────────────────────────────


class FakeEmbeddings(Embeddings):
    """Deterministic hash-based embeddings with concurrency tracking.

    Parameters
    ----------
    dimension:
        Length of every vector.
    delay:
        Seconds each async call sleeps, so calls overlap.
    fail_on:
        Texts containing any of these substrings raise ``RuntimeError``.
    """

    def __init__(self, dimension: int = DIM, *, delay: float = 0.0, fail_on: Sequence[str] = ()) -> None:
        self.dimension = dimension
        self.delay = delay
        self.fail_on = tuple(fail_on)
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def _vector(self, text: str) -> list[float]:
        digest = hashlib.sha256(text.encode()).digest()
        return [(digest[i % len(digest)] / 255.0) + 0.01 for i in range(self.dimension)]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_query(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        self.calls.append(text)
        if any(marker in text for marker in self.fail_on):
            raise RuntimeError(f"embedding backend rejected {text[:20]!r}")
        return self._vector(text)

    async def aembed_query(self, text: str) -> list[float]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return self.embed_query(text)
        finally:
            self.in_flight -= 1


# ── Vector store ────────────────────────────────────────────────────────


def _cosine(a: Sequence[float], b: Sequence[float]) -> float:
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / norm


class FakeVectorStore(VectorStoreBase):
    """In-memory cosine store; optionally returns canned matches instead."""

    def __init__(self, canned: list[QueryMatch] | None = None, *, healthy: bool = True) -> None:
        super().__init__("test-collection")
        self.records: dict[str, Record] = {}
        self.canned = canned
        self.healthy = healthy
        self.dimension: int | None = None
        self.searches: list[dict[str, Any]] = []

    def create_collection_if_absent(self, dimension: int, metric: str = "cosine") -> bool:
        created = self.dimension is None
        self.dimension = dimension
        return created

    def upsert(self, records: Sequence[Record]) -> None:
        for record in records:
            self.records[record.key] = record

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        where: MetadataFilter | None = None,
    ) -> list[QueryMatch]:
        self.searches.append({"embedding": query_embedding, "k": k, "where": where})
        if self.canned is not None:
            return self.canned[:k]

        candidates = [r for r in self.records.values() if self._matches(r, where)]
        scored = [QueryMatch(record=r, score=_cosine(query_embedding, r.embedding)) for r in candidates]
        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:k]

    def health_check(self) -> bool:
        return self.healthy

    @staticmethod
    def _matches(record: Record, where: MetadataFilter | None) -> bool:
        return where is None or record.metadata().get(where.field) == where.value


# ── Chat model ──────────────────────────────────────────────────────────


class FakeStreamingChat:
    """Chat model whose ``astream`` yields canned fragments.

    Parameters
    ----------
    fragments:
        Text pieces yielded in order.
    delay:
        Seconds to sleep before each fragment.
    error:
        Raised after the fragments have been yielded.
    """

    def __init__(self, fragments: Sequence[str] = (), *, delay: float = 0.0, error: Exception | None = None) -> None:
        self.fragments = list(fragments)
        self.delay = delay
        self.error = error
        self.prompts: list[str] = []
        self.opened = 0
        self.closed = 0

    async def astream(self, messages: list[Any], **kwargs: Any) -> AsyncIterator[AIMessageChunk]:
        self.prompts.append(messages[-1].content)
        self.opened += 1
        try:
            for fragment in self.fragments:
                if self.delay:
                    await asyncio.sleep(self.delay)
                yield AIMessageChunk(content=fragment)
            if self.error is not None:
                raise self.error
        finally:
            self.closed += 1


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def fake_embeddings() -> FakeEmbeddings:
    return FakeEmbeddings()


@pytest.fixture()
def embedder(fake_embeddings: FakeEmbeddings) -> Embedder:
    return Embedder(fake_embeddings, dimension=DIM)


@pytest.fixture()
def store() -> FakeVectorStore:
    s = FakeVectorStore()
    s.create_collection_if_absent(DIM)
    return s


def make_match(score: float, *, page: int = 1, file_name: str = "guide.pdf", content: str = "text") -> QueryMatch:
    record = Record.from_page_chunk(file_name, page, content, [0.1] * DIM)
    return QueryMatch(record=record, score=score)


@pytest.fixture()
def match_factory():
    """Return :func:`make_match` so tests can build scored matches."""
    return make_match


@pytest.fixture()
def chat_factory():
    """Return the :class:`FakeStreamingChat` class."""
    return FakeStreamingChat


@pytest.fixture()
def embeddings_factory():
    """Return the :class:`FakeEmbeddings` class."""
    return FakeEmbeddings


@pytest.fixture()
def store_factory():
    """Return the :class:`FakeVectorStore` class."""
    return FakeVectorStore

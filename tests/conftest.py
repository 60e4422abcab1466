# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides a controllable clock, counting fetch functions, sample candidates
and a scripted vector store. No external dependencies — all I/O is faked.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from semantic_pager.core.models import CandidateEntry, CandidateSet
from semantic_pager.logging.context import clear_context
from semantic_pager.rag.models import SearchResult
from semantic_pager.rag.vector_store.base_vector_store import BaseVectorStore


# === HELPERS ===


class FakeClock:
    """Manually advanced clock returning aware UTC datetimes."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_entries(n: int, prefix: str = "doc") -> list[CandidateEntry]:
    """n entries with strictly decreasing scores."""
    return [
        CandidateEntry(id=f"{prefix}_{i:04d}", score=1.0 - i / (n + 1), payload={"rank": i})
        for i in range(n)
    ]


class CountingFetch:
    """fetch_fn double: counts calls, can block on a gate or fail."""

    def __init__(
        self,
        entries: list[CandidateEntry] | None = None,
        gate: asyncio.Event | None = None,
        error: Exception | None = None,
    ) -> None:
        self.entries = entries if entries is not None else make_entries(10)
        self.gate = gate
        self.error = error
        self.calls = 0
        self.sizes: list[int] = []

    async def __call__(self, fetch_size: int) -> list[CandidateEntry]:
        self.calls += 1
        self.sizes.append(fetch_size)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.entries[:fetch_size]


class ScriptedVectorStore(BaseVectorStore):
    """Search backend returning `size` hits; optionally reshuffles per call."""

    def __init__(self, size: int = 50, shuffle: bool = False, error: Exception | None = None) -> None:
        self.size = size
        self.shuffle = shuffle
        self.error = error
        self.calls: list[dict] = []
        self._rng = random.Random(7)

    async def upsert(self, collection, ids, embeddings, documents, metadatas=None) -> None:
        raise NotImplementedError

    async def query(self, collection, query_embedding, top_k=10, filter=None) -> list[SearchResult]:
        self.calls.append({"collection": collection, "top_k": top_k, "filter": filter})
        if self.error is not None:
            raise self.error
        hits = [
            SearchResult(
                source_id=f"hit_{i:04d}",
                content=f"content {i}",
                score=1.0 - i / (self.size + 1),
                metadata={"n": i},
            )
            for i in range(self.size)
        ]
        if self.shuffle:
            self._rng.shuffle(hits)
        return hits[:top_k]

    async def delete(self, collection, ids) -> None:
        raise NotImplementedError

    async def count(self, collection) -> int:
        return self.size

    @property
    def provider_name(self) -> str:
        return "scripted"


# === FIXTURES ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_fetch() -> Callable[..., CountingFetch]:
    """Factory for CountingFetch doubles."""
    return CountingFetch


@pytest.fixture
def entries_factory() -> Callable[..., list[CandidateEntry]]:
    return make_entries


@pytest.fixture
def scripted_store_factory() -> Callable[..., ScriptedVectorStore]:
    return ScriptedVectorStore


@pytest.fixture
def sample_candidate_set(clock: FakeClock) -> CandidateSet:
    """Ten-entry candidate set fetched now, expiring in 5 minutes."""
    return CandidateSet(
        fingerprint="pager:v1:sample",
        entries=tuple(make_entries(10)),
        fetched_at=clock.now,
        expires_at=clock.now + timedelta(seconds=300),
        fetch_size=1000,
    )


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()

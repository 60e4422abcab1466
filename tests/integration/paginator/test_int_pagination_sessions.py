# tests/integration/paginator/test_int_pagination_sessions.py — v1
"""Integration tests: paginator + cache + hashing embedder + memory vector store.

No external services required.
Coverage targets: paginator.py, candidate_cache.py, sqlite_store.py, facade.py
"""

from __future__ import annotations

import asyncio

import pytest

from semantic_pager.api.facade import create_paginator
from semantic_pager.cache.candidate_cache import CandidateSetCache
from semantic_pager.cache.sqlite_store import SqliteCacheStore
from semantic_pager.config.settings import Settings
from semantic_pager.paginator.paginator import Paginator
from semantic_pager.rag.vector_store.memory_store import InMemoryVectorStore

# Collection seeded by the seeded_vector_store fixture.
CORPUS_COLLECTION = "corpus"

pytestmark = pytest.mark.integration


class _CountingStore(InMemoryVectorStore):
    """Wraps a seeded in-memory store and counts queries."""

    def __init__(self, inner: InMemoryVectorStore) -> None:
        super().__init__()
        self._collections = inner._collections
        self.queries = 0

    async def query(self, *args, **kwargs):
        self.queries += 1
        return await super().query(*args, **kwargs)


def _pager(embedder, vector_store, clock, store=None, **kwargs) -> Paginator:
    cache = CandidateSetCache(ttl_s=120, clock=clock, store=store, lock_poll_interval_s=0.01)
    return Paginator(cache, embedder, vector_store, collection=CORPUS_COLLECTION, **kwargs)


class TestPaginationSession:
    @pytest.mark.asyncio
    async def test_walk_all_pages(self, hashing_embedder, seeded_vector_store, clock):
        store = _CountingStore(seeded_vector_store)
        pager = _pager(hashing_embedder, store, clock, default_fetch_size=100)

        ids: list[str] = []
        page = 1
        while True:
            result = await pager.paginate("alice", "vector database", page=page, page_size=15)
            ids.extend(item.id for item in result.items)
            if not result.has_next:
                break
            page += 1

        assert store.queries == 1
        assert len(ids) == len(set(ids)) == 100
        assert page == 7
        scores = [
            item.score
            for p in range(1, 8)
            for item in (await pager.paginate("alice", "vector database", page=p, page_size=15)).items
        ]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_filters_restrict_candidates(self, hashing_embedder, seeded_vector_store, clock):
        pager = _pager(hashing_embedder, seeded_vector_store, clock)
        result = await pager.paginate("alice", "cache", page_size=500, filters={"lang": "fr"})
        assert result.total_candidates == 100
        assert all(item.payload["metadata"]["lang"] == "fr" for item in result.items)

    @pytest.mark.asyncio
    async def test_concurrent_users(self, hashing_embedder, seeded_vector_store, clock):
        store = _CountingStore(seeded_vector_store)
        pager = _pager(hashing_embedder, store, clock)

        requests = [
            pager.paginate(subject, "search index", page=p, page_size=25)
            for subject in ("alice", "bob", "carol")
            for p in (1, 2, 3, 4)
        ]
        results = await asyncio.gather(*requests)

        assert store.queries == 3
        by_subject = [results[i:i + 4] for i in range(0, 12, 4)]
        for pages in by_subject:
            ids = [item.id for r in pages for item in r.items]
            assert len(ids) == len(set(ids)) == 100
        # Same ranking for the same query regardless of subject.
        assert [i.id for i in by_subject[0][0].items] == [i.id for i in by_subject[1][0].items]

    @pytest.mark.asyncio
    async def test_corpus_change_visible_after_invalidation(
        self, hashing_embedder, seeded_vector_store, clock
    ):
        pager = _pager(hashing_embedder, seeded_vector_store, clock)
        before = await pager.paginate("alice", "rank page", page_size=500)

        await seeded_vector_store.delete(CORPUS_COLLECTION, [before.items[0].id])
        cached = await pager.paginate("alice", "rank page", page_size=500)
        assert cached.total_candidates == before.total_candidates

        await pager.invalidate_session("alice", "rank page")
        fresh = await pager.paginate("alice", "rank page", page_size=500)
        assert fresh.total_candidates == before.total_candidates - 1
        assert before.items[0].id not in {i.id for i in fresh.items}


class TestSharedSqliteStore:
    @pytest.mark.asyncio
    async def test_second_process_reuses_candidate_set(
        self, tmp_path, hashing_embedder, seeded_vector_store, clock
    ):
        db = tmp_path / "cache.db"
        store_a = _CountingStore(seeded_vector_store)
        store_b = _CountingStore(seeded_vector_store)
        pager_a = _pager(hashing_embedder, store_a, clock, store=SqliteCacheStore(db))
        pager_b = _pager(hashing_embedder, store_b, clock, store=SqliteCacheStore(db))

        page_1 = await pager_a.paginate("alice", "query cache", page=1, page_size=10)
        page_2 = await pager_b.paginate("alice", "query cache", page=2, page_size=10)

        assert store_a.queries == 1
        assert store_b.queries == 0
        assert page_2.fetched_at == page_1.fetched_at
        assert {i.id for i in page_1.items}.isdisjoint(i.id for i in page_2.items)
        assert pager_b._cache.stats.store_hits == 1

    @pytest.mark.asyncio
    async def test_concurrent_processes_fetch_once(
        self, tmp_path, hashing_embedder, seeded_vector_store, clock
    ):
        db = tmp_path / "cache.db"
        counting = _CountingStore(seeded_vector_store)
        gate = asyncio.Event()

        class _SlowStore(_CountingStore):
            async def query(self, *args, **kwargs):
                await gate.wait()
                return await super().query(*args, **kwargs)

        slow = _SlowStore(seeded_vector_store)
        pager_a = _pager(hashing_embedder, slow, clock, store=SqliteCacheStore(db))
        pager_b = _pager(hashing_embedder, counting, clock, store=SqliteCacheStore(db))

        first = asyncio.create_task(pager_a.paginate("alice", "index", page=1))
        await asyncio.sleep(0.05)
        second = asyncio.create_task(pager_b.paginate("alice", "index", page=2))
        await asyncio.sleep(0.05)
        gate.set()
        page_1, page_2 = await asyncio.gather(first, second)

        assert slow.queries == 1
        assert counting.queries == 0
        assert page_1.fingerprint == page_2.fingerprint


class TestFacadeWiring:
    @pytest.mark.asyncio
    async def test_sqlite_backend_from_settings(self, tmp_path, seeded_vector_store, clock):
        settings = Settings(
            _env_file=None,
            cache_backend="sqlite",
            cache_root=tmp_path,
            embedding_dimensions=64,
            vector_db_collection=CORPUS_COLLECTION,
            pager_default_fetch_size=50,
        )
        pager = create_paginator(settings, vector_store=seeded_vector_store, clock=clock)
        result = await pager.paginate("alice", "vector", page=3, page_size=20)
        assert len(result.items) == 10
        assert result.truncated is True
        assert (tmp_path / "semantic_pager_cache.db").exists()

# src/paginator/paginator.py — v1
"""Paginator — serve pages of a search session from one cached candidate set.

Usage:
    pager = Paginator(cache, embedder, vector_store)
    result = await pager.paginate("alice", "vector databases", page=2, page_size=20)

The paginator holds no state of its own: it derives the session fingerprint,
asks the CandidateSetCache for the candidate set (one embed + search per
session) and slices it. Pages beyond the fetch size come back empty with
has_next=False; the fetch size is never grown to serve them, since a second,
larger fetch could rank the shared prefix differently.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from semantic_pager.cache.candidate_cache import CandidateSetCache, FetchFn
from semantic_pager.cache.fingerprint import compute_session_fingerprint
from semantic_pager.cache.models import SessionFingerprint
from semantic_pager.core.errors import BackendFetchFailed, InvalidArgument
from semantic_pager.core.models import (
    CandidateEntry,
    CandidateSet,
    PageRequest,
    PageResult,
)
from semantic_pager.logging.context import set_page_context
from semantic_pager.rag.embeddings.base_embedder import BaseEmbedder
from semantic_pager.rag.models import SearchResult
from semantic_pager.rag.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)

DEFAULT_FETCH_SIZE = 1000
DEFAULT_MAX_FETCH_SIZE = 10_000


class Paginator:
    """Stateless page coordinator over a CandidateSetCache.

    Args:
        cache: Candidate set cache (owns storage, expiry, single-flight).
        embedder: Query embedding collaborator.
        vector_store: Similarity-search collaborator.
        collection: Vector store collection to search.
        default_fetch_size: K used when a request does not supply one.
        max_fetch_size: Upper bound on a request-supplied K.
        ttl_s: Per-session TTL override; None = the cache's default.
    """

    def __init__(
        self,
        cache: CandidateSetCache,
        embedder: BaseEmbedder,
        vector_store: BaseVectorStore,
        collection: str = "semantic_pager",
        default_fetch_size: int = DEFAULT_FETCH_SIZE,
        max_fetch_size: int = DEFAULT_MAX_FETCH_SIZE,
        ttl_s: float | None = None,
    ) -> None:
        if default_fetch_size < 1 or default_fetch_size > max_fetch_size:
            raise InvalidArgument(
                f"default_fetch_size must be in [1, {max_fetch_size}], "
                f"got {default_fetch_size}"
            )
        self._cache = cache
        self._embedder = embedder
        self._vector_store = vector_store
        self._collection = collection
        self._default_fetch_size = default_fetch_size
        self._max_fetch_size = max_fetch_size
        self._ttl_s = ttl_s

    async def paginate(
        self,
        subject: str,
        query: str,
        page: int = 1,
        page_size: int = 20,
        fetch_size: int | None = None,
        filters: dict[str, Any] | None = None,
    ) -> PageResult:
        """Return one page of the (subject, query) search session.

        Raises:
            InvalidArgument: page < 1, page_size < 1, or fetch_size outside
                [1, max_fetch_size].
            BackendFetchFailed: The embedder or vector store failed.
        """
        if page < 1:
            raise InvalidArgument(f"page must be >= 1, got {page}")
        if page_size < 1:
            raise InvalidArgument(f"page_size must be >= 1, got {page_size}")

        fingerprint = self.session_fingerprint(subject, query, fetch_size, filters)
        set_page_context(fingerprint.key, page, page_size)

        candidate_set = await self._cache.get_or_fetch(
            fingerprint.key,
            fingerprint.fetch_size,
            self._make_fetch_fn(fingerprint, filters),
            ttl_s=self._ttl_s,
        )
        result = slice_page(candidate_set, page, page_size)
        logger.debug(
            "Served page %d/%d: items=%d, candidates=%d",
            page, result.total_pages, len(result.items), result.total_candidates,
        )
        return result

    async def paginate_request(self, request: PageRequest) -> PageResult:
        """paginate() driven by a PageRequest model."""
        return await self.paginate(
            request.subject,
            request.query,
            page=request.page,
            page_size=request.page_size,
            fetch_size=request.fetch_size,
            filters=request.filters,
        )

    async def invalidate_session(
        self,
        subject: str,
        query: str,
        fetch_size: int | None = None,
        filters: dict[str, Any] | None = None,
    ) -> None:
        """Drop the cached candidate set of a session; next page refetches."""
        fingerprint = self.session_fingerprint(subject, query, fetch_size, filters)
        await self._cache.invalidate(fingerprint.key)
        logger.info("Invalidated search session: key=%s", fingerprint.key)

    def session_fingerprint(
        self,
        subject: str,
        query: str,
        fetch_size: int | None = None,
        filters: dict[str, Any] | None = None,
    ) -> SessionFingerprint:
        """Fingerprint of the session a request belongs to."""
        return compute_session_fingerprint(
            subject, query, self._resolve_fetch_size(fetch_size), filters
        )

    def _resolve_fetch_size(self, fetch_size: int | None) -> int:
        if fetch_size is None:
            return self._default_fetch_size
        if fetch_size < 1 or fetch_size > self._max_fetch_size:
            raise InvalidArgument(
                f"fetch_size must be in [1, {self._max_fetch_size}], got {fetch_size}"
            )
        return fetch_size

    def _make_fetch_fn(
        self, fingerprint: SessionFingerprint, filters: dict[str, Any] | None
    ) -> FetchFn:
        # Embed the normalized text: every query mapping to this fingerprint
        # must produce the same candidate set.
        text = fingerprint.normalized_query

        async def fetch(limit: int) -> list[CandidateEntry]:
            try:
                vector = await self._embedder.embed_query(text)
                results = await self._vector_store.query(
                    self._collection, vector, top_k=limit, filter=filters
                )
            except Exception as e:
                raise BackendFetchFailed(
                    fingerprint.key, f"{type(e).__name__}: {e}"
                ) from e
            return to_candidates(results, limit)

        return fetch


def to_candidates(results: Sequence[SearchResult], limit: int) -> list[CandidateEntry]:
    """Map backend hits to CandidateEntry in backend order.

    Duplicate ids keep their first (best-ranked) occurrence; output is
    truncated to limit. Duplicates are not back-filled, so a full page of
    backend hits with repeats yields fewer than limit candidates.
    """
    seen: set[str] = set()
    candidates: list[CandidateEntry] = []
    dropped = 0
    for result in results:
        if result.source_id in seen:
            dropped += 1
            continue
        seen.add(result.source_id)
        candidates.append(
            CandidateEntry(
                id=result.source_id,
                score=result.score,
                payload={"content": result.content, "metadata": dict(result.metadata)},
            )
        )
        if len(candidates) >= limit:
            break
    if dropped:
        logger.debug("Dropped %d duplicate hits", dropped)
    return candidates


def slice_page(candidate_set: CandidateSet, page: int, page_size: int) -> PageResult:
    """Slice page `page` of size `page_size` out of a candidate set.

    Never errors on an out-of-range page: returns empty items with
    has_next=False.
    """
    if page < 1:
        raise InvalidArgument(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise InvalidArgument(f"page_size must be >= 1, got {page_size}")

    total = candidate_set.size
    start = (page - 1) * page_size
    end = start + page_size
    return PageResult(
        items=list(candidate_set.slice(start, end)),
        page=page,
        page_size=page_size,
        total_candidates=total,
        total_pages=(total + page_size - 1) // page_size,
        has_next=end < total,
        has_prev=page > 1,
        fingerprint=candidate_set.fingerprint,
        fetch_size=candidate_set.fetch_size,
        fetched_at=candidate_set.fetched_at,
        expires_at=candidate_set.expires_at,
    )

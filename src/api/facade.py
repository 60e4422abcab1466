# src/api/facade.py — v2
"""Public API facade — single entry point for building a paginator.

Usage:
    from semantic_pager.api.facade import create_paginator
    pager = create_paginator()
    page = await pager.paginate("alice", "vector databases", page=1, page_size=20)
    await pager.invalidate_session("alice", "vector databases")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from semantic_pager.cache.candidate_cache import CandidateSetCache, Clock
from semantic_pager.config.settings import Settings
from semantic_pager.paginator.paginator import Paginator

if TYPE_CHECKING:
    from semantic_pager.cache.base_cache_store import BaseCacheStore
    from semantic_pager.rag.embeddings.base_embedder import BaseEmbedder
    from semantic_pager.rag.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


def create_paginator(
    settings: Settings | None = None,
    embedder: BaseEmbedder | None = None,
    vector_store: BaseVectorStore | None = None,
    cache_store: BaseCacheStore | None = None,
    clock: Clock | None = None,
) -> Paginator:
    """Wire a Paginator from settings, letting callers inject collaborators.

    Args:
        settings: Global settings. Loaded from .env if None.
        embedder: Query embedder. None = built from EMBEDDING_PROVIDER.
        vector_store: Search backend. None = built from VECTOR_DB_TYPE.
        cache_store: Shared cache store. None = built from CACHE_BACKEND;
            the memory backend needs no shared store and gets none.
        clock: Time source for candidate set expiry (tests).

    Returns:
        Paginator ready to serve pages.
    """
    settings = settings or Settings()

    if embedder is None:
        from semantic_pager.rag.embeddings.embedder_factory import create_embedder
        embedder = create_embedder(settings)

    if vector_store is None:
        from semantic_pager.rag.vector_store.vector_store_factory import create_vector_store
        vector_store = create_vector_store(settings)

    if cache_store is None and settings.cache_backend != "memory":
        from semantic_pager.cache.cache_factory import create_cache_store
        cache_store = create_cache_store(settings)

    cache = CandidateSetCache(
        ttl_s=settings.cache_ttl_s,
        max_entries=settings.cache_max_entries,
        store=cache_store,
        clock=clock,
        lock_ttl_s=settings.cache_lock_ttl_s,
        lock_wait_s=settings.cache_lock_wait_s,
        lock_poll_interval_s=settings.cache_lock_poll_interval_s,
        storage_retry_s=settings.cache_storage_retry_s,
    )

    logger.info(
        "Paginator ready: embedder=%s, vector_store=%s, cache_store=%s, ttl=%.0fs",
        embedder.provider_name,
        vector_store.provider_name,
        cache_store.backend_name if cache_store is not None else "none",
        settings.cache_ttl_s,
    )
    return Paginator(
        cache=cache,
        embedder=embedder,
        vector_store=vector_store,
        collection=settings.vector_db_collection,
        default_fetch_size=settings.pager_default_fetch_size,
        max_fetch_size=settings.pager_max_fetch_size,
    )

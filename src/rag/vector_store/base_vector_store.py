# src/rag/vector_store/base_vector_store.py — v2
"""Abstract vector store interface — the similarity-search backend.

query() returns at most top_k results in descending score order. Backends
may be non-deterministic across identical calls (ANN indexes, concurrent
writes); the paginator calls query() once per search session.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from semantic_pager.rag.models import SearchResult


class BaseVectorStore(ABC):
    """Unified interface for vector store backends."""

    @abstractmethod
    async def upsert(
        self,
        collection: str,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict] | None = None,
    ) -> None:
        """Insert or update vectors with associated documents and metadata."""

    @abstractmethod
    async def query(
        self,
        collection: str,
        query_embedding: list[float],
        top_k: int = 10,
        filter: dict | None = None,
    ) -> list[SearchResult]:
        """Query vectors by similarity, best match first."""

    @abstractmethod
    async def delete(self, collection: str, ids: list[str]) -> None:
        """Delete vectors by ID."""

    @abstractmethod
    async def count(self, collection: str) -> int:
        """Return number of vectors in a collection."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (memory, chromadb)."""

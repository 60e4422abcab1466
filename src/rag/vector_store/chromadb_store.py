# src/rag/vector_store/chromadb_store.py — v2
"""ChromaDB vector store adapter.

Uses the chromadb SDK for local or remote vector storage.
Requires: pip install chromadb.
Collections are created with cosine space, so score = 1 - distance.
"""

from __future__ import annotations

import logging
from pathlib import Path

from semantic_pager.rag.models import SearchResult
from semantic_pager.rag.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


class ChromaDBStore(BaseVectorStore):
    """Vector store backed by ChromaDB."""

    def __init__(
        self,
        persist_path: str | Path | None = None,
        host: str | None = None,
        port: int = 8000,
    ) -> None:
        try:
            import chromadb
        except ImportError as e:
            raise ImportError(
                "chromadb package required: pip install chromadb"
            ) from e

        if host:
            self._client = chromadb.HttpClient(host=host, port=port)
        elif persist_path:
            self._client = chromadb.PersistentClient(path=str(persist_path))
        else:
            self._client = chromadb.Client()

    def _collection(self, name: str):
        return self._client.get_or_create_collection(
            name, metadata={"hnsw:space": "cosine"}
        )

    async def upsert(
        self,
        collection: str,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict] | None = None,
    ) -> None:
        """Insert or update vectors."""
        self._collection(collection).upsert(
            ids=ids,
            embeddings=embeddings,
            documents=documents,
            metadatas=metadatas,
        )

    async def query(
        self,
        collection: str,
        query_embedding: list[float],
        top_k: int = 10,
        filter: dict | None = None,
    ) -> list[SearchResult]:
        """Query by embedding similarity (HNSW, approximate)."""
        kwargs: dict = {
            "query_embeddings": [query_embedding],
            "n_results": top_k,
            "include": ["documents", "metadatas", "distances"],
        }
        if filter:
            kwargs["where"] = filter

        results = self._collection(collection).query(**kwargs)

        search_results: list[SearchResult] = []
        if results["ids"] and results["ids"][0]:
            for i, doc_id in enumerate(results["ids"][0]):
                distance = results["distances"][0][i] if results.get("distances") else 0.0
                doc = results["documents"][0][i] if results.get("documents") else ""
                meta = results["metadatas"][0][i] if results.get("metadatas") else {}
                search_results.append(
                    SearchResult(
                        source_id=doc_id,
                        content=doc or "",
                        score=1.0 - distance,
                        metadata=meta or {},
                    )
                )
        return search_results

    async def delete(self, collection: str, ids: list[str]) -> None:
        """Delete vectors by ID."""
        self._collection(collection).delete(ids=ids)

    async def count(self, collection: str) -> int:
        """Return number of vectors in a collection."""
        return self._collection(collection).count()

    @property
    def provider_name(self) -> str:
        return "chromadb"

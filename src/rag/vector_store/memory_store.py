# src/rag/vector_store/memory_store.py — v2
"""In-memory vector store (VECTOR_DB_TYPE=memory).

Exact cosine similarity over every stored vector (one numpy matrix-vector
product per query); deterministic, so it is used for local development
and tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np

from semantic_pager.rag.models import SearchResult
from semantic_pager.rag.vector_store.base_vector_store import BaseVectorStore


@dataclass(slots=True)
class _StoredVector:
    embedding: list[float]
    document: str
    metadata: dict[str, Any] = field(default_factory=dict)


class InMemoryVectorStore(BaseVectorStore):
    """Dict-of-collections vector store with exact search."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, _StoredVector]] = {}

    async def upsert(
        self,
        collection: str,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict] | None = None,
    ) -> None:
        if not (len(ids) == len(embeddings) == len(documents)):
            raise ValueError("ids, embeddings and documents must have the same length")
        if metadatas is not None and len(metadatas) != len(ids):
            raise ValueError("metadatas must match ids in length")

        col = self._collections.setdefault(collection, {})
        for i, vec_id in enumerate(ids):
            col[vec_id] = _StoredVector(
                embedding=list(embeddings[i]),
                document=documents[i],
                metadata=dict(metadatas[i]) if metadatas else {},
            )

    async def query(
        self,
        collection: str,
        query_embedding: list[float],
        top_k: int = 10,
        filter: dict | None = None,
    ) -> list[SearchResult]:
        col = self._collections.get(collection, {})
        matches = [
            (vec_id, rec) for vec_id, rec in col.items()
            if _metadata_match(rec.metadata, filter)
        ]
        if not matches:
            return []

        matrix = np.asarray([rec.embedding for _, rec in matches], dtype=np.float64)
        scores = _cosine_scores(np.asarray(query_embedding, dtype=np.float64), matrix)
        scored = [
            SearchResult(
                source_id=vec_id,
                content=rec.document,
                score=float(score),
                metadata=dict(rec.metadata),
            )
            for (vec_id, rec), score in zip(matches, scores)
        ]
        # Ties broken by id so repeated queries rank identically.
        scored.sort(key=lambda r: (-r.score, r.source_id))
        return scored[:top_k]

    async def delete(self, collection: str, ids: list[str]) -> None:
        col = self._collections.get(collection, {})
        for vec_id in ids:
            col.pop(vec_id, None)

    async def count(self, collection: str) -> int:
        return len(self._collections.get(collection, {}))

    @property
    def provider_name(self) -> str:
        return "memory"


def _cosine_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of query against each row of matrix; zero norms score 0."""
    if matrix.shape[1] != query.shape[0]:
        raise ValueError(f"Dimension mismatch: {query.shape[0]} != {matrix.shape[1]}")
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    return np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)


def _metadata_match(metadata: dict[str, Any], filter: dict | None) -> bool:
    if not filter:
        return True
    return all(metadata.get(k) == v for k, v in filter.items())

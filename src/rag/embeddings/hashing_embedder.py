# src/rag/embeddings/hashing_embedder.py — v2
"""Deterministic feature-hashing embedder (EMBEDDING_PROVIDER=hashing).

No model calls: tokens are hashed into a fixed number of signed buckets and
the vector is L2-normalized. Used for local development and tests.
"""

from __future__ import annotations

from hashlib import blake2b

import numpy as np

from semantic_pager.rag.embeddings.base_embedder import BaseEmbedder


class HashingEmbedder(BaseEmbedder):
    """Bag-of-tokens embedding with signed feature hashing."""

    def __init__(self, dimensions: int = 256, model: str = "blake2b-hashing") -> None:
        if dimensions < 1:
            raise ValueError(f"dimensions must be >= 1, got {dimensions}")
        self._dimensions = dimensions
        self._model = model

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        return [self._embed(text) for text in texts]

    async def embed_query(self, query: str) -> list[float]:
        return self._embed(query)

    def _embed(self, text: str) -> list[float]:
        vector = np.zeros(self._dimensions, dtype=np.float64)
        for token in text.lower().split():
            digest = blake2b(token.encode("utf-8"), digest_size=8).digest()
            idx = int.from_bytes(digest[:4], "little") % self._dimensions
            vector[idx] += -1.0 if digest[4] % 2 else 1.0

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector.tolist()

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "hashing"

    @property
    def model_name(self) -> str:
        return self._model

# src/rag/embeddings/ollama_embedder.py — v2
"""Ollama embedding adapter (local inference).

Uses the Ollama REST API for local embedding generation.
Models: nomic-embed-text, mxbai-embed-large, etc.
The blocking HTTP call runs in a worker thread so the event loop keeps
serving cached pages meanwhile.
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.request

from semantic_pager.rag.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)


class OllamaEmbedder(BaseEmbedder):
    """Local embeddings via Ollama API."""

    def __init__(
        self,
        model: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        dimensions: int = 768,
        timeout_s: float = 30.0,
    ) -> None:
        self._model_name = model
        self._base_url = base_url.rstrip("/")
        self._dimensions = dimensions
        self._timeout_s = timeout_s

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed texts in one /api/embed call."""
        if not texts:
            return []
        return await asyncio.to_thread(self._post_embed, texts)

    async def embed_query(self, query: str) -> list[float]:
        """Embed a single query via Ollama API."""
        embeddings = await asyncio.to_thread(self._post_embed, [query])
        return embeddings[0]

    def _post_embed(self, inputs: list[str]) -> list[list[float]]:
        url = f"{self._base_url}/api/embed"
        payload = json.dumps({"model": self._model_name, "input": inputs}).encode("utf-8")
        req = urllib.request.Request(
            url, data=payload, headers={"Content-Type": "application/json"}
        )
        with urllib.request.urlopen(req, timeout=self._timeout_s) as resp:
            data = json.loads(resp.read().decode("utf-8"))
        embeddings = data.get("embeddings", [])
        if len(embeddings) != len(inputs):
            raise RuntimeError(
                f"Ollama returned {len(embeddings)} embeddings for {len(inputs)} "
                f"inputs (model {self._model_name})"
            )
        return embeddings

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "ollama"

    @property
    def model_name(self) -> str:
        return self._model_name

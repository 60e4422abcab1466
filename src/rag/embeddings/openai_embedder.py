# src/rag/embeddings/openai_embedder.py — v2
"""OpenAI embedding adapter.

Uses the openai SDK for embedding generation.
Models: text-embedding-3-small, text-embedding-3-large.
"""

from __future__ import annotations

import logging

from semantic_pager.rag.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)

# Only the v3 models accept a reduced output dimension.
_SHORTENABLE_MODELS = {"text-embedding-3-small", "text-embedding-3-large"}


class OpenAIEmbedder(BaseEmbedder):
    """Embeddings via OpenAI API."""

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        dimensions: int = 1536,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._dimensions = dimensions
        self.__client = None

    @property
    def _client(self):
        if self.__client is None:
            try:
                import openai
            except ImportError as e:
                raise ImportError(
                    "openai package required: pip install openai"
                ) from e
            self.__client = openai.AsyncOpenAI(api_key=self._api_key or "")
        return self.__client

    def _request_kwargs(self) -> dict:
        kwargs: dict = {"model": self._model}
        if self._model in _SHORTENABLE_MODELS:
            kwargs["dimensions"] = self._dimensions
        return kwargs

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts, preserving input order."""
        if not texts:
            return []
        response = await self._client.embeddings.create(
            input=texts, **self._request_kwargs()
        )
        ordered = sorted(response.data, key=lambda item: item.index)
        return [item.embedding for item in ordered]

    async def embed_query(self, query: str) -> list[float]:
        """Embed a single query (same endpoint, no special instruction)."""
        response = await self._client.embeddings.create(
            input=[query], **self._request_kwargs()
        )
        return response.data[0].embedding

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model

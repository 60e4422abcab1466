# src/rag/vector_store/vector_store_factory.py — v2
"""Factory: instantiate vector store from configuration."""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from semantic_pager.config.settings import Settings
from semantic_pager.rag.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


class UnsupportedVectorStoreError(ValueError):
    """Raised when a vector store type is not supported."""


def create_vector_store(settings: Settings | None = None) -> BaseVectorStore:
    """Instantiate the configured vector store.

    Args:
        settings: Application settings (VECTOR_DB_TYPE). None = in-memory.

    Returns:
        Configured BaseVectorStore instance.

    Raises:
        UnsupportedVectorStoreError: If type is not supported.
    """
    db_type = "memory" if settings is None else settings.vector_db_type

    if db_type == "memory":
        from semantic_pager.rag.vector_store.memory_store import InMemoryVectorStore
        return InMemoryVectorStore()

    if db_type == "chromadb":
        from semantic_pager.rag.vector_store.chromadb_store import ChromaDBStore
        url = settings.vector_db_url
        if url:
            parsed = urlparse(url if "://" in url else f"http://{url}")
            logger.debug("Connecting to remote ChromaDB at %s", parsed.hostname)
            return ChromaDBStore(host=parsed.hostname, port=parsed.port or 8000)
        return ChromaDBStore(persist_path=str(settings.vector_db_path))

    raise UnsupportedVectorStoreError(
        f"Unsupported vector store type: {db_type!r}. "
        f"Available: memory, chromadb"
    )

# tests/integration/conftest.py — v8
"""Shared fixtures for integration tests.

Everything except the Redis store runs without external services: the
paginator is wired to the hashing embedder and the in-memory vector store
over a small seeded corpus.

Redis lifecycle (testcontainers):
- session scope: the container starts once per pytest session
- function scope: the database is flushed before each test
- uses DockerContainer directly with bridge network IP + internal port, for
  devcontainers with docker-outside-of-docker where localhost:mapped_port
  is unreachable
"""

from __future__ import annotations

import logging
import time

import pytest
import pytest_asyncio

from semantic_pager.rag.embeddings.hashing_embedder import HashingEmbedder
from semantic_pager.rag.vector_store.memory_store import InMemoryVectorStore

logger = logging.getLogger(__name__)

CORPUS_COLLECTION = "corpus"
_TOPICS = ["vector", "database", "index", "search", "cache", "query", "page", "rank"]


# ── Pytest markers ──────────────────────────────────────────────

def pytest_configure(config):
    config.addinivalue_line("markers", "redis: marks tests requiring Redis container")


# =====================================================================
#  DEVCONTAINER NETWORKING HELPERS
# =====================================================================

def _get_container_bridge_ip(container, max_attempts: int = 10) -> str:
    """Get container bridge network IP with retries."""
    for attempt in range(max_attempts):
        try:
            wrapped = container.get_wrapped_container()
            wrapped.reload()
            networks = wrapped.attrs.get("NetworkSettings", {}).get("Networks", {})
            for net_name, net_info in networks.items():
                ip = net_info.get("IPAddress", "")
                if ip:
                    logger.info(
                        "Container %s IP: %s (network: %s, attempt %d)",
                        wrapped.short_id, ip, net_name, attempt + 1,
                    )
                    return ip
            logger.debug("Container IP empty, attempt %d/%d", attempt + 1, max_attempts)
        except Exception as e:
            logger.debug("Error getting IP (attempt %d): %s", attempt + 1, e)
        time.sleep(0.5)

    raise RuntimeError(
        f"Could not obtain container bridge IP after {max_attempts} attempts"
    )


def _docker_available() -> bool:
    """Check if Docker daemon is reachable."""
    try:
        import docker
        client = docker.from_env()
        client.ping()
        return True
    except Exception:
        return False


# =====================================================================
#  SEEDED CORPUS — no Docker required
# =====================================================================

def corpus_documents(n: int = 300) -> list[tuple[str, str, dict]]:
    """n deterministic (id, text, metadata) documents over a small vocabulary."""
    docs = []
    for i in range(n):
        words = [_TOPICS[(i * k) % len(_TOPICS)] for k in (1, 3, 5)]
        docs.append((
            f"doc_{i:04d}",
            " ".join(words) + f" item{i}",
            {"lang": "en" if i % 3 else "fr", "n": i},
        ))
    return docs


@pytest.fixture
def hashing_embedder() -> HashingEmbedder:
    return HashingEmbedder(dimensions=64)


@pytest_asyncio.fixture
async def seeded_vector_store(hashing_embedder) -> InMemoryVectorStore:
    store = InMemoryVectorStore()
    docs = corpus_documents()
    await store.upsert(
        CORPUS_COLLECTION,
        ids=[d[0] for d in docs],
        embeddings=await hashing_embedder.embed_texts([d[1] for d in docs]),
        documents=[d[1] for d in docs],
        metadatas=[d[2] for d in docs],
    )
    return store


# =====================================================================
#  REDIS CONTAINER — session scope (bridge IP)
# =====================================================================

REDIS_IMAGE = "redis:7-alpine"
REDIS_INTERNAL_PORT = 6379


@pytest.fixture(scope="session")
def redis_container():
    if not _docker_available():
        pytest.skip("Docker not available")

    from testcontainers.core.container import DockerContainer
    from testcontainers.core.waiting_utils import wait_for_logs

    container = DockerContainer(REDIS_IMAGE).with_exposed_ports(REDIS_INTERNAL_PORT)
    container.start()
    wait_for_logs(container, predicate=r"Ready to accept connections", timeout=30)

    ip = _get_container_bridge_ip(container)
    logger.info("Redis ready at %s:%d", ip, REDIS_INTERNAL_PORT)
    yield f"redis://{ip}:{REDIS_INTERNAL_PORT}/0"
    container.stop()


@pytest.fixture
def redis_url(redis_container) -> str:
    import redis

    client = redis.Redis.from_url(redis_container)
    client.flushdb()
    client.close()
    return redis_container

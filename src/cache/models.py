# src/cache/models.py — v2
"""Cache domain models: SessionFingerprint, CacheStats."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class SessionFingerprint(BaseModel):
    """Deterministic cache key for one search session."""

    model_config = ConfigDict(frozen=True)

    subject: str
    normalized_query: str
    fetch_size: int
    key: str

    def __str__(self) -> str:
        return self.key


class CacheStats(BaseModel):
    """Counters exposed by CandidateSetCache for operators."""

    hits: int = 0
    misses: int = 0
    shared_waits: int = 0
    fetches: int = 0
    fetch_failures: int = 0
    store_hits: int = 0
    evictions: int = 0
    expirations: int = 0
    invalidations: int = 0
    storage_errors: int = 0
    degraded: bool = False
    resident: int = 0
    in_flight: int = 0

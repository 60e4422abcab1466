# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
CandidateEntry and CandidateSet are frozen: once a candidate set is
published it is shared by every page request of its session without locking.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


# === CANDIDATES ===


class CandidateEntry(BaseModel):
    """One normalized search result. Higher score = more relevant."""

    model_config = ConfigDict(frozen=True)

    id: str
    score: float
    payload: dict[str, Any] = Field(default_factory=dict)


class CandidateSet(BaseModel):
    """Materialized result of one backend fetch, ordered by rank.

    The entry order never changes after construction and slicing returns a
    new tuple; the set itself is replaced (never mutated) on expiry.
    """

    model_config = ConfigDict(frozen=True)

    fingerprint: str
    entries: tuple[CandidateEntry, ...] = ()
    fetched_at: datetime
    expires_at: datetime
    fetch_size: int = Field(ge=1)

    @model_validator(mode="after")
    def _check_invariants(self) -> CandidateSet:
        if self.expires_at < self.fetched_at:
            raise ValueError("expires_at must not precede fetched_at")
        seen: set[str] = set()
        for entry in self.entries:
            if entry.id in seen:
                raise ValueError(f"Duplicate candidate id in set: {entry.id!r}")
            seen.add(entry.id)
        return self

    @property
    def size(self) -> int:
        """Number of candidates materialized in this set."""
        return len(self.entries)

    @property
    def filled(self) -> bool:
        """True when the backend returned as many candidates as requested."""
        return len(self.entries) >= self.fetch_size

    def is_expired(self, now: datetime) -> bool:
        """Stale once now >= expires_at."""
        return now >= self.expires_at

    def slice(self, start: int, end: int) -> tuple[CandidateEntry, ...]:
        """Return entries[start:end] clipped to the set bounds."""
        return self.entries[start:end]


# === PAGINATION ===


class PageRequest(BaseModel):
    """One page request for a (subject, query) search session."""

    subject: str
    query: str
    page: int = 1
    page_size: int = 20
    fetch_size: int | None = None
    filters: dict[str, Any] | None = None


class PageResult(BaseModel):
    """One page sliced from a cached candidate set.

    total_candidates counts the candidates materialized in this session
    (bounded by the fetch size), NOT the true number of matches in the
    backend. See ``truncated``.
    """

    items: list[CandidateEntry]
    page: int
    page_size: int
    total_candidates: int
    total_pages: int
    has_next: bool
    has_prev: bool
    fingerprint: str
    fetch_size: int
    fetched_at: datetime
    expires_at: datetime

    @property
    def truncated(self) -> bool:
        """True when the session hit its fetch size; more matches may exist.

        Counted after duplicate ids are dropped, so a backend that returns
        fetch_size hits with repeats reports False even though more distinct
        matches may exist.
        """
        return self.total_candidates >= self.fetch_size

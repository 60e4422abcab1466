# src/core/errors.py — v1
"""Error taxonomy shared by the cache and the paginator."""

from __future__ import annotations


class PagerError(Exception):
    """Base class for all semantic_pager errors."""


class InvalidArgument(PagerError, ValueError):
    """Caller error (non-positive page, page size or fetch size). Not retried."""


class BackendFetchFailed(PagerError):
    """The embedding or similarity-search collaborator failed.

    Delivered to every caller awaiting the same fingerprint. Never cached:
    the next call for the fingerprint starts a fresh fetch.
    """

    def __init__(self, fingerprint: str, message: str) -> None:
        self.fingerprint = fingerprint
        super().__init__(f"Backend fetch failed for {fingerprint}: {message}")


class CacheStorageUnavailable(PagerError):
    """The external key-value store is unreachable.

    Raised by cache stores; the candidate cache absorbs it and degrades to
    process-local behaviour.
    """

    def __init__(self, backend: str, message: str) -> None:
        self.backend = backend
        super().__init__(f"Cache storage '{backend}' unavailable: {message}")

# src/cache/fingerprint.py — v3
"""Session fingerprinting for candidate set lookup.

A fingerprint identifies one search session: (subject, normalized query,
fetch size, optional search filters). Distinct subjects must never share a
key, so every component is length-prefixed before hashing.
"""

from __future__ import annotations

import hashlib
import json
import re
import unicodedata
from typing import Any

from semantic_pager.cache.models import SessionFingerprint
from semantic_pager.core.errors import InvalidArgument

FINGERPRINT_VERSION = "v1"
KEY_PREFIX = f"pager:{FINGERPRINT_VERSION}:"


def compute_session_fingerprint(
    subject: str,
    query: str,
    fetch_size: int,
    filters: dict[str, Any] | None = None,
) -> SessionFingerprint:
    """Compute the cache key for a search session.

    Args:
        subject: Caller identity. Compared exactly, never normalized.
        query: Raw query text; normalized with normalize_query().
        fetch_size: Number of candidates fetched per session (K).
        filters: Backend search filters, folded into the key when present.

    Returns:
        SessionFingerprint whose ``key`` is ``pager:v1:<sha256 hex>``.

    Raises:
        InvalidArgument: If subject is empty or fetch_size < 1.
    """
    if not subject:
        raise InvalidArgument("subject must be a non-empty string")
    if fetch_size < 1:
        raise InvalidArgument(f"fetch_size must be >= 1, got {fetch_size}")

    normalized = normalize_query(query)
    parts = [
        FINGERPRINT_VERSION,
        subject,
        normalized,
        str(fetch_size),
        _canonical_filters(filters),
    ]

    digest = hashlib.sha256()
    for part in parts:
        encoded = part.encode("utf-8")
        digest.update(len(encoded).to_bytes(8, "big"))
        digest.update(encoded)

    return SessionFingerprint(
        subject=subject,
        normalized_query=normalized,
        fetch_size=fetch_size,
        key=f"{KEY_PREFIX}{digest.hexdigest()}",
    )


def normalize_query(text: str) -> str:
    """Normalize query text: NFKC, casefold, collapse whitespace.

    Punctuation is kept; "c++" and "c" are different searches.
    """
    text = unicodedata.normalize("NFKC", text)
    text = text.casefold()
    text = re.sub(r"\s+", " ", text).strip()
    return text


def _canonical_filters(filters: dict[str, Any] | None) -> str:
    """Stable JSON encoding of search filters (empty string when absent)."""
    if not filters:
        return ""
    return json.dumps(filters, sort_keys=True, separators=(",", ":"), default=str)

# src/logging/context.py — v2
"""Contextual logging support — attach session fingerprint and page to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging — set per page request.
_fingerprint: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "fingerprint", default=None
)
_page: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "page", default=None
)
_page_size: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "page_size", default=None
)


@dataclass
class LogContext:
    """Snapshot of current logging context."""

    fingerprint: str | None = None
    page: int | None = None
    page_size: int | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        fingerprint=_fingerprint.get(),
        page=_page.get(),
        page_size=_page_size.get(),
    )


def set_page_context(fingerprint: str, page: int, page_size: int) -> None:
    """Set request-level context (called once per page request)."""
    _fingerprint.set(fingerprint)
    _page.set(page)
    _page_size.set(page_size)


def clear_context() -> None:
    """Reset all context variables."""
    _fingerprint.set(None)
    _page.set(None)
    _page_size.set(None)

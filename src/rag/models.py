# src/rag/models.py — v1
"""Search backend result model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class SearchResult(BaseModel):
    """One hit from a vector store query, in backend rank order."""

    source_id: str
    content: str = ""
    score: float
    metadata: dict[str, Any] = Field(default_factory=dict)

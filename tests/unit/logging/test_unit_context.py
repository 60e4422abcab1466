# tests/unit/logging/test_unit_context.py — v2
"""Tests for logging/context.py — contextual logging variables."""

from __future__ import annotations

import asyncio

import pytest

from semantic_pager.logging.context import clear_context, get_context, set_page_context


class TestLogContext:
    def test_initial_state(self):
        ctx = get_context()
        assert ctx.fingerprint is None
        assert ctx.page is None
        assert ctx.page_size is None

    def test_set_page_context(self):
        set_page_context("pager:v1:abc", 2, 50)
        ctx = get_context()
        assert ctx.fingerprint == "pager:v1:abc"
        assert ctx.page == 2
        assert ctx.page_size == 50

    def test_as_dict_filters_none(self):
        assert get_context().as_dict() == {}
        set_page_context("k", 1, 20)
        assert set(get_context().as_dict()) == {"fingerprint", "page", "page_size"}

    def test_clear(self):
        set_page_context("k", 1, 20)
        clear_context()
        assert get_context().fingerprint is None

    @pytest.mark.asyncio
    async def test_tasks_do_not_share_context(self):
        async def serve(page: int) -> int | None:
            set_page_context("k", page, 10)
            await asyncio.sleep(0)
            return get_context().page

        results = await asyncio.gather(serve(1), serve(2))
        assert results == [1, 2]

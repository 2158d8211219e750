# tests/unit/logging/test_unit_context.py — v3
"""Tests for logging/context.py — contextual logging variables."""

from __future__ import annotations

import asyncio

import pytest

from revycore.logging.context import (
    clear_context,
    get_context,
    reset_context,
    set_agent_context,
    set_batch_context,
    set_session_context,
    set_task_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.session_id is None
        assert ctx.batch_id is None
        assert ctx.task_id is None
        assert ctx.agent is None

    def test_setters(self):
        set_session_context("s1")
        set_batch_context("b1")
        set_task_context("t1")
        set_agent_context("moderator")
        ctx = get_context()
        assert (ctx.session_id, ctx.batch_id, ctx.task_id, ctx.agent) == ("s1", "b1", "t1", "moderator")

    def test_as_dict_filters_none(self):
        set_session_context("s1")
        d = get_context().as_dict()
        assert d == {"session_id": "s1"}

    def test_clear(self):
        set_task_context("t1")
        set_agent_context("x")
        clear_context()
        assert get_context().as_dict() == {}

    @pytest.mark.asyncio
    async def test_task_context_isolated_per_asyncio_task(self):
        async def worker(task_id: str) -> str | None:
            set_task_context(task_id)
            await asyncio.sleep(0)
            return get_context().task_id

        results = await asyncio.gather(worker("a"), worker("b"))
        assert results == ["a", "b"]
        assert get_context().task_id is None

    def test_reset_restores_previous_value(self):
        set_agent_context("moderator")
        token = set_agent_context("auditor")
        assert get_context().agent == "auditor"
        reset_context(token)
        assert get_context().agent == "moderator"

"""Tests for the debounce scheduler."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from attachsync.core.scheduler import DebounceScheduler


def make_scheduler(delay: float = 0.05):
    callback = AsyncMock(return_value=1)
    return DebounceScheduler(callback, lambda: delay), callback


class TestDebounceScheduler:
    """Tests for per-key coalescing."""

    @pytest.mark.asyncio
    async def test_burst_runs_once_with_latest_args(self):
        """Three rapid triggers produce one call with the last arguments."""
        scheduler, callback = make_scheduler()

        scheduler.trigger("a.md", "first")
        scheduler.trigger("a.md", "second")
        scheduler.trigger("a.md", "third")
        await asyncio.sleep(0.15)
        await scheduler.wait_running()

        callback.assert_awaited_once_with("third")
        assert not scheduler.is_pending("a.md")

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        scheduler, callback = make_scheduler()

        scheduler.trigger("a.md", "a")
        scheduler.trigger("b.md", "b")
        assert scheduler.pending_count == 2

        await asyncio.sleep(0.15)
        await scheduler.wait_running()

        assert callback.await_count == 2
        assert scheduler.pending_count == 0

    @pytest.mark.asyncio
    async def test_deadline_is_not_pushed_back(self):
        """Later triggers do not delay the first deadline."""
        scheduler, callback = make_scheduler(delay=0.2)

        scheduler.trigger("a.md", 1)
        await asyncio.sleep(0.15)
        scheduler.trigger("a.md", 2)
        await asyncio.sleep(0.12)
        await scheduler.wait_running()

        callback.assert_awaited_once_with(2)

    @pytest.mark.asyncio
    async def test_new_trigger_after_fire_schedules_again(self):
        scheduler, callback = make_scheduler(delay=0.01)

        scheduler.trigger("a.md", 1)
        await asyncio.sleep(0.05)
        scheduler.trigger("a.md", 2)
        await asyncio.sleep(0.05)
        await scheduler.wait_running()

        assert callback.await_count == 2

    @pytest.mark.asyncio
    async def test_cancel(self):
        scheduler, callback = make_scheduler()

        scheduler.trigger("a.md", 1)

        assert scheduler.cancel("a.md") is True
        assert scheduler.cancel("a.md") is False
        await asyncio.sleep(0.1)
        callback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        scheduler, callback = make_scheduler()
        scheduler.trigger("a.md", 1)
        scheduler.trigger("b.md", 2)

        assert scheduler.cancel_all() == 2
        await asyncio.sleep(0.1)

        callback.assert_not_awaited()
        assert scheduler.pending_count == 0

    @pytest.mark.asyncio
    async def test_failing_callback_is_logged(self, caplog):
        callback = AsyncMock(side_effect=RuntimeError("boom"))
        scheduler = DebounceScheduler(callback, lambda: 0)

        scheduler.trigger("a.md")
        await asyncio.sleep(0.01)
        await scheduler.wait_running()
        await asyncio.sleep(0)

        assert "Deferred call failed" in caplog.text

    @pytest.mark.asyncio
    async def test_pop_returns_args_and_cancels(self):
        scheduler, callback = make_scheduler()
        scheduler.trigger("a.md", "entry", "Old")

        assert scheduler.pending_args("a.md") == ("entry", "Old")
        assert scheduler.pop("a.md") == ("entry", "Old")
        assert scheduler.pop("a.md") is None
        assert scheduler.pending_args("a.md") is None
        await asyncio.sleep(0.1)

        callback.assert_not_awaited()

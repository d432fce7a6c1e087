"""Debounce scheduler - coalesces bursts of rename events per note.

The first trigger for a key schedules a call ``delay`` seconds later. Triggers
arriving before it fires replace the arguments but keep the deadline, so a
burst produces exactly one call. Entries are removed when they fire or are
cancelled.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class _PendingCall:
    handle: asyncio.TimerHandle
    args: tuple[Any, ...]


class DebounceScheduler:
    """Per-key registry of cancellable deferred calls."""

    def __init__(
        self,
        callback: Callable[..., Awaitable[Any]],
        delay_provider: Callable[[], float],
    ):
        """
        Initialize scheduler.

        Args:
            callback: Coroutine function invoked with the latest trigger arguments
            delay_provider: Returns the current delay in seconds
        """
        self._callback = callback
        self._delay_provider = delay_provider
        self._pending: dict[str, _PendingCall] = {}
        self._running: set[asyncio.Task] = set()

    def trigger(self, key: str, *args: Any) -> None:
        """Schedule (or refresh the arguments of) the call for ``key``.

        Must be called from the event loop thread.
        """
        pending = self._pending.get(key)
        if pending is not None:
            pending.args = args
            logger.debug(f"Coalesced trigger for {key}")
            return

        delay = self._delay_provider()
        loop = asyncio.get_running_loop()
        handle = loop.call_later(delay, self._fire, key)
        self._pending[key] = _PendingCall(handle=handle, args=args)
        logger.debug(f"Scheduled {key} in {delay:.3f}s")

    def _fire(self, key: str) -> None:
        pending = self._pending.pop(key, None)
        if pending is None:
            return
        task = asyncio.ensure_future(self._callback(*pending.args))
        self._running.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._running.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Deferred call failed: {exc}", exc_info=exc)

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def cancel(self, key: str) -> bool:
        """Cancel the pending call for ``key`` without running it."""
        pending = self._pending.pop(key, None)
        if pending is None:
            return False
        pending.handle.cancel()
        return True

    def pending_args(self, key: str) -> tuple[Any, ...] | None:
        pending = self._pending.get(key)
        return pending.args if pending is not None else None

    def pop(self, key: str) -> tuple[Any, ...] | None:
        """Cancel the pending call for ``key`` and return its arguments."""
        pending = self._pending.pop(key, None)
        if pending is None:
            return None
        pending.handle.cancel()
        return pending.args

    def cancel_all(self) -> int:
        """Cancel every pending call without running it."""
        count = len(self._pending)
        for pending in self._pending.values():
            pending.handle.cancel()
        self._pending.clear()
        return count

    async def wait_running(self) -> None:
        """Wait for calls that already fired to finish."""
        if self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

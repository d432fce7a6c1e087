"""Rename notifications and the subscriptions that deliver them."""

import logging
from threading import Lock

from attachsync.core.types import RenameCallback, VaultEntry

logger = logging.getLogger(__name__)


class Subscription:
    """Handle returned by ``RenameEmitter.on_rename``; close it to unsubscribe."""

    def __init__(self, emitter: "RenameEmitter", callback: RenameCallback):
        self._emitter = emitter
        self._callback = callback
        self.closed = False

    def close(self) -> None:
        if not self.closed:
            self._emitter._remove(self._callback)
            self.closed = True

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class RenameEmitter:
    """Source of ``(entry, old_path)`` rename notifications."""

    def __init__(self):
        self._callbacks: list[RenameCallback] = []
        self._callbacks_lock = Lock()

    def on_rename(self, callback: RenameCallback) -> Subscription:
        """Register a callback for every successful rename."""
        with self._callbacks_lock:
            self._callbacks.append(callback)
        return Subscription(self, callback)

    def _remove(self, callback: RenameCallback) -> None:
        with self._callbacks_lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    def emit_rename(self, entry: VaultEntry, old_path: str) -> None:
        """Deliver a rename to every subscriber; one failing callback does not stop the rest."""
        with self._callbacks_lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback(entry, old_path)
            except Exception:
                logger.exception(f"Rename callback failed for {old_path} -> {entry.path}")

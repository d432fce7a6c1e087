"""Watchdog-based rename event source for a local vault."""

import asyncio
import logging

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from attachsync.core.events import RenameEmitter
from attachsync.core.types import EntryKind, VaultEntry
from attachsync.vault.local import LocalVault

logger = logging.getLogger(__name__)


def _as_str(path: str | bytes) -> str:
    return path if isinstance(path, str) else path.decode("utf-8")


class VaultEventHandler(FileSystemEventHandler):
    """Translates filesystem events into vault rename notifications."""

    def __init__(self, watcher: "VaultWatcher"):
        super().__init__()
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        self.watcher.vault.invalidate()

    def on_deleted(self, event: FileSystemEvent) -> None:
        self.watcher.vault.invalidate()

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle file move/rename events."""
        self.watcher.vault.invalidate()
        if event.is_directory:
            return

        old_path = self.watcher.vault.to_vault_path(_as_str(event.src_path))
        new_path = self.watcher.vault.to_vault_path(_as_str(event.dest_path))
        if old_path is None or new_path is None:
            return

        logger.debug(f"File moved: {old_path} -> {new_path}")
        self.watcher.dispatch(VaultEntry(new_path, EntryKind.FILE), old_path)


class VaultWatcher(RenameEmitter):
    """Observes a vault directory and emits renames on the asyncio loop.

    Watchdog delivers events on its own thread; notifications are handed to
    the loop with ``call_soon_threadsafe`` so subscribers always run on the
    loop thread.
    """

    def __init__(self, vault: LocalVault, loop: asyncio.AbstractEventLoop):
        """
        Initialize watcher.

        Args:
            vault: Vault to observe
            loop: Event loop subscribers run on
        """
        super().__init__()
        self.vault = vault
        self.loop = loop
        self.observer: Observer | None = None

    def dispatch(self, entry: VaultEntry, old_path: str) -> None:
        """Deliver a rename from any thread."""
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.emit_rename, entry, old_path)

    def start(self) -> None:
        self.observer = Observer()
        self.observer.schedule(VaultEventHandler(self), str(self.vault.root), recursive=True)
        self.observer.start()
        logger.info(f"Watching {self.vault.root}")

    def stop(self, timeout: float = 5.0) -> None:
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join(timeout=timeout)
        if self.observer.is_alive():
            logger.warning("Observer did not stop within timeout")
        self.observer = None

    @property
    def is_running(self) -> bool:
        return self.observer is not None and self.observer.is_alive()

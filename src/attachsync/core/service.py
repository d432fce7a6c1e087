"""AttachmentService - lifecycle owner for attachsync.

Wires rename events to the debounce scheduler and the reconciliation engine,
and exposes the user commands (process one note, process everything).
Everything process-wide lives on this instance: the in-flight guards, the
pending timers and the event subscriptions. ``shutdown()`` drains all three.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import date

from attachsync.core.batch import BatchReport, process_all_in_scope
from attachsync.core.engine import ReconciliationEngine
from attachsync.core.events import RenameEmitter, Subscription
from attachsync.core.paths import name_of, normalize_path, split_name
from attachsync.core.scheduler import DebounceScheduler
from attachsync.core.scope import is_scope_valid
from attachsync.core.settings import Settings, SettingsStore
from attachsync.core.types import Notifier, VaultEntry, VaultHost

logger = logging.getLogger(__name__)


def note_name_from_path(path: str) -> str:
    """Basename of a note path (``"a/Old.md"`` -> ``"Old"``)."""
    name = name_of(path)
    base, ext = split_name(name)
    return base if ext.lower() == "md" else name


def _log_notification(message: str) -> None:
    logger.info(message)


class AttachmentService:
    """Keeps attachments named after the notes that reference them."""

    def __init__(
        self,
        host: VaultHost,
        store: SettingsStore,
        notify: Notifier | None = None,
        today: Callable[[], date] | None = None,
    ):
        """
        Initialize the service.

        Args:
            host: Vault host (link index, filesystem, rename primitive)
            store: Settings store, read at the start of every pass
            notify: Sink for user-facing notifications (logs by default)
            today: Clock for the ``${date}`` variable
        """
        self.host = host
        self.store = store
        self.notify: Notifier = notify or _log_notification
        self.engine = ReconciliationEngine(host, self._settings, today=today)
        self.scheduler = DebounceScheduler(
            self._run_pass,
            lambda: self._settings().debounce_delay_ms / 1000,
        )
        self._subscriptions: list[Subscription] = []

    def _settings(self) -> Settings:
        return self.store.settings

    async def _run_pass(self, note: VaultEntry, old_note_name: str | None) -> int:
        return await self.engine.process_note_attachments(note, old_note_name)

    def start(self, sources: Iterable[RenameEmitter]) -> None:
        """Subscribe to rename notifications from each source."""
        for source in sources:
            self._subscriptions.append(source.on_rename(self.handle_rename))
        logger.info(f"Attachment service started ({len(self._subscriptions)} source(s))")

    def handle_rename(self, entry: VaultEntry, old_path: str) -> None:
        """Schedule a pass for a renamed note, if auto-rename applies."""
        settings = self._settings()
        if not settings.enable_auto_rename:
            return
        if not entry.is_note:
            return

        old_name = note_name_from_path(old_path)
        # A pass still waiting under the previous path follows the note, keeping
        # the earliest stale name
        stale = self.scheduler.pop(normalize_path(old_path))
        if stale is not None:
            old_name = stale[1]
            logger.debug(f"Moved pending pass {old_path} -> {entry.path}")
        else:
            # The same rename reported by several sources
            queued = self.scheduler.pending_args(entry.path)
            if queued is not None:
                old_name = queued[1]

        if not is_scope_valid(entry.path, settings):
            logger.debug(f"{entry.path} is out of scope, ignoring rename")
            return
        self.scheduler.trigger(entry.path, entry, old_name)

    async def process_active_note(self, path: str) -> int:
        """
        Reconcile one note now (the "process active note" command).

        Returns:
            Number of attachments renamed (0 when out of scope or not a note)
        """
        entry = self.host.get_entry(normalize_path(path))
        if not entry.is_note:
            self.notify(f"Not a note: {path}")
            return 0
        if not is_scope_valid(entry.path, self._settings()):
            self.notify("Note is outside the configured scope.")
            return 0
        return await self.engine.process_note_attachments(entry, None)

    async def process_all(self) -> BatchReport:
        """Reconcile every note in scope."""
        return await process_all_in_scope(self.engine, self._settings, self.notify)

    async def rename_note(self, path: str, new_path: str) -> int:
        """
        Rename a note through the host and reconcile it right away.

        Returns:
            Number of attachments renamed
        """
        entry = self.host.get_entry(normalize_path(path))
        if not entry.is_note:
            self.notify(f"Not a note: {path}")
            return 0
        target = normalize_path(new_path)
        if not target.lower().endswith(".md"):
            target = f"{target}.md"
        await self.host.rename_file(entry, target)
        renamed_entry = self.host.get_entry(target)
        if not is_scope_valid(renamed_entry.path, self._settings()):
            self.notify("Note is outside the configured scope.")
            return 0
        return await self.engine.process_note_attachments(
            renamed_entry, note_name_from_path(entry.path)
        )

    async def shutdown(self) -> None:
        """Release subscriptions, cancel pending timers and drop guards."""
        for subscription in self._subscriptions:
            subscription.close()
        self._subscriptions.clear()
        cancelled = self.scheduler.cancel_all()
        await self.scheduler.wait_running()
        self.engine.clear()
        logger.info(f"Attachment service stopped ({cancelled} pending pass(es) cancelled)")

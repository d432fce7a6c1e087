"""Reconciliation engine - renames the attachments of one note.

A reconciliation pass discovers every attachment a note embeds or links,
computes its templated name and destination, resolves collisions and asks the
host to move it. The host's rename primitive rewrites every link to the
attachment, so the note stays consistent after each individual move.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import date

from attachsync.core.collisions import resolve_collision
from attachsync.core.errors import FolderConflictError
from attachsync.core.paths import ROOT, join_path, normalize_path
from attachsync.core.rules import effective_policy
from attachsync.core.settings import Settings
from attachsync.core.templating import (
    FILENAME_PLACEHOLDER,
    build_variables,
    render_name,
    strip_note_name,
    strip_old_document_name,
)
from attachsync.core.types import (
    AttachmentReference,
    LocationMode,
    NoteCache,
    VaultEntry,
    VaultHost,
)

logger = logging.getLogger(__name__)


def clean_link(link: str) -> str:
    """Drop ``#heading`` and ``^block`` suffixes from a link target."""
    return link.split("#", 1)[0].split("^", 1)[0]


def resolve_target_folder(path_pattern: str, note: VaultEntry) -> str:
    """
    Destination folder for a path pattern.

    ``./x`` is relative to the note's folder; anything else is a vault path.
    """
    if path_pattern.startswith("./"):
        relative = path_pattern[2:]
        if note.parent == ROOT:
            return normalize_path(relative)
        return normalize_path(f"{note.parent}/{relative}")
    return normalize_path(path_pattern)


class ReconciliationEngine:
    """Renames and relocates the attachments referenced by a note."""

    def __init__(
        self,
        host: VaultHost,
        settings_provider: Callable[[], Settings],
        today: Callable[[], date] | None = None,
    ):
        """
        Initialize the engine.

        Args:
            host: Link index and filesystem primitives
            settings_provider: Returns the current settings snapshot
            today: Clock for the ``${date}`` variable (defaults to date.today)
        """
        self.host = host
        self._settings_provider = settings_provider
        self._today = today or date.today
        # Note paths with a pass in progress
        self.in_flight: set[str] = set()

    def is_processing(self, note_path: str) -> bool:
        return note_path in self.in_flight

    def clear(self) -> None:
        """Drop every in-flight guard (shutdown)."""
        self.in_flight.clear()

    async def process_note_attachments(
        self, note: VaultEntry, old_note_name: str | None = None
    ) -> int:
        """
        Run one reconciliation pass over a note.

        Args:
            note: The note whose attachments should be renamed
            old_note_name: Basename the note had before a rename, if any

        Returns:
            Number of attachments renamed. 0 when the note is already being
            processed, its index never became available or anything failed.
        """
        if note.path in self.in_flight:
            logger.debug(f"Skipping {note.path}: pass already in progress")
            return 0
        self.in_flight.add(note.path)

        try:
            settings = self._settings_provider()
            cache = await self._wait_for_cache(note, settings)
            if cache is None:
                logger.debug(f"No reference index for {note.path}, skipping")
                return 0

            targets = self.discover_attachments(note, cache)
            if not targets:
                return 0

            renamed = await self._rename_targets(note, targets, old_note_name, settings)
            if renamed > 0:
                logger.info(f"Renamed {renamed} attachment(s) for {note.basename}")
            return renamed

        except Exception:
            logger.exception(f"Reconciliation failed for {note.path}")
            return 0
        finally:
            self.in_flight.discard(note.path)

    async def _wait_for_cache(
        self, note: VaultEntry, settings: Settings
    ) -> NoteCache | None:
        """Poll the host until the note is indexed or retries run out."""
        cache = self.host.get_file_cache(note)
        retries = 0
        delay = settings.limits.cache_retry_delay_ms / 1000
        while cache is None and retries < settings.limits.cache_max_retries:
            await asyncio.sleep(delay)
            cache = self.host.get_file_cache(note)
            retries += 1
        return cache

    def discover_attachments(
        self, note: VaultEntry, cache: NoteCache
    ) -> list[AttachmentReference]:
        """
        Resolve a note's references to attachment files.

        Embeds come before links; notes and self references are dropped.
        ``index`` is the position in the combined reference list.
        """
        targets: list[AttachmentReference] = []
        for index, ref in enumerate(cache.references()):
            entry = self.host.resolve_link_path(clean_link(ref.link), note.path)
            if entry is None or not entry.is_file:
                continue
            if entry.is_note or entry.path == note.path:
                continue
            targets.append(
                AttachmentReference(entry=entry, original_path=entry.path, index=index)
            )
        return targets

    async def _rename_targets(
        self,
        note: VaultEntry,
        targets: list[AttachmentReference],
        old_note_name: str | None,
        settings: Settings,
    ) -> int:
        processed: set[str] = set()
        # Folders known to exist during this pass
        checked_folders: set[str] = set()
        renamed = 0

        for target in targets:
            attachment = target.entry
            if attachment.path in processed:
                continue
            if not self.host.get_entry(attachment.path).exists:
                logger.debug(f"{attachment.path} vanished, skipping")
                continue

            policy = effective_policy(attachment.extension, settings)
            if policy is None:
                logger.debug(f"No rule for .{attachment.extension}, skipping {attachment.path}")
                continue

            original = strip_old_document_name(attachment.basename, old_note_name)
            # Only a pattern that re-inserts the note name may drop it from the original
            if FILENAME_PLACEHOLDER in policy.name_pattern and note.basename != old_note_name:
                original = strip_note_name(original, note.basename)

            variables = build_variables(
                filename=note.basename,
                original=original,
                extension=attachment.extension,
                index=target.index,
                day=self._today(),
            )
            new_base = render_name(policy.name_pattern, variables)
            new_name = (
                f"{new_base}.{attachment.extension}" if attachment.extension else new_base
            )

            if policy.location_mode is LocationMode.ORIGINAL:
                target_folder = attachment.parent
            else:
                target_folder = resolve_target_folder(policy.path_pattern, note)

            desired_path = join_path(target_folder, new_name)
            if desired_path == attachment.path:
                processed.add(attachment.path)
                continue

            final_path = resolve_collision(
                self.host,
                desired_path,
                attachment,
                target_folder,
                new_base,
                max_attempts=settings.limits.collision_max_attempts,
            )
            if final_path == attachment.path:
                processed.add(attachment.path)
                continue

            try:
                if (
                    policy.location_mode is not LocationMode.ORIGINAL
                    and target_folder not in checked_folders
                ):
                    await self.ensure_folder_exists(target_folder)
                    checked_folders.add(target_folder)

                logger.info(f"Renaming: {attachment.name} -> {final_path}")
                await self.host.rename_file(attachment, final_path)

                processed.add(final_path)
                processed.add(target.original_path)
                renamed += 1
            except Exception as e:
                logger.error(f"Error renaming {target.original_path}: {e}")

        return renamed

    async def ensure_folder_exists(self, path: str) -> None:
        """
        Create a destination folder when missing.

        Raises:
            FolderConflictError: If a file occupies the folder path.
        """
        if not path or path in (ROOT, "."):
            return
        normalized = normalize_path(path)
        existing = self.host.get_entry(normalized)
        if existing.is_folder:
            return
        if existing.exists:
            raise FolderConflictError(
                f'Cannot create folder "{normalized}" because a file exists with that name.'
            )
        await self.host.create_folder(normalized)

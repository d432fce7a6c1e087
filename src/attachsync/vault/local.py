"""Filesystem-backed vault host.

``LocalVault`` implements the host contract over a directory of Markdown
notes: reference index, link resolution, folder creation and a rename
primitive that rewrites every link to the renamed file.
"""

import asyncio
import logging
import os
import posixpath
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from threading import Lock

from attachsync.core.engine import clean_link
from attachsync.core.errors import VaultHostError
from attachsync.core.events import RenameEmitter
from attachsync.core.paths import ROOT, name_of, normalize_path, parent_of
from attachsync.core.types import EntryKind, LinkStyle, NoteCache, Reference, VaultEntry
from attachsync.vault.links import format_target, parse_references, split_fragment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _PendingLinkUpdate:
    note_path: str
    ref: Reference
    target_path: str


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


class LocalVault(RenameEmitter):
    """A vault rooted at a local directory.

    Example:
        vault = LocalVault("~/notes")
        note = vault.get_entry("Projects/Plan.md")
        cache = vault.get_file_cache(note)
    """

    def __init__(self, root: Path | str):
        """Initialize vault host.

        Args:
            root: Vault root directory (must exist)
        """
        super().__init__()
        self.root = Path(root).expanduser().resolve()
        if not self.root.is_dir():
            raise VaultHostError(f"Vault directory not found: {self.root}")
        self._files: list[str] | None = None
        self._files_lock = Lock()

    # --- Paths ---

    def absolute(self, path: str) -> Path:
        """Filesystem path for a vault path.

        Raises:
            VaultHostError: If the path escapes the vault.
        """
        normalized = normalize_path(path)
        if normalized == ROOT:
            return self.root
        if ".." in normalized.split("/"):
            raise VaultHostError(f"Path escapes the vault: {path}")
        return self.root / normalized

    def to_vault_path(self, path: Path | str) -> str | None:
        """Vault path for a filesystem path, None when outside or hidden."""
        try:
            relative = Path(path).resolve().relative_to(self.root)
        except ValueError:
            return None
        if any(_is_hidden(part) for part in relative.parts):
            return None
        return normalize_path(relative.as_posix())

    # --- File listing ---

    def invalidate(self) -> None:
        """Forget the cached file listing."""
        with self._files_lock:
            self._files = None

    def files(self) -> list[str]:
        """All visible files in the vault, sorted by path."""
        with self._files_lock:
            if self._files is None:
                self._files = self._scan()
            return list(self._files)

    def _scan(self) -> list[str]:
        found: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if not _is_hidden(d))
            base = Path(dirpath).relative_to(self.root).as_posix()
            for filename in filenames:
                if _is_hidden(filename):
                    continue
                path = filename if base == "." else f"{base}/{filename}"
                found.append(normalize_path(path))
        return sorted(found)

    def list_notes(self) -> list[VaultEntry]:
        return [e for e in (VaultEntry(p) for p in self.files()) if e.is_note]

    # --- Host contract ---

    def get_entry(self, path: str) -> VaultEntry:
        normalized = normalize_path(path)
        try:
            target = self.absolute(normalized)
        except VaultHostError:
            return VaultEntry(normalized, EntryKind.MISSING)
        if target.is_dir():
            return VaultEntry(normalized, EntryKind.FOLDER)
        if target.is_file():
            return VaultEntry(normalized, EntryKind.FILE)
        return VaultEntry(normalized, EntryKind.MISSING)

    def read_note(self, note: VaultEntry) -> str:
        return self.absolute(note.path).read_text(encoding="utf-8")

    def get_file_cache(self, note: VaultEntry) -> NoteCache | None:
        """Parse a note's references; None when the note cannot be read."""
        try:
            text = self.read_note(note)
        except (OSError, UnicodeDecodeError, VaultHostError) as e:
            logger.debug(f"Cannot index {note.path}: {e}")
            return None
        return parse_references(text)

    def resolve_link_path(self, link: str, source_path: str) -> VaultEntry | None:
        """
        Resolve link text written in ``source_path`` to a file.

        Tries the path relative to the source note, then as a vault path
        (each also with ``.md``), then any file whose path ends with the
        link, preferring the source folder, then the shortest path.
        """
        link = link.strip()
        if not link:
            return None

        files = self.files()
        known = set(files)
        source_folder = parent_of(source_path)

        candidates: list[str] = []
        if not link.startswith("/") and source_folder != ROOT:
            candidates.append(posixpath.normpath(f"{source_folder}/{link}"))
        candidates.append(posixpath.normpath(link.lstrip("/")))

        for candidate in candidates:
            if candidate == ".." or candidate.startswith("../"):
                continue
            candidate = normalize_path(candidate)
            for option in (candidate, f"{candidate}.md"):
                if option in known:
                    return VaultEntry(option)

        key = normalize_path(link).lower()
        suffixes = (key, f"{key}.md")
        matches = [
            f
            for f in files
            if any(f.lower() == s or f.lower().endswith("/" + s) for s in suffixes)
        ]
        if not matches:
            return None
        matches.sort(key=lambda f: (parent_of(f) != source_folder, len(f), f))
        return VaultEntry(matches[0])

    async def create_folder(self, path: str) -> None:
        await asyncio.to_thread(self._create_folder, path)

    def _create_folder(self, path: str) -> None:
        target = self.absolute(path)
        # FileExistsError when a file occupies the path
        target.mkdir(parents=True, exist_ok=True)
        self.invalidate()
        logger.debug(f"Created folder {path}")

    async def rename_file(self, entry: VaultEntry, new_path: str) -> None:
        """
        Move a file and rewrite every reference to it.

        Emits a rename notification once the move succeeded.

        Raises:
            VaultHostError: If the source is not a file or the destination exists.
        """
        old_path = normalize_path(entry.path)
        new_path = normalize_path(new_path)
        if old_path == new_path:
            return
        await asyncio.to_thread(self._rename_file, old_path, new_path)
        self.emit_rename(self.get_entry(new_path), old_path)

    def _rename_file(self, old_path: str, new_path: str) -> None:
        source = self.absolute(old_path)
        destination = self.absolute(new_path)
        if not source.is_file():
            raise VaultHostError(f"Not a file: {old_path}")
        if destination.exists():
            raise VaultHostError(f"Destination already exists: {new_path}")

        updates = self._collect_link_updates(old_path)

        destination.parent.mkdir(parents=True, exist_ok=True)
        os.rename(source, destination)
        self.invalidate()
        logger.debug(f"Moved {old_path} -> {new_path}")

        self._apply_link_updates(updates, old_path, new_path)

    def _collect_link_updates(self, old_path: str) -> list[_PendingLinkUpdate]:
        """References that point at ``old_path`` plus the outgoing ones of ``old_path``."""
        updates: list[_PendingLinkUpdate] = []
        for note in self.list_notes():
            cache = self.get_file_cache(note)
            if cache is None:
                continue
            for ref in cache.references():
                link_path = clean_link(ref.link)
                if not link_path:
                    continue
                resolved = self.resolve_link_path(link_path, note.path)
                if resolved is None:
                    continue
                if resolved.path == old_path or note.path == old_path:
                    updates.append(_PendingLinkUpdate(note.path, ref, resolved.path))
        return updates

    def _apply_link_updates(
        self, updates: list[_PendingLinkUpdate], old_path: str, new_path: str
    ) -> None:
        def moved(path: str) -> str:
            return new_path if path == old_path else path

        by_note: dict[str, list[_PendingLinkUpdate]] = defaultdict(list)
        for update in updates:
            by_note[moved(update.note_path)].append(update)

        for note_path, note_updates in by_note.items():
            note = VaultEntry(note_path)
            try:
                text = self.read_note(note)
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Cannot update links in {note_path}: {e}")
                continue

            changed = False
            for update in sorted(note_updates, key=lambda u: u.ref.target_start, reverse=True):
                target_path = moved(update.target_path)
                link_path = clean_link(update.ref.link)
                current = self.resolve_link_path(link_path, note_path)
                if current is not None and current.path == target_path:
                    continue
                raw = text[update.ref.target_start : update.ref.target_end]
                replacement = format_target(
                    update.ref, raw, self.link_text(update.ref, target_path, note_path)
                )
                text = (
                    text[: update.ref.target_start]
                    + replacement
                    + text[update.ref.target_end :]
                )
                changed = True

            if changed:
                self.absolute(note_path).write_text(text, encoding="utf-8")
                logger.debug(f"Updated links in {note_path}")

    def link_text(self, ref: Reference, target_path: str, note_path: str) -> str:
        """
        New link text (fragment included) pointing ``ref`` at ``target_path``.

        Wiki links keep a bare name when it is unique in the vault, otherwise
        use the vault path. Markdown links are relative to the note.
        Note links written without ``.md`` stay without it.
        """
        link_path, fragment = split_fragment(ref.link)
        target = target_path
        if target.lower().endswith(".md") and not link_path.lower().endswith(".md"):
            target = target[:-3]

        if ref.style is LinkStyle.WIKI:
            if "/" not in link_path and self._is_unique_name(name_of(target_path)):
                return name_of(target) + fragment
            return target + fragment

        folder = parent_of(note_path)
        relative = posixpath.relpath(target, "." if folder == ROOT else folder)
        return relative + fragment

    def _is_unique_name(self, name: str) -> bool:
        lowered = name.lower()
        return sum(1 for f in self.files() if name_of(f).lower() == lowered) == 1

    def __repr__(self) -> str:
        return f"LocalVault({self.root})"

"""Shared test fixtures and configuration."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from attachsync.core.errors import VaultHostError
from attachsync.core.events import RenameEmitter
from attachsync.core.paths import ROOT, name_of, normalize_path, parent_of
from attachsync.core.settings import Limits, Rule, Settings
from attachsync.core.types import (
    EntryKind,
    LocationMode,
    NoteCache,
    Reference,
    ReferenceKind,
    VaultEntry,
)


class MemoryVault(RenameEmitter):
    """In-memory host: files, folders, reference caches and a rename log."""

    def __init__(self):
        super().__init__()
        self.files: set[str] = set()
        self.folders: set[str] = set()
        self.caches: dict[str, NoteCache] = {}
        # Number of upcoming get_file_cache calls that return None, per note
        self.cache_misses: dict[str, int] = {}
        self.cache_calls = 0
        self.fail_renames: set[str] = set()
        self.renames: list[tuple[str, str]] = []
        self.created_folders: list[str] = []

    def _add_parents(self, path: str) -> None:
        parent = parent_of(path)
        while parent != ROOT:
            self.folders.add(parent)
            parent = parent_of(parent)

    def add_file(self, path: str) -> VaultEntry:
        path = normalize_path(path)
        self.files.add(path)
        self._add_parents(path)
        return VaultEntry(path)

    def add_folder(self, path: str) -> None:
        path = normalize_path(path)
        self.folders.add(path)
        self._add_parents(path)

    def add_note(
        self,
        path: str,
        embeds: tuple[str, ...] | list[str] = (),
        links: tuple[str, ...] | list[str] = (),
    ) -> VaultEntry:
        entry = self.add_file(path)
        self.caches[entry.path] = NoteCache(
            embeds=[
                Reference(link=link, original=f"![[{link}]]", kind=ReferenceKind.EMBED)
                for link in embeds
            ],
            links=[
                Reference(link=link, original=f"[[{link}]]", kind=ReferenceKind.LINK)
                for link in links
            ],
        )
        return entry

    def get_file_cache(self, note: VaultEntry) -> NoteCache | None:
        self.cache_calls += 1
        if self.cache_misses.get(note.path, 0) > 0:
            self.cache_misses[note.path] -= 1
            return None
        return self.caches.get(note.path)

    def resolve_link_path(self, link: str, source_path: str) -> VaultEntry | None:
        link = normalize_path(link)
        for option in (link, f"{link}.md"):
            if option in self.files:
                return VaultEntry(option)
        by_name = sorted(
            f for f in self.files if name_of(f) in (link, f"{link}.md")
        )
        return VaultEntry(by_name[0]) if by_name else None

    def get_entry(self, path: str) -> VaultEntry:
        path = normalize_path(path)
        if path == ROOT or path in self.folders:
            return VaultEntry(path, EntryKind.FOLDER)
        if path in self.files:
            return VaultEntry(path, EntryKind.FILE)
        return VaultEntry(path, EntryKind.MISSING)

    def list_notes(self) -> list[VaultEntry]:
        return [VaultEntry(p) for p in sorted(self.files) if p.endswith(".md")]

    async def create_folder(self, path: str) -> None:
        if path in self.files:
            raise FileExistsError(path)
        self.add_folder(path)
        self.created_folders.append(path)

    async def rename_file(self, entry: VaultEntry, new_path: str) -> None:
        old_path = entry.path
        if old_path in self.fail_renames:
            raise OSError(f"Simulated failure renaming {old_path}")
        if new_path in self.files:
            raise VaultHostError(f"Destination already exists: {new_path}")

        for note_path, cache in list(self.caches.items()):
            self.caches[note_path] = NoteCache(
                embeds=[self._relink(r, note_path, old_path, new_path) for r in cache.embeds],
                links=[self._relink(r, note_path, old_path, new_path) for r in cache.links],
            )
        self.files.discard(old_path)
        self.files.add(new_path)
        self._add_parents(new_path)
        if old_path in self.caches:
            self.caches[new_path] = self.caches.pop(old_path)
        self.renames.append((old_path, new_path))
        self.emit_rename(VaultEntry(new_path), old_path)

    def _relink(
        self, ref: Reference, note_path: str, old_path: str, new_path: str
    ) -> Reference:
        resolved = self.resolve_link_path(ref.link, note_path)
        if resolved is None or resolved.path != old_path:
            return ref
        return Reference(link=new_path, original=ref.original, kind=ref.kind)


@pytest.fixture
def memory_vault() -> MemoryVault:
    """Provide an empty in-memory vault host."""
    return MemoryVault()


@pytest.fixture
def fixed_today():
    """Clock returning a fixed date."""
    return lambda: date(2024, 3, 9)


@pytest.fixture
def make_settings():
    """Factory for settings snapshots with test-friendly limits."""

    def _make_settings(**overrides) -> Settings:
        data = {
            "rules": (),
            "limits": Limits(cache_retry_delay_ms=0),
        }
        data.update(overrides)
        return Settings(**data)

    return _make_settings


@pytest.fixture
def png_rule() -> Rule:
    """Rule moving images into ./assets named after the note."""
    return Rule(
        id="images",
        label="Images",
        extensions=("png",),
        name_pattern="${filename} ${original}",
        path_pattern="./assets",
        location_mode=LocationMode.PATTERN,
    )


@pytest.fixture
def vault_dir(tmp_path) -> Path:
    """Provide an empty vault directory on disk."""
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def write_file(vault_dir):
    """Factory writing a file into the on-disk vault."""

    def _write_file(relative: str, content: str | bytes = b"data") -> Path:
        path = vault_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_bytes(content)
        return path

    return _write_file

"""Shared types and data structures for attachsync."""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass, field
from enum import Enum, StrEnum
from typing import Protocol

from attachsync.core.config import NOTE_EXTENSION
from attachsync.core.paths import ROOT, name_of, parent_of, split_name


class ScopeMode(StrEnum):
    """Which notes are eligible for processing."""

    VAULT = "vault"
    INCLUDE = "include"
    EXCLUDE = "exclude"


class LocationMode(StrEnum):
    """Where a renamed attachment ends up."""

    PATTERN = "pattern"
    ORIGINAL = "original"


class EntryKind(Enum):
    """What occupies a vault path."""

    FILE = "file"
    FOLDER = "folder"
    MISSING = "missing"


@dataclass(frozen=True)
class VaultEntry:
    """Snapshot of a vault path and what occupies it."""

    path: str
    kind: EntryKind = EntryKind.FILE

    @property
    def exists(self) -> bool:
        return self.kind is not EntryKind.MISSING

    @property
    def is_file(self) -> bool:
        return self.kind is EntryKind.FILE

    @property
    def is_folder(self) -> bool:
        return self.kind is EntryKind.FOLDER

    @property
    def name(self) -> str:
        return name_of(self.path) if self.path != ROOT else ""

    @property
    def basename(self) -> str:
        return split_name(self.name)[0]

    @property
    def extension(self) -> str:
        return split_name(self.name)[1]

    @property
    def parent(self) -> str:
        return parent_of(self.path)

    @property
    def is_note(self) -> bool:
        return self.is_file and self.extension.lower() == NOTE_EXTENSION


class ReferenceKind(Enum):
    """Embed (``![[...]]``) or plain link (``[[...]]``)."""

    EMBED = "embed"
    LINK = "link"


class LinkStyle(Enum):
    """Syntax a reference was written in."""

    WIKI = "wiki"
    MARKDOWN = "markdown"


@dataclass(frozen=True)
class Reference:
    """One embed or link found in a note.

    ``link`` is the decoded target text, fragment included. ``start``/``end``
    is the span of ``original`` inside the note text and
    ``target_start``/``target_end`` the span of the target as written.
    """

    link: str
    original: str
    kind: ReferenceKind = ReferenceKind.LINK
    style: LinkStyle = LinkStyle.WIKI
    display: str | None = None
    start: int = 0
    end: int = 0
    target_start: int = 0
    target_end: int = 0


@dataclass(frozen=True)
class NoteCache:
    """Reference index of a note: embeds first, then links."""

    embeds: list[Reference] = field(default_factory=list)
    links: list[Reference] = field(default_factory=list)

    def references(self) -> list[Reference]:
        return [*self.embeds, *self.links]


@dataclass(frozen=True)
class AttachmentReference:
    """An attachment discovered during one reconciliation pass."""

    entry: VaultEntry
    original_path: str
    index: int


class RenameCallback(Protocol):
    """Callback signature for rename notifications."""

    def __call__(self, entry: VaultEntry, old_path: str) -> None:
        pass


class Notifier(Protocol):
    """Callback signature for short user-facing notifications."""

    def __call__(self, message: str) -> None:
        pass


class VaultHost(Protocol):
    """Collaborators the reconciliation engine depends on."""

    def get_file_cache(self, note: VaultEntry) -> NoteCache | None:
        """Reference index of a note, or None when not yet indexed."""
        ...

    def resolve_link_path(self, link: str, source_path: str) -> VaultEntry | None:
        """Resolve link text written in ``source_path`` to a file."""
        ...

    def get_entry(self, path: str) -> VaultEntry:
        """What currently occupies ``path``."""
        ...

    def list_notes(self) -> list[VaultEntry]:
        """All notes in enumeration order."""
        ...

    def create_folder(self, path: str) -> Awaitable[None]:
        """Create a folder (and parents)."""
        ...

    def rename_file(self, entry: VaultEntry, new_path: str) -> Awaitable[None]:
        """Move a file and rewrite every reference to it."""
        ...

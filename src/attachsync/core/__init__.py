"""attachsync core library - the reconciliation engine and its collaborators."""

from typing import TYPE_CHECKING

from attachsync.core.settings import Limits, Rule, Settings, SettingsStore
from attachsync.core.types import (
    EntryKind,
    LocationMode,
    NoteCache,
    Reference,
    ScopeMode,
    VaultEntry,
)

if TYPE_CHECKING:
    from attachsync.core.engine import ReconciliationEngine
    from attachsync.core.factory import build_service
    from attachsync.core.service import AttachmentService

__all__ = [
    # Core classes
    "AttachmentService",
    "ReconciliationEngine",
    "build_service",
    # Settings
    "Limits",
    "Rule",
    "Settings",
    "SettingsStore",
    # Types
    "EntryKind",
    "LocationMode",
    "NoteCache",
    "Reference",
    "ScopeMode",
    "VaultEntry",
]


def __getattr__(name: str):
    if name == "AttachmentService":
        from attachsync.core.service import AttachmentService

        return AttachmentService
    if name == "ReconciliationEngine":
        from attachsync.core.engine import ReconciliationEngine

        return ReconciliationEngine
    if name == "build_service":
        from attachsync.core.factory import build_service

        return build_service
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

"""Scope filter - decides which notes are processed."""

from attachsync.core.paths import ROOT, is_within, normalize_path
from attachsync.core.settings import Settings
from attachsync.core.types import ScopeMode


def watched_folders(settings: Settings) -> list[str]:
    """Normalized watched folders, without empty or root entries."""
    folders = (normalize_path(p) for p in settings.watched_paths)
    return [f for f in folders if f not in ("", ROOT)]


def is_scope_valid(path: str, settings: Settings) -> bool:
    """
    Check whether a note path is subject to processing.

    Args:
        path: Vault path of the note
        settings: Current settings snapshot

    Returns:
        True if the note is in scope. With no usable watched folders every
        path is in scope.
    """
    if settings.scope_mode is ScopeMode.VAULT:
        return True

    folders = watched_folders(settings)
    if not folders:
        return True

    normalized = normalize_path(path)
    matched = any(is_within(normalized, folder) for folder in folders)

    if settings.scope_mode is ScopeMode.INCLUDE:
        return matched
    return not matched

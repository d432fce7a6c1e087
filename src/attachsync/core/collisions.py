"""Collision resolution for rename targets."""

import logging

from attachsync.core.paths import join_path
from attachsync.core.types import VaultEntry, VaultHost

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 500


def suffixed_name(base_name: str, suffix: int, extension: str) -> str:
    """``"{base} {suffix}.{ext}"`` (no dot when there is no extension)."""
    name = f"{base_name} {suffix}"
    return f"{name}.{extension}" if extension else name


def resolve_collision(
    host: VaultHost,
    desired_path: str,
    current: VaultEntry,
    target_folder: str,
    base_name: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> str:
    """
    Find a path that does not clobber another file.

    Args:
        host: Vault host used for existence checks
        desired_path: Preferred destination
        current: The attachment being renamed
        target_folder: Folder the destination lives in
        base_name: Destination basename without extension
        max_attempts: Number of paths to try before giving up

    Returns:
        A free path, or a path occupied by ``current`` itself. When every
        attempt collides, ``current.path`` (leave the file where it is).
    """
    candidate = desired_path
    suffix = 0
    while suffix < max_attempts:
        occupant = host.get_entry(candidate)
        if not occupant.exists or occupant.path == current.path:
            return candidate
        suffix += 1
        candidate = join_path(
            target_folder, suffixed_name(base_name, suffix, current.extension)
        )

    logger.warning(
        f"No free name for {current.path} after {max_attempts} attempts, leaving as is"
    )
    return current.path

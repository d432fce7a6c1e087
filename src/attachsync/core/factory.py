"""Factory for building the AttachmentService with all dependencies wired.

Both the one-shot commands and the watcher call build_service() so every
entry point sees the same host and settings.
"""

from pathlib import Path

from attachsync.core.config import default_vault_path
from attachsync.core.service import AttachmentService
from attachsync.core.settings import SettingsStore
from attachsync.core.types import Notifier
from attachsync.vault.local import LocalVault


def build_service(
    vault_dir: Path | str | None = None,
    settings_file: str | None = None,
    notify: Notifier | None = None,
) -> AttachmentService:
    """
    Build a fully configured AttachmentService.

    Args:
        vault_dir: Vault root (defaults to $ATTACHSYNC_VAULT or the CWD)
        settings_file: Settings file name relative to the vault root
        notify: Sink for user-facing notifications

    Returns:
        AttachmentService over a LocalVault, settings loaded

    Raises:
        VaultHostError: If the vault directory does not exist.
        SettingsError: If the settings file is invalid.
    """
    vault = LocalVault(Path(vault_dir) if vault_dir else default_vault_path())
    store = SettingsStore(vault.root, settings_file)
    store.load()
    return AttachmentService(host=vault, store=store, notify=notify)

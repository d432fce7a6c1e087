"""Local vault host: Markdown notes and attachments in a directory.

Provides the reference index, link resolution, folder creation and the
link-rewriting rename primitive the reconciliation engine relies on, plus a
watchdog-based source of rename events.
"""

from attachsync.vault.links import parse_references
from attachsync.vault.local import LocalVault

__all__ = [
    "LocalVault",
    "parse_references",
]

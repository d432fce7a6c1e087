"""Vault path helpers.

Vault paths are forward-slash strings relative to the vault root. The root
folder itself is spelled ``"/"``.
"""

import posixpath
import re
import unicodedata

ROOT = "/"

_SLASH_RUN_RE = re.compile(r"/+")


def normalize_path(path: str) -> str:
    """Normalize a vault path.

    Converts backslashes and non-breaking spaces, collapses slash runs, strips
    leading and trailing slashes and applies NFC normalization. An empty
    result is the root folder.
    """
    cleaned = path.replace("\\", "/").replace("\u00a0", " ").replace("\u202f", " ")
    cleaned = _SLASH_RUN_RE.sub("/", cleaned).strip("/")
    cleaned = unicodedata.normalize("NFC", cleaned)
    return cleaned or ROOT


def join_path(folder: str, name: str) -> str:
    """Join a folder and a child name into a normalized vault path."""
    if folder in ("", ROOT, "."):
        return normalize_path(name)
    return normalize_path(f"{folder}/{name}")


def parent_of(path: str) -> str:
    """Parent folder of a vault path (root for top-level entries)."""
    parent = posixpath.dirname(normalize_path(path))
    return parent or ROOT


def name_of(path: str) -> str:
    """Final component of a vault path."""
    return posixpath.basename(normalize_path(path))


def split_name(name: str) -> tuple[str, str]:
    """Split a file name into (basename, extension) without the dot.

    A leading dot does not start an extension: ``.env`` has no extension.
    """
    dot = name.rfind(".")
    if dot <= 0:
        return name, ""
    return name[:dot], name[dot + 1 :]


def is_within(path: str, folder: str) -> bool:
    """True when ``path`` equals ``folder`` or lies below it."""
    return path == folder or path.startswith(folder + "/")

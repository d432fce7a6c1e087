"""Name and path templating.

Patterns use ``${name}`` placeholders. Substitution is a single pass over the
pattern, so a substituted value that itself contains a placeholder is never
expanded again.
"""

import re
from collections.abc import Mapping
from datetime import date

PLACEHOLDER_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

# Value used when a variable is missing or empty
VARIABLE_FALLBACKS: dict[str, str] = {
    "filename": "note",
    "original": "file",
    "extension": "",
    "date": "",
    "index": "01",
}

# Filesystem-illegal characters
ILLEGAL_CHARS_RE = re.compile(r'[\\/:"*?<>|]+')
WHITESPACE_RE = re.compile(r"\s+")

EMPTY_NAME_FALLBACK = "attachment"
EMPTY_ORIGINAL_FALLBACK = "Attachment"
FILENAME_PLACEHOLDER = "${filename}"


def expand(pattern: str, variables: Mapping[str, str | None]) -> str:
    """Substitute the known placeholders in ``pattern``.

    Unrecognized placeholders are left verbatim.

    Args:
        pattern: Template such as ``"${filename} ${original}"``
        variables: Values for ``filename``, ``original``, ``extension``,
            ``date`` and ``index``

    Returns:
        Expanded string (not yet sanitized)
    """

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in VARIABLE_FALLBACKS:
            return match.group(0)
        return variables.get(key) or VARIABLE_FALLBACKS[key]

    return PLACEHOLDER_RE.sub(_replace, pattern)


def sanitize(name: str) -> str:
    """Replace illegal character runs with a hyphen and tidy whitespace.

    A name made only of illegal characters sanitizes to an empty string;
    callers substitute ``EMPTY_NAME_FALLBACK``.
    """
    if ILLEGAL_CHARS_RE.sub("", name).strip() == "":
        return ""
    name = ILLEGAL_CHARS_RE.sub("-", name)
    return WHITESPACE_RE.sub(" ", name).strip()


def strip_old_document_name(base: str, old_name: str | None) -> str:
    """Remove a stale note name from an attachment basename.

    ``"My Note - diagram"`` with ``"My Note"`` becomes ``"diagram"``. The name
    is removed together with any surrounding whitespace, hyphens and
    underscores.
    """
    if not old_name:
        return base
    clean = base
    if old_name in clean:
        stale = re.compile(rf"[\s\-_]*{re.escape(old_name)}[\s\-_]*")
        clean = stale.sub(" ", clean).strip()
    return clean or EMPTY_ORIGINAL_FALLBACK


def strip_note_name(base: str, note_name: str | None) -> str:
    """Remove the note's current name where it stands as a whole token.

    Unlike ``strip_old_document_name`` this never cuts into a word, so a note
    called ``"N"`` leaves ``"LICENSE"`` untouched. It keeps attachments that
    already carry the note name from picking it up a second time.
    """
    if not note_name or note_name not in base:
        return base
    token = re.compile(rf"(?:^|[\s\-_]+){re.escape(note_name)}(?:[\s\-_]+|$)")
    clean = token.sub(" ", base).strip()
    return clean or EMPTY_ORIGINAL_FALLBACK


def format_date(day: date | None = None) -> str:
    """Calendar date as ``YYYYMMDD`` (today by default)."""
    return (day or date.today()).strftime("%Y%m%d")


def format_index(position: int) -> str:
    """1-based reference position, zero-padded to two digits."""
    return f"{position:02d}"


def build_variables(
    filename: str,
    original: str,
    extension: str,
    index: int,
    day: date | None = None,
) -> dict[str, str]:
    """Variable set for one attachment.

    Args:
        filename: Current basename of the note
        original: Cleaned original basename of the attachment
        extension: Attachment extension without the dot
        index: 0-based position of the reference in the note
        day: Date to render (today by default)
    """
    return {
        "filename": filename,
        "original": original,
        "extension": extension,
        "date": format_date(day),
        "index": format_index(index + 1),
    }


def render_name(pattern: str, variables: Mapping[str, str | None]) -> str:
    """Expand and sanitize a name pattern, never returning an empty name."""
    return sanitize(expand(pattern, variables)) or EMPTY_NAME_FALLBACK

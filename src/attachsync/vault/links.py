"""Reference parsing and link text generation for Markdown notes.

Understands wiki syntax (``[[target|alias]]``, ``![[target]]``) and Markdown
syntax (``[text](target)``, ``![alt](<target with spaces>)``). References in
fenced code blocks and inline code are ignored, as are external URLs.
"""

import re
from urllib.parse import unquote

from attachsync.core.engine import clean_link
from attachsync.core.types import LinkStyle, NoteCache, Reference, ReferenceKind

WIKI_RE = re.compile(
    r"(?P<bang>!?)\[\[(?P<target>[^\[\]|\n]+?)(?:\|(?P<alias>[^\[\]\n]*))?\]\]"
)
MARKDOWN_RE = re.compile(
    r"(?P<bang>!?)\[(?P<text>[^\[\]\n]*)\]"
    r"\((?P<target><[^<>\n]+>|(?:[^()\s]|\([^()\s]*\))+)(?:\s+\"[^\"\n]*\")?\)"
)
FENCE_RE = re.compile(r"^(```|~~~).*?^\1[^\S\n]*$", re.MULTILINE | re.DOTALL)
INLINE_CODE_RE = re.compile(r"`[^`\n]+`")
URL_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")


def _code_spans(text: str) -> list[tuple[int, int]]:
    spans = [m.span() for m in FENCE_RE.finditer(text)]
    spans.extend(m.span() for m in INLINE_CODE_RE.finditer(text))
    return spans


def _inside(position: int, spans: list[tuple[int, int]]) -> bool:
    return any(start <= position < end for start, end in spans)


def parse_references(text: str) -> NoteCache:
    """Extract embeds and links from note text, each list in document order."""
    code = _code_spans(text)
    found: list[Reference] = []

    for match in WIKI_RE.finditer(text):
        if _inside(match.start(), code):
            continue
        found.append(
            Reference(
                link=match.group("target").strip(),
                original=match.group(0),
                kind=ReferenceKind.EMBED if match.group("bang") else ReferenceKind.LINK,
                style=LinkStyle.WIKI,
                display=match.group("alias"),
                start=match.start(),
                end=match.end(),
                target_start=match.start("target"),
                target_end=match.end("target"),
            )
        )

    for match in MARKDOWN_RE.finditer(text):
        if _inside(match.start(), code):
            continue
        raw = match.group("target")
        if raw.startswith("<"):
            raw = raw[1:-1]
        if URL_SCHEME_RE.match(raw):
            continue
        found.append(
            Reference(
                link=unquote(raw),
                original=match.group(0),
                kind=ReferenceKind.EMBED if match.group("bang") else ReferenceKind.LINK,
                style=LinkStyle.MARKDOWN,
                display=match.group("text"),
                start=match.start(),
                end=match.end(),
                target_start=match.start("target"),
                target_end=match.end("target"),
            )
        )

    found.sort(key=lambda ref: ref.start)
    return NoteCache(
        embeds=[r for r in found if r.kind is ReferenceKind.EMBED],
        links=[r for r in found if r.kind is ReferenceKind.LINK],
    )


def split_fragment(link: str) -> tuple[str, str]:
    """Split ``"pic.png#frag"`` into ``("pic.png", "#frag")``."""
    path = clean_link(link)
    return path, link[len(path) :]


def encode_markdown_target(target: str) -> str:
    """Escape the characters that break a bare Markdown link target."""
    return target.replace(" ", "%20").replace("(", "%28").replace(")", "%29")


def format_target(ref: Reference, raw_target: str, new_link: str) -> str:
    """
    Replacement for the target portion of a reference.

    Args:
        ref: The reference being rewritten
        raw_target: Target text as currently written (angle brackets included)
        new_link: New path, fragment included, not encoded
    """
    if ref.style is LinkStyle.WIKI:
        return new_link
    if raw_target.startswith("<"):
        return f"<{new_link}>"
    return encode_markdown_target(new_link)

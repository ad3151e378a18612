"""Insert a file banner (e.g. a license header) at the top of documents."""

from __future__ import annotations

import fnmatch
from collections.abc import Sequence

from codefix.workspace import Document, TextEdit, Unit

HASH_COMMENT_LANGUAGES = frozenset({"python", "shell", "text", "toml", "yaml"})

GENERATED_PATTERNS = ("*.generated.*", "*.g.*", "*.designer.*")
GENERATED_MARKERS = ("<auto-generated", "@generated")


def comment_prefix(language: str) -> str:
    return "#" if language in HASH_COMMENT_LANGUAGES else "//"


def is_generated(document: Document) -> bool:
    """Check whether a document is generated code that must not be edited."""
    name = document.path.rsplit("/", 1)[-1].lower()
    if any(fnmatch.fnmatchcase(name, pattern) for pattern in GENERATED_PATTERNS):
        return True
    head = "\n".join(document.text.splitlines()[:5])
    return any(marker in head for marker in GENERATED_MARKERS)


def render_banner(lines: Sequence[str], language: str) -> list[str]:
    prefix = comment_prefix(language)
    return [f"{prefix} {line}".rstrip() for line in lines]


def banner_edits(unit: Unit, lines: Sequence[str]) -> list[TextEdit]:
    """Edits inserting the banner into every document that lacks it.

    Documents that are generated or already start with the banner are left
    alone. A blank line separates the banner from existing content.
    """
    if not lines:
        return []

    rendered = render_banner(lines, unit.language)
    edits: list[TextEdit] = []
    for document in unit.documents:
        if is_generated(document):
            continue
        if document.text.splitlines()[: len(rendered)] == rendered:
            continue
        newline = "\r\n" if "\r\n" in document.text else "\n"
        text = newline.join(rendered) + newline
        if document.text and not document.text.startswith(("\n", "\r\n")):
            text += newline
        edits.append(TextEdit(document.path, 0, 0, text))
    return edits

"""Formatting pass run over a unit after it has been fixed.

A formatter rewrites whole documents. Only documents whose text actually
changes produce an edit, and generated documents are never touched.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from codefix.banner import is_generated
from codefix.workspace import Document, TextEdit, Unit


class BaseFormatter(ABC):
    """Abstract base class for formatters.

    Attributes:
        name: Short formatter name used in logs.
        languages: Unit languages the formatter applies to; empty means all.
    """

    name: ClassVar[str] = ""
    languages: ClassVar[frozenset[str]] = frozenset()

    @abstractmethod
    def format_document(self, document: Document, language: str) -> str:
        """Return the formatted text of a document."""

    def supports_language(self, language: str) -> bool:
        return not self.languages or language in self.languages

    @property
    def display_name(self) -> str:
        return self.name or type(self).__name__


class WhitespaceFormatter(BaseFormatter):
    """Strip trailing whitespace and end each document with exactly one newline.

    The document's dominant line ending is kept. Empty documents stay empty.
    """

    name = "whitespace"

    def format_document(self, document: Document, language: str) -> str:
        text = document.text
        newline = "\r\n" if "\r\n" in text else "\n"
        lines = [line.rstrip() for line in text.splitlines()]
        while lines and not lines[-1]:
            lines.pop()
        if not lines:
            return ""
        return newline.join(lines) + newline


def format_edits(unit: Unit, formatter: BaseFormatter) -> list[TextEdit]:
    """Whole-document edits for every document the formatter changes."""
    if not formatter.supports_language(unit.language):
        return []

    edits: list[TextEdit] = []
    for document in unit.documents:
        if is_generated(document):
            continue
        formatted = formatter.format_document(document, unit.language)
        if formatted != document.text:
            edits.append(TextEdit(document.path, 0, len(document.text), formatted))
    return edits

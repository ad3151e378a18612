"""Fixers for the built-in text formatting analyzers."""

from __future__ import annotations

from collections.abc import Iterator

from codefix.analyzers.formatting import (
    ADD_BLANK_LINE_AFTER_EMBEDDED_STATEMENT,
    ADD_FINAL_NEWLINE,
    BRACE_LANGUAGES,
    REMOVE_TRAILING_WHITESPACE,
    USE_SPACES_FOR_INDENTATION,
    line_indentation,
)
from codefix.diagnostics import Diagnostic
from codefix.fixers.actions import FixAction
from codefix.fixers.base import BaseFixProvider
from codefix.workspace import TextEdit, Unit

TAB_SIZE = 4


class BlankLineAfterEmbeddedStatementFixer(BaseFixProvider):
    """Put the statement following an embedded statement after a blank line."""

    name = "blank-line-after-embedded-statement"
    fixable_ids = frozenset({ADD_BLANK_LINE_AFTER_EMBEDDED_STATEMENT.id})
    languages = BRACE_LANGUAGES

    def provide_fixes(self, diagnostic: Diagnostic, unit: Unit) -> Iterator[FixAction]:
        document = unit.get_document(diagnostic.location.path)
        if document is None:
            return
        text = document.text
        end = diagnostic.location.end
        next_start = end
        while next_start < len(text) and text[next_start] in " \t\r\n":
            next_start += 1
        if next_start >= len(text):
            return

        newline = "\r\n" if "\r\n" in text else "\n"
        indentation = line_indentation(text, diagnostic.location.start)
        edit = TextEdit(document.path, end, next_start, newline * 2 + indentation)
        yield FixAction.from_edits(
            ADD_BLANK_LINE_AFTER_EMBEDDED_STATEMENT.title,
            ADD_BLANK_LINE_AFTER_EMBEDDED_STATEMENT.id,
            [edit],
        )


class TrailingWhitespaceFixer(BaseFixProvider):
    """Delete trailing whitespace."""

    name = "trailing-whitespace"
    fixable_ids = frozenset({REMOVE_TRAILING_WHITESPACE.id})

    def provide_fixes(self, diagnostic: Diagnostic, unit: Unit) -> Iterator[FixAction]:
        location = diagnostic.location
        yield FixAction.from_edits(
            REMOVE_TRAILING_WHITESPACE.title,
            REMOVE_TRAILING_WHITESPACE.id,
            [TextEdit(location.path, location.start, location.end, "")],
        )


class FinalNewlineFixer(BaseFixProvider):
    """Append a newline to the end of the document."""

    name = "final-newline"
    fixable_ids = frozenset({ADD_FINAL_NEWLINE.id})

    def provide_fixes(self, diagnostic: Diagnostic, unit: Unit) -> Iterator[FixAction]:
        document = unit.get_document(diagnostic.location.path)
        if document is None or document.text.endswith("\n"):
            return
        end = len(document.text)
        yield FixAction.from_edits(
            ADD_FINAL_NEWLINE.title,
            ADD_FINAL_NEWLINE.id,
            [TextEdit(document.path, end, end, "\n")],
        )


class TabIndentationFixer(BaseFixProvider):
    """Expand tabs in leading whitespace to spaces."""

    name = "tab-indentation"
    fixable_ids = frozenset({USE_SPACES_FOR_INDENTATION.id})

    def provide_fixes(self, diagnostic: Diagnostic, unit: Unit) -> Iterator[FixAction]:
        document = unit.get_document(diagnostic.location.path)
        if document is None:
            return
        location = diagnostic.location
        leading = document.text[location.start : location.end]
        if "\t" not in leading:
            return
        yield FixAction.from_edits(
            USE_SPACES_FOR_INDENTATION.title,
            USE_SPACES_FOR_INDENTATION.id,
            [TextEdit(location.path, location.start, location.end, leading.expandtabs(TAB_SIZE))],
        )

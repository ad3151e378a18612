"""Built-in text formatting analyzers.

These work on raw document text rather than a syntax tree, which is enough
for whitespace and layout rules. String literals and ``//`` comments are
masked before scanning so their contents never trigger a rule.
"""

from __future__ import annotations

import re

from codefix.analyzers.base import BaseAnalyzer
from codefix.diagnostics import Diagnostic, DiagnosticDescriptor, Location, Severity
from codefix.workspace import Document, Unit

ADD_BLANK_LINE_AFTER_EMBEDDED_STATEMENT = DiagnosticDescriptor(
    id="CF0001",
    title="Add blank line after embedded statement",
    default_severity=Severity.INFO,
    message_format="Add blank line after embedded statement.",
)

REMOVE_TRAILING_WHITESPACE = DiagnosticDescriptor(
    id="CF0002",
    title="Remove trailing whitespace",
    default_severity=Severity.INFO,
    message_format="Remove trailing whitespace.",
)

ADD_FINAL_NEWLINE = DiagnosticDescriptor(
    id="CF0003",
    title="Add newline at end of file",
    default_severity=Severity.INFO,
    message_format="Add newline at end of file.",
)

USE_SPACES_FOR_INDENTATION = DiagnosticDescriptor(
    id="CF0004",
    title="Use spaces instead of tabs for indentation",
    default_severity=Severity.INFO,
    message_format="Use spaces instead of tabs for indentation.",
)

BRACE_LANGUAGES = frozenset({"c", "cpp", "csharp", "go", "java", "javascript", "typescript"})

_HEADER = re.compile(r"\b(?:(if|while|for|foreach)\s*\(|(else)\b)")
_TRAILING_WHITESPACE = re.compile(r"[ \t]+(?=\r?\n|\Z)")
_LEADING_WHITESPACE = re.compile(r"^[ \t]*\t[ \t]*", re.MULTILINE)


def mask_literals(text: str) -> str:
    """Blank out string/char literal contents and ``//`` comments.

    The result has the same length as ``text`` so offsets stay valid.
    """
    chars = list(text)
    quote: str | None = None
    i = 0
    while i < len(chars):
        ch = text[i]
        if quote is not None:
            if ch == "\n":
                quote = None
            elif ch == "\\":
                chars[i] = " "
                if i + 1 < len(chars) and text[i + 1] != "\n":
                    chars[i + 1] = " "
                i += 2
                continue
            elif ch == quote:
                quote = None
            else:
                chars[i] = " "
        elif ch in "\"'":
            quote = ch
        elif text.startswith("//", i):
            while i < len(chars) and text[i] != "\n":
                chars[i] = " "
                i += 1
            continue
        i += 1
    return "".join(chars)


def line_indentation(text: str, offset: int) -> str:
    """Leading whitespace of the line containing ``offset``."""
    line_start = text.rfind("\n", 0, offset) + 1
    match = re.match(r"[ \t]*", text[line_start:])
    return match.group(0) if match else ""


def _matching_paren(masked: str, open_index: int) -> int:
    depth = 0
    for i in range(open_index, len(masked)):
        if masked[i] == "(":
            depth += 1
        elif masked[i] == ")":
            depth -= 1
            if depth == 0:
                return i
    return -1


def _statement_end(masked: str, start: int) -> int:
    """Offset just past the ``;`` terminating the statement at ``start``."""
    depth = 0
    for i in range(start, len(masked)):
        ch = masked[i]
        if ch in "([":
            depth += 1
        elif ch in ")]":
            depth -= 1
        elif ch in "{}" and depth == 0:
            return -1
        elif ch == ";" and depth == 0:
            return i + 1
    return -1


def _skip_whitespace(masked: str, offset: int) -> int:
    while offset < len(masked) and masked[offset] in " \t\r\n":
        offset += 1
    return offset


class EmbeddedStatementAnalyzer(BaseAnalyzer):
    """Report a brace-less embedded statement immediately followed by another statement.

    ``if (x) Foo(); Bar();`` reads as if ``Bar()`` were conditional too; a
    blank line after the embedded statement makes the control flow obvious.
    """

    name = "embedded-statement"
    supported_diagnostics = (ADD_BLANK_LINE_AFTER_EMBEDDED_STATEMENT,)
    languages = BRACE_LANGUAGES

    def analyze(self, unit: Unit) -> list[Diagnostic]:
        diagnostics: list[Diagnostic] = []
        for document in unit.documents:
            diagnostics.extend(self._analyze_document(document))
        return diagnostics

    def _analyze_document(self, document: Document) -> list[Diagnostic]:
        text = document.text
        masked = mask_literals(text)
        diagnostics: list[Diagnostic] = []

        for match in _HEADER.finditer(masked):
            if match.group(2):
                body_start = match.end()
                if re.match(r"\s*if\b", masked[body_start:]):
                    continue
            else:
                close = _matching_paren(masked, match.end() - 1)
                if close == -1:
                    continue
                body_start = close + 1

            body_start = _skip_whitespace(masked, body_start)
            if body_start >= len(masked) or masked[body_start] in "{;":
                continue
            if _HEADER.match(masked, body_start):
                continue

            body_end = _statement_end(masked, body_start)
            if body_end == -1 or not self._followed_by_statement(masked, body_end):
                continue

            diagnostics.append(
                Diagnostic.create(
                    ADD_BLANK_LINE_AFTER_EMBEDDED_STATEMENT,
                    Location.from_offsets(document.path, text, match.start(), body_end),
                )
            )

        return diagnostics

    @staticmethod
    def _followed_by_statement(masked: str, offset: int) -> bool:
        newlines = 0
        i = offset
        while i < len(masked) and masked[i] in " \t\r\n":
            if masked[i] == "\n":
                newlines += 1
            i += 1
        if i >= len(masked) or newlines >= 2:
            return False
        if masked[i] == "}":
            return False
        return re.match(r"else\b", masked[i:]) is None


class TrailingWhitespaceAnalyzer(BaseAnalyzer):
    """Report spaces or tabs at the end of a line."""

    name = "trailing-whitespace"
    supported_diagnostics = (REMOVE_TRAILING_WHITESPACE,)

    def analyze(self, unit: Unit) -> list[Diagnostic]:
        return [
            Diagnostic.create(
                REMOVE_TRAILING_WHITESPACE,
                Location.from_offsets(document.path, document.text, m.start(), m.end()),
            )
            for document in unit.documents
            for m in _TRAILING_WHITESPACE.finditer(document.text)
        ]


class FinalNewlineAnalyzer(BaseAnalyzer):
    """Report non-empty documents that do not end with a newline."""

    name = "final-newline"
    supported_diagnostics = (ADD_FINAL_NEWLINE,)

    def analyze(self, unit: Unit) -> list[Diagnostic]:
        diagnostics: list[Diagnostic] = []
        for document in unit.documents:
            text = document.text
            if text and not text.endswith("\n"):
                diagnostics.append(
                    Diagnostic.create(
                        ADD_FINAL_NEWLINE,
                        Location.from_offsets(document.path, text, len(text)),
                    )
                )
        return diagnostics


class TabIndentationAnalyzer(BaseAnalyzer):
    """Report lines indented with tab characters."""

    name = "tab-indentation"
    supported_diagnostics = (USE_SPACES_FOR_INDENTATION,)

    def analyze(self, unit: Unit) -> list[Diagnostic]:
        return [
            Diagnostic.create(
                USE_SPACES_FOR_INDENTATION,
                Location.from_offsets(document.path, document.text, m.start(), m.end()),
            )
            for document in unit.documents
            for m in _LEADING_WHITESPACE.finditer(document.text)
        ]

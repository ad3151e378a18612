"""Built-in compilers.

The loop only needs to know whether a unit still builds. For Python units the
real byte-compiler is used; for brace languages a bracket-balance check stands
in for a parser; plain text always builds.
"""

from __future__ import annotations

import warnings

from codefix.analyzers.base import BaseCompiler
from codefix.diagnostics import (
    Diagnostic,
    DiagnosticDescriptor,
    DiagnosticOrigin,
    Location,
    Severity,
)
from codefix.workspace import Document, Unit

SYNTAX_ERROR = DiagnosticDescriptor(
    id="CMP0001",
    title="Syntax error",
    default_severity=Severity.ERROR,
    message_format="{detail}",
)

SYNTAX_WARNING = DiagnosticDescriptor(
    id="CMP0002",
    title="Syntax warning",
    default_severity=Severity.WARNING,
    message_format="{detail}",
)

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}


def location_from_line(document: Document, line: int, column: int = 1) -> Location:
    """Build a location from a 1-based line and column."""
    offset = 0
    for _ in range(max(line, 1) - 1):
        newline = document.text.find("\n", offset)
        if newline == -1:
            offset = len(document.text)
            break
        offset = newline + 1
    offset = min(offset + max(column, 1) - 1, len(document.text))
    return Location.from_offsets(document.path, document.text, offset)


class PythonCompiler(BaseCompiler):
    """Byte-compile Python documents."""

    name = "python"

    def compile(self, unit: Unit) -> list[Diagnostic]:
        diagnostics: list[Diagnostic] = []
        for document in unit.documents:
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always")
                try:
                    compile(document.text, document.path, "exec", dont_inherit=True)
                except SyntaxError as e:
                    diagnostics.append(
                        Diagnostic.create(
                            SYNTAX_ERROR,
                            location_from_line(document, e.lineno or 1, e.offset or 1),
                            origin=DiagnosticOrigin.COMPILER,
                            detail=e.msg,
                        )
                    )
            for warning in caught:
                if not issubclass(warning.category, SyntaxWarning):
                    continue
                diagnostics.append(
                    Diagnostic.create(
                        SYNTAX_WARNING,
                        location_from_line(document, warning.lineno or 1),
                        origin=DiagnosticOrigin.COMPILER,
                        detail=str(warning.message),
                    )
                )
        return diagnostics


class BracketBalanceCompiler(BaseCompiler):
    """Report unbalanced brackets outside string literals and line comments."""

    name = "brackets"

    def compile(self, unit: Unit) -> list[Diagnostic]:
        diagnostics: list[Diagnostic] = []
        for document in unit.documents:
            diagnostic = self._check(document)
            if diagnostic is not None:
                diagnostics.append(diagnostic)
        return diagnostics

    def _check(self, document: Document) -> Diagnostic | None:
        text = document.text
        stack: list[tuple[str, int]] = []
        quote: str | None = None
        i = 0
        while i < len(text):
            ch = text[i]
            if quote is not None:
                if ch == "\\":
                    i += 2
                    continue
                if ch == quote or ch == "\n":
                    quote = None
            elif ch in "\"'":
                quote = ch
            elif text.startswith("//", i):
                newline = text.find("\n", i)
                i = len(text) if newline == -1 else newline
                continue
            elif ch in _OPENERS:
                stack.append((ch, i))
            elif ch in _CLOSERS:
                if not stack or stack[-1][0] != _CLOSERS[ch]:
                    return self._error(document, i, f"Unexpected '{ch}'")
                stack.pop()
            i += 1

        if stack:
            opener, offset = stack[-1]
            return self._error(document, offset, f"'{opener}' is never closed; expected '{_OPENERS[opener]}'")
        return None

    @staticmethod
    def _error(document: Document, offset: int, detail: str) -> Diagnostic:
        return Diagnostic.create(
            SYNTAX_ERROR,
            Location.from_offsets(document.path, document.text, offset, offset + 1),
            origin=DiagnosticOrigin.COMPILER,
            detail=detail,
        )


class DefaultCompiler(BaseCompiler):
    """Dispatch to a compiler by unit language.

    ``python`` units are byte-compiled, ``text`` units always build, and every
    other language gets the bracket-balance check.
    """

    name = "default"

    def __init__(self) -> None:
        self._python = PythonCompiler()
        self._brackets = BracketBalanceCompiler()

    def compile(self, unit: Unit) -> list[Diagnostic]:
        if unit.language == "python":
            return self._python.compile(unit)
        if unit.language == "text":
            return []
        return self._brackets.compile(unit)

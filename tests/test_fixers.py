"""Tests for the fixer framework."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from codefix.analyzers import (
    EmbeddedStatementAnalyzer,
    FinalNewlineAnalyzer,
    TabIndentationAnalyzer,
    TrailingWhitespaceAnalyzer,
)
from codefix.diagnostics import Diagnostic, Location
from codefix.fixers import (
    ApplyStatus,
    BaseFixProvider,
    BatchApplier,
    BlankLineAfterEmbeddedStatementFixer,
    FinalNewlineFixer,
    FixAction,
    FixAllContext,
    TabIndentationFixer,
    TrailingWhitespaceFixer,
    batch_fix_all,
)
from codefix.workspace import TextEdit, Unit, Workspace, apply_text_edits
from conftest import make_unit


def _fix_all(fixer: BaseFixProvider, unit: Unit, diagnostics: list[Diagnostic]) -> str:
    """Run a fixer's fix-all over a unit and return the new document text."""
    context = FixAllContext(
        unit=unit,
        fixer=fixer,
        diagnostic_id=diagnostics[0].id,
        equivalence_key=diagnostics[0].id,
        diagnostics=tuple(diagnostics),
    )
    action = fixer.get_fix_all(context)
    assert action is not None
    return apply_text_edits(unit.documents[0].text, action.compute_edits())


class RangeFixer(BaseFixProvider):
    """Replace each diagnostic's span with a fixed string."""

    name = "range"
    fixable_ids = frozenset({"R1"})

    def provide_fixes(self, diagnostic: Diagnostic, unit: Unit) -> Iterator[FixAction]:
        location = diagnostic.location
        yield FixAction.from_edits("other", "other-key", [TextEdit(location.path, 0, 0, "?")])
        yield FixAction.from_edits("replace", "R1", [TextEdit(location.path, location.start, location.end, "#")])


# -----------------------------------------------------------------------------
# FixAction Tests
# -----------------------------------------------------------------------------


class TestFixAction:
    """Tests for FixAction."""

    def test_from_edits(self) -> None:
        edit = TextEdit("a", 0, 1, "x")
        action = FixAction.from_edits("Title", "key", [edit])
        assert action.compute_edits() == [edit]
        assert action.equivalence_key == "key"

    def test_edits_computed_lazily(self) -> None:
        calls: list[int] = []

        def factory() -> list[TextEdit]:
            calls.append(1)
            return []

        action = FixAction("Title", "key", factory)
        assert calls == []
        action.compute_edits()
        assert calls == [1]


# -----------------------------------------------------------------------------
# BaseFixProvider Tests
# -----------------------------------------------------------------------------


class TestBaseFixProvider:
    """Tests for BaseFixProvider."""

    def test_abstract_method_enforcement(self) -> None:
        with pytest.raises(TypeError, match="abstract"):
            BaseFixProvider()  # type: ignore[abstract]

    def test_can_fix_all_requires_support(self) -> None:
        class NoFixAll(RangeFixer):
            supports_fix_all = False

        assert RangeFixer().can_fix_all("R1")
        assert not NoFixAll().can_fix_all("R1")

    def test_matches_identity(self) -> None:
        fixer = RangeFixer()
        assert fixer.matches("range")
        assert fixer.matches("RangeFixer")
        assert fixer.matches(fixer.full_name)
        assert not fixer.matches("other")


# -----------------------------------------------------------------------------
# batch_fix_all Tests
# -----------------------------------------------------------------------------


class TestBatchFixAll:
    """Tests for the default fix-all implementation."""

    def _diag(self, start: int, end: int, diagnostic_id: str = "R1") -> Diagnostic:
        return Diagnostic(diagnostic_id, Location("Program.cs", start, end), "m")

    def test_merges_actions_with_matching_key(self) -> None:
        unit = make_unit("abcdef")
        diagnostics = (self._diag(0, 1), self._diag(2, 3), self._diag(4, 5))
        context = FixAllContext(unit, RangeFixer(), "R1", "R1", diagnostics)

        action = batch_fix_all(RangeFixer(), context)

        assert action is not None
        assert action.equivalence_key == "R1"
        assert apply_text_edits("abcdef", action.compute_edits()) == "#b#d#f"

    def test_overlapping_edits_deferred(self) -> None:
        unit = make_unit("abcdef")
        diagnostics = (self._diag(0, 3), self._diag(2, 4), self._diag(4, 6))
        context = FixAllContext(unit, RangeFixer(), "R1", "R1", diagnostics)

        action = batch_fix_all(RangeFixer(), context)

        assert action is not None
        assert apply_text_edits("abcdef", action.compute_edits()) == "#d#"

    def test_ignores_other_ids(self) -> None:
        unit = make_unit("abcdef")
        context = FixAllContext(unit, RangeFixer(), "R1", "R1", (self._diag(0, 1, "R2"),))
        assert batch_fix_all(RangeFixer(), context) is None

    def test_no_matching_key(self) -> None:
        unit = make_unit("abcdef")
        context = FixAllContext(unit, RangeFixer(), "R1", "missing", (self._diag(0, 1),))
        assert batch_fix_all(RangeFixer(), context) is None


# -----------------------------------------------------------------------------
# Formatting Fixer Tests
# -----------------------------------------------------------------------------


class TestFormattingFixers:
    """Tests for the built-in formatting fixers."""

    def test_blank_line_after_embedded_statement(self) -> None:
        unit = make_unit("if (x) Foo(); Bar();\n")
        diagnostics = EmbeddedStatementAnalyzer().analyze(unit)
        fixed = _fix_all(BlankLineAfterEmbeddedStatementFixer(), unit, diagnostics)
        assert fixed == "if (x) Foo();\n\nBar();\n"

    def test_blank_line_keeps_indentation(self) -> None:
        text = "void F()\n{\n    if (x) Foo();\n    Bar();\n}\n"
        unit = make_unit(text)
        diagnostics = EmbeddedStatementAnalyzer().analyze(unit)
        fixed = _fix_all(BlankLineAfterEmbeddedStatementFixer(), unit, diagnostics)
        assert fixed == "void F()\n{\n    if (x) Foo();\n\n    Bar();\n}\n"
        assert EmbeddedStatementAnalyzer().analyze(make_unit(fixed)) == []

    def test_blank_line_keeps_crlf(self) -> None:
        unit = make_unit("if (x) Foo();\r\nBar();\r\n")
        diagnostics = EmbeddedStatementAnalyzer().analyze(unit)
        fixed = _fix_all(BlankLineAfterEmbeddedStatementFixer(), unit, diagnostics)
        assert fixed == "if (x) Foo();\r\n\r\nBar();\r\n"

    def test_trailing_whitespace(self) -> None:
        unit = make_unit("a  \nb\t\nc\n", language="text")
        diagnostics = TrailingWhitespaceAnalyzer().analyze(unit)
        assert _fix_all(TrailingWhitespaceFixer(), unit, diagnostics) == "a\nb\nc\n"

    def test_final_newline(self) -> None:
        unit = make_unit("abc", language="text")
        diagnostics = FinalNewlineAnalyzer().analyze(unit)
        assert _fix_all(FinalNewlineFixer(), unit, diagnostics) == "abc\n"

    def test_tab_indentation(self) -> None:
        unit = make_unit("\tfoo\n  \tbar\n", language="text")
        diagnostics = TabIndentationAnalyzer().analyze(unit)
        assert _fix_all(TabIndentationFixer(), unit, diagnostics) == "    foo\n    bar\n"

    def test_fix_declined_for_missing_document(self) -> None:
        unit = make_unit("abc", language="text")
        diagnostic = Diagnostic("CF0003", Location("other.txt", 0, 0), "m")
        assert list(FinalNewlineFixer().provide_fixes(diagnostic, unit)) == []


# -----------------------------------------------------------------------------
# BatchApplier Tests
# -----------------------------------------------------------------------------


class TestBatchApplier:
    """Tests for BatchApplier."""

    def test_apply(self) -> None:
        workspace = Workspace.from_units([make_unit("abc")])
        unit = workspace.get_latest_snapshot("app")
        action = FixAction.from_edits("t", "k", [TextEdit("Program.cs", 0, 1, "A")])

        assert BatchApplier(workspace).apply(unit, action) is ApplyStatus.APPLIED
        assert workspace.get_latest_snapshot("app").documents[0].text == "Abc"

    def test_no_changes(self) -> None:
        workspace = Workspace.from_units([make_unit("abc")])
        unit = workspace.get_latest_snapshot("app")
        action = FixAction.from_edits("t", "k", [])

        assert BatchApplier(workspace).apply(unit, action) is ApplyStatus.NO_CHANGES
        assert workspace.get_latest_snapshot("app").version == 0

    def test_conflict_on_stale_snapshot(self) -> None:
        workspace = Workspace.from_units([make_unit("abc")])
        stale = workspace.get_latest_snapshot("app")
        applier = BatchApplier(workspace)
        applier.apply(stale, FixAction.from_edits("t", "k", [TextEdit("Program.cs", 0, 1, "A")]))

        status = applier.apply(stale, FixAction.from_edits("t", "k", [TextEdit("Program.cs", 1, 2, "B")]))

        assert status is ApplyStatus.CONFLICT
        assert workspace.get_latest_snapshot("app").documents[0].text == "Abc"

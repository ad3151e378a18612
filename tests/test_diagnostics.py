"""Tests for the diagnostic model."""

from __future__ import annotations

import pytest

from codefix.diagnostics import (
    Diagnostic,
    DiagnosticDescriptor,
    DiagnosticOrigin,
    Location,
    Severity,
    same_diagnostics,
    sort_diagnostics,
)

DESCRIPTOR = DiagnosticDescriptor(
    id="T0001",
    title="Test rule",
    default_severity=Severity.WARNING,
    message_format="Rename '{name}'.",
)


def _diag(diagnostic_id: str, start: int, message: str = "m", path: str = "a.cs") -> Diagnostic:
    return Diagnostic(id=diagnostic_id, location=Location(path, start, start + 1), message=message)


class TestSeverity:
    """Tests for Severity parsing and ordering."""

    def test_ordering(self) -> None:
        assert Severity.HIDDEN < Severity.INFO < Severity.WARNING < Severity.ERROR

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("warning", Severity.WARNING),
            (" Error ", Severity.ERROR),
            (0, Severity.HIDDEN),
            (Severity.INFO, Severity.INFO),
        ],
    )
    def test_parse(self, value: object, expected: Severity) -> None:
        assert Severity.parse(value) is expected  # type: ignore[arg-type]

    def test_parse_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown severity 'fatal'"):
            Severity.parse("fatal")

    def test_label(self) -> None:
        assert Severity.WARNING.label == "warning"


class TestLocation:
    """Tests for Location."""

    def test_from_offsets_computes_line_and_column(self) -> None:
        text = "first\nsecond line\n"
        location = Location.from_offsets("a.cs", text, 9, 13)
        assert location.line == 2
        assert location.column == 4
        assert (location.start, location.end) == (9, 13)

    def test_from_offsets_defaults_to_empty_span(self) -> None:
        location = Location.from_offsets("a.cs", "abc", 3)
        assert location.start == location.end == 3

    def test_str(self) -> None:
        assert str(Location("a.cs", 0, 1, line=3, column=7)) == "a.cs:3:7"


class TestDiagnostic:
    """Tests for Diagnostic value semantics."""

    def test_create_formats_message(self) -> None:
        diagnostic = Diagnostic.create(DESCRIPTOR, Location("a.cs", 0, 1), name="x")
        assert diagnostic.id == "T0001"
        assert diagnostic.message == "Rename 'x'."
        assert diagnostic.severity is Severity.WARNING
        assert diagnostic.title == "Test rule"
        assert diagnostic.origin is DiagnosticOrigin.ANALYZER

    def test_create_severity_override(self) -> None:
        diagnostic = Diagnostic.create(DESCRIPTOR, Location("a.cs", 0, 1), severity=Severity.ERROR, name="x")
        assert diagnostic.severity is Severity.ERROR

    def test_equality_ignores_descriptive_fields(self) -> None:
        location = Location("a.cs", 0, 1)
        left = Diagnostic("T0001", location, "m", severity=Severity.INFO)
        right = Diagnostic(
            "T0001", location, "m", severity=Severity.ERROR, origin=DiagnosticOrigin.COMPILER, title="x"
        )
        assert left == right
        assert hash(left) == hash(right)

    def test_is_compiler(self) -> None:
        diagnostic = Diagnostic("C1", Location("a.cs", 0, 0), "m", origin=DiagnosticOrigin.COMPILER)
        assert diagnostic.is_compiler

    def test_str(self) -> None:
        diagnostic = Diagnostic("T0001", Location("a.cs", 0, 1, 2, 5), "Do it.", severity=Severity.WARNING)
        assert str(diagnostic) == "a.cs:2:5: warning T0001: Do it."


class TestDiagnosticSets:
    """Tests for sorting and multiset comparison."""

    def test_sort_by_document_position(self) -> None:
        diagnostics = [_diag("B", 5), _diag("A", 5), _diag("A", 1, path="b.cs"), _diag("Z", 0)]
        ordered = sort_diagnostics(diagnostics)
        assert [(d.location.path, d.location.start, d.id) for d in ordered] == [
            ("a.cs", 0, "Z"),
            ("a.cs", 5, "A"),
            ("a.cs", 5, "B"),
            ("b.cs", 1, "A"),
        ]

    def test_same_diagnostics_ignores_order(self) -> None:
        assert same_diagnostics([_diag("A", 1), _diag("B", 2)], [_diag("B", 2), _diag("A", 1)])

    def test_same_diagnostics_counts_duplicates(self) -> None:
        assert not same_diagnostics([_diag("A", 1), _diag("A", 1)], [_diag("A", 1), _diag("B", 2)])

    def test_same_diagnostics_uses_value_equality(self) -> None:
        assert same_diagnostics([_diag("A", 1, "x")], [_diag("A", 1, "x")])
        assert not same_diagnostics([_diag("A", 1, "x")], [_diag("A", 1, "y")])

    def test_empty_sets(self) -> None:
        assert same_diagnostics([], [])
        assert not same_diagnostics([_diag("A", 1)], [])

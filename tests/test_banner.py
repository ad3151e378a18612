"""Tests for file banner insertion."""

from __future__ import annotations

from codefix.banner import banner_edits, comment_prefix, is_generated, render_banner
from codefix.workspace import Document, Unit, apply_text_edits


def _unit(*documents: Document, language: str = "csharp") -> Unit:
    return Unit(id="u", language=language, documents=documents)


class TestBanner:
    """Tests for banner helpers."""

    def test_comment_prefix(self) -> None:
        assert comment_prefix("python") == "#"
        assert comment_prefix("csharp") == "//"

    def test_render_strips_trailing_space_on_empty_lines(self) -> None:
        assert render_banner(["Copyright", ""], "python") == ["# Copyright", "#"]

    def test_is_generated(self) -> None:
        assert is_generated(Document("obj/Form1.Designer.cs", "class A {}"))
        assert is_generated(Document("a.cs", "// <auto-generated />\nclass A {}"))
        assert not is_generated(Document("a.cs", "class A {}"))

    def test_inserts_banner(self) -> None:
        unit = _unit(Document("a.cs", "class A {}\n"))
        edits = banner_edits(unit, ["Line 1", "Line 2"])
        assert apply_text_edits("class A {}\n", edits) == "// Line 1\n// Line 2\n\nclass A {}\n"

    def test_keeps_crlf(self) -> None:
        unit = _unit(Document("a.cs", "class A {}\r\n"))
        edits = banner_edits(unit, ["Line"])
        assert edits[0].new_text == "// Line\r\n\r\n"

    def test_skips_existing_and_generated(self) -> None:
        unit = _unit(
            Document("a.cs", "// Line\n\nclass A {}\n"),
            Document("b.g.cs", "class B {}\n"),
            Document("c.cs", "class C {}\n"),
        )
        assert [e.path for e in banner_edits(unit, ["Line"])] == ["c.cs"]

    def test_no_lines(self) -> None:
        assert banner_edits(_unit(Document("a.cs", "")), []) == []

    def test_empty_document(self) -> None:
        edits = banner_edits(_unit(Document("a.py", ""), language="python"), ["Line"])
        assert edits[0].new_text == "# Line\n"

"""Tests for the fixer registry and the per-unit fix catalog."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from codefix.analyzers import (
    BaseAnalyzer,
    EmbeddedStatementAnalyzer,
    TrailingWhitespaceAnalyzer,
)
from codefix.diagnostics import Diagnostic
from codefix.fixers import (
    BaseFixProvider,
    BlankLineAfterEmbeddedStatementFixer,
    FixAction,
    FixCatalog,
    FixerRegistry,
    TrailingWhitespaceFixer,
    get_global_registry,
)
from codefix.workspace import Unit
from conftest import make_unit


class NoDiagnosticsAnalyzer(BaseAnalyzer):
    """Analyzer declaring nothing."""

    def analyze(self, unit: Unit) -> list[Diagnostic]:
        return []


class NoIdsFixer(BaseFixProvider):
    """Fixer declaring nothing."""

    def provide_fixes(self, diagnostic: Diagnostic, unit: Unit) -> Iterator[FixAction]:
        yield from ()


class SingleOnlyFixer(TrailingWhitespaceFixer):
    """Trailing whitespace fixer without fix-all support."""

    name = "single-only"
    supports_fix_all = False


class TestFixerRegistry:
    """Tests for FixerRegistry."""

    def test_register_and_create(self) -> None:
        registry = FixerRegistry()
        registry.register_analyzer(TrailingWhitespaceAnalyzer)
        registry.register_fixer(TrailingWhitespaceFixer)

        analyzers, fixers = registry.create_all()

        assert [type(a) for a in analyzers] == [TrailingWhitespaceAnalyzer]
        assert [type(f) for f in fixers] == [TrailingWhitespaceFixer]
        assert registry.list_fix_ids() == ["CF0002"]

    def test_duplicate_analyzer(self) -> None:
        registry = FixerRegistry()
        registry.register_analyzer(TrailingWhitespaceAnalyzer)
        with pytest.raises(ValueError, match="already registered"):
            registry.register_analyzer(TrailingWhitespaceAnalyzer)

    def test_duplicate_fixer(self) -> None:
        registry = FixerRegistry()
        registry.register_fixer(TrailingWhitespaceFixer)
        with pytest.raises(ValueError, match="already registered"):
            registry.register_fixer(TrailingWhitespaceFixer)

    def test_analyzer_without_diagnostics(self) -> None:
        with pytest.raises(ValueError, match="declares no diagnostics"):
            FixerRegistry().register_analyzer(NoDiagnosticsAnalyzer)

    def test_fixer_without_ids(self) -> None:
        with pytest.raises(ValueError, match="no fixable_ids"):
            FixerRegistry().register_fixer(NoIdsFixer)

    def test_create_all_preserves_registration_order(self) -> None:
        registry = FixerRegistry()
        registry.register_fixer(TrailingWhitespaceFixer)
        registry.register_fixer(BlankLineAfterEmbeddedStatementFixer)
        _, fixers = registry.create_all()
        assert [type(f) for f in fixers] == [TrailingWhitespaceFixer, BlankLineAfterEmbeddedStatementFixer]


class TestGlobalRegistry:
    """Tests for the built-in registry."""

    def test_contains_builtins(self) -> None:
        registry = get_global_registry()
        assert registry.list_fix_ids() == ["CF0001", "CF0002", "CF0003", "CF0004"]
        assert len(registry.list_analyzers()) == 4
        assert len(registry.list_fixers()) == 4

    def test_is_cached(self) -> None:
        assert get_global_registry() is get_global_registry()


class TestFixCatalog:
    """Tests for FixCatalog."""

    def test_filters_by_language(self) -> None:
        analyzers = [EmbeddedStatementAnalyzer(), TrailingWhitespaceAnalyzer()]
        fixers = [BlankLineAfterEmbeddedStatementFixer(), TrailingWhitespaceFixer()]

        catalog = FixCatalog.build(make_unit("", language="python"), analyzers, fixers)

        assert [type(a) for a in catalog.analyzers] == [TrailingWhitespaceAnalyzer]
        assert not catalog.has_analyzer("CF0001")
        assert not catalog.has_fixer("CF0001")
        assert catalog.has_fixer("CF0002")

    def test_indexes_by_id(self) -> None:
        analyzers = [EmbeddedStatementAnalyzer(), TrailingWhitespaceAnalyzer()]
        fixers = [BlankLineAfterEmbeddedStatementFixer(), TrailingWhitespaceFixer()]

        catalog = FixCatalog.build(make_unit(""), analyzers, fixers)

        assert catalog.get_analyzers("CF0001") == (analyzers[0],)
        assert catalog.get_fixers("CF0002") == (fixers[1],)
        assert catalog.descriptors["CF0001"].title == "Add blank line after embedded statement"
        assert catalog.get_fixers("missing") == ()

    def test_only_fix_all_fixers_are_indexed(self) -> None:
        fixers = [SingleOnlyFixer(), TrailingWhitespaceFixer()]
        catalog = FixCatalog.build(make_unit(""), [TrailingWhitespaceAnalyzer()], fixers)
        assert catalog.get_fixers("CF0002") == (fixers[1],)
        assert len(catalog.fixers) == 2

    def test_is_read_only(self) -> None:
        catalog = FixCatalog.build(make_unit(""), [TrailingWhitespaceAnalyzer()], [TrailingWhitespaceFixer()])
        with pytest.raises(TypeError):
            catalog.fixers_by_id["X"] = ()  # type: ignore[index]

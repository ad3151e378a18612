"""Registries for analyzers and fixers, and the per-unit fix catalog.

The registry is an explicit list of analyzer and fixer classes built at
startup. A :class:`FixCatalog` is derived from it for each unit and answers
the loop's two questions: who reports a diagnostic id, and who can fix it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from codefix.analyzers.base import BaseAnalyzer
from codefix.diagnostics import DiagnosticDescriptor
from codefix.fixers.base import BaseFixProvider
from codefix.workspace import Unit


class FixerRegistry:
    """Registry of analyzer and fixer classes, keyed by name.

    Example:
        >>> registry = FixerRegistry()
        >>> registry.register_analyzer(TrailingWhitespaceAnalyzer)
        >>> registry.register_fixer(TrailingWhitespaceFixer)
        >>> analyzers, fixers = registry.create_all()
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._analyzers: dict[str, type[BaseAnalyzer]] = {}
        self._fixers: dict[str, type[BaseFixProvider]] = {}

    @staticmethod
    def _key(cls: type[BaseAnalyzer] | type[BaseFixProvider]) -> str:
        return cls.name or cls.__name__

    def register_analyzer(self, analyzer_class: type[BaseAnalyzer]) -> None:
        """Register an analyzer class.

        Raises:
            ValueError: If the analyzer declares no diagnostics or its name
                is already registered.
        """
        if not analyzer_class.supported_diagnostics:
            raise ValueError(f"Analyzer class {analyzer_class.__name__} declares no diagnostics")
        key = self._key(analyzer_class)
        if key in self._analyzers:
            raise ValueError(
                f"Analyzer '{key}' already registered: {self._analyzers[key].__name__}"
            )
        self._analyzers[key] = analyzer_class

    def register_fixer(self, fixer_class: type[BaseFixProvider]) -> None:
        """Register a fixer class.

        Raises:
            ValueError: If the fixer declares no fixable ids or its name is
                already registered.
        """
        if not fixer_class.fixable_ids:
            raise ValueError(f"Fixer class {fixer_class.__name__} has no fixable_ids defined")
        key = self._key(fixer_class)
        if key in self._fixers:
            raise ValueError(f"Fixer '{key}' already registered: {self._fixers[key].__name__}")
        self._fixers[key] = fixer_class

    def list_analyzers(self) -> list[type[BaseAnalyzer]]:
        return list(self._analyzers.values())

    def list_fixers(self) -> list[type[BaseFixProvider]]:
        return list(self._fixers.values())

    def list_fix_ids(self) -> list[str]:
        """List every fixable diagnostic id, sorted."""
        return sorted({i for f in self._fixers.values() for i in f.fixable_ids})

    def create_all(self) -> tuple[list[BaseAnalyzer], list[BaseFixProvider]]:
        """Instantiate every registered analyzer and fixer in registration order."""
        analyzers = [cls() for cls in self._analyzers.values()]
        fixers = [cls() for cls in self._fixers.values()]
        return analyzers, fixers


# Global registry instance - populated on first use
_global_registry: FixerRegistry | None = None


def get_global_registry() -> FixerRegistry:
    """Get the global registry populated with all built-in analyzers and fixers."""
    global _global_registry
    if _global_registry is None:
        _global_registry = _create_default_registry()
    return _global_registry


def _create_default_registry() -> FixerRegistry:
    """Create and populate the default registry with built-in analyzers and fixers."""
    # Import here to avoid circular imports
    from codefix.analyzers.formatting import (
        EmbeddedStatementAnalyzer,
        FinalNewlineAnalyzer,
        TabIndentationAnalyzer,
        TrailingWhitespaceAnalyzer,
    )
    from codefix.fixers.formatting import (
        BlankLineAfterEmbeddedStatementFixer,
        FinalNewlineFixer,
        TabIndentationFixer,
        TrailingWhitespaceFixer,
    )

    registry = FixerRegistry()
    registry.register_analyzer(EmbeddedStatementAnalyzer)
    registry.register_analyzer(TrailingWhitespaceAnalyzer)
    registry.register_analyzer(FinalNewlineAnalyzer)
    registry.register_analyzer(TabIndentationAnalyzer)
    registry.register_fixer(BlankLineAfterEmbeddedStatementFixer)
    registry.register_fixer(TrailingWhitespaceFixer)
    registry.register_fixer(FinalNewlineFixer)
    registry.register_fixer(TabIndentationFixer)
    return registry


@dataclass(frozen=True)
class FixCatalog:
    """Analyzers and fixers applicable to one unit, indexed by diagnostic id.

    Attributes:
        analyzers: Analyzers supporting the unit's language.
        fixers: Fixers supporting the unit's language.
        analyzers_by_id: Diagnostic id -> analyzers reporting it.
        fixers_by_id: Diagnostic id -> fix-all capable fixers, in
            registration order.
        descriptors: Diagnostic id -> descriptor, first analyzer wins.
    """

    analyzers: tuple[BaseAnalyzer, ...] = ()
    fixers: tuple[BaseFixProvider, ...] = ()
    analyzers_by_id: Mapping[str, tuple[BaseAnalyzer, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    fixers_by_id: Mapping[str, tuple[BaseFixProvider, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    descriptors: Mapping[str, DiagnosticDescriptor] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def build(
        cls,
        unit: Unit,
        analyzers: Iterable[BaseAnalyzer],
        fixers: Iterable[BaseFixProvider],
    ) -> FixCatalog:
        """Build the catalog for a unit.

        Args:
            unit: Unit whose language selects the applicable plugins.
            analyzers: All loaded analyzers.
            fixers: All loaded fixers, in registration order.
        """
        unit_analyzers = tuple(a for a in analyzers if a.supports_language(unit.language))
        unit_fixers = tuple(f for f in fixers if f.supports_language(unit.language))

        analyzers_by_id: dict[str, list[BaseAnalyzer]] = {}
        descriptors: dict[str, DiagnosticDescriptor] = {}
        for analyzer in unit_analyzers:
            for descriptor in analyzer.supported_diagnostics:
                bucket = analyzers_by_id.setdefault(descriptor.id, [])
                if analyzer not in bucket:
                    bucket.append(analyzer)
                descriptors.setdefault(descriptor.id, descriptor)

        fixers_by_id: dict[str, list[BaseFixProvider]] = {}
        for fixer in unit_fixers:
            for diagnostic_id in sorted(fixer.fixable_ids):
                if fixer.can_fix_all(diagnostic_id):
                    fixers_by_id.setdefault(diagnostic_id, []).append(fixer)

        return cls(
            analyzers=unit_analyzers,
            fixers=unit_fixers,
            analyzers_by_id=MappingProxyType({k: tuple(v) for k, v in analyzers_by_id.items()}),
            fixers_by_id=MappingProxyType({k: tuple(v) for k, v in fixers_by_id.items()}),
            descriptors=MappingProxyType(descriptors),
        )

    def has_analyzer(self, diagnostic_id: str) -> bool:
        return diagnostic_id in self.analyzers_by_id

    def has_fixer(self, diagnostic_id: str) -> bool:
        return diagnostic_id in self.fixers_by_id

    def get_analyzers(self, diagnostic_id: str) -> Sequence[BaseAnalyzer]:
        return self.analyzers_by_id.get(diagnostic_id, ())

    def get_fixers(self, diagnostic_id: str) -> Sequence[BaseFixProvider]:
        return self.fixers_by_id.get(diagnostic_id, ())

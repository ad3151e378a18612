"""Base classes for analyzers and compilers.

Analyzers inspect a unit snapshot and report diagnostics they declared up
front. Compilers report the unit's own build diagnostics; an ERROR from a
compiler means the unit cannot be safely analyzed or fixed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from codefix.diagnostics import Diagnostic, DiagnosticDescriptor
from codefix.workspace import Unit


class BaseAnalyzer(ABC):
    """Abstract base class for all analyzers.

    Analyzers are stateless: the same snapshot always yields equal
    diagnostics.

    Attributes:
        name: Short analyzer name used in reports and configuration.
        supported_diagnostics: Descriptors of every diagnostic the analyzer
            can report.
        languages: Unit languages the analyzer applies to; empty means all.
    """

    name: ClassVar[str] = ""
    supported_diagnostics: ClassVar[tuple[DiagnosticDescriptor, ...]] = ()
    languages: ClassVar[frozenset[str]] = frozenset()

    @abstractmethod
    def analyze(self, unit: Unit) -> list[Diagnostic]:
        """Analyze a unit snapshot.

        Args:
            unit: The snapshot to analyze.

        Returns:
            Diagnostics found, in any order.
        """

    @property
    def supported_ids(self) -> frozenset[str]:
        return frozenset(d.id for d in self.supported_diagnostics)

    @property
    def full_name(self) -> str:
        cls = type(self)
        return f"{cls.__module__}.{cls.__qualname__}"

    @property
    def display_name(self) -> str:
        return self.name or type(self).__name__

    def supports_language(self, language: str) -> bool:
        return not self.languages or language in self.languages


class BaseCompiler(ABC):
    """Abstract base class for compilers."""

    name: ClassVar[str] = ""

    @abstractmethod
    def compile(self, unit: Unit) -> list[Diagnostic]:
        """Compile a unit snapshot and return its compiler diagnostics."""

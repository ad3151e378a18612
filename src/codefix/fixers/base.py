"""Base classes for codefix fix providers.

Provides the core abstraction for implementing fixers that resolve
diagnostics reported by analyzers or compilers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import ClassVar

from codefix.diagnostics import Diagnostic
from codefix.fixers.actions import FixAction, FixAllContext
from codefix.fixers.applier import batch_fix_all
from codefix.workspace import Unit


class BaseFixProvider(ABC):
    """Abstract base class for all fix providers.

    Fix providers are stateless. For a given diagnostic they offer a lazy,
    finite sequence of candidate actions; callers may stop consuming it at
    any point and may ask again for a fresh sequence.

    Attributes:
        name: Short fixer name used in reports and overrides.
        fixable_ids: Diagnostic identifiers this fixer can fix.
        languages: Unit languages the fixer applies to; empty means all.
        supports_fix_all: Whether the fixer can fix every occurrence of a
            diagnostic id in a unit in one action. Fixers without fix-all
            support are never used by the convergence loop.
    """

    name: ClassVar[str] = ""
    fixable_ids: ClassVar[frozenset[str]] = frozenset()
    languages: ClassVar[frozenset[str]] = frozenset()
    supports_fix_all: ClassVar[bool] = True

    @abstractmethod
    def provide_fixes(self, diagnostic: Diagnostic, unit: Unit) -> Iterator[FixAction]:
        """Yield candidate fixes for a single diagnostic.

        Args:
            diagnostic: The diagnostic to fix.
            unit: Snapshot the diagnostic was reported against.

        Yields:
            Candidate actions, most preferred first.
        """

    def can_fix_all(self, diagnostic_id: str) -> bool:
        """Check if this fixer can batch-fix the identifier at unit scope."""
        return self.supports_fix_all and diagnostic_id in self.fixable_ids

    def get_fix_all(self, context: FixAllContext) -> FixAction | None:
        """Combine the fixes for a whole batch into one action.

        The default merges every occurrence's action that shares the
        context's equivalence key, dropping edits that overlap ones already
        accepted.

        Returns:
            The combined action, or None if nothing in the batch is fixable.
        """
        return batch_fix_all(self, context)

    def supports_language(self, language: str) -> bool:
        return not self.languages or language in self.languages

    @property
    def full_name(self) -> str:
        cls = type(self)
        return f"{cls.__module__}.{cls.__qualname__}"

    @property
    def display_name(self) -> str:
        return self.name or type(self).__name__

    def matches(self, identity: str) -> bool:
        """Check whether a configured fixer identity refers to this fixer.

        Accepts the fully qualified class name, the class name, or the short
        fixer name.
        """
        return identity in (self.full_name, type(self).__name__, self.name)

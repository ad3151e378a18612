"""Fixer framework for resolving diagnostics.

Provides fix providers, the catalog that maps diagnostic ids to them, the
conflict resolver that picks one fix, and the applier that commits it.
"""

from __future__ import annotations

from codefix.fixers.actions import FixAction, FixAllContext
from codefix.fixers.applier import ApplyStatus, BatchApplier, batch_fix_all
from codefix.fixers.base import BaseFixProvider
from codefix.fixers.formatting import (
    BlankLineAfterEmbeddedStatementFixer,
    FinalNewlineFixer,
    TabIndentationFixer,
    TrailingWhitespaceFixer,
)
from codefix.fixers.registry import (
    FixCatalog,
    FixerRegistry,
    get_global_registry,
)
from codefix.fixers.resolver import ConflictResolver

__all__ = [
    # Base types
    "BaseFixProvider",
    "FixAction",
    "FixAllContext",
    # Registry
    "FixCatalog",
    "FixerRegistry",
    "get_global_registry",
    # Resolution and application
    "ApplyStatus",
    "BatchApplier",
    "ConflictResolver",
    "batch_fix_all",
    # Fixers
    "BlankLineAfterEmbeddedStatementFixer",
    "FinalNewlineFixer",
    "TabIndentationFixer",
    "TrailingWhitespaceFixer",
]

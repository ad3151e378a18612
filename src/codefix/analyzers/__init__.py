"""Analyzer framework for finding diagnostics in units.

Provides the analyzer and compiler base types, the built-in formatting
analyzers, and the diagnostic source that runs them.
"""

from __future__ import annotations

from codefix.analyzers.base import BaseAnalyzer, BaseCompiler
from codefix.analyzers.compiler import (
    BracketBalanceCompiler,
    DefaultCompiler,
    PythonCompiler,
)
from codefix.analyzers.formatting import (
    EmbeddedStatementAnalyzer,
    FinalNewlineAnalyzer,
    TabIndentationAnalyzer,
    TrailingWhitespaceAnalyzer,
)
from codefix.analyzers.runner import DiagnosticSource

__all__ = [
    # Base types
    "BaseAnalyzer",
    "BaseCompiler",
    # Compilers
    "BracketBalanceCompiler",
    "DefaultCompiler",
    "PythonCompiler",
    # Analyzers
    "EmbeddedStatementAnalyzer",
    "FinalNewlineAnalyzer",
    "TabIndentationAnalyzer",
    "TrailingWhitespaceAnalyzer",
    # Runner
    "DiagnosticSource",
]

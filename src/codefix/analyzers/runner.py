"""Diagnostic source: compile a unit and run analyzers over it.

Analyzers may run in parallel; results are always returned in stable
document order so that iterations can be compared. An analyzer that raises
is logged and treated as having reported nothing this round.
"""

from __future__ import annotations

import concurrent.futures
import logging
from collections.abc import Sequence

from codefix.analyzers.base import BaseAnalyzer, BaseCompiler
from codefix.analyzers.compiler import DefaultCompiler
from codefix.diagnostics import Diagnostic, sort_diagnostics
from codefix.workspace import Unit

logger = logging.getLogger(__name__)


class DiagnosticSource:
    """Produces compiler and analyzer diagnostics for unit snapshots.

    Attributes:
        compiler: Compiler used for build diagnostics.
        parallel: Whether to run analyzers in parallel.
    """

    def __init__(self, compiler: BaseCompiler | None = None, parallel: bool = True) -> None:
        self.compiler = compiler or DefaultCompiler()
        self.parallel = parallel

    def compile(self, unit: Unit) -> list[Diagnostic]:
        """Get compiler diagnostics for a snapshot."""
        return sort_diagnostics(self.compiler.compile(unit))

    def analyze(self, unit: Unit, analyzers: Sequence[BaseAnalyzer]) -> list[Diagnostic]:
        """Run analyzers against a snapshot.

        Args:
            unit: Snapshot to analyze.
            analyzers: Analyzers to run.

        Returns:
            Distinct diagnostics from all analyzers, in document order.
        """
        if not analyzers:
            return []

        if self.parallel and len(analyzers) > 1:
            batches = self._run_parallel(unit, analyzers)
        else:
            batches = self._run_sequential(unit, analyzers)

        seen: set[Diagnostic] = set()
        diagnostics: list[Diagnostic] = []
        for batch in batches:
            for diagnostic in batch:
                if diagnostic not in seen:
                    seen.add(diagnostic)
                    diagnostics.append(diagnostic)
        return sort_diagnostics(diagnostics)

    def _run_one(self, unit: Unit, analyzer: BaseAnalyzer) -> list[Diagnostic]:
        try:
            return list(analyzer.analyze(unit))
        except Exception as e:
            logger.warning(
                "Analyzer '%s' failed on '%s': %s", analyzer.full_name, unit.display_name, e
            )
            return []

    def _run_sequential(self, unit: Unit, analyzers: Sequence[BaseAnalyzer]) -> list[list[Diagnostic]]:
        return [self._run_one(unit, analyzer) for analyzer in analyzers]

    def _run_parallel(self, unit: Unit, analyzers: Sequence[BaseAnalyzer]) -> list[list[Diagnostic]]:
        """Run analyzers in parallel using ThreadPoolExecutor.

        Results are collected in analyzer order, not completion order.
        """
        with concurrent.futures.ThreadPoolExecutor(max_workers=len(analyzers)) as executor:
            futures = [executor.submit(self._run_one, unit, analyzer) for analyzer in analyzers]
            return [future.result() for future in futures]

"""Convergence loop: analyze, select, apply, repeat.

Each unit is processed in dependency order. Within a unit, every
macro-iteration recompiles the latest snapshot, collects the diagnostics that
can be fixed, and fixes them one identifier at a time in ascending id order.
The unit ends when nothing fixable remains, when the diagnostic set repeats
one of the two previous iterations (oscillation), when the iteration cap is
reached, or when the unit stops building.

Design decisions:
- Diagnostics are never reused across snapshots; every read recompiles
- A compiler error stops the unit and every later unit
- Ambiguity, stalls and apply conflicts are recorded per identifier and never
  stop the unit
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence

from codefix.analyzers.base import BaseAnalyzer
from codefix.analyzers.compiler import SYNTAX_ERROR, SYNTAX_WARNING
from codefix.analyzers.runner import DiagnosticSource
from codefix.banner import banner_edits
from codefix.cancellation import NONE, CancellationToken, OperationCancelledError
from codefix.config import CodeFixerConfig
from codefix.diagnostics import Diagnostic, DiagnosticDescriptor, Severity, same_diagnostics
from codefix.errors import AmbiguousFixError
from codefix.fixers.applier import ApplyStatus, BatchApplier
from codefix.fixers.base import BaseFixProvider
from codefix.fixers.registry import FixCatalog
from codefix.fixers.resolver import ConflictResolver
from codefix.formatter import BaseFormatter, WhitespaceFormatter, format_edits
from codefix.results import (
    DiagnosticFixStatus,
    DiagnosticOutcome,
    RunReport,
    SkippedDiagnostic,
    UnitFixKind,
    UnitFixResult,
)
from codefix.workspace import Unit, Workspace

logger = logging.getLogger(__name__)

MAX_LOGGED_COMPILER_ERRORS = 10


class CodeFixer:
    """Drive analyzers and fixers over a workspace until it converges.

    Attributes:
        workspace: Owner of the unit snapshots.
        analyzers: Loaded analyzers.
        fixers: Loaded fixers, in registration order.
        config: Loop configuration.
        diagnostic_source: Compiles units and runs analyzers.
        cancellation_token: Cooperative cancellation signal.
        formatter: Formatter run after each unit when ``config.format`` is set.
    """

    def __init__(
        self,
        workspace: Workspace,
        analyzers: Sequence[BaseAnalyzer],
        fixers: Sequence[BaseFixProvider],
        config: CodeFixerConfig | None = None,
        diagnostic_source: DiagnosticSource | None = None,
        cancellation_token: CancellationToken = NONE,
        formatter: BaseFormatter | None = None,
    ) -> None:
        self.workspace = workspace
        self.analyzers = tuple(analyzers)
        self.fixers = tuple(fixers)
        self.config = config or CodeFixerConfig()
        self.diagnostic_source = diagnostic_source or DiagnosticSource(
            parallel=self.config.parallel_analysis
        )
        self.cancellation_token = cancellation_token
        self.formatter = formatter or WhitespaceFormatter()
        self.resolver = ConflictResolver(self.config)
        self.applier = BatchApplier(workspace)
        self._descriptors: dict[str, DiagnosticDescriptor] = {}

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def remediate(self, unit_ids: Iterable[str] | None = None) -> RunReport:
        """Fix every unit in dependency order.

        Args:
            unit_ids: Units to fix; defaults to every unit in the workspace.

        Returns:
            The run report. On cancellation it holds everything collected
            so far; edits already applied are kept.

        Raises:
            CyclicDependencyError: If the units cannot be ordered.
            UnknownUnitError: If a requested unit does not exist.
        """
        started = time.perf_counter()
        order = self.workspace.topological_order(unit_ids)

        for diagnostic_id in sorted(self.config.ignored_diagnostic_ids):
            logger.debug("Ignore diagnostic '%s'", diagnostic_id)
        for diagnostic_id in sorted(self.config.ignored_compiler_diagnostic_ids):
            logger.debug("Ignore compiler diagnostic '%s'", diagnostic_id)

        results: list[UnitFixResult] = []
        cancelled = False
        aborted = False

        for position, unit_id in enumerate(order, start=1):
            if self.cancellation_token.is_cancelled:
                cancelled = True
                break

            unit = self.workspace.get_latest_snapshot(unit_id)
            progress = f"{position}/{len(order)}"

            if not self.config.is_supported_unit(unit.display_name):
                logger.info("Skip '%s' %s", unit.display_name, progress)
                results.append(
                    UnitFixResult(unit_id=unit.id, unit_name=unit.display_name, kind=UnitFixKind.SKIPPED)
                )
                continue

            logger.info("Fix '%s' %s", unit.display_name, progress)
            unit_started = time.perf_counter()

            result = self.fix_unit(unit_id)
            results.append(result)

            if self.cancellation_token.is_cancelled:
                cancelled = True
                break

            if result.kind is UnitFixKind.COMPILER_ERROR:
                aborted = True
                break

            if self.config.file_banner_lines:
                self._add_file_banner(unit_id)

            if self.config.format:
                self._format_unit(unit_id)

            logger.info(
                "Done fixing '%s' in %.2fs", unit.display_name, time.perf_counter() - unit_started
            )

        report = RunReport(
            results=tuple(results),
            fixed_diagnostics=self._fixed_descriptors(results),
            cancelled=cancelled,
            aborted=aborted,
            elapsed=time.perf_counter() - started,
        )
        logger.info("Done fixing %d unit(s) in %.2fs", len(results), report.elapsed)
        return report

    # -------------------------------------------------------------------------
    # Unit loop
    # -------------------------------------------------------------------------

    def fix_unit(self, unit_id: str) -> UnitFixResult:
        """Run the convergence loop for a single unit.

        Args:
            unit_id: Unit to fix.

        Returns:
            The unit result. If cancelled mid-way, the partial result.
        """
        unit = self.workspace.get_latest_snapshot(unit_id)
        catalog = FixCatalog.build(unit, self.analyzers, self.fixers)
        for descriptor_id, descriptor in catalog.descriptors.items():
            self._descriptors.setdefault(descriptor_id, descriptor)

        analyzer_names = tuple(a.display_name for a in catalog.analyzers)
        fixer_names = tuple(f.display_name for f in catalog.fixers)

        if not catalog.analyzers:
            logger.info("No analyzers found to analyze '%s'", unit.display_name)
            return UnitFixResult(
                unit_id=unit.id, unit_name=unit.display_name, kind=UnitFixKind.NO_ANALYZERS
            )

        if not catalog.fixers:
            logger.info("No fixers found to fix '%s'", unit.display_name)
            return UnitFixResult(
                unit_id=unit.id,
                unit_name=unit.display_name,
                kind=UnitFixKind.NO_FIXERS,
                analyzers=analyzer_names,
            )

        kind = UnitFixKind.SUCCESS
        fixed_ids: set[str] = set()
        skipped: dict[str, SkippedDiagnostic] = {}
        compiler_errors: tuple[Diagnostic, ...] = ()
        previous: list[Diagnostic] = []
        previous_previous: list[Diagnostic] = []
        iterations = 0
        limit_reached = False

        try:
            while True:
                self.cancellation_token.raise_if_cancelled()

                unit = self.workspace.get_latest_snapshot(unit_id)

                logger.debug(
                    "Compile '%s'%s",
                    unit.display_name,
                    f" iteration {iterations + 1}" if iterations else "",
                )
                compiler_diagnostics = self.diagnostic_source.compile(unit)
                errors = self._verify_compiler_diagnostics(compiler_diagnostics)
                if errors:
                    kind = UnitFixKind.COMPILER_ERROR
                    compiler_errors = errors
                    break

                logger.debug("Analyze '%s'", unit.display_name)
                diagnostics = self._collect_fixable(unit, catalog, compiler_diagnostics)

                if not diagnostics:
                    break

                if same_diagnostics(diagnostics, previous) or same_diagnostics(
                    diagnostics, previous_previous
                ):
                    logger.warning(
                        "Infinite loop detected in '%s': reported diagnostics have been previously fixed",
                        unit.display_name,
                    )
                    for diagnostic in diagnostics:
                        logger.debug("  %s", diagnostic)
                    kind = UnitFixKind.OSCILLATION
                    break

                iterations += 1
                logger.info(
                    "Found %d %s in '%s'",
                    len(diagnostics),
                    "diagnostic" if len(diagnostics) == 1 else "diagnostics",
                    unit.display_name,
                )

                for diagnostic_id in sorted({d.id for d in diagnostics}):
                    self.cancellation_token.raise_if_cancelled()

                    outcome = self.fix_diagnostic(diagnostic_id, unit_id, catalog)

                    if outcome.batches_applied:
                        fixed_ids.add(diagnostic_id)
                    if outcome.is_skipped:
                        skipped[diagnostic_id] = SkippedDiagnostic(
                            diagnostic_id, outcome.status, outcome.detail
                        )
                    else:
                        skipped.pop(diagnostic_id, None)

                    if outcome.status is DiagnosticFixStatus.COMPILER_ERROR:
                        kind = UnitFixKind.COMPILER_ERROR
                        compiler_errors = outcome.compiler_errors
                        break

                if kind is UnitFixKind.COMPILER_ERROR:
                    break

                if iterations >= self.config.max_iterations:
                    logger.info(
                        "Reached %d iteration(s) in '%s' without converging",
                        iterations,
                        unit.display_name,
                    )
                    limit_reached = True
                    break

                previous_previous = previous
                previous = diagnostics
        except OperationCancelledError:
            logger.info("Fixing '%s' was cancelled", unit.display_name)

        return UnitFixResult(
            unit_id=unit.id,
            unit_name=unit.display_name,
            kind=kind,
            fixed_ids=tuple(sorted(fixed_ids)),
            skipped=tuple(skipped[i] for i in sorted(skipped)),
            analyzers=analyzer_names,
            fixers=fixer_names,
            iterations=iterations,
            iteration_limit_reached=limit_reached,
            compiler_errors=compiler_errors,
        )

    # -------------------------------------------------------------------------
    # Per-identifier loop
    # -------------------------------------------------------------------------

    def fix_diagnostic(self, diagnostic_id: str, unit_id: str, catalog: FixCatalog) -> DiagnosticOutcome:
        """Fix every occurrence of one diagnostic id in a unit.

        Occurrences are fixed in batches through a single fix-all action per
        pass. Without a batch size limit there is exactly one pass; with one,
        passes repeat until the limit no longer binds.

        Args:
            diagnostic_id: Identifier to fix.
            unit_id: Unit to fix.
            catalog: The unit's fix catalog.

        Returns:
            What happened to the identifier.

        Raises:
            OperationCancelledError: If the run is cancelled.
        """
        analyzers = catalog.get_analyzers(diagnostic_id)
        fixers = catalog.get_fixers(diagnostic_id)
        batch_size = self.config.batch_size

        previous: list[Diagnostic] = []
        batches = 0
        retried = False

        while True:
            self.cancellation_token.raise_if_cancelled()

            unit = self.workspace.get_latest_snapshot(unit_id)
            compiler_diagnostics = self.diagnostic_source.compile(unit)
            errors = self._verify_compiler_diagnostics(compiler_diagnostics)
            if errors:
                return DiagnosticOutcome(
                    diagnostic_id,
                    DiagnosticFixStatus.COMPILER_ERROR,
                    batches,
                    compiler_errors=errors,
                )

            if analyzers:
                reported = self.diagnostic_source.analyze(unit, analyzers)
            else:
                reported = compiler_diagnostics

            diagnostics = [
                d
                for d in reported
                if d.id == diagnostic_id and d.severity >= self.config.minimum_severity
            ]

            if not diagnostics:
                status = DiagnosticFixStatus.FIXED if batches else DiagnosticFixStatus.NOTHING_TO_FIX
                return DiagnosticOutcome(diagnostic_id, status, batches)

            if same_diagnostics(diagnostics, previous):
                return DiagnosticOutcome(
                    diagnostic_id,
                    DiagnosticFixStatus.STALLED,
                    batches,
                    f"{len(diagnostics)} diagnostic(s) unchanged after fixing",
                )

            previous = diagnostics
            limited = 0 < batch_size < len(diagnostics)
            batch = diagnostics[:batch_size] if limited else diagnostics

            logger.info("Fix %4d %10s '%s'", len(batch), diagnostic_id, batch[0].title or batch[0].message)
            for diagnostic in batch:
                logger.debug("  %s", diagnostic)

            try:
                action = self.resolver.select_fix(
                    diagnostic_id, batch, fixers, unit, self.cancellation_token
                )
            except AmbiguousFixError as e:
                return DiagnosticOutcome(diagnostic_id, DiagnosticFixStatus.AMBIGUOUS, batches, str(e))

            if action is None:
                return DiagnosticOutcome(
                    diagnostic_id,
                    DiagnosticFixStatus.DECLINED,
                    batches,
                    "No fixer produced a fix for the batch",
                )

            status = self.applier.apply(unit, action)

            if status is ApplyStatus.CONFLICT:
                if retried:
                    return DiagnosticOutcome(
                        diagnostic_id,
                        DiagnosticFixStatus.APPLY_CONFLICT,
                        batches,
                        "Workspace rejected the edits twice",
                    )
                retried = True
                previous = []
                continue

            if status is ApplyStatus.NO_CHANGES:
                return DiagnosticOutcome(
                    diagnostic_id,
                    DiagnosticFixStatus.DECLINED,
                    batches,
                    f"'{action.title}' produced no edits",
                )

            batches += 1

            if not limited:
                break

        return DiagnosticOutcome(diagnostic_id, DiagnosticFixStatus.FIXED, batches)

    def diagnose(self, unit_id: str) -> tuple[tuple[Diagnostic, ...], list[Diagnostic]]:
        """Report what the loop would see for a unit, without fixing.

        Returns:
            (blocking compiler errors, fixable diagnostics). Analyzers are
            not run when the unit does not build.
        """
        unit = self.workspace.get_latest_snapshot(unit_id)
        catalog = FixCatalog.build(unit, self.analyzers, self.fixers)
        compiler_diagnostics = self.diagnostic_source.compile(unit)
        errors = self._verify_compiler_diagnostics(compiler_diagnostics)
        if errors:
            return errors, []
        return (), self._collect_fixable(unit, catalog, compiler_diagnostics)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _collect_fixable(
        self,
        unit: Unit,
        catalog: FixCatalog,
        compiler_diagnostics: Sequence[Diagnostic],
    ) -> list[Diagnostic]:
        """Analyzer and compiler diagnostics the loop can act on."""
        fixable = [
            d
            for d in self.diagnostic_source.analyze(unit, catalog.analyzers)
            if self.config.is_supported_diagnostic(d)
            and catalog.has_analyzer(d.id)
            and catalog.has_fixer(d.id)
        ]
        fixable.extend(
            d
            for d in compiler_diagnostics
            if d.severity is not Severity.ERROR
            and d.severity >= self.config.minimum_severity
            and not self.config.is_ignored_compiler_diagnostic(d.id)
            and catalog.has_fixer(d.id)
        )
        for d in fixable:
            if d.is_compiler:
                self._descriptors.setdefault(
                    d.id, DiagnosticDescriptor(d.id, d.title or d.id, d.severity)
                )
        return fixable

    def _verify_compiler_diagnostics(self, diagnostics: Sequence[Diagnostic]) -> tuple[Diagnostic, ...]:
        """Return the compiler errors that block fixing.

        Errors are always logged. With ``ignore_compiler_errors`` they are
        reported but do not block.
        """
        errors = tuple(
            d
            for d in diagnostics
            if d.severity is Severity.ERROR and not self.config.is_ignored_compiler_diagnostic(d.id)
        )
        if not errors:
            return ()

        for diagnostic in errors[:MAX_LOGGED_COMPILER_ERRORS]:
            logger.warning("%s", diagnostic)
        if len(errors) > MAX_LOGGED_COMPILER_ERRORS:
            logger.warning("and %d more diagnostics", len(errors) - MAX_LOGGED_COMPILER_ERRORS)

        if self.config.ignore_compiler_errors:
            return ()
        return errors[:MAX_LOGGED_COMPILER_ERRORS]

    def _add_file_banner(self, unit_id: str) -> None:
        unit = self.workspace.get_latest_snapshot(unit_id)
        edits = banner_edits(unit, self.config.file_banner_lines)
        if not edits:
            return
        for edit in edits:
            logger.debug("Add banner to '%s'", edit.path)
        if not self.workspace.try_apply_edits(unit.id, unit.version, edits):
            logger.warning("Cannot add file banner to '%s'", unit.display_name)

    def _format_unit(self, unit_id: str) -> None:
        unit = self.workspace.get_latest_snapshot(unit_id)
        logger.info("Format '%s' with %s", unit.display_name, self.formatter.display_name)
        edits = format_edits(unit, self.formatter)
        if not edits:
            return
        for edit in edits:
            logger.debug("Format '%s'", edit.path)
        if not self.workspace.try_apply_edits(unit.id, unit.version, edits):
            logger.warning("Cannot apply formatting to '%s'", unit.display_name)

    def _fixed_descriptors(self, results: Sequence[UnitFixResult]) -> tuple[DiagnosticDescriptor, ...]:
        known: dict[str, DiagnosticDescriptor] = {
            SYNTAX_ERROR.id: SYNTAX_ERROR,
            SYNTAX_WARNING.id: SYNTAX_WARNING,
        }
        known.update(self._descriptors)

        fixed_ids = sorted({i for result in results for i in result.fixed_ids})
        return tuple(known.get(i, DiagnosticDescriptor(id=i, title=i)) for i in fixed_ids)

"""Result types produced by a fix run.

Results are immutable once created and carry everything a caller needs to
render a report; the orchestrator itself never prints.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from codefix.diagnostics import Diagnostic, DiagnosticDescriptor


class UnitFixKind(str, Enum):
    """Terminal state of one unit."""

    SUCCESS = "success"
    NO_ANALYZERS = "no_analyzers"
    NO_FIXERS = "no_fixers"
    COMPILER_ERROR = "compiler_error"
    OSCILLATION = "oscillation"
    SKIPPED = "skipped"


class DiagnosticFixStatus(str, Enum):
    """Outcome of fixing one diagnostic id within a macro-iteration."""

    FIXED = "fixed"
    NOTHING_TO_FIX = "nothing_to_fix"
    STALLED = "stalled"
    AMBIGUOUS = "ambiguous"
    DECLINED = "declined"
    APPLY_CONFLICT = "apply_conflict"
    COMPILER_ERROR = "compiler_error"


@dataclass(frozen=True)
class DiagnosticOutcome:
    """Outcome of :meth:`CodeFixer.fix_diagnostic`.

    Attributes:
        diagnostic_id: The identifier that was processed.
        status: What happened.
        batches_applied: Number of fix-all actions applied.
        detail: Extra information for skipped outcomes.
        compiler_errors: Build errors, when status is COMPILER_ERROR.
    """

    diagnostic_id: str
    status: DiagnosticFixStatus
    batches_applied: int = 0
    detail: str = ""
    compiler_errors: tuple[Diagnostic, ...] = ()

    @property
    def is_skipped(self) -> bool:
        return self.status in (
            DiagnosticFixStatus.STALLED,
            DiagnosticFixStatus.AMBIGUOUS,
            DiagnosticFixStatus.DECLINED,
            DiagnosticFixStatus.APPLY_CONFLICT,
        )


@dataclass(frozen=True)
class SkippedDiagnostic:
    """A diagnostic id that could not be fixed, and why."""

    diagnostic_id: str
    reason: DiagnosticFixStatus
    detail: str = ""


@dataclass(frozen=True)
class UnitFixResult:
    """Result of processing one unit.

    Attributes:
        unit_id: Unit identifier.
        unit_name: Display name of the unit.
        kind: Terminal state.
        fixed_ids: Diagnostic ids for which at least one fix was applied.
        skipped: Diagnostic ids that were left unfixed, with reasons.
        analyzers: Names of the analyzers active for the unit.
        fixers: Names of the fixers active for the unit.
        iterations: Macro-iterations in which fixes were attempted.
        iteration_limit_reached: Whether the loop stopped at the cap.
        compiler_errors: Build errors that stopped the unit.
    """

    unit_id: str
    unit_name: str
    kind: UnitFixKind
    fixed_ids: tuple[str, ...] = ()
    skipped: tuple[SkippedDiagnostic, ...] = ()
    analyzers: tuple[str, ...] = ()
    fixers: tuple[str, ...] = ()
    iterations: int = 0
    iteration_limit_reached: bool = False
    compiler_errors: tuple[Diagnostic, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result: dict[str, Any] = {
            "unit": self.unit_name,
            "kind": self.kind.value,
            "iterations": self.iterations,
            "fixed": list(self.fixed_ids),
            "skipped": [
                {"id": s.diagnostic_id, "reason": s.reason.value, "detail": s.detail}
                for s in self.skipped
            ],
        }
        if self.iteration_limit_reached:
            result["iteration_limit_reached"] = True
        if self.compiler_errors:
            result["compiler_errors"] = [str(d) for d in self.compiler_errors]
        return result


@dataclass(frozen=True)
class RunReport:
    """Aggregated result of a whole run.

    Attributes:
        results: Per-unit results in processing order.
        fixed_diagnostics: Distinct descriptors resolved across the run,
            sorted by id.
        cancelled: The run was cancelled before finishing.
        aborted: A compiler error stopped the run.
        elapsed: Wall-clock duration in seconds.
    """

    results: tuple[UnitFixResult, ...] = ()
    fixed_diagnostics: tuple[DiagnosticDescriptor, ...] = ()
    cancelled: bool = False
    aborted: bool = False
    elapsed: float = field(default=0.0, compare=False)

    @property
    def success(self) -> bool:
        return not self.cancelled and not any(
            r.kind in (UnitFixKind.COMPILER_ERROR, UnitFixKind.OSCILLATION) for r in self.results
        )

    def get(self, unit_id: str) -> UnitFixResult | None:
        for result in self.results:
            if result.unit_id == unit_id:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "success": self.success,
            "cancelled": self.cancelled,
            "aborted": self.aborted,
            "elapsed": round(self.elapsed, 3),
            "units": [r.to_dict() for r in self.results],
            "fixed_diagnostics": [{"id": d.id, "title": d.title} for d in self.fixed_diagnostics],
        }

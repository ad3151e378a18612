"""Fix actions and the context handed to fix-all providers."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from codefix.diagnostics import Diagnostic
from codefix.workspace import TextEdit, Unit

if TYPE_CHECKING:
    from codefix.fixers.base import BaseFixProvider


@dataclass(frozen=True)
class FixAction:
    """An applicable, not yet applied, fix.

    Attributes:
        title: Human-readable description of the fix.
        equivalence_key: Distinguishes semantically different fixes offered
            for the same diagnostic. Actions with equal keys are
            interchangeable and can be batched together.
        edits_factory: Computes the edit set on demand.
    """

    title: str
    equivalence_key: str
    edits_factory: Callable[[], Sequence[TextEdit]] = field(compare=False, repr=False)

    @classmethod
    def from_edits(cls, title: str, equivalence_key: str, edits: Sequence[TextEdit]) -> FixAction:
        frozen = tuple(edits)
        return cls(title=title, equivalence_key=equivalence_key, edits_factory=lambda: frozen)

    def compute_edits(self) -> list[TextEdit]:
        return list(self.edits_factory())


@dataclass(frozen=True)
class FixAllContext:
    """Everything a fixer needs to fix a whole batch of one diagnostic id.

    Attributes:
        unit: Snapshot the diagnostics were computed against.
        fixer: The fixer asked to produce the combined fix.
        diagnostic_id: The only identifier to fix.
        equivalence_key: Key of the accepted representative action.
        diagnostics: Exactly the diagnostics in the batch.
    """

    unit: Unit
    fixer: BaseFixProvider
    diagnostic_id: str
    equivalence_key: str
    diagnostics: tuple[Diagnostic, ...]

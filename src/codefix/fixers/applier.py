"""Batch fixing and atomic application of fix actions."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from codefix.fixers.actions import FixAction, FixAllContext
from codefix.workspace import TextEdit, Unit, Workspace

if TYPE_CHECKING:
    from codefix.fixers.base import BaseFixProvider

logger = logging.getLogger(__name__)


def batch_fix_all(fixer: BaseFixProvider, context: FixAllContext) -> FixAction | None:
    """Merge per-occurrence fixes into a single fix-all action.

    Each diagnostic in the batch is asked for its candidate actions; the
    first one carrying the context's equivalence key contributes its edits.
    Edits are all computed against the same snapshot, so an occurrence whose
    edits overlap an already accepted edit is left for the next pass.

    Args:
        fixer: Fixer producing the per-occurrence actions.
        context: Batch to fix.

    Returns:
        The combined action, or None if no occurrence produced an edit.
    """
    accepted: list[TextEdit] = []
    skipped = 0

    for diagnostic in context.diagnostics:
        if diagnostic.id != context.diagnostic_id:
            continue
        action = next(
            (
                a
                for a in fixer.provide_fixes(diagnostic, context.unit)
                if a.equivalence_key == context.equivalence_key
            ),
            None,
        )
        if action is None:
            continue
        edits = action.compute_edits()
        if any(edit.overlaps(other) for edit in edits for other in accepted):
            skipped += 1
            continue
        accepted.extend(edits)

    if skipped:
        logger.debug(
            "Deferred %d overlapping fix(es) for '%s' to the next pass",
            skipped,
            context.diagnostic_id,
        )

    if not accepted:
        return None

    return FixAction.from_edits(
        title=f"Fix all '{context.diagnostic_id}'",
        equivalence_key=context.equivalence_key,
        edits=accepted,
    )


class ApplyStatus(str, Enum):
    """Outcome of applying a fix action."""

    APPLIED = "applied"
    NO_CHANGES = "no_changes"
    CONFLICT = "conflict"


class BatchApplier:
    """Apply fix actions to the workspace as single atomic edits.

    Attributes:
        workspace: Workspace owning the unit snapshots.
    """

    def __init__(self, workspace: Workspace) -> None:
        self.workspace = workspace

    def apply(self, unit: Unit, action: FixAction) -> ApplyStatus:
        """Apply an action computed against ``unit``.

        Either every document edit lands or none does. If the unit changed
        since ``unit`` was fetched, or the edits cannot be applied, the
        workspace is left as it was.

        Args:
            unit: Snapshot the action was computed against.
            action: Action to apply.

        Returns:
            The apply status.
        """
        edits = action.compute_edits()
        if not edits:
            return ApplyStatus.NO_CHANGES

        if not self.workspace.try_apply_edits(unit.id, unit.version, edits):
            logger.warning(
                "Cannot apply '%s' to '%s' (version %d)",
                action.title,
                unit.display_name,
                unit.version,
            )
            return ApplyStatus.CONFLICT

        logger.debug("Applied '%s' (%d edit(s)) to '%s'", action.title, len(edits), unit.display_name)
        return ApplyStatus.APPLIED

"""Deterministic selection of a single fix for a batch of diagnostics.

Rules, in order:

1. Fixers are tried in registration order; a fixer without fix-all support
   for the id is skipped.
2. Within a fixer, the first diagnostic of the batch that yields an action
   is the representative. A configured action override picks the action
   with that equivalence key. Otherwise the first action wins, and a second
   action with a different equivalence key makes that diagnostic ambiguous,
   so the next one is tried. The id is ambiguous only if no diagnostic
   yields a representative.
3. A configured fixer override restricts selection to that fixer. Otherwise
   a second fixer offering a differently keyed action is ambiguous.
4. The winning representative is expanded to the whole batch through the
   fixer's fix-all entry point.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from itertools import islice

from codefix.cancellation import NONE, CancellationToken
from codefix.config import CodeFixerConfig
from codefix.diagnostics import Diagnostic
from codefix.errors import AmbiguousFixError
from codefix.fixers.actions import FixAction, FixAllContext
from codefix.fixers.base import BaseFixProvider
from codefix.workspace import Unit

logger = logging.getLogger(__name__)


class ConflictResolver:
    """Select at most one fix per diagnostic id.

    Attributes:
        config: Supplies the fixer and fix-action overrides.
    """

    def __init__(self, config: CodeFixerConfig) -> None:
        self.config = config

    def select_fix(
        self,
        diagnostic_id: str,
        diagnostics: Sequence[Diagnostic],
        fixers: Sequence[BaseFixProvider],
        unit: Unit,
        cancellation_token: CancellationToken = NONE,
    ) -> FixAction | None:
        """Select the fix-all action for a batch of one diagnostic id.

        Args:
            diagnostic_id: Identifier being fixed.
            diagnostics: The batch, all with ``diagnostic_id``.
            fixers: Candidate fixers in registration order.
            unit: Snapshot the diagnostics were computed against.
            cancellation_token: Checked before each fixer.

        Returns:
            The combined action, or None if no fixer produced one.

        Raises:
            AmbiguousFixError: If competing actions cannot be told apart.
        """
        fixer_override = self.config.fixer_overrides.get(diagnostic_id)

        chosen: tuple[BaseFixProvider, FixAction] | None = None

        for fixer in fixers:
            cancellation_token.raise_if_cancelled()

            if not fixer.can_fix_all(diagnostic_id):
                continue

            # Fixers other than the configured one are never consulted.
            if fixer_override is not None and not fixer.matches(fixer_override):
                continue

            action = self._get_representative(diagnostic_id, diagnostics, fixer, unit)
            if action is None:
                continue

            if chosen is None:
                chosen = (fixer, action)
            elif fixer_override is None and action.equivalence_key != chosen[1].equivalence_key:
                logger.warning(
                    "Diagnostic '%s' is fixable with multiple fixers: '%s' and '%s'",
                    diagnostic_id,
                    chosen[0].full_name,
                    fixer.full_name,
                )
                raise AmbiguousFixError(diagnostic_id, chosen[0].full_name, fixer.full_name)

        if chosen is None:
            return None

        fixer, representative = chosen
        context = FixAllContext(
            unit=unit,
            fixer=fixer,
            diagnostic_id=diagnostic_id,
            equivalence_key=representative.equivalence_key,
            diagnostics=tuple(diagnostics),
        )
        fix_all = fixer.get_fix_all(context)
        if fix_all is None:
            logger.info(
                "Fixer '%s' produced no fix-all action for %d '%s' diagnostic(s)",
                fixer.full_name,
                len(diagnostics),
                diagnostic_id,
            )
        return fix_all

    def _get_representative(
        self,
        diagnostic_id: str,
        diagnostics: Sequence[Diagnostic],
        fixer: BaseFixProvider,
        unit: Unit,
    ) -> FixAction | None:
        """Get the fixer's action for the first diagnostic it can fix.

        A diagnostic for which the fixer offers differently keyed actions
        yields no representative; the next diagnostic of the batch is tried.

        Raises:
            AmbiguousFixError: If no diagnostic of the batch yields an
                unambiguous action and at least one was ambiguous.
        """
        key_override = self.config.fix_action_overrides.get(diagnostic_id)
        ambiguities: dict[tuple[str, str], AmbiguousFixError] = {}

        for diagnostic in diagnostics:
            if diagnostic.id != diagnostic_id or unit.get_document(diagnostic.location.path) is None:
                continue

            candidates = fixer.provide_fixes(diagnostic, unit)

            if key_override is not None:
                action = next((a for a in candidates if a.equivalence_key == key_override), None)
            else:
                offered = list(islice(candidates, 2))
                action = offered[0] if offered else None
                if len(offered) > 1 and offered[1].equivalence_key != offered[0].equivalence_key:
                    keys = (offered[0].equivalence_key, offered[1].equivalence_key)
                    if keys not in ambiguities:
                        logger.warning(
                            "Fixer '%s' registered multiple actions to fix diagnostic '%s': '%s' and '%s'",
                            fixer.full_name,
                            diagnostic_id,
                            *keys,
                        )
                        ambiguities[keys] = AmbiguousFixError(diagnostic_id, *keys)
                    action = None

            if action is not None:
                return action

        if ambiguities:
            raise next(iter(ambiguities.values()))
        return None

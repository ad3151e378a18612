"""Exception hierarchy for codefix."""

from __future__ import annotations


class CodeFixError(Exception):
    """Base exception for codefix errors."""


class ManifestError(CodeFixError):
    """Raised when a workspace manifest cannot be loaded."""


class UnknownUnitError(CodeFixError):
    """Raised when a unit id is not part of the workspace."""

    def __init__(self, unit_id: str) -> None:
        self.unit_id = unit_id
        super().__init__(f"Unknown unit: {unit_id}")


class CyclicDependencyError(CodeFixError):
    """Raised when unit dependencies form a cycle."""


class AmbiguousFixError(CodeFixError):
    """Raised when more than one fix competes for the same diagnostic.

    Attributes:
        diagnostic_id: The diagnostic identifier being fixed.
        first: Description of the provisional winner.
        second: Description of the competing candidate.
    """

    def __init__(self, diagnostic_id: str, first: str, second: str) -> None:
        self.diagnostic_id = diagnostic_id
        self.first = first
        self.second = second
        super().__init__(
            f"Diagnostic '{diagnostic_id}' is fixable by multiple actions: "
            f"'{first}' and '{second}'"
        )

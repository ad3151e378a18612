"""Diagnostic model shared by compilers, analyzers and fixers.

A diagnostic is a located, identified finding. Two diagnostics are equal when
their identifier, location and message are equal; severity, origin and title
are descriptive only. Re-analysis produces new instances, so the convergence
loop compares diagnostic sets by this value equality, never by identity.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum, IntEnum


class Severity(IntEnum):
    """Diagnostic severity, ordered from least to most severe."""

    HIDDEN = 0
    INFO = 1
    WARNING = 2
    ERROR = 3

    @classmethod
    def parse(cls, value: str | int | Severity) -> Severity:
        """Parse a severity from a name ("warning") or an integer value.

        Raises:
            ValueError: If the value does not name a severity.
        """
        if isinstance(value, Severity):
            return value
        if isinstance(value, int):
            return cls(value)
        try:
            return cls[value.strip().upper()]
        except KeyError:
            names = ", ".join(s.name.lower() for s in cls)
            raise ValueError(f"Unknown severity '{value}' (expected one of: {names})") from None

    @property
    def label(self) -> str:
        return self.name.lower()


class DiagnosticOrigin(str, Enum):
    """Who reported a diagnostic."""

    COMPILER = "compiler"
    ANALYZER = "analyzer"


@dataclass(frozen=True)
class DiagnosticDescriptor:
    """Static description of a diagnostic an analyzer can report.

    Attributes:
        id: Diagnostic identifier (e.g. "CF0001").
        title: Short human-readable title.
        default_severity: Severity used when reporting.
        message_format: Message template; may use ``str.format`` fields.
    """

    id: str
    title: str
    default_severity: Severity = Severity.INFO
    message_format: str = ""

    def format_message(self, **kwargs: object) -> str:
        template = self.message_format or self.title
        return template.format(**kwargs) if kwargs else template


@dataclass(frozen=True, order=True)
class Location:
    """A span within a document.

    Offsets are character offsets into the document text; ``line`` and
    ``column`` are 1-based and derived from the same text.
    """

    path: str
    start: int
    end: int
    line: int = 1
    column: int = 1

    @classmethod
    def from_offsets(cls, path: str, text: str, start: int, end: int | None = None) -> Location:
        """Build a location for ``text[start:end]`` within a document."""
        end = start if end is None else end
        line = text.count("\n", 0, start) + 1
        line_start = text.rfind("\n", 0, start) + 1
        return cls(path=path, start=start, end=end, line=line, column=start - line_start + 1)

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"


@dataclass(frozen=True)
class Diagnostic:
    """A single finding reported against a unit snapshot."""

    id: str
    location: Location
    message: str
    severity: Severity = field(default=Severity.INFO, compare=False)
    origin: DiagnosticOrigin = field(default=DiagnosticOrigin.ANALYZER, compare=False)
    title: str = field(default="", compare=False)

    @classmethod
    def create(
        cls,
        descriptor: DiagnosticDescriptor,
        location: Location,
        *,
        severity: Severity | None = None,
        origin: DiagnosticOrigin = DiagnosticOrigin.ANALYZER,
        **message_args: object,
    ) -> Diagnostic:
        """Create a diagnostic from its descriptor."""
        return cls(
            id=descriptor.id,
            location=location,
            message=descriptor.format_message(**message_args),
            severity=descriptor.default_severity if severity is None else severity,
            origin=origin,
            title=descriptor.title,
        )

    @property
    def is_compiler(self) -> bool:
        return self.origin is DiagnosticOrigin.COMPILER

    def sort_key(self) -> tuple[str, int, int, str, str]:
        return (self.location.path, self.location.start, self.location.end, self.id, self.message)

    def __str__(self) -> str:
        return f"{self.location}: {self.severity.label} {self.id}: {self.message}"


def sort_diagnostics(diagnostics: Iterable[Diagnostic]) -> list[Diagnostic]:
    """Return diagnostics in stable document order."""
    return sorted(diagnostics, key=Diagnostic.sort_key)


def same_diagnostics(left: Sequence[Diagnostic], right: Sequence[Diagnostic]) -> bool:
    """Check whether two diagnostic collections are equal as multisets."""
    if len(left) != len(right):
        return False
    return Counter(left) == Counter(right)

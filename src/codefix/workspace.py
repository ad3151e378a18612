"""In-memory workspace of units and their documents.

Provides:
- Immutable unit snapshots (documents are replaced, never mutated)
- Atomic application of text edit sets with optimistic version checks
- Dependency ordering of units (dependencies first)
- Writing changed documents back to disk for file-backed units

Design decisions:
- A unit snapshot is replaced as a whole under a lock, so readers always see
  either the old or the new snapshot
- Edits computed against an older snapshot version are rejected rather than
  rebased
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path

from codefix.errors import CyclicDependencyError, UnknownUnitError


@dataclass(frozen=True)
class Document:
    """A single source document.

    Attributes:
        path: Document path, relative to the workspace root when file-backed.
        text: Current document text.
    """

    path: str
    text: str


@dataclass(frozen=True)
class TextEdit:
    """Replace ``[start, end)`` of a document with ``new_text``."""

    path: str
    start: int
    end: int
    new_text: str = ""

    def overlaps(self, other: TextEdit) -> bool:
        """Check whether two edits touch the same region of the same document.

        Two insertions at the same offset overlap, since their relative order
        would be undefined.
        """
        if self.path != other.path:
            return False
        if self.start == self.end == other.start == other.end:
            return True
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class Unit:
    """Immutable snapshot of an independently compilable group of documents.

    Attributes:
        id: Stable unit identifier.
        name: Display name.
        language: Language tag used to select compilers, analyzers and fixers.
        documents: Ordered documents.
        depends_on: Ids of units this unit depends on.
        version: Incremented every time an edit set is applied.
    """

    id: str
    name: str = ""
    language: str = "text"
    documents: tuple[Document, ...] = ()
    depends_on: tuple[str, ...] = ()
    version: int = 0

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def get_document(self, path: str) -> Document | None:
        for document in self.documents:
            if document.path == path:
                return document
        return None

    def with_edits(self, edits: Sequence[TextEdit]) -> Unit:
        """Return a new snapshot with all edits applied.

        Raises:
            ValueError: If an edit targets an unknown document, falls outside
                the document, or overlaps another edit.
        """
        by_path: dict[str, list[TextEdit]] = {}
        for edit in edits:
            by_path.setdefault(edit.path, []).append(edit)

        documents = list(self.documents)
        index = {document.path: i for i, document in enumerate(documents)}

        for path, doc_edits in by_path.items():
            if path not in index:
                raise ValueError(f"Edit targets unknown document: {path}")
            document = documents[index[path]]
            documents[index[path]] = replace(document, text=apply_text_edits(document.text, doc_edits))

        return replace(self, documents=tuple(documents), version=self.version + 1)


def apply_text_edits(text: str, edits: Sequence[TextEdit]) -> str:
    """Apply non-overlapping edits to a text.

    Raises:
        ValueError: If an edit is out of range or edits overlap.
    """
    ordered = sorted(edits, key=lambda e: (e.start, e.end))
    for previous, current in zip(ordered, ordered[1:]):
        if previous.overlaps(current):
            raise ValueError(f"Overlapping edits at offset {current.start} in {current.path}")

    parts: list[str] = []
    cursor = 0
    for edit in ordered:
        if not 0 <= edit.start <= edit.end <= len(text):
            raise ValueError(
                f"Edit [{edit.start}, {edit.end}) out of range for {edit.path} "
                f"(length {len(text)})"
            )
        parts.append(text[cursor : edit.start])
        parts.append(edit.new_text)
        cursor = edit.end
    parts.append(text[cursor:])
    return "".join(parts)


@dataclass
class Workspace:
    """Owner of the latest snapshot of every unit.

    Attributes:
        root: Directory that file-backed document paths are relative to.
    """

    root: Path | None = None
    _units: dict[str, Unit] = field(default_factory=dict, repr=False)
    _original: dict[str, Unit] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def from_units(cls, units: Iterable[Unit], root: Path | None = None) -> Workspace:
        workspace = cls(root=root)
        for unit in units:
            workspace.add_unit(unit)
        return workspace

    def add_unit(self, unit: Unit) -> None:
        """Register a unit.

        Raises:
            ValueError: If a unit with the same id is already registered.
        """
        with self._lock:
            if unit.id in self._units:
                raise ValueError(f"Unit '{unit.id}' already registered")
            self._units[unit.id] = unit
            self._original[unit.id] = unit

    @property
    def unit_ids(self) -> list[str]:
        return list(self._units)

    def get_latest_snapshot(self, unit_id: str) -> Unit:
        """Get the current snapshot of a unit.

        Raises:
            UnknownUnitError: If the unit is not registered.
        """
        with self._lock:
            try:
                return self._units[unit_id]
            except KeyError:
                raise UnknownUnitError(unit_id) from None

    def try_apply_edits(self, unit_id: str, base_version: int, edits: Sequence[TextEdit]) -> bool:
        """Atomically apply an edit set computed against ``base_version``.

        Returns:
            True if the edits were applied. False if the unit changed since
            ``base_version`` or the edits cannot be applied; the unit is then
            left untouched.
        """
        with self._lock:
            current = self._units.get(unit_id)
            if current is None:
                raise UnknownUnitError(unit_id)
            if current.version != base_version:
                return False
            try:
                updated = current.with_edits(edits)
            except ValueError:
                return False
            self._units[unit_id] = updated
            return True

    def topological_order(self, unit_ids: Iterable[str] | None = None) -> list[str]:
        """Get unit ids sorted so that dependencies come first.

        Uses Kahn's algorithm; ties are broken by unit id for deterministic
        output. Dependencies on units outside the workspace are ignored.

        Raises:
            CyclicDependencyError: If the dependency graph contains a cycle.
        """
        with self._lock:
            units = dict(self._units)

        selected = set(units) if unit_ids is None else set(unit_ids)
        for unit_id in selected:
            if unit_id not in units:
                raise UnknownUnitError(unit_id)

        dependencies = {
            unit_id: {dep for dep in units[unit_id].depends_on if dep in units}
            for unit_id in units
        }
        in_degree = {unit_id: len(deps) for unit_id, deps in dependencies.items()}

        queue = sorted(unit_id for unit_id, degree in in_degree.items() if degree == 0)
        result: list[str] = []

        while queue:
            node = queue.pop(0)
            result.append(node)
            for other, deps in dependencies.items():
                if node in deps:
                    in_degree[other] -= 1
                    if in_degree[other] == 0:
                        queue.append(other)
                        queue.sort()

        if len(result) != len(dependencies):
            remaining = sorted(set(dependencies) - set(result))
            raise CyclicDependencyError(
                f"Cannot order units: dependency cycle among {', '.join(remaining)}"
            )

        return [unit_id for unit_id in result if unit_id in selected]

    def changed_documents(self) -> list[tuple[str, Document]]:
        """List documents whose text differs from when the unit was added.

        Returns:
            (unit_id, document) pairs in unit registration and document order.
        """
        changed: list[tuple[str, Document]] = []
        with self._lock:
            for unit_id, unit in self._units.items():
                original = self._original[unit_id]
                for document in unit.documents:
                    before = original.get_document(document.path)
                    if before is None or before.text != document.text:
                        changed.append((unit_id, document))
        return changed

    def save(self) -> list[Path]:
        """Write changed documents back to disk.

        Returns:
            Paths of the files written.

        Raises:
            ValueError: If the workspace is not file-backed.
        """
        if self.root is None:
            raise ValueError("Workspace has no root directory; nothing to save to")

        written: list[Path] = []
        for unit_id, document in self.changed_documents():
            path = self.root / document.path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(document.text, encoding="utf-8")
            written.append(path)
            with self._lock:
                self._original[unit_id] = self._units[unit_id]
        return written

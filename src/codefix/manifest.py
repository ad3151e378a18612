"""Workspace manifest loading.

A manifest (``codefix.yaml``) declares the units of a code base and, when
the built-ins are not wanted, the analyzers, fixers, compiler and formatter
to load:

    units:
      - name: core
        language: csharp
        documents: ["src/core/**/*.cs"]
      - name: app
        language: csharp
        documents: ["src/app/**/*.cs"]
        depends_on: [core]
    analyzers:
      - codefix.analyzers.formatting:TrailingWhitespaceAnalyzer
    fixers:
      - codefix.fixers.formatting:TrailingWhitespaceFixer
    compiler: codefix.analyzers.compiler:DefaultCompiler
    formatter: codefix.formatter:WhitespaceFormatter

Plugins are referenced by import path (``module:Class`` or
``module.Class``); there is no discovery.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import yaml

from codefix.analyzers.base import BaseAnalyzer, BaseCompiler
from codefix.analyzers.compiler import DefaultCompiler
from codefix.errors import ManifestError
from codefix.fixers.base import BaseFixProvider
from codefix.formatter import BaseFormatter, WhitespaceFormatter
from codefix.fixers.registry import FixerRegistry, get_global_registry
from codefix.workspace import Document, Unit, Workspace

MANIFEST_NAME = "codefix.yaml"

T = TypeVar("T")


@dataclass
class Manifest:
    """A loaded manifest.

    Attributes:
        path: Manifest file path.
        workspace: Workspace holding every declared unit.
        registry: Registry of the analyzers and fixers to use.
        compiler: Compiler to use.
        formatter: Formatter used when formatting is enabled.
    """

    path: Path
    workspace: Workspace
    registry: FixerRegistry
    compiler: BaseCompiler
    formatter: BaseFormatter


def find_manifest(start_dir: Path | None = None, filename: str = MANIFEST_NAME) -> Path | None:
    """Find a manifest by traversing up the directory tree.

    Returns:
        Path to the manifest if found, None otherwise.
    """
    current = (start_dir or Path.cwd()).resolve()
    while True:
        candidate = current / filename
        if candidate.is_file():
            return candidate
        if current.parent == current:
            return None
        current = current.parent


def import_object(path: str) -> Any:
    """Import ``package.module:Name`` or ``package.module.Name``.

    Raises:
        ManifestError: If the module or attribute cannot be found.
    """
    module_name, sep, attr = path.partition(":")
    if not sep:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        raise ManifestError(f"Invalid import path '{path}' (expected 'module:Class')")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ManifestError(f"Cannot import module '{module_name}': {e}") from e
    try:
        return getattr(module, attr)
    except AttributeError:
        raise ManifestError(f"Module '{module_name}' has no attribute '{attr}'") from None


def _import_class(path: str, base: type[T]) -> type[T]:
    obj = import_object(path)
    if not isinstance(obj, type) or not issubclass(obj, base):
        raise ManifestError(f"'{path}' is not a {base.__name__} subclass")
    return obj


def _string_list(value: Any, what: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return value
    raise ManifestError(f"{what} must be a string or a list of strings")


def _load_unit(entry: Any, root: Path) -> Unit:
    if not isinstance(entry, dict) or not entry.get("name"):
        raise ManifestError("Each unit needs a 'name'")
    name = str(entry["name"])
    patterns = _string_list(entry.get("documents"), f"Unit '{name}' documents")
    if not patterns:
        raise ManifestError(f"Unit '{name}' declares no documents")

    paths: list[Path] = []
    for pattern in patterns:
        for path in sorted(root.glob(pattern)):
            if path.is_file() and path not in paths:
                paths.append(path)

    documents = []
    for path in paths:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestError(f"Cannot read document '{path}': {e}") from e
        documents.append(Document(path=path.relative_to(root).as_posix(), text=text))

    return Unit(
        id=name,
        name=name,
        language=str(entry.get("language", "text")),
        documents=tuple(documents),
        depends_on=tuple(_string_list(entry.get("depends_on"), f"Unit '{name}' depends_on")),
    )


def _load_registry(data: dict[str, Any]) -> FixerRegistry:
    analyzer_paths = data.get("analyzers")
    fixer_paths = data.get("fixers")
    if analyzer_paths is None and fixer_paths is None:
        return get_global_registry()

    default = get_global_registry()
    registry = FixerRegistry()
    try:
        if analyzer_paths is None:
            for analyzer_class in default.list_analyzers():
                registry.register_analyzer(analyzer_class)
        else:
            for path in _string_list(analyzer_paths, "analyzers"):
                registry.register_analyzer(_import_class(path, BaseAnalyzer))

        if fixer_paths is None:
            for fixer_class in default.list_fixers():
                registry.register_fixer(fixer_class)
        else:
            for path in _string_list(fixer_paths, "fixers"):
                registry.register_fixer(_import_class(path, BaseFixProvider))
    except ValueError as e:
        raise ManifestError(str(e)) from e
    return registry


def load_manifest(path: Path) -> Manifest:
    """Load a manifest and the documents it declares.

    Args:
        path: Manifest file.

    Returns:
        The loaded manifest.

    Raises:
        ManifestError: If the manifest is missing, malformed, or refers to
            plugins that cannot be imported.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ManifestError(f"Cannot read manifest '{path}': {e}") from e
    except yaml.YAMLError as e:
        raise ManifestError(f"Invalid YAML in '{path}': {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(f"Manifest '{path}' must be a mapping")

    units = data.get("units")
    if not isinstance(units, list) or not units:
        raise ManifestError(f"Manifest '{path}' declares no units")

    root = path.resolve().parent
    workspace = Workspace(root=root)
    for entry in units:
        try:
            workspace.add_unit(_load_unit(entry, root))
        except ValueError as e:
            raise ManifestError(str(e)) from e

    compiler_path = data.get("compiler")
    compiler: BaseCompiler
    formatter: BaseFormatter
    if compiler_path is None:
        compiler = DefaultCompiler()
    else:
        compiler = _import_class(str(compiler_path), BaseCompiler)()

    formatter_path = data.get("formatter")
    formatter: BaseFormatter
    if formatter_path is None:
        formatter = WhitespaceFormatter()
    else:
        formatter = _import_class(str(formatter_path), BaseFormatter)()

    return Manifest(
        path=path.resolve(),
        workspace=workspace,
        registry=_load_registry(data),
        compiler=compiler,
        formatter=formatter,
    )

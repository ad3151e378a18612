"""Configuration management for codefix.

Handles configuration loading from multiple sources with precedence:
CLI args > environment variables > .codefixrc > pyproject.toml > defaults
"""

from __future__ import annotations

import fnmatch
import os
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from codefix.diagnostics import Diagnostic, Severity

# tomllib is only available in Python 3.11+
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found]

DEFAULT_MAX_ITERATIONS = 100


@dataclass
class CodeFixerConfig:
    """Configuration for the convergence loop.

    Attributes:
        max_iterations: Maximum macro-iterations per unit (default: 100).
        batch_size: Maximum diagnostics fixed per fix-all pass; 0 means
            unlimited (default: 0).
        minimum_severity: Diagnostics below this severity are ignored
            (default: info).
        ignored_diagnostic_ids: Analyzer diagnostic ids never acted on.
        ignored_compiler_diagnostic_ids: Compiler diagnostic ids never acted
            on, and never treated as build errors.
        ignore_compiler_errors: Keep going when a unit does not build.
        fixer_overrides: Diagnostic id -> fixer identity that must be used
            for that id.
        fix_action_overrides: Diagnostic id -> equivalence key of the action
            that must be used for that id.
        file_banner_lines: Comment lines inserted at the top of every
            document after a unit is fixed.
        include_units: Glob patterns; if set, only matching units are fixed.
        exclude_units: Glob patterns of units to skip.
        parallel_analysis: Run analyzers concurrently.
        format: Run the formatter over each unit after it is fixed.
    """

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    batch_size: int = 0
    minimum_severity: Severity = Severity.INFO
    ignored_diagnostic_ids: frozenset[str] = field(default_factory=frozenset)
    ignored_compiler_diagnostic_ids: frozenset[str] = field(default_factory=frozenset)
    ignore_compiler_errors: bool = False
    fixer_overrides: Mapping[str, str] = field(default_factory=dict)
    fix_action_overrides: Mapping[str, str] = field(default_factory=dict)
    file_banner_lines: tuple[str, ...] = ()
    include_units: tuple[str, ...] = ()
    exclude_units: tuple[str, ...] = ()
    parallel_analysis: bool = True
    format: bool = False

    def __post_init__(self) -> None:
        """Normalize and validate configuration after initialization."""
        self.minimum_severity = Severity.parse(self.minimum_severity)
        self.ignored_diagnostic_ids = frozenset(_as_list(self.ignored_diagnostic_ids))
        self.ignored_compiler_diagnostic_ids = frozenset(_as_list(self.ignored_compiler_diagnostic_ids))
        self.fixer_overrides = _as_mapping(self.fixer_overrides, "fixer_overrides")
        self.fix_action_overrides = _as_mapping(self.fix_action_overrides, "fix_action_overrides")
        self.file_banner_lines = tuple(_as_list(self.file_banner_lines))
        self.include_units = tuple(_as_list(self.include_units))
        self.exclude_units = tuple(_as_list(self.exclude_units))
        self._validate()

    def _validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any configuration value is invalid.
        """
        if isinstance(self.max_iterations, bool) or not isinstance(self.max_iterations, int):
            raise ValueError("max_iterations must be an integer")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")

        if isinstance(self.batch_size, bool) or not isinstance(self.batch_size, int):
            raise ValueError("batch_size must be an integer")
        if self.batch_size < 0:
            raise ValueError("batch_size must be 0 (unlimited) or positive")

        for key, value in {**self.fixer_overrides, **self.fix_action_overrides}.items():
            if not key or not value:
                raise ValueError("override keys and values must be non-empty strings")

    def is_supported_diagnostic(self, diagnostic: Diagnostic) -> bool:
        """Check severity and ignore lists for an analyzer diagnostic."""
        return (
            diagnostic.severity >= self.minimum_severity
            and diagnostic.id not in self.ignored_diagnostic_ids
        )

    def is_ignored_compiler_diagnostic(self, diagnostic_id: str) -> bool:
        return diagnostic_id in self.ignored_compiler_diagnostic_ids

    def is_supported_unit(self, name: str) -> bool:
        """Check a unit name against the include and exclude patterns."""
        if self.include_units and not any(fnmatch.fnmatchcase(name, p) for p in self.include_units):
            return False
        return not any(fnmatch.fnmatchcase(name, p) for p in self.exclude_units)


def _as_list(value: Any) -> list[str]:
    """Accept a comma-separated string or an iterable of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, Iterable):
        return [str(part) for part in value]
    raise ValueError(f"Expected a list of strings, got {type(value).__name__}")


def _as_mapping(value: Any, name: str) -> dict[str, str]:
    """Accept a mapping or ``ID=VALUE`` pairs (string or iterable)."""
    if isinstance(value, Mapping):
        return {str(k): str(v) for k, v in value.items()}
    result: dict[str, str] = {}
    for pair in _as_list(value):
        key, sep, target = pair.partition("=")
        if not sep:
            raise ValueError(f"{name} entries must look like ID=VALUE, got '{pair}'")
        result[key.strip()] = target.strip()
    return result


def _get_config_field_names() -> set[str]:
    """Get the set of valid configuration field names.

    Returns:
        Set of field names from CodeFixerConfig.
    """
    return {f.name for f in fields(CodeFixerConfig)}


def find_config_file(filename: str = ".codefixrc", start_dir: Path | None = None) -> Path | None:
    """Find a configuration file by traversing up the directory tree.

    Searches for the specified file starting from start_dir (or current directory)
    and traversing up to the filesystem root.

    Args:
        filename: Name of the config file to find.
        start_dir: Directory to start searching from. Defaults to current directory.

    Returns:
        Path to the config file if found, None otherwise.
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        config_path = current / filename
        if config_path.is_file():
            return config_path

        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
    """
    with open(path, "rb") as f:
        result: dict[str, Any] = tomllib.load(f)
        return result


def _normalize_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Accept dashed keys and drop unknown ones."""
    valid_fields = _get_config_field_names()
    normalized = {str(k).replace("-", "_"): v for k, v in data.items()}
    return {k: v for k, v in normalized.items() if k in valid_fields}


def _load_from_codefixrc(start_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from a .codefixrc TOML file.

    Returns:
        Configuration from .codefixrc, or an empty dict if not found or invalid.
    """
    config_path = find_config_file(".codefixrc", start_dir)
    if config_path is None:
        return {}

    try:
        return _normalize_keys(_load_toml_file(config_path))
    except (tomllib.TOMLDecodeError, OSError):
        return {}


def _load_from_pyproject(start_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from pyproject.toml [tool.codefix] section.

    Returns:
        Configuration from pyproject.toml, or an empty dict if not found.
    """
    config_path = find_config_file("pyproject.toml", start_dir)
    if config_path is None:
        return {}

    try:
        data = _load_toml_file(config_path)
        section = data.get("tool", {}).get("codefix", {})
        return _normalize_keys(section)
    except (tomllib.TOMLDecodeError, OSError):
        return {}


_ENV_MAPPING = {
    "CODEFIX_MAX_ITERATIONS": "max_iterations",
    "CODEFIX_BATCH_SIZE": "batch_size",
    "CODEFIX_MINIMUM_SEVERITY": "minimum_severity",
    "CODEFIX_IGNORED_DIAGNOSTIC_IDS": "ignored_diagnostic_ids",
    "CODEFIX_IGNORED_COMPILER_DIAGNOSTIC_IDS": "ignored_compiler_diagnostic_ids",
    "CODEFIX_IGNORE_COMPILER_ERRORS": "ignore_compiler_errors",
    "CODEFIX_FORMAT": "format",
}

_INT_FIELDS = {"max_iterations", "batch_size"}
_BOOL_FIELDS = {"ignore_compiler_errors", "parallel_analysis", "format"}


def _load_from_env() -> dict[str, Any]:
    """Load configuration from environment variables.

    Environment variables are prefixed with CODEFIX_ and use uppercase names.
    For example: CODEFIX_MAX_ITERATIONS, CODEFIX_BATCH_SIZE

    Raises:
        ValueError: If a numeric variable is not an integer.
    """
    result: dict[str, Any] = {}
    for env_var, config_key in _ENV_MAPPING.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        if config_key in _INT_FIELDS:
            try:
                result[config_key] = int(value)
            except ValueError:
                raise ValueError(f"{env_var} must be an integer, got '{value}'") from None
        elif config_key in _BOOL_FIELDS:
            result[config_key] = value.strip().lower() in ("1", "true", "yes", "on")
        else:
            result[config_key] = value

    return result


def _merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge multiple configuration dictionaries.

    Later dictionaries take precedence over earlier ones.
    """
    result: dict[str, Any] = {}
    for config in configs:
        for key, value in config.items():
            if value is not None:
                result[key] = value
    return result


def load_config(
    cli_overrides: dict[str, Any] | None = None,
    start_dir: Path | None = None,
) -> CodeFixerConfig:
    """Load configuration with full precedence chain.

    Loads configuration from multiple sources and merges them with the following
    precedence (highest to lowest):
    1. CLI arguments (cli_overrides)
    2. Environment variables (CODEFIX_*)
    3. .codefixrc file
    4. pyproject.toml [tool.codefix] section
    5. Default values

    Args:
        cli_overrides: Configuration overrides from CLI arguments.
        start_dir: Directory to start searching for config files.

    Returns:
        Fully resolved CodeFixerConfig instance.

    Raises:
        ValueError: If the resulting configuration is invalid.
    """
    pyproject_config = _load_from_pyproject(start_dir)
    codefixrc_config = _load_from_codefixrc(start_dir)
    env_config = _load_from_env()
    cli_config = _normalize_keys(cli_overrides or {})

    merged = _merge_configs(
        pyproject_config,
        codefixrc_config,
        env_config,
        cli_config,
    )

    return CodeFixerConfig(**merged)

"""CLI utility functions for codefix.

Provides helper functions for:
- Config wiring: Extracting Typer CLI options and passing to load_config
- Path resolution: Finding the workspace manifest
- Error formatting: Consistent user-friendly error messages with exit codes
- Logging setup: Routing library logs through Rich
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler

from codefix.config import CodeFixerConfig, load_config
from codefix.manifest import MANIFEST_NAME, find_manifest

# Exit code conventions
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # User error (bad input, missing file, etc.)
EXIT_SYSTEM_ERROR = 2  # System error (permissions, I/O, etc.)


class ManifestNotFoundError(Exception):
    """Raised when no workspace manifest can be found."""

    def __init__(self, start_dir: Path, filename: str = MANIFEST_NAME) -> None:
        self.start_dir = start_dir
        self.filename = filename
        super().__init__(
            f"Could not find a workspace manifest (no '{filename}' found). "
            f"Searched from: {start_dir}"
        )


# -----------------------------------------------------------------------------
# Error Formatting Helpers
# -----------------------------------------------------------------------------


def error(msg: str, *, exit_code: int = EXIT_USER_ERROR) -> NoReturn:
    """Print an error message and exit with the given exit code.

    Raises:
        typer.Exit: Always raises to exit the program.
    """
    styled_prefix = typer.style("Error:", fg=typer.colors.RED, bold=True)
    typer.echo(f"{styled_prefix} {msg}", err=True)
    raise typer.Exit(code=exit_code)


def warning(msg: str) -> None:
    """Print a warning message to stderr."""
    styled_prefix = typer.style("Warning:", fg=typer.colors.YELLOW, bold=True)
    typer.echo(f"{styled_prefix} {msg}", err=True)


def success(msg: str) -> None:
    """Print a success message to stdout."""
    styled_prefix = typer.style("Success:", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"{styled_prefix} {msg}")


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route codefix logs to stderr through Rich.

    Args:
        verbose: Show debug output.
        quiet: Only show errors.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logger = logging.getLogger("codefix")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        if getattr(handler, "_codefix_cli", False):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    handler._codefix_cli = True  # type: ignore[attr-defined]
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)


# -----------------------------------------------------------------------------
# Path Resolution Helper
# -----------------------------------------------------------------------------


def resolve_manifest(path: str | None = None) -> Path:
    """Resolve the manifest to use.

    ``path`` may be a manifest file or a directory to search upwards from.

    Raises:
        ManifestNotFoundError: If no manifest is found.
    """
    start = Path(path) if path else Path.cwd()
    if start.is_file():
        return start.resolve()
    manifest = find_manifest(start)
    if manifest is None:
        raise ManifestNotFoundError(start.resolve())
    return manifest


# -----------------------------------------------------------------------------
# Config Wiring Helper
# -----------------------------------------------------------------------------


def parse_overrides(pairs: list[str] | None, option: str) -> dict[str, str] | None:
    """Parse repeated ``ID=VALUE`` options into a mapping.

    Raises:
        typer.Exit: If an entry is malformed.
    """
    if not pairs:
        return None
    result: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip() or not value.strip():
            error(f"{option} expects ID=VALUE, got '{pair}'")
        result[key.strip()] = value.strip()
    return result


def wire_config(
    *,
    max_iterations: int | None = None,
    batch_size: int | None = None,
    minimum_severity: str | None = None,
    ignore: list[str] | None = None,
    ignore_compiler: list[str] | None = None,
    ignore_compiler_errors: bool | None = None,
    fixer_overrides: list[str] | None = None,
    fix_overrides: list[str] | None = None,
    banner: list[str] | None = None,
    format_units: bool | None = None,
    include_units: list[str] | None = None,
    exclude_units: list[str] | None = None,
    start_dir: Path | None = None,
) -> CodeFixerConfig:
    """Wire CLI options to load_config with appropriate overrides.

    Options left at None fall through to lower-precedence sources.

    Raises:
        typer.Exit: If configuration is invalid.
    """
    cli_overrides: dict[str, Any] = {
        "max_iterations": max_iterations,
        "batch_size": batch_size,
        "minimum_severity": minimum_severity,
        "ignored_diagnostic_ids": ignore or None,
        "ignored_compiler_diagnostic_ids": ignore_compiler or None,
        "ignore_compiler_errors": ignore_compiler_errors or None,
        "fixer_overrides": parse_overrides(fixer_overrides, "--fixer"),
        "fix_action_overrides": parse_overrides(fix_overrides, "--fix"),
        "file_banner_lines": banner or None,
        "format": format_units or None,
        "include_units": include_units or None,
        "exclude_units": exclude_units or None,
    }

    try:
        return load_config(cli_overrides=cli_overrides, start_dir=start_dir)
    except ValueError as e:
        error(f"Invalid configuration: {e}", exit_code=EXIT_USER_ERROR)

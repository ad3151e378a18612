"""codefix CLI - Main entry point."""

from __future__ import annotations

import json
import signal
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from codefix import __version__
from codefix.analyzers.runner import DiagnosticSource
from codefix.cancellation import CancellationToken
from codefix.cli_utils import (
    EXIT_SYSTEM_ERROR,
    EXIT_USER_ERROR,
    ManifestNotFoundError,
    configure_logging,
    error,
    resolve_manifest,
    success,
    warning,
    wire_config,
)
from codefix.config import CodeFixerConfig
from codefix.errors import CodeFixError, ManifestError
from codefix.manifest import Manifest, load_manifest
from codefix.orchestrator import CodeFixer
from codefix.results import RunReport, UnitFixKind

app = typer.Typer(
    name="codefix",
    help="Run analyzers and apply their fixes until the code base converges.",
    add_completion=False,
)

# Rich consoles for output
console = Console()
err_console = Console(stderr=True)

KIND_STYLES = {
    UnitFixKind.SUCCESS: "green",
    UnitFixKind.NO_ANALYZERS: "dim",
    UnitFixKind.NO_FIXERS: "dim",
    UnitFixKind.SKIPPED: "dim",
    UnitFixKind.OSCILLATION: "yellow",
    UnitFixKind.COMPILER_ERROR: "red",
}


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _load(path: str | None) -> Manifest:
    """Find and load the manifest, exiting on failure."""
    try:
        return load_manifest(resolve_manifest(path))
    except (ManifestNotFoundError, ManifestError) as e:
        error(str(e))


def _create_fixer(
    manifest: Manifest,
    config: CodeFixerConfig,
    token: CancellationToken | None = None,
) -> CodeFixer:
    analyzers, fixers = manifest.registry.create_all()
    return CodeFixer(
        manifest.workspace,
        analyzers,
        fixers,
        config,
        DiagnosticSource(manifest.compiler, parallel=config.parallel_analysis),
        token or CancellationToken(),
        manifest.formatter,
    )


@contextmanager
def _cancel_on_interrupt(token: CancellationToken) -> Iterator[None]:
    """Turn Ctrl+C into a cooperative cancellation for the duration."""
    previous = signal.getsignal(signal.SIGINT)

    def handler(signum: int, frame: Any) -> None:
        err_console.print("[yellow]Cancelling...[/yellow]")
        token.cancel()

    try:
        signal.signal(signal.SIGINT, handler)
    except ValueError:
        # Not in the main thread
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


# -----------------------------------------------------------------------------
# Version and Main Callbacks
# -----------------------------------------------------------------------------


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"codefix version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Run analyzers and apply their fixes until the code base converges."""
    pass


# -----------------------------------------------------------------------------
# Fix Command
# -----------------------------------------------------------------------------


@app.command()
def fix(
    path: str | None = typer.Argument(
        None,
        help="Manifest file or directory to search from. Defaults to current directory.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Fix in memory only; do not write files.",
    ),
    max_iterations: int | None = typer.Option(
        None,
        "--max-iterations",
        help="Maximum analyze/fix iterations per unit (default: 100).",
    ),
    batch_size: int | None = typer.Option(
        None,
        "--batch-size",
        help="Maximum diagnostics fixed per fix-all pass (0 = unlimited).",
    ),
    severity: str | None = typer.Option(
        None,
        "--severity",
        help="Minimum severity to fix: hidden, info, warning or error.",
    ),
    ignore: list[str] | None = typer.Option(
        None,
        "--ignore",
        help="Diagnostic id to ignore. Repeatable.",
    ),
    ignore_compiler: list[str] | None = typer.Option(
        None,
        "--ignore-compiler",
        help="Compiler diagnostic id to ignore. Repeatable.",
    ),
    ignore_compiler_errors: bool = typer.Option(
        False,
        "--ignore-compiler-errors",
        help="Keep fixing units that do not build.",
    ),
    fixer: list[str] | None = typer.Option(
        None,
        "--fixer",
        help="Force a fixer for a diagnostic: ID=FIXER. Repeatable.",
    ),
    fix_key: list[str] | None = typer.Option(
        None,
        "--fix",
        help="Force a fix by equivalence key: ID=KEY. Repeatable.",
    ),
    banner: list[str] | None = typer.Option(
        None,
        "--banner",
        help="File banner line to add to every document. Repeatable.",
    ),
    format_units: bool = typer.Option(
        False,
        "--format",
        help="Format each unit after fixing it.",
    ),
    unit: list[str] | None = typer.Option(
        None,
        "--unit",
        "-u",
        help="Only fix units matching this glob. Repeatable.",
    ),
    exclude_unit: list[str] | None = typer.Option(
        None,
        "--exclude-unit",
        help="Skip units matching this glob. Repeatable.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed output.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only show errors.",
    ),
) -> None:
    """Fix every unit until no fixable diagnostics remain.

    Exit codes:
      0 - All units converged
      1 - A unit failed to build or oscillated, or the run was cancelled
      2 - Files could not be written
    """
    configure_logging(verbose=verbose, quiet=quiet or json_output)
    manifest = _load(path)
    config = wire_config(
        max_iterations=max_iterations,
        batch_size=batch_size,
        minimum_severity=severity,
        ignore=ignore,
        ignore_compiler=ignore_compiler,
        ignore_compiler_errors=ignore_compiler_errors,
        fixer_overrides=fixer,
        fix_overrides=fix_key,
        banner=banner,
        format_units=format_units,
        include_units=unit,
        exclude_units=exclude_unit,
        start_dir=manifest.path.parent,
    )

    token = CancellationToken()
    code_fixer = _create_fixer(manifest, config, token)

    try:
        with _cancel_on_interrupt(token):
            report = code_fixer.remediate()
    except CodeFixError as e:
        error(str(e))

    changed = [document.path for _, document in manifest.workspace.changed_documents()]

    if not dry_run and changed:
        try:
            manifest.workspace.save()
        except OSError as e:
            error(f"Cannot write changes: {e}", exit_code=EXIT_SYSTEM_ERROR)

    if json_output:
        result = report.to_dict()
        result["dry_run"] = dry_run
        result["changed_files"] = changed
        console.print_json(json.dumps(result))
    else:
        _print_report(report, changed, dry_run=dry_run, verbose=verbose, quiet=quiet)
        if dry_run and changed:
            warning("Dry run: no files were written")

    if not report.success:
        raise typer.Exit(code=EXIT_USER_ERROR)


def _print_report(
    report: RunReport,
    changed: list[str],
    *,
    dry_run: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Print a fix report to the console."""
    if quiet:
        return

    table = Table(title="codefix" + (" (dry run)" if dry_run else ""))
    table.add_column("Unit")
    table.add_column("Result")
    table.add_column("Iterations", justify="right")
    table.add_column("Fixed")
    table.add_column("Skipped")

    for result in report.results:
        style = KIND_STYLES.get(result.kind, "white")
        kind = result.kind.value
        if result.iteration_limit_reached:
            kind += " (limit)"
        table.add_row(
            result.unit_name,
            f"[{style}]{kind}[/{style}]",
            str(result.iterations),
            ", ".join(result.fixed_ids) or "-",
            ", ".join(f"{s.diagnostic_id} ({s.reason.value})" for s in result.skipped) or "-",
        )

    console.print(table)

    for result in report.results:
        for diagnostic in result.compiler_errors:
            console.print(f"  [red]error[/red] {diagnostic}")
        if verbose:
            for skipped in result.skipped:
                if skipped.detail:
                    console.print(f"  [dim]{result.unit_name} {skipped.diagnostic_id}: {skipped.detail}[/dim]")

    if report.fixed_diagnostics:
        console.print("\n[bold]Fixed diagnostics:[/bold]")
        width = max(len(d.id) for d in report.fixed_diagnostics)
        for descriptor in report.fixed_diagnostics:
            console.print(f"  {descriptor.id.ljust(width)} {descriptor.title}")

    if verbose and changed:
        console.print("\n[bold]Changed files:[/bold]")
        for path in changed:
            console.print(f"  [dim]{path}[/dim]")

    console.print()
    if report.cancelled:
        console.print("[yellow]Cancelled.[/yellow] Fixes applied so far were kept.")
    elif report.aborted:
        console.print("[red]Stopped:[/red] a unit does not build.")
    elif report.success:
        verb = "Would change" if dry_run else "Changed"
        success(f"{verb} {len(changed)} file(s) in {report.elapsed:.2f}s")
    else:
        console.print("[yellow]Done with unresolved diagnostics.[/yellow]")


# -----------------------------------------------------------------------------
# Analyze Command
# -----------------------------------------------------------------------------


@app.command()
def analyze(
    path: str | None = typer.Argument(
        None,
        help="Manifest file or directory to search from. Defaults to current directory.",
    ),
    severity: str | None = typer.Option(
        None,
        "--severity",
        help="Minimum severity to report: hidden, info, warning or error.",
    ),
    ignore: list[str] | None = typer.Option(
        None,
        "--ignore",
        help="Diagnostic id to ignore. Repeatable.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed output.",
    ),
) -> None:
    """List fixable diagnostics without changing anything.

    Exit codes:
      0 - Nothing to fix
      1 - Fixable diagnostics or build errors found
    """
    configure_logging(verbose=verbose, quiet=json_output)
    manifest = _load(path)
    config = wire_config(minimum_severity=severity, ignore=ignore, start_dir=manifest.path.parent)
    code_fixer = _create_fixer(manifest, config)

    try:
        order = manifest.workspace.topological_order()
    except CodeFixError as e:
        error(str(e))

    units: list[dict[str, Any]] = []
    total = 0
    for unit_id in order:
        errors, diagnostics = code_fixer.diagnose(unit_id)
        total += len(errors) + len(diagnostics)
        units.append(
            {
                "unit": manifest.workspace.get_latest_snapshot(unit_id).display_name,
                "compiler_errors": [str(d) for d in errors],
                "diagnostics": [
                    {
                        "id": d.id,
                        "severity": d.severity.label,
                        "location": str(d.location),
                        "message": d.message,
                    }
                    for d in diagnostics
                ],
            }
        )

    if json_output:
        console.print_json(json.dumps({"total": total, "units": units}))
    else:
        for entry in units:
            console.print(f"[bold]{entry['unit']}[/bold]")
            for message in entry["compiler_errors"]:
                console.print(f"  [red]error[/red] {message}")
            for d in entry["diagnostics"]:
                console.print(f"  [cyan]{d['id']}[/cyan] {d['location']} {d['message']}")
            if not entry["compiler_errors"] and not entry["diagnostics"]:
                console.print("  [green]clean[/green]")
        if total:
            console.print(f"\nFound {total} diagnostic(s). Run [bold]codefix fix[/bold] to apply fixes")

    if total:
        raise typer.Exit(code=EXIT_USER_ERROR)


# -----------------------------------------------------------------------------
# List Command
# -----------------------------------------------------------------------------


@app.command("list")
def list_plugins(
    path: str | None = typer.Argument(
        None,
        help="Manifest file or directory to search from. Defaults to current directory.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
) -> None:
    """List the analyzers and fixers the manifest loads."""
    manifest = _load(path)
    analyzers, fixers = manifest.registry.create_all()
    fix_ids = manifest.registry.list_fix_ids()

    if json_output:
        data = {
            "analyzers": [
                {
                    "name": a.display_name,
                    "class": a.full_name,
                    "diagnostics": [{"id": d.id, "title": d.title} for d in a.supported_diagnostics],
                    "languages": sorted(a.languages),
                }
                for a in analyzers
            ],
            "fixers": [
                {
                    "name": f.display_name,
                    "class": f.full_name,
                    "fixable_ids": sorted(f.fixable_ids),
                    "fix_all": f.supports_fix_all,
                }
                for f in fixers
            ],
            "fixable_ids": fix_ids,
        }
        console.print_json(json.dumps(data))
        return

    analyzer_table = Table(title="Analyzers")
    analyzer_table.add_column("Name")
    analyzer_table.add_column("Diagnostics")
    analyzer_table.add_column("Languages")
    for a in analyzers:
        analyzer_table.add_row(
            a.display_name,
            "\n".join(f"{d.id} {d.title}" for d in a.supported_diagnostics),
            ", ".join(sorted(a.languages)) or "all",
        )

    fixer_table = Table(title="Fixers")
    fixer_table.add_column("Name")
    fixer_table.add_column("Fixable ids")
    fixer_table.add_column("Fix all")
    for f in fixers:
        fixer_table.add_row(
            f.display_name,
            ", ".join(sorted(f.fixable_ids)),
            "yes" if f.supports_fix_all else "no",
        )

    console.print(analyzer_table)
    console.print(fixer_table)
    console.print(f"\n{len(fix_ids)} fixable diagnostic id(s): {', '.join(fix_ids) or 'none'}")

"""Tests for codefix CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from codefix.cli import app

runner = CliRunner()


def test_version() -> None:
    """Test --version flag shows version."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "codefix version" in result.stdout


def test_help() -> None:
    """Test --help flag shows help."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "converges" in result.stdout


# -----------------------------------------------------------------------------
# Fix Command Tests
# -----------------------------------------------------------------------------


class TestFixCommand:
    """Tests for the fix command."""

    def test_fix_writes_files(self, project_dir: Path) -> None:
        """Test fix applies fixes and writes them back."""
        result = runner.invoke(app, ["fix", str(project_dir)])
        assert result.exit_code == 0, result.output
        assert (project_dir / "app" / "App.cs").read_text() == "if (x) Foo();\n\nBar();\n"
        assert (project_dir / "core" / "Core.cs").read_text() == "class Core {}\n"
        assert "Success:" in result.output
        assert "CF0001" in result.output
        assert "Add blank line after embedded statement" in result.output

    def test_fix_accepts_manifest_file(self, project_dir: Path) -> None:
        """Test the path argument may name the manifest itself."""
        result = runner.invoke(app, ["fix", str(project_dir / "codefix.yaml")])
        assert result.exit_code == 0, result.output

    def test_fix_dry_run(self, project_dir: Path) -> None:
        """Test --dry-run leaves files untouched."""
        result = runner.invoke(app, ["fix", str(project_dir), "--dry-run"])
        assert result.exit_code == 0, result.output
        assert (project_dir / "app" / "App.cs").read_text() == "if (x) Foo(); Bar();\n"
        assert "dry run" in result.output.lower()
        assert "Would change 2 file(s)" in result.output

    def test_fix_json_output(self, project_dir: Path) -> None:
        """Test --json produces a machine-readable report."""
        result = runner.invoke(app, ["fix", str(project_dir), "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["success"] is True
        assert [u["unit"] for u in data["units"]] == ["core", "app"]
        assert data["units"][1]["fixed"] == ["CF0001"]
        assert sorted(data["changed_files"]) == ["app/App.cs", "core/Core.cs"]
        assert data["dry_run"] is False

    def test_fix_ignore(self, project_dir: Path) -> None:
        """Test --ignore leaves a diagnostic alone."""
        result = runner.invoke(app, ["fix", str(project_dir), "--ignore", "CF0001"])
        assert result.exit_code == 0, result.output
        assert (project_dir / "app" / "App.cs").read_text() == "if (x) Foo(); Bar();\n"

    def test_fix_exclude_unit(self, project_dir: Path) -> None:
        """Test --exclude-unit skips a unit."""
        result = runner.invoke(app, ["fix", str(project_dir), "--exclude-unit", "core", "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["units"][0] == {"unit": "core", "kind": "skipped", "iterations": 0, "fixed": [], "skipped": []}
        assert (project_dir / "core" / "Core.cs").read_text() == "class Core {}   \n"

    def test_fix_banner(self, project_dir: Path) -> None:
        """Test --banner adds a header comment."""
        result = runner.invoke(app, ["fix", str(project_dir), "--banner", "Copyright (c) Example"])
        assert result.exit_code == 0, result.output
        assert (project_dir / "core" / "Core.cs").read_text().startswith("// Copyright (c) Example\n\n")

    def test_fix_format(self, project_dir: Path) -> None:
        """Test --format cleans up what the enabled fixers leave behind."""
        core = project_dir / "core" / "Core.cs"

        result = runner.invoke(app, ["fix", str(project_dir), "--ignore", "CF0002"])
        assert result.exit_code == 0, result.output
        assert core.read_text() == "class Core {}   \n"

        result = runner.invoke(app, ["fix", str(project_dir), "--ignore", "CF0002", "--format"])
        assert result.exit_code == 0, result.output
        assert core.read_text() == "class Core {}\n"

    def test_fix_compiler_error(self, project_dir: Path) -> None:
        """Test a unit that does not build stops the run with exit code 1."""
        (project_dir / "core" / "Core.cs").write_text("class Core {\n")
        result = runner.invoke(app, ["fix", str(project_dir), "--json"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["aborted"] is True
        assert data["units"][0]["kind"] == "compiler_error"
        assert len(data["units"]) == 1
        assert (project_dir / "app" / "App.cs").read_text() == "if (x) Foo(); Bar();\n"

    def test_fix_invalid_override(self, project_dir: Path) -> None:
        """Test malformed ID=VALUE options are rejected."""
        result = runner.invoke(app, ["fix", str(project_dir), "--fixer", "CF0001"])
        assert result.exit_code == 1
        assert "expects ID=VALUE" in result.output

    def test_fix_invalid_severity(self, project_dir: Path) -> None:
        """Test an unknown severity is a configuration error."""
        result = runner.invoke(app, ["fix", str(project_dir), "--severity", "loud"])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_fix_no_manifest(self, tmp_path: Path) -> None:
        """Test fix fails cleanly without a manifest."""
        result = runner.invoke(app, ["fix", str(tmp_path)])
        assert result.exit_code == 1
        assert "Could not find a workspace manifest" in result.output

    def test_fix_invalid_manifest(self, tmp_path: Path) -> None:
        """Test a broken manifest is reported."""
        (tmp_path / "codefix.yaml").write_text("units: []\n")
        result = runner.invoke(app, ["fix", str(tmp_path)])
        assert result.exit_code == 1
        assert "declares no units" in result.output

    def test_fix_dependency_cycle(self, tmp_path: Path) -> None:
        """Test cyclic unit dependencies are reported."""
        (tmp_path / "codefix.yaml").write_text(
            "units:\n"
            "  - name: a\n    documents: x\n    depends_on: [b]\n"
            "  - name: b\n    documents: x\n    depends_on: [a]\n"
        )
        result = runner.invoke(app, ["fix", str(tmp_path)])
        assert result.exit_code == 1
        assert "dependency cycle" in result.output


# -----------------------------------------------------------------------------
# Analyze Command Tests
# -----------------------------------------------------------------------------


class TestAnalyzeCommand:
    """Tests for the analyze command."""

    def test_analyze_reports_without_fixing(self, project_dir: Path) -> None:
        """Test analyze lists diagnostics and changes nothing."""
        result = runner.invoke(app, ["analyze", str(project_dir)])
        assert result.exit_code == 1
        assert "CF0001" in result.output
        assert "CF0002" in result.output
        assert "Found 2 diagnostic(s)" in result.output
        assert (project_dir / "app" / "App.cs").read_text() == "if (x) Foo(); Bar();\n"

    def test_analyze_json(self, project_dir: Path) -> None:
        """Test analyze --json."""
        result = runner.invoke(app, ["analyze", str(project_dir), "--json"])
        data = json.loads(result.stdout)
        assert data["total"] == 2
        assert [u["unit"] for u in data["units"]] == ["core", "app"]
        assert data["units"][1]["diagnostics"][0]["id"] == "CF0001"
        assert data["units"][1]["diagnostics"][0]["location"] == "app/App.cs:1:1"

    def test_analyze_clean(self, project_dir: Path) -> None:
        """Test analyze exits 0 after fixing."""
        runner.invoke(app, ["fix", str(project_dir)])
        result = runner.invoke(app, ["analyze", str(project_dir)])
        assert result.exit_code == 0, result.output
        assert "clean" in result.output


# -----------------------------------------------------------------------------
# List Command Tests
# -----------------------------------------------------------------------------


class TestListCommand:
    """Tests for the list command."""

    def test_list(self, project_dir: Path) -> None:
        """Test list shows the built-in analyzers and fixers."""
        result = runner.invoke(app, ["list", str(project_dir)])
        assert result.exit_code == 0, result.output
        assert "embedded-statement" in result.output
        assert "trailing-whitespace" in result.output
        assert "4 fixable diagnostic id(s): CF0001, CF0002, CF0003, CF0004" in result.output

    def test_list_json(self, project_dir: Path) -> None:
        """Test list --json."""
        result = runner.invoke(app, ["list", str(project_dir), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert len(data["analyzers"]) == 4
        assert data["analyzers"][0]["diagnostics"] == [
            {"id": "CF0001", "title": "Add blank line after embedded statement"}
        ]
        assert {f["name"] for f in data["fixers"]} >= {"trailing-whitespace", "final-newline"}
        assert data["fixable_ids"] == ["CF0001", "CF0002", "CF0003", "CF0004"]

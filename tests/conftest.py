"""Pytest configuration and fixtures for codefix tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pytest

# Set a fixed terminal width to prevent line wrapping issues in CI
# This must be set before any Rich imports
os.environ.setdefault("COLUMNS", "200")
os.environ.setdefault("LINES", "50")
# Disable Rich's terminal detection to ensure consistent output
os.environ.setdefault("TERM", "dumb")

from codefix.workspace import Document, Unit, Workspace  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep CODEFIX_* variables from the developer's shell out of tests."""
    for key in list(os.environ):
        if key.startswith("CODEFIX_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _reset_codefix_logger() -> Iterator[None]:
    """Drop handlers the CLI attaches so tests do not leak them."""
    logger = logging.getLogger("codefix")
    handlers = list(logger.handlers)
    level = logger.level
    yield
    logger.handlers = handlers
    logger.setLevel(level)


def make_unit(
    text: str,
    *,
    unit_id: str = "app",
    language: str = "csharp",
    path: str = "Program.cs",
    depends_on: tuple[str, ...] = (),
) -> Unit:
    """Build a single-document unit."""
    return Unit(
        id=unit_id,
        name=unit_id,
        language=language,
        documents=(Document(path=path, text=text),),
        depends_on=depends_on,
    )


@pytest.fixture
def csharp_workspace() -> Workspace:
    """A workspace with one C# unit holding an embedded statement."""
    return Workspace.from_units([make_unit("if (x) Foo(); Bar();\n")])


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A directory with a manifest and two units on disk."""
    (tmp_path / "core").mkdir()
    (tmp_path / "app").mkdir()
    (tmp_path / "core" / "Core.cs").write_text("class Core {}   \n", encoding="utf-8")
    (tmp_path / "app" / "App.cs").write_text("if (x) Foo(); Bar();\n", encoding="utf-8")
    (tmp_path / "codefix.yaml").write_text(
        "units:\n"
        "  - name: app\n"
        "    language: csharp\n"
        "    documents: ['app/*.cs']\n"
        "    depends_on: [core]\n"
        "  - name: core\n"
        "    language: csharp\n"
        "    documents: ['core/*.cs']\n",
        encoding="utf-8",
    )
    return tmp_path

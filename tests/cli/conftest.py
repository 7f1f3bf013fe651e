"""Shared fixtures for CLI tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from propsdb.cli import app

if TYPE_CHECKING:
    from pathlib import Path

    from click.testing import Result


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_dirs(metadata_dirs, monkeypatch):
    """Metadata trees from the main conftest, with CLI environment cleared."""
    for var in ("PROPSDB_METADATA", "PROPSDB_OVERRIDE", "PROPSDB_CACHE_MAXSIZE"):
        monkeypatch.delenv(var, raising=False)
    primary, override = metadata_dirs
    return str(primary), str(override)


def invoke(
    runner: CliRunner,
    args: list[str],
    metadata: str | Path | None = None,
    override: str | Path | None = None,
) -> "Result":
    """Invoke CLI with proper state setup."""
    prefix: list[str] = []
    if metadata:
        # Inject global options before subcommand
        prefix += ["--metadata", str(metadata)]
    if override:
        prefix += ["--override", str(override)]
    result = runner.invoke(app, prefix + args, catch_exceptions=False)
    return result

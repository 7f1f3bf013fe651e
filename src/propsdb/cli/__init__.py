"""propsdb CLI: operator console for validity-resolved metadata trees."""

from __future__ import annotations

import logging
from typing import Optional

import typer

from propsdb.cli import parse_cmd, show, validity

app = typer.Typer(
    name="propsdb",
    help="propsdb CLI: inspect validity-resolved metadata trees.",
    no_args_is_help=True,
)


class _State:
    """Global CLI state shared across subcommands."""

    metadata: str | None = None
    override: str | None = None
    json_output: bool = False


state = _State()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _version_callback(value: bool) -> None:
    if value:
        try:
            from importlib.metadata import version

            v = version("propsdb")
        except Exception:
            v = "unknown"
        print(f"propsdb {v}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    metadata: Optional[str] = typer.Option(
        None,
        "--metadata",
        "-m",
        envvar="PROPSDB_METADATA",
        help="Primary metadata directory",
    ),
    override: Optional[str] = typer.Option(
        None,
        "--override",
        envvar="PROPSDB_OVERRIDE",
        help="Override metadata directory mirroring the primary layout",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output when supported"),
    log_level: str = typer.Option(
        "WARNING", "--log-level", envvar="PROPSDB_LOG_LEVEL", help="Logging level"
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version", is_eager=True, callback=_version_callback
    ),
) -> None:
    """Global options for all propsdb commands."""
    _setup_logging(log_level)
    state.metadata = metadata
    state.override = override
    state.json_output = json_output
    if ctx.invoked_subcommand is None and not version:
        print(ctx.get_help())
        raise typer.Exit()


app.add_typer(validity.app, name="validity", help="Inspect and append validity logs")

app.command(name="show")(show.show_cmd)
app.command(name="parse")(parse_cmd.parse_cmd)


def main() -> None:
    """Entry point for the propsdb CLI."""
    app()

"""propsdb show: navigate the property tree and print a node or property."""

from __future__ import annotations

from typing import Optional

import typer

from propsdb.cache import resolve_path
from propsdb.cli import _exitcodes as ec
from propsdb.cli._db import open_cache, open_db, selection_from_options
from propsdb.cli._output import print_error, print_props, print_table
from propsdb.db import MissingRef, PropsDB
from propsdb.errors import PropsDBError


def show_cmd(
    path: str = typer.Argument("", help="Dotted property path, e.g. hardware.configuration"),
    filekey: Optional[str] = typer.Option(None, "--filekey", "-k", help="Select by file key"),
    timestamp: Optional[str] = typer.Option(
        None, "--timestamp", "-t", help="Select by timestamp (yyyymmddTHHMMSSZ)"
    ),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Data category"),
) -> None:
    """Show the sub-tree or property at PATH."""
    from propsdb.cli import state

    json_mode = state.json_output
    selection = selection_from_options(filekey, timestamp, category)

    try:
        root = open_db()
        value = resolve_path(root, path, selection, cache=open_cache())
    except PropsDBError as e:
        print_error(str(e))
        raise typer.Exit(ec.for_error(e))

    if isinstance(value, MissingRef):
        print_error(f"No property '{path}' (would be created at {value.path()})")
        raise typer.Exit(ec.NOT_FOUND)

    if isinstance(value, PropsDB):
        if value.needs_selection:
            print_error(
                f"'{path or '.'}' requires a validity selection, use --filekey or "
                "--timestamp/--category"
            )
            raise typer.Exit(ec.SELECTION_ERROR)
        rows = [[name] for name in value.keys()]
        print_table(["property"], rows, json_mode=json_mode)
        return

    print_props(value, json_mode=json_mode)

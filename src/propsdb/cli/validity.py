"""propsdb validity: inspect, resolve and append validity logs."""

from __future__ import annotations

from typing import Optional

import typer

from propsdb.cache import resolve_path
from propsdb.cli import _exitcodes as ec
from propsdb.cli._db import open_cache, open_db, selection_from_options
from propsdb.cli._output import print_error, print_table
from propsdb.db import PropsDB
from propsdb.errors import PropsDBError
from propsdb.validity import ValidityEntry, ValidityMode

app = typer.Typer(no_args_is_help=True)


def _open_node(path: str) -> PropsDB:
    node = resolve_path(open_db(), path, cache=open_cache())
    if not isinstance(node, PropsDB):
        raise typer.BadParameter(f"'{path}' is not a directory of the property tree")
    return node


@app.command(name="show")
def show_cmd(
    path: str = typer.Argument("", help="Dotted path of the directory"),
) -> None:
    """Show the replayed validity snapshots of a directory."""
    from propsdb.cli import state

    try:
        node = _open_node(path)
    except PropsDBError as e:
        print_error(str(e))
        raise typer.Exit(ec.for_error(e))

    rows = [
        [str(category), str(snapshot.valid_from), ", ".join(snapshot.filelist)]
        for category, snapshots in sorted(node.validity.items())
        for snapshot in snapshots
    ]
    if not rows and not state.json_output:
        print(f"No validity log for '{path or '.'}'")
        return
    print_table(["category", "valid_from", "files"], rows, json_mode=state.json_output)


@app.command(name="resolve")
def resolve_cmd(
    path: str = typer.Argument(..., help="Dotted path of the directory"),
    filekey: Optional[str] = typer.Option(None, "--filekey", "-k", help="Select by file key"),
    timestamp: Optional[str] = typer.Option(None, "--timestamp", "-t", help="Select by timestamp"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Data category"),
) -> None:
    """Print the files active for a selection, in merge order."""
    from propsdb.cli import state

    selection = selection_from_options(filekey, timestamp, category)
    if selection is None:
        raise typer.BadParameter("A selection is required, use --filekey or --timestamp/--category")

    try:
        node = _open_node(path)
        filelist = node.resolve_validity(selection).filelist
    except PropsDBError as e:
        print_error(str(e))
        raise typer.Exit(ec.for_error(e))

    if state.json_output:
        print_table(["file"], [[f] for f in filelist], json_mode=True)
        return
    for filename in filelist:
        print(filename)


@app.command(name="append")
def append_cmd(
    path: str = typer.Argument(..., help="Dotted path of the directory"),
    valid_from: str = typer.Option(..., "--valid-from", help="Timestamp or file key"),
    category: list[str] = typer.Option(["all"], "--category", "-c", help="Data category"),
    mode: ValidityMode = typer.Option(ValidityMode.RESET, "--mode", help="Validity mode"),
    apply: list[str] = typer.Option(..., "--apply", "-a", help="File to apply"),
    override: bool = typer.Option(False, "--override", help="Write to the override tree"),
) -> None:
    """Append an entry to the validity log of a directory."""
    try:
        node = _open_node(path)
        written = None
        for c in category:
            entry = ValidityEntry.create(valid_from, c, apply, mode)
            written = node.append_validity(entry, override=override)
    except PropsDBError as e:
        print_error(str(e))
        raise typer.Exit(ec.for_error(e))
    print(f"Appended {len(category)} entr{'y' if len(category) == 1 else 'ies'} to {written}")

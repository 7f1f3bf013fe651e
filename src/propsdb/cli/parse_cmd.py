"""propsdb parse: identify and normalize identifier strings."""

from __future__ import annotations

from dataclasses import fields
from typing import Optional

import typer

from propsdb.cli import _exitcodes as ec
from propsdb.cli._output import print_error, print_table
from propsdb.errors import ValidationError
from propsdb.selectors import SELECTOR_TYPES, parse_selector

_TYPES_BY_NAME = {t.__name__.lower(): t for t in SELECTOR_TYPES}


def parse_cmd(
    value: str = typer.Argument(
        ..., help="Identifier string, e.g. l200-p02-r006-cal-20221226T200846Z"
    ),
    type_name: Optional[str] = typer.Option(
        None, "--type", help=f"Restrict to one type: {', '.join(sorted(_TYPES_BY_NAME))}"
    ),
) -> None:
    """Parse VALUE as a selector and print its canonical form and fields."""
    from propsdb.cli import state

    types = None
    if type_name is not None:
        selector_type = _TYPES_BY_NAME.get(type_name.lower())
        if selector_type is None:
            print_error(f"Unknown selector type '{type_name}'")
            raise typer.Exit(ec.USAGE_ERROR)
        types = [selector_type]

    try:
        selector = parse_selector(value, types)
    except ValidationError as e:
        print_error(str(e))
        raise typer.Exit(ec.VALIDATION_ERROR)

    rows = [["type", type(selector).__name__], ["canonical", str(selector)]]
    rows.extend([f.name, str(getattr(selector, f.name))] for f in fields(selector))
    print_table(["field", "value"], rows, json_mode=state.json_output)

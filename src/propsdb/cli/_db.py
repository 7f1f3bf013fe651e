"""CLI helpers for opening the property tree from global CLI state."""

from __future__ import annotations

import os

import typer

from propsdb.cache import ResolutionCache
from propsdb.config import PropsDBConfig
from propsdb.db import PropsDB
from propsdb.errors import ValidationError
from propsdb.validity import ValiditySelection


def config_from_env() -> PropsDBConfig:
    """Build config from CLI environment defaults."""
    config = PropsDBConfig()
    maxsize = os.getenv("PROPSDB_CACHE_MAXSIZE")
    if maxsize:
        config.cache_maxsize = int(maxsize)
    return config


def open_db() -> PropsDB:
    """Open the property tree selected by the global options."""
    from propsdb.cli import state

    if not state.metadata:
        raise typer.BadParameter("No metadata directory given, use --metadata or PROPSDB_METADATA")
    return PropsDB.open(state.metadata, state.override, config=config_from_env())


def open_cache() -> ResolutionCache:
    return ResolutionCache(config_from_env().cache_maxsize)


def selection_from_options(
    filekey: str | None,
    timestamp: str | None,
    category: str | None,
) -> ValiditySelection | None:
    """Build a selection from --filekey or --timestamp/--category."""
    if filekey and (timestamp or category):
        raise typer.BadParameter("--filekey cannot be combined with --timestamp/--category")
    try:
        if filekey:
            return ValiditySelection.from_filekey(filekey)
        if timestamp or category:
            if not (timestamp and category):
                raise typer.BadParameter("--timestamp and --category must be given together")
            return ValiditySelection.create(timestamp, category)
    except ValidationError as e:
        raise typer.BadParameter(str(e))
    return None

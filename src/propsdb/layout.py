"""Directory layout of data files and per-setup path configuration."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any

import yaml

from propsdb.errors import ValidationError
from propsdb.props import deep_merge
from propsdb.selectors import DataTier, ExpSetup, FileKey

logger = logging.getLogger(__name__)

DATA_CONFIG_ENVVAR = "LEGEND_DATA_CONFIG"


def tier_file_path(
    tier: DataTier | str,
    filekey: FileKey | str,
    ext: str = "lh5",
) -> PurePosixPath:
    """Relative path of a data file.

    Layout: ``{tier}/{category}/{period}/{run}/{filekey}-tier_{tier}.{ext}``.
    """
    tier = DataTier.parse(tier)
    filekey = FileKey.parse(filekey)
    return PurePosixPath(
        str(tier),
        str(filekey.category),
        str(filekey.period),
        str(filekey.run),
        f"{filekey}-tier_{tier}.{ext.lstrip('.')}",
    )


def _split_components(path: str) -> tuple[str, ...]:
    # Legacy configs joined components with underscores
    sep = "/" if "/" in path else "_"
    return tuple(p for p in path.split(sep) if p)


def _read_config(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) if path.suffix in (".yaml", ".yml") else json.load(f)


def _resolve_target(value: str, root: str | Path | None) -> str:
    # "$_" stands for the directory of the config file
    if root is not None and (value == "$_" or value.startswith("$_/")):
        value = str(root) + value[2:]
    target = Path(os.path.expandvars(value)).expanduser()
    if root is not None and not target.is_absolute():
        target = Path(root) / target
    return str(target)


@dataclass(frozen=True)
class SetupPaths:
    """Mapping of path-component prefixes to absolute directories.

    A lookup uses the longest configured prefix of the requested components,
    e.g. with ``{"tier": "/data/tier", "tier/raw": "/fast/raw"}`` the path
    ``tier/raw/cal/...`` resolves below ``/fast/raw``.
    """

    paths: tuple[tuple[tuple[str, ...], str], ...]

    @classmethod
    def from_mapping(
        cls, paths: Mapping[str, str], *, root: str | Path | None = None
    ) -> SetupPaths:
        entries = [
            (_split_components(str(k)), _resolve_target(str(v), root)) for k, v in paths.items()
        ]
        return cls(tuple(sorted(entries)))

    @classmethod
    def from_file(cls, path: str | Path) -> SetupPaths:
        """Load a JSON or YAML config with a top-level ``paths`` mapping.

        Relative targets are taken relative to the config file's directory.
        """
        path = Path(path)
        data = _read_config(path)
        if not isinstance(data, dict) or not isinstance(data.get("paths"), dict):
            raise ValidationError(f"Setup config '{path}' has no 'paths' mapping")
        return cls.from_mapping(data["paths"], root=path.parent)

    def data_path(self, *components: str) -> Path:
        """Absolute path for ``components`` (or one slash-separated string)."""
        if len(components) == 1 and "/" in components[0]:
            components = tuple(components[0].split("/"))
        best: tuple[tuple[str, ...], str] | None = None
        for key, target in self.paths:
            if components[: len(key)] == key and (best is None or len(key) >= len(best[0])):
                best = (key, target)
        if best is None:
            raise ValidationError(f"No path configured for {list(components)}")
        return Path(best[1]).joinpath(*components[len(best[0]) :])

    def tier_file(self, tier: DataTier | str, filekey: FileKey | str, ext: str = "lh5") -> Path:
        """Absolute path of a data file, looked up below the ``tier`` prefix."""
        return self.data_path("tier", *tier_file_path(tier, filekey, ext).parts)


@dataclass(frozen=True)
class DataConfig:
    """Path configuration of several experimental setups.

    Config files hold a ``setups`` mapping from setup name to a setup config
    with a ``paths`` mapping, as read by ``SetupPaths``::

        {"setups": {"l200": {"paths": {"tier": "/data/l200/tier"}}}}
    """

    setups: dict[str, SetupPaths]

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Any], *, root: str | Path | None = None
    ) -> DataConfig:
        setups = data.get("setups")
        if not isinstance(setups, Mapping):
            raise ValidationError("Data config has no 'setups' mapping")
        result = {}
        for name, setup in setups.items():
            if not isinstance(setup, Mapping) or not isinstance(setup.get("paths"), Mapping):
                raise ValidationError(f"Setup '{name}' in data config has no 'paths' mapping")
            result[str(name)] = SetupPaths.from_mapping(setup["paths"], root=root)
        return cls(result)

    @classmethod
    def from_files(cls, *paths: str | Path) -> DataConfig:
        """Read and merge config files, earlier files taking priority.

        Relative targets are resolved against the directory of the file that
        defines them before the files are merged.
        """
        if not paths:
            raise ValidationError("No data config files given")
        merged: dict[str, Any] = {}
        for path in reversed([Path(p) for p in paths]):
            data = _read_config(path)
            if not isinstance(data, dict) or not isinstance(data.get("setups"), dict):
                raise ValidationError(f"Data config '{path}' has no 'setups' mapping")
            setups = {}
            for name, setup in data["setups"].items():
                if isinstance(setup, dict) and isinstance(setup.get("paths"), dict):
                    resolved = {
                        k: _resolve_target(str(v), path.parent) for k, v in setup["paths"].items()
                    }
                    setup = {**setup, "paths": resolved}
                setups[name] = setup
            merged = deep_merge(merged, {**data, "setups": setups})
            logger.debug("Merged data config %s", path)
        return cls.from_mapping(merged)

    @classmethod
    def from_env(cls, var: str = DATA_CONFIG_ENVVAR) -> DataConfig:
        """Read the colon-separated list of config files in ``$LEGEND_DATA_CONFIG``."""
        value = os.environ.get(var, "")
        filenames = [p for p in value.split(":") if p]
        if not filenames:
            raise ValidationError(f"Environment variable {var} not set")
        return cls.from_files(*filenames)

    def setup(self, name: ExpSetup | str) -> SetupPaths:
        try:
            return self.setups[str(name)]
        except KeyError:
            raise ValidationError(f"No setup '{name}' in data config") from None

"""Leaf property files: parsing, deep merge and write-back."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any, Iterable

import yaml

from propsdb.errors import ValidationError

logger = logging.getLogger(__name__)

JSON_SUFFIXES = (".json",)
YAML_SUFFIXES = (".yaml", ".yml")


def _freeze(value: Any) -> Any:
    if isinstance(value, PropDict):
        return value
    if isinstance(value, Mapping):
        return PropDict(value)
    if isinstance(value, list | tuple):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, PropDict):
        return value.to_dict()
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


class PropDict(Mapping[str, Any]):
    """Immutable nested property map with attribute-style access.

    Nested mappings become PropDicts and lists become tuples. Keys may also be
    given as selector objects, which are looked up by their canonical string.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[Any, Any] | None = None) -> None:
        object.__setattr__(
            self, "_data", {str(k): _freeze(v) for k, v in (data or {}).items()}
        )

    def __getitem__(self, key: Any) -> Any:
        return self._data[str(key)]

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"PropDict has no property '{name}'") from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("PropDict is immutable")

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return str(key) in self._data

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self._data))

    def __repr__(self) -> str:
        return f"PropDict({self._data!r})"

    def to_dict(self) -> dict[str, Any]:
        """Return a mutable deep copy as plain dicts and lists."""
        return {k: _thaw(v) for k, v in self._data.items()}


def deep_merge(base: Mapping[str, Any], update: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``update`` into ``base``, recursing into mappings present in both.

    Values from ``update`` win on conflict. Neither argument is modified.
    """
    result: dict[str, Any] = {k: _thaw(v) for k, v in base.items()}
    for key, value in update.items():
        key = str(key)
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = _thaw(value) if isinstance(value, PropDict | tuple) else value
    return result


def _load_file(path: Path) -> dict[str, Any]:
    suffix = path.suffix.lower()
    with open(path, encoding="utf-8") as f:
        if suffix in JSON_SUFFIXES:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Invalid JSON in '{path}': {e}") from e
        elif suffix in YAML_SUFFIXES:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValidationError(f"Invalid YAML in '{path}': {e}") from e
        else:
            raise ValidationError(f"Unsupported property file format '{suffix}' for '{path}'")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(
            f"Property file '{path}' must contain a mapping, got {type(data).__name__}"
        )
    return data


def read_props(paths: str | Path | Iterable[str | Path]) -> PropDict:
    """Read one property file, or several deep-merged in the given order."""
    if isinstance(paths, str | Path):
        paths = [paths]
    merged: dict[str, Any] = {}
    for path in paths:
        logger.debug("Reading property file %s", path)
        merged = deep_merge(merged, _load_file(Path(path)))
    return PropDict(merged)


def write_props(path: str | Path, data: Mapping[str, Any], *, fmt: str | None = None) -> Path:
    """Write a property map as JSON or YAML, creating parent directories.

    The format follows ``fmt`` if given, otherwise the file suffix.
    """
    path = Path(path)
    fmt = fmt or ("yaml" if path.suffix.lower() in YAML_SUFFIXES else "json")
    plain = data.to_dict() if isinstance(data, PropDict) else deep_merge({}, data)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        if fmt == "yaml":
            yaml.safe_dump(plain, f, default_flow_style=False, sort_keys=False)
        elif fmt == "json":
            json.dump(plain, f, indent=4)
            f.write("\n")
        else:
            raise ValidationError(f"Unsupported property file format '{fmt}'")
    logger.debug("Wrote property file %s", path)
    return path

"""Lazy, validity-aware property tree over primary and override directories.

A PropsDB presents an on-disk directory of JSON/YAML files and sub-directories
as a tree of properties. Sub-directories become PropsDB nodes and files become
immutable PropDicts.

Directories may carry a validity log. Content of such a directory depends on
time and data category and is only available once a ValiditySelection has
been bound, either at that node or at an ancestor::

    db = PropsDB.open("/data/metadata", "/data/metadata-override")
    sel = ValiditySelection.create("20221226T200846Z", "cal")
    db.hardware(sel).configuration.channelmaps       # -> PropDict
    db.hardware.configuration.channelmaps(filekey)   # -> PropDict

Binding a node that carries a validity log resolves the log to a filelist and
returns the merged file contents instead of a sub-tree.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from propsdb.config import PropsDBConfig
from propsdb.errors import (
    NotAPropsDBError,
    SelectionBoundError,
    SelectionRequiredError,
    ValidationError,
    ValidityFileNotFoundError,
)
from propsdb.merge import merge_validity
from propsdb.props import PropDict, read_props, write_props
from propsdb.selectors import DataCategory, DataSelector, FileKey
from propsdb.validity import (
    ValidityDict,
    ValidityEntry,
    ValiditySelection,
    append_validity_entry,
    find_validity_file,
    OVERRIDE,
    ValiditySnapshot,
    load_validity,
    resolve_snapshot,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MissingRef:
    """Reference to a property that does not exist yet.

    Evaluates as false and carries the location needed to create it.
    """

    base_path: Path
    override_base_path: Path | None
    rel_path: tuple[str, ...]
    name: str

    def __bool__(self) -> bool:
        return False

    def path(self, ext: str = ".json", *, override: bool = False) -> Path:
        if override:
            if self.override_base_path is None:
                raise ValidationError(f"No override directory configured for '{self.name}'")
            base = self.override_base_path
        else:
            base = self.base_path
        return base.joinpath(*self.rel_path, f"{self.name}{ext}")

    def write(self, data: Any, *, fmt: str = "json", override: bool = False) -> Path:
        """Create the property file, in the override tree if requested."""
        ext = ".yaml" if fmt == "yaml" else ".json"
        return write_props(self.path(ext, override=override), data, fmt=fmt)


@dataclass(frozen=True)
class SubTree:
    node: PropsDB


@dataclass(frozen=True)
class Leaf:
    props: PropDict


@dataclass(frozen=True)
class Missing:
    ref: MissingRef


NodeResult = SubTree | Leaf | Missing


def _property_name(name: Any) -> str:
    if isinstance(name, DataSelector):
        name = str(name)
    if not isinstance(name, str):
        raise ValidationError(f"Property name must be a string, got {type(name).__name__}")
    if not name or name.startswith(".") or "/" in name or "\\" in name:
        raise ValidationError(f"Invalid property name '{name}'")
    return name


def _unwrap(result: NodeResult) -> Any:
    if isinstance(result, SubTree):
        return result.node
    if isinstance(result, Leaf):
        return result.props
    return result.ref


@dataclass(frozen=True, repr=False)
class PropsDB:
    """One directory level of the property tree.

    Nodes are immutable; equality and hashing use the directory location and
    the bound selection only, so ``node.cache_key`` is a stable memoization key.
    Create the root with ``PropsDB.open`` rather than the constructor.
    """

    _base_path: Path
    _override_base_path: Path | None
    _rel_path: tuple[str, ...]
    _validity_sel: ValiditySelection | None
    _validity: ValidityDict = field(compare=False)
    _prop_names: tuple[str, ...] = field(compare=False)
    _needs_selection: bool = field(compare=False)
    _config: PropsDBConfig = field(compare=False, default_factory=PropsDBConfig)

    @classmethod
    def open(
        cls,
        base_path: str | Path,
        override_base_path: str | Path | None = None,
        *,
        config: PropsDBConfig | None = None,
    ) -> PropsDB:
        """Open the tree rooted at ``base_path``.

        The override directory mirrors the primary layout and may be absent.
        """
        base = Path(base_path).absolute()
        if not base.is_dir():
            raise NotAPropsDBError(str(base))
        override = Path(override_base_path).absolute() if override_base_path else None
        result = cls._load(base, override, (), None, config or PropsDBConfig())
        assert isinstance(result, SubTree)
        return result.node

    @classmethod
    def _load(
        cls,
        base: Path,
        override: Path | None,
        rel_path: tuple[str, ...],
        selection: ValiditySelection | None,
        config: PropsDBConfig,
    ) -> SubTree | Leaf:
        primary_dir = base.joinpath(*rel_path)
        override_dir = override.joinpath(*rel_path) if override else None

        primary_log = find_validity_file(primary_dir, config.validity_filenames)
        override_log = (
            find_validity_file(override_dir, config.validity_filenames) if override_dir else None
        )
        validity = merge_validity(
            load_validity(primary_log) if primary_log else {},
            load_validity(override_log) if override_log else {},
        )
        needs_selection = any(validity.values())

        node = cls(
            base,
            override,
            rel_path,
            None,
            validity,
            () if needs_selection else _list_prop_names(primary_dir, override_dir, config),
            needs_selection,
            config,
        )
        logger.debug("Loaded %r", node)
        if selection is None:
            return SubTree(node)
        return node._bind(selection)

    def _bind(self, selection: ValiditySelection) -> SubTree | Leaf:
        if not self._needs_selection:
            return SubTree(replace(self, _validity_sel=selection))
        snapshot = self.resolve_validity(selection)
        paths: list[Path] = []
        for filename, origin in snapshot.entries():
            paths.extend(self._validity_file_paths(filename, origin))
        logger.debug(
            "Resolved %s at %s to %s", self.data_path, selection, list(snapshot.filelist)
        )
        return Leaf(read_props(paths))

    def _validity_file_paths(self, filename: str, origin: str) -> list[Path]:
        # Files listed by the override log shadow the primary copy
        override = self.override_data_path
        if origin == OVERRIDE and override is not None and (override / filename).is_file():
            return [override / filename]
        found = [d / filename for d in self._dirs() if (d / filename).is_file()]
        if not found:
            raise ValidityFileNotFoundError(str(self.data_path), filename)
        return found

    def resolve_validity(self, selection: ValiditySelection) -> ValiditySnapshot:
        """Return the merged validity snapshot active for ``selection``.

        Categories without entries fall back to the configured ``all``
        category.
        """
        return resolve_snapshot(
            self._validity,
            selection,
            fallback=DataCategory(self._config.all_category),
            path=str(self.data_path),
        )

    def _dirs(self) -> list[Path]:
        dirs = [self.data_path]
        if self.override_data_path is not None:
            dirs.append(self.override_data_path)
        return dirs

    def _check_access(self) -> None:
        if self._needs_selection:
            raise SelectionRequiredError(str(self.data_path))

    @property
    def base_path(self) -> Path:
        return self._base_path

    @property
    def override_base_path(self) -> Path | None:
        return self._override_base_path

    @property
    def rel_path(self) -> tuple[str, ...]:
        return self._rel_path

    @property
    def data_path(self) -> Path:
        """Directory of this node in the primary tree."""
        return self._base_path.joinpath(*self._rel_path)

    @property
    def override_data_path(self) -> Path | None:
        if self._override_base_path is None:
            return None
        return self._override_base_path.joinpath(*self._rel_path)

    @property
    def validity_sel(self) -> ValiditySelection | None:
        return self._validity_sel

    @property
    def validity(self) -> ValidityDict:
        """Merged primary/override validity of this directory."""
        return self._validity

    @property
    def needs_selection(self) -> bool:
        return self._needs_selection

    @property
    def cache_key(self) -> tuple[str, str | None, tuple[str, ...], ValiditySelection | None]:
        return (
            str(self._base_path),
            str(self._override_base_path) if self._override_base_path else None,
            self._rel_path,
            self._validity_sel,
        )

    def get(self, name: Any) -> NodeResult:
        """Look up one property.

        Returns SubTree for a sub-directory, Leaf for a property file (override
        deep-merged over primary) and Missing if neither exists.
        """
        name = _property_name(name)
        self._check_access()
        if any(d.joinpath(name).is_dir() for d in self._dirs()):
            return self._load(
                self._base_path,
                self._override_base_path,
                self._rel_path + (name,),
                self._validity_sel,
                self._config,
            )
        files = []
        for d in self._dirs():
            for ext in self._config.leaf_extensions:
                if d.joinpath(name + ext).is_file():
                    files.append(d.joinpath(name + ext))
                    break
        if files:
            return Leaf(read_props(files))
        return Missing(
            MissingRef(self._base_path, self._override_base_path, self._rel_path, name)
        )

    def keys(self) -> tuple[str, ...]:
        self._check_access()
        return self._prop_names

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self.keys())

    def __bool__(self) -> bool:
        return True

    def __contains__(self, name: object) -> bool:
        return str(name) in self.keys()

    def __getitem__(self, key: Any) -> Any:
        if isinstance(key, tuple):
            value: Any = self
            for k in key:
                value = value[k]
            return value
        if isinstance(key, list):
            return [self[k] for k in key]
        return _unwrap(self.get(key))

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    def __call__(self, *args: Any) -> Any:
        """Bind a selection: ``node(selection)``, ``node(filekey)`` or
        ``node(timestamp, category)``."""
        if len(args) == 2:
            return _unwrap(bind(self, ValiditySelection.create(*args)))
        if len(args) != 1:
            raise TypeError(f"PropsDB takes 1 or 2 selection arguments, got {len(args)}")
        return _unwrap(bind(self, args[0]))

    def write(self, name: Any, data: Any, *, fmt: str = "json", override: bool = False) -> Path:
        """Write a property file into this node's directory."""
        ref = MissingRef(
            self._base_path, self._override_base_path, self._rel_path, _property_name(name)
        )
        return ref.write(data, fmt=fmt, override=override)

    def append_validity(self, entry: ValidityEntry, *, override: bool = False) -> Path:
        """Append an entry to this directory's validity log."""
        directory = self.override_data_path if override else self.data_path
        if directory is None:
            raise ValidationError("No override directory configured")
        path = find_validity_file(directory, self._config.validity_filenames)
        if path is None:
            path = directory / self._config.validity_filenames[0]
        return append_validity_entry(path, entry)

    def __dir__(self) -> list[str]:
        names = list(super().__dir__())
        if not self._needs_selection:
            names.extend(self._prop_names)
        return names

    def __repr__(self) -> str:
        path = "".join(f".{p}" for p in self._rel_path)
        sel = f"({self._validity_sel})" if self._validity_sel else ""
        state = "(validity selection required)" if self._needs_selection else list(self._prop_names)
        return f"PropsDB('{self._base_path}'){path}{sel} {state}"


def _list_prop_names(
    primary_dir: Path, override_dir: Path | None, config: PropsDBConfig
) -> tuple[str, ...]:
    names: set[str] = set()
    for d in (primary_dir, override_dir):
        if d is None or not d.is_dir():
            continue
        for p in d.iterdir():
            if p.name.startswith(".") or p.name in config.validity_filenames:
                continue
            if p.is_dir():
                names.add(p.name)
            elif p.suffix in config.leaf_extensions:
                names.add(p.stem)
    return tuple(sorted(names))


def bind(node: PropsDB, selection: ValiditySelection | FileKey | str) -> SubTree | Leaf:
    """Attach a validity selection to ``node``, returning a new result.

    Returns the merged resolved files as a Leaf if ``node`` carries a validity
    log, otherwise a bound SubTree whose descendants inherit the selection.
    ``node`` itself is left unchanged.
    """
    if node.validity_sel is not None:
        raise SelectionBoundError(str(node.data_path), node.validity_sel)
    if not isinstance(selection, ValiditySelection):
        selection = ValiditySelection.from_filekey(selection)
    return node._bind(selection)

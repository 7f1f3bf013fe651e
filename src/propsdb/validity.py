"""Validity logs: record model, replay engine and selection resolution.

A validity log is an append-only list of records, each saying that from
``valid_from`` on, the active filelist for ``category`` changes by ``mode``
(reset, append, remove or replace) with the files in ``apply``. Replaying the
log yields a ValidityDict with one materialized snapshot per change.
"""

from __future__ import annotations

import json
import logging
import threading
from bisect import bisect_right
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import pydantic
import yaml
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from propsdb.errors import NoValidityError, SelectionTooEarlyError, ValidationError
from propsdb.selectors import DataCategory, FileKey, Timestamp

logger = logging.getLogger(__name__)

ALL_CATEGORY = DataCategory("all")

# Tree whose validity log listed a file
PRIMARY = "primary"
OVERRIDE = "override"

_append_lock = threading.Lock()


class ValidityMode(str, Enum):
    """How a validity entry changes the active filelist."""

    RESET = "reset"
    APPEND = "append"
    REMOVE = "remove"
    REPLACE = "replace"


@dataclass(frozen=True, order=True)
class ValiditySelection:
    """A (timestamp, category) pair selecting one snapshot per validity log."""

    timestamp: Timestamp
    category: DataCategory

    @classmethod
    def create(cls, timestamp: Any, category: Any) -> ValiditySelection:
        """Build from anything Timestamp.coerce and DataCategory.parse accept."""
        return cls(Timestamp.coerce(timestamp), DataCategory.parse(str(category)))

    @classmethod
    def from_filekey(cls, filekey: FileKey | str) -> ValiditySelection:
        filekey = FileKey.parse(filekey)
        return cls(filekey.timestamp, filekey.category)

    def __str__(self) -> str:
        return f"{self.timestamp}/{self.category}"


@dataclass(frozen=True)
class ValidityEntry:
    """One validity change for a single category."""

    valid_from: Timestamp
    category: DataCategory
    mode: ValidityMode
    apply: tuple[str, ...]

    @classmethod
    def create(
        cls,
        valid_from: Any,
        category: Any,
        apply: Iterable[str] | str,
        mode: ValidityMode | str = ValidityMode.RESET,
    ) -> ValidityEntry:
        if isinstance(apply, str):
            apply = [apply]
        return cls(
            Timestamp.coerce(valid_from),
            DataCategory.parse(str(category)),
            ValidityMode(mode),
            tuple(apply),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "valid_from": str(self.valid_from),
            "category": str(self.category),
            "mode": self.mode.value,
            "apply": list(self.apply),
        }


@dataclass(frozen=True)
class ValiditySnapshot:
    """Filelist active from ``valid_from`` until the next snapshot."""

    valid_from: Timestamp
    filelist: tuple[str, ...]
    # One per file in filelist; empty means all from the primary log
    origins: tuple[str, ...] = field(default=(), compare=False)

    def entries(self) -> list[tuple[str, str]]:
        """Pair each file with the tree whose log listed it."""
        origins = self.origins or (PRIMARY,) * len(self.filelist)
        return list(zip(self.filelist, origins))

    def with_origin(self, origin: str) -> ValiditySnapshot:
        return ValiditySnapshot(self.valid_from, self.filelist, (origin,) * len(self.filelist))


ValidityDict = dict[DataCategory, tuple[ValiditySnapshot, ...]]


class ValidityRecord(BaseModel):
    """Raw validity record as stored on disk.

    ``category`` may be a string or a list of strings and is read from the
    legacy key ``select`` when absent.
    """

    model_config = ConfigDict(extra="ignore")

    valid_from: str
    category: list[str]
    mode: ValidityMode = ValidityMode.RESET
    apply: list[str]

    @model_validator(mode="before")
    @classmethod
    def _legacy_fields(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            data = dict(data)
            if "category" not in data and "select" in data:
                data["category"] = data.pop("select")
            for key in ("category", "apply"):
                if isinstance(data.get(key), str):
                    data[key] = [data[key]]
        return data

    @field_validator("valid_from", mode="before")
    @classmethod
    def _check_valid_from(cls, value: Any) -> str:
        value = str(value)
        if not Timestamp.matches(value):
            raise ValueError(f"'{value}' is not a timestamp like 20221226T200846Z")
        return value

    @field_validator("category")
    @classmethod
    def _check_category(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one category is required")
        for c in value:
            if not DataCategory.matches(c):
                raise ValueError(f"'{c}' is not a valid data category")
        return value

    def entries(self) -> list[ValidityEntry]:
        """Fan out into one ValidityEntry per declared category."""
        valid_from = Timestamp.parse(self.valid_from)
        return [
            ValidityEntry(valid_from, DataCategory(c), self.mode, tuple(self.apply))
            for c in self.category
        ]


def parse_validity_records(records: Iterable[Any]) -> list[ValidityEntry]:
    """Validate raw records in order and fan them out into entries."""
    entries: list[ValidityEntry] = []
    for i, raw in enumerate(records):
        try:
            record = ValidityRecord.model_validate(raw)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid validity record #{i}: {e}") from e
        entries.extend(record.entries())
    return entries


def parse_validity_lines(text: str) -> list[ValidityEntry]:
    """Parse line-delimited JSON validity records, skipping blank lines."""
    records = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            records.append(json.loads(line))
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid validity line {lineno}: {e}") from e
    return parse_validity_records(records)


def parse_validity_document(document: Any) -> list[ValidityEntry]:
    """Parse a structured validity document (a list of records)."""
    if document is None:
        return []
    if not isinstance(document, list):
        raise ValidationError(
            f"Validity document must be a list of records, got {type(document).__name__}"
        )
    return parse_validity_records(document)


def read_validity(path: str | Path) -> list[ValidityEntry]:
    """Read validity entries from ``.jsonl`` or ``.yaml``/``.yml``/``.json``."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix == ".jsonl":
        entries = parse_validity_lines(text)
    elif path.suffix in (".yaml", ".yml"):
        try:
            entries = parse_validity_document(yaml.safe_load(text))
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid YAML in '{path}': {e}") from e
    elif path.suffix == ".json":
        try:
            entries = parse_validity_document(json.loads(text) if text.strip() else None)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in '{path}': {e}") from e
    else:
        raise ValidationError(f"Unsupported validity file format '{path.suffix}'")
    logger.debug("Read %d validity entries from %s", len(entries), path)
    return entries


def find_validity_file(directory: str | Path, filenames: Iterable[str]) -> Path | None:
    """Return the first existing validity log in ``directory``."""
    found = [Path(directory) / name for name in filenames if (Path(directory) / name).is_file()]
    if len(found) > 1:
        logger.warning("Multiple validity logs in %s, using %s", directory, found[0].name)
    return found[0] if found else None


def _apply_entry(current: list[str], entry: ValidityEntry) -> list[str]:
    if entry.mode is ValidityMode.RESET:
        return list(entry.apply)
    if entry.mode is ValidityMode.APPEND:
        return current + list(entry.apply)
    if entry.mode is ValidityMode.REMOVE:
        removed = set(entry.apply)
        return [f for f in current if f not in removed]
    if len(entry.apply) != 2:
        raise ValidationError(
            f"Replace entry at {entry.valid_from} needs exactly two files [old, new], "
            f"got {len(entry.apply)}"
        )
    old, new = entry.apply
    if old not in current:
        raise ValidationError(
            f"Replace entry at {entry.valid_from} for category '{entry.category}': "
            f"'{old}' is not in the active filelist"
        )
    result = list(current)
    result.remove(old)
    result.append(new)
    return result


def replay_validity(entries: Iterable[ValidityEntry]) -> ValidityDict:
    """Replay validity entries into per-category snapshot sequences.

    Entries are applied in ascending ``valid_from`` order; entries with equal
    ``valid_from`` keep their log order and collapse into a single snapshot.
    The first entry seen for a category always acts as a reset. A snapshot is
    only recorded when the filelist actually changes.

    Log lines out of timestamp order are re-sorted by ``valid_from`` before
    replay, so the order of lines in the file only matters between entries
    sharing a timestamp.
    """
    current: dict[DataCategory, list[str]] = {}
    sequences: dict[DataCategory, list[ValiditySnapshot]] = {}
    for entry in sorted(entries, key=lambda e: e.valid_from):
        category = entry.category
        if category in current:
            filelist = _apply_entry(current[category], entry)
        else:
            filelist = list(entry.apply)
        current[category] = filelist

        seq = sequences.setdefault(category, [])
        if seq and seq[-1].valid_from == entry.valid_from:
            seq.pop()
        if not seq or seq[-1].filelist != tuple(filelist):
            seq.append(ValiditySnapshot(entry.valid_from, tuple(filelist)))
    return {category: tuple(seq) for category, seq in sequences.items()}


def load_validity(path: str | Path) -> ValidityDict:
    return replay_validity(read_validity(path))


def resolve_snapshot(
    validity: Mapping[DataCategory, tuple[ValiditySnapshot, ...]],
    selection: ValiditySelection,
    *,
    fallback: DataCategory = ALL_CATEGORY,
    path: str | None = None,
) -> ValiditySnapshot:
    """Return the snapshot active for ``selection``.

    Uses the selection's category, or ``fallback`` if the log has no entries
    for it, and picks the last snapshot not later than the selected timestamp.
    """
    category = selection.category
    snapshots = validity.get(category)
    if not snapshots:
        category = fallback
        snapshots = validity.get(fallback)
    if not snapshots:
        raise NoValidityError(selection.category, path)

    times = [s.valid_from for s in snapshots]
    idx = bisect_right(times, selection.timestamp) - 1
    if idx < 0:
        raise SelectionTooEarlyError(selection.timestamp, times[0], category)
    logger.debug(
        "Resolved %s to snapshot %s (category %s)", selection, snapshots[idx].valid_from, category
    )
    return snapshots[idx]


def resolve_filelist(
    validity: Mapping[DataCategory, tuple[ValiditySnapshot, ...]],
    selection: ValiditySelection,
    *,
    fallback: DataCategory = ALL_CATEGORY,
    path: str | None = None,
) -> tuple[str, ...]:
    """Return the filelist active for ``selection``."""
    return resolve_snapshot(validity, selection, fallback=fallback, path=path).filelist


def append_validity_entry(path: str | Path, entry: ValidityEntry) -> Path:
    """Append one entry to a validity log, creating the file if needed.

    ``.jsonl`` logs get one JSON line, YAML logs one block-sequence item.
    Appends from this process are serialized; writers in other processes
    must hold an external lock.
    """
    path = Path(path)
    record = entry.to_record()
    with _append_lock:
        path.parent.mkdir(parents=True, exist_ok=True)
        existing = path.read_text(encoding="utf-8") if path.is_file() else ""
        if path.suffix == ".jsonl":
            text = json.dumps(record) + "\n"
        elif path.suffix in (".yaml", ".yml"):
            text = yaml.safe_dump([record], default_flow_style=False, sort_keys=False)
            if existing.strip() in ("", "[]"):
                # An empty flow sequence cannot be extended by appending a block item
                path.write_text(text, encoding="utf-8")
                logger.info("Wrote validity for %s to %s", entry.valid_from, path)
                return path
            text = "\n" + text
        else:
            raise ValidationError(f"Cannot append to validity file format '{path.suffix}'")
        if existing and not existing.endswith("\n"):
            text = "\n" + text
        with open(path, "a", encoding="utf-8") as f:
            f.write(text)
    logger.info("Wrote validity for %s to %s", entry.valid_from, path)
    return path

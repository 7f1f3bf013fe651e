"""Merge of primary and override validity logs."""

from __future__ import annotations

from collections.abc import Mapping

from propsdb.selectors import DataCategory
from propsdb.validity import OVERRIDE, PRIMARY, ValidityDict, ValiditySnapshot


def _merge_snapshots(
    primary: tuple[ValiditySnapshot, ...],
    override: tuple[ValiditySnapshot, ...],
) -> tuple[ValiditySnapshot, ...]:
    merged: list[ValiditySnapshot] = []
    i = j = 0
    while i < len(primary) and j < len(override):
        p, o = primary[i], override[j]
        if p.valid_from == o.valid_from:
            origins = (p.origins or (PRIMARY,) * len(p.filelist)) + o.origins
            merged.append(ValiditySnapshot(p.valid_from, p.filelist + o.filelist, origins))
            i += 1
            j += 1
        elif p.valid_from < o.valid_from:
            merged.append(p)
            i += 1
        else:
            merged.append(o)
            j += 1
    merged.extend(primary[i:])
    merged.extend(override[j:])
    return tuple(merged)


def _tag_override(
    override: Mapping[DataCategory, tuple[ValiditySnapshot, ...]],
) -> ValidityDict:
    return {c: tuple(s.with_origin(OVERRIDE) for s in snaps) for c, snaps in override.items()}


def merge_validity(
    primary: Mapping[DataCategory, tuple[ValiditySnapshot, ...]],
    override: Mapping[DataCategory, tuple[ValiditySnapshot, ...]],
) -> ValidityDict:
    """Merge two ValidityDicts category by category.

    Snapshots are interleaved in ascending ``valid_from`` order. Where both
    sides have a snapshot at the same ``valid_from``, the result holds the
    primary filelist followed by the override filelist. Categories present on
    one side only are taken unchanged.

    Every merged snapshot records in ``origins`` which log listed each of its
    files, so a name listed by both logs can be read from the right tree.
    """
    if not override:
        return dict(primary)
    override = _tag_override(override)
    if not primary:
        return override

    merged: ValidityDict = {}
    for category in sorted(set(primary) | set(override)):
        merged[category] = _merge_snapshots(primary.get(category, ()), override.get(category, ()))
    return merged

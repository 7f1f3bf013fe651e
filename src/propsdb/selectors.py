"""Strictly validated identifier types used as selection keys."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, ClassVar, Iterable, Self

from propsdb.errors import AmbiguousSelectorError, ValidationError

TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"

_TIMESTAMP_RE = re.compile(r"^([0-9]{4})([0-9]{2})([0-9]{2})T([0-9]{2})([0-9]{2})([0-9]{2})Z$")
_FILEKEY_RE = re.compile(
    r"^([a-z][a-z0-9]*)-p([0-9]{2})-r([0-9]{3})-([a-z]+)-([0-9]{8}T[0-9]{6}Z)$"
)
_FILEKEY_RELAXED_RE = re.compile(
    r"^([a-z][a-z0-9]*)-p([0-9]{2})-r([0-9]{3})-([a-z]+)-([0-9]{8}T[0-9]{6}Z)(-.*)?$"
)


class DataSelector:
    """Base class for identifier types.

    Subclasses declare a grammar (``_pattern``) and optional length bounds and
    implement ``_from_match`` and ``__str__``. ``parse(str(x)) == x`` holds for
    every instance.
    """

    _kind: ClassVar[str] = "selector"
    _pattern: ClassVar[re.Pattern[str]]
    _min_length: ClassVar[int] = 0
    _max_length: ClassVar[int | None] = None

    @classmethod
    def matches(cls, s: Any) -> bool:
        """Return True if ``s`` satisfies this type's grammar and length bounds."""
        if not isinstance(s, str) or cls._pattern.match(s) is None:
            return False
        if len(s) < cls._min_length:
            return False
        return cls._max_length is None or len(s) <= cls._max_length

    @classmethod
    def _match(cls, s: Any) -> re.Match[str]:
        if not isinstance(s, str):
            raise ValidationError(f"Expected a string for {cls._kind}, got {type(s).__name__}")
        m = cls._pattern.match(s)
        if m is None:
            raise ValidationError(f"String '{s}' does not look like a valid {cls._kind}")
        if len(s) < cls._min_length:
            raise ValidationError(f"String '{s}' is too short to be a valid {cls._kind}")
        if cls._max_length is not None and len(s) > cls._max_length:
            raise ValidationError(f"String '{s}' is too long to be a valid {cls._kind}")
        return m

    @classmethod
    def _from_match(cls, m: re.Match[str]) -> Self:
        raise NotImplementedError

    @classmethod
    def parse(cls, s: Any) -> Self:
        """Parse the canonical string form, raising ValidationError if malformed."""
        if isinstance(s, cls):
            return s
        return cls._from_match(cls._match(s))

    def __repr__(self) -> str:
        return f"{type(self).__name__}('{self}')"


class _LabelSelector(DataSelector):
    """Selector whose canonical form is its label."""

    label: str

    def __post_init__(self) -> None:
        self._match(self.label)

    @classmethod
    def _from_match(cls, m: re.Match[str]) -> Self:
        return cls(m.group(0))

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True, order=True, repr=False)
class ExpSetup(_LabelSelector):
    """An experimental setup like ``l200``."""

    _kind: ClassVar[str] = "setup name"
    _pattern: ClassVar[re.Pattern[str]] = re.compile(r"^[a-z][a-z0-9]*$")
    _min_length: ClassVar[int] = 3
    _max_length: ClassVar[int | None] = 8

    label: str


@dataclass(frozen=True, order=True, repr=False)
class DataTier(_LabelSelector):
    """A data tier like ``raw`` or ``dsp``."""

    _kind: ClassVar[str] = "data tier"
    _pattern: ClassVar[re.Pattern[str]] = re.compile(r"^[a-z]+$")
    _min_length: ClassVar[int] = 3
    _max_length: ClassVar[int | None] = 6

    label: str


@dataclass(frozen=True, order=True, repr=False)
class DataCategory(_LabelSelector):
    """A data category (DAQ/measuring mode) like ``cal`` or ``phy``.

    ``all`` is an ordinary category value; validity resolution falls back to it
    when no entries exist for the requested category.
    """

    _kind: ClassVar[str] = "data category"
    _pattern: ClassVar[re.Pattern[str]] = re.compile(r"^[a-z]+$")
    _min_length: ClassVar[int] = 3
    _max_length: ClassVar[int | None] = 6

    label: str


@dataclass(frozen=True, order=True, repr=False)
class DetectorId(_LabelSelector):
    """A detector id like ``V99000A``."""

    _kind: ClassVar[str] = "detector id"
    _pattern: ClassVar[re.Pattern[str]] = re.compile(r"^[A-Z][A-Z0-9]*$")
    _min_length: ClassVar[int] = 4
    _max_length: ClassVar[int | None] = 7

    label: str


@dataclass(frozen=True, order=True, repr=False)
class DataPeriod(DataSelector):
    """A data-taking period, ``p02`` for period 2."""

    _kind: ClassVar[str] = "data period"
    _pattern: ClassVar[re.Pattern[str]] = re.compile(r"^p([0-9]{2})$")

    no: int

    def __post_init__(self) -> None:
        if not 0 <= self.no <= 99:
            raise ValidationError(f"Period number {self.no} out of range 0..99")

    @classmethod
    def _from_match(cls, m: re.Match[str]) -> Self:
        return cls(int(m.group(1)))

    def __str__(self) -> str:
        return f"p{self.no:02d}"


@dataclass(frozen=True, order=True, repr=False)
class DataRun(DataSelector):
    """A data-taking run, ``r006`` for run 6."""

    _kind: ClassVar[str] = "data run"
    _pattern: ClassVar[re.Pattern[str]] = re.compile(r"^r([0-9]{3})$")

    no: int

    def __post_init__(self) -> None:
        if not 0 <= self.no <= 999:
            raise ValidationError(f"Run number {self.no} out of range 0..999")

    @classmethod
    def _from_match(cls, m: re.Match[str]) -> Self:
        return cls(int(m.group(1)))

    def __str__(self) -> str:
        return f"r{self.no:03d}"


@dataclass(frozen=True, order=True, repr=False)
class DataPartition(DataSelector):
    """A data partition like ``calpartition001a``.

    Accepts the short forms ``calgroup001a``, ``calpart001a`` and ``part001``;
    category defaults to ``cal`` and set to ``a``.
    """

    _kind: ClassVar[str] = "data partition"
    _pattern: ClassVar[re.Pattern[str]] = re.compile(
        r"^(?:([a-z]{3}))?(?:group|partition|part)?([0-9]{2,3})([A-Za-z])?$"
    )

    no: int
    set: str = "a"
    category: DataCategory = field(default_factory=lambda: DataCategory("cal"))

    @classmethod
    def _from_match(cls, m: re.Match[str]) -> Self:
        cat, no, set_ = m.groups()
        return cls(
            int(no),
            set_.lower() if set_ else "a",
            DataCategory(cat) if cat else DataCategory("cal"),
        )

    def __str__(self) -> str:
        return f"{self.category}partition{self.no:03d}{self.set}"


@dataclass(frozen=True, order=True, repr=False)
class ChannelId(DataSelector):
    """A data channel, ``ch1083204`` or ``ch098`` in the old numbering."""

    _kind: ClassVar[str] = "channel id"
    # In 7-digit numbers the first two digits cannot both be zero
    _pattern: ClassVar[re.Pattern[str]] = re.compile(
        r"^ch([0-9]{3}|(?:0[1-9]|[1-9][0-9])[0-9]{5})$"
    )

    no: int

    def __post_init__(self) -> None:
        if self.no < 0 or not self.matches(str(self)):
            raise ValidationError(f"'{self.no}' does not look like a valid channel number")

    @classmethod
    def _from_match(cls, m: re.Match[str]) -> Self:
        return cls(int(m.group(1)))

    def __str__(self) -> str:
        return f"ch{self.no:03d}" if self.no < 1000 else f"ch{self.no:07d}"

    def __int__(self) -> int:
        return self.no


@dataclass(frozen=True, order=True, repr=False)
class Timestamp(DataSelector):
    """A UTC timestamp with one-second resolution, ``20221226T200846Z``."""

    _kind: ClassVar[str] = "timestamp"
    _pattern: ClassVar[re.Pattern[str]] = _TIMESTAMP_RE

    unixtime: int

    @classmethod
    def _from_match(cls, m: re.Match[str]) -> Self:
        try:
            dt = datetime.strptime(m.group(0), TIMESTAMP_FORMAT)
        except ValueError as e:
            raise ValidationError(f"String '{m.group(0)}' is not a valid timestamp: {e}") from e
        return cls.from_datetime(dt)

    @classmethod
    def from_datetime(cls, dt: datetime) -> Self:
        """Build from a datetime, naive values are taken as UTC."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return cls(round(dt.timestamp()))

    @classmethod
    def coerce(cls, value: Any) -> Timestamp:
        """Convert a Timestamp, FileKey, datetime, unix time or string."""
        if isinstance(value, Timestamp):
            return value
        if isinstance(value, FileKey):
            return value.timestamp
        if isinstance(value, datetime):
            return cls.from_datetime(value)
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        if isinstance(value, str) and not is_timestamp_string(value) and FileKey.matches(value):
            return FileKey.parse(value).timestamp
        return cls.parse(value)

    def to_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.unixtime, tz=timezone.utc)

    def __str__(self) -> str:
        return self.to_datetime().strftime(TIMESTAMP_FORMAT)


@dataclass(frozen=True, order=True, repr=False)
class FileKey(DataSelector):
    """Canonical identifier of one data-taking file.

    ``FileKey.parse`` works on the basename of its argument and discards any
    suffix after the five key fields, so generated file names parse too::

        FileKey.parse("tier/raw/cal/p02/r006/l200-p02-r006-cal-20221226T200846Z-tier_raw.lh5")

    Ordering follows the field tuple (setup, period, run, category, timestamp).
    """

    _kind: ClassVar[str] = "file key"
    _pattern: ClassVar[re.Pattern[str]] = _FILEKEY_RELAXED_RE

    setup: ExpSetup
    period: DataPeriod
    run: DataRun
    category: DataCategory
    timestamp: Timestamp

    @classmethod
    def matches(cls, s: Any) -> bool:
        if not isinstance(s, str):
            return False
        m = _FILEKEY_RELAXED_RE.match(os.path.basename(s))
        return m is not None and all(
            t.matches(v) for t, v in ((ExpSetup, m.group(1)), (DataCategory, m.group(4)))
        )

    @classmethod
    def _match(cls, s: Any) -> re.Match[str]:
        if not isinstance(s, str):
            raise ValidationError(f"Expected a string for file key, got {type(s).__name__}")
        m = _FILEKEY_RELAXED_RE.match(os.path.basename(s))
        if m is None:
            raise ValidationError(
                f"String '{s}' does not represent a valid file key or a compatible filename"
            )
        return m

    @classmethod
    def _from_match(cls, m: re.Match[str]) -> Self:
        setup, period, run, category, timestamp, _suffix = m.groups()
        return cls(
            ExpSetup(setup),
            DataPeriod(int(period)),
            DataRun(int(run)),
            DataCategory(category),
            Timestamp.parse(timestamp),
        )

    def __str__(self) -> str:
        return f"{self.setup}-{self.period}-{self.run}-{self.category}-{self.timestamp}"


SELECTOR_TYPES: tuple[type[DataSelector], ...] = (
    ExpSetup,
    DataTier,
    DataCategory,
    DataPeriod,
    DataRun,
    DataPartition,
    ChannelId,
    DetectorId,
    Timestamp,
    FileKey,
)


def is_timestamp_string(s: str) -> bool:
    return _TIMESTAMP_RE.match(s) is not None


def is_filekey_string(s: str) -> bool:
    return _FILEKEY_RE.match(s) is not None


def parse_selector(
    s: str,
    types: Iterable[type[DataSelector]] | None = None,
) -> DataSelector:
    """Parse ``s`` as whichever selector type its grammar matches.

    Raises ValidationError if no type matches and AmbiguousSelectorError if
    several do (``"cal"`` is a valid setup, tier and category).
    """
    candidates = [t for t in (types or SELECTOR_TYPES) if t.matches(s)]
    if not candidates:
        raise ValidationError(f"String '{s}' does not match any selector type")
    if len(candidates) > 1:
        raise AmbiguousSelectorError(s, [t.__name__ for t in candidates])
    return candidates[0].parse(s)


def read_filekeys(path: str | Path) -> list[FileKey]:
    """Read file keys from a text file, one per line.

    Empty lines are ignored and ``#`` starts a comment.
    """
    keys: list[FileKey] = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            content = line.split("#", 1)[0].strip()
            if content:
                keys.append(FileKey.parse(content))
    return keys


def write_filekeys(path: str | Path, filekeys: Iterable[FileKey]) -> None:
    """Write file keys to a text file, one per line."""
    with open(path, "w", encoding="utf-8") as f:
        for key in filekeys:
            f.write(f"{key}\n")

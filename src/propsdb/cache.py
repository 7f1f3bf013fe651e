"""Explicit LRU cache for resolved property lookups."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Callable, Hashable, Sequence
from typing import Any

from propsdb.db import PropsDB, SubTree, bind
from propsdb.selectors import FileKey
from propsdb.validity import ValiditySelection

logger = logging.getLogger(__name__)

_MISS = object()


class ResolutionCache:
    """Bounded least-recently-used cache.

    Once more than ``maxsize`` entries are stored, the entry that was least
    recently read or written is evicted. ``maxsize=0`` disables caching.
    Safe to share between threads.
    """

    def __init__(self, maxsize: int = 256) -> None:
        if maxsize < 0:
            raise ValueError("maxsize must be >= 0")
        self.maxsize = maxsize
        self._data: OrderedDict[Hashable, Any] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            value = self._data.get(key, _MISS)
            if value is _MISS:
                self._misses += 1
                return default
            self._hits += 1
            self._data.move_to_end(key)
            return value

    def put(self, key: Hashable, value: Any) -> None:
        if self.maxsize == 0:
            return
        with self._lock:
            self._data[key] = value
            self._data.move_to_end(key)
            while len(self._data) > self.maxsize:
                evicted, _ = self._data.popitem(last=False)
                logger.debug("Evicted cache entry %r", evicted)

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """Return the cached value for ``key``, calling ``loader`` on a miss.

        The loader runs outside the lock, so concurrent misses on the same key
        may both load; the last result wins.
        """
        value = self.get(key, _MISS)
        if value is _MISS:
            value = loader()
            self.put(key, value)
        return value

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "size": len(self._data),
                "maxsize": self.maxsize,
                "hits": self._hits,
                "misses": self._misses,
            }

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data


def _split_path(path: str | Sequence[str]) -> tuple[str, ...]:
    if isinstance(path, str):
        return tuple(p for p in path.replace("/", ".").split(".") if p)
    return tuple(str(p) for p in path)


def resolve_path(
    root: PropsDB,
    path: str | Sequence[str],
    selection: ValiditySelection | FileKey | str | None = None,
    *,
    cache: ResolutionCache | None = None,
) -> Any:
    """Navigate ``path`` (dotted or slash separated) below ``root``.

    The selection, if any, is bound at ``root`` and inherited down the path.
    Results are memoized in ``cache`` under ``(root.cache_key, path, selection)``.
    """
    segments = _split_path(path)
    if selection is not None and not isinstance(selection, ValiditySelection):
        selection = ValiditySelection.from_filekey(selection)

    def load() -> Any:
        value: Any = root
        if selection is not None:
            result = bind(root, selection)
            value = result.node if isinstance(result, SubTree) else result.props
        for segment in segments:
            value = value[segment]
        return value

    if cache is None:
        return load()
    return cache.get_or_load((root.cache_key, segments, selection), load)

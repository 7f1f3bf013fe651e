"""Configuration for propsdb."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class PropsDBConfig:
    """Configuration for property tree traversal and resolution."""

    validity_filenames: tuple[str, ...] = ("validity.jsonl", "validity.yaml")
    leaf_extensions: tuple[str, ...] = (".json", ".yaml", ".yml")
    cache_maxsize: int = 256
    all_category: str = "all"

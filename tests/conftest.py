"""Shared test fixtures for propsdb tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from propsdb import PropsDB

T0 = "20220101T000000Z"
T1 = "20221226T194007Z"
FILEKEY = "l200-p02-r006-cal-20221226T200846Z"


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def write_jsonl(path: Path, records: list[dict[str, Any]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(json.dumps(r) + "\n" for r in records), encoding="utf-8")
    return path


def write_text(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


# --- Fixtures ---


@pytest.fixture
def metadata_dirs(tmp_path):
    """Build a primary and an override metadata tree.

    primary/
        hardware/detectors/germanium/diodes/{V99000A.json, B00000B.yaml}
        hardware/configuration/channelmaps/  (validity.jsonl, category all)
        dataprod/pars/                       (validity.yaml, categories cal+phy)
        dataprod/config.json
    override/
        hardware/detectors/germanium/diodes/V99000A.json
        hardware/configuration/channelmaps/  (validity.jsonl, category all at T1)
    """
    primary = tmp_path / "metadata"
    override = tmp_path / "override"

    diodes = primary / "hardware" / "detectors" / "germanium" / "diodes"
    write_json(
        diodes / "V99000A.json",
        {"name": "V99000A", "type": "icpc", "production": {"mass_in_g": 2000, "order": 9}},
    )
    write_text(diodes / "B00000B.yaml", "name: B00000B\ntype: bege\n")
    write_text(diodes / "README.md", "not a property\n")

    channelmaps = primary / "hardware" / "configuration" / "channelmaps"
    write_jsonl(
        channelmaps / "validity.jsonl",
        [
            {"valid_from": T0, "category": "all", "mode": "reset", "apply": ["default.json"]},
            {"valid_from": T1, "category": "all", "mode": "append", "apply": ["p02.json"]},
        ],
    )
    write_json(
        channelmaps / "default.json",
        {"V99000A": {"system": "geds", "daq": {"crate": 0, "rawid": 1104000}}},
    )
    write_json(channelmaps / "p02.json", {"V99000A": {"daq": {"rawid": 1104002}}})

    pars = primary / "dataprod" / "pars"
    write_text(
        pars / "validity.yaml",
        f"- valid_from: {T0}\n"
        "  category: [cal, phy]\n"
        "  mode: reset\n"
        "  apply:\n"
        "    - p01.yaml\n"
        "    - common.yaml\n"
        f"- valid_from: {T1}\n"
        "  category: cal\n"
        "  mode: replace\n"
        "  apply:\n"
        "    - p01.yaml\n"
        "    - p02.yaml\n",
    )
    write_text(pars / "p01.yaml", "ecal:\n  gain: 1.0\n  period: p01\n")
    write_text(pars / "p02.yaml", "ecal:\n  gain: 1.1\n  period: p02\n")
    write_text(pars / "common.yaml", "ecal:\n  period: common\nqc:\n  cut: 3\n")
    write_json(primary / "dataprod" / "config.json", {"setup": "l200"})

    write_json(
        override / "hardware" / "detectors" / "germanium" / "diodes" / "V99000A.json",
        {"production": {"mass_in_g": 2005}},
    )
    override_maps = override / "hardware" / "configuration" / "channelmaps"
    write_jsonl(
        override_maps / "validity.jsonl",
        [{"valid_from": T1, "category": "all", "mode": "reset", "apply": ["fix.json"]}],
    )
    write_json(override_maps / "fix.json", {"V99000A": {"analysis": {"usability": "off"}}})

    return primary, override


@pytest.fixture
def db(metadata_dirs):
    """Open the primary tree together with its override tree."""
    primary, override = metadata_dirs
    return PropsDB.open(primary, override)


@pytest.fixture
def primary_db(metadata_dirs):
    """Open the primary tree alone."""
    primary, _ = metadata_dirs
    return PropsDB.open(primary)

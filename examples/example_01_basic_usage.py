"""Example 01: Basic Usage - propsdb Fundamentals.

This example demonstrates the fundamental operations:
- Building a small metadata tree with a validity log
- Opening it together with an override tree
- Navigating directories and property files by attribute
- Binding a validity selection by file key or by (timestamp, category)
- Appending a validity entry and seeing the change
"""

import json
import tempfile
from pathlib import Path

from propsdb import PropsDB, ValidityEntry, ValiditySelection, parse_selector


def write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))


def build_tree(root: Path) -> tuple[Path, Path]:
    """Create a primary tree and an override tree below ``root``."""
    primary = root / "metadata"
    override = root / "override"

    # Plain property files: no validity log, always accessible
    write_json(
        primary / "hardware" / "detectors" / "V99000A.json",
        {"type": "icpc", "production": {"mass_in_g": 2000}},
    )

    # A directory with a validity log: content depends on time and category
    maps = primary / "hardware" / "channelmaps"
    write_json(maps / "default.json", {"V99000A": {"daq": {"crate": 0, "rawid": 1104000}}})
    write_json(maps / "p02.json", {"V99000A": {"daq": {"rawid": 1104002}}})
    (maps / "validity.jsonl").write_text(
        json.dumps(
            {"valid_from": "20220101T000000Z", "category": "all", "apply": ["default.json"]}
        )
        + "\n"
        + json.dumps(
            {
                "valid_from": "20221226T194007Z",
                "category": "all",
                "mode": "append",
                "apply": ["p02.json"],
            }
        )
        + "\n"
    )

    # The override tree mirrors the primary layout
    write_json(
        override / "hardware" / "detectors" / "V99000A.json",
        {"production": {"mass_in_g": 2005}},
    )
    return primary, override


def main():
    """Run the basic usage example."""
    print("=" * 80)
    print("PROPSDB BASIC USAGE EXAMPLE")
    print("=" * 80)

    with tempfile.TemporaryDirectory() as tmp:
        primary, override = build_tree(Path(tmp))

        # Step 1: Open the tree
        db = PropsDB.open(primary, override)
        print(f"\nOpened: {db!r}")
        print(f"Top-level properties: {list(db.keys())}")

        # Step 2: Plain property files, override deep-merged over primary
        det = db.hardware.detectors.V99000A
        print(f"\nV99000A type: {det.type}, mass: {det.production.mass_in_g} g")

        # Step 3: Directories with a validity log need a selection
        maps = db.hardware.channelmaps
        print(f"\nchannelmaps needs selection: {maps.needs_selection}")

        filekey = "l200-p02-r006-cal-20221226T200846Z"
        print(f"Parsed selector: {parse_selector(filekey)!r}")
        chmap = maps(filekey)
        print(f"rawid at {filekey}: {chmap.V99000A.daq.rawid}")

        early = maps("20220601T000000Z", "phy")
        print(f"rawid at 20220601T000000Z/phy: {early.V99000A.daq.rawid}")

        # Step 4: Bind at an ancestor, descendants inherit the selection
        bound = db.hardware(ValiditySelection.from_filekey(filekey))
        print(f"Inherited selection: {bound.validity_sel}")
        print(f"crate: {bound.channelmaps.V99000A.daq.crate}")

        # Step 5: Missing properties are falsy references
        missing = db.hardware.detectors.V00000X
        print(f"\nMissing property is falsy: {not missing}, would live at {missing.path()}")

        # Step 6: Append to the validity log
        maps.append_validity(ValidityEntry.create("20230101T000000Z", "all", ["default.json"]))
        reopened = PropsDB.open(primary, override)
        later = reopened.hardware.channelmaps("20230102T000000Z", "cal")
        print(f"\nrawid after reset at 20230101T000000Z: {later.V99000A.daq.rawid}")

    print("\n" + "=" * 80)
    print("EXAMPLE COMPLETE")
    print("=" * 80)


if __name__ == "__main__":
    main()

"""Tests for merging primary and override validity."""

from __future__ import annotations

from propsdb import DataCategory, Timestamp, ValidityEntry, merge_validity, replay_validity
from propsdb.validity import ValiditySnapshot

CAL = DataCategory("cal")
PHY = DataCategory("phy")

T1 = "20220101T000000Z"
T2 = "20220201T000000Z"
T3 = "20220301T000000Z"


def snap(valid_from, *files):
    return ValiditySnapshot(Timestamp.parse(valid_from), tuple(files))


class TestMergeValidity:
    def test_empty_sides(self):
        primary = {CAL: (snap(T1, "a"),)}
        assert merge_validity(primary, {}) == primary
        assert merge_validity({}, primary) == primary
        assert merge_validity({}, {}) == {}

    def test_interleaved(self):
        merged = merge_validity(
            {CAL: (snap(T1, "a"), snap(T3, "c"))},
            {CAL: (snap(T2, "b"),)},
        )
        assert merged[CAL] == (snap(T1, "a"), snap(T2, "b"), snap(T3, "c"))

    def test_same_timestamp_concatenates_primary_first(self):
        merged = merge_validity(
            {CAL: (snap(T1, "a"), snap(T2, "a", "b"))},
            {CAL: (snap(T2, "fix"),)},
        )
        assert merged[CAL] == (snap(T1, "a"), snap(T2, "a", "b", "fix"))

    def test_origins_track_source_log(self):
        merged = merge_validity(
            {CAL: (snap(T1, "a"), snap(T2, "a", "b"))},
            {CAL: (snap(T1, "c"), snap(T2, "a"))},
        )
        assert merged[CAL][0].entries() == [("a", "primary"), ("c", "override")]
        assert merged[CAL][1].entries() == [("a", "primary"), ("b", "primary"), ("a", "override")]
        only_override = merge_validity({}, {PHY: (snap(T1, "x"),)})
        assert only_override[PHY][0].entries() == [("x", "override")]
        assert snap(T1, "x").entries() == [("x", "primary")]

    def test_categories_on_one_side(self):
        merged = merge_validity({CAL: (snap(T1, "a"),)}, {PHY: (snap(T2, "p"),)})
        assert merged == {CAL: (snap(T1, "a"),), PHY: (snap(T2, "p"),)}

    def test_commutative_for_disjoint_timestamps(self):
        primary = replay_validity(
            [
                ValidityEntry.create(T1, "cal", ["a"]),
                ValidityEntry.create(T3, "cal", ["c"], "append"),
            ]
        )
        override = replay_validity([ValidityEntry.create(T2, "cal", ["b"])])
        assert merge_validity(primary, override) == merge_validity(override, primary)

    def test_result_ordered(self):
        merged = merge_validity(
            {CAL: (snap(T1, "a"), snap(T2, "b"))},
            {CAL: (snap(T1, "x"), snap(T3, "y"))},
        )
        times = [s.valid_from for s in merged[CAL]]
        assert times == sorted(times)
        assert merged[CAL][0] == snap(T1, "a", "x")

    def test_inputs_unchanged(self):
        primary = {CAL: (snap(T1, "a"),)}
        override = {CAL: (snap(T1, "b"),)}
        merge_validity(primary, override)
        assert primary == {CAL: (snap(T1, "a"),)}
        assert override == {CAL: (snap(T1, "b"),)}

"""Tests for PropDict, deep merge and property file I/O."""

from __future__ import annotations

import json

import pytest
import yaml

from propsdb import DetectorId, PropDict, ValidationError, deep_merge, read_props, write_props


class TestPropDict:
    def test_attribute_and_item_access(self):
        props = PropDict({"production": {"mass_in_g": 2000}, "type": "icpc"})
        assert props.type == "icpc"
        assert props["production"]["mass_in_g"] == 2000
        assert props.production.mass_in_g == 2000
        assert isinstance(props.production, PropDict)

    def test_lists_become_tuples(self):
        props = PropDict({"a": [1, {"b": 2}]})
        assert props.a[0] == 1
        assert props.a[1].b == 2
        assert isinstance(props.a, tuple)

    def test_selector_keys(self):
        props = PropDict({"V99000A": {"mass": 1}})
        assert props[DetectorId("V99000A")].mass == 1
        assert DetectorId("V99000A") in props

    def test_immutable(self):
        props = PropDict({"a": 1})
        with pytest.raises(AttributeError, match="immutable"):
            props.a = 2
        with pytest.raises(TypeError):
            props["a"] = 2  # type: ignore[index]

    def test_missing_attribute(self):
        props = PropDict({"a": 1})
        with pytest.raises(AttributeError, match="no property 'b'"):
            props.b
        with pytest.raises(KeyError):
            props["b"]

    def test_private_attribute(self):
        with pytest.raises(AttributeError):
            PropDict({"_x": 1})._x

    def test_mapping_protocol(self):
        props = PropDict({"a": 1, "b": 2})
        assert list(props) == ["a", "b"]
        assert len(props) == 2
        assert dict(props) == {"a": 1, "b": 2}
        assert props == {"a": 1, "b": 2}
        assert "b" in dir(props)

    def test_to_dict(self):
        data = {"a": {"b": [1, {"c": 2}]}}
        plain = PropDict(data).to_dict()
        assert plain == data
        assert isinstance(plain["a"], dict)
        assert isinstance(plain["a"]["b"], list)

    def test_empty(self):
        assert len(PropDict()) == 0


class TestDeepMerge:
    def test_nested(self):
        base = {"a": {"x": 1, "y": 2}, "b": 1}
        update = {"a": {"y": 3, "z": 4}, "c": 5}
        assert deep_merge(base, update) == {"a": {"x": 1, "y": 3, "z": 4}, "b": 1, "c": 5}

    def test_update_replaces_non_mappings(self):
        assert deep_merge({"a": [1, 2]}, {"a": [3]}) == {"a": [3]}
        assert deep_merge({"a": {"x": 1}}, {"a": 5}) == {"a": 5}
        assert deep_merge({"a": 5}, {"a": {"x": 1}}) == {"a": {"x": 1}}

    def test_inputs_unchanged(self):
        base = {"a": {"x": 1}}
        update = {"a": {"y": 2}}
        deep_merge(base, update)
        assert base == {"a": {"x": 1}}
        assert update == {"a": {"y": 2}}

    def test_accepts_propdicts(self):
        merged = deep_merge(PropDict({"a": {"x": (1, 2)}}), PropDict({"a": {"y": 2}}))
        assert merged == {"a": {"x": [1, 2], "y": 2}}


class TestPropertyFiles:
    def test_read_json_and_yaml(self, tmp_path):
        (tmp_path / "a.json").write_text(json.dumps({"x": {"y": 1}}), encoding="utf-8")
        (tmp_path / "b.yaml").write_text("x:\n  z: 2\n", encoding="utf-8")
        assert read_props(tmp_path / "a.json").x.y == 1
        merged = read_props([tmp_path / "a.json", tmp_path / "b.yaml"])
        assert merged.to_dict() == {"x": {"y": 1, "z": 2}}

    def test_later_files_win(self, tmp_path):
        (tmp_path / "a.json").write_text(json.dumps({"x": 1}), encoding="utf-8")
        (tmp_path / "b.json").write_text(json.dumps({"x": 2}), encoding="utf-8")
        assert read_props([tmp_path / "a.json", tmp_path / "b.json"]).x == 2
        assert read_props([tmp_path / "b.json", tmp_path / "a.json"]).x == 1

    def test_empty_yaml(self, tmp_path):
        (tmp_path / "a.yaml").write_text("", encoding="utf-8")
        assert read_props(tmp_path / "a.yaml") == {}

    def test_not_a_mapping(self, tmp_path):
        (tmp_path / "a.json").write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValidationError, match="must contain a mapping"):
            read_props(tmp_path / "a.json")

    def test_invalid_json(self, tmp_path):
        (tmp_path / "a.json").write_text("{", encoding="utf-8")
        with pytest.raises(ValidationError, match="Invalid JSON"):
            read_props(tmp_path / "a.json")

    def test_unsupported_format(self, tmp_path):
        (tmp_path / "a.txt").write_text("", encoding="utf-8")
        with pytest.raises(ValidationError, match="Unsupported"):
            read_props(tmp_path / "a.txt")

    def test_write_json(self, tmp_path):
        path = write_props(tmp_path / "sub" / "a.json", {"x": {"y": [1, 2]}})
        assert json.loads(path.read_text(encoding="utf-8")) == {"x": {"y": [1, 2]}}

    def test_write_yaml_from_propdict(self, tmp_path):
        path = write_props(tmp_path / "a.yaml", PropDict({"x": {"y": [1, 2]}}))
        assert yaml.safe_load(path.read_text(encoding="utf-8")) == {"x": {"y": [1, 2]}}

    def test_write_unknown_format(self, tmp_path):
        with pytest.raises(ValidationError):
            write_props(tmp_path / "a.json", {}, fmt="toml")

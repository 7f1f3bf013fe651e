"""Tests for CLI output helpers."""

import json

import yaml

from propsdb import PropDict
from propsdb.cli._output import print_error, print_props, print_table


def test_print_table_json(capsys):
    print_table(["category", "valid_from"], [["cal", "20220101T000000Z"]], json_mode=True)
    out = capsys.readouterr().out
    data = json.loads(out)
    assert data == [{"category": "cal", "valid_from": "20220101T000000Z"}]


def test_print_table_text(capsys):
    print_table(["property", "kind"], [["channelmaps", "node"], ["V99000A", "leaf"]])
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("property     kind")
    assert lines[1].startswith("-----------")
    assert lines[3] == "V99000A      leaf"


def test_print_table_empty(capsys):
    print_table(["property"], [], json_mode=False)
    out = capsys.readouterr().out
    assert out == ""


def test_print_props_json(capsys):
    print_props(PropDict({"daq": {"crate": 0, "slots": [1, 2]}}), json_mode=True)
    out = capsys.readouterr().out
    assert json.loads(out) == {"daq": {"crate": 0, "slots": [1, 2]}}


def test_print_props_yaml(capsys):
    print_props(PropDict({"daq": {"crate": 0}}), json_mode=False)
    out = capsys.readouterr().out
    assert "crate: 0" in out
    assert yaml.safe_load(out) == {"daq": {"crate": 0}}


def test_print_error(capsys):
    print_error("something broke")
    err = capsys.readouterr().err
    assert "Error: something broke" in err

"""Tests for CSV export of reports."""

import csv

import pytest

from fixtures import make_battle_file, make_reference, sample_documents
from sparkstats.export import (
    CHARACTER_TABLE,
    MATCH_TABLE,
    character_row,
    export_report_csv,
    match_row,
)
from sparkstats.metrics import get_table_metrics
from sparkstats.report import generate_report


def _report(include_matches):
    files = [make_battle_file(name, doc) for name, doc in sample_documents().items()]
    return generate_report(files, make_reference(), include_matches=include_matches)


def _read(path):
    with open(path, encoding="utf-8", newline="") as f:
        return list(csv.reader(f))


def test_export_writes_both_tables(tmp_path):
    written = export_report_csv(_report(True), tmp_path / "out")

    assert [p.name for p in written] == [CHARACTER_TABLE, MATCH_TABLE]

    characters = _read(written[0])
    assert characters[0] == [m.display_name for m in get_table_metrics("character")]
    assert len(characters) == 1 + 5
    assert characters[1][0] == "Goku (Z - Early)"

    matches = _read(written[1])
    assert len(matches) == 1 + 8
    header = matches[0]
    first = dict(zip(header, matches[1]))
    assert first["Position"] == "Lead"
    assert first["Won"] == "Yes"
    assert first["Capsules"] == "Melee Up; Rush Master"


def test_export_skips_match_table_without_matches(tmp_path):
    written = export_report_csv(_report(False), tmp_path)
    assert [p.name for p in written] == [CHARACTER_TABLE]
    assert not (tmp_path / MATCH_TABLE).exists()


def test_character_row_flattens_entry():
    row = character_row(
        {
            "name": "Piccolo",
            "primary_team": "Red",
            "match_count": 3,
            "totals": {"max_combo": 21},
            "averages": {"avg_damage": 41000.0},
            "builds": [{"label": "Pure Defense"}],
        }
    )

    assert row["name"] == "Piccolo"
    assert row["team"] == "Red"
    assert row["max_combo"] == 21
    assert row["avg_damage"] == 41000.0
    assert row["build"] == "Pure Defense"


@pytest.mark.parametrize(("position", "label"), [(1, "Lead"), (3, "Anchor"), (None, None)])
def test_match_row_labels_position(position, label):
    assert match_row({"position": position})["position"] == label

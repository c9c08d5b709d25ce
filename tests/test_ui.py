"""Tests for the offline report viewer."""

from __future__ import annotations

import json

import pytest

from fixtures import make_battle_file, make_reference, sample_documents
from sparkstats import ui
from sparkstats.report import generate_report


@pytest.fixture
def sample_report() -> dict:
    files = [make_battle_file(name, doc) for name, doc in sample_documents().items()]
    return generate_report(files, make_reference())


def test_summarize_report_sections(sample_report):
    out = ui.summarize_report(sample_report)

    assert "Battle Summary" in out
    assert "Files: 2 (0 failed) | Characters: 5 | Teams: 2" in out
    assert "- Goku (Z - Early): score" in out
    assert "- Red: 2-0 (100.0%)" in out
    assert "Lead: Goku (Z - Early) (72.5K avg dmg)" in out
    assert "Middle: -" in out
    assert "Character Focus" not in out
    assert "Warnings" not in out


def test_summarize_report_focus_character(sample_report):
    out = ui.summarize_report(sample_report, focus_character="goku")

    assert "Character Focus: Goku (Z - Early)" in out
    assert "Teams: Red" in out
    assert "Hit rates: S1 75.0" in out
    assert "Build Pure Melee: used 1x" in out
    assert "Form 2 Goku (Super Saiyan)" in out


def test_summarize_report_unknown_focus(sample_report):
    out = ui.summarize_report(sample_report, focus_character="Broly")
    assert "no character matching 'Broly'" in out


def test_summarize_report_lists_warnings():
    out = ui.summarize_report({"files": [], "warnings": ["no_usable_battle_files"]})
    assert "Warnings" in out
    assert "- no_usable_battle_files" in out


def test_view_command_prints_summary(tmp_path, capsys, sample_report):
    path = tmp_path / "report.json"
    path.write_text(json.dumps(sample_report), encoding="utf-8")

    exit_code = ui.main(["view", str(path), "--character", "Vegeta"])

    assert exit_code == 0
    captured = capsys.readouterr()
    assert "Battle Summary" in captured.out
    assert "Character Focus: Vegeta (Z - Scouter)" in captured.out


def test_view_missing_file(tmp_path, capsys):
    assert ui.cmd_view(tmp_path / "missing.json") == 2
    assert "file not found" in capsys.readouterr().out


def test_view_invalid_json(tmp_path, capsys):
    path = tmp_path / "bad.json"
    path.write_text("{", encoding="utf-8")
    assert ui.cmd_view(path) == 2
    assert "invalid JSON" in capsys.readouterr().out


def test_summarize_report_capsule_synergy(sample_report):
    out = ui.summarize_report(sample_report)

    assert "Capsule Synergy" in out
    assert "- Melee Up: score 100.0 | win 100.0% | used 1x" in out


def test_summarize_report_sorted_by_metric(sample_report):
    out = ui.summarize_report(sample_report, sort_by="avg_taken")

    assert "Top Characters by Avg Taken" in out
    lines = out.splitlines()
    start = lines.index("Top Characters by Avg Taken") + 2
    # lower damage taken ranks first
    assert lines[start].startswith("- Vegeta (Z - Scouter):")
    assert lines[start].endswith("| Avg Taken 30000")


def test_rank_characters_rejects_unrankable_metric(sample_report):
    with pytest.raises(ValueError):
        ui.rank_characters(sample_report["characters"], "name")


def test_sortable_metrics_come_from_catalog():
    keys = ui.sortable_character_metrics()
    assert "combat_performance_score" in keys
    assert "avg_taken" in keys
    assert "name" not in keys
    assert "damage_done" not in keys


def test_view_command_sort_by(tmp_path, capsys, sample_report):
    path = tmp_path / "report.json"
    path.write_text(json.dumps(sample_report), encoding="utf-8")

    assert ui.main(["view", str(path), "--sort-by", "win_rate"]) == 0
    assert "Top Characters by Win Rate %" in capsys.readouterr().out

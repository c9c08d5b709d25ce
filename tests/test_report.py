"""End-to-end report generation over a small two-battle season."""

import json

import pytest

from fixtures import make_battle_file, make_reference, sample_documents
from sparkstats.config import SparkStatsConfig
from sparkstats.report import generate_report, write_report_atomically
from sparkstats.schema import validate_report
from sparkstats.types import BattleFile
from sparkstats.version import get_schema_version

GOKU = "Goku (Z - Early)"


@pytest.fixture
def files():
    return [make_battle_file(name, doc) for name, doc in sample_documents().items()]


@pytest.fixture
def report(files):
    return generate_report(files, make_reference())


def test_report_top_level(report):
    assert report["schema_version"] == get_schema_version()
    assert report["generated_at_utc"].endswith("Z")
    assert report["build_rules"]["max_cost"] == 20
    assert [f["name"] for f in report["files"]] == ["week1.json", "week2.json"]
    assert all(f["status"] == "ok" and f["battles"] == 1 for f in report["files"])
    assert report["warnings"] == []


def test_report_characters(report):
    names = [c["name"] for c in report["characters"]]
    assert names[0] == GOKU
    goku = report["characters"][0]
    assert goku["match_count"] == 2
    assert goku["wins"] == 2
    assert goku["teams"] == ["Red"]
    assert goku["totals"]["damage"] == 145000
    assert goku["averages"]["avg_damage"] == pytest.approx(72500)
    assert goku["averages"]["s1_hit_rate"] == pytest.approx(75.0)
    assert [f["form_id"] for f in goku["forms"]] == ["0000_00", "0000_01"]
    assert goku["builds"][0]["label"] == "Pure Melee"
    assert goku["builds"][0]["capsules"] == ["Melee Up", "Rush Master"]
    assert "matches" not in goku


def test_report_teams(report):
    red, blue = report["teams"]
    assert (red["name"], red["wins"], red["losses"]) == ("Red", 2, 0)
    assert (blue["name"], blue["wins"], blue["losses"]) == ("Blue", 0, 2)
    assert red["opponents"]["Blue"]["wins"] == 2
    matchup = red["opponents"]["Blue"]["character_matchups"][f"{GOKU}_vs_Frieza"]
    assert matchup == {"matches": 2, "wins": 2, "losses": 0}
    assert red["top_characters"][0] == GOKU


def test_report_positions_and_groups(report):
    assert [p["label"] for p in report["positions"]] == ["Lead", "Middle", "Anchor"]
    assert report["positions"][0]["characters"][0]["name"] == GOKU
    groups = {g["team_name"]: g for g in report["team_groups"]}
    assert set(groups) == {"Red", "Blue"}
    assert groups["Red"]["total_matches"] == 4
    assert groups["Red"]["aggregates"]["has_multiple_forms"] is True


def test_include_matches(files):
    report = generate_report(files, make_reference(), include_matches=True)

    goku = report["characters"][0]
    assert [m["file"] for m in goku["matches"]] == ["week1.json", "week2.json"]
    first = goku["matches"][0]
    assert first["position"] == 1
    assert first["team"] == "Red"
    assert first["opponent"] == "Blue"
    assert first["ai_strategy"] == "Aggressive AI"
    assert goku["matches"][1]["side"] == "enemy"


def test_include_matches_from_config(files):
    config = SparkStatsConfig()
    config.analysis.include_matches = True
    report = generate_report(files, make_reference(), config)
    assert "matches" in report["characters"][0]


def test_top_builds_from_config(files):
    config = SparkStatsConfig()
    config.analysis.top_builds = 1
    report = generate_report(files, make_reference(), config)
    vegeta = next(c for c in report["characters"] if c["name"] == "Vegeta (Z - Scouter)")
    assert len(vegeta["builds"]) == 1


def test_invalid_files_are_reported(files):
    report = generate_report(
        [BattleFile(name="broken.json", error="Invalid JSON file"), *files], make_reference()
    )

    assert report["files"][0] == {
        "name": "broken.json",
        "status": "error",
        "error": "Invalid JSON file",
        "battles": 0,
    }
    assert "invalid_battle_file:broken.json" in report["warnings"]
    assert len(report["characters"]) == 5


def test_no_usable_files():
    report = generate_report([BattleFile(name="broken.json", error="Invalid JSON file")], make_reference())

    assert report["characters"] == []
    assert report["teams"] == []
    assert [p["characters"] for p in report["positions"]] == [[], [], []]
    assert "no_usable_battle_files" in report["warnings"]


def test_analysis_warnings(files):
    no_records = make_battle_file("empty.json", {"settings": {}})
    report = generate_report([no_records], make_reference())
    assert "no_character_records_found" in report["warnings"]

    legacy = {
        "characterRecord": sample_documents()["week1.json"]["TeamBattleResults"]["battleResult"][
            "characterRecord"
        ]
    }
    legacy["characterRecord"]["AlliesTeamMember1"].pop("additionalCounts")
    report = generate_report([make_battle_file("legacy.json", legacy)], make_reference())
    assert "hit_tracking_unavailable" in report["warnings"]
    assert "no_team_data_available" in report["warnings"]


def test_write_report_atomically(tmp_path, report):
    out_path = tmp_path / "nested" / "report.json"

    write_report_atomically(report, out_path, pretty=True)

    loaded = json.loads(out_path.read_text(encoding="utf-8"))
    validate_report(loaded)
    assert loaded["characters"][0]["name"] == GOKU
    assert not (tmp_path / "nested" / "report.json.tmp").exists()


def test_capsule_synergy_section(report):
    synergy = report["capsule_synergy"]

    assert {c["name"] for c in synergy["capsules"]} == {"Melee Up", "Rush Master", "Blast Boost"}
    assert all(c["composite_score"] == 100.0 for c in synergy["capsules"])
    # the only pair was equipped once, below the default listing threshold
    assert synergy["pairs"] == []
    melee = next(
        c for c in synergy["ai_strategies"]["Aggressive AI"] if c["name"] == "Melee Up"
    )
    assert melee["composite_score"] == pytest.approx(98.7)

    best = synergy["builds"][0]
    assert best["capsules"] == ["Melee Up", "Rush Master"]
    assert best["ai_strategy"] == "Aggressive AI"
    assert best["valid"] is True
    # 40 performance + 0 synergy + 98.7 * 0.15 strategy + 10 archetype + 2 cost
    assert best["score"]["total_score"] == pytest.approx(66.805)
    assert best["suggestions"][0]["capsule"] == "Blast Boost"


def test_pair_listing_threshold_from_config(files):
    config = SparkStatsConfig()
    config.analysis.min_pair_appearances = 1

    pairs = generate_report(files, make_reference(), config)["capsule_synergy"]["pairs"]

    assert len(pairs) == 1
    assert {pairs[0]["capsule1_name"], pairs[0]["capsule2_name"]} == {"Melee Up", "Rush Master"}
    assert pairs[0]["synergy_type"] == "multiplicative"
    assert pairs[0]["synergy_bonus"] == pytest.approx(0.0)


def test_capsule_data_warning():
    doc = sample_documents()["week2.json"]
    report = generate_report([make_battle_file("week2.json", doc)], make_reference())

    assert "capsule_data_unavailable" in report["warnings"]
    assert report["capsule_synergy"]["capsules"] == []
    assert report["capsule_synergy"]["builds"] == []

# tests/test_cli.py
import json
from unittest.mock import patch

import pytest

from fixtures import write_reference_csvs, write_sample_battles
from sparkstats.cli import REPORT_FILENAME, main
from sparkstats.schema import validate_report_file


@pytest.fixture
def workspace(tmp_path):
    """Battle files and reference tables with no user config in play."""
    battles = tmp_path / "battles"
    write_sample_battles(battles)
    characters, capsules = write_reference_csvs(tmp_path / "ref")
    with patch(
        "sparkstats.cli.get_default_config_path",
        return_value=tmp_path / "home" / "config.toml",
    ):
        yield {
            "root": tmp_path,
            "battles": battles,
            "reference": ["--characters", str(characters), "--capsules", str(capsules)],
        }


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--version"])
    assert exc_info.value.code == 0
    assert "sparkstats 0.1.0" in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out.lower()


def test_analyze_writes_report(workspace, capsys):
    out_dir = workspace["root"] / "reports"

    exit_code = main(
        ["analyze", str(workspace["battles"]), *workspace["reference"], "--out", str(out_dir), "--pretty"]
    )

    assert exit_code == 0
    report_path = out_dir / REPORT_FILENAME
    assert capsys.readouterr().out.strip() == str(report_path)
    validate_report_file(str(report_path))
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["characters"][0]["name"] == "Goku (Z - Early)"
    assert "matches" not in report["characters"][0]


def test_analyze_include_matches(workspace):
    out_dir = workspace["root"] / "reports"

    exit_code = main(
        [
            "analyze",
            str(workspace["battles"] / "week1.json"),
            *workspace["reference"],
            "--out",
            str(out_dir),
            "--include-matches",
        ]
    )

    assert exit_code == 0
    report = json.loads((out_dir / REPORT_FILENAME).read_text(encoding="utf-8"))
    assert [f["name"] for f in report["files"]] == ["week1.json"]
    assert len(report["characters"][0]["matches"]) == 1


def test_analyze_uses_config_paths(workspace, capsys):
    root = workspace["root"]
    config_path = root / "config.toml"
    config_path.write_text("""
[reference]
characters_csv = "ref/characters.csv"
capsules_csv = "ref/capsules.csv"

[paths]
battle_dir = "battles"
output_dir = "out"
""")

    exit_code = main(["analyze", "--config", str(config_path)])

    assert exit_code == 0
    assert (root / "out" / REPORT_FILENAME).exists()


def test_analyze_missing_reference_file(workspace, capsys):
    exit_code = main(
        ["analyze", str(workspace["battles"]), "--characters", str(workspace["root"] / "nope.csv")]
    )

    assert exit_code == 1
    captured = capsys.readouterr()
    assert "Error:" in captured.err
    assert "Suggestion:" in captured.err


def test_analyze_missing_battle_dir(workspace, capsys):
    exit_code = main(["analyze", str(workspace["root"] / "missing"), *workspace["reference"]])

    assert exit_code == 1
    assert "not found" in capsys.readouterr().err


def test_export_writes_csv_tables(workspace, capsys):
    out_dir = workspace["root"] / "csv"

    exit_code = main(["export", str(workspace["battles"]), *workspace["reference"], "--out", str(out_dir)])

    assert exit_code == 0
    printed = capsys.readouterr().out.split()
    assert printed == [
        str(out_dir / "character_averages.csv"),
        str(out_dir / "match_details.csv"),
    ]


def test_ingest_json(workspace, capsys):
    exit_code = main(["ingest", str(workspace["battles"]), "--json"])

    assert exit_code == 0
    results = json.loads(capsys.readouterr().out)
    assert [r["status"] for r in results] == ["success", "success"]
    assert results[1]["sources"] == ["TeamBattleResults.BattleResults"]


def test_ingest_text_reports_errors(workspace, capsys):
    bad = workspace["battles"] / "zz_bad.json"
    bad.write_text("{", encoding="utf-8")

    exit_code = main(["ingest", str(workspace["battles"])])

    assert exit_code == 1
    out = capsys.readouterr().out
    assert "week1.json: SUCCESS" in out
    assert "zz_bad.json: ERROR" in out
    assert "Error: Invalid JSON file" in out


def test_ingest_json_error_for_missing_path(workspace, capsys):
    exit_code = main(["ingest", str(workspace["root"] / "missing.json"), "--json"])

    assert exit_code == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "error"
    assert payload["error"]["type"] == "BattleFileNotFoundError"


def test_view_command(workspace, capsys):
    out_dir = workspace["root"] / "reports"
    main(["analyze", str(workspace["battles"]), *workspace["reference"], "--out", str(out_dir)])
    capsys.readouterr()

    exit_code = main(["view", str(out_dir / REPORT_FILENAME), "--character", "goku"])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "Battle Summary" in out
    assert "Character Focus: Goku (Z - Early)" in out


def test_view_missing_report(tmp_path, capsys):
    assert main(["view", str(tmp_path / "missing.json")]) == 1


def test_view_command_sort_by(workspace, capsys):
    out_dir = workspace["root"] / "reports"
    main(["analyze", str(workspace["battles"]), *workspace["reference"], "--out", str(out_dir)])
    capsys.readouterr()

    exit_code = main(["view", str(out_dir / REPORT_FILENAME), "--sort-by", "avg_taken"])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "Top Characters by Avg Taken" in out
    assert "Capsule Synergy" in out


def test_view_rejects_unknown_sort_metric(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["view", "report.json", "--sort-by", "name"])
    assert exc.value.code == 2


def test_config_init_creates_template(tmp_path, capsys):
    config_path = tmp_path / "config.toml"

    with patch("sparkstats.cli.get_default_config_path", return_value=config_path):
        exit_code = main(["config", "--init"])

    assert exit_code == 0
    content = config_path.read_text()
    assert "[reference]" in content
    assert "[paths]" in content
    assert "[build_rules]" in content
    assert "[analysis]" in content


def test_config_init_refuses_overwrite(tmp_path, capsys):
    config_path = tmp_path / "config.toml"
    config_path.write_text("# mine\n")

    assert main(["config", "--init", "--path", str(config_path)]) == 1
    assert "--force" in capsys.readouterr().err
    assert config_path.read_text() == "# mine\n"

    assert main(["config", "--init", "--path", str(config_path), "--force"]) == 0
    assert "[build_rules]" in config_path.read_text()


def test_config_validate_valid(tmp_path, capsys):
    config_path = tmp_path / "config.toml"
    config_path.write_text("""
[build_rules]
max_cost = 18
""")

    with patch("sparkstats.cli.get_default_config_path", return_value=config_path):
        exit_code = main(["config", "--validate"])

    assert exit_code == 0
    assert "valid" in capsys.readouterr().out.lower()


def test_config_validate_invalid_shows_error(tmp_path, capsys):
    config_path = tmp_path / "config.toml"
    config_path.write_text("""
[build_rules]
max_cost = 0
""")

    exit_code = main(["config", "--validate", "--path", str(config_path)])

    assert exit_code == 1
    assert "max_cost" in capsys.readouterr().err


def test_config_missing(tmp_path, capsys):
    with patch("sparkstats.cli.get_default_config_path", return_value=tmp_path / "none.toml"):
        exit_code = main(["config", "--validate"])

    assert exit_code == 1
    assert "not found" in capsys.readouterr().err.lower()


def test_verbose_enables_logging(workspace, capsys):
    with patch("sparkstats.cli.logging.basicConfig") as basic_config:
        main(["ingest", str(workspace["battles"]), "--json", "--verbose"])
    basic_config.assert_called_once()

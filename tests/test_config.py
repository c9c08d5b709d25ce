# tests/test_config.py
import pytest
from pathlib import Path

from sparkstats.builds import BuildRules
from sparkstats.config import (
    ConfigError,
    SparkStatsConfig,
    get_default_config_path,
    load_config,
)


def test_load_minimal_config(tmp_path):
    config_file = tmp_path / "config.toml"
    config_file.write_text("""
[paths]
battle_dir = "battles"
""")

    config = load_config(config_file)

    assert config.paths.battle_dir == tmp_path / "battles"
    assert config.paths.output_dir == tmp_path / "reports"
    assert config.build_rules.max_cost == 20
    assert config.analysis.top_builds == 3
    assert config.reference.characters_csv is None


def test_load_full_config(tmp_path):
    (tmp_path / "characters.csv").write_text("name,id\n")
    config_file = tmp_path / "config.toml"
    config_file.write_text("""
[reference]
characters_csv = "characters.csv"

[paths]
battle_dir = "/data/battles"
output_dir = "out"

[build_rules]
max_cost = 15
max_capsules = 5
min_cost = 10
banned_capsules = ["00_0_0001"]
required_capsules = ["00_0_0004"]

[analysis]
top_builds = 2
top_team_characters = 4
include_matches = true
min_pair_appearances = 2
""")

    config = load_config(config_file)
    config.validate()

    assert config.reference.characters_csv == tmp_path / "characters.csv"
    assert config.paths.battle_dir == Path("/data/battles")
    assert config.paths.output_dir == tmp_path / "out"
    assert config.analysis.include_matches is True
    assert config.analysis.min_pair_appearances == 2
    assert config.build_rules.to_rules() == BuildRules(
        max_cost=15,
        max_capsules=5,
        min_cost=10,
        banned_capsules=("00_0_0001",),
        required_capsules=("00_0_0004",),
    )


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "missing.toml")


def test_invalid_toml(tmp_path):
    config_file = tmp_path / "config.toml"
    config_file.write_text("[paths\nbattle_dir = ")

    with pytest.raises(ConfigError, match="Invalid TOML"):
        load_config(config_file)


def test_defaults_are_valid():
    SparkStatsConfig().validate()


@pytest.mark.parametrize(
    ("section", "field", "value", "message"),
    [
        ("build_rules", "max_cost", 0, "max_cost"),
        ("build_rules", "max_capsules", -1, "max_capsules"),
        ("build_rules", "min_cost", 25, "min_cost"),
        ("analysis", "top_builds", 0, "top_builds"),
        ("analysis", "top_team_characters", 0, "top_team_characters"),
        ("analysis", "min_pair_appearances", 0, "min_pair_appearances"),
    ],
)
def test_validate_rejects_bad_values(section, field, value, message):
    config = SparkStatsConfig()
    setattr(getattr(config, section), field, value)

    with pytest.raises(ConfigError, match=message):
        config.validate()


def test_validate_rejects_banned_and_required_capsule():
    config = SparkStatsConfig()
    config.build_rules.banned_capsules = ["00_0_0001"]
    config.build_rules.required_capsules = ["00_0_0001"]

    with pytest.raises(ConfigError, match="both banned and required"):
        config.validate()


def test_validate_rejects_missing_reference_file(tmp_path):
    config = SparkStatsConfig()
    config.reference.capsules_csv = tmp_path / "nope.csv"

    with pytest.raises(ConfigError) as exc_info:
        config.validate()
    assert "capsules_csv" in str(exc_info.value)
    assert "suggested_action" in exc_info.value.details


def test_default_config_path():
    path = get_default_config_path()
    assert path.name == "config.toml"
    assert path.parent.name == ".sparkstats"

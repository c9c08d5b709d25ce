# src/sparkstats/config.py
"""Configuration management for sparkstats."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import tomllib

from .builds import BuildRules
from .errors import SparkStatsError


class ConfigError(SparkStatsError):
    """Configuration error."""

    def __init__(self, message: str):
        super().__init__(
            message,
            details={"suggested_action": "Fix the value in your config.toml and retry"},
        )


@dataclass
class ReferenceConfig:
    characters_csv: Path | None = None
    capsules_csv: Path | None = None
    capsule_metadata: Path | None = None


@dataclass
class PathsConfig:
    battle_dir: Path = field(default_factory=lambda: Path("BR_Data"))
    output_dir: Path = field(default_factory=lambda: Path("reports"))


@dataclass
class BuildRulesConfig:
    max_cost: int = 20
    max_capsules: int = 7
    min_cost: int | None = None
    banned_capsules: list[str] = field(default_factory=list)
    required_capsules: list[str] = field(default_factory=list)

    def to_rules(self) -> BuildRules:
        return BuildRules(
            max_cost=self.max_cost,
            max_capsules=self.max_capsules,
            min_cost=self.min_cost,
            banned_capsules=tuple(self.banned_capsules),
            required_capsules=tuple(self.required_capsules),
        )


@dataclass
class AnalysisConfig:
    top_builds: int = 3
    top_team_characters: int = 5
    include_matches: bool = False
    min_pair_appearances: int = 3


@dataclass
class SparkStatsConfig:
    reference: ReferenceConfig = field(default_factory=ReferenceConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    build_rules: BuildRulesConfig = field(default_factory=BuildRulesConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)

    def validate(self) -> None:
        """Validate configuration, raising ConfigError if invalid."""
        rules = self.build_rules
        if rules.max_cost <= 0:
            raise ConfigError(f"Invalid max_cost {rules.max_cost}. Must be positive")
        if rules.max_capsules <= 0:
            raise ConfigError(f"Invalid max_capsules {rules.max_capsules}. Must be positive")
        if rules.min_cost is not None and not 0 <= rules.min_cost <= rules.max_cost:
            raise ConfigError(
                f"Invalid min_cost {rules.min_cost}. Must be between 0 and max_cost "
                f"({rules.max_cost})"
            )

        overlap = set(rules.banned_capsules) & set(rules.required_capsules)
        if overlap:
            raise ConfigError(
                "Capsule(s) cannot be both banned and required: "
                f"{', '.join(sorted(overlap))}"
            )

        if self.analysis.top_builds < 1:
            raise ConfigError(f"Invalid top_builds {self.analysis.top_builds}. Must be >= 1")
        if self.analysis.top_team_characters < 1:
            raise ConfigError(
                f"Invalid top_team_characters {self.analysis.top_team_characters}. "
                "Must be >= 1"
            )
        if self.analysis.min_pair_appearances < 1:
            raise ConfigError(
                f"Invalid min_pair_appearances {self.analysis.min_pair_appearances}. "
                "Must be >= 1"
            )

        for name in ("characters_csv", "capsules_csv", "capsule_metadata"):
            path = getattr(self.reference, name)
            if path is not None and not path.exists():
                raise ConfigError(f"Reference file for {name} not found: {path}")


def _optional_path(value: str | None, base: Path) -> Path | None:
    if not value:
        return None
    path = Path(value).expanduser()
    return path if path.is_absolute() else base / path


def load_config(config_path: Path) -> SparkStatsConfig:
    """Load configuration from TOML file.

    Relative paths are resolved against the config file's directory.
    """
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    base = config_path.parent

    reference_data = data.get("reference", {})
    reference = ReferenceConfig(
        characters_csv=_optional_path(reference_data.get("characters_csv"), base),
        capsules_csv=_optional_path(reference_data.get("capsules_csv"), base),
        capsule_metadata=_optional_path(reference_data.get("capsule_metadata"), base),
    )

    paths_data = data.get("paths", {})
    paths = PathsConfig(
        battle_dir=_optional_path(paths_data.get("battle_dir", "BR_Data"), base),
        output_dir=_optional_path(paths_data.get("output_dir", "reports"), base),
    )

    rules_data = data.get("build_rules", {})
    build_rules = BuildRulesConfig(
        max_cost=rules_data.get("max_cost", 20),
        max_capsules=rules_data.get("max_capsules", 7),
        min_cost=rules_data.get("min_cost"),
        banned_capsules=rules_data.get("banned_capsules", []),
        required_capsules=rules_data.get("required_capsules", []),
    )

    analysis_data = data.get("analysis", {})
    analysis = AnalysisConfig(
        top_builds=analysis_data.get("top_builds", 3),
        top_team_characters=analysis_data.get("top_team_characters", 5),
        include_matches=analysis_data.get("include_matches", False),
        min_pair_appearances=analysis_data.get("min_pair_appearances", 3),
    )

    return SparkStatsConfig(
        reference=reference,
        paths=paths,
        build_rules=build_rules,
        analysis=analysis,
    )


def get_default_config_path() -> Path:
    """Get the default config file path."""
    return Path.home() / ".sparkstats" / "config.toml"

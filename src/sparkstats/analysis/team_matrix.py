"""Team performance matrix: character aggregates grouped under their team."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, fields
from typing import Iterable

from .characters import CharacterAggregate
from .scoring import StatAverages

NO_TEAM = "No Team"

# Averages weighted by match count at the team level
WEIGHTED_FIELDS = tuple(
    f.name
    for f in fields(StatAverages)
    if f.name.startswith("avg_")
    or f.name in ("dps", "health_retention", "combat_performance_score", "speed_impact_win_rate")
)


@dataclass
class TeamGroup:
    team_name: str
    characters: list[CharacterAggregate] = field(default_factory=list)
    total_matches: int = 0
    aggregates: dict[str, object] = field(default_factory=dict)


def weighted_average(characters: Iterable[CharacterAggregate], name: str) -> float:
    """Match-weighted mean of an averages field, ignoring missing values."""
    weighted_sum = 0.0
    total_weight = 0
    for character in characters:
        value = getattr(character.averages, name)
        weight = character.match_count
        if value is None or weight <= 0:
            continue
        weighted_sum += value * weight
        total_weight += weight
    return weighted_sum / total_weight if total_weight else 0.0


def _most_common_build(characters: list[CharacterAggregate]) -> str | None:
    labels = Counter()
    for character in characters:
        for build in character.builds:
            labels[build.label] += build.usage_count
    return labels.most_common(1)[0][0] if labels else None


def _combined_form_history(characters: list[CharacterAggregate]) -> str:
    seen: list[str] = []
    for character in characters:
        for name in character.form_history.split(", "):
            if name and name not in seen:
                seen.append(name)
    return ", ".join(seen)


def _team_aggregates(group: TeamGroup) -> dict[str, object]:
    characters = group.characters
    aggregates: dict[str, object] = {"match_count": group.total_matches}
    for name in WEIGHTED_FIELDS:
        aggregates[name] = weighted_average(characters, name)

    avg_taken = aggregates["avg_taken"]
    aggregates["efficiency"] = aggregates["avg_damage"] / avg_taken if avg_taken else 0.0
    aggregates["total_kills"] = sum(c.totals.total_kills for c in characters)
    aggregates["build_archetype"] = _most_common_build(characters)
    aggregates["has_multiple_forms"] = any(c.has_multiple_forms for c in characters)
    aggregates["form_history"] = _combined_form_history(characters)
    return aggregates


def process_team_groups(characters: Iterable[CharacterAggregate]) -> list[TeamGroup]:
    """Group characters by primary team, busiest teams first."""
    groups: dict[str, TeamGroup] = {}
    for character in characters:
        team_name = character.primary_team or NO_TEAM
        group = groups.setdefault(team_name, TeamGroup(team_name=team_name))
        group.characters.append(character)
        group.total_matches += character.match_count

    ordered = sorted(groups.values(), key=lambda g: g.total_matches, reverse=True)
    for group in ordered:
        if group.characters and group.total_matches:
            group.aggregates = _team_aggregates(group)
    return ordered

"""Analysis aggregator combining character, team and position results.

This module orchestrates the individual aggregators and provides the main
entry point for producing analysis sections that conform to the report
JSON schema.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Iterable

from ..builds import BUILD_RULES, BuildRules
from ..reference import ReferenceData
from ..types import BattleFile
from .characters import CharacterAggregate, aggregate_characters, get_aggregated_character_data
from .positions import PositionAggregate, aggregate_positions, get_position_based_data
from .records import collect_match_records
from .scoring import BuildSummary
from .synergy import (
    CapsulePerformance,
    PairSynergy,
    ScoredBuild,
    StrategyCapsule,
    calculate_ai_strategy_compatibility,
    calculate_capsule_performance,
    calculate_pair_synergies,
    enrich_pair_synergies,
    score_observed_builds,
)
from .team_matrix import TeamGroup, process_team_groups
from .teams import TeamAggregate, get_team_aggregated_data
from .totals import MatchRecord

__all__ = [
    "aggregate_analysis",
    "get_aggregated_character_data",
    "get_position_based_data",
    "get_team_aggregated_data",
    "capsule_synergy_section",
    "process_team_groups",
]


def aggregate_analysis(
    files: Iterable[BattleFile],
    reference: ReferenceData,
    *,
    rules: BuildRules = BUILD_RULES,
    top_builds: int = 3,
    top_team_characters: int = 5,
    include_matches: bool = False,
    min_pair_appearances: int = 3,
) -> dict[str, Any]:
    """Run every aggregator over a batch of battle files.

    Args:
        files: Loaded battle files; files with errors are skipped
        reference: Character and item lookup tables
        rules: Build rules for the per-match legality flag
        top_builds: Builds kept per character
        top_team_characters: Characters counted in team headline figures
        include_matches: Emit one row per character appearance
        min_pair_appearances: Appearances a capsule pair needs to be listed

    Returns:
        Dictionary with ``characters``, ``teams``, ``positions``,
        ``team_groups``, ``capsule_synergy`` and ``warnings`` sections.
    """
    files = list(files)
    warnings = []

    usable = [f for f in files if f.ok]
    if not usable:
        warnings.append("no_usable_battle_files")

    records = collect_match_records(usable, reference, rules)
    if usable and not records:
        warnings.append("no_character_records_found")
    if records and not any(r.stats.hits_tracked for r in records):
        warnings.append("hit_tracking_unavailable")

    characters = aggregate_characters(records, top_builds, reference.characters)
    teams = get_team_aggregated_data(
        usable, reference, top_characters=top_team_characters, top_builds=top_builds, rules=rules
    )
    if records and not teams:
        warnings.append("no_team_data_available")
    positions = aggregate_positions(records)
    if records and not any(r.stats.equipped_capsules for r in records):
        warnings.append("capsule_data_unavailable")

    return {
        "characters": [character_to_dict(c, include_matches) for c in characters],
        "teams": [team_to_dict(t, top_team_characters) for t in teams],
        "positions": [position_to_dict(p) for _, p in sorted(positions.items())],
        "team_groups": [team_group_to_dict(g) for g in process_team_groups(characters)],
        "capsule_synergy": capsule_synergy_section(
            records, reference, rules=rules, min_pair_appearances=min_pair_appearances
        ),
        "warnings": warnings,
    }


TOP_SYNERGY_PAIRS = 20
TOP_SCORED_BUILDS = 5


def capsule_synergy_section(
    records: Iterable[MatchRecord],
    reference: ReferenceData,
    *,
    rules: BuildRules = BUILD_RULES,
    min_pair_appearances: int = 3,
) -> dict[str, Any]:
    """Capsule performance, pair synergies, AI strategy fit and scored loadouts."""
    records = list(records)
    performance = calculate_capsule_performance(records)
    pairs = enrich_pair_synergies(calculate_pair_synergies(records), performance)
    compatibility = calculate_ai_strategy_compatibility(records)
    builds = score_observed_builds(
        records,
        performance,
        pairs,
        compatibility,
        available=reference.capsules.values(),
        rules=rules,
        limit=TOP_SCORED_BUILDS,
    )

    capsules = sorted(performance.values(), key=lambda c: (-c.composite_score, -c.appearances))
    listed_pairs = sorted(
        (p for p in pairs.values() if p.appearances >= min_pair_appearances),
        key=lambda p: -p.synergy_bonus,
    )
    return {
        "capsules": [capsule_performance_to_dict(c) for c in capsules],
        "pairs": [pair_synergy_to_dict(p) for p in listed_pairs[:TOP_SYNERGY_PAIRS]],
        "ai_strategies": {
            strategy: [
                strategy_capsule_to_dict(c)
                for c in sorted(entries.values(), key=lambda c: -c.composite_score)
            ]
            for strategy, entries in sorted(compatibility.items())
        },
        "builds": [scored_build_to_dict(b) for b in builds],
    }


# ============================================================================
# Serialization
# ============================================================================


def match_to_dict(record: MatchRecord) -> dict[str, Any]:
    stats = record.stats
    return {
        "file": record.file_name,
        "name": record.name,
        "won": record.won,
        "side": record.side.value if record.side else None,
        "position": stats.position,
        "team": record.team,
        "opponent": record.opponent,
        "damage_done": stats.damage_done,
        "damage_taken": stats.damage_taken,
        "battle_time": stats.battle_time,
        "hp_gauge_value": stats.hp_gauge_value,
        "hp_gauge_value_max": stats.hp_gauge_value_max,
        "kills": stats.kills,
        "s1_hit_rate": stats.s1_hit_rate,
        "s2_hit_rate": stats.s2_hit_rate,
        "ult_hit_rate": stats.ult_hit_rate,
        "build": stats.build_composition.label,
        "build_valid": stats.build_valid,
        "capsules": [c.name for c in stats.equipped_capsules],
        "ai_strategy": stats.ai_strategy,
        "form_history": stats.form_change_history,
    }


def build_to_dict(build: BuildSummary) -> dict[str, Any]:
    data = asdict(build)
    data["capsules"] = list(build.capsules)
    return data


def character_to_dict(character: CharacterAggregate, include_matches: bool = False) -> dict[str, Any]:
    data = {
        "name": character.name,
        "character_id": character.character_id,
        "match_count": character.totals.match_count,
        "active_match_count": character.totals.active_match_count,
        "wins": character.totals.wins,
        "losses": character.totals.losses,
        "teams": list(character.teams),
        "primary_team": character.primary_team,
        "totals": {
            "damage": character.totals.total_damage,
            "taken": character.totals.total_taken,
            "battle_time": character.totals.total_battle_time,
            "kills": character.totals.total_kills,
            "max_combo": character.totals.max_combo,
            "max_combo_damage": character.totals.max_combo_damage,
        },
        "averages": asdict(character.averages),
        "builds": [build_to_dict(b) for b in character.builds],
        "forms": [
            {
                "form_id": f.form_id,
                "name": f.name,
                "form_number": f.form_number,
                "appearances": f.appearances,
                "avg_damage": f.avg_damage,
                "dps": f.dps,
                "efficiency": f.efficiency,
            }
            for f in character.forms
        ],
        "form_history": character.form_history,
    }
    if include_matches:
        data["matches"] = [match_to_dict(r) for r in character.matches]
    return data


def team_to_dict(team: TeamAggregate, top_characters: int = 5) -> dict[str, Any]:
    return {
        "name": team.name,
        "matches": team.matches,
        "wins": team.wins,
        "losses": team.losses,
        "win_rate": team.win_rate,
        "avg_damage_per_match": team.avg_damage_per_match,
        "avg_damage_taken_per_match": team.avg_damage_taken_per_match,
        "damage_efficiency": team.damage_efficiency,
        "top5_combat_score": team.top5_combat_score,
        "top_characters": [c.name for c in team.characters[:top_characters]],
        "characters": [
            {
                "name": c.name,
                "match_count": c.match_count,
                "averages": asdict(c.averages),
                "builds": [build_to_dict(b) for b in c.builds],
            }
            for c in team.characters
        ],
        "opponents": {
            name: {
                "wins": record.wins,
                "losses": record.losses,
                "character_matchups": {
                    key: asdict(matchup) for key, matchup in record.character_matchups.items()
                },
            }
            for name, record in team.opponent_records.items()
        },
    }


def position_to_dict(position: PositionAggregate) -> dict[str, Any]:
    return {
        "position": int(position.position),
        "label": position.label,
        "characters": [
            {
                "name": row.name,
                "match_count": row.totals.match_count,
                "active_match_count": row.totals.active_match_count,
                "wins": row.totals.wins,
                "avg_damage": row.averages.avg_damage,
                "avg_taken": row.averages.avg_taken,
                "avg_health": row.averages.avg_health,
                "avg_battle_time": row.averages.avg_battle_time,
                "avg_special": row.averages.avg_special,
                "avg_ultimates": row.averages.avg_ultimates,
                "avg_skills": row.averages.avg_skills,
                "avg_kills": row.averages.avg_kills,
                "avg_sparking": row.averages.avg_sparking,
                "win_rate": row.averages.win_rate,
            }
            for row in position.characters
        ],
    }


def team_group_to_dict(group: TeamGroup) -> dict[str, Any]:
    return {
        "team_name": group.team_name,
        "total_matches": group.total_matches,
        "characters": [c.name for c in group.characters],
        "aggregates": group.aggregates,
    }


def capsule_performance_to_dict(capsule: CapsulePerformance) -> dict[str, Any]:
    data = asdict(capsule)
    for key in ("characters", "teams", "ai_strategies"):
        data[key] = list(data[key])
    return data


def pair_synergy_to_dict(pair: PairSynergy) -> dict[str, Any]:
    data = asdict(pair)
    data["characters"] = list(pair.characters)
    return data


def strategy_capsule_to_dict(capsule: StrategyCapsule) -> dict[str, Any]:
    return asdict(capsule)


def scored_build_to_dict(build: ScoredBuild) -> dict[str, Any]:
    score = asdict(build.score)
    score["total_score"] = build.score.total_score
    return {
        "capsules": [c.name for c in build.capsules],
        "capsule_ids": [c.id for c in build.capsules],
        "total_cost": build.total_cost,
        "usage_count": build.usage_count,
        "wins": build.wins,
        "valid": build.valid,
        "ai_strategy": build.ai_strategy,
        "score": score,
        "suggestions": [
            {
                "capsule": s.capsule.name,
                "capsule_id": s.capsule.id,
                "impact_score": s.impact_score,
                "synergy_count": s.synergy_count,
                "avg_synergy_bonus": s.avg_synergy_bonus,
                "new_total_cost": s.new_total_cost,
            }
            for s in build.suggestions
        ],
    }

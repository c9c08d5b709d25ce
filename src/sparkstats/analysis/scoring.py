"""Derived metrics and the combat performance score.

Combat performance score::

    base = (avg_damage / 100000) * 35
         + efficiency * 25
         + (dps / 1000) * 25
         + health_retention * 15
    score = base * experience_multiplier

The experience multiplier grows linearly from 1.0 at one match to 1.25 at
twelve matches and stays there.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Iterable, Sequence

from ..utils.durations import safe_ratio
from .totals import MatchRecord, StatTotals, fold_totals

DAMAGE_WEIGHT = 35
EFFICIENCY_WEIGHT = 25
DPS_WEIGHT = 25
HEALTH_WEIGHT = 15
DAMAGE_SCALE = 100_000
DPS_SCALE = 1000

MAX_EXPERIENCE_BONUS = 0.25
FULL_EXPERIENCE_MATCHES = 12

SCORE_TIE_TOLERANCE = 0.1
DAMAGE_TIE_TOLERANCE = 1000


def experience_multiplier(matches: int) -> float:
    """Linear bonus up to 1.25x, reached at twelve matches."""
    if matches <= 1:
        return 1.0
    step = MAX_EXPERIENCE_BONUS / (FULL_EXPERIENCE_MATCHES - 1)
    return min(1.0 + MAX_EXPERIENCE_BONUS, 1.0 + (matches - 1) * step)


def damage_efficiency(damage: float, taken: float) -> float:
    """Damage dealt per damage taken; raw damage when nothing was taken."""
    if taken > 0:
        return damage / taken
    return float(damage)


def performance_score(
    avg_damage: float,
    efficiency: float,
    dps: float,
    health_retention: float,
    matches: int,
) -> float:
    base = (
        (avg_damage / DAMAGE_SCALE) * DAMAGE_WEIGHT
        + efficiency * EFFICIENCY_WEIGHT
        + (dps / DPS_SCALE) * DPS_WEIGHT
        + health_retention * HEALTH_WEIGHT
    )
    return base * experience_multiplier(matches)


@dataclass(frozen=True)
class StatAverages:
    """Per-match averages and derived rates for one StatTotals."""

    avg_damage: float = 0.0
    avg_taken: float = 0.0
    avg_health: float = 0.0
    avg_hp_max: float = 0.0
    avg_battle_time: float = 0.0
    avg_kills: float = 0.0
    avg_special: float = 0.0
    avg_ultimates: float = 0.0
    avg_skills: float = 0.0
    avg_skill1: float = 0.0
    avg_skill2: float = 0.0
    avg_s1_blast: float = 0.0
    avg_s2_blast: float = 0.0
    avg_ult_blast: float = 0.0
    avg_tags: float = 0.0
    avg_sparking: float = 0.0
    avg_charges: float = 0.0
    avg_guards: float = 0.0
    avg_energy_blasts: float = 0.0
    avg_z_counters: float = 0.0
    avg_super_counters: float = 0.0
    avg_revenge_counters: float = 0.0
    avg_throws: float = 0.0
    avg_lightning_attacks: float = 0.0
    avg_vanishing_attacks: float = 0.0
    avg_dragon_homing: float = 0.0
    avg_speed_impacts: float = 0.0
    avg_sparking_combos: float = 0.0
    avg_dragon_dash_mileage: float = 0.0
    avg_capsule_cost: float = 0.0

    dps: float = 0.0
    efficiency: float = 0.0
    health_retention: float = 0.0
    win_rate: float = 0.0
    s1_hit_rate: float | None = None
    s2_hit_rate: float | None = None
    ult_hit_rate: float | None = None
    speed_impact_win_rate: float | None = None
    combat_performance_score: float = 0.0


def _optional_rate(part: float, whole: float) -> float | None:
    return part / whole * 100 if whole > 0 else None


def compute_averages(totals: StatTotals) -> StatAverages:
    """Derive averages, rates and the performance score from totals."""
    n = totals.divisor

    def avg(value: float) -> float:
        return safe_ratio(value, n)

    avg_damage = avg(totals.total_damage)
    efficiency = damage_efficiency(totals.total_damage, totals.total_taken)
    dps = safe_ratio(totals.total_damage, totals.total_battle_time)
    health_retention = safe_ratio(totals.total_health, totals.total_hp_max)

    return StatAverages(
        avg_damage=avg_damage,
        avg_taken=avg(totals.total_taken),
        avg_health=avg(totals.total_health),
        avg_hp_max=avg(totals.total_hp_max),
        avg_battle_time=avg(totals.total_battle_time),
        avg_kills=avg(totals.total_kills),
        avg_special=avg(totals.total_special),
        avg_ultimates=avg(totals.total_ultimates),
        avg_skills=avg(totals.total_skills),
        avg_skill1=avg(totals.total_skill1),
        avg_skill2=avg(totals.total_skill2),
        avg_s1_blast=avg(totals.total_s1_blast),
        avg_s2_blast=avg(totals.total_s2_blast),
        avg_ult_blast=avg(totals.total_ult_blast),
        avg_tags=avg(totals.total_tags),
        avg_sparking=avg(totals.total_sparking),
        avg_charges=avg(totals.total_charges),
        avg_guards=avg(totals.total_guards),
        avg_energy_blasts=avg(totals.total_energy_blasts),
        avg_z_counters=avg(totals.total_z_counters),
        avg_super_counters=avg(totals.total_super_counters),
        avg_revenge_counters=avg(totals.total_revenge_counters),
        avg_throws=avg(totals.total_throws),
        avg_lightning_attacks=avg(totals.total_lightning_attacks),
        avg_vanishing_attacks=avg(totals.total_vanishing_attacks),
        avg_dragon_homing=avg(totals.total_dragon_homing),
        avg_speed_impacts=avg(totals.total_speed_impacts),
        avg_sparking_combos=avg(totals.total_sparking_combos),
        avg_dragon_dash_mileage=avg(totals.total_dragon_dash_mileage),
        avg_capsule_cost=avg(totals.total_capsule_cost),
        dps=dps,
        efficiency=efficiency,
        health_retention=health_retention,
        win_rate=safe_ratio(totals.wins, totals.match_count) * 100,
        s1_hit_rate=_optional_rate(totals.total_s1_hits, totals.tracked_s1_blast),
        s2_hit_rate=_optional_rate(totals.total_s2_hits, totals.tracked_s2_blast),
        ult_hit_rate=_optional_rate(totals.total_ult_hits, totals.tracked_ult_blast),
        speed_impact_win_rate=_optional_rate(
            totals.total_speed_impact_wins, totals.total_speed_impacts
        ),
        combat_performance_score=performance_score(
            avg_damage, efficiency, dps, health_retention, n
        ),
    )


# ============================================================================
# Builds
# ============================================================================


@dataclass(frozen=True)
class BuildSummary:
    """How one build label performed across a character's matches."""

    label: str
    type: str
    usage_count: int
    wins: int
    win_rate: float
    avg_damage: float
    combat_performance_score: float
    capsules: tuple[str, ...] = ()
    ai_strategy: str | None = None


def summarize_builds(records: Sequence[MatchRecord], limit: int = 3) -> list[BuildSummary]:
    """Group records by build label and keep the most used builds.

    Builds are ordered by usage count, then by performance score.
    """
    groups: dict[str, list[MatchRecord]] = defaultdict(list)
    for record in records:
        groups[record.stats.build_composition.label].append(record)

    summaries = []
    for label, group in groups.items():
        totals = fold_totals(group)
        averages = compute_averages(totals)
        capsule_sets = Counter(
            tuple(c.name for c in r.stats.equipped_capsules) for r in group
        )
        strategies = Counter(r.stats.ai_strategy for r in group if r.stats.ai_strategy)
        summaries.append(
            BuildSummary(
                label=label,
                type=group[0].stats.build_composition.type,
                usage_count=totals.match_count,
                wins=totals.wins,
                win_rate=averages.win_rate,
                avg_damage=averages.avg_damage,
                combat_performance_score=averages.combat_performance_score,
                capsules=capsule_sets.most_common(1)[0][0],
                ai_strategy=strategies.most_common(1)[0][0] if strategies else None,
            )
        )

    summaries.sort(key=lambda b: (-b.usage_count, -b.combat_performance_score))
    return summaries[:limit]


# ============================================================================
# Ordering
# ============================================================================


def _compare_desc(a: float, b: float, tolerance: float) -> int:
    if abs(a - b) <= tolerance:
        return 0
    return -1 if a > b else 1


def _compare_characters(a, b) -> int:
    return (
        _compare_desc(
            a.averages.combat_performance_score,
            b.averages.combat_performance_score,
            SCORE_TIE_TOLERANCE,
        )
        or _compare_desc(a.averages.avg_damage, b.averages.avg_damage, DAMAGE_TIE_TOLERANCE)
        or _compare_desc(a.totals.match_count, b.totals.match_count, 0)
    )


def sort_by_performance(summaries: Iterable) -> list:
    """Order summaries by score, then average damage, then match count.

    Scores within 0.1 and average damage within 1000 count as ties and
    fall through to the next key.
    """
    return sorted(summaries, key=cmp_to_key(_compare_characters))

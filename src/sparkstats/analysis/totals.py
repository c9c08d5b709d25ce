"""Match records and the stat accumulator shared by every aggregator.

Aggregation is a fold: records are grouped by key, then each group is
reduced into a StatTotals starting from ``StatTotals()``. ``StatTotals.plus``
returns a new accumulator instead of mutating the old one.

A match is *active* when the character's recorded battle time is positive.
Damage, health and battle-time sums only include active matches, while
match counts and action counters always accumulate. Averages divide by the
active match count when there is one and by the raw match count otherwise;
``StatTotals.divisor`` is the only place that rule lives.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from functools import reduce
from typing import Iterable

from ..forms import FormStats
from ..stats import CharacterStats
from ..types import Side

# Totals that accumulate for every match: total field -> CharacterStats field
ALWAYS_SUMMED: dict[str, str] = {
    "total_kills": "kills",
    "total_special": "special_moves_used",
    "total_ultimates": "ultimates_used",
    "total_skills": "skills_used",
    "total_skill1": "skill1_count",
    "total_skill2": "skill2_count",
    "total_s1_blast": "s1_blast",
    "total_s2_blast": "s2_blast",
    "total_ult_blast": "ult_blast",
    "total_tags": "tags",
    "total_sparking": "sparking_count",
    "total_charges": "charge_count",
    "total_guards": "guard_count",
    "total_energy_blasts": "energy_blast_count",
    "total_z_counters": "z_counter_count",
    "total_super_counters": "super_counter_count",
    "total_revenge_counters": "revenge_counter_count",
    "total_throws": "throw_count",
    "total_lightning_attacks": "lightning_attack_count",
    "total_vanishing_attacks": "vanishing_attack_count",
    "total_dragon_homing": "dragon_homing_count",
    "total_speed_impacts": "speed_impact_count",
    "total_speed_impact_wins": "speed_impact_wins",
    "total_sparking_combos": "sparking_combo_count",
    "total_dragon_dash_mileage": "dragon_dash_mileage",
    "total_capsule_cost": "total_capsule_cost",
}

# Totals that only accumulate for active matches
ACTIVE_SUMMED: dict[str, str] = {
    "total_damage": "damage_done",
    "total_taken": "damage_taken",
    "total_health": "hp_gauge_value",
    "total_hp_max": "hp_gauge_value_max",
    "total_battle_time": "battle_time",
}

# Hit tracking: thrown and hit sums over matches where hits were recorded
TRACKED_HITS: dict[str, tuple[str, str]] = {
    "s1": ("s1_blast", "s1_hit_blast"),
    "s2": ("s2_blast", "s2_hit_blast"),
    "ult": ("ult_blast", "ult_hit_blast"),
}


@dataclass(frozen=True)
class MatchRecord:
    """One character's appearance in one battle."""

    file_name: str
    name: str
    stats: CharacterStats
    won: bool
    side: Side | None = None
    slot_index: int | None = None
    team: str | None = None
    opponent: str | None = None
    forms: tuple[FormStats, ...] = ()

    @property
    def is_active(self) -> bool:
        return self.stats.battle_time > 0


@dataclass(frozen=True)
class StatTotals:
    """Accumulated sums over a group of match records."""

    match_count: int = 0
    active_match_count: int = 0
    tracked_match_count: int = 0
    wins: int = 0
    losses: int = 0

    total_damage: float = 0
    total_taken: float = 0
    total_health: float = 0
    total_hp_max: float = 0
    total_battle_time: float = 0

    total_kills: float = 0
    total_special: float = 0
    total_ultimates: float = 0
    total_skills: float = 0
    total_skill1: float = 0
    total_skill2: float = 0
    total_s1_blast: float = 0
    total_s2_blast: float = 0
    total_ult_blast: float = 0
    total_tags: float = 0
    total_sparking: float = 0
    total_charges: float = 0
    total_guards: float = 0
    total_energy_blasts: float = 0
    total_z_counters: float = 0
    total_super_counters: float = 0
    total_revenge_counters: float = 0
    total_throws: float = 0
    total_lightning_attacks: float = 0
    total_vanishing_attacks: float = 0
    total_dragon_homing: float = 0
    total_speed_impacts: float = 0
    total_speed_impact_wins: float = 0
    total_sparking_combos: float = 0
    total_dragon_dash_mileage: float = 0
    total_capsule_cost: float = 0

    tracked_s1_blast: float = 0
    tracked_s2_blast: float = 0
    tracked_ult_blast: float = 0
    total_s1_hits: float = 0
    total_s2_hits: float = 0
    total_ult_hits: float = 0

    max_combo: float = 0
    max_combo_damage: float = 0

    @property
    def divisor(self) -> int:
        """Averaging denominator: active matches, else all matches."""
        return self.active_match_count or self.match_count

    def plus(self, record: MatchRecord) -> StatTotals:
        """Return a new accumulator with ``record`` folded in."""
        stats = record.stats
        active = stats.battle_time > 0
        changes: dict[str, float] = {
            "match_count": self.match_count + 1,
            "active_match_count": self.active_match_count + (1 if active else 0),
            "wins": self.wins + (1 if record.won else 0),
            "losses": self.losses + (0 if record.won else 1),
            "max_combo": max(self.max_combo, stats.max_combo_num),
            "max_combo_damage": max(self.max_combo_damage, stats.max_combo_damage),
        }

        for total, source in ALWAYS_SUMMED.items():
            changes[total] = getattr(self, total) + (getattr(stats, source) or 0)

        for total, source in ACTIVE_SUMMED.items():
            increment = (getattr(stats, source) or 0) if active else 0
            changes[total] = getattr(self, total) + increment

        if stats.hits_tracked:
            changes["tracked_match_count"] = self.tracked_match_count + 1
            for prefix, (thrown_field, hit_field) in TRACKED_HITS.items():
                thrown_total = f"tracked_{prefix}_blast"
                hit_total = f"total_{prefix}_hits"
                changes[thrown_total] = getattr(self, thrown_total) + getattr(stats, thrown_field)
                changes[hit_total] = getattr(self, hit_total) + (getattr(stats, hit_field) or 0)

        return replace(self, **changes)


def fold_totals(records: Iterable[MatchRecord]) -> StatTotals:
    """Reduce match records into a StatTotals."""
    return reduce(lambda totals, record: totals.plus(record), records, StatTotals())


def totals_as_dict(totals: StatTotals) -> dict[str, float]:
    data = {f.name: getattr(totals, f.name) for f in fields(totals)}
    data["divisor"] = totals.divisor
    return data

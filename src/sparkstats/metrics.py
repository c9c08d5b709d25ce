# src/sparkstats/metrics.py
"""Metric catalog - single source of truth for exported columns.

Every column written by the CSV export and shown by the viewer is defined
here. Character-table metrics read from a flattened character row; match
metrics read from a flattened per-appearance row.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal


class MetricDirection(Enum):
    """Direction for ranking comparisons."""
    HIGHER_BETTER = "higher"
    LOWER_BETTER = "lower"
    CONTEXT_DEPENDENT = "context"


MetricCategory = Literal[
    "identity", "combat", "survival", "special", "mechanics", "build", "forms"
]

MetricTable = Literal["character", "match"]


@dataclass(frozen=True)
class MetricDefinition:
    """Definition of an exported metric."""
    key: str
    display_name: str
    unit: str
    direction: MetricDirection
    category: MetricCategory
    description: str
    tables: tuple[MetricTable, ...] = ("character",)
    decimals: int | None = None


# ============================================================================
# METRIC CATALOG - Single Source of Truth
# ============================================================================

METRIC_CATALOG: dict[str, MetricDefinition] = {}

def _register(m: MetricDefinition) -> MetricDefinition:
    """Register a metric in the catalog."""
    METRIC_CATALOG[m.key] = m
    return m


_BOTH: tuple[MetricTable, ...] = ("character", "match")

# --- Identity ---
_register(MetricDefinition(
    key="name", display_name="Character", unit="text",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="identity",
    description="Original form name", tables=_BOTH
))
_register(MetricDefinition(
    key="file", display_name="File", unit="text",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="identity",
    description="Battle file the appearance came from", tables=("match",)
))
_register(MetricDefinition(
    key="team", display_name="Team", unit="text",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="identity",
    description="Team the character played for", tables=_BOTH
))
_register(MetricDefinition(
    key="opponent", display_name="Opponent", unit="text",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="identity",
    description="Opposing team", tables=("match",)
))
_register(MetricDefinition(
    key="position", display_name="Position", unit="text",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="identity",
    description="Lead, Middle or Anchor", tables=("match",)
))
_register(MetricDefinition(
    key="match_count", display_name="Matches", unit="count",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="identity",
    description="Appearances across all battles"
))
_register(MetricDefinition(
    key="won", display_name="Won", unit="bool",
    direction=MetricDirection.HIGHER_BETTER, category="identity",
    description="Whether the character's side won", tables=("match",)
))
_register(MetricDefinition(
    key="win_rate", display_name="Win Rate %", unit="percent",
    direction=MetricDirection.HIGHER_BETTER, category="identity",
    description="wins / matches * 100", decimals=1
))

# --- Combat ---
_register(MetricDefinition(
    key="combat_performance_score", display_name="Combat Score", unit="points",
    direction=MetricDirection.HIGHER_BETTER, category="combat",
    description="Weighted damage, efficiency, DPS and survival score", decimals=1
))
_register(MetricDefinition(
    key="avg_damage", display_name="Avg Damage", unit="damage",
    direction=MetricDirection.HIGHER_BETTER, category="combat",
    description="Damage dealt per active match", decimals=0
))
_register(MetricDefinition(
    key="damage_done", display_name="Damage Done", unit="damage",
    direction=MetricDirection.HIGHER_BETTER, category="combat",
    description="Damage dealt in the battle", tables=("match",)
))
_register(MetricDefinition(
    key="avg_taken", display_name="Avg Taken", unit="damage",
    direction=MetricDirection.LOWER_BETTER, category="combat",
    description="Damage taken per active match", decimals=0
))
_register(MetricDefinition(
    key="damage_taken", display_name="Damage Taken", unit="damage",
    direction=MetricDirection.LOWER_BETTER, category="combat",
    description="Damage taken in the battle", tables=("match",)
))
_register(MetricDefinition(
    key="efficiency", display_name="Dmg Efficiency", unit="ratio",
    direction=MetricDirection.HIGHER_BETTER, category="combat",
    description="Damage dealt / damage taken", decimals=2
))
_register(MetricDefinition(
    key="dps", display_name="DPS", unit="damage/s",
    direction=MetricDirection.HIGHER_BETTER, category="combat",
    description="Damage dealt / battle time", decimals=1
))
_register(MetricDefinition(
    key="avg_battle_time", display_name="Avg Battle Time", unit="seconds",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="combat",
    description="Seconds on the field per active match", decimals=1
))
_register(MetricDefinition(
    key="battle_time", display_name="Battle Time", unit="seconds",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="combat",
    description="Seconds on the field", tables=("match",), decimals=1
))
_register(MetricDefinition(
    key="avg_kills", display_name="Avg Kills", unit="count",
    direction=MetricDirection.HIGHER_BETTER, category="combat",
    description="Kills per match", decimals=2
))
_register(MetricDefinition(
    key="kills", display_name="Kills", unit="count",
    direction=MetricDirection.HIGHER_BETTER, category="combat",
    description="Kills in the battle", tables=("match",)
))

# --- Survival ---
_register(MetricDefinition(
    key="avg_health", display_name="Avg HP Remaining", unit="hp",
    direction=MetricDirection.HIGHER_BETTER, category="survival",
    description="HP left at the end of active matches", decimals=0
))
_register(MetricDefinition(
    key="hp_gauge_value", display_name="HP Remaining", unit="hp",
    direction=MetricDirection.HIGHER_BETTER, category="survival",
    description="HP left at the end of the battle", tables=("match",)
))
_register(MetricDefinition(
    key="health_retention", display_name="HP Retention", unit="ratio",
    direction=MetricDirection.HIGHER_BETTER, category="survival",
    description="Remaining HP / max HP", decimals=3
))
_register(MetricDefinition(
    key="avg_guards", display_name="Avg Guards", unit="count",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="survival",
    description="Guards per match", decimals=1
))
_register(MetricDefinition(
    key="avg_revenge_counters", display_name="Avg Revenge Counters", unit="count",
    direction=MetricDirection.HIGHER_BETTER, category="survival",
    description="Revenge counters per match", decimals=2
))
_register(MetricDefinition(
    key="avg_super_counters", display_name="Avg Super Counters", unit="count",
    direction=MetricDirection.HIGHER_BETTER, category="survival",
    description="Super counters per match", decimals=2
))
_register(MetricDefinition(
    key="avg_z_counters", display_name="Avg Z-Counters", unit="count",
    direction=MetricDirection.HIGHER_BETTER, category="survival",
    description="Z-counters per match", decimals=2
))

# --- Special abilities ---
_register(MetricDefinition(
    key="avg_special", display_name="Avg Specials", unit="count",
    direction=MetricDirection.HIGHER_BETTER, category="special",
    description="Special moves used per match", decimals=2
))
_register(MetricDefinition(
    key="avg_ultimates", display_name="Avg Ultimates", unit="count",
    direction=MetricDirection.HIGHER_BETTER, category="special",
    description="Ultimates used per match", decimals=2
))
_register(MetricDefinition(
    key="avg_skills", display_name="Avg Skills", unit="count",
    direction=MetricDirection.HIGHER_BETTER, category="special",
    description="Skills used per match", decimals=2
))
_register(MetricDefinition(
    key="s1_hit_rate", display_name="S1 Hit %", unit="percent",
    direction=MetricDirection.HIGHER_BETTER, category="special",
    description="Super 1 blasts that hit, over matches with hit tracking",
    tables=_BOTH, decimals=1
))
_register(MetricDefinition(
    key="s2_hit_rate", display_name="S2 Hit %", unit="percent",
    direction=MetricDirection.HIGHER_BETTER, category="special",
    description="Super 2 blasts that hit, over matches with hit tracking",
    tables=_BOTH, decimals=1
))
_register(MetricDefinition(
    key="ult_hit_rate", display_name="Ult Hit %", unit="percent",
    direction=MetricDirection.HIGHER_BETTER, category="special",
    description="Ultimate blasts that hit, over matches with hit tracking",
    tables=_BOTH, decimals=1
))
_register(MetricDefinition(
    key="avg_energy_blasts", display_name="Avg Ki Blasts", unit="count",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="special",
    description="Energy blasts per match", decimals=1
))
_register(MetricDefinition(
    key="avg_charges", display_name="Avg Charges", unit="count",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="special",
    description="Ki charges per match", decimals=1
))
_register(MetricDefinition(
    key="avg_sparking", display_name="Avg Sparking", unit="count",
    direction=MetricDirection.HIGHER_BETTER, category="special",
    description="Sparking mode activations per match", decimals=2
))
_register(MetricDefinition(
    key="avg_tags", display_name="Avg Tags", unit="count",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="special",
    description="Tag-outs per match", decimals=2
))

# --- Mechanics ---
_register(MetricDefinition(
    key="max_combo", display_name="Max Combo", unit="hits",
    direction=MetricDirection.HIGHER_BETTER, category="mechanics",
    description="Longest combo across all matches"
))
_register(MetricDefinition(
    key="max_combo_damage", display_name="Max Combo Damage", unit="damage",
    direction=MetricDirection.HIGHER_BETTER, category="mechanics",
    description="Highest combo damage across all matches"
))
_register(MetricDefinition(
    key="avg_throws", display_name="Avg Throws", unit="count",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="mechanics",
    description="Throws per match", decimals=2
))
_register(MetricDefinition(
    key="avg_vanishing_attacks", display_name="Avg Vanishing Attacks", unit="count",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="mechanics",
    description="Vanishing attacks per match", decimals=2
))
_register(MetricDefinition(
    key="avg_speed_impacts", display_name="Avg Speed Impacts", unit="count",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="mechanics",
    description="Speed impacts per match", decimals=2
))
_register(MetricDefinition(
    key="speed_impact_win_rate", display_name="Speed Impact Win %", unit="percent",
    direction=MetricDirection.HIGHER_BETTER, category="mechanics",
    description="Speed impacts won / speed impacts", decimals=1
))
_register(MetricDefinition(
    key="avg_dragon_dash_mileage", display_name="Avg Dragon Dash Mileage", unit="distance",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="mechanics",
    description="Dragon dash distance per match", decimals=1
))

# --- Build ---
_register(MetricDefinition(
    key="build", display_name="Build", unit="text",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="build",
    description="Most used build label", tables=_BOTH
))
_register(MetricDefinition(
    key="avg_capsule_cost", display_name="Avg Capsule Cost", unit="cost",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="build",
    description="Equipped capsule cost per match", decimals=1
))
_register(MetricDefinition(
    key="capsules", display_name="Capsules", unit="text",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="build",
    description="Equipped capsules", tables=("match",)
))
_register(MetricDefinition(
    key="ai_strategy", display_name="AI Strategy", unit="text",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="build",
    description="Equipped AI strategy", tables=("match",)
))
_register(MetricDefinition(
    key="build_valid", display_name="Legal Build", unit="bool",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="build",
    description="Whether the build satisfies the build rules", tables=("match",)
))

# --- Forms ---
_register(MetricDefinition(
    key="form_history", display_name="Forms", unit="text",
    direction=MetricDirection.CONTEXT_DEPENDENT, category="forms",
    description="Forms the character took, in order", tables=_BOTH
))


# ============================================================================
# Helper Functions
# ============================================================================

def get_metric(key: str) -> MetricDefinition | None:
    """Get a metric definition by key."""
    return METRIC_CATALOG.get(key)


def get_table_metrics(table: MetricTable) -> list[MetricDefinition]:
    """Metrics exported in a table, in registration order."""
    return [m for m in METRIC_CATALOG.values() if table in m.tables]


def get_rankable_metrics() -> dict[str, MetricDefinition]:
    """Metrics with a meaningful better/worse direction."""
    return {
        k: v for k, v in METRIC_CATALOG.items()
        if v.direction != MetricDirection.CONTEXT_DEPENDENT
    }

"""Capsule performance, pair synergy and build scoring.

Everything here reads the same match records as the character aggregator
and only looks at active appearances (battle time above zero) that had
capsules equipped.

Capsule composite score::

    composite = clamp(50 + (win_rate - 50) + (efficiency - 1) * 20, 0, 100)

Pair synergy bonus compares a pair with the average of its two capsules::

    bonus = (pair_win_rate - expected_win_rate) * 0.4
          + (pair_avg_damage - expected_avg_damage) / 100 * 0.6

Each capsule also gets an archetype derived from its build type: damage
categories are aggressive, Defense is defensive, Skill and Ki Efficiency
are technical, everything else is utility.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, replace
from itertools import combinations
from typing import Iterable, Sequence

from ..builds import BUILD_RULES, BuildRules, classify_build_type, validate_build
from ..reference import Capsule
from ..utils.durations import safe_ratio
from .scoring import damage_efficiency, performance_score
from .totals import MatchRecord, fold_totals

AGGRESSIVE = "aggressive"
DEFENSIVE = "defensive"
TECHNICAL = "technical"
UTILITY = "utility"
ARCHETYPES: tuple[str, ...] = (AGGRESSIVE, DEFENSIVE, TECHNICAL, UTILITY)

BUILD_TYPE_ARCHETYPES: dict[str, str] = {
    "Melee": AGGRESSIVE,
    "Blast": AGGRESSIVE,
    "Ki Blast": AGGRESSIVE,
    "Defense": DEFENSIVE,
    "Skill": TECHNICAL,
    "Ki Efficiency": TECHNICAL,
    "Utility": UTILITY,
}

COMPLEMENTARY_ARCHETYPES = (
    frozenset((AGGRESSIVE, TECHNICAL)),
    frozenset((DEFENSIVE, TECHNICAL)),
)

SYNERGY_MULTIPLICATIVE = "multiplicative"
SYNERGY_COMPLEMENTARY = "complementary"
SYNERGY_ANTI = "anti-synergy"
SYNERGY_NEUTRAL = "neutral"

BASE_COMPOSITE = 50.0
EFFICIENCY_COMPOSITE_WEIGHT = 20.0
WIN_RATE_BONUS_WEIGHT = 0.4
DAMAGE_BONUS_WEIGHT = 0.6
DAMAGE_BONUS_SCALE = 100.0

# Build score weights
PERFORMANCE_WEIGHT = 0.4
SYNERGY_WEIGHT = 0.3
STRATEGY_WEIGHT = 0.15
ARCHETYPE_WEIGHT = 0.1
COST_WEIGHT = 0.05
SUGGESTION_SYNERGY_WEIGHT = 0.5


def capsule_archetype(capsule: Capsule) -> str:
    return BUILD_TYPE_ARCHETYPES.get(classify_build_type(capsule.build_type) or "", UTILITY)


def pair_key(first_id: str, second_id: str) -> str:
    """Order-independent key for a capsule pair."""
    return "_".join(sorted((first_id, second_id)))


def _reduces_defense(effect: str) -> bool:
    return "reduces" in effect and ("defense" in effect or "armor" in effect)


def _heals(effect: str) -> bool:
    return any(word in effect for word in ("health", "recovery", "hp"))


def detect_synergy_type(first: Capsule, second: Capsule) -> str:
    """Classify how two capsules interact.

    Same non-utility archetype stacks (multiplicative). Aggressive or
    defensive with technical is complementary. Two defense-reducing effects
    with no healing on the second capsule are an anti-synergy.
    """
    first_arch = capsule_archetype(first)
    second_arch = capsule_archetype(second)
    if first_arch == second_arch and first_arch != UTILITY:
        return SYNERGY_MULTIPLICATIVE
    if frozenset((first_arch, second_arch)) in COMPLEMENTARY_ARCHETYPES:
        return SYNERGY_COMPLEMENTARY

    first_effect = first.effect.lower()
    second_effect = second.effect.lower()
    if (
        _reduces_defense(first_effect)
        and _reduces_defense(second_effect)
        and not _heals(second_effect)
    ):
        return SYNERGY_ANTI
    return SYNERGY_NEUTRAL


def composite_score(win_rate: float, efficiency: float) -> float:
    score = BASE_COMPOSITE + (win_rate - 50) + (efficiency - 1) * EFFICIENCY_COMPOSITE_WEIGHT
    return max(0.0, min(100.0, score))


def match_performance_score(record: MatchRecord) -> float:
    """Single-match combat score, no experience bonus."""
    stats = record.stats
    return performance_score(
        avg_damage=stats.damage_done,
        efficiency=damage_efficiency(stats.damage_done, stats.damage_taken),
        dps=safe_ratio(stats.damage_done, stats.battle_time),
        health_retention=safe_ratio(stats.hp_gauge_value, stats.hp_gauge_value_max),
        matches=1,
    )


def _unique(values: Iterable[str | None]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(v for v in values if v))


def _capsule_records(records: Iterable[MatchRecord]) -> list[MatchRecord]:
    return [r for r in records if r.is_active and r.stats.equipped_capsules]


# ============================================================================
# Individual capsules
# ============================================================================


@dataclass(frozen=True)
class CapsulePerformance:
    id: str
    name: str
    cost: int
    archetype: str
    appearances: int
    wins: int
    win_rate: float
    avg_damage_dealt: float
    avg_damage_taken: float
    damage_efficiency: float
    composite_score: float
    characters: tuple[str, ...] = ()
    teams: tuple[str, ...] = ()
    ai_strategies: tuple[str, ...] = ()


def calculate_capsule_performance(
    records: Iterable[MatchRecord],
) -> dict[str, CapsulePerformance]:
    """Win rate, damage and composite score for every equipped capsule.

    Efficiency is total damage over total damage taken for the capsule's
    appearances, and 0 when nothing was taken.
    """
    groups: dict[str, list[MatchRecord]] = defaultdict(list)
    capsules: dict[str, Capsule] = {}
    for record in _capsule_records(records):
        for capsule in record.stats.equipped_capsules:
            groups[capsule.id].append(record)
            capsules.setdefault(capsule.id, capsule)

    performance = {}
    for capsule_id, group in groups.items():
        capsule = capsules[capsule_id]
        totals = fold_totals(group)
        win_rate = safe_ratio(totals.wins, totals.match_count) * 100
        efficiency = safe_ratio(totals.total_damage, totals.total_taken)
        performance[capsule_id] = CapsulePerformance(
            id=capsule_id,
            name=capsule.name,
            cost=capsule.cost,
            archetype=capsule_archetype(capsule),
            appearances=totals.match_count,
            wins=totals.wins,
            win_rate=win_rate,
            avg_damage_dealt=safe_ratio(totals.total_damage, totals.match_count),
            avg_damage_taken=safe_ratio(totals.total_taken, totals.match_count),
            damage_efficiency=efficiency,
            composite_score=composite_score(win_rate, efficiency),
            characters=_unique(r.name for r in group),
            teams=_unique(r.team for r in group),
            ai_strategies=_unique(r.stats.ai_strategy for r in group),
        )
    return performance


# ============================================================================
# Capsule pairs
# ============================================================================


@dataclass(frozen=True)
class ExpectedPerformance:
    win_rate: float
    damage: float
    composite: float


@dataclass(frozen=True)
class PairSynergy:
    capsule1_id: str
    capsule2_id: str
    capsule1_name: str
    capsule2_name: str
    combined_cost: int
    synergy_type: str
    appearances: int
    wins: int
    pair_win_rate: float
    avg_damage_dealt: float
    avg_damage_taken: float
    damage_efficiency: float
    characters: tuple[str, ...] = ()
    synergy_bonus: float = 0.0
    expected: ExpectedPerformance | None = None


def calculate_pair_synergies(records: Iterable[MatchRecord]) -> dict[str, PairSynergy]:
    """Stats for every pair of capsules equipped together, keyed by pair_key.

    The synergy bonus is left at 0; enrich_pair_synergies fills it in.
    """
    groups: dict[str, list[MatchRecord]] = defaultdict(list)
    pairs: dict[str, tuple[Capsule, Capsule]] = {}
    for record in _capsule_records(records):
        for first, second in combinations(record.stats.equipped_capsules, 2):
            key = pair_key(first.id, second.id)
            groups[key].append(record)
            pairs.setdefault(key, (first, second))

    synergies = {}
    for key, group in groups.items():
        first, second = pairs[key]
        totals = fold_totals(group)
        synergies[key] = PairSynergy(
            capsule1_id=first.id,
            capsule2_id=second.id,
            capsule1_name=first.name,
            capsule2_name=second.name,
            combined_cost=first.cost + second.cost,
            synergy_type=detect_synergy_type(first, second),
            appearances=totals.match_count,
            wins=totals.wins,
            pair_win_rate=safe_ratio(totals.wins, totals.match_count) * 100,
            avg_damage_dealt=safe_ratio(totals.total_damage, totals.match_count),
            avg_damage_taken=safe_ratio(totals.total_taken, totals.match_count),
            damage_efficiency=safe_ratio(totals.total_damage, totals.total_taken),
            characters=_unique(r.name for r in group),
        )
    return synergies


def enrich_pair_synergies(
    pairs: dict[str, PairSynergy], performance: dict[str, CapsulePerformance]
) -> dict[str, PairSynergy]:
    """Compare each pair with the average of its capsules' own results."""
    enriched = {}
    for key, pair in pairs.items():
        first = performance.get(pair.capsule1_id)
        second = performance.get(pair.capsule2_id)
        if first is None or second is None:
            enriched[key] = replace(pair, synergy_bonus=0.0)
            continue

        expected = ExpectedPerformance(
            win_rate=(first.win_rate + second.win_rate) / 2,
            damage=(first.avg_damage_dealt + second.avg_damage_dealt) / 2,
            composite=(first.composite_score + second.composite_score) / 2,
        )
        bonus = (pair.pair_win_rate - expected.win_rate) * WIN_RATE_BONUS_WEIGHT + (
            (pair.avg_damage_dealt - expected.damage) / DAMAGE_BONUS_SCALE
        ) * DAMAGE_BONUS_WEIGHT
        enriched[key] = replace(pair, synergy_bonus=bonus, expected=expected)
    return enriched


# ============================================================================
# AI strategy compatibility
# ============================================================================


@dataclass(frozen=True)
class StrategyCapsule:
    id: str
    name: str
    appearances: int
    wins: int
    win_rate: float
    avg_damage_dealt: float
    composite_score: float


def calculate_ai_strategy_compatibility(
    records: Iterable[MatchRecord],
) -> dict[str, dict[str, StrategyCapsule]]:
    """Per AI strategy, how each capsule performed alongside it.

    ``composite_score`` here is the mean single-match combat score, rounded
    to one decimal; average damage is rounded to a whole number.
    """
    groups: dict[tuple[str, str], list[MatchRecord]] = defaultdict(list)
    names: dict[str, str] = {}
    for record in _capsule_records(records):
        strategy = record.stats.ai_strategy
        if not strategy:
            continue
        for capsule in record.stats.equipped_capsules:
            groups[(strategy, capsule.id)].append(record)
            names.setdefault(capsule.id, capsule.name)

    compatibility: dict[str, dict[str, StrategyCapsule]] = defaultdict(dict)
    for (strategy, capsule_id), group in groups.items():
        totals = fold_totals(group)
        scores = [match_performance_score(r) for r in group]
        compatibility[strategy][capsule_id] = StrategyCapsule(
            id=capsule_id,
            name=names[capsule_id],
            appearances=totals.match_count,
            wins=totals.wins,
            win_rate=safe_ratio(totals.wins, totals.match_count) * 100,
            avg_damage_dealt=round(safe_ratio(totals.total_damage, totals.match_count)),
            composite_score=round(sum(scores) / len(scores), 1),
        )
    return dict(compatibility)


# ============================================================================
# Build scoring and suggestions
# ============================================================================


@dataclass(frozen=True)
class BuildScore:
    individual_performance: float = 0.0
    synergy_bonus: float = 0.0
    ai_strategy_match: float = 0.0
    archetype_alignment: float = 0.0
    cost_efficiency: float = 0.0

    @property
    def total_score(self) -> float:
        return (
            self.individual_performance
            + self.synergy_bonus
            + self.ai_strategy_match
            + self.archetype_alignment
            + self.cost_efficiency
        )


def archetype_counts(capsules: Iterable[Capsule]) -> dict[str, int]:
    counts = {name: 0 for name in ARCHETYPES}
    for capsule in capsules:
        counts[capsule_archetype(capsule)] += 1
    return counts


def dominant_archetype(counts: dict[str, int]) -> str:
    """Most common non-utility archetype; earlier archetypes win ties."""
    return max((a for a in ARCHETYPES if a != UTILITY), key=lambda a: counts[a])


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def score_build(
    capsules: Sequence[Capsule],
    performance: dict[str, CapsulePerformance],
    pairs: dict[str, PairSynergy],
    compatibility: dict[str, dict[str, StrategyCapsule]] | None = None,
    target_ai_strategy: str | None = None,
    target_archetype: str | None = None,
    rules: BuildRules = BUILD_RULES,
) -> BuildScore:
    """Weighted score of a capsule set.

    Individual performance is 40% of the mean composite score, synergy is
    30% of the mean pair bonus (never below 0), strategy match is 15% of
    the mean strategy composite for ``target_ai_strategy``, archetype
    alignment is 10% of either a target match (100 or 0) or the dominant
    archetype's share, and cost efficiency is 5% of cost used out of the
    rules' maximum.
    """
    capsules = list(capsules)
    if not capsules:
        return BuildScore()

    composites = [performance[c.id].composite_score for c in capsules if c.id in performance]
    bonuses = [
        pairs[key].synergy_bonus
        for key in (pair_key(a.id, b.id) for a, b in combinations(capsules, 2))
        if key in pairs
    ]

    strategy_match = 0.0
    strategy_capsules = (compatibility or {}).get(target_ai_strategy or "")
    if strategy_capsules:
        strategy_scores = [
            strategy_capsules[c.id].composite_score for c in capsules if c.id in strategy_capsules
        ]
        strategy_match = _mean(strategy_scores) * STRATEGY_WEIGHT

    counts = archetype_counts(capsules)
    dominant = dominant_archetype(counts)
    if target_archetype:
        alignment = 100.0 if dominant == target_archetype.lower() else 0.0
    else:
        alignment = counts[dominant] / len(capsules) * 100

    total_cost = sum(c.cost for c in capsules)
    return BuildScore(
        individual_performance=_mean(composites) * PERFORMANCE_WEIGHT,
        synergy_bonus=max(0.0, _mean(bonuses)) * SYNERGY_WEIGHT,
        ai_strategy_match=strategy_match,
        archetype_alignment=alignment * ARCHETYPE_WEIGHT,
        cost_efficiency=total_cost / rules.max_cost * 100 * COST_WEIGHT,
    )


@dataclass(frozen=True)
class BuildSuggestion:
    capsule: Capsule
    impact_score: float
    synergy_count: int
    avg_synergy_bonus: float
    new_total_cost: int


def suggest_build_improvements(
    current: Sequence[Capsule],
    available: Iterable[Capsule],
    pairs: dict[str, PairSynergy],
    performance: dict[str, CapsulePerformance],
    rules: BuildRules = BUILD_RULES,
) -> list[BuildSuggestion]:
    """Capsules that could be added to ``current`` without breaking the rules.

    Impact is the capsule's composite score plus half its mean synergy bonus
    with the capsules already in the build. Highest impact first.
    """
    current = list(current)
    if len(current) >= rules.max_capsules:
        return []

    current_cost = sum(c.cost for c in current)
    current_ids = {c.id for c in current}
    suggestions = []
    for capsule in available:
        if capsule.id in current_ids or capsule.id in rules.banned_capsules:
            continue
        if current_cost + capsule.cost > rules.max_cost:
            continue

        bonuses = [
            pairs[key].synergy_bonus
            for key in (pair_key(capsule.id, existing.id) for existing in current)
            if key in pairs
        ]
        avg_bonus = _mean(bonuses)
        base = performance[capsule.id].composite_score if capsule.id in performance else 0.0
        suggestions.append(
            BuildSuggestion(
                capsule=capsule,
                impact_score=base + avg_bonus * SUGGESTION_SYNERGY_WEIGHT,
                synergy_count=len(bonuses),
                avg_synergy_bonus=avg_bonus,
                new_total_cost=current_cost + capsule.cost,
            )
        )

    suggestions.sort(key=lambda s: -s.impact_score)
    return suggestions


# ============================================================================
# Observed loadouts
# ============================================================================


@dataclass(frozen=True)
class ScoredBuild:
    capsules: tuple[Capsule, ...]
    usage_count: int
    wins: int
    valid: bool
    score: BuildScore
    ai_strategy: str | None = None
    suggestions: tuple[BuildSuggestion, ...] = ()

    @property
    def total_cost(self) -> int:
        return sum(c.cost for c in self.capsules)


def score_observed_builds(
    records: Iterable[MatchRecord],
    performance: dict[str, CapsulePerformance],
    pairs: dict[str, PairSynergy],
    compatibility: dict[str, dict[str, StrategyCapsule]],
    available: Iterable[Capsule] = (),
    rules: BuildRules = BUILD_RULES,
    limit: int = 5,
    suggestions: int = 3,
) -> list[ScoredBuild]:
    """Score every distinct capsule set that was used, best first.

    Each loadout is scored against its most common AI strategy, and gets up
    to ``suggestions`` additions from ``available``.
    """
    groups: dict[tuple[str, ...], list[MatchRecord]] = defaultdict(list)
    for record in _capsule_records(records):
        key = tuple(sorted(c.id for c in record.stats.equipped_capsules))
        groups[key].append(record)

    available = list(available)
    scored = []
    for group in groups.values():
        capsules = group[0].stats.equipped_capsules
        strategies = Counter(r.stats.ai_strategy for r in group if r.stats.ai_strategy)
        strategy = strategies.most_common(1)[0][0] if strategies else None
        score = score_build(
            capsules, performance, pairs, compatibility, target_ai_strategy=strategy, rules=rules
        )
        additions = suggest_build_improvements(capsules, available, pairs, performance, rules)
        scored.append(
            ScoredBuild(
                capsules=tuple(capsules),
                usage_count=len(group),
                wins=sum(1 for r in group if r.won),
                valid=validate_build(capsules, rules).valid,
                score=score,
                ai_strategy=strategy,
                suggestions=tuple(additions[:suggestions]),
            )
        )

    scored.sort(key=lambda b: (-b.score.total_score, -b.usage_count))
    return scored[:limit]

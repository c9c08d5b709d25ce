"""Tests for capsule performance, pair synergy and build scoring."""

import pytest

from fixtures import CAPSULES
from sparkstats.analysis.synergy import (
    BuildScore,
    calculate_ai_strategy_compatibility,
    calculate_capsule_performance,
    calculate_pair_synergies,
    capsule_archetype,
    detect_synergy_type,
    enrich_pair_synergies,
    pair_key,
    score_build,
    score_observed_builds,
    suggest_build_improvements,
)
from sparkstats.analysis.totals import MatchRecord
from sparkstats.builds import BuildRules
from sparkstats.reference import Capsule
from sparkstats.stats import CharacterStats

MELEE_UP, RUSH_MASTER, BLAST_BOOST, IRON_WALL, KI_SAVER = CAPSULES
MELEE_RUSH = pair_key(MELEE_UP.id, RUSH_MASTER.id)
MELEE_BLAST = pair_key(MELEE_UP.id, BLAST_BOOST.id)


def _record(name, capsules, won, damage, taken, battle_time=100.0, ai_strategy=None, team="Red"):
    return MatchRecord(
        file_name=f"{name}.json",
        name=name,
        stats=CharacterStats(
            name=name,
            damage_done=damage,
            damage_taken=taken,
            battle_time=battle_time,
            hp_gauge_value=20000,
            hp_gauge_value_max=40000,
            equipped_capsules=tuple(capsules),
            ai_strategy=ai_strategy,
        ),
        won=won,
        team=team,
    )


@pytest.fixture
def records():
    return [
        _record("Goku", (MELEE_UP, RUSH_MASTER), True, 60000, 30000, ai_strategy="Aggressive AI"),
        _record("Vegeta", (MELEE_UP, BLAST_BOOST), False, 20000, 40000, team="Blue"),
        # benched: no battle time
        _record("Piccolo", (MELEE_UP,), True, 90000, 1000, battle_time=0.0),
        _record("Frieza", (), True, 50000, 10000),
    ]


@pytest.fixture
def performance(records):
    return calculate_capsule_performance(records)


@pytest.fixture
def pairs(records, performance):
    return enrich_pair_synergies(calculate_pair_synergies(records), performance)


def test_archetypes_follow_build_types():
    assert capsule_archetype(MELEE_UP) == "aggressive"
    assert capsule_archetype(BLAST_BOOST) == "aggressive"
    assert capsule_archetype(IRON_WALL) == "defensive"
    assert capsule_archetype(KI_SAVER) == "technical"
    assert capsule_archetype(Capsule(id="x", name="X", type="Capsule")) == "utility"


def test_synergy_types():
    assert detect_synergy_type(MELEE_UP, RUSH_MASTER) == "multiplicative"
    assert detect_synergy_type(MELEE_UP, KI_SAVER) == "complementary"
    assert detect_synergy_type(IRON_WALL, KI_SAVER) == "complementary"
    assert detect_synergy_type(MELEE_UP, IRON_WALL) == "neutral"

    glass = Capsule(id="a", name="Glass", type="Capsule", effect="Reduces defense by 10%")
    brittle = Capsule(id="b", name="Brittle", type="Capsule", effect="Reduces armor duration")
    medic = Capsule(
        id="c", name="Medic", type="Capsule", effect="Reduces defense but recovers health"
    )
    assert detect_synergy_type(glass, brittle) == "anti-synergy"
    assert detect_synergy_type(glass, medic) == "neutral"


def test_pair_key_is_order_independent():
    assert pair_key("00_0_0002", "00_0_0001") == pair_key("00_0_0001", "00_0_0002")


def test_capsule_performance(performance):
    assert set(performance) == {MELEE_UP.id, RUSH_MASTER.id, BLAST_BOOST.id}

    melee = performance[MELEE_UP.id]
    assert melee.appearances == 2
    assert melee.wins == 1
    assert melee.win_rate == pytest.approx(50.0)
    assert melee.avg_damage_dealt == pytest.approx(40000)
    assert melee.avg_damage_taken == pytest.approx(35000)
    assert melee.damage_efficiency == pytest.approx(80000 / 70000)
    assert melee.composite_score == pytest.approx(50 + (80000 / 70000 - 1) * 20)
    assert melee.characters == ("Goku", "Vegeta")
    assert melee.teams == ("Red", "Blue")
    assert melee.ai_strategies == ("Aggressive AI",)


def test_composite_score_is_clamped(performance):
    assert performance[RUSH_MASTER.id].composite_score == 100.0
    assert performance[BLAST_BOOST.id].composite_score == 0.0


def test_pair_synergies(pairs):
    assert set(pairs) == {MELEE_RUSH, MELEE_BLAST}

    melee_rush = pairs[MELEE_RUSH]
    assert melee_rush.appearances == 1
    assert melee_rush.pair_win_rate == 100.0
    assert melee_rush.combined_cost == 8
    assert melee_rush.synergy_type == "multiplicative"
    assert melee_rush.characters == ("Goku",)
    # expected win rate (50 + 100) / 2, expected damage (40000 + 60000) / 2
    assert melee_rush.expected.win_rate == pytest.approx(75.0)
    assert melee_rush.expected.damage == pytest.approx(50000)
    assert melee_rush.synergy_bonus == pytest.approx(25 * 0.4 + 100 * 0.6)

    assert pairs[MELEE_BLAST].synergy_bonus == pytest.approx(-25 * 0.4 - 100 * 0.6)


def test_pair_without_capsule_performance_gets_no_bonus(records):
    raw = calculate_pair_synergies(records)

    enriched = enrich_pair_synergies(raw, {})

    assert enriched[MELEE_RUSH].synergy_bonus == 0.0
    assert enriched[MELEE_RUSH].expected is None


def test_ai_strategy_compatibility(records):
    compatibility = calculate_ai_strategy_compatibility(records)

    assert list(compatibility) == ["Aggressive AI"]
    melee = compatibility["Aggressive AI"][MELEE_UP.id]
    assert melee.appearances == 1
    assert melee.win_rate == 100.0
    assert melee.avg_damage_dealt == 60000
    # 0.6 * 35 + 2.0 * 25 + 0.6 * 25 + 0.5 * 15
    assert melee.composite_score == pytest.approx(93.5)


def test_score_build(records, performance, pairs):
    compatibility = calculate_ai_strategy_compatibility(records)

    score = score_build(
        [MELEE_UP, RUSH_MASTER],
        performance,
        pairs,
        compatibility,
        target_ai_strategy="Aggressive AI",
    )

    composites = performance[MELEE_UP.id].composite_score + 100.0
    assert score.individual_performance == pytest.approx(composites / 2 * 0.4)
    assert score.synergy_bonus == pytest.approx(70 * 0.3)
    assert score.ai_strategy_match == pytest.approx(93.5 * 0.15)
    assert score.archetype_alignment == pytest.approx(10.0)
    assert score.cost_efficiency == pytest.approx(8 / 20 * 100 * 0.05)
    assert score.total_score == pytest.approx(
        score.individual_performance
        + score.synergy_bonus
        + score.ai_strategy_match
        + score.archetype_alignment
        + score.cost_efficiency
    )


def test_score_build_targets_and_negative_synergy(performance, pairs):
    score = score_build([MELEE_UP, BLAST_BOOST], performance, pairs, target_archetype="Defensive")

    assert score.synergy_bonus == 0.0
    assert score.archetype_alignment == 0.0
    assert score.ai_strategy_match == 0.0
    assert score_build([], performance, pairs) == BuildScore()


def test_suggest_build_improvements(performance, pairs):
    suggestions = suggest_build_improvements([MELEE_UP], CAPSULES, pairs, performance)

    assert [s.capsule.name for s in suggestions] == [
        "Rush Master",
        "Iron Wall",
        "Ki Saver",
        "Blast Boost",
    ]
    assert suggestions[0].impact_score == pytest.approx(100 + 70 * 0.5)
    assert suggestions[0].synergy_count == 1
    assert suggestions[0].new_total_cost == 8
    assert suggestions[-1].impact_score == pytest.approx(-70 * 0.5)


def test_suggestions_respect_build_rules(performance, pairs):
    tight = BuildRules(max_cost=7, banned_capsules=(IRON_WALL.id,))
    names = [
        s.capsule.name
        for s in suggest_build_improvements([MELEE_UP], CAPSULES, pairs, performance, tight)
    ]
    assert names == ["Ki Saver"]

    full = BuildRules(max_capsules=1)
    assert suggest_build_improvements([MELEE_UP], CAPSULES, pairs, performance, full) == []


def test_score_observed_builds(records, performance, pairs):
    compatibility = calculate_ai_strategy_compatibility(records)

    builds = score_observed_builds(
        records, performance, pairs, compatibility, available=CAPSULES, suggestions=2
    )

    assert [[c.name for c in b.capsules] for b in builds] == [
        ["Melee Up", "Rush Master"],
        ["Melee Up", "Blast Boost"],
    ]
    best = builds[0]
    assert best.usage_count == 1
    assert best.wins == 1
    assert best.valid
    assert best.total_cost == 8
    assert best.ai_strategy == "Aggressive AI"
    # Blast Boost pairs badly with Melee Up, so it ranks below the unscored capsules
    assert [s.capsule.name for s in best.suggestions] == ["Iron Wall", "Ki Saver"]
    assert builds[1].ai_strategy is None

"""Per-character stat extraction.

``extract_stats`` turns one raw ``characterRecord`` node into a flat
CharacterStats record. It is the single place raw battle JSON field names
are read; every aggregator works on its output.

Raw field names keep the game's spelling (``hPGaugeValue``, ``sPMCount``,
``uLTHitBlast``, ``revengeCounter`` ...). Newer exports carry blast tracking
in ``additionalCounts``; older ones only have ``runBlastCount`` entries, in
which case blast hits are unknown and left as None rather than 0.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .builds import (
    BUILD_RULES,
    NO_BUILD,
    BuildComposition,
    BuildRules,
    classify_build_type,
    empty_category_map,
    get_build_composition,
    validate_build,
)
from .reference import Capsule
from .utils.durations import parse_battle_time

CAPSULE_PREFIX = "00_0_"

# Normalized counter -> raw key(s) under battleCount.battleNumCount.
# The first key present wins; some counters changed spelling between exports.
NUM_COUNT_FIELDS: dict[str, tuple[str, ...]] = {
    "special_moves_used": ("sPMCount",),
    "ultimates_used": ("uLTCount",),
    "skills_used": ("eXACount",),
    "sparking_count": ("sparkingCount",),
    "charge_count": ("chargeCount",),
    "guard_count": ("guardCount",),
    "energy_blast_count": ("shotEnergyBulletCount",),
    "z_counter_count": ("zCounter", "zCounterCount"),
    "super_counter_count": ("superCounterCount",),
    "revenge_counter_count": ("revengeCounter", "revengeCounterCount"),
    "throw_count": ("throwCount",),
    "lightning_attack_count": ("lightningAttackCount",),
    "vanishing_attack_count": ("vanishingAttackCount",),
    "dragon_homing_count": ("dragonHomingCount",),
    "speed_impact_count": ("speedImpactCount",),
    "speed_impact_wins": ("speedImpactWins",),
    "sparking_combo_count": ("sparkingComboCount",),
}

# Normalized counter -> raw key under battleCount.
BATTLE_COUNT_FIELDS: dict[str, str] = {
    "damage_done": "givenDamage",
    "damage_taken": "takenDamage",
    "kills": "killCount",
    "max_combo_num": "maxComboNum",
    "max_combo_damage": "maxComboDamage",
    "dragon_dash_mileage": "dragonDashMileage",
}

# Normalized counter -> raw key under additionalCounts.
BLAST_THROWN_FIELDS: dict[str, str] = {
    "s1_blast": "s1Blast",
    "s2_blast": "s2Blast",
    "ult_blast": "ultBlast",
}
BLAST_HIT_FIELDS: dict[str, str] = {
    "s1_hit_blast": "s1HitBlast",
    "s2_hit_blast": "s2HitBlast",
    "ult_hit_blast": "uLTHitBlast",
}

# Legacy runBlastCount key fragments -> normalized counter. Checked in order.
LEGACY_BLAST_KEYS: tuple[tuple[str, str], ...] = (
    ("SPM1", "s1_blast"),
    ("SPM2", "s2_blast"),
    ("SPM3", "s2_blast"),
    ("EXA1", "skill1_count"),
    ("EXA2", "skill2_count"),
    ("ULT", "ult_blast"),
)

# Cumulative counters shared by extraction and per-form subtraction.
CUMULATIVE_FIELDS: tuple[str, ...] = (
    "damage_done",
    "damage_taken",
    "battle_time",
    "kills",
    "max_combo_num",
    "max_combo_damage",
    "dragon_dash_mileage",
    *NUM_COUNT_FIELDS.keys(),
    *BLAST_THROWN_FIELDS.keys(),
    *BLAST_HIT_FIELDS.keys(),
    "tags",
)


@dataclass(frozen=True)
class CharacterStats:
    """Flat per-character statistics for one battle."""

    name: str
    character_id: str | None = None
    current_form_id: str | None = None

    damage_done: float = 0
    damage_taken: float = 0
    battle_time: float = 0.0
    hp_gauge_value: float = 0
    hp_gauge_value_max: float = 0
    kills: int = 0

    special_moves_used: int = 0
    ultimates_used: int = 0
    skills_used: int = 0
    skill1_count: int = 0
    skill2_count: int = 0

    s1_blast: int = 0
    s2_blast: int = 0
    ult_blast: int = 0
    # None when the export predates hit tracking
    s1_hit_blast: int | None = None
    s2_hit_blast: int | None = None
    ult_hit_blast: int | None = None
    # None when nothing was thrown (or hits are untracked)
    s1_hit_rate: float | None = None
    s2_hit_rate: float | None = None
    ult_hit_rate: float | None = None
    tags: int = 0

    sparking_count: int = 0
    charge_count: int = 0
    guard_count: int = 0
    energy_blast_count: int = 0
    z_counter_count: int = 0
    super_counter_count: int = 0
    revenge_counter_count: int = 0
    max_combo_num: int = 0
    max_combo_damage: float = 0
    throw_count: int = 0
    lightning_attack_count: int = 0
    vanishing_attack_count: int = 0
    dragon_homing_count: int = 0
    speed_impact_count: int = 0
    speed_impact_wins: int = 0
    sparking_combo_count: int = 0
    dragon_dash_mileage: float = 0

    equipped_capsules: tuple[Capsule, ...] = ()
    total_capsule_cost: int = 0
    capsule_types: dict[str, int] = field(default_factory=empty_category_map)
    capsule_costs: dict[str, int] = field(default_factory=empty_category_map)
    build_composition: BuildComposition = NO_BUILD
    build_valid: bool = True
    ai_strategy: str | None = None
    position: int | None = None
    form_change_history: str = ""

    @property
    def hits_tracked(self) -> bool:
        return self.s1_hit_blast is not None

    @property
    def is_active(self) -> bool:
        return self.battle_time > 0


def raw_section(node: Any, key: str) -> dict[str, Any]:
    value = node.get(key) if isinstance(node, dict) else None
    return value if isinstance(value, dict) else {}


def raw_number(value: Any) -> float:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    return 0


def _item_key(entry: Any) -> str | None:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        key = entry.get("key")
        return key if isinstance(key, str) else None
    return None


def form_key(entry: Any) -> str | None:
    """Character id from a ``formChangeHistory`` entry (``{"key": id}`` or id)."""
    return _item_key(entry)


def form_history_keys(node: Any) -> list[str]:
    history = node.get("formChangeHistory") if isinstance(node, dict) else None
    if not isinstance(history, list):
        return []
    return [key for key in (form_key(entry) for entry in history) if key]


def original_character_id(node: Any) -> str | None:
    """Pre-transformation character id, falling back to the current form."""
    play = raw_section(node, "battlePlayCharacter")
    original = raw_section(play, "originalCharacter").get("key")
    current = raw_section(play, "character").get("key")
    return original or current or None


def _legacy_blast_counts(node: dict[str, Any]) -> dict[str, int]:
    """Thrown counts from ``runBlastCount`` entries of older exports."""
    battle = raw_section(node, "battleCount")
    num_count = raw_section(battle, "battleNumCount")
    raw = num_count.get("runBlastCount", battle.get("runBlastCount", node.get("runBlastCount")))

    entries: list[tuple[str, float]] = []
    if isinstance(raw, dict):
        entries = [(str(k), raw_number(v)) for k, v in raw.items()]
    elif isinstance(raw, list):
        for item in raw:
            if isinstance(item, str):
                entries.append((item, 1))
            elif isinstance(item, dict) and isinstance(item.get("key"), str):
                entries.append((item["key"], raw_number(item.get("count", item.get("value", 1)))))

    counts = {"s1_blast": 0, "s2_blast": 0, "ult_blast": 0, "skill1_count": 0, "skill2_count": 0}
    for key, count in entries:
        upper = key.upper()
        for fragment, target in LEGACY_BLAST_KEYS:
            if fragment in upper:
                counts[target] += count
                break
    return counts


def read_cumulative_counters(node: Any, *, track_hits: bool | None = None) -> dict[str, Any]:
    """Read every cumulative counter from a record or snapshot node.

    Args:
        node: A ``characterRecord`` entry or ``characterIdRecord`` snapshot.
        track_hits: Force hit fields to be read as numbers (True) regardless
            of ``additionalCounts`` being present. By default hit fields are
            None when ``additionalCounts`` is absent.
    """
    battle = raw_section(node, "battleCount")
    num_count = raw_section(battle, "battleNumCount")
    has_additional = isinstance(node, dict) and isinstance(node.get("additionalCounts"), dict)
    additional = raw_section(node, "additionalCounts")

    counters: dict[str, Any] = {
        name: raw_number(battle.get(raw)) for name, raw in BATTLE_COUNT_FIELDS.items()
    }
    counters["battle_time"] = parse_battle_time(battle.get("battleTime"))

    for name, raw_keys in NUM_COUNT_FIELDS.items():
        value = 0
        for raw in raw_keys:
            if raw in num_count:
                value = raw_number(num_count[raw])
                break
        counters[name] = value

    legacy = _legacy_blast_counts(node if isinstance(node, dict) else {})
    counters["skill1_count"] = legacy["skill1_count"]
    counters["skill2_count"] = legacy["skill2_count"]

    if has_additional:
        for name, raw in BLAST_THROWN_FIELDS.items():
            counters[name] = raw_number(additional.get(raw))
    else:
        for name in BLAST_THROWN_FIELDS:
            counters[name] = legacy[name]

    hits_known = has_additional if track_hits is None else track_hits
    for name, raw in BLAST_HIT_FIELDS.items():
        counters[name] = raw_number(additional.get(raw)) if hits_known else None

    counters["tags"] = raw_number(additional.get("tags"))
    return counters


def hit_rate(hits: float | None, thrown: float) -> float | None:
    """Percentage of thrown blasts that hit; None when undefined."""
    if hits is None or not thrown or thrown <= 0:
        return None
    return hits / thrown * 100


def extract_stats(
    node: dict[str, Any],
    char_names: dict[str, str],
    capsule_map: dict[str, Capsule],
    position: int | None = None,
    ai_strategy_map: dict[str, Capsule] | None = None,
    rules: BuildRules = BUILD_RULES,
) -> CharacterStats:
    """Extract a flat stat record from one ``characterRecord`` node.

    Args:
        node: Raw per-character battle data
        char_names: Character id -> display name
        capsule_map: Capsule id -> Capsule (gameplay capsules only)
        position: Roster position (1 Lead, 2 Middle, 3 Anchor) if known
        ai_strategy_map: AI strategy id -> item
        rules: Build rules used for the ``build_valid`` flag

    Returns:
        CharacterStats for the node. Missing sections default to zero.
    """
    node = node if isinstance(node, dict) else {}
    char_names = char_names or {}
    capsule_map = capsule_map or {}
    ai_strategy_map = ai_strategy_map or {}

    play = raw_section(node, "battlePlayCharacter")
    original_id = raw_section(play, "originalCharacter").get("key")
    current_id = raw_section(play, "character").get("key")
    char_id = original_id or current_id or ""
    name = char_names.get(char_id) or "-"

    form_names = ""
    history = form_history_keys(node)
    if history:
        forms = [f for f in [original_id, *history] if f]
        form_names = ", ".join(char_names.get(f, f) for f in forms)

    equip_raw = node.get("equipItem")
    equip_keys = (
        [key for key in map(_item_key, equip_raw) if key]
        if isinstance(equip_raw, list)
        else []
    )

    equipped = tuple(
        capsule_map[key]
        for key in equip_keys
        if key.startswith(CAPSULE_PREFIX) and key in capsule_map
    )

    ai_strategy = None
    for key in equip_keys:
        if key in ai_strategy_map:
            ai_strategy = ai_strategy_map[key].name
            break

    capsule_types = empty_category_map()
    capsule_costs = empty_category_map()
    for capsule in equipped:
        category = classify_build_type(capsule.build_type)
        if category is None:
            continue
        capsule_types[category] += 1
        capsule_costs[category] += capsule.cost

    counters = read_cumulative_counters(node)

    return CharacterStats(
        name=name,
        character_id=char_id or None,
        current_form_id=current_id,
        hp_gauge_value=raw_number(play.get("hPGaugeValue")),
        hp_gauge_value_max=raw_number(play.get("hPGaugeValueMax")),
        s1_hit_rate=hit_rate(counters["s1_hit_blast"], counters["s1_blast"]),
        s2_hit_rate=hit_rate(counters["s2_hit_blast"], counters["s2_blast"]),
        ult_hit_rate=hit_rate(counters["ult_hit_blast"], counters["ult_blast"]),
        equipped_capsules=equipped,
        total_capsule_cost=sum(c.cost for c in equipped),
        capsule_types=capsule_types,
        capsule_costs=capsule_costs,
        build_composition=get_build_composition(capsule_costs),
        build_valid=validate_build(equipped, rules).valid,
        ai_strategy=ai_strategy,
        position=int(position) if position is not None else None,
        form_change_history=form_names,
        **counters,
    )

"""Per-form statistics for characters that transform mid-battle.

The final ``characterRecord`` only holds cumulative end-of-battle counters.
When a character transforms, the game stores a snapshot of its counters in
``characterIdRecord`` under the id of the form it is leaving. Per-form
numbers are recovered by diffing consecutive snapshots:

- first form:  the snapshot stored under the original character id
- middle form: its own snapshot minus the previous form's snapshot
- final form:  the final characterRecord minus the previous form's snapshot

HP values are point-in-time readings and are taken from the later snapshot
rather than subtracted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .normalize import index_snapshots, normalize_snapshot_key
from .stats import (
    CUMULATIVE_FIELDS,
    raw_number,
    raw_section,
    form_key,
    read_cumulative_counters,
)
from .utils.durations import safe_ratio

logger = logging.getLogger(__name__)

# Reported when a form took no damage but dealt some
EFFICIENCY_SENTINEL = 999


@dataclass(frozen=True)
class FormStats:
    """Incremental stats accumulated while in one form."""

    form_number: int
    form_id: str | None
    is_first_form: bool
    is_final_form: bool
    hp_gauge_value: float = 0
    hp_gauge_value_max: float = 0
    counters: dict[str, float] = field(default_factory=dict)

    def get(self, name: str, default: float = 0) -> float:
        return self.counters.get(name, default)

    @property
    def damage_done(self) -> float:
        return self.counters.get("damage_done", 0)

    @property
    def battle_time(self) -> float:
        return self.counters.get("battle_time", 0)


def _snapshot_counters(node: Any) -> dict[str, float]:
    counters = read_cumulative_counters(node, track_hits=True)
    return {name: counters.get(name) or 0 for name in CUMULATIVE_FIELDS}


def _hp(node: Any) -> tuple[float, float]:
    play = raw_section(node, "battlePlayCharacter")
    return raw_number(play.get("hPGaugeValue")), raw_number(play.get("hPGaugeValueMax"))


def subtract_snapshots(later: Any, earlier: Any) -> dict[str, float]:
    """Field-wise ``later - earlier`` over every cumulative counter."""
    later_counters = _snapshot_counters(later)
    earlier_counters = _snapshot_counters(earlier)
    return {
        name: later_counters[name] - earlier_counters[name]
        for name in CUMULATIVE_FIELDS
    }


def calculate_per_form_stats(
    character_record: dict[str, Any] | None,
    character_id_record: dict[str, Any] | None,
    form_change_history: list[Any] | None,
    original_character_id: str | None,
) -> list[FormStats]:
    """Split a character's cumulative battle stats into per-form increments.

    Args:
        character_record: The character's final ``characterRecord`` node
        character_id_record: Transformation snapshots (either key convention)
        form_change_history: Ordered transformations, ``[{"key": id}, ...]``
        original_character_id: Id of the form the character started in

    Returns:
        One FormStats per form in transformation order. Forms whose snapshot
        is missing are skipped; without any snapshots no breakdown is
        possible and an empty list is returned.
    """
    if not character_record:
        return []

    history = [key for key in map(form_key, form_change_history or []) if key]
    if not history:
        hp, hp_max = _hp(character_record)
        return [
            FormStats(
                form_number=1,
                form_id=original_character_id,
                is_first_form=True,
                is_final_form=True,
                hp_gauge_value=hp,
                hp_gauge_value_max=hp_max,
                counters=_snapshot_counters(character_record),
            )
        ]

    snapshots = index_snapshots(character_id_record)
    if not snapshots:
        logger.warning(
            f"Missing characterIdRecord for {original_character_id}; "
            "cannot calculate per-form stats"
        )
        return []

    def snapshot(char_id: str | None) -> dict[str, Any] | None:
        if not char_id:
            return None
        return snapshots.get(normalize_snapshot_key(char_id))

    chain = [original_character_id, *history]
    forms: list[FormStats] = []

    for i, form_id in enumerate(chain):
        is_first = i == 0
        is_final = i == len(chain) - 1

        if is_first:
            current = snapshot(form_id)
            if current is None:
                logger.warning(f"Missing snapshot for original form: {form_id}")
                continue
            counters = _snapshot_counters(current)
            hp_source = current
        elif is_final:
            previous = snapshot(chain[i - 1])
            if previous is None:
                logger.warning(f"Missing snapshot for previous form: {chain[i - 1]}")
                continue
            counters = subtract_snapshots(character_record, previous)
            hp_source = character_record
        else:
            current = snapshot(form_id)
            previous = snapshot(chain[i - 1])
            if current is None or previous is None:
                logger.warning(
                    f"Missing snapshots for middle form: {form_id} (current) "
                    f"or {chain[i - 1]} (previous)"
                )
                continue
            counters = subtract_snapshots(current, previous)
            hp_source = current

        hp, hp_max = _hp(hp_source)
        forms.append(
            FormStats(
                form_number=i + 1,
                form_id=form_id,
                is_first_form=is_first,
                is_final_form=is_final,
                hp_gauge_value=hp,
                hp_gauge_value_max=hp_max,
                counters=counters,
            )
        )

    return forms


def _rate(part: float, whole: float) -> float | None:
    if not whole or whole <= 0:
        return None
    return round(part / whole * 1000) / 10


def format_per_form_stats(
    forms: list[FormStats], char_names: dict[str, str] | None = None
) -> list[dict[str, Any]]:
    """Display rows for per-form stats with derived rates."""
    char_names = char_names or {}
    rows = []
    for form in forms:
        c = form.counters
        damage = c.get("damage_done", 0)
        taken = c.get("damage_taken", 0)
        if taken > 0:
            efficiency = damage / taken
        else:
            efficiency = EFFICIENCY_SENTINEL if damage > 0 else 0

        rows.append(
            {
                "form_number": form.form_number,
                "form_id": form.form_id,
                "character_name": char_names.get(form.form_id, form.form_id),
                "is_first_form": form.is_first_form,
                "is_final_form": form.is_final_form,
                "damage_per_second": safe_ratio(damage, c.get("battle_time", 0)),
                "damage_efficiency": efficiency,
                "hp_remaining": form.hp_gauge_value,
                "hp_max": form.hp_gauge_value_max,
                "s1_hit_rate": _rate(c.get("s1_hit_blast", 0), c.get("s1_blast", 0)),
                "s2_hit_rate": _rate(c.get("s2_hit_blast", 0), c.get("s2_blast", 0)),
                "ult_hit_rate": _rate(c.get("ult_hit_blast", 0), c.get("ult_blast", 0)),
                "speed_impact_win_rate": _rate(
                    c.get("speed_impact_wins", 0), c.get("speed_impact_count", 0)
                ),
                **c,
            }
        )
    return rows

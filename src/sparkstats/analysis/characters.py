"""Character-level aggregation across every battle.

Characters are keyed by their original (pre-transformation) form name, so
a character who transformed mid-battle is counted under one identity. The
per-form breakdown keeps the transformation detail.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from ..builds import BUILD_RULES, BuildRules
from ..reference import ReferenceData
from ..types import BattleFile
from ..utils.durations import safe_ratio
from .records import collect_match_records
from .scoring import (
    BuildSummary,
    StatAverages,
    compute_averages,
    damage_efficiency,
    sort_by_performance,
    summarize_builds,
)
from .totals import MatchRecord, StatTotals, fold_totals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormAggregate:
    """One form's incremental stats summed over a character's matches."""

    form_id: str | None
    name: str
    form_number: int
    appearances: int
    total_damage: float
    total_taken: float
    total_battle_time: float

    @property
    def avg_damage(self) -> float:
        return safe_ratio(self.total_damage, self.appearances)

    @property
    def dps(self) -> float:
        return safe_ratio(self.total_damage, self.total_battle_time)

    @property
    def efficiency(self) -> float:
        return damage_efficiency(self.total_damage, self.total_taken)


@dataclass
class CharacterAggregate:
    """Aggregated performance of one character."""

    name: str
    character_id: str | None
    totals: StatTotals
    averages: StatAverages
    teams: tuple[str, ...] = ()
    primary_team: str | None = None
    builds: list[BuildSummary] = field(default_factory=list)
    forms: list[FormAggregate] = field(default_factory=list)
    form_history: str = ""
    matches: tuple[MatchRecord, ...] = ()

    @property
    def match_count(self) -> int:
        return self.totals.match_count

    @property
    def has_multiple_forms(self) -> bool:
        return bool(self.forms) or bool(self.form_history)


def aggregate_forms(
    records: Sequence[MatchRecord], char_names: dict[str, str] | None = None
) -> list[FormAggregate]:
    """Sum per-form increments by form id, ordered by first appearance."""
    char_names = char_names or {}
    sums: dict[str | None, dict[str, float]] = {}
    numbers: dict[str | None, int] = {}
    for record in records:
        for form in record.forms:
            entry = sums.setdefault(
                form.form_id, {"appearances": 0, "damage": 0, "taken": 0, "time": 0}
            )
            entry["appearances"] += 1
            entry["damage"] += form.damage_done
            entry["taken"] += form.get("damage_taken")
            entry["time"] += form.battle_time
            numbers.setdefault(form.form_id, form.form_number)

    return [
        FormAggregate(
            form_id=form_id,
            name=char_names.get(form_id, form_id or "-"),
            form_number=numbers[form_id],
            appearances=int(entry["appearances"]),
            total_damage=entry["damage"],
            total_taken=entry["taken"],
            total_battle_time=entry["time"],
        )
        for form_id, entry in sums.items()
    ]


def _combined_form_history(records: Sequence[MatchRecord]) -> str:
    seen: list[str] = []
    for record in records:
        for name in record.stats.form_change_history.split(", "):
            if name and name not in seen:
                seen.append(name)
    return ", ".join(seen)


def summarize_character(
    name: str,
    records: Sequence[MatchRecord],
    top_builds: int = 3,
    char_names: dict[str, str] | None = None,
) -> CharacterAggregate:
    """Fold one character's match records into a CharacterAggregate."""
    totals = fold_totals(records)
    team_counts = Counter(r.team for r in records if r.team)
    return CharacterAggregate(
        name=name,
        character_id=records[0].stats.character_id if records else None,
        totals=totals,
        averages=compute_averages(totals),
        teams=tuple(sorted(team_counts)),
        primary_team=team_counts.most_common(1)[0][0] if team_counts else None,
        builds=summarize_builds(records, limit=top_builds),
        forms=aggregate_forms(records, char_names),
        form_history=_combined_form_history(records),
        matches=tuple(records),
    )


def aggregate_characters(
    records: Iterable[MatchRecord],
    top_builds: int = 3,
    char_names: dict[str, str] | None = None,
) -> list[CharacterAggregate]:
    grouped: dict[str, list[MatchRecord]] = defaultdict(list)
    for record in records:
        grouped[record.name].append(record)

    summaries = [
        summarize_character(name, group, top_builds, char_names)
        for name, group in grouped.items()
    ]
    logger.info(f"Aggregated {len(summaries)} characters")
    return sort_by_performance(summaries)


def get_aggregated_character_data(
    files: Iterable[BattleFile],
    reference: ReferenceData,
    top_builds: int = 3,
    rules: BuildRules = BUILD_RULES,
) -> list[CharacterAggregate]:
    """Aggregate every character appearance across the given battle files.

    Returns:
        Characters ordered by combat performance score, then average damage,
        then match count.
    """
    records = collect_match_records(files, reference, rules)
    return aggregate_characters(records, top_builds, reference.characters)

"""Per-roster-position character performance.

Every slot is placed at Lead, Middle or Anchor from its index within its
own side, so a 3v5 battle still has one Lead and one Anchor per side.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable

from ..builds import BUILD_RULES, BuildRules
from ..reference import ReferenceData
from ..types import BattleFile, Position
from .records import collect_match_records
from .scoring import StatAverages, compute_averages
from .totals import MatchRecord, StatTotals, fold_totals


@dataclass(frozen=True)
class PositionCharacter:
    name: str
    totals: StatTotals
    averages: StatAverages


@dataclass
class PositionAggregate:
    """Characters that played one roster position, best damage first."""

    position: Position
    characters: list[PositionCharacter] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.position.label

    @property
    def match_count(self) -> int:
        return sum(c.totals.match_count for c in self.characters)


def aggregate_positions(records: Iterable[MatchRecord]) -> dict[int, PositionAggregate]:
    grouped: dict[int, dict[str, list[MatchRecord]]] = {
        int(p): defaultdict(list) for p in Position
    }
    for record in records:
        if record.stats.position is None:
            continue
        grouped[record.stats.position][record.name].append(record)

    positions: dict[int, PositionAggregate] = {}
    for position, by_name in grouped.items():
        rows = []
        for name, group in by_name.items():
            totals = fold_totals(group)
            rows.append(PositionCharacter(name=name, totals=totals, averages=compute_averages(totals)))
        rows.sort(key=lambda row: row.averages.avg_damage, reverse=True)
        positions[position] = PositionAggregate(position=Position(position), characters=rows)
    return positions


def get_position_based_data(
    files: Iterable[BattleFile],
    reference: ReferenceData,
    rules: BuildRules = BUILD_RULES,
) -> dict[int, PositionAggregate]:
    """Aggregate character stats per roster position (1 Lead, 2 Middle, 3 Anchor)."""
    return aggregate_positions(collect_match_records(files, reference, rules))

"""Team-level aggregation: records, head-to-head results and roster strength.

Only battles that name both teams and record ``battleWinLose`` count. A side
with a blank team name is skipped while the other side is still processed.

Headline figures (damage per match, efficiency and combat score) use only
the team's five best characters by performance score, not the whole roster.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from ..builds import BUILD_RULES, BuildRules
from ..reference import ReferenceData
from ..types import BattleFile, Side
from ..utils.durations import safe_ratio
from .characters import CharacterAggregate, summarize_character
from .records import iter_battles, records_for_result
from .scoring import sort_by_performance
from .totals import MatchRecord

logger = logging.getLogger(__name__)

TOP_CHARACTER_COUNT = 5


@dataclass
class MatchupRecord:
    matches: int = 0
    wins: int = 0
    losses: int = 0


@dataclass
class OpponentRecord:
    """Head-to-head results against one opposing team."""

    wins: int = 0
    losses: int = 0
    character_matchups: dict[str, MatchupRecord] = field(default_factory=dict)

    @property
    def matches(self) -> int:
        return self.wins + self.losses


@dataclass
class TeamAggregate:
    name: str
    wins: int = 0
    losses: int = 0
    character_details: dict[str, list[MatchRecord]] = field(default_factory=dict)
    characters: list[CharacterAggregate] = field(default_factory=list)
    opponent_records: dict[str, OpponentRecord] = field(default_factory=dict)
    avg_damage_per_match: float = 0.0
    avg_damage_taken_per_match: float = 0.0
    damage_efficiency: float = 0.0
    top5_combat_score: float = 0.0

    @property
    def matches(self) -> int:
        return self.wins + self.losses

    @property
    def win_rate(self) -> float:
        return safe_ratio(self.wins, self.matches) * 100


def _record_matchups(
    opponent: OpponentRecord,
    own: list[MatchRecord],
    other: list[MatchRecord],
    won: bool,
) -> None:
    # Position-for-position: slot i faces the opposing slot i
    for mine, theirs in zip(own, other):
        key = f"{mine.name}_vs_{theirs.name}"
        matchup = opponent.character_matchups.setdefault(key, MatchupRecord())
        matchup.matches += 1
        if won:
            matchup.wins += 1
        else:
            matchup.losses += 1


def _finalize(
    team: TeamAggregate, top_characters: int, top_builds: int, char_names: dict[str, str]
) -> None:
    team.characters = sort_by_performance(
        summarize_character(name, records, top_builds, char_names)
        for name, records in team.character_details.items()
    )
    top = team.characters[:top_characters]
    if not top:
        return
    team.avg_damage_per_match = sum(c.averages.avg_damage for c in top)
    team.avg_damage_taken_per_match = sum(c.averages.avg_taken for c in top)
    team.damage_efficiency = safe_ratio(
        team.avg_damage_per_match, team.avg_damage_taken_per_match
    )
    team.top5_combat_score = sum(c.averages.combat_performance_score for c in top) / len(top)


def get_team_aggregated_data(
    files: Iterable[BattleFile],
    reference: ReferenceData,
    top_characters: int = TOP_CHARACTER_COUNT,
    top_builds: int = 3,
    rules: BuildRules = BUILD_RULES,
) -> list[TeamAggregate]:
    """Aggregate win/loss records and character performance per team.

    Returns:
        Teams ordered by win rate, then matches played, then damage
        efficiency.
    """
    teams: dict[str, TeamAggregate] = {}

    for file_name, result in iter_battles(files):
        if not result.teams or not result.has_outcome:
            continue
        if result.team_for(Side.ALLY) is None and result.team_for(Side.ENEMY) is None:
            logger.warning(f"Skipping {file_name}: both team names are blank")
            continue

        by_side = records_for_result(file_name, result, reference, rules)
        for side in (Side.ALLY, Side.ENEMY):
            name = result.team_for(side)
            if name is None:
                continue
            won = bool(result.side_won(side))
            team = teams.setdefault(name, TeamAggregate(name=name))
            if won:
                team.wins += 1
            else:
                team.losses += 1

            own = by_side.get(side, [])
            for record in own:
                team.character_details.setdefault(record.name, []).append(record)

            opponent_name = result.opponent_for(side)
            if opponent_name is None:
                continue
            opponent = team.opponent_records.setdefault(opponent_name, OpponentRecord())
            if won:
                opponent.wins += 1
            else:
                opponent.losses += 1
            other_side = Side.ENEMY if side is Side.ALLY else Side.ALLY
            _record_matchups(opponent, own, by_side.get(other_side, []), won)

    aggregates = list(teams.values())
    for team in aggregates:
        _finalize(team, top_characters, top_builds, reference.characters)

    aggregates.sort(key=lambda t: (-t.win_rate, -t.matches, -t.damage_efficiency))
    return aggregates

"""Core data types for loaded battle documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Side(Enum):
    """Which half of the match a character slot belongs to."""

    ALLY = "ally"
    ENEMY = "enemy"


class Position(int, Enum):
    """Roster position derived from slot order within a side."""

    LEAD = 1
    MIDDLE = 2
    ANCHOR = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class SlotKey:
    """Parsed ``characterRecord`` key such as ``AlliesTeamMember2``."""

    raw: str
    side: Side
    slot: int


@dataclass(frozen=True)
class RosterEntry:
    """One character slot placed within its side's roster."""

    slot: SlotKey
    position: Position
    index: int
    node: dict[str, Any]


@dataclass(frozen=True)
class BattleResult:
    """Canonical view of one battle regardless of the document's schema."""

    character_record: dict[str, Any]
    character_id_record: dict[str, Any] = field(default_factory=dict)
    battle_win_lose: str | None = None
    teams: tuple[str, str] | None = None
    source: str = "unknown"

    @property
    def has_outcome(self) -> bool:
        return self.battle_win_lose in ("Win", "Lose")

    def team_for(self, side: Side) -> str | None:
        """Team name for a side, or None when team names are unavailable."""
        if not self.teams:
            return None
        name = self.teams[0] if side is Side.ALLY else self.teams[1]
        return name or None

    def opponent_for(self, side: Side) -> str | None:
        other = Side.ENEMY if side is Side.ALLY else Side.ALLY
        return self.team_for(other)

    def side_won(self, side: Side) -> bool | None:
        """Outcome for a side from ``battleWinLose``; None when unrecorded."""
        if not self.has_outcome:
            return None
        allies_won = self.battle_win_lose == "Win"
        return allies_won if side is Side.ALLY else not allies_won


@dataclass
class BattleFile:
    """A loaded battle-result file; ``error`` is set when it failed to parse."""

    name: str
    content: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.content is not None

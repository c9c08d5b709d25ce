"""Normalization of battle-result documents into canonical BattleResults.

Battle exports have gone through several layouts over time:

- ``{"TeamBattleResults": {"teams": [...], "battleResult": {...}}}``
- ``{"TeamBattleResults": {"teams": [...], "BattleResults": {...}}}``
- ``{"TeamBattleResults": {"battleWinLose", "characterRecord", ...}}``
- ``{"teams": [{"BattleResults": {...}}, ...]}`` (one sub-document per team)
- ``{"BattleResults": {...}, "teams": [...]}``
- ``{"battleWinLose", "characterRecord", "characterIdRecord", "teams"}``

Each layout has its own extractor. Extractors are tried in order and the
first one producing results wins; a bounded recursive search is the last
resort. Nothing here raises on unexpected shapes: unknown documents simply
resolve to no results.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable

from .types import BattleResult, Position, RosterEntry, Side, SlotKey

logger = logging.getLogger(__name__)

MAX_SEARCH_DEPTH = 5

_ALLY_SLOT_RE = re.compile(r"AlliesTeamMember(\d*)")
_ENEMY_SLOT_RE = re.compile(r"EnemyTeamMember(\d*)")
_LEGACY_ALLY_MARKER = "１Ｐ"
_LEGACY_ENEMY_MARKER = "２Ｐ"
_SNAPSHOT_KEY_RE = re.compile(r'^\(Key="(.*)"\)$')


# ============================================================================
# Key parsing
# ============================================================================


def parse_slot_key(key: str) -> SlotKey | None:
    """Parse a ``characterRecord`` key into its side and slot number.

    ``AlliesTeamMember3`` -> (ALLY, 3), ``EnemyTeamMember1`` -> (ENEMY, 1).
    Legacy 1v1 start-point keys carry a ``１Ｐ`` / ``２Ｐ`` marker and map to
    slot 1 of their side. Unrecognized keys return None.
    """
    if not isinstance(key, str):
        return None

    match = _ALLY_SLOT_RE.search(key)
    if match:
        return SlotKey(raw=key, side=Side.ALLY, slot=int(match.group(1) or 1))

    match = _ENEMY_SLOT_RE.search(key)
    if match:
        return SlotKey(raw=key, side=Side.ENEMY, slot=int(match.group(1) or 1))

    if _LEGACY_ENEMY_MARKER in key:
        return SlotKey(raw=key, side=Side.ENEMY, slot=1)
    if _LEGACY_ALLY_MARKER in key:
        return SlotKey(raw=key, side=Side.ALLY, slot=1)

    return None


def normalize_snapshot_key(key: str) -> str:
    """``(Key="0140_00")`` -> ``0140_00``; plain ids pass through."""
    match = _SNAPSHOT_KEY_RE.match(key.strip()) if isinstance(key, str) else None
    return match.group(1) if match else key


def index_snapshots(character_id_record: Any) -> dict[str, Any]:
    """Index a ``characterIdRecord`` by bare character id.

    Both key conventions used by the game (direct id and ``(Key="<id>")``)
    collapse to the bare id so lookups only need one form.
    """
    if not isinstance(character_id_record, dict):
        return {}
    return {
        normalize_snapshot_key(key): value
        for key, value in character_id_record.items()
        if isinstance(value, dict)
    }


def position_for_index(index: int, team_size: int) -> Position:
    """First slot leads, last slot anchors, everything between is middle."""
    if index == 0:
        return Position.LEAD
    if index == team_size - 1:
        return Position.ANCHOR
    return Position.MIDDLE


def team_rosters(result: BattleResult) -> dict[Side, list[RosterEntry]]:
    """Group a result's character slots by side, ordered by slot number.

    Positions are assigned per side, so sides of different sizes each get
    their own Lead and Anchor. Slots whose key cannot be parsed are dropped.
    """
    grouped: dict[Side, list[tuple[SlotKey, int, dict]]] = {Side.ALLY: [], Side.ENEMY: []}
    for order, (key, node) in enumerate(result.character_record.items()):
        slot = parse_slot_key(key)
        if slot is None or not isinstance(node, dict):
            continue
        grouped[slot.side].append((slot, order, node))

    rosters: dict[Side, list[RosterEntry]] = {}
    for side, slots in grouped.items():
        slots.sort(key=lambda item: (item[0].slot, item[1]))
        rosters[side] = [
            RosterEntry(
                slot=slot,
                position=position_for_index(index, len(slots)),
                index=index,
                node=node,
            )
            for index, (slot, _, node) in enumerate(slots)
        ]
    return rosters


# ============================================================================
# Extractors
# ============================================================================


def _coerce_teams(value: Any) -> tuple[str, str] | None:
    if not isinstance(value, (list, tuple)) or len(value) < 2:
        return None
    first, second = value[0], value[1]
    if not isinstance(first, str) or not isinstance(second, str):
        return None
    return (first.strip(), second.strip())


def _coerce_outcome(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip().capitalize()
    return cleaned if cleaned in ("Win", "Lose") else None


def _build_result(
    holder: Any,
    source: str,
    *parents: Any,
) -> BattleResult | None:
    """Build a BattleResult from a dict holding ``characterRecord``.

    ``teams`` and ``battleWinLose`` are looked up on the holder first and
    then on each parent wrapper in turn.
    """
    if not isinstance(holder, dict):
        return None
    character_record = holder.get("characterRecord")
    if not isinstance(character_record, dict) or not character_record:
        return None

    teams = None
    outcome = None
    for candidate in (holder, *parents):
        if not isinstance(candidate, dict):
            continue
        if teams is None:
            teams = _coerce_teams(candidate.get("teams"))
        if outcome is None:
            outcome = _coerce_outcome(candidate.get("battleWinLose"))

    return BattleResult(
        character_record=character_record,
        character_id_record=index_snapshots(holder.get("characterIdRecord")),
        battle_win_lose=outcome,
        teams=teams,
        source=source,
    )


def _single(result: BattleResult | None) -> list[BattleResult]:
    return [result] if result is not None else []


def _from_team_battle_result(document: dict) -> list[BattleResult]:
    wrapper = document.get("TeamBattleResults")
    if not isinstance(wrapper, dict):
        return []
    return _single(
        _build_result(wrapper.get("battleResult"), "TeamBattleResults.battleResult", wrapper)
    )


def _from_team_battle_results_cinema(document: dict) -> list[BattleResult]:
    wrapper = document.get("TeamBattleResults")
    if not isinstance(wrapper, dict):
        return []
    return _single(
        _build_result(wrapper.get("BattleResults"), "TeamBattleResults.BattleResults", wrapper)
    )


def _from_team_battle_results_flat(document: dict) -> list[BattleResult]:
    return _single(_build_result(document.get("TeamBattleResults"), "TeamBattleResults"))


def _from_team_array(document: dict) -> list[BattleResult]:
    teams = document.get("teams")
    if not isinstance(teams, list):
        return []

    results = []
    for idx, team_doc in enumerate(teams):
        if not isinstance(team_doc, dict):
            continue
        source = f"teams[{idx}]"
        result = (
            _build_result(team_doc.get("BattleResults"), source, team_doc, document)
            or _build_result(team_doc.get("battleResult"), source, team_doc, document)
            or _build_result(team_doc, source, document)
        )
        if result is not None:
            results.append(result)
    return results


def _from_root_battle_results(document: dict) -> list[BattleResult]:
    return _single(_build_result(document.get("BattleResults"), "BattleResults", document))


def _from_legacy_root(document: dict) -> list[BattleResult]:
    return _single(_build_result(document, "root"))


def _search(node: Any, depth: int, parents: tuple) -> BattleResult | None:
    if depth > MAX_SEARCH_DEPTH or not isinstance(node, (dict, list)):
        return None
    if isinstance(node, dict):
        result = _build_result(node, "search", *parents)
        if result is not None:
            return result
        children = node.values()
        parents = (node, *parents)
    else:
        children = node
    for child in children:
        found = _search(child, depth + 1, parents)
        if found is not None:
            return found
    return None


def _from_recursive_search(document: dict) -> list[BattleResult]:
    return _single(_search(document, 0, ()))


EXTRACTORS: tuple[Callable[[dict], list[BattleResult]], ...] = (
    _from_team_battle_result,
    _from_team_battle_results_cinema,
    _from_team_battle_results_flat,
    _from_team_array,
    _from_root_battle_results,
    _from_legacy_root,
    _from_recursive_search,
)


def resolve_battle_results(document: Any) -> list[BattleResult]:
    """Resolve every battle contained in a document.

    Most layouts carry a single battle; the per-team array layout yields one
    result per team sub-document. Returns an empty list for documents with
    no recognizable ``characterRecord``.
    """
    if not isinstance(document, dict):
        return []

    for extractor in EXTRACTORS:
        results = extractor(document)
        if results:
            return results

    logger.warning("No characterRecord found in battle document")
    return []


def resolve_battle_result(document: Any) -> BattleResult | None:
    """First battle in a document, or None."""
    results = resolve_battle_results(document)
    return results[0] if results else None

"""Turn loaded battle files into per-appearance match records."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from ..builds import BUILD_RULES, BuildRules
from ..forms import calculate_per_form_stats
from ..normalize import resolve_battle_results, team_rosters
from ..reference import ReferenceData
from ..stats import extract_stats, form_history_keys, original_character_id
from ..types import BattleFile, BattleResult, RosterEntry, Side
from .totals import MatchRecord

logger = logging.getLogger(__name__)


def iter_battles(files: Iterable[BattleFile]) -> Iterator[tuple[str, BattleResult]]:
    """Yield ``(file_name, result)`` for every battle in the usable files.

    Files that failed to load are skipped. Per-team array documents yield
    one result per team sub-document.
    """
    for battle_file in files:
        if not battle_file.ok:
            logger.warning(f"Skipping {battle_file.name}: {battle_file.error or 'no content'}")
            continue
        results = resolve_battle_results(battle_file.content)
        if not results:
            logger.warning(f"No battle data found in {battle_file.name}")
        for result in results:
            yield battle_file.name, result


def determine_win(result: BattleResult, side: Side, hp_gauge_value: float) -> bool:
    """Match outcome for a side, falling back to survival when unrecorded.

    Surviving does not always mean winning; the fallback only applies to
    exports without ``battleWinLose``.
    """
    outcome = result.side_won(side)
    if outcome is None:
        return hp_gauge_value > 0
    return outcome


def build_record(
    file_name: str,
    result: BattleResult,
    entry: RosterEntry,
    reference: ReferenceData,
    rules: BuildRules = BUILD_RULES,
) -> MatchRecord:
    """Extract one slot of a battle into a MatchRecord."""
    node = entry.node
    stats = extract_stats(
        node,
        reference.characters,
        reference.capsules,
        position=int(entry.position),
        ai_strategy_map=reference.ai_strategies,
        rules=rules,
    )

    forms = ()
    history = form_history_keys(node)
    if history and result.character_id_record:
        forms = tuple(
            calculate_per_form_stats(
                node,
                result.character_id_record,
                history,
                original_character_id(node),
            )
        )

    side = entry.slot.side
    return MatchRecord(
        file_name=file_name,
        name=stats.name,
        stats=stats,
        won=determine_win(result, side, stats.hp_gauge_value),
        side=side,
        slot_index=entry.index,
        team=result.team_for(side),
        opponent=result.opponent_for(side),
        forms=forms,
    )


def records_for_result(
    file_name: str,
    result: BattleResult,
    reference: ReferenceData,
    rules: BuildRules = BUILD_RULES,
) -> dict[Side, list[MatchRecord]]:
    """Match records for both sides of one battle, in slot order."""
    return {
        side: [build_record(file_name, result, entry, reference, rules) for entry in entries]
        for side, entries in team_rosters(result).items()
    }


def collect_match_records(
    files: Iterable[BattleFile],
    reference: ReferenceData,
    rules: BuildRules = BUILD_RULES,
) -> list[MatchRecord]:
    """Every character appearance across all files, allies before enemies."""
    records: list[MatchRecord] = []
    for file_name, result in iter_battles(files):
        by_side = records_for_result(file_name, result, reference, rules)
        for side in (Side.ALLY, Side.ENEMY):
            records.extend(by_side.get(side, []))
    return records

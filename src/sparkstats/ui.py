"""Simple offline CLI viewer for analysis reports.

Usage:
    python -m sparkstats.ui view reports/analysis_report.json

This pretty-prints files, top characters, team standings, the roster
position leaders and the best capsules and capsule pairs. It reads local
JSON only.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from .export import character_row
from .metrics import MetricDirection, get_metric, get_rankable_metrics, get_table_metrics
from .utils.durations import format_battle_time, format_number

TOP_CHARACTERS_SHOWN = 10
TOP_SYNERGY_SHOWN = 3


def _print(s: str) -> None:
    # Isolate for easy testing/capture
    print(s)


def _fmt(value: Any, digits: int = 1) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:.{digits}f}"
    return str(value)


def sortable_character_metrics() -> list[str]:
    """Character-table metrics that have a better/worse direction."""
    rankable = get_rankable_metrics()
    return [m.key for m in get_table_metrics("character") if m.key in rankable]


def rank_characters(characters: list[dict[str, Any]], metric_key: str) -> list[dict[str, Any]]:
    """Order report characters by a catalog metric, best first.

    Characters without a value for the metric keep their order at the end.
    """
    metric = get_metric(metric_key)
    if metric is None or metric_key not in get_rankable_metrics():
        raise ValueError(f"Metric '{metric_key}' cannot be used for ranking")

    def value(character: dict[str, Any]) -> Any:
        return character_row(character).get(metric_key)

    present = [c for c in characters if value(c) is not None]
    missing = [c for c in characters if value(c) is None]
    higher_better = metric.direction == MetricDirection.HIGHER_BETTER
    return sorted(present, key=value, reverse=higher_better) + missing


def summarize_report(
    data: dict[str, Any],
    focus_character: str | None = None,
    sort_by: str | None = None,
) -> str:
    lines: list[str] = []
    files = data.get("files", [])
    characters = data.get("characters", [])
    teams = data.get("teams", [])
    positions = data.get("positions", [])
    ranking = None
    if sort_by:
        characters = rank_characters(characters, sort_by)
        ranking = get_metric(sort_by)

    # Header
    failed = [f for f in files if f.get("status") == "error"]
    lines.append("Battle Summary")
    lines.append("-")
    lines.append(
        f"Files: {len(files)} ({len(failed)} failed) | "
        f"Characters: {len(characters)} | Teams: {len(teams)}"
    )
    lines.append(f"Generated: {data.get('generated_at_utc', '?')}")

    # Characters
    lines.append("")
    if ranking is not None:
        lines.append(f"Top Characters by {ranking.display_name}")
    else:
        lines.append("Top Characters")
    lines.append("-")
    for c in characters[:TOP_CHARACTERS_SHOWN]:
        avg = c.get("averages", {})
        line = (
            f"- {c.get('name', '?')}: score {_fmt(avg.get('combat_performance_score'))} | "
            f"avg dmg {format_number(avg.get('avg_damage') or 0)} | "
            f"eff {_fmt(avg.get('efficiency'), 2)} | "
            f"win {_fmt(avg.get('win_rate'))}% | "
            f"matches {c.get('match_count', 0)}"
        )
        if ranking is not None:
            value = character_row(c).get(ranking.key)
            digits = 1 if ranking.decimals is None else ranking.decimals
            line += f" | {ranking.display_name} {_fmt(value, digits)}"
        lines.append(line)

    # Teams
    if teams:
        lines.append("")
        lines.append("Teams")
        lines.append("-")
        for t in teams:
            lines.append(
                f"- {t.get('name', '?')}: {t.get('wins', 0)}-{t.get('losses', 0)} "
                f"({_fmt(t.get('win_rate'))}%) | "
                f"top5 score {_fmt(t.get('top5_combat_score'))} | "
                f"eff {_fmt(t.get('damage_efficiency'), 2)}"
            )

    # Positions
    lines.append("")
    lines.append("Position Leaders")
    lines.append("-")
    for p in positions:
        rows = p.get("characters", [])
        leader = rows[0] if rows else None
        if leader:
            lines.append(
                f"{p.get('label', '?')}: {leader.get('name', '?')} "
                f"({format_number(leader.get('avg_damage') or 0)} avg dmg)"
            )
        else:
            lines.append(f"{p.get('label', '?')}: -")

    # Optional per-character section
    if focus_character:
        needle = focus_character.lower()
        match = next(
            (c for c in characters if needle in str(c.get("name", "")).lower()), None
        )
        lines.append("")
        if match is None:
            lines.append(f"Character Focus: no character matching '{focus_character}'")
        else:
            avg = match.get("averages", {})
            lines.append(f"Character Focus: {match.get('name')}")
            lines.append("-")
            lines.append(
                f"Teams: {', '.join(match.get('teams', [])) or '-'} | "
                f"Avg battle time {format_battle_time(avg.get('avg_battle_time') or 0)} | "
                f"DPS {_fmt(avg.get('dps'))}"
            )
            lines.append(
                f"Hit rates: S1 {_fmt(avg.get('s1_hit_rate'))} | "
                f"S2 {_fmt(avg.get('s2_hit_rate'))} | "
                f"Ult {_fmt(avg.get('ult_hit_rate'))}"
            )
            for build in match.get("builds", []):
                lines.append(
                    f"Build {build.get('label')}: used {build.get('usage_count')}x, "
                    f"win {_fmt(build.get('win_rate'))}%"
                )
            for form in match.get("forms", []):
                lines.append(
                    f"Form {form.get('form_number')} {form.get('name')}: "
                    f"avg dmg {format_number(form.get('avg_damage') or 0)}, "
                    f"DPS {_fmt(form.get('dps'))}"
                )

    synergy = data.get("capsule_synergy") or {}
    top_capsules = synergy.get("capsules", [])[:TOP_SYNERGY_SHOWN]
    top_pairs = synergy.get("pairs", [])[:TOP_SYNERGY_SHOWN]
    if top_capsules or top_pairs:
        lines.append("")
        lines.append("Capsule Synergy")
        lines.append("-")
        for cap in top_capsules:
            lines.append(
                f"- {cap.get('name', '?')}: score {_fmt(cap.get('composite_score'))} | "
                f"win {_fmt(cap.get('win_rate'))}% | used {cap.get('appearances', 0)}x"
            )
        for pair in top_pairs:
            lines.append(
                f"- {pair.get('capsule1_name', '?')} + {pair.get('capsule2_name', '?')} "
                f"({pair.get('synergy_type', '?')}): bonus {_fmt(pair.get('synergy_bonus'), 2)} | "
                f"used {pair.get('appearances', 0)}x"
            )

    warnings = data.get("warnings", [])
    if warnings:
        lines.append("")
        lines.append("Warnings")
        lines.append("-")
        lines.extend(f"- {w}" for w in warnings)

    return "\n".join(lines)


def cmd_view(path: Path, focus_character: str | None = None, sort_by: str | None = None) -> int:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        _print(f"Error: file not found: {path}")
        return 2
    except json.JSONDecodeError as e:
        _print(f"Error: invalid JSON in {path}: {e}")
        return 2

    _print(summarize_report(data, focus_character=focus_character, sort_by=sort_by))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Offline viewer for sparkstats JSON reports"
    )
    sub = parser.add_subparsers(dest="cmd", required=True)
    p_view = sub.add_parser("view", help="Pretty-print a JSON report")
    p_view.add_argument("json_path", type=str, help="Path to report JSON")
    p_view.add_argument(
        "--character",
        type=str,
        default=None,
        help="Show details for characters whose name contains this text",
    )
    p_view.add_argument(
        "--sort-by",
        choices=sortable_character_metrics(),
        default=None,
        help="Rank characters by this metric instead of combat score",
    )

    args = parser.parse_args(argv)
    if args.cmd == "view":
        return cmd_view(Path(args.json_path), focus_character=args.character, sort_by=args.sort_by)

    parser.print_help()
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

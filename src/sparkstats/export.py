"""CSV export of a generated report.

Writes two tables driven by the metric catalog:

- ``character_averages.csv``: one row per character
- ``match_details.csv``: one row per character appearance (requires a
  report generated with per-match rows)
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, Iterable

from .metrics import MetricDefinition, get_table_metrics
from .types import Position

logger = logging.getLogger(__name__)

CHARACTER_TABLE = "character_averages.csv"
MATCH_TABLE = "match_details.csv"


def _format_cell(metric: MetricDefinition, value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, tuple)):
        return "; ".join(str(v) for v in value)
    if isinstance(value, float) and metric.decimals is not None:
        return round(value, metric.decimals)
    return value


def character_row(character: dict[str, Any]) -> dict[str, Any]:
    """Flatten a report character entry into catalog keys."""
    builds = character.get("builds") or []
    totals = character.get("totals", {})
    return {
        **character.get("averages", {}),
        "name": character.get("name"),
        "team": character.get("primary_team"),
        "match_count": character.get("match_count", 0),
        "max_combo": totals.get("max_combo", 0),
        "max_combo_damage": totals.get("max_combo_damage", 0),
        "build": builds[0]["label"] if builds else None,
        "form_history": character.get("form_history", ""),
    }


def match_row(match: dict[str, Any]) -> dict[str, Any]:
    """Flatten a report match entry into catalog keys."""
    row = dict(match)
    position = match.get("position")
    row["position"] = Position(position).label if position in (1, 2, 3) else None
    return row


def _write_table(
    path: Path, metrics: list[MetricDefinition], rows: Iterable[dict[str, Any]]
) -> int:
    count = 0
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow([m.display_name for m in metrics])
        for row in rows:
            writer.writerow([_format_cell(m, row.get(m.key)) for m in metrics])
            count += 1
    return count


def export_report_csv(report: dict[str, Any], out_dir: Path) -> list[Path]:
    """Write the character and match tables for a report.

    Args:
        report: A report from ``generate_report``
        out_dir: Directory to write into (created if missing)

    Returns:
        Paths of the files written. The match table is skipped when the
        report has no per-match rows.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    characters = report.get("characters", [])
    written = []

    character_path = out_dir / CHARACTER_TABLE
    count = _write_table(
        character_path,
        get_table_metrics("character"),
        (character_row(c) for c in characters),
    )
    logger.info(f"Wrote {count} character rows to {character_path}")
    written.append(character_path)

    matches = [m for c in characters for m in c.get("matches", [])]
    if matches:
        match_path = out_dir / MATCH_TABLE
        count = _write_table(
            match_path, get_table_metrics("match"), (match_row(m) for m in matches)
        )
        logger.info(f"Wrote {count} match rows to {match_path}")
        written.append(match_path)
    else:
        logger.warning("Report has no per-match rows; skipping match details table")

    return written

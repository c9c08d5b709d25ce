"""Report generator orchestrating the full analysis pipeline.

Builds a schema-conformant JSON report from loaded battle files:
normalization → stat extraction → character / team / position aggregation.
Includes a helper for atomic file writes.
"""

from __future__ import annotations

import datetime as _dt
import json
import os
from pathlib import Path
from typing import Any, Iterable

from .analysis import aggregate_analysis
from .config import SparkStatsConfig
from .normalize import resolve_battle_results
from .reference import ReferenceData
from .schema import validate_report
from .types import BattleFile
from .version import get_schema_version


def _utc_now_iso() -> str:
    return (
        _dt.datetime.now(_dt.timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


def _file_entry(battle_file: BattleFile) -> dict[str, Any]:
    if not battle_file.ok:
        return {
            "name": battle_file.name,
            "status": "error",
            "error": battle_file.error or "No content",
            "battles": 0,
        }
    return {
        "name": battle_file.name,
        "status": "ok",
        "error": None,
        "battles": len(resolve_battle_results(battle_file.content)),
    }


def generate_report(
    files: Iterable[BattleFile],
    reference: ReferenceData,
    config: SparkStatsConfig | None = None,
    *,
    include_matches: bool | None = None,
) -> dict[str, Any]:
    """Generate a schema-conformant analysis report.

    Args:
        files: Loaded battle files, including ones that failed to parse
        reference: Character and item lookup tables
        config: Build rules and analysis options; defaults apply when None
        include_matches: Override ``config.analysis.include_matches``

    Returns:
        The validated report dictionary
    """
    config = config or SparkStatsConfig()
    files = list(files)
    rules = config.build_rules.to_rules()
    if include_matches is None:
        include_matches = config.analysis.include_matches

    analysis = aggregate_analysis(
        files,
        reference,
        rules=rules,
        top_builds=config.analysis.top_builds,
        top_team_characters=config.analysis.top_team_characters,
        include_matches=include_matches,
        min_pair_appearances=config.analysis.min_pair_appearances,
    )

    file_entries = [_file_entry(f) for f in files]
    warnings = [
        f"invalid_battle_file:{entry['name']}"
        for entry in file_entries
        if entry["status"] == "error"
    ]
    warnings.extend(analysis["warnings"])

    report = {
        "schema_version": get_schema_version(),
        "generated_at_utc": _utc_now_iso(),
        "build_rules": {
            "max_cost": rules.max_cost,
            "max_capsules": rules.max_capsules,
            "min_cost": rules.min_cost,
            "banned_capsules": list(rules.banned_capsules),
            "required_capsules": list(rules.required_capsules),
        },
        "files": file_entries,
        "characters": analysis["characters"],
        "teams": analysis["teams"],
        "positions": analysis["positions"],
        "team_groups": analysis["team_groups"],
        "capsule_synergy": analysis["capsule_synergy"],
        "warnings": warnings,
    }

    validate_report(report)
    return report


def write_report_atomically(
    report: dict[str, Any], out_path: Path, pretty: bool = False
) -> None:
    """Write JSON file atomically to avoid partial writes."""
    out_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = out_path.with_suffix(out_path.suffix + ".tmp")
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2 if pretty else None)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, out_path)
    finally:
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass

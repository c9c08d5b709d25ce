"""Discovery, loading and validation of battle-result JSON files."""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Iterable

from .errors import BattleFileNotFoundError
from .normalize import resolve_battle_results
from .types import BattleFile

logger = logging.getLogger(__name__)

INVALID_JSON = "Invalid JSON file"
BATTLE_FILE_PATTERN = "*.json"


def discover_battle_files(directory: Path) -> list[Path]:
    """All ``*.json`` files directly under a directory, sorted by name.

    Raises:
        BattleFileNotFoundError: If the directory does not exist
    """
    if not directory.is_dir():
        raise BattleFileNotFoundError(str(directory))
    return sorted(p for p in directory.glob(BATTLE_FILE_PATTERN) if p.is_file())


def expand_inputs(paths: Iterable[Path]) -> list[Path]:
    """Expand directories into their battle files, keeping file order."""
    expanded: list[Path] = []
    for path in paths:
        if path.is_dir():
            expanded.extend(discover_battle_files(path))
        else:
            expanded.append(path)
    return expanded


def load_battle_file(path: Path) -> BattleFile:
    """Read and decode one battle file.

    UTF-8 with or without a byte-order mark is accepted. Undecodable or
    malformed JSON is not an exception: the returned BattleFile carries
    ``error`` instead of content so the rest of a batch still loads.

    Raises:
        BattleFileNotFoundError: If the file does not exist
    """
    if not path.is_file():
        raise BattleFileNotFoundError(str(path))

    try:
        content = json.loads(path.read_bytes().decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Could not parse {path.name}: {e}")
        return BattleFile(name=path.name, error=INVALID_JSON)

    return BattleFile(name=path.name, content=content)


def load_battle_files(paths: Iterable[Path]) -> list[BattleFile]:
    files = [load_battle_file(path) for path in paths]
    failed = sum(1 for f in files if not f.ok)
    logger.info(f"Loaded {len(files) - failed} battle file(s), {failed} failed")
    return files


def file_sha256(path: Path) -> str:
    """Calculate SHA256 hash of a file."""
    sha256_hash = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            sha256_hash.update(chunk)
    return sha256_hash.hexdigest()


def ingest_battle_file(path: Path) -> dict:
    """Check a single battle file without aggregating it.

    Returns:
        Dictionary with size, hash, detected battles and status
    """
    battle_file = load_battle_file(path)
    warnings = []
    battles = 0
    sources: list[str] = []

    if battle_file.ok:
        results = resolve_battle_results(battle_file.content)
        battles = len(results)
        sources = [r.source for r in results]
        if not results:
            warnings.append("No characterRecord found")
        elif not any(r.has_outcome for r in results):
            warnings.append("No battleWinLose recorded; wins fall back to survival")
        if results and not any(r.teams for r in results):
            warnings.append("No team names recorded")

    if not battle_file.ok:
        status = "error"
    elif battles == 0:
        status = "degraded"
    else:
        status = "success"

    return {
        "file_path": str(path),
        "sha256": file_sha256(path),
        "size_bytes": path.stat().st_size,
        "battles": battles,
        "sources": sources,
        "error": battle_file.error,
        "warnings": warnings,
        "status": status,
    }

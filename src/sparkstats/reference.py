"""Reference data loaders: character names and equippable items.

Two CSV exports ship alongside the battle results:

- ``characters.csv`` with ``name,id`` columns (character id -> display name)
- ``capsules.csv`` with ``name, id, type, exclusiveTo, cost, effect`` columns,
  where ``type`` separates gameplay capsules from AI strategies and cosmetic
  items (costumes, Sparking BGM)

An optional capsule metadata JSON adds build types and effect tags to the
capsule rows.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .errors import ReferenceDataError

logger = logging.getLogger(__name__)

ITEM_TYPE_CAPSULE = "Capsule"
ITEM_TYPE_AI = "AI"
ITEM_TYPE_COSTUME = "Costume"
ITEM_TYPE_BGM = "Sparking BGM"


@dataclass(frozen=True)
class Capsule:
    """One row of the item reference table."""

    id: str
    name: str
    type: str
    cost: int = 0
    exclusive_to: str = ""
    effect: str = ""
    build_type: str = "Unknown"
    effect_tags: tuple[str, ...] = ()


@dataclass
class ItemCatalog:
    """Items split by type, each keyed by item id."""

    capsules: dict[str, Capsule] = field(default_factory=dict)
    ai_strategies: dict[str, Capsule] = field(default_factory=dict)
    costumes: dict[str, Capsule] = field(default_factory=dict)
    bgm: dict[str, Capsule] = field(default_factory=dict)


@dataclass
class ReferenceData:
    """Lookup tables consumed by the stat extractor and aggregators."""

    characters: dict[str, str] = field(default_factory=dict)
    items: ItemCatalog = field(default_factory=ItemCatalog)

    @property
    def capsules(self) -> dict[str, Capsule]:
        return self.items.capsules

    @property
    def ai_strategies(self) -> dict[str, Capsule]:
        return self.items.ai_strategies

    def character_name(self, char_id: str | None) -> str:
        """Display name for a character id; ``-`` when unknown."""
        if not char_id:
            return "-"
        return self.characters.get(char_id) or "-"


def normalize_build_type(build_type: str | None) -> str:
    """Convert metadata build types to display form: ``ki-blast`` -> ``Ki Blast``."""
    if not build_type:
        return "Unknown"
    words = build_type.replace("-", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words) or "Unknown"


def _parse_cost(raw: str | None) -> int:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return 0


def _rows(text: str) -> list[list[str]]:
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    return [row for row in reader if any(cell.strip() for cell in row)]


def parse_characters_csv(text: str) -> dict[str, str]:
    """Parse ``characters.csv`` into an id -> name map.

    The first row is a header. Rows without an id are ignored.
    """
    if not text:
        return {}

    mapping: dict[str, str] = {}
    for row in _rows(text)[1:]:
        if len(row) < 2:
            continue
        name, char_id = row[0].strip(), row[1].strip()
        if char_id:
            mapping[char_id] = name
    return mapping


def _find_column(headers: list[str], predicate) -> int | None:
    for idx, header in enumerate(headers):
        if predicate(header.strip().lower()):
            return idx
    return None


def parse_item_csv(text: str) -> ItemCatalog:
    """Parse ``capsules.csv`` and split its rows by item type.

    Columns are located by header name, so column order and extra columns
    do not matter. Rows missing an id or a name are skipped. Types other
    than Capsule, AI, Costume and Sparking BGM are dropped.
    """
    catalog = ItemCatalog()
    rows = _rows(text) if text else []
    if len(rows) < 2:
        logger.warning("Item CSV has no data rows")
        return catalog

    headers = rows[0]
    name_idx = _find_column(headers, lambda h: "name" in h)
    id_idx = _find_column(headers, lambda h: h == "id")
    type_idx = _find_column(headers, lambda h: h == "type")
    exclusive_idx = _find_column(headers, lambda h: "exclusive" in h)
    cost_idx = _find_column(headers, lambda h: h == "cost")
    effect_idx = _find_column(headers, lambda h: h == "effect")
    build_idx = _find_column(headers, lambda h: "build" in h)

    def cell(row: list[str], idx: int | None) -> str:
        if idx is None or idx >= len(row):
            return ""
        return row[idx].strip()

    buckets = {
        ITEM_TYPE_CAPSULE: catalog.capsules,
        ITEM_TYPE_AI: catalog.ai_strategies,
        ITEM_TYPE_COSTUME: catalog.costumes,
        ITEM_TYPE_BGM: catalog.bgm,
    }

    for row in rows[1:]:
        item_id = cell(row, id_idx)
        name = cell(row, name_idx)
        if not item_id or not name:
            continue

        item_type = cell(row, type_idx)
        bucket = buckets.get(item_type)
        if bucket is None:
            continue

        bucket[item_id] = Capsule(
            id=item_id,
            name=name,
            type=item_type,
            cost=_parse_cost(cell(row, cost_idx)),
            exclusive_to=cell(row, exclusive_idx),
            effect=cell(row, effect_idx),
            build_type=normalize_build_type(cell(row, build_idx)),
        )

    return catalog


def apply_capsule_metadata(catalog: ItemCatalog, metadata: dict[str, Any]) -> ItemCatalog:
    """Enrich capsules with build types and effect tags from metadata JSON.

    Expected shape: ``{"capsules": {id: {"buildType", "effect", "effectTags"}}}``.
    Capsules without a metadata entry are left untouched.
    """
    entries = (metadata or {}).get("capsules") or {}
    if not isinstance(entries, dict):
        return catalog

    enriched: dict[str, Capsule] = {}
    for capsule_id, capsule in catalog.capsules.items():
        meta = entries.get(capsule_id)
        if not isinstance(meta, dict):
            enriched[capsule_id] = capsule
            continue
        enriched[capsule_id] = replace(
            capsule,
            build_type=normalize_build_type(meta.get("buildType")),
            effect=meta.get("effect") or capsule.effect,
            effect_tags=tuple(meta.get("effectTags") or ()),
        )

    catalog.capsules = enriched
    return catalog


def _read_text(path: Path) -> str:
    try:
        return Path(path).read_text(encoding="utf-8-sig")
    except OSError as e:
        raise ReferenceDataError(str(path), e) from e


def load_reference_data(
    characters_path: Path | None,
    capsules_path: Path | None,
    metadata_path: Path | None = None,
) -> ReferenceData:
    """Load reference tables from disk.

    Any path may be None, in which case that table is empty and names or
    capsules simply resolve to raw ids / nothing.

    Raises:
        ReferenceDataError: If a given file is missing, unreadable or the
            metadata file is not valid JSON.
    """
    characters: dict[str, str] = {}
    catalog = ItemCatalog()

    if characters_path is not None:
        characters = parse_characters_csv(_read_text(characters_path))
        logger.info(f"Loaded {len(characters)} characters from {characters_path}")

    if capsules_path is not None:
        catalog = parse_item_csv(_read_text(capsules_path))
        logger.info(
            f"Loaded {len(catalog.capsules)} capsules and "
            f"{len(catalog.ai_strategies)} AI strategies from {capsules_path}"
        )

    if metadata_path is not None:
        try:
            metadata = json.loads(_read_text(metadata_path))
        except json.JSONDecodeError as e:
            raise ReferenceDataError(str(metadata_path), e) from e
        catalog = apply_capsule_metadata(catalog, metadata)

    return ReferenceData(characters=characters, items=catalog)

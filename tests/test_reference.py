"""Tests for reference CSV and metadata loading."""

import json

import pytest

from sparkstats.errors import ReferenceDataError
from sparkstats.reference import (
    ReferenceData,
    apply_capsule_metadata,
    load_reference_data,
    normalize_build_type,
    parse_characters_csv,
    parse_item_csv,
)

CAPSULES_CSV = """name,id,type,exclusiveTo,cost,effect
Melee Up,00_0_0001,Capsule,,5,Increases melee damage
Blast Boost,00_0_0003,Capsule,,4,Increases blast damage
Aggressive AI,01_0_0001,AI,,0,Attacks often
Training Gi,02_0_0001,Costume,Goku,0,
Battle Theme,03_0_0001,Sparking BGM,,0,
Mystery,04_0_0001,Unknown,,0,
,00_0_0009,Capsule,,3,No name
"""


def test_parse_characters_csv_skips_header_and_blank_ids():
    text = "name,id\nGoku,0000_00\nVegeta,0100_00\nNobody,\n"
    assert parse_characters_csv(text) == {"0000_00": "Goku", "0100_00": "Vegeta"}


def test_parse_characters_csv_strips_byte_order_mark():
    text = "\ufeffname,id\nGoku,0000_00\n"
    assert parse_characters_csv(text) == {"0000_00": "Goku"}


def test_parse_item_csv_splits_items_by_type():
    catalog = parse_item_csv(CAPSULES_CSV)

    assert set(catalog.capsules) == {"00_0_0001", "00_0_0003"}
    assert set(catalog.ai_strategies) == {"01_0_0001"}
    assert set(catalog.costumes) == {"02_0_0001"}
    assert set(catalog.bgm) == {"03_0_0001"}
    assert catalog.capsules["00_0_0001"].cost == 5
    assert catalog.costumes["02_0_0001"].exclusive_to == "Goku"


def test_parse_item_csv_finds_columns_by_header():
    text = "cost,type,id,name,build\n3,Capsule,00_0_0007,Ki Saver,ki-efficiency\n"
    capsule = parse_item_csv(text).capsules["00_0_0007"]
    assert capsule.name == "Ki Saver"
    assert capsule.cost == 3
    assert capsule.build_type == "Ki Efficiency"


def test_parse_item_csv_without_rows_is_empty():
    catalog = parse_item_csv("name,id,type\n")
    assert catalog.capsules == {}


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("ki-blast", "Ki Blast"), ("melee", "Melee"), ("", "Unknown"), (None, "Unknown")],
)
def test_normalize_build_type(raw, expected):
    assert normalize_build_type(raw) == expected


def test_apply_capsule_metadata_sets_build_type_and_tags():
    catalog = parse_item_csv(CAPSULES_CSV)
    metadata = {
        "capsules": {
            "00_0_0001": {"buildType": "melee", "effectTags": ["damage", "rush"]},
        }
    }

    enriched = apply_capsule_metadata(catalog, metadata)

    assert enriched.capsules["00_0_0001"].build_type == "Melee"
    assert enriched.capsules["00_0_0001"].effect_tags == ("damage", "rush")
    assert enriched.capsules["00_0_0003"].build_type == "Unknown"


def test_character_name_falls_back_to_raw_id():
    reference = ReferenceData(characters={"0000_00": "Goku"})
    assert reference.character_name("0000_00") == "Goku"
    assert reference.character_name("9999_00") == "-"
    assert reference.character_name(None) == "-"


def test_load_reference_data_reads_all_files(tmp_path):
    characters = tmp_path / "characters.csv"
    characters.write_text("name,id\nGoku,0000_00\n", encoding="utf-8")
    capsules = tmp_path / "capsules.csv"
    capsules.write_text(CAPSULES_CSV, encoding="utf-8")
    metadata = tmp_path / "meta.json"
    metadata.write_text(json.dumps({"capsules": {"00_0_0003": {"buildType": "blast"}}}))

    reference = load_reference_data(characters, capsules, metadata)

    assert reference.characters == {"0000_00": "Goku"}
    assert reference.capsules["00_0_0003"].build_type == "Blast"
    assert "01_0_0001" in reference.ai_strategies


def test_load_reference_data_without_paths_is_empty():
    reference = load_reference_data(None, None)
    assert reference.characters == {}
    assert reference.capsules == {}


def test_load_reference_data_missing_file_raises(tmp_path):
    with pytest.raises(ReferenceDataError) as exc_info:
        load_reference_data(tmp_path / "missing.csv", None)
    assert "suggested_action" in exc_info.value.details


def test_load_reference_data_invalid_metadata_raises(tmp_path):
    metadata = tmp_path / "meta.json"
    metadata.write_text("{not json")
    with pytest.raises(ReferenceDataError):
        load_reference_data(None, None, metadata)

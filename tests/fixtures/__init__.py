"""Shared test fixtures and builders for sparkstats tests."""

from .builders import (
    CAPSULES,
    CHARACTERS,
    battle_time_string,
    make_battle_document,
    make_battle_file,
    make_character,
    make_character_record,
    make_counters,
    make_reference,
    sample_documents,
    write_reference_csvs,
    write_sample_battles,
)

__all__ = [
    "CAPSULES",
    "CHARACTERS",
    "battle_time_string",
    "make_battle_document",
    "make_battle_file",
    "make_character",
    "make_character_record",
    "make_counters",
    "make_reference",
    "sample_documents",
    "write_reference_csvs",
    "write_sample_battles",
]

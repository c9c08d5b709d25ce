# src/sparkstats/config_templates.py
"""Configuration file templates."""

CONFIG_TEMPLATE = """# sparkstats configuration
# Relative paths are resolved against this file's directory.

[reference]
# Character id -> name table (columns: name, id)
characters_csv = "characters.csv"
# Item table (columns: name, id, type, exclusiveTo, cost, effect)
capsules_csv = "capsules.csv"
# Optional capsule build types and effect tags (JSON)
# capsule_metadata = "capsule_metadata.json"

[paths]
# Folder of exported battle-result JSON files
battle_dir = "BR_Data"
# Where reports and CSV tables are written
output_dir = "reports"

[build_rules]
max_cost = 20
max_capsules = 7
# min_cost = 10
banned_capsules = []
required_capsules = []

[analysis]
# Builds kept per character
top_builds = 3
# Characters counted in team headline figures
top_team_characters = 5
# Include one row per character appearance in JSON reports
include_matches = false
# Appearances a capsule pair needs before it is listed in the synergy section
min_pair_appearances = 3
"""

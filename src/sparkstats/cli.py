"""Command-line interface for sparkstats."""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .config import ConfigError, SparkStatsConfig, get_default_config_path, load_config
from .config_templates import CONFIG_TEMPLATE
from .errors import SparkStatsError
from .export import export_report_csv
from .ingest import expand_inputs, ingest_battle_file, load_battle_files
from .reference import load_reference_data
from .report import generate_report, write_report_atomically
from .ui import cmd_view, sortable_character_metrics

REPORT_FILENAME = "analysis_report.json"


def _load_config(args) -> SparkStatsConfig:
    """Config from --config, else the default path if present, else defaults.

    Reference file flags override the config's [reference] section.
    """
    if args.config:
        config = load_config(Path(args.config))
    else:
        default_path = get_default_config_path()
        config = load_config(default_path) if default_path.exists() else SparkStatsConfig()

    if args.characters:
        config.reference.characters_csv = Path(args.characters)
    if args.capsules:
        config.reference.capsules_csv = Path(args.capsules)
    if args.metadata:
        config.reference.capsule_metadata = Path(args.metadata)

    config.validate()
    return config


def _input_paths(args, config: SparkStatsConfig) -> list[Path]:
    paths = [Path(p) for p in args.paths] or [config.paths.battle_dir]
    return expand_inputs(paths)


def _load_inputs(args):
    config = _load_config(args)
    reference = load_reference_data(
        config.reference.characters_csv,
        config.reference.capsules_csv,
        config.reference.capsule_metadata,
    )
    files = load_battle_files(_input_paths(args, config))
    return config, reference, files


def _print_error(e: SparkStatsError, as_json: bool = False) -> None:
    if as_json:
        error_result = {
            "error": {
                "type": type(e).__name__,
                "message": str(e),
                "details": getattr(e, "details", {}),
            },
            "status": "error",
        }
        print(json.dumps(error_result, indent=2))
    else:
        print(f"Error: {e}", file=sys.stderr)
        if "suggested_action" in e.details:
            print(f"Suggestion: {e.details['suggested_action']}", file=sys.stderr)


def handle_ingest_command(args) -> int:
    """Handle the ingest subcommand.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        config = _load_config(args)
        results = [ingest_battle_file(path) for path in _input_paths(args, config)]
    except SparkStatsError as e:
        _print_error(e, args.json)
        return 1

    if args.json:
        print(json.dumps(results, indent=2))
    else:
        for result in results:
            print(f"{result['file_path']}: {result['status'].upper()}")
            print(f"  SHA256: {result['sha256']}")
            print(f"  Size: {result['size_bytes']:,} bytes | Battles: {result['battles']}")
            if result["error"]:
                print(f"  Error: {result['error']}")
            for warning in result["warnings"]:
                print(f"  Warning: {warning}")

    return 1 if any(r["status"] == "error" for r in results) else 0


def handle_analyze_command(args) -> int:
    try:
        config, reference, files = _load_inputs(args)
        report = generate_report(
            files, reference, config, include_matches=args.include_matches or None
        )
    except SparkStatsError as e:
        _print_error(e)
        return 1

    out_dir = Path(args.out) if args.out else config.paths.output_dir
    out_file = out_dir / REPORT_FILENAME
    write_report_atomically(report, out_file, pretty=args.pretty)

    print(str(out_file))
    return 0


def handle_export_command(args) -> int:
    try:
        config, reference, files = _load_inputs(args)
        report = generate_report(files, reference, config, include_matches=True)
    except SparkStatsError as e:
        _print_error(e)
        return 1

    out_dir = Path(args.out) if args.out else config.paths.output_dir
    for path in export_report_csv(report, out_dir):
        print(str(path))
    return 0


def handle_config_command(args) -> int:
    config_path = Path(args.path) if args.path else get_default_config_path()

    if args.init:
        if config_path.exists() and not args.force:
            print(f"Config already exists: {config_path}", file=sys.stderr)
            print("Use --force to overwrite", file=sys.stderr)
            return 1
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(CONFIG_TEMPLATE, encoding="utf-8")
        print(f"Created config template at {config_path}")
        return 0

    try:
        config = load_config(config_path)
        config.validate()
    except ConfigError as e:
        _print_error(e)
        return 1

    print(f"Config is valid: {config_path}")
    return 0


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=str, help="Path to config.toml")
    parser.add_argument("--characters", type=str, help="Path to characters.csv")
    parser.add_argument("--capsules", type=str, help="Path to capsules.csv")
    parser.add_argument("--metadata", type=str, help="Path to capsule metadata JSON")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log progress and skipped data to stderr",
    )
    parser.add_argument(
        "paths",
        nargs="*",
        help="Battle JSON files or directories (default: [paths] battle_dir)",
    )


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="sparkstats",
        description="Batch analytics for exported fighting-game battle results",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"sparkstats {__version__}",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    ingest_parser = subparsers.add_parser(
        "ingest", help="Check battle files without aggregating them"
    )
    _add_common_options(ingest_parser)
    ingest_parser.add_argument(
        "--json",
        action="store_true",
        help="Output results in machine-readable JSON format",
    )

    analyze_parser = subparsers.add_parser(
        "analyze", help="Aggregate battle files and write a JSON report"
    )
    _add_common_options(analyze_parser)
    analyze_parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Directory to write the report into (default: [paths] output_dir)",
    )
    analyze_parser.add_argument(
        "--pretty",
        action="store_true",
        help="Pretty-print JSON output",
    )
    analyze_parser.add_argument(
        "--include-matches",
        action="store_true",
        help="Include one row per character appearance",
    )

    export_parser = subparsers.add_parser(
        "export", help="Write character and match tables as CSV"
    )
    _add_common_options(export_parser)
    export_parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Directory to write CSV files into (default: [paths] output_dir)",
    )

    view_parser = subparsers.add_parser("view", help="Summarize a JSON report")
    view_parser.add_argument("json_path", type=str, help="Path to report JSON")
    view_parser.add_argument(
        "--character",
        type=str,
        default=None,
        help="Show details for characters whose name contains this text",
    )
    view_parser.add_argument(
        "--sort-by",
        choices=sortable_character_metrics(),
        default=None,
        help="Rank characters by this metric instead of combat score",
    )

    config_parser = subparsers.add_parser("config", help="Create or validate a config file")
    config_parser.add_argument("--path", type=str, default=None, help="Config file path")
    config_action = config_parser.add_mutually_exclusive_group(required=True)
    config_action.add_argument("--init", action="store_true", help="Write a config template")
    config_action.add_argument("--validate", action="store_true", help="Validate the config")
    config_parser.add_argument(
        "--force", action="store_true", help="Overwrite an existing config with --init"
    )

    args = parser.parse_args(argv)

    if getattr(args, "verbose", False):
        logging.basicConfig(
            level=logging.INFO, format="%(levelname)s %(name)s: %(message)s"
        )

    if args.command == "ingest":
        return handle_ingest_command(args)
    elif args.command == "analyze":
        return handle_analyze_command(args)
    elif args.command == "export":
        return handle_export_command(args)
    elif args.command == "config":
        return handle_config_command(args)
    elif args.command == "view":
        return 0 if cmd_view(Path(args.json_path), args.character, args.sort_by) == 0 else 1
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())

"""Command line interface for the legacy migrator."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .entities import ENTITIES, dependency_order, get_entity
from .errors import MigrationError
from .models.migration import MigrationConfig, MigrationScope, RunMode
from .orchestrator import MigrationOrchestrator
from .reporting import ConsoleReport

logger = logging.getLogger(__name__)


def _add_connection_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Path to migration config JSON file")
    parser.add_argument("--source-dir", help="Read legacy tables from CSV/JSON exports in this directory")
    parser.add_argument("--map-dir", help="Directory for identity map files")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")


def _add_run_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--scope", required=True, help="Legacy store id")
    parser.add_argument("--target-scope", help="Destination store id (defaults to --scope)")
    parser.add_argument("--dry-run", action="store_true", help="Compute everything, write nothing")
    parser.add_argument("--force", action="store_true", help="Update existing records whose tracked fields differ")
    parser.add_argument("--limit", type=int, default=0, help="Maximum rows per entity (0 = unlimited)")
    parser.add_argument("--chunk-size", type=int, help="Rows fetched per source query")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="legacy-migrate",
        description="Legacy Migrator - idempotent migration of legacy store data"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Single entity
    run_parser = subparsers.add_parser("run", help="Migrate one entity")
    run_parser.add_argument("entity", help="Entity name (see 'entities')")
    _add_run_args(run_parser)
    _add_connection_args(run_parser)

    # Pipeline
    all_parser = subparsers.add_parser("all", help="Migrate every entity in dependency order")
    all_parser.add_argument("--only", help="Comma separated subset of entities")
    _add_run_args(all_parser)
    _add_connection_args(all_parser)

    # Entity listing
    subparsers.add_parser("entities", help="List entities and their dependencies")

    # Identity maps
    maps_parser = subparsers.add_parser("maps", help="Inspect persisted identity maps")
    maps_sub = maps_parser.add_subparsers(dest="maps_command", help="Map commands")
    list_parser = maps_sub.add_parser("list", help="List persisted maps")
    _add_connection_args(list_parser)
    show_parser = maps_sub.add_parser("show", help="Print one map")
    show_parser.add_argument("entity", help="Entity name")
    show_parser.add_argument("--scope", required=True, help="Legacy store id")
    show_parser.add_argument("--target-scope", help="Destination store id (defaults to --scope)")
    _add_connection_args(show_parser)

    # Preview
    preview_parser = subparsers.add_parser("preview", help="Transform sample rows without a database")
    preview_parser.add_argument("entity", help="Entity name")
    preview_parser.add_argument("--input", required=True, help="JSON file with one row or a list of rows")
    preview_parser.add_argument("--scope", help="Resolve foreign keys with this scope's persisted maps")
    preview_parser.add_argument("--target-scope", help="Destination store id")
    _add_connection_args(preview_parser)

    return parser


def load_config(args) -> MigrationConfig:
    """Config file, then environment, then command line flags."""
    config_path = getattr(args, "config", None)
    config = MigrationConfig.from_json_file(config_path) if config_path else MigrationConfig()

    if getattr(args, "source_dir", None):
        config.source_dir = args.source_dir
    config = MigrationConfig.from_env(config)

    if getattr(args, "map_dir", None):
        config.map_dir = args.map_dir
    if getattr(args, "chunk_size", None):
        config.chunk_size = args.chunk_size
    return config


def _scope(args) -> MigrationScope:
    return MigrationScope(source=args.scope, target=args.target_scope)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        if args.command == "run":
            return run_entity(args)
        elif args.command == "all":
            return run_all(args)
        elif args.command == "entities":
            return list_entities(args)
        elif args.command == "maps" and args.maps_command == "list":
            return list_maps(args)
        elif args.command == "maps" and args.maps_command == "show":
            return show_map(args)
        elif args.command == "preview":
            return run_preview(args)
    except MigrationError as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1

    parser.print_help()
    return 1


def run_entity(args) -> int:
    """Migrate one entity."""
    get_entity(args.entity)
    config = load_config(args)
    report = ConsoleReport()
    orchestrator = MigrationOrchestrator(config, reports=[report])

    mode = RunMode.from_flags(dry_run=args.dry_run, force=args.force)
    try:
        orchestrator.run_entity(args.entity, _scope(args), mode=mode, limit=args.limit)
    except Exception as e:
        # Already rendered by the report when the run got far enough to have a summary
        logger.debug(f"Run failed: {e!r}")
        if not orchestrator.history:
            raise
        return 1
    return 0


def run_all(args) -> int:
    """Migrate every entity (or --only a subset) in dependency order."""
    entities = [e.strip() for e in args.only.split(",") if e.strip()] if args.only else None
    if entities:
        for entity in entities:
            get_entity(entity)

    config = load_config(args)
    report = ConsoleReport()
    orchestrator = MigrationOrchestrator(config, reports=[report])

    mode = RunMode.from_flags(dry_run=args.dry_run, force=args.force)
    summaries = orchestrator.run_all(_scope(args), mode=mode, limit=args.limit, entities=entities)
    report.render_pipeline(summaries)

    return 0 if all(s.succeeded for s in summaries) else 1


def list_entities(args) -> int:
    """List registered entities in pipeline order."""
    print(f"\n{'Entity':<20}{'Source':<24}{'Target':<26}Depends on")
    print("-" * 90)
    for name in dependency_order():
        mapping = ENTITIES[name]
        print(
            f"{name:<20}{mapping.source_table:<24}{mapping.target_table:<26}"
            f"{', '.join(mapping.dependencies) or '-'}"
        )
    return 0


def list_maps(args) -> int:
    """List persisted identity maps."""
    orchestrator = MigrationOrchestrator(load_config(args))
    maps = orchestrator.mapper.list_maps()
    if not maps:
        print("No identity maps saved yet")
        return 0

    print(f"\n{'Entity':<20}{'Scope':<10}{'Size':>8}  Location")
    for entry in maps:
        print(f"{entry['entity']:<20}{entry['scope']:<10}{entry['size']:>8}  {entry['location']}")
    return 0


def show_map(args) -> int:
    """Print one identity map as JSON."""
    get_entity(args.entity)
    orchestrator = MigrationOrchestrator(load_config(args))
    identity_map = orchestrator.mapper.load(args.entity, _scope(args).key)
    print(json.dumps(identity_map.to_dict(), indent=2))
    return 0


def run_preview(args) -> int:
    """Preview the transformation of sample rows."""
    with open(args.input) as f:
        input_data = json.load(f)

    if not isinstance(input_data, list):
        input_data = [input_data]

    orchestrator = MigrationOrchestrator(load_config(args))
    scope = _scope(args) if args.scope else None
    for result in orchestrator.preview(args.entity, input_data, scope):
        print(json.dumps(result, indent=2, default=str))
        print("-" * 40)
    return 0


if __name__ == "__main__":
    sys.exit(main())

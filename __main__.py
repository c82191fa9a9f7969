"""CLI entry point for sitecomposer.

This module acts as the central entry point for the project's CLI tools.
It delegates commands to the composition engine or runs specific tasks.
"""

import argparse
import json
import subprocess
import sys
from typing import Any

from dotenv import load_dotenv

from src.config import get_db_path, get_log_level
from src.core import get_logger, setup_logging

# Load environment variables from .env file
load_dotenv()

logger = get_logger("cli")

SEED_HINT = "Run 'python . seed' first if the catalog is empty."


def _engine(args: argparse.Namespace):
    from src.engine import CompositionEngine

    return CompositionEngine(db_path=getattr(args, "db", None))


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _run(func, args: argparse.Namespace) -> int:
    """Run a command, reporting domain errors as a one-line message."""
    from src.mcp import DOMAIN_ERRORS

    try:
        return func(args)
    except DOMAIN_ERRORS as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


def _parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=f"python . {prog}", description=description)
    parser.add_argument("--db", help="SQLite database path (default: COMPOSER_DB_PATH)")
    return parser


# =============================================================================
# Catalog Commands
# =============================================================================


def cmd_seed(args: argparse.Namespace) -> int:
    """Handle the seed command."""
    engine = _engine(args)
    added = engine.seed()
    created = []
    if args.defaults:
        created = [engine.create_default_header(), engine.create_default_footer()]
    print(f"Seeded {len(added)} definitions into {get_db_path(args.db)}")
    for container in created:
        print(f"  created {container.kind.value}: {container.id}")
    engine.close()
    return 0


def cmd_definitions(args: argparse.Namespace) -> int:
    """Handle the definitions command."""
    engine = _engine(args)
    definitions = engine.registry.list_all() if args.all else engine.palette(args.category)
    if args.json:
        _print_json([d.to_dict() for d in definitions])
    else:
        for definition in definitions:
            flags = ("system " if definition.is_system else "") + (
                "" if definition.is_active else "inactive"
            )
            print(
                f"{definition.slug:<16} {definition.category:<12} "
                f"{len(definition.properties):>2} props  {flags}".rstrip()
            )
    engine.close()
    return 0


# =============================================================================
# Container Commands
# =============================================================================


def cmd_containers(args: argparse.Namespace) -> int:
    """Handle the containers command."""
    engine = _engine(args)
    for container in engine.list_containers(args.kind):
        active = sum(1 for i in container.instances if i.is_active)
        print(
            f"{container.id}  {container.kind.value:<6} {container.name!r} "
            f"columns={container.columns} active={active}/{len(container.instances)}"
        )
    engine.close()
    return 0


def cmd_create(args: argparse.Namespace) -> int:
    """Handle the create command."""
    engine = _engine(args)
    container = engine.create_container(args.kind, name=args.name, columns=args.columns)
    print(container.id)
    engine.close()
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Handle the show command: instance ids per bucket."""
    from src.layout import bucket_keys, bucket_label, bucket_members

    engine = _engine(args)
    container = engine.get_container(args.container)
    print(f"{container.kind.value} {container.name!r} ({container.columns} columns)")
    for key in bucket_keys(container):
        print(f"  [{bucket_label(key)}]")
        for member in bucket_members(container, *key):
            print(f"    {member.order}. {member.id}  {member.type_tag.value}  {member.name}")
    inactive = [i for i in container.instances if not i.is_active]
    if inactive:
        print("  [inactive]")
        for instance in inactive:
            print(f"    -  {instance.id}  {instance.type_tag.value}  {instance.position}")
    engine.close()
    return 0


def cmd_resolve(args: argparse.Namespace) -> int:
    """Handle the resolve command."""
    engine = _engine(args)
    resolved = engine.resolve_container(
        args.container, include_inactive=args.inactive, visibility=args.visibility
    )
    _print_json([r.to_dict() for r in resolved])
    engine.close()
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Handle the validate command."""
    engine = _engine(args)
    errors = engine.validate_container(args.container)
    engine.close()
    if not errors:
        print("Container is valid")
        return 0
    for error in errors:
        print(f"{error.error_type:<20} {error.instance_id}  {error.message}")
    return 1


# =============================================================================
# Edit Commands
# =============================================================================


def cmd_add(args: argparse.Namespace) -> int:
    """Handle the add command."""
    engine = _engine(args)
    settings = json.loads(args.settings) if args.settings else None
    if args.slug:
        instance = engine.add_from_palette(
            args.container,
            args.slug,
            args.position,
            args.column,
            args.index,
            settings=settings,
        )
    else:
        instance = engine.add_instance(
            args.container,
            args.tag,
            args.position,
            args.column,
            args.index,
            overrides=settings,
        )
    print(instance.id)
    engine.close()
    return 0


def cmd_move(args: argparse.Namespace) -> int:
    """Handle the move command."""
    engine = _engine(args)
    instance = engine.move(
        args.container, args.instance, args.position, args.column, args.index
    )
    logger.info(f"Moved {instance.id} to {instance.position} at {instance.order}")
    engine.close()
    return 0


def cmd_remove(args: argparse.Namespace) -> int:
    """Handle the remove command."""
    engine = _engine(args)
    engine.remove(args.container, args.instance)
    engine.close()
    return 0


def cmd_reorder(args: argparse.Namespace) -> int:
    """Handle the reorder command."""
    engine = _engine(args)
    engine.reorder_bucket(args.container, args.position, args.column, args.ids)
    engine.close()
    return 0


# =============================================================================
# Command Handlers
# =============================================================================


def handle_seed_command(argv: list[str]) -> int:
    parser = _parser("seed", "Register the built-in component definitions")
    parser.add_argument(
        "--defaults",
        action="store_true",
        help="Also create the default header and footer",
    )
    return _run(cmd_seed, parser.parse_args(argv))


def handle_definitions_command(argv: list[str]) -> int:
    parser = _parser("definitions", "List the component palette")
    parser.add_argument("--category", "-c", help="Only this category")
    parser.add_argument("--all", "-a", action="store_true", help="Include inactive")
    parser.add_argument("--json", action="store_true", help="Print full JSON")
    return _run(cmd_definitions, parser.parse_args(argv))


def handle_containers_command(argv: list[str]) -> int:
    parser = _parser("containers", "List containers")
    parser.add_argument("--kind", "-k", choices=["page", "header", "footer"])
    return _run(cmd_containers, parser.parse_args(argv))


def handle_create_command(argv: list[str]) -> int:
    parser = _parser("create", "Create an empty container")
    parser.add_argument("kind", choices=["page", "header", "footer"])
    parser.add_argument("--name", "-n", default="")
    parser.add_argument("--columns", type=int)
    return _run(cmd_create, parser.parse_args(argv))


def handle_show_command(argv: list[str]) -> int:
    parser = _parser("show", "Show a container's buckets")
    parser.add_argument("container", help="Container id")
    return _run(cmd_show, parser.parse_args(argv))


def handle_resolve_command(argv: list[str]) -> int:
    parser = _parser("resolve", "Resolve a container to render-ready props")
    parser.add_argument("container", help="Container id")
    parser.add_argument("--inactive", action="store_true", help="Include inactive")
    parser.add_argument("--visibility", choices=["desktop", "mobile"])
    return _run(cmd_resolve, parser.parse_args(argv))


def handle_validate_command(argv: list[str]) -> int:
    parser = _parser("validate", "Check a stored container for layout problems")
    parser.add_argument("container", help="Container id")
    return _run(cmd_validate, parser.parse_args(argv))


def _add_target_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("position", help="Target position (e.g. header, column_2)")
    parser.add_argument("--column", type=int, help="Column number")
    parser.add_argument("--index", "-i", type=int, help="1-based slot (default: end)")


def handle_add_command(argv: list[str]) -> int:
    parser = _parser("add", "Place a component")
    parser.add_argument("container", help="Container id")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--slug", "-s", help="Palette definition slug")
    source.add_argument("--tag", "-t", help="Built-in tag (logo, menu, text, ...)")
    _add_target_arguments(parser)
    parser.add_argument("--settings", help="Initial settings as JSON")
    return _run(cmd_add, parser.parse_args(argv))


def handle_move_command(argv: list[str]) -> int:
    parser = _parser("move", "Move a component within its container")
    parser.add_argument("container", help="Container id")
    parser.add_argument("instance", help="Instance id")
    _add_target_arguments(parser)
    return _run(cmd_move, parser.parse_args(argv))


def handle_remove_command(argv: list[str]) -> int:
    parser = _parser("remove", "Delete a component")
    parser.add_argument("container", help="Container id")
    parser.add_argument("instance", help="Instance id")
    return _run(cmd_remove, parser.parse_args(argv))


def handle_reorder_command(argv: list[str]) -> int:
    parser = _parser("reorder", "Set the order of one bucket")
    parser.add_argument("container", help="Container id")
    parser.add_argument("position", help="Bucket position")
    parser.add_argument("ids", nargs="+", help="Every active instance id, in order")
    parser.add_argument("--column", type=int, help="Column number")
    return _run(cmd_reorder, parser.parse_args(argv))


def handle_mcp_command(argv: list[str]) -> int:
    """Start the MCP server; options as in ``python -m src.mcp.server``."""
    from src.mcp.server import main as mcp_main

    return mcp_main(argv)


def cmd_test(extra_args: list[str]) -> int:
    """Run pytest with provided arguments and test tier options.

    Usage:
        python . test                # Run all tests
        python . test --unit         # Run only unit tests
        python . test --integration  # Run integration tests (SQLite files)
        python . test -k "layout"    # Run tests matching pattern
    """
    tier_markers = {
        "--unit": ["-m", "unit"],
        "--integration": ["-m", "integration"],
        "--all": [],
    }

    pytest_args: list[str] = []
    remaining_args: list[str] = []
    for arg in extra_args:
        if arg in tier_markers:
            pytest_args.extend(tier_markers[arg])
        else:
            remaining_args.append(arg)

    cmd = [sys.executable, "-m", "pytest", *pytest_args, *remaining_args]
    logger.info(f"Running: {' '.join(cmd)}")

    try:
        return subprocess.call(cmd)
    except KeyboardInterrupt:
        return 130


# =============================================================================
# Main
# =============================================================================


def show_help() -> None:
    """Show CLI help."""
    print("sitecomposer CLI")
    print("\nUsage: python . <command> [options]")
    print("\nCatalog:")
    print("  seed [--defaults]                    Register built-in definitions")
    print("  definitions [-c CATEGORY] [--all]    List the palette")
    print("\nContainers:")
    print("  containers [--kind KIND]             List containers")
    print("  create KIND [--name N] [--columns C] Create a container")
    print("  show ID                              Show buckets and orders")
    print("  resolve ID [--visibility V]          Resolve to render-ready props")
    print("  validate ID                          Check stored layout data")
    print("\nEditing:")
    print("  add ID (--slug S | --tag T) POSITION [--column C] [--index I]")
    print("  move ID INSTANCE POSITION [--column C] [--index I]")
    print("  remove ID INSTANCE")
    print("  reorder ID POSITION INSTANCE... [--column C]")
    print("\nServices:")
    print("  mcp [--transport stdio|http|sse]     Start the MCP server")
    print("  test [--unit|--integration]          Run the test suite")
    print(f"\n{SEED_HINT}")


def main() -> int:
    """Main entry point for the CLI."""
    if len(sys.argv) < 2:
        show_help()
        return 1

    command = sys.argv[1]
    rest_args = sys.argv[2:]

    if command in ("-h", "--help"):
        show_help()
        return 0

    if command == "test":
        return cmd_test(rest_args)

    commands = {
        "seed": handle_seed_command,
        "definitions": handle_definitions_command,
        "containers": handle_containers_command,
        "create": handle_create_command,
        "show": handle_show_command,
        "resolve": handle_resolve_command,
        "validate": handle_validate_command,
        "add": handle_add_command,
        "move": handle_move_command,
        "remove": handle_remove_command,
        "reorder": handle_reorder_command,
        "mcp": handle_mcp_command,
    }

    if command in commands:
        setup_logging(get_log_level())
        return commands[command](rest_args)

    logger.error(f"Unknown command: {command}")
    show_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())

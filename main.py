#!/usr/bin/env python3
"""
Main entry point for Media Explorer.

Provides a command-line interface for importing chat exports into the media
store, managing sources and looking at what was imported.
"""
from typing import Callable, Dict, List, Optional
import argparse
import logging
import sqlite3
import sys

from media_explorer.analysis import (
    get_import_status,
    get_storage_info,
    get_timeline,
    list_senders,
    list_sources,
)
from media_explorer.config import Config, get_config
from media_explorer.database import DatabaseConnection
from media_explorer.errors import MediaExplorerError
from media_explorer.etl.pipeline import (
    ImportResult,
    add_source,
    clear_all,
    detect_format,
    import_exports,
    remove_source,
)
from media_explorer.etl.validation import validate_store
from media_explorer.logger_config import setup_logging
from media_explorer.utils import Colors, format_bytes, format_count
from media_explorer.visualization import plot_media_by_sender, plot_timeline

logger = logging.getLogger(__name__)


def print_section(title: str) -> None:
    """Print a formatted section title."""
    print(f"\n{Colors.BOLD}{Colors.HEADER}{'=' * 60}{Colors.ENDC}")
    print(f"{Colors.BOLD}{Colors.HEADER}{title}{Colors.ENDC}")
    print(f"{Colors.BOLD}{Colors.HEADER}{'=' * 60}{Colors.ENDC}\n")


def _parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Import Facebook and Messenger exports and browse their media."
    )
    parser.add_argument(
        "--db-path",
        default=None,
        help="Path to explorer.db (defaults to ~/.media_explorer/explorer.db).",
    )
    parser.add_argument(
        "--context-window",
        type=int,
        default=None,
        help="Messages captured before and after each media item (default: 5).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser(
        "import", help="Import exports, replacing only those sources."
    )
    import_parser.add_argument("paths", nargs="+", help="Export root folders.")

    add_parser = subparsers.add_parser("add", help="Import (or re-import) one export.")
    add_parser.add_argument("path", help="Export root folder.")

    remove_parser = subparsers.add_parser("remove", help="Remove one imported export.")
    remove_parser.add_argument("path", help="Export root folder, as imported.")

    detect_parser = subparsers.add_parser("detect", help="Detect the format of a folder.")
    detect_parser.add_argument("path", help="Folder to inspect.")

    subparsers.add_parser("status", help="Show what is in the store.")
    subparsers.add_parser("sources", help="List imported sources.")
    subparsers.add_parser("timeline", help="Show media counts per month.")

    clear_parser = subparsers.add_parser("clear", help="Delete all imported data.")
    clear_parser.add_argument(
        "--yes", action="store_true", help="Confirm deleting everything."
    )

    validate_parser = subparsers.add_parser("validate", help="Check store invariants.")
    validate_parser.add_argument(
        "--skip-files",
        action="store_true",
        help="Do not check that media files still exist on disk.",
    )

    plot_timeline_parser = subparsers.add_parser(
        "plot-timeline", help="Write a media-per-month chart as HTML."
    )
    plot_timeline_parser.add_argument("output", help="Output HTML file.")

    plot_senders_parser = subparsers.add_parser(
        "plot-senders", help="Write a media-per-sender chart as HTML."
    )
    plot_senders_parser.add_argument("output", help="Output HTML file.")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port.")

    return parser.parse_args(argv)


def _print_import_result(result: ImportResult) -> int:
    if result.success:
        print(f"{Colors.OKGREEN}{result}{Colors.ENDC}")
        return 0
    print(f"{Colors.FAIL}{result}{Colors.ENDC}")
    return 1


def _context_window(args: argparse.Namespace, config: Config) -> int:
    return config.context_window if args.context_window is None else args.context_window


def cmd_import(args: argparse.Namespace, config: Config, db: DatabaseConnection) -> int:
    result = import_exports(db, args.paths, _context_window(args, config))
    return _print_import_result(result)


def cmd_add(args: argparse.Namespace, config: Config, db: DatabaseConnection) -> int:
    result = add_source(db, args.path, _context_window(args, config))
    return _print_import_result(result)


def cmd_remove(args: argparse.Namespace, config: Config, db: DatabaseConnection) -> int:
    removed = remove_source(db, args.path)
    if removed == 0:
        print(f"{Colors.WARNING}No conversations were imported from {args.path}{Colors.ENDC}")
    else:
        print(f"{Colors.OKGREEN}Removed {removed} conversations{Colors.ENDC}")
    return 0


def cmd_status(args: argparse.Namespace, config: Config, db: DatabaseConnection) -> int:
    print_section("Store Status")
    status = get_import_status(db)
    storage = get_storage_info(db)
    print(f"Store: {config.db_path_str}")
    print(f"Size: {format_bytes(storage['db_size_bytes'])}")
    print(f"Conversations: {status['conversation_count']:,}")
    print(f"Media: {status['media_count']:,}")
    if not status["has_data"]:
        print(f"\n{Colors.WARNING}Nothing imported yet.{Colors.ENDC}")
    return 0


def cmd_sources(args: argparse.Namespace, config: Config, db: DatabaseConnection) -> int:
    print_section("Imported Sources")
    sources = list_sources(db)
    if not sources:
        print("No sources imported.")
    for source in sources:
        print(f"{Colors.BOLD}{source['source_path']}{Colors.ENDC} ({source['source_type']})")
        print(
            f"  {source['conversations']:,} conversations, "
            f"{format_count(source['media_count'])} media"
        )
    return 0


def cmd_timeline(args: argparse.Namespace, config: Config, db: DatabaseConnection) -> int:
    print_section("Media per Month")
    for entry in get_timeline(db):
        print(f"  {entry['label']:>10s}: {entry['count']:>6,}")
    return 0


def cmd_clear(args: argparse.Namespace, config: Config, db: DatabaseConnection) -> int:
    if not args.yes:
        print(f"{Colors.WARNING}This deletes every imported source. Re-run with --yes.{Colors.ENDC}")
        return 1
    clear_all(db)
    print(f"{Colors.OKGREEN}Store cleared{Colors.ENDC}")
    return 0


def cmd_validate(args: argparse.Namespace, config: Config, db: DatabaseConnection) -> int:
    print_section("Store Validation")
    result = validate_store(db, check_files=not args.skip_files)
    print(result)
    return 0 if result.passed else 1


def cmd_plot_timeline(args: argparse.Namespace, config: Config, db: DatabaseConnection) -> int:
    if plot_timeline(get_timeline(db), output_file=args.output) is None:
        print(f"{Colors.WARNING}No media imported, nothing to plot.{Colors.ENDC}")
        return 1
    print(f"{Colors.OKGREEN}Chart written to {args.output}{Colors.ENDC}")
    return 0


def cmd_plot_senders(args: argparse.Namespace, config: Config, db: DatabaseConnection) -> int:
    if plot_media_by_sender(list_senders(db), output_file=args.output) is None:
        print(f"{Colors.WARNING}No media imported, nothing to plot.{Colors.ENDC}")
        return 1
    print(f"{Colors.OKGREEN}Chart written to {args.output}{Colors.ENDC}")
    return 0


COMMANDS: Dict[str, Callable[[argparse.Namespace, Config, DatabaseConnection], int]] = {
    "import": cmd_import,
    "add": cmd_add,
    "remove": cmd_remove,
    "status": cmd_status,
    "sources": cmd_sources,
    "timeline": cmd_timeline,
    "clear": cmd_clear,
    "validate": cmd_validate,
    "plot-timeline": cmd_plot_timeline,
    "plot-senders": cmd_plot_senders,
}


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("media_explorer.api:app", host=args.host, port=args.port)
    return 0


def main(argv: Optional[List[str]] = None):
    """Main function."""
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    setup_logging()

    try:
        if args.command == "detect":
            export_format = detect_format(args.path)
            print(f"{Colors.OKGREEN}{args.path}: {export_format.value}{Colors.ENDC}")
            return

        config = get_config(db_path=args.db_path)
        if args.command == "serve":
            sys.exit(_serve(args))

        with DatabaseConnection(config) as db:
            exit_code = COMMANDS[args.command](args, config, db)

    except (MediaExplorerError, sqlite3.Error, ValueError, OSError) as e:
        print(f"{Colors.FAIL}Error: {e}{Colors.ENDC}")
        logger.debug("Command failed", exc_info=True)
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


if __name__ == '__main__':
    main()

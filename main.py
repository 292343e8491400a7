"""CLI entry point for the job-search tracker."""

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

from jobtrack.core.config import Settings
from jobtrack.core.db import init_db
from jobtrack.core.schemas import STATUS_LABELS
from jobtrack.session.controller import ExportOutcome, SessionController
from jobtrack.session.store import SqliteKeyValueStore, SqliteSearchStore, search_status

EXPORT_FORMATS = ["json", "csv", "txt", "pdf", "log"]


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--user",
        default="local",
        help="User whose searches to read (default: local)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Job-search tracker - review searches and export opportunities",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- list subcommand ---
    list_parser = subparsers.add_parser("list", help="List job searches with status counts")
    _add_common(list_parser)

    # --- export subcommand ---
    export_parser = subparsers.add_parser("export", help="Export the active (or given) search")
    _add_common(export_parser)
    export_parser.add_argument(
        "--format",
        required=True,
        choices=EXPORT_FORMATS,
        help="Export format",
    )
    export_parser.add_argument(
        "--search-id",
        help="Search to export (default: the active search)",
    )
    export_parser.add_argument(
        "--status",
        default="all",
        choices=["all", *STATUS_LABELS],
        help="Only opportunities with this status (default: all)",
    )
    export_parser.add_argument(
        "--text",
        default="",
        help="Fuzzy filter on company and position",
    )
    export_parser.add_argument(
        "--sort",
        choices=["newest", "oldest"],
        help="Sort order (default: from settings)",
    )
    export_parser.add_argument(
        "--log-text",
        default="",
        help="Substring filter for the activity log export",
    )
    export_parser.add_argument(
        "--since",
        type=date.fromisoformat,
        help="First log day to include (YYYY-MM-DD)",
    )
    export_parser.add_argument(
        "--until",
        type=date.fromisoformat,
        help="Last log day to include (YYYY-MM-DD)",
    )
    export_parser.add_argument(
        "--output-dir",
        help="Directory for the export file (default: from settings)",
    )

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _controller(settings: Settings, user_id: str) -> SessionController:
    conn = init_db(settings.database.path)
    return SessionController(
        SqliteSearchStore(conn),
        user_id,
        settings=settings,
        kv=SqliteKeyValueStore(conn, user_id),
    )


async def cmd_list(settings: Settings, args: argparse.Namespace) -> None:
    """Print every search with its status and opportunity counts."""
    controller = _controller(settings, args.user)
    searches = await controller.load()
    if not searches:
        print(f"No job searches for '{args.user}'.")
        return

    for search in searches:
        controller.select_search(search.id)
        counts = controller.counts()
        print(f"{search.id}  {search.name} [{search_status(search)}]")
        print(f"  {counts.all} opportunities: {counts.total} active, {counts.applied} applied, "
              f"{counts.saved} saved, {counts.closed} closed/rejected")


async def cmd_export(settings: Settings, args: argparse.Namespace) -> Path:
    """Write one export of the selected search and return its path."""
    controller = _controller(settings, args.user)
    await controller.load()

    if args.search_id and controller.select_search(args.search_id) is None:
        msg = f"No search with id {args.search_id}"
        raise ValueError(msg)
    if controller.current is None:
        msg = "No active search - pass --search-id"
        raise ValueError(msg)

    query_changes: dict[str, object] = {"status": args.status, "text": args.text}
    if args.sort:
        query_changes["sort_by"] = args.sort
    controller.set_opportunity_query(**query_changes)
    controller.set_log_query(text=args.log_text, start_date=args.since, end_date=args.until)

    outcome: ExportOutcome
    if args.format == "json":
        outcome = controller.export_json()
    elif args.format == "csv":
        outcome = controller.export_csv()
    elif args.format == "txt":
        outcome = controller.export_text_table()
    elif args.format == "pdf":
        outcome = await controller.export_pdf()
    else:
        outcome = controller.export_log()

    if outcome.file is None:
        message = outcome.notice.message if outcome.notice else "Export failed"
        raise ValueError(message)
    return outcome.file.write_to(args.output_dir or settings.exports.output_dir)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_yaml(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "list":
        asyncio.run(cmd_list(settings, args))
    else:
        try:
            path = asyncio.run(cmd_export(settings, args))
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Export written to {path}")


if __name__ == "__main__":
    main()

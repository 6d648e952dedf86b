"""
todoterm command line.

Usage:
    todoterm                 Run the TUI application
    todoterm --info, -i      Show storage information and statistics
    todoterm --migrate, -m   Import the legacy JSON file into the database
    todoterm --help, -h      Show this help message
    todoterm --version, -v   Show version information
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from todoterm import __version__, config
from todoterm.logging_utils import setup_logging
from todoterm.storage import SQLiteStorage, StorageError, migrate_from_json, open_storage

logger = logging.getLogger(__name__)

EPILOG = """\
Storage:
  Data lives in the data directory ($TODOTERM_HOME, default ~/.todoterm).
  The default backend is an SQLite database (todoterm.db); a flat JSON file
  (todoterm.json) found there is imported automatically on first run.
"""


class CLIParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> CLIParser:
    parser = CLIParser(
        prog="todoterm",
        description="todoterm - keyboard-driven terminal task manager",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    modes = parser.add_mutually_exclusive_group()
    modes.add_argument(
        "-i",
        "--info",
        action="store_true",
        help="Show storage information and statistics",
    )
    modes.add_argument(
        "-m",
        "--migrate",
        action="store_true",
        help="Import the legacy JSON file into the database",
    )
    modes.add_argument(
        "-v",
        "--version",
        action="store_true",
        help="Show version information",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        help="Data directory (default: $TODOTERM_HOME or ~/.todoterm)",
    )
    parser.add_argument(
        "--storage",
        choices=config.STORAGE_BACKENDS,
        help="Storage backend (default: $TODOTERM_STORAGE or sqlite)",
    )
    return parser


def show_version() -> int:
    print(f"todoterm v{__version__}")
    print("SQLite storage via SQLAlchemy, terminal UI via Textual")
    return 0


def show_info(backend: str | None, data_dir: Path | None) -> int:
    print("todoterm - Storage Information")
    print("==============================")

    try:
        storage = open_storage(backend, data_dir)
    except StorageError as e:
        print(f"Error initializing storage: {e}", file=sys.stderr)
        return 1

    try:
        app = storage.load()
        print(f"Storage Backend: {storage.describe()}")
        print(f"Todo Lists: {len(app.todo_lists)}")
        print(f"Total Tasks: {app.total_tasks()}")
        print(f"Completed Tasks: {app.completed_tasks()}")
        if app.total_tasks() > 0:
            print(f"Completion Rate: {app.completion_rate():.1f}%")
        print()
        print("Settings:")
        print(f"  Reminder Minutes: {app.settings.reminder_minutes}")
        print(f"  Show Completed: {app.settings.show_completed}")
        print(f"  Auto Save: {app.settings.auto_save}")
    except StorageError as e:
        print(f"Error loading data: {e}", file=sys.stderr)
        return 1
    finally:
        storage.close()
    return 0


def run_migration(data_dir: Path | None) -> int:
    print("todoterm - Manual Migration")
    print("===========================")

    try:
        db = SQLiteStorage(config.database_path(data_dir))
    except (StorageError, OSError) as e:
        print(f"Error creating database storage: {e}", file=sys.stderr)
        return 1

    try:
        report = migrate_from_json(db, config.legacy_path(data_dir))
    except StorageError as e:
        print(f"Migration failed: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()

    print(report.summary())
    for warning in report.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    if report.migrated:
        print("Migration completed successfully!")
    return 0


def run_interactive(backend: str | None, data_dir: Path | None) -> int:
    from todoterm.tui.app import run

    try:
        storage = open_storage(backend, data_dir)
    except StorageError as e:
        print(f"Failed to initialize application: {e}", file=sys.stderr)
        return 1

    try:
        run(storage)
    except StorageError as e:
        print(f"Failed to load data: {e}", file=sys.stderr)
        return 1
    finally:
        storage.close()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # --help exits 0, usage errors exit 1
        return e.code if isinstance(e.code, int) else 1

    if args.version:
        return show_version()

    try:
        log_file = config.log_path(args.data_dir)
    except OSError as e:
        print(f"Cannot use data directory: {e}", file=sys.stderr)
        return 1
    setup_logging(config.LOG_LEVEL, log_file)
    logger.debug("todoterm %s starting with %s", __version__, sys.argv[1:] if argv is None else argv)

    if args.info:
        return show_info(args.storage, args.data_dir)
    if args.migrate:
        return run_migration(args.data_dir)
    return run_interactive(args.storage, args.data_dir)


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()

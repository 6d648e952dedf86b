"""
One-time import of the flat JSON file into the SQLite store.

The legacy file is only ever renamed, never deleted, and only after the
import transaction has committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from todoterm.models import Application, format_timestamp, now_local
from todoterm.storage.errors import MigrationError, StorageError
from todoterm.storage.json_store import read_document
from todoterm.storage.sqlite_store import SQLiteStorage, TaskRow, TodoListRow, upsert_settings

logger = logging.getLogger(__name__)

BACKUP_STAMP_FORMAT = "%Y%m%d-%H%M%S"


@dataclass
class MigrationReport:
    """Outcome of a legacy import."""

    migrated: bool = False
    source: Path | None = None
    backup_path: Path | None = None
    lists: int = 0
    tasks: int = 0
    warnings: list[str] = field(default_factory=list)

    def summary(self) -> str:
        if not self.migrated:
            return "No legacy data file found; nothing to migrate"
        text = f"Migrated {self.lists} lists and {self.tasks} tasks from {self.source}"
        if self.backup_path:
            text += f"\nLegacy file backed up to {self.backup_path}"
        return text


def backup_name(legacy_path: Path, when: datetime | None = None) -> Path:
    stamp = (when or datetime.now()).strftime(BACKUP_STAMP_FORMAT)
    return legacy_path.with_name(f"{legacy_path.name}.backup.{stamp}")


def _upsert(session, row_class, values: dict) -> None:
    stmt = sqlite_insert(row_class).values(**values)
    update_values = {k: v for k, v in values.items() if k != "id"}
    session.execute(stmt.on_conflict_do_update(index_elements=["id"], set_=update_values))


def _import_application(db: SQLiteStorage, app: Application) -> None:
    with db.transaction() as session:
        upsert_settings(session, app.settings, format_timestamp(now_local()))
        for todo_list in app.todo_lists:
            _upsert(
                session,
                TodoListRow,
                {
                    "id": todo_list.id,
                    "name": todo_list.name,
                    "description": todo_list.description,
                    "created_at": format_timestamp(todo_list.created_at),
                    "updated_at": format_timestamp(todo_list.updated_at),
                },
            )
            for task in todo_list.tasks:
                _upsert(
                    session,
                    TaskRow,
                    {
                        "id": task.id,
                        "list_id": todo_list.id,
                        "title": task.title,
                        "description": task.description,
                        "completed": task.completed,
                        "priority": int(task.priority),
                        "deadline": format_timestamp(task.deadline) if task.deadline else None,
                        "created_at": format_timestamp(task.created_at),
                        "updated_at": format_timestamp(task.updated_at),
                    },
                )


def migrate_from_json(db: SQLiteStorage, legacy_path: Path) -> MigrationReport:
    """Import ``legacy_path`` into ``db`` and rename the file on success.

    Raises MigrationError if the file cannot be read or the import fails;
    in that case nothing is committed and the file is left in place.
    """
    legacy_path = Path(legacy_path)
    report = MigrationReport(source=legacy_path)
    if not legacy_path.exists():
        logger.debug("No legacy file at %s", legacy_path)
        return report

    logger.info("Migrating legacy data from %s", legacy_path)
    try:
        app = Application.from_dict(read_document(legacy_path))
        _import_application(db, app)
    except (StorageError, KeyError, ValueError) as e:
        logger.error("Legacy migration failed: %s", e)
        raise MigrationError(f"failed to migrate {legacy_path}: {e}") from e

    report.migrated = True
    report.lists = len(app.todo_lists)
    report.tasks = app.total_tasks()

    target = backup_name(legacy_path)
    try:
        legacy_path.rename(target)
        report.backup_path = target
    except OSError as e:
        warning = f"migrated data but could not rename {legacy_path}: {e}"
        logger.warning(warning)
        report.warnings.append(warning)

    logger.info("Migrated %d lists and %d tasks", report.lists, report.tasks)
    return report

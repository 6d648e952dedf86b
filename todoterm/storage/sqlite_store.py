"""
Embedded relational backend: SQLite through SQLAlchemy.

Lists, tasks and settings are persisted per operation; ``save`` only has to
write the settings rows. Schema changes are tracked in ``schema_migrations``
and applied in order when the store is opened.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator

from sqlalchemy import (
    Boolean,
    Column,
    Connection,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    event,
    insert,
    literal_column,
    select,
    update,
)
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from todoterm.models import (
    Application,
    Priority,
    Settings,
    Task,
    TodoList,
    format_timestamp,
    generate_id,
    now_local,
    parse_timestamp,
)
from todoterm.storage import base
from todoterm.storage.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)

Base = declarative_base()


class TodoListRow(Base):
    __tablename__ = "todo_lists"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, default="")
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class TaskRow(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_list_id", "list_id"),
        Index("idx_tasks_completed", "completed"),
        Index("idx_tasks_deadline", "deadline"),
        Index("idx_tasks_priority", "priority"),
    )

    id = Column(String, primary_key=True)
    list_id = Column(String, ForeignKey("todo_lists.id", ondelete="CASCADE"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, default="")
    completed = Column(Boolean, nullable=False, default=False)
    priority = Column(Integer, nullable=False, default=0)  # 0=Low .. 3=Critical
    deadline = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class SettingRow(Base):
    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class SchemaMigration(Base):
    __tablename__ = "schema_migrations"

    version = Column(Integer, primary_key=True)
    applied_at = Column(String, nullable=False)


def settings_rows(settings: Settings) -> dict[str, str]:
    """Key/value text form of Settings as stored in the settings table."""
    return {
        "reminder_minutes": str(settings.reminder_minutes),
        "show_completed": "true" if settings.show_completed else "false",
        "auto_save": "true" if settings.auto_save else "false",
    }


def upsert_settings(conn: Connection | Session, settings: Settings, stamp: str) -> None:
    for key, value in settings_rows(settings).items():
        stmt = sqlite_insert(SettingRow).values(key=key, value=value, updated_at=stamp)
        stmt = stmt.on_conflict_do_update(
            index_elements=[SettingRow.key],
            set_={"value": value, "updated_at": stamp},
        )
        conn.execute(stmt)


def _migration_001_initial_schema(conn: Connection) -> None:
    Base.metadata.create_all(
        conn,
        tables=[TodoListRow.__table__, TaskRow.__table__, SettingRow.__table__],
    )
    stamp = format_timestamp(now_local())
    for key, value in settings_rows(Settings()).items():
        stmt = sqlite_insert(SettingRow).values(key=key, value=value, updated_at=stamp)
        conn.execute(stmt.on_conflict_do_nothing(index_elements=[SettingRow.key]))


# Ordered (version, migration) pairs; append only.
MIGRATIONS: list[tuple[int, Callable[[Connection], None]]] = [
    (1, _migration_001_initial_schema),
]


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class SQLiteStorage:
    """StorageGateway implementation backed by an SQLite database."""

    def __init__(self, path: Path):
        self.data_path = Path(path)
        try:
            self.data_path.parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_engine(f"sqlite:///{self.data_path}")
            event.listen(self.engine, "connect", _enable_foreign_keys)
            self._sessions = sessionmaker(self.engine, expire_on_commit=False)
            self.run_migrations()
        except (OSError, SQLAlchemyError) as e:
            raise StorageError(f"failed to open database {self.data_path}: {e}") from e

    def describe(self) -> str:
        return f"SQLite database: {self.data_path}"

    def applied_migrations(self) -> list[int]:
        with self.engine.connect() as conn:
            return list(conn.scalars(select(SchemaMigration.version).order_by(SchemaMigration.version)))

    def run_migrations(self) -> list[int]:
        """Apply pending schema migrations. Returns the versions applied."""
        SchemaMigration.__table__.create(self.engine, checkfirst=True)
        already = set(self.applied_migrations())

        applied = []
        for version, migrate in MIGRATIONS:
            if version in already:
                continue
            with self.engine.begin() as conn:
                migrate(conn)
                conn.execute(
                    insert(SchemaMigration).values(
                        version=version, applied_at=format_timestamp(now_local())
                    )
                )
            logger.info("Applied schema migration %03d to %s", version, self.data_path)
            applied.append(version)
        return applied

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Session scope that commits on success and rolls back on error."""
        try:
            with self._sessions.begin() as session:
                yield session
        except SQLAlchemyError as e:
            raise StorageError(f"database error: {e}") from e

    # -------------------- loading --------------------

    def load(self) -> Application:
        with self.transaction() as session:
            settings = self._load_settings(session)
            list_rows = session.scalars(
                select(TodoListRow).order_by(TodoListRow.created_at, literal_column("rowid"))
            ).all()
            todo_lists = [self._list_from_row(session, row) for row in list_rows]
        return Application(todo_lists=todo_lists, settings=settings)

    def _load_settings(self, session: Session) -> Settings:
        settings = Settings()
        for row in session.scalars(select(SettingRow)):
            if row.key == "reminder_minutes":
                try:
                    settings.reminder_minutes = int(row.value)
                except ValueError:
                    logger.warning("Ignoring invalid reminder_minutes %r", row.value)
            elif row.key == "show_completed":
                settings.show_completed = row.value == "true"
            elif row.key == "auto_save":
                settings.auto_save = row.value == "true"
        return settings

    def _list_from_row(self, session: Session, row: TodoListRow) -> TodoList:
        task_rows = session.scalars(
            select(TaskRow)
            .where(TaskRow.list_id == row.id)
            .order_by(TaskRow.created_at, literal_column("rowid"))
        ).all()
        return TodoList(
            id=row.id,
            name=row.name,
            description=row.description or "",
            tasks=[self._task_from_row(t) for t in task_rows],
            created_at=parse_timestamp(row.created_at) or now_local(),
            updated_at=parse_timestamp(row.updated_at) or now_local(),
        )

    @staticmethod
    def _task_from_row(row: TaskRow) -> Task:
        return Task(
            id=row.id,
            title=row.title,
            description=row.description or "",
            completed=bool(row.completed),
            priority=Priority(row.priority),
            deadline=parse_timestamp(row.deadline),
            created_at=parse_timestamp(row.created_at) or now_local(),
            updated_at=parse_timestamp(row.updated_at) or now_local(),
        )

    def save(self, app: Application) -> None:
        with self.transaction() as session:
            upsert_settings(session, app.settings, format_timestamp(now_local()))

    # -------------------- lists --------------------

    def create_list(self, app: Application, name: str, description: str) -> str:
        base.require_text(name, "list name")
        list_id = generate_id()
        now = now_local()
        stamp = format_timestamp(now)
        with self.transaction() as session:
            session.add(
                TodoListRow(
                    id=list_id,
                    name=name,
                    description=description,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
        base.apply_create_list(app, list_id, name, description, now)
        logger.debug("Created list %s", list_id)
        return list_id

    def update_list(self, app: Application, list_id: str, name: str, description: str) -> None:
        base.require_text(name, "list name")
        now = now_local()
        with self.transaction() as session:
            result = session.execute(
                update(TodoListRow)
                .where(TodoListRow.id == list_id)
                .values(name=name, description=description, updated_at=format_timestamp(now))
            )
            if result.rowcount == 0:
                raise NotFoundError(f"todo list with ID {list_id} not found")
        base.apply_update_list(app, list_id, name, description, now)

    def delete_list(self, app: Application, list_id: str) -> None:
        with self.transaction() as session:
            result = session.execute(delete(TodoListRow).where(TodoListRow.id == list_id))
            if result.rowcount == 0:
                raise NotFoundError(f"todo list with ID {list_id} not found")
        base.apply_delete_list(app, list_id)
        logger.debug("Deleted list %s", list_id)

    # -------------------- tasks --------------------

    def _touch_list(self, session: Session, list_id: str, stamp: str) -> None:
        session.execute(
            update(TodoListRow).where(TodoListRow.id == list_id).values(updated_at=stamp)
        )

    def _require_task_row(self, session: Session, list_id: str, task_id: str) -> TaskRow:
        row = session.get(TaskRow, task_id)
        if row is None or row.list_id != list_id:
            raise NotFoundError(f"task with ID {task_id} not found in list {list_id}")
        return row

    def create_task(
        self,
        app: Application,
        list_id: str,
        title: str,
        description: str,
        priority: Priority,
        deadline: datetime | None,
    ) -> str:
        base.require_text(title, "task title")
        task_id = generate_id()
        now = now_local()
        stamp = format_timestamp(now)
        with self.transaction() as session:
            if session.get(TodoListRow, list_id) is None:
                raise NotFoundError(f"todo list with ID {list_id} not found")
            session.add(
                TaskRow(
                    id=task_id,
                    list_id=list_id,
                    title=title,
                    description=description,
                    completed=False,
                    priority=int(priority),
                    deadline=format_timestamp(deadline) if deadline else None,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
            self._touch_list(session, list_id, stamp)
        base.apply_create_task(app, list_id, task_id, title, description, priority, deadline, now)
        logger.debug("Created task %s in list %s", task_id, list_id)
        return task_id

    def update_task(
        self,
        app: Application,
        list_id: str,
        task_id: str,
        title: str,
        description: str,
        priority: Priority,
        deadline: datetime | None,
    ) -> None:
        base.require_text(title, "task title")
        now = now_local()
        stamp = format_timestamp(now)
        with self.transaction() as session:
            row = self._require_task_row(session, list_id, task_id)
            row.title = title
            row.description = description
            row.priority = int(priority)
            row.deadline = format_timestamp(deadline) if deadline else None
            row.updated_at = stamp
            self._touch_list(session, list_id, stamp)
        base.apply_update_task(app, list_id, task_id, title, description, priority, deadline, now)

    def toggle_task(self, app: Application, list_id: str, task_id: str) -> None:
        now = now_local()
        stamp = format_timestamp(now)
        with self.transaction() as session:
            row = self._require_task_row(session, list_id, task_id)
            completed = not row.completed
            row.completed = completed
            row.updated_at = stamp
            self._touch_list(session, list_id, stamp)
        base.apply_set_completed(app, list_id, task_id, completed, now)

    def delete_task(self, app: Application, list_id: str, task_id: str) -> None:
        now = now_local()
        with self.transaction() as session:
            row = self._require_task_row(session, list_id, task_id)
            session.delete(row)
            self._touch_list(session, list_id, format_timestamp(now))
        base.apply_delete_task(app, list_id, task_id, now)

    def close(self) -> None:
        self.engine.dispose()

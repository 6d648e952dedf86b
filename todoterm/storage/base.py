"""
Storage gateway protocol and the snapshot mutations shared by all backends.

Every mutating gateway call receives the caller's Application snapshot and
must leave it exactly as the backend persisted it. Backends persist first
and then call the ``apply_*`` helpers below with the same IDs and
timestamps, so both sides agree field for field.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Protocol

from todoterm.models import Application, Priority, Task, TodoList
from todoterm.storage.errors import NotFoundError, StorageError


class StorageGateway(Protocol):
    """CRUD contract between the controller and a persistence backend."""

    data_path: Path

    def load(self) -> Application:
        """Load the full snapshot (defaults when nothing is stored yet)."""
        ...

    def save(self, app: Application) -> None:
        """Best-effort persistence of the whole snapshot."""
        ...

    def describe(self) -> str:
        """Human-readable backend description for display."""
        ...

    def create_list(self, app: Application, name: str, description: str) -> str:
        ...

    def update_list(self, app: Application, list_id: str, name: str, description: str) -> None:
        ...

    def delete_list(self, app: Application, list_id: str) -> None:
        ...

    def create_task(
        self,
        app: Application,
        list_id: str,
        title: str,
        description: str,
        priority: Priority,
        deadline: datetime | None,
    ) -> str:
        ...

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
        ...

    def toggle_task(self, app: Application, list_id: str, task_id: str) -> None:
        ...

    def delete_task(self, app: Application, list_id: str, task_id: str) -> None:
        ...

    def close(self) -> None:
        ...


def require_text(value: str, what: str) -> str:
    if not value or not value.strip():
        raise StorageError(f"{what} must not be empty")
    return value


def get_list(app: Application, list_id: str) -> TodoList:
    todo_list = app.find_list(list_id)
    if todo_list is None:
        raise NotFoundError(f"todo list with ID {list_id} not found")
    return todo_list


def get_task(app: Application, list_id: str, task_id: str) -> Task:
    todo_list = get_list(app, list_id)
    task = todo_list.find_task(task_id)
    if task is None:
        raise NotFoundError(f"task with ID {task_id} not found in list {list_id}")
    return task


def apply_create_list(
    app: Application, list_id: str, name: str, description: str, now: datetime
) -> TodoList:
    todo_list = TodoList(
        id=list_id,
        name=name,
        description=description,
        created_at=now,
        updated_at=now,
    )
    app.todo_lists.append(todo_list)
    return todo_list


def apply_update_list(
    app: Application, list_id: str, name: str, description: str, now: datetime
) -> None:
    todo_list = get_list(app, list_id)
    todo_list.name = name
    todo_list.description = description
    todo_list.updated_at = now


def apply_delete_list(app: Application, list_id: str) -> None:
    todo_list = get_list(app, list_id)
    app.todo_lists.remove(todo_list)


def apply_create_task(
    app: Application,
    list_id: str,
    task_id: str,
    title: str,
    description: str,
    priority: Priority,
    deadline: datetime | None,
    now: datetime,
) -> Task:
    todo_list = get_list(app, list_id)
    task = Task(
        id=task_id,
        title=title,
        description=description,
        priority=Priority(priority),
        deadline=deadline,
        created_at=now,
        updated_at=now,
    )
    todo_list.tasks.append(task)
    todo_list.updated_at = now
    return task


def apply_update_task(
    app: Application,
    list_id: str,
    task_id: str,
    title: str,
    description: str,
    priority: Priority,
    deadline: datetime | None,
    now: datetime,
) -> None:
    task = get_task(app, list_id, task_id)
    task.title = title
    task.description = description
    task.priority = Priority(priority)
    task.deadline = deadline
    task.updated_at = now
    get_list(app, list_id).updated_at = now


def apply_set_completed(
    app: Application, list_id: str, task_id: str, completed: bool, now: datetime
) -> None:
    task = get_task(app, list_id, task_id)
    task.completed = completed
    task.updated_at = now
    get_list(app, list_id).updated_at = now


def apply_delete_task(app: Application, list_id: str, task_id: str, now: datetime) -> None:
    todo_list = get_list(app, list_id)
    task = get_task(app, list_id, task_id)
    todo_list.tasks.remove(task)
    todo_list.updated_at = now

"""
Domain model: task lists, tasks, settings and the application snapshot.

Derived values (progress, overdue, due soon) are computed on demand from
entity state and the current time; nothing here caches them.
"""

from __future__ import annotations

import re
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Callable

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DEADLINE_FORMAT = "%Y-%m-%d %H:%M"
DUE_SOON_WINDOW = timedelta(hours=24)
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


class Priority(IntEnum):
    """Task priority levels, ordered."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    def __str__(self) -> str:
        return self.name.capitalize()

    def next(self) -> "Priority":
        """Cycle to the next priority, wrapping after CRITICAL."""
        members = list(Priority)
        return members[(members.index(self) + 1) % len(members)]


def now_local() -> datetime:
    """Current local time truncated to whole seconds (the persisted precision)."""
    return datetime.now().replace(microsecond=0)


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp; returns None for empty or malformed input.

    Accepts the fixed storage format and ISO 8601 (legacy files carry
    RFC 3339 values with offsets, which are converted to local time).
    """
    if not value:
        return None
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except (ValueError, TypeError):
        pass
    try:
        # fromisoformat accepts at most microseconds; legacy files carry nanoseconds.
        normalized = _FRACTION_RE.sub(r"\1", value.replace("Z", "+00:00"))
        parsed = datetime.fromisoformat(normalized)
    except (ValueError, TypeError, AttributeError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed.replace(microsecond=0)


def parse_deadline(text: str) -> datetime | None:
    """Parse user deadline text in the fixed YYYY-MM-DD HH:MM format.

    Empty text means "no deadline" and returns None. Anything else that does
    not match exactly (including out-of-range fields such as month 13)
    raises ValueError.
    """
    text = text.strip()
    if not text:
        return None
    return datetime.strptime(text, DEADLINE_FORMAT)


def format_deadline(value: datetime) -> str:
    return value.strftime(DEADLINE_FORMAT)


class IdGenerator:
    """Time-based ID source that never repeats within a process."""

    def __init__(self, clock: Callable[[], int] = time.time_ns) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            candidate = self._clock()
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return str(candidate)


_ids = IdGenerator()


def generate_id() -> str:
    return _ids.next_id()


@dataclass
class Task:
    """A single task inside a list."""

    id: str
    title: str
    description: str = ""
    completed: bool = False
    priority: Priority = Priority.MEDIUM
    created_at: datetime = field(default_factory=now_local)
    updated_at: datetime = field(default_factory=now_local)
    deadline: datetime | None = None

    def is_overdue(self, now: datetime | None = None) -> bool:
        if self.deadline is None or self.completed:
            return False
        now = now or datetime.now()
        return self.deadline < now

    def is_due_soon(self, now: datetime | None = None) -> bool:
        if self.deadline is None or self.completed:
            return False
        now = now or datetime.now()
        if self.is_overdue(now):
            return False
        return self.deadline < now + DUE_SOON_WINDOW

    def time_until_deadline(self, now: datetime | None = None) -> timedelta | None:
        if self.deadline is None:
            return None
        return self.deadline - (now or datetime.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "priority": int(self.priority),
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
            "deadline": format_timestamp(self.deadline) if self.deadline else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        return cls(
            id=str(data["id"]),
            title=data["title"],
            description=data.get("description") or "",
            completed=bool(data.get("completed", False)),
            priority=Priority(data.get("priority", Priority.MEDIUM)),
            created_at=parse_timestamp(data.get("created_at")) or now_local(),
            updated_at=parse_timestamp(data.get("updated_at")) or now_local(),
            deadline=parse_timestamp(data.get("deadline")),
        )


@dataclass
class TodoList:
    """A named, ordered collection of tasks."""

    id: str
    name: str
    description: str = ""
    tasks: list[Task] = field(default_factory=list)
    created_at: datetime = field(default_factory=now_local)
    updated_at: datetime = field(default_factory=now_local)

    def get_completed_count(self) -> int:
        return sum(1 for task in self.tasks if task.completed)

    def get_total_count(self) -> int:
        return len(self.tasks)

    def get_progress(self) -> float:
        """Completion percentage, 0.0 for an empty list."""
        if not self.tasks:
            return 0.0
        return self.get_completed_count() / len(self.tasks) * 100

    def find_task(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "tasks": [task.to_dict() for task in self.tasks],
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TodoList":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            description=data.get("description") or "",
            tasks=[Task.from_dict(t) for t in data.get("tasks") or []],
            created_at=parse_timestamp(data.get("created_at")) or now_local(),
            updated_at=parse_timestamp(data.get("updated_at")) or now_local(),
        )


@dataclass
class Settings:
    """User preferences."""

    reminder_minutes: int = 60
    show_completed: bool = True
    auto_save: bool = True

    def to_dict(self) -> dict:
        return {
            "reminder_minutes": self.reminder_minutes,
            "show_completed": self.show_completed,
            "auto_save": self.auto_save,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "Settings":
        # A zero or missing reminder lead time means the settings block was
        # never written; fall back to defaults wholesale.
        if not data or not data.get("reminder_minutes"):
            return cls()
        return cls(
            reminder_minutes=int(data["reminder_minutes"]),
            show_completed=bool(data.get("show_completed", True)),
            auto_save=bool(data.get("auto_save", True)),
        )


@dataclass
class Application:
    """Complete persisted snapshot: lists in insertion order plus settings."""

    todo_lists: list[TodoList] = field(default_factory=list)
    settings: Settings = field(default_factory=Settings)

    def find_list(self, list_id: str) -> TodoList | None:
        for todo_list in self.todo_lists:
            if todo_list.id == list_id:
                return todo_list
        return None

    def total_tasks(self) -> int:
        return sum(todo_list.get_total_count() for todo_list in self.todo_lists)

    def completed_tasks(self) -> int:
        return sum(todo_list.get_completed_count() for todo_list in self.todo_lists)

    def completion_rate(self) -> float:
        total = self.total_tasks()
        if total == 0:
            return 0.0
        return self.completed_tasks() / total * 100

    def to_dict(self) -> dict:
        return {
            "todo_lists": [todo_list.to_dict() for todo_list in self.todo_lists],
            "settings": self.settings.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Application":
        return cls(
            todo_lists=[TodoList.from_dict(item) for item in data.get("todo_lists") or []],
            settings=Settings.from_dict(data.get("settings")),
        )

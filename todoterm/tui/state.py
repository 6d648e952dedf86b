"""
UI state types shared by the controller and the view builders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from todoterm.models import Priority

MESSAGE_TTL = timedelta(seconds=3)


class ViewState(Enum):
    LISTS = "lists"
    TASKS = "tasks"
    CREATE_LIST = "create_list"
    EDIT_LIST = "edit_list"
    CREATE_TASK = "create_task"
    EDIT_TASK = "edit_task"
    SETTINGS = "settings"
    HELP = "help"

    @property
    def is_form(self) -> bool:
        return self in FORM_STATES


FORM_STATES = frozenset(
    {ViewState.CREATE_LIST, ViewState.EDIT_LIST, ViewState.CREATE_TASK, ViewState.EDIT_TASK}
)


class FormKind(Enum):
    NONE = "none"
    LIST = "list"
    TASK = "task"


FIELD_COUNTS = {
    FormKind.NONE: 0,
    FormKind.LIST: 2,  # name, description
    FormKind.TASK: 3,  # title, description, deadline
}


@dataclass
class FormState:
    """Buffers and cursor of the open form overlay."""

    kind: FormKind = FormKind.NONE
    editing: bool = False
    editing_id: str | None = None
    fields: list[str] = field(default_factory=lambda: ["", "", ""])
    focus_index: int = 0
    priority: Priority = Priority.MEDIUM

    @property
    def field_count(self) -> int:
        return FIELD_COUNTS[self.kind]

    @property
    def title(self) -> str:
        return self.fields[0]

    @property
    def description(self) -> str:
        return self.fields[1]

    @property
    def deadline(self) -> str:
        return self.fields[2]

    def focus_next(self) -> None:
        if self.field_count:
            self.focus_index = (self.focus_index + 1) % self.field_count

    def focus_prev(self) -> None:
        if self.field_count:
            self.focus_index = (self.focus_index - 1) % self.field_count

    def insert(self, text: str) -> None:
        if self.field_count:
            self.fields[self.focus_index] += text

    def backspace(self) -> None:
        if self.field_count:
            self.fields[self.focus_index] = self.fields[self.focus_index][:-1]

    def raise_priority(self) -> None:
        self.priority = Priority(min(self.priority + 1, Priority.CRITICAL))

    def lower_priority(self) -> None:
        self.priority = Priority(max(self.priority - 1, Priority.LOW))


@dataclass
class StatusMessage:
    """Transient status line text."""

    text: str
    kind: str = "info"  # success | warning | error | info
    timestamp: datetime = field(default_factory=datetime.now)

    def is_active(self, now: datetime) -> bool:
        return now - self.timestamp < MESSAGE_TTL

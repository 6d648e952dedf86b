"""
Panel content builders.

Each function projects part of the Application snapshot into a rich markup
string for one panel. They hold no state; the controller calls them on
every render.
"""

from __future__ import annotations

from datetime import datetime
from itertools import zip_longest

from rich.markup import escape

from todoterm.models import Application, Priority, Settings, Task, TodoList, format_deadline
from todoterm.tui.state import FormKind, FormState, StatusMessage
from todoterm.tui.styles import (
    ACCENT,
    ERROR,
    KEY_STYLE,
    MESSAGE_COLORS,
    MESSAGE_ICONS,
    MUTED_STYLE,
    PRIMARY,
    PRIORITY_COLORS,
    SELECTED_STYLE,
    SUCCESS,
    TEXT_SECONDARY,
    WARNING,
)

# Task state indicators
TASK_ICONS = {
    "open": "○",
    "done": "✓",
}

CURSOR = "█"


def progress_bar(completed: int, total: int, width: int = 10) -> str:
    """Create a progress bar."""
    if total == 0:
        return f"{'░' * width} 0%"

    pct = completed / total
    filled = int(width * pct)
    return f"{'█' * filled}{'░' * (width - filled)} {pct * 100:.0f}%"


def visible_slice(count: int, selected: int, capacity: int) -> tuple[int, int]:
    """Return the [start, end) window of ``count`` items that keeps ``selected`` on screen."""
    if capacity <= 0 or count == 0:
        return 0, 0
    if count <= capacity:
        return 0, count
    start = min(max(selected - capacity + 1, 0), count - capacity)
    return start, start + capacity


def keys(pairs: list[tuple[str, str]]) -> str:
    return "  ".join(f"[{KEY_STYLE}]{escape(key)}[/] {label}" for key, label in pairs)


# -------------------- sidebar --------------------


def sidebar_content(
    app: Application, selected: int, current_list_id: str | None, height: int
) -> str:
    if not app.todo_lists:
        return "\n".join(
            [
                f"[bold {PRIMARY}]Welcome to todoterm![/]",
                "",
                f"[{ACCENT}]Ready to get organized?[/]",
                "",
                f"[{MUTED_STYLE}]Create your first todo list:[/]",
                f"  {keys([('n', 'new list')])}",
                "",
                f"[{MUTED_STYLE}]Organize tasks by project,[/]",
                f"[{MUTED_STYLE}]set priorities and deadlines,[/]",
                f"[{MUTED_STYLE}]and track your progress.[/]",
            ]
        )

    # Two lines per list
    start, end = visible_slice(len(app.todo_lists), selected, height // 2)
    lines = []
    for index in range(start, end):
        todo_list = app.todo_lists[index]
        marker = "●" if todo_list.id == current_list_id else " "
        name = f"{marker} {escape(todo_list.name)}"
        if index == selected:
            lines.append(f"[{SELECTED_STYLE}]{name}[/]")
        else:
            lines.append(name)
        bar = progress_bar(todo_list.get_completed_count(), todo_list.get_total_count())
        lines.append(f"  [{MUTED_STYLE}]{bar} · {todo_list.get_total_count()} tasks[/]")
    return "\n".join(lines)


# -------------------- main --------------------


def priority_label(priority: Priority) -> str:
    return f"[{PRIORITY_COLORS[int(priority)]}]{priority}[/]"


def deadline_label(task: Task, now: datetime) -> str:
    if task.deadline is None:
        return ""
    text = f"Due {format_deadline(task.deadline)}"
    if task.is_overdue(now):
        return f"[bold {ERROR}]{text} (OVERDUE)[/]"
    if task.is_due_soon(now):
        return f"[{WARNING}]{text} (SOON)[/]"
    return f"[{MUTED_STYLE}]{text}[/]"


def task_line(task: Task, selected: bool, now: datetime) -> str:
    """Two lines: state, title and priority, then deadline and description."""
    icon = TASK_ICONS["done"] if task.completed else TASK_ICONS["open"]
    title = escape(task.title)
    if task.completed:
        head = f"[{SUCCESS}]{icon}[/] [strike {MUTED_STYLE}]{title}[/]"
    else:
        head = f"{icon} {title}"
    if selected:
        head = f"[{SELECTED_STYLE}]{head}[/]"

    details = []
    deadline = deadline_label(task, now)
    if deadline:
        details.append(deadline)
    if task.description:
        details.append(f"[{MUTED_STYLE}]{escape(task.description)}[/]")
    return f"{head}  {priority_label(task.priority)}\n    {' · '.join(details)}"


def tasks_content(
    app: Application,
    todo_list: TodoList | None,
    tasks: list[Task],
    selected: int,
    height: int,
    now: datetime,
) -> str:
    if not app.todo_lists:
        return "\n".join(
            [
                f"[bold {PRIMARY}]Let's get started![/]",
                "",
                f"[{ACCENT}]No todo lists yet.[/]",
                "",
                f"[{MUTED_STYLE}]Create your first list in the sidebar.[/]",
                f"  {keys([('ctrl+s', 'focus sidebar'), ('n', 'new list')])}",
                "",
                f"[{TEXT_SECONDARY}]Multiple lists · four priority levels ·[/]",
                f"[{TEXT_SECONDARY}]deadlines with reminders · progress tracking[/]",
            ]
        )

    if todo_list is None:
        return "\n".join(
            [
                f"[{TEXT_SECONDARY}]Select a todo list from the sidebar[/]",
                "",
                f"  {keys([('ctrl+s', 'focus sidebar'), ('enter', 'open list')])}",
            ]
        )

    header = []
    if todo_list.description:
        header = [f"[italic {TEXT_SECONDARY}]{escape(todo_list.description)}[/]", ""]

    if not todo_list.tasks:
        return "\n".join(
            header
            + [
                f"[{TEXT_SECONDARY}]No tasks yet[/]",
                "",
                f"  {keys([('a', 'add your first task')])}",
            ]
        )

    if not tasks:
        return "\n".join(
            header
            + [
                f"[{SUCCESS}]All tasks completed![/]",
                "",
                f"[{MUTED_STYLE}]Toggle 'show completed' in settings to see them.[/]",
            ]
        )

    # Two lines per task
    start, end = visible_slice(len(tasks), selected, (height - len(header)) // 2)
    lines = [task_line(tasks[i], i == selected, now) for i in range(start, end)]
    return "\n".join(header + lines)


def settings_content(settings: Settings) -> str:
    def flag(value: bool) -> str:
        return f"[{SUCCESS}]on[/]" if value else f"[{MUTED_STYLE}]off[/]"

    return "\n".join(
        [
            f"[bold {PRIMARY}]Application Settings[/]",
            "",
            f"  Reminder lead time:  [bold]{settings.reminder_minutes}[/] minutes",
            f"  Show completed:      {flag(settings.show_completed)}",
            f"  Auto save:           {flag(settings.auto_save)}",
            "",
            f"  {keys([('+/-', 'reminder lead time'), ('c', 'show completed')])}",
            f"  {keys([('esc', 'back')])}",
        ]
    )


# -------------------- status --------------------


def message_content(message: StatusMessage) -> str:
    color = MESSAGE_COLORS.get(message.kind, MUTED_STYLE)
    icon = MESSAGE_ICONS.get(message.kind, "•")
    return f"[bold {color}]{icon} {escape(message.text)}[/]"


def status_content(parts: list[str]) -> str:
    hints = keys([("?", "Help"), ("ctrl+←/→", "Windows"), ("q", "Quit")])
    return f"{escape(' • '.join(parts))}    {hints}"


# -------------------- overlays --------------------


def _field(label: str, value: str, focused: bool) -> str:
    if focused:
        return f"[bold {ACCENT}]▸ {label}:[/] {escape(value)}[{ACCENT}]{CURSOR}[/]"
    return f"[{MUTED_STYLE}]  {label}:[/] {escape(value)}"


def form_content(form: FormState) -> str:
    if form.kind is FormKind.LIST:
        heading = "Edit List" if form.editing else "Create New List"
        lines = [
            f"[bold {PRIMARY}]{heading}[/]",
            "",
            _field("Name", form.fields[0], form.focus_index == 0),
            _field("Description", form.fields[1], form.focus_index == 1),
        ]
    else:
        heading = "Edit Task" if form.editing else "Create New Task"
        lines = [
            f"[bold {PRIMARY}]{heading}[/]",
            "",
            _field("Title", form.fields[0], form.focus_index == 0),
            _field("Description", form.fields[1], form.focus_index == 1),
            _field("Deadline (YYYY-MM-DD HH:MM)", form.fields[2], form.focus_index == 2),
            f"[{MUTED_STYLE}]  Priority:[/] {priority_label(form.priority)} "
            f"[{MUTED_STYLE}](↑/↓)[/]",
        ]
    lines += [
        "",
        keys([("tab", "next field"), ("enter", "save"), ("esc", "cancel")]),
    ]
    return "\n".join(lines)


HELP_COLUMN_WIDTH = 34
HELP_KEY_WIDTH = 12

# Two columns of (title, bindings) sections
HELP_COLUMNS = [
    [
        (
            "Global",
            [
                ("↑/↓ j/k", "Move selection"),
                ("ctrl+←/→", "Switch window"),
                ("ctrl+s/o", "Sidebar / main"),
                ("? / f1", "Toggle help"),
                ("q / ctrl+c", "Quit"),
            ],
        ),
        (
            "Forms",
            [
                ("tab", "Next field"),
                ("shift+tab", "Previous field"),
                ("↑/↓", "Priority"),
                ("enter", "Save"),
                ("esc", "Cancel"),
            ],
        ),
    ],
    [
        (
            "Lists (sidebar)",
            [
                ("n", "New list"),
                ("enter", "Open list"),
                ("e", "Edit list"),
                ("d", "Delete list"),
                ("s", "Settings"),
            ],
        ),
        (
            "Tasks (main)",
            [
                ("a", "Add task"),
                ("space", "Toggle done"),
                ("e", "Edit task"),
                ("p", "Cycle priority"),
                ("d", "Delete task"),
                ("esc", "Back to lists"),
            ],
        ),
    ],
]


def _help_column(sections: list[tuple[str, list[tuple[str, str]]]]) -> list[tuple[str, int]]:
    """Rows of (markup, visible width) for one help column."""
    rows = []
    for title, bindings in sections:
        rows.append((f"[bold {PRIMARY}]{title}[/]", len(title)))
        for key, description in bindings:
            plain = f"  {key:<{HELP_KEY_WIDTH}} {description}"
            markup = f"  [{KEY_STYLE}]{escape(key):<{HELP_KEY_WIDTH}}[/] {description}"
            rows.append((markup, len(plain)))
        rows.append(("", 0))
    return rows


def help_content() -> str:
    left, right = (_help_column(column) for column in HELP_COLUMNS)
    lines = []
    for (left_markup, left_width), (right_markup, _) in zip_longest(
        left, right, fillvalue=("", 0)
    ):
        lines.append(left_markup + " " * (HELP_COLUMN_WIDTH - left_width) + right_markup)
    lines.append(
        f"[{MUTED_STYLE}]{TASK_ICONS['open']} open  {TASK_ICONS['done']} done  "
        f"(SOON) due in 24h  (OVERDUE) past due[/]"
    )
    lines.append("")
    lines.append(f"[{MUTED_STYLE}]Press ? or esc to close help[/]")
    return "\n".join(lines)

"""
Application controller.

One Controller owns the Application snapshot, the storage gateway and the
layout. Events arrive one at a time from the terminal host (key presses,
resizes, reminder ticks) and are processed to completion; rendering is a
pure projection of the resulting state.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from rich.text import Text

from todoterm.models import Application, Priority, Task, TodoList, format_deadline, parse_deadline
from todoterm.storage import StorageError, StorageGateway
from todoterm.tui import views
from todoterm.tui.layout import LayoutManager, WindowID
from todoterm.tui.state import FormKind, FormState, StatusMessage, ViewState

logger = logging.getLogger(__name__)

# Seconds from handling one reminder tick to the next
REMINDER_INTERVAL = 60.0
REMINDER_THROTTLE = timedelta(minutes=1)

REMINDER_STEP = 5
REMINDER_MIN = 5


class KeyMap:
    """Key bindings, by textual key name."""

    QUIT = ("q", "ctrl+c")
    FORM_QUIT = ("ctrl+c",)
    HELP = ("question_mark", "f1")
    FORM_HELP = ("f1",)
    NEXT_WINDOW = ("ctrl+right", "ctrl+l")
    PREV_WINDOW = ("ctrl+left",)
    FOCUS_MAIN = ("ctrl+o",)
    FOCUS_SIDEBAR = ("ctrl+s",)

    UP = ("up", "k")
    DOWN = ("down", "j")
    ENTER = ("enter", "right", "l")
    BACK = ("escape", "left", "h")

    NEW_LIST = ("n",)
    ADD_TASK = ("a",)
    EDIT = ("e",)
    DELETE = ("d",)
    TOGGLE = ("space",)
    SETTINGS = ("s",)
    PRIORITY = ("p",)

    SHOW_COMPLETED = ("c",)
    REMINDER_LATER = ("plus", "equals_sign")
    REMINDER_SOONER = ("minus",)

    FORM_BACK = ("escape",)
    FORM_SUBMIT = ("enter",)
    TAB = ("tab",)
    SHIFT_TAB = ("shift+tab",)
    BACKSPACE = ("backspace",)
    PRIORITY_UP = ("up",)
    PRIORITY_DOWN = ("down",)


FOCUS_LABELS = {
    WindowID.MAIN: "Focus: Main",
    WindowID.SIDEBAR: "Focus: Sidebar",
    WindowID.STATUS: "Focus: Status",
    WindowID.FORM: "Focus: Form",
    WindowID.HELP: "Focus: Help",
}


class Controller:
    """UI state machine over the Application snapshot."""

    def __init__(
        self,
        app: Application,
        storage: StorageGateway,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.app = app
        self.storage = storage
        self.clock = clock
        self.layout = LayoutManager()

        self.state = ViewState.LISTS
        self.previous_state = ViewState.LISTS
        self.previous_focus: WindowID | None = None
        self.form = FormState()

        self.current_list_id: str | None = app.todo_lists[0].id if app.todo_lists else None
        self.list_index = 0
        self.task_index = 0

        self.message: StatusMessage | None = None
        self.last_reminder_check = clock()
        self.running = True

    # -------------------- queries --------------------

    def current_list(self) -> TodoList | None:
        if self.current_list_id is None:
            return None
        return self.app.find_list(self.current_list_id)

    def visible_tasks(self) -> list[Task]:
        """Tasks of the current list as shown in the main panel."""
        todo_list = self.current_list()
        if todo_list is None:
            return []
        if self.app.settings.show_completed:
            return list(todo_list.tasks)
        return [task for task in todo_list.tasks if not task.completed]

    def selected_list(self) -> TodoList | None:
        if not self.app.todo_lists:
            return None
        return self.app.todo_lists[self.list_index]

    def selected_task(self) -> Task | None:
        tasks = self.visible_tasks()
        if not tasks:
            return None
        return tasks[self.task_index]

    def focused(self) -> WindowID | None:
        return self.layout.focused_window_id()

    def _clamp_selection(self) -> None:
        self.list_index = max(0, min(self.list_index, len(self.app.todo_lists) - 1))
        self.task_index = max(0, min(self.task_index, len(self.visible_tasks()) - 1))

    # -------------------- messages --------------------

    def show_message(self, text: str, kind: str = "info") -> None:
        self.message = StatusMessage(text, kind, self.clock())

    def _report_error(self, error: StorageError) -> None:
        logger.error("Storage operation failed: %s", error)
        self.show_message(f"Error: {error}", "error")

    def _persist(self) -> None:
        try:
            self.storage.save(self.app)
        except StorageError as e:
            self._report_error(e)

    # -------------------- events --------------------

    def handle_resize(self, width: int, height: int) -> None:
        self.layout.set_screen_size(width, height)

    def handle_reminder_tick(self) -> None:
        self.check_reminders()

    def handle_key(self, key: str, character: str | None = None) -> None:
        """Dispatch one key press by state and focus."""
        if self.state.is_form:
            self._handle_form_key(key, character)
            return

        if key in KeyMap.QUIT:
            self.quit()
        elif key in KeyMap.HELP:
            self.toggle_help()
        elif self.state is ViewState.HELP:
            if key in KeyMap.BACK:
                self.toggle_help()
        elif key in KeyMap.NEXT_WINDOW:
            self.layout.next_focus()
        elif key in KeyMap.PREV_WINDOW:
            self.layout.prev_focus()
        elif key in KeyMap.FOCUS_MAIN:
            self.layout.set_focus(WindowID.MAIN)
        elif key in KeyMap.FOCUS_SIDEBAR:
            self.layout.set_focus(WindowID.SIDEBAR)
        elif self.state is ViewState.SETTINGS:
            self._handle_settings_key(key)
        elif self.focused() is WindowID.SIDEBAR:
            self._handle_sidebar_key(key)
        elif self.focused() is WindowID.MAIN:
            self._handle_main_key(key)

    def quit(self) -> None:
        logger.info("Quit requested")
        self.running = False

    def toggle_help(self) -> None:
        if self.state is ViewState.HELP:
            self.layout.set_window_visible(WindowID.HELP, False)
            self.state = self.previous_state
            if self.state.is_form:
                self.layout.set_window_visible(WindowID.FORM, True)
            if self.previous_focus is not None:
                self.layout.set_focus(self.previous_focus)
            return

        self.previous_state = self.state
        self.previous_focus = self.focused()
        self.layout.set_window_visible(WindowID.HELP, True)
        self.layout.set_focus(WindowID.HELP)
        self.state = ViewState.HELP

    def _handle_sidebar_key(self, key: str) -> None:
        if key in KeyMap.UP:
            self.list_index = max(self.list_index - 1, 0)
        elif key in KeyMap.DOWN:
            self.list_index = min(self.list_index + 1, max(len(self.app.todo_lists) - 1, 0))
        elif key in KeyMap.NEW_LIST:
            self.open_list_form()
        elif key in KeyMap.SETTINGS:
            self.open_settings()
        elif key in KeyMap.ENTER:
            self.open_selected_list()
        elif key in KeyMap.EDIT:
            todo_list = self.selected_list()
            if todo_list is not None:
                self.open_list_form(todo_list)
        elif key in KeyMap.DELETE:
            self.delete_selected_list()

    def _handle_main_key(self, key: str) -> None:
        if key in KeyMap.BACK:
            self.state = ViewState.LISTS
            self.layout.set_focus(WindowID.SIDEBAR)
            return

        # Acting on the main panel while browsing lists works on the current list.
        if self.state is ViewState.LISTS and self.current_list_id is not None:
            self.state = ViewState.TASKS

        if key in KeyMap.UP:
            self.task_index = max(self.task_index - 1, 0)
        elif key in KeyMap.DOWN:
            self.task_index = min(self.task_index + 1, max(len(self.visible_tasks()) - 1, 0))
        elif key in KeyMap.ADD_TASK:
            if self.current_list() is None:
                self.show_message("Select a list first", "warning")
            else:
                self.open_task_form()
        elif key in KeyMap.EDIT:
            task = self.selected_task()
            if task is not None:
                self.open_task_form(task)
        elif key in KeyMap.TOGGLE:
            self.toggle_selected_task()
        elif key in KeyMap.DELETE:
            self.delete_selected_task()
        elif key in KeyMap.PRIORITY:
            self.cycle_selected_priority()
        elif key in KeyMap.SETTINGS:
            self.open_settings()

    def _handle_settings_key(self, key: str) -> None:
        settings = self.app.settings
        if key in KeyMap.BACK:
            self.state = ViewState.TASKS
            self.layout.set_focus(WindowID.MAIN)
        elif key in KeyMap.SHOW_COMPLETED:
            settings.show_completed = not settings.show_completed
            self._clamp_selection()
            self.show_message(
                f"Show completed {'on' if settings.show_completed else 'off'}", "success"
            )
            self._persist()
        elif key in KeyMap.REMINDER_LATER:
            settings.reminder_minutes += REMINDER_STEP
            self.show_message(f"Reminder lead time {settings.reminder_minutes}m", "success")
            self._persist()
        elif key in KeyMap.REMINDER_SOONER:
            settings.reminder_minutes = max(settings.reminder_minutes - REMINDER_STEP, REMINDER_MIN)
            self.show_message(f"Reminder lead time {settings.reminder_minutes}m", "success")
            self._persist()

    def _handle_form_key(self, key: str, character: str | None) -> None:
        form = self.form
        if key in KeyMap.FORM_QUIT:
            self.quit()
        elif key in KeyMap.FORM_HELP:
            self.toggle_help()
        elif key in KeyMap.FORM_BACK:
            self.cancel_form()
        elif key in KeyMap.FORM_SUBMIT:
            self.submit_form()
        elif key in KeyMap.TAB:
            form.focus_next()
        elif key in KeyMap.SHIFT_TAB:
            form.focus_prev()
        elif key in KeyMap.BACKSPACE:
            form.backspace()
        elif form.kind is FormKind.TASK and key in KeyMap.PRIORITY_UP:
            form.raise_priority()
        elif form.kind is FormKind.TASK and key in KeyMap.PRIORITY_DOWN:
            form.lower_priority()
        elif character and character.isprintable():
            form.insert(character)

    # -------------------- list actions --------------------

    def open_selected_list(self) -> None:
        todo_list = self.selected_list()
        if todo_list is None:
            return
        self.current_list_id = todo_list.id
        self.task_index = 0
        self.state = ViewState.TASKS
        self.layout.set_focus(WindowID.MAIN)
        self.show_message(f"Switched to {todo_list.name}", "success")

    def open_settings(self) -> None:
        self.previous_state = self.state
        self.state = ViewState.SETTINGS
        self.layout.set_focus(WindowID.MAIN)

    def open_list_form(self, todo_list: TodoList | None = None) -> None:
        if todo_list is None:
            self.form = FormState(kind=FormKind.LIST)
            state = ViewState.CREATE_LIST
        else:
            self.form = FormState(
                kind=FormKind.LIST,
                editing=True,
                editing_id=todo_list.id,
                fields=[todo_list.name, todo_list.description, ""],
            )
            state = ViewState.EDIT_LIST
        self._open_form(state)

    def open_task_form(self, task: Task | None = None) -> None:
        if task is None:
            self.form = FormState(kind=FormKind.TASK)
            state = ViewState.CREATE_TASK
        else:
            self.form = FormState(
                kind=FormKind.TASK,
                editing=True,
                editing_id=task.id,
                fields=[
                    task.title,
                    task.description,
                    format_deadline(task.deadline) if task.deadline else "",
                ],
                priority=task.priority,
            )
            state = ViewState.EDIT_TASK
        self._open_form(state)

    def _open_form(self, state: ViewState) -> None:
        self.state = state
        self.layout.set_window_visible(WindowID.FORM, True)
        self.layout.set_focus(WindowID.FORM)

    def _close_form(self, state: ViewState, focus: WindowID) -> None:
        self.form = FormState()
        self.layout.set_window_visible(WindowID.FORM, False)
        self.state = state
        self.layout.set_focus(focus)

    def cancel_form(self) -> None:
        if self.form.kind is FormKind.LIST:
            self._close_form(ViewState.LISTS, WindowID.SIDEBAR)
        else:
            self._close_form(ViewState.TASKS, WindowID.MAIN)

    def submit_form(self) -> None:
        if self.form.kind is FormKind.LIST:
            self._submit_list_form()
        elif self.form.kind is FormKind.TASK:
            self._submit_task_form()

    def _submit_list_form(self) -> None:
        name = self.form.title.strip()
        description = self.form.description.strip()
        if not name:
            self.show_message("List name cannot be empty", "warning")
            return

        try:
            if self.form.editing:
                self.storage.update_list(self.app, self.form.editing_id, name, description)
                message = f"List '{name}' updated"
            else:
                list_id = self.storage.create_list(self.app, name, description)
                self.list_index = len(self.app.todo_lists) - 1
                if self.current_list_id is None:
                    self.current_list_id = list_id
                message = f"List '{name}' created"
        except StorageError as e:
            self._report_error(e)
            return

        self._close_form(ViewState.LISTS, WindowID.SIDEBAR)
        self.show_message(message, "success")
        self._persist()

    def delete_selected_list(self) -> None:
        todo_list = self.selected_list()
        if todo_list is None:
            return
        try:
            self.storage.delete_list(self.app, todo_list.id)
        except StorageError as e:
            self._report_error(e)
            return

        if self.current_list_id == todo_list.id:
            self.current_list_id = self.app.todo_lists[0].id if self.app.todo_lists else None
            self.task_index = 0
        self._clamp_selection()
        self.show_message(f"List '{todo_list.name}' deleted", "success")
        self._persist()

    # -------------------- task actions --------------------

    def _submit_task_form(self) -> None:
        title = self.form.title.strip()
        description = self.form.description.strip()
        if not title:
            self.show_message("Task title cannot be empty", "warning")
            return
        try:
            deadline = parse_deadline(self.form.deadline)
        except ValueError:
            self.show_message("Invalid deadline format. Use YYYY-MM-DD HH:MM", "warning")
            return

        todo_list = self.current_list()
        if todo_list is None:
            self.show_message("Select a list first", "warning")
            return

        try:
            if self.form.editing:
                self.storage.update_task(
                    self.app,
                    todo_list.id,
                    self.form.editing_id,
                    title,
                    description,
                    self.form.priority,
                    deadline,
                )
                message = "Task updated"
            else:
                self.storage.create_task(
                    self.app, todo_list.id, title, description, self.form.priority, deadline
                )
                self.task_index = max(len(self.visible_tasks()) - 1, 0)
                message = f"Task '{title}' added"
        except StorageError as e:
            self._report_error(e)
            return

        self._close_form(ViewState.TASKS, WindowID.MAIN)
        self.show_message(message, "success")
        self._persist()

    def toggle_selected_task(self) -> None:
        task = self.selected_task()
        if task is None:
            return
        try:
            self.storage.toggle_task(self.app, self.current_list_id, task.id)
        except StorageError as e:
            self._report_error(e)
            return

        # Backends may swap in a fresh snapshot; read the flag back from it.
        toggled = self.current_list().find_task(task.id)
        if toggled is not None and toggled.completed:
            self.show_message("Task completed", "success")
        else:
            self.show_message("Task uncompleted", "info")
        self._clamp_selection()
        self._persist()

    def delete_selected_task(self) -> None:
        task = self.selected_task()
        if task is None:
            return
        try:
            self.storage.delete_task(self.app, self.current_list_id, task.id)
        except StorageError as e:
            self._report_error(e)
            return
        self._clamp_selection()
        self.show_message("Task deleted", "success")
        self._persist()

    def cycle_selected_priority(self) -> None:
        task = self.selected_task()
        if task is None:
            return
        priority = task.priority.next()
        try:
            self.storage.update_task(
                self.app,
                self.current_list_id,
                task.id,
                task.title,
                task.description,
                priority,
                task.deadline,
            )
        except StorageError as e:
            self._report_error(e)
            return
        self.show_message(f"Priority set to {priority}", "success")
        self._persist()

    # -------------------- reminders --------------------

    def check_reminders(self) -> Task | None:
        """Report the first task falling due within the reminder window.

        Scans at most once per minute; returns the task that was reported.
        """
        now = self.clock()
        if now - self.last_reminder_check < REMINDER_THROTTLE:
            return None
        self.last_reminder_check = now

        window = timedelta(minutes=self.app.settings.reminder_minutes)
        for todo_list in self.app.todo_lists:
            for task in todo_list.tasks:
                if task.completed or task.deadline is None:
                    continue
                remaining = task.time_until_deadline(now)
                if timedelta(0) < remaining <= window:
                    minutes = int(remaining.total_seconds() // 60)
                    self.show_message(f"Task '{task.title}' is due in {minutes}m!", "info")
                    logger.debug("Reminder for task %s", task.id)
                    return task
        return None

    # -------------------- rendering --------------------

    def refresh(self) -> None:
        """Project the snapshot into panel contents and titles."""
        now = self.clock()
        layout = self.layout
        self._clamp_selection()

        sidebar_height = max(layout.get_window(WindowID.SIDEBAR).rect.height - 2, 0)
        layout.set_window_content(
            WindowID.SIDEBAR,
            views.sidebar_content(self.app, self.list_index, self.current_list_id, sidebar_height),
        )
        layout.set_window_title(WindowID.SIDEBAR, f"Lists ({len(self.app.todo_lists)})")

        main_height = max(layout.get_window(WindowID.MAIN).rect.height - 2, 0)
        todo_list = self.current_list()
        if self.state is ViewState.SETTINGS:
            layout.set_window_title(WindowID.MAIN, "Settings")
            layout.set_window_content(WindowID.MAIN, views.settings_content(self.app.settings))
        else:
            layout.set_window_title(WindowID.MAIN, todo_list.name if todo_list else "Tasks")
            layout.set_window_content(
                WindowID.MAIN,
                views.tasks_content(
                    self.app, todo_list, self.visible_tasks(), self.task_index, main_height, now
                ),
            )

        layout.set_window_content(WindowID.STATUS, self.status_line(now))

        if self.form.kind is FormKind.LIST:
            layout.set_window_title(WindowID.FORM, "Edit List" if self.form.editing else "Create List")
        elif self.form.kind is FormKind.TASK:
            layout.set_window_title(WindowID.FORM, "Edit Task" if self.form.editing else "Create Task")
        if self.form.kind is not FormKind.NONE:
            layout.set_window_content(WindowID.FORM, views.form_content(self.form))

        layout.set_window_content(WindowID.HELP, views.help_content())

    def status_line(self, now: datetime) -> str:
        if self.message is not None and self.message.is_active(now):
            return views.message_content(self.message)

        parts = []
        if self.state is ViewState.SETTINGS:
            parts.append("Settings")
        else:
            parts.append(f"Lists: {len(self.app.todo_lists)}")
            todo_list = self.current_list()
            if todo_list is not None:
                parts.append(
                    f"Tasks: {todo_list.get_completed_count()}/{todo_list.get_total_count()}"
                )
        focus = self.focused()
        if focus is not None:
            parts.append(FOCUS_LABELS[focus])
        return views.status_content(parts)

    def render_text(self) -> Text:
        self.refresh()
        return self.layout.render_text()

    def render(self) -> str:
        return self.render_text().plain

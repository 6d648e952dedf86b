"""Tests for views.py - panel content builders."""

from datetime import datetime, timedelta

from rich.text import Text

from todoterm.models import Application, Priority, Settings, Task, TodoList
from todoterm.tui.layout import LayoutManager, WindowID
from todoterm.tui.views import (
    deadline_label,
    help_content,
    progress_bar,
    settings_content,
    sidebar_content,
    task_line,
    visible_slice,
)

NOW = datetime(2024, 6, 1, 12, 0)


def plain(markup: str) -> str:
    return Text.from_markup(markup).plain


def make_task(**kwargs) -> Task:
    defaults = {"id": "t1", "title": "Write report", "created_at": NOW, "updated_at": NOW}
    defaults.update(kwargs)
    return Task(**defaults)


def test_progress_bar() -> None:
    assert progress_bar(0, 0) == "░░░░░░░░░░ 0%"
    assert progress_bar(1, 2) == "█████░░░░░ 50%"
    assert progress_bar(3, 3, width=4) == "████ 100%"


class TestVisibleSlice:
    """Tests for visible_slice scrolling."""

    def test_fits(self) -> None:
        assert visible_slice(3, 2, 10) == (0, 3)

    def test_keeps_selection_on_screen(self) -> None:
        start, end = visible_slice(20, 15, 5)
        assert start <= 15 < end
        assert end - start == 5

    def test_no_room(self) -> None:
        assert visible_slice(5, 0, 0) == (0, 0)


class TestTaskLines:
    """Tests for task rendering."""

    def test_overdue_marker(self) -> None:
        task = make_task(deadline=NOW - timedelta(hours=1))
        assert "(OVERDUE)" in plain(deadline_label(task, NOW))

    def test_due_soon_marker(self) -> None:
        task = make_task(deadline=NOW + timedelta(hours=2))
        assert plain(deadline_label(task, NOW)) == "Due 2024-06-01 14:00 (SOON)"

    def test_no_deadline(self) -> None:
        assert deadline_label(make_task(), NOW) == ""

    def test_two_lines(self) -> None:
        task = make_task(
            priority=Priority.HIGH,
            description="Quarterly",
            deadline=NOW + timedelta(days=3),
        )
        head, details = plain(task_line(task, False, NOW)).split("\n")
        assert head == "○ Write report  High"
        assert details == "    Due 2024-06-04 12:00 · Quarterly"

    def test_completed_icon(self) -> None:
        line = plain(task_line(make_task(completed=True), True, NOW))
        assert line.startswith("✓ Write report")

    def test_markup_in_title_escaped(self) -> None:
        line = plain(task_line(make_task(title="[bold]x[/bold]"), False, NOW))
        assert "[bold]x[/bold]" in line


def test_sidebar_marks_lists() -> None:
    app = Application(
        todo_lists=[TodoList(id="a", name="Home"), TodoList(id="b", name="Work")]
    )
    content = plain(sidebar_content(app, 1, "a", 20))
    assert "Home" in content
    assert "Work" in content


def test_settings_content() -> None:
    content = plain(settings_content(Settings(reminder_minutes=15, show_completed=False)))
    assert "15" in content
    assert "off" in content


def test_help_fits_standard_terminal() -> None:
    """Test that every help line is visible in an 80x24 terminal."""
    layout = LayoutManager()
    layout.set_screen_size(80, 24)
    layout.set_window_content(WindowID.HELP, help_content())
    layout.set_window_visible(WindowID.HELP, True)

    frame = layout.render()
    for label in ("Toggle help", "Quit", "Back to lists", "Cancel", "Press ? or esc"):
        assert label in frame
    assert "…" not in frame

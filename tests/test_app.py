"""Tests for app.py - the controller hosted on textual's event loop."""

import asyncio
from pathlib import Path

from todoterm.storage import JsonFileStorage
from todoterm.tui.app import BoardView, TodoTermApp
from todoterm.tui.controller import REMINDER_INTERVAL, Controller
from todoterm.tui.layout import WindowID
from todoterm.tui.state import ViewState


def make_app(tmp_path: Path) -> TodoTermApp:
    storage = JsonFileStorage(tmp_path / "todoterm.json")
    return TodoTermApp(Controller(storage.load(), storage))


def test_board_receives_screen_size(tmp_path: Path) -> None:
    app = make_app(tmp_path)

    async def scenario() -> None:
        async with app.run_test(size=(80, 24)) as pilot:
            await pilot.pause()
            assert app.controller.layout.width == 80
            assert app.controller.layout.height == 24
            assert isinstance(app.focused, BoardView)

    asyncio.run(scenario())


def test_create_list_through_keys(tmp_path: Path) -> None:
    app = make_app(tmp_path)

    async def scenario() -> None:
        async with app.run_test(size=(80, 24)) as pilot:
            await pilot.press("ctrl+s", "n", "w", "o", "r", "k")
            assert app.controller.state is ViewState.CREATE_LIST
            assert app.controller.form.title == "work"

            await pilot.press("enter")
            assert app.controller.state is ViewState.LISTS
            assert [l.name for l in app.controller.app.todo_lists] == ["work"]
            assert app.controller.focused() is WindowID.SIDEBAR

    asyncio.run(scenario())
    assert [l.name for l in JsonFileStorage(tmp_path / "todoterm.json").load().todo_lists] == [
        "work"
    ]


def test_help_toggles(tmp_path: Path) -> None:
    app = make_app(tmp_path)

    async def scenario() -> None:
        async with app.run_test(size=(80, 24)) as pilot:
            await pilot.press("question_mark")
            assert app.controller.state is ViewState.HELP
            assert "Toggle help" in app.controller.render()

            await pilot.press("escape")
            assert app.controller.state is ViewState.LISTS

    asyncio.run(scenario())


def test_quit_exits_app(tmp_path: Path) -> None:
    app = make_app(tmp_path)

    async def scenario() -> None:
        async with app.run_test(size=(80, 24)) as pilot:
            await pilot.press("q")

    asyncio.run(scenario())
    assert app.controller.running is False


def test_reminder_timer_rearmed_after_tick(tmp_path: Path) -> None:
    """Test that each handled tick arms exactly one new one-shot tick."""
    app = make_app(tmp_path)
    delays = []
    set_timer = app.set_timer

    def recording_set_timer(delay, callback=None, **kwargs):
        delays.append(delay)
        return set_timer(delay, callback, **kwargs)

    app.set_timer = recording_set_timer

    async def scenario() -> None:
        async with app.run_test(size=(80, 24)) as pilot:
            await pilot.pause()
            assert delays.count(REMINDER_INTERVAL) == 1

            app._reminder_tick()
            assert delays.count(REMINDER_INTERVAL) == 2

    asyncio.run(scenario())

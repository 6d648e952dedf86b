"""
todoterm TUI application.

Hosts the Controller on textual's message loop: key presses, resizes and
timer ticks are all delivered on that one loop, so the snapshot is never
touched concurrently.
"""

from __future__ import annotations

import logging

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widget import Widget

from todoterm.storage import StorageGateway
from todoterm.tui.controller import REMINDER_INTERVAL, Controller

logger = logging.getLogger(__name__)

# Redraw interval in seconds; expires transient status messages
REDRAW_INTERVAL = 1.0


class BoardView(Widget, can_focus=True):
    """Full-screen widget that draws the controller's frame."""

    DEFAULT_CSS = """
    BoardView {
        width: 1fr;
        height: 1fr;
    }
    """

    def __init__(self, controller: Controller, **kwargs) -> None:
        super().__init__(**kwargs)
        self.controller = controller

    def render(self) -> Text:
        text = self.controller.render_text()
        text.no_wrap = True
        return text

    def on_resize(self, event: events.Resize) -> None:
        self.controller.handle_resize(event.size.width, event.size.height)
        self.refresh()

    def on_key(self, event: events.Key) -> None:
        # Every key belongs to the controller; keep textual's defaults out.
        event.stop()
        event.prevent_default()
        self.controller.handle_key(event.key, event.character)
        if not self.controller.running:
            self.app.exit()
            return
        self.refresh()


class TodoTermApp(App, inherit_bindings=False):
    """Main todoterm TUI application."""

    TITLE = "todoterm"
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen {
        background: $surface;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", show=False, priority=True),
    ]

    def __init__(self, controller: Controller, **kwargs) -> None:
        super().__init__(**kwargs)
        self.controller = controller
        self._reminder_timer = None
        self._redraw_timer = None

    def compose(self) -> ComposeResult:
        yield BoardView(self.controller, id="board")

    def on_mount(self) -> None:
        """Called when app is mounted."""
        board = self.query_one(BoardView)
        board.focus()
        self._reminder_timer = self.set_timer(REMINDER_INTERVAL, self._reminder_tick)
        self._redraw_timer = self.set_interval(REDRAW_INTERVAL, board.refresh)

    def _reminder_tick(self) -> None:
        self.controller.handle_reminder_tick()
        self.query_one(BoardView).refresh()
        # Re-arm after handling so ticks are never less than a minute apart.
        self._reminder_timer = self.set_timer(REMINDER_INTERVAL, self._reminder_tick)


def run(storage: StorageGateway) -> None:
    """Load the snapshot and run the TUI until the user quits.

    The caller owns ``storage`` and closes it afterwards.
    """
    controller = Controller(storage.load(), storage)
    logger.info("Starting TUI with %d lists", len(controller.app.todo_lists))
    TodoTermApp(controller).run()

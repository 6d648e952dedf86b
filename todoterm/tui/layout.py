"""
Window/layout manager.

Owns the fixed set of panels, computes their rectangles from the terminal
size, tracks focus and composes the final frame. It knows nothing about
tasks or lists: panel content arrives as rich markup strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from rich.text import Text

from todoterm.tui.styles import (
    FORM_STYLE,
    HELP_STYLE,
    MAIN_STYLE,
    SIDEBAR_STYLE,
    STATUS_STYLE,
    WindowStyle,
)

MIN_SCREEN_WIDTH = 80

# Smallest usable panel on undersized terminals
MIN_WIDTH = 10
MIN_HEIGHT = 5

SIDEBAR_MIN_WIDTH = 35
SIDEBAR_MAX_WIDTH = 50
STATUS_HEIGHT = 3
COMPACT_STATUS_HEIGHT = 2

FORM_WIDTH = 60
FORM_HEIGHT = 12

LOADING_TEXT = "Loading..."


class WindowID(Enum):
    MAIN = "main"
    SIDEBAR = "sidebar"
    STATUS = "status"
    FORM = "form"
    HELP = "help"


FOCUS_ORDER = (WindowID.MAIN, WindowID.SIDEBAR, WindowID.STATUS)
OVERLAYS = (WindowID.HELP, WindowID.FORM)  # render precedence


@dataclass
class Rect:
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0


@dataclass
class Window:
    """A rectangular panel."""

    id: WindowID
    title: str = ""
    visible: bool = True
    focused: bool = False
    border: bool = True
    rect: Rect = field(default_factory=Rect)
    content: str = ""
    style: WindowStyle = field(default_factory=WindowStyle)


class LayoutManager:
    """Panels, geometry, focus ring and frame composition."""

    def __init__(self) -> None:
        self.width = 0
        self.height = 0
        self.windows: dict[WindowID, Window] = {
            WindowID.MAIN: Window(WindowID.MAIN, title="Tasks", style=MAIN_STYLE),
            WindowID.SIDEBAR: Window(WindowID.SIDEBAR, title="Lists", style=SIDEBAR_STYLE),
            WindowID.STATUS: Window(WindowID.STATUS, title="", style=STATUS_STYLE),
            WindowID.FORM: Window(WindowID.FORM, title="Form", visible=False, style=FORM_STYLE),
            WindowID.HELP: Window(WindowID.HELP, title="Help", visible=False, style=HELP_STYLE),
        }
        self._focus_index = 0
        self.windows[WindowID.MAIN].focused = True

    # -------------------- geometry --------------------

    def set_screen_size(self, width: int, height: int) -> None:
        self.width = max(width, 0)
        self.height = max(height, 0)
        if self.width == 0 or self.height == 0:
            return

        status_height = STATUS_HEIGHT if height >= STATUS_HEIGHT + 10 else COMPACT_STATUS_HEIGHT

        # Below the supported size the sidebar gives up its minimum first.
        min_sidebar = SIDEBAR_MIN_WIDTH if width >= MIN_SCREEN_WIDTH else MIN_WIDTH
        sidebar_width = max(min_sidebar, min(width // 3, SIDEBAR_MAX_WIDTH))
        main_width = max(width - sidebar_width, MIN_WIDTH)
        body_height = max(height - status_height, MIN_HEIGHT)

        self.windows[WindowID.SIDEBAR].rect = Rect(0, 0, sidebar_width, body_height)
        self.windows[WindowID.MAIN].rect = Rect(sidebar_width, 0, main_width, body_height)
        self.windows[WindowID.STATUS].rect = Rect(
            0, body_height, max(width, MIN_WIDTH), status_height
        )
        # A two-row bar has no room for a frame around its one line of text.
        self.windows[WindowID.STATUS].border = status_height >= STATUS_HEIGHT

        form_width = FORM_WIDTH if width >= 70 else width - 4
        form_height = FORM_HEIGHT if height >= 15 else height - 3
        self.windows[WindowID.FORM].rect = self._centered(form_width, form_height)

        help_width = width - 6
        if help_width < 60:
            help_width = width
        help_height = height - 4
        if help_height < 20:
            help_height = height
        self.windows[WindowID.HELP].rect = self._centered(help_width, help_height)

    def _centered(self, width: int, height: int) -> Rect:
        width = max(width, MIN_WIDTH)
        height = max(height, MIN_HEIGHT)
        return Rect(
            max((self.width - width) // 2, 0),
            max((self.height - height) // 2, 0),
            width,
            height,
        )

    # -------------------- panel state --------------------

    def get_window(self, window_id: WindowID) -> Window:
        return self.windows[window_id]

    def set_window_visible(self, window_id: WindowID, visible: bool) -> None:
        window = self.windows[window_id]
        window.visible = visible
        if not visible:
            window.focused = False
        elif window_id in OVERLAYS:
            # At most one overlay at a time.
            for other in OVERLAYS:
                if other != window_id:
                    self.windows[other].visible = False
                    self.windows[other].focused = False

    def set_window_content(self, window_id: WindowID, content: str) -> None:
        self.windows[window_id].content = content

    def set_window_title(self, window_id: WindowID, title: str) -> None:
        self.windows[window_id].title = title

    def visible_overlay(self) -> Window | None:
        for window_id in OVERLAYS:
            if self.windows[window_id].visible:
                return self.windows[window_id]
        return None

    # -------------------- focus --------------------

    def focused_window_id(self) -> WindowID | None:
        for window in self.windows.values():
            if window.focused:
                return window.id
        return None

    def set_focus(self, window_id: WindowID) -> None:
        """Focus a visible panel. Hidden targets leave focus untouched."""
        target = self.windows[window_id]
        if not target.visible:
            return
        for window in self.windows.values():
            window.focused = False
        target.focused = True
        if window_id in FOCUS_ORDER:
            self._focus_index = FOCUS_ORDER.index(window_id)

    def next_focus(self) -> None:
        self._cycle_focus(1)

    def prev_focus(self) -> None:
        self._cycle_focus(-1)

    def _cycle_focus(self, step: int) -> None:
        for window in self.windows.values():
            window.focused = False
        for _ in range(len(FOCUS_ORDER)):
            self._focus_index = (self._focus_index + step) % len(FOCUS_ORDER)
            window = self.windows[FOCUS_ORDER[self._focus_index]]
            if window.visible:
                window.focused = True
                return

    # -------------------- rendering --------------------

    def render_text(self) -> Text:
        """Compose the frame; every line is exactly ``width`` cells."""
        if self.width == 0 or self.height == 0:
            return Text(LOADING_TEXT)

        overlay = self.visible_overlay()
        if overlay is not None:
            panels = [overlay]
        else:
            panels = [
                self.windows[window_id]
                for window_id in (WindowID.SIDEBAR, WindowID.MAIN, WindowID.STATUS)
                if self.windows[window_id].visible
            ]
        return Text("\n").join(self._compose(panels))

    def render(self) -> str:
        return self.render_text().plain

    def _compose(self, panels: list[Window]) -> list[Text]:
        drawn = sorted(
            ((panel.rect, render_window(panel)) for panel in panels),
            key=lambda item: item[0].x,
        )
        rows = []
        for y in range(self.height):
            row = Text()
            cursor = 0
            for rect, lines in drawn:
                if rect.y <= y < rect.y + len(lines) and rect.x >= cursor:
                    if rect.x > cursor:
                        row.append(" " * (rect.x - cursor))
                    row.append_text(lines[y - rect.y])
                    cursor = rect.x + rect.width
            row.truncate(self.width, pad=True)
            rows.append(row)
        return rows


def render_window(window: Window) -> list[Text]:
    """Draw one panel as ``rect.height`` lines of ``rect.width`` cells."""
    width, height = window.rect.width, window.rect.height
    if width <= 0 or height <= 0:
        return []
    if not window.border or width < 2:
        return body_lines(window.content, width, height, 0)

    style = window.style
    glyphs = style.border
    color = style.border_color(window.focused)
    inner = width - 2

    top = Text(glyphs.top_left, style=color)
    fill = inner
    if window.title and inner > 1:
        title = Text(f" {window.title} ", style=style.title_style)
        title.truncate(inner - 1)
        top.append(glyphs.top, style=color)
        top.append_text(title)
        fill = inner - 1 - title.cell_len
    top.append(glyphs.top * fill, style=color)
    top.append(glyphs.top_right, style=color)
    lines = [top]

    if height > 2:
        for body in body_lines(window.content, inner, height - 2, style.padding):
            row = Text(glyphs.side, style=color)
            row.append_text(body)
            row.append(glyphs.side, style=color)
            lines.append(row)
    if height > 1:
        lines.append(
            Text(glyphs.bottom_left + glyphs.bottom * inner + glyphs.bottom_right, style=color)
        )
    return lines


def body_lines(content: str, width: int, height: int, padding: int) -> list[Text]:
    """Content markup clipped and padded to a ``width`` x ``height`` block."""
    pad = padding if width > 2 * padding else 0
    inner = width - 2 * pad
    rows = []
    if content and inner > 0:
        for line in Text.from_markup(content).split("\n", allow_blank=True)[:height]:
            line.truncate(inner, overflow="ellipsis", pad=True)
            rows.append(Text(" " * pad) + line + Text(" " * pad))
    while len(rows) < height:
        rows.append(Text(" " * width))
    return rows

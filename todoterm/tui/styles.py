"""Colours, border glyph sets and per-panel styles."""

from __future__ import annotations

from dataclasses import dataclass

# Palette
PRIMARY = "#7C3AED"
ACCENT = "#10B981"
TEXT_PRIMARY = "#F9FAFB"
TEXT_SECONDARY = "#D1D5DB"
TEXT_MUTED = "#9CA3AF"

SUCCESS = "#10B981"
WARNING = "#F59E0B"
ERROR = "#EF4444"
INFO = "#3B82F6"

BORDER_SECONDARY = "#6B7280"
BORDER_FOCUSED = "#10B981"
BORDER_UNFOCUSED = "#4B5563"


@dataclass(frozen=True)
class BorderGlyphs:
    top_left: str
    top: str
    top_right: str
    side: str
    bottom_left: str
    bottom: str
    bottom_right: str


ROUNDED = BorderGlyphs("╭", "─", "╮", "│", "╰", "─", "╯")
DOUBLE = BorderGlyphs("╔", "═", "╗", "║", "╚", "═", "╝")
THICK = BorderGlyphs("┏", "━", "┓", "┃", "┗", "━", "┛")
SUBTLE = BorderGlyphs("┌", "─", "┐", "│", "└", "─", "┘")


@dataclass(frozen=True)
class WindowStyle:
    """How a panel draws its frame."""

    border: BorderGlyphs = SUBTLE
    focused_color: str = BORDER_FOCUSED
    unfocused_color: str = BORDER_UNFOCUSED
    title_style: str = f"bold {PRIMARY}"
    padding: int = 1

    def border_color(self, focused: bool) -> str:
        return self.focused_color if focused else self.unfocused_color


MAIN_STYLE = WindowStyle(border=THICK)
SIDEBAR_STYLE = WindowStyle(
    border=ROUNDED, unfocused_color=BORDER_SECONDARY, title_style=f"bold {ACCENT}"
)
STATUS_STYLE = WindowStyle(
    border=SUBTLE, unfocused_color=BORDER_SECONDARY, title_style=f"bold {INFO}"
)
FORM_STYLE = WindowStyle(border=DOUBLE, focused_color=PRIMARY, unfocused_color=PRIMARY)
HELP_STYLE = WindowStyle(
    border=ROUNDED, focused_color=INFO, unfocused_color=INFO, title_style=f"bold {INFO}", padding=2
)

# Status message kinds
MESSAGE_ICONS = {
    "success": "✓",
    "warning": "!",
    "error": "✗",
    "info": "i",
}

MESSAGE_COLORS = {
    "success": SUCCESS,
    "warning": WARNING,
    "error": ERROR,
    "info": INFO,
}

PRIORITY_COLORS = {
    0: TEXT_MUTED,
    1: INFO,
    2: WARNING,
    3: ERROR,
}

KEY_STYLE = f"bold {ACCENT}"
MUTED_STYLE = TEXT_MUTED
SELECTED_STYLE = f"bold {TEXT_PRIMARY} on #374151"

"""Event-driven screen model for the interactive table.

Each input event is handled to completion and yields a list of commands for
the terminal loop to carry out. Nothing here touches the terminal itself.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Union

from ..core.enums import SortKey
from .state import TableView, ViewState

logger = logging.getLogger(__name__)

SORT_BINDINGS: Dict[str, SortKey] = {
    "r": SortKey.RANK,
    "n": SortKey.NAME,
    "p": SortKey.PRICE,
    "1": SortKey.CHANGE_1H,
    "2": SortKey.CHANGE_24H,
    "7": SortKey.CHANGE_7D,
    "m": SortKey.MARKET_CAP,
    "a": SortKey.VOLUME,
    "t": SortKey.TOTAL_SUPPLY,
}

QUIT_KEYS = ("q", "ctrl+c")
UP_KEYS = ("up", "k")
DOWN_KEYS = ("down", "j")
PAGE_UP_KEYS = ("pgup", "b")
PAGE_DOWN_KEYS = ("pgdown", "f", " ")
HALF_PAGE_UP_KEYS = ("u",)
HALF_PAGE_DOWN_KEYS = ("d",)
TOP_KEYS = ("home", "g")
BOTTOM_KEYS = ("end", "G")

SPINNER_FRAMES = ("|", "/", "-", "\\")


@dataclass(frozen=True)
class KeyPress:
    key: str


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class Tick:
    pass


Event = Union[KeyPress, Resize, Tick]


@dataclass(frozen=True)
class Render:
    pass


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class Echo:
    text: str


Command = Union[Render, Quit, Echo]


class ScreenModel:
    """Focus, cursor, viewport and spinner state wrapped around a ViewState."""

    def __init__(self, view: ViewState, height: int = 10, width: int = 0):
        self.view = view
        self.table: TableView = view.recompute()
        self.focused = True
        self.cursor = 0
        self.offset = 0
        self.width = width
        self.height = height
        # Nothing in the startup flow sets this; ticks are ignored while False.
        self.loading = False
        self.spinner_frame = 0

    @property
    def spinner(self) -> str:
        return SPINNER_FRAMES[self.spinner_frame % len(SPINNER_FRAMES)]

    @property
    def body_rows(self) -> int:
        """Data rows that fit below the header and its rule."""
        return max(1, self.height - 2)

    def handle(self, event: Event) -> List[Command]:
        """Apply one event and return the resulting commands."""
        if isinstance(event, KeyPress):
            return self._handle_key(event.key)
        if isinstance(event, Resize):
            self.width = event.width
            self.height = max(1, event.height - 2)
            self._scroll_to_cursor()
            return [Render()]
        if isinstance(event, Tick):
            if not self.loading:
                return []
            self.spinner_frame = (self.spinner_frame + 1) % len(SPINNER_FRAMES)
            return [Render()]
        logger.debug(f"Ignoring unknown event {event!r}")
        return []

    def _handle_key(self, key: str) -> List[Command]:
        if key in QUIT_KEYS:
            return [Quit()]

        if key == "esc":
            self.focused = not self.focused
            return [Render()]

        if key == "enter":
            record = self.view.record_at(self.cursor)
            if record is None:
                return []
            return [Echo(f"Selected: {record.name}")]

        if key == "right":
            if self.view.set_page(1):
                self._refresh(reset_cursor=True)
            return [Render()]

        if key == "left":
            if self.view.set_page(-1):
                self._refresh(reset_cursor=True)
            return [Render()]

        if key in SORT_BINDINGS:
            self.view.toggle_sort(SORT_BINDINGS[key])
            self._refresh()
            return [Render()]

        if self.focused and key in UP_KEYS:
            self._move_cursor(-1)
            return [Render()]

        if self.focused and key in DOWN_KEYS:
            self._move_cursor(1)
            return [Render()]

        jumps = self._cursor_jumps()
        if self.focused and key in jumps:
            self._move_cursor(jumps[key])
            return [Render()]

        return []

    def _cursor_jumps(self) -> Dict[str, int]:
        """Cursor deltas for the viewport paging and jump keys."""
        half = max(1, self.body_rows // 2)
        last = len(self.table.rows)
        jumps: Dict[str, int] = {}
        for keys, delta in (
            (PAGE_UP_KEYS, -self.body_rows),
            (PAGE_DOWN_KEYS, self.body_rows),
            (HALF_PAGE_UP_KEYS, -half),
            (HALF_PAGE_DOWN_KEYS, half),
            (TOP_KEYS, -last),
            (BOTTOM_KEYS, last),
        ):
            for key in keys:
                jumps[key] = delta
        return jumps

    def _refresh(self, reset_cursor: bool = False) -> None:
        self.table = self.view.recompute()
        if reset_cursor:
            self.cursor = 0
            self.offset = 0
        self._move_cursor(0)

    def _move_cursor(self, delta: int) -> None:
        last = max(0, len(self.table.rows) - 1)
        self.cursor = min(max(self.cursor + delta, 0), last)
        self._scroll_to_cursor()

    def _scroll_to_cursor(self) -> None:
        if self.cursor < self.offset:
            self.offset = self.cursor
        elif self.cursor >= self.offset + self.body_rows:
            self.offset = self.cursor - self.body_rows + 1

"""Curses front end for the screen model."""

import curses
import logging
from typing import Dict, Optional

from ..core.enums import Tone
from .render import fit
from .screen import Echo, KeyPress, Quit, Render, Resize, ScreenModel, Tick

logger = logging.getLogger(__name__)

KEY_NAMES: Dict[int, str] = {
    curses.KEY_LEFT: "left",
    curses.KEY_RIGHT: "right",
    curses.KEY_UP: "up",
    curses.KEY_DOWN: "down",
    curses.KEY_PPAGE: "pgup",
    curses.KEY_NPAGE: "pgdown",
    curses.KEY_HOME: "home",
    curses.KEY_END: "end",
    curses.KEY_ENTER: "enter",
    10: "enter",
    13: "enter",
    27: "esc",
    3: "ctrl+c",
}

# Colour pair numbers
PAIR_HEADER = 1
PAIR_SELECTED = 2
PAIR_POSITIVE = 3
PAIR_NEGATIVE = 4
PAIR_BORDER = 5


def decode_key(code: int) -> Optional[str]:
    """Translate a curses key code into the names the screen model uses."""
    if code in KEY_NAMES:
        return KEY_NAMES[code]
    if 32 <= code < 127:
        return chr(code)
    return None


class TerminalUI:
    """Runs the single-threaded input loop and draws the table."""

    def __init__(self, model: ScreenModel, tick_interval_ms: int = 100):
        self.model = model
        self.tick_interval_ms = tick_interval_ms
        self.status = ""
        self._colors = False

    def run(self) -> None:
        """Take over the terminal until a quit command arrives."""
        curses.wrapper(self._loop)

    def _loop(self, stdscr) -> None:
        curses.raw()
        curses.curs_set(0)
        curses.set_escdelay(25)
        stdscr.keypad(True)
        stdscr.timeout(self.tick_interval_ms)
        self._init_colors()

        height, width = stdscr.getmaxyx()
        self.model.handle(Resize(width, height))
        self._draw(stdscr)

        while True:
            code = stdscr.getch()
            if code == -1:
                event = Tick()
            elif code == curses.KEY_RESIZE:
                height, width = stdscr.getmaxyx()
                event = Resize(width, height)
            else:
                key = decode_key(code)
                if key is None:
                    continue
                event = KeyPress(key)

            for command in self.model.handle(event):
                if isinstance(command, Quit):
                    logger.info("Quit requested")
                    return
                if isinstance(command, Echo):
                    self.status = command.text
                    self._draw(stdscr)
                elif isinstance(command, Render):
                    self._draw(stdscr)

    def _init_colors(self) -> None:
        if not curses.has_colors():
            return
        curses.start_color()
        curses.use_default_colors()
        palette = curses.COLORS >= 256
        curses.init_pair(PAIR_HEADER, -1, -1)
        curses.init_pair(PAIR_SELECTED, 229 if palette else curses.COLOR_YELLOW,
                         57 if palette else curses.COLOR_BLUE)
        curses.init_pair(PAIR_POSITIVE, 10 if palette else curses.COLOR_GREEN, -1)
        curses.init_pair(PAIR_NEGATIVE, 9 if palette else curses.COLOR_RED, -1)
        curses.init_pair(PAIR_BORDER, 240 if palette else curses.COLOR_WHITE, -1)
        self._colors = True

    def _attr(self, pair: int, extra: int = 0) -> int:
        return (curses.color_pair(pair) if self._colors else 0) | extra

    def _put(self, stdscr, y: int, x: int, text: str, attr: int = 0) -> None:
        height, width = stdscr.getmaxyx()
        if y >= height or x >= width:
            return
        try:
            stdscr.addnstr(y, x, text, width - x, attr)
        except curses.error:
            # Writing the bottom-right cell moves the cursor off screen
            pass

    def _draw(self, stdscr) -> None:
        model = self.model
        stdscr.erase()

        if model.loading:
            self._put(stdscr, 1, 0, f"{model.spinner} Loading...")
            stdscr.refresh()
            return

        table = model.table
        x = 0
        for column in table.columns:
            self._put(stdscr, 0, x, fit(column.title, column.width), self._attr(PAIR_HEADER, curses.A_BOLD))
            x += column.width + 1
        self._put(stdscr, 1, 0, "─" * max(0, x - 1), self._attr(PAIR_BORDER))

        visible = table.rows[model.offset:model.offset + model.body_rows]
        for line, row in enumerate(visible):
            index = model.offset + line
            selected = model.focused and index == model.cursor
            x = 0
            for column, cell in zip(table.columns, row):
                if selected:
                    attr = self._attr(PAIR_SELECTED)
                elif cell.tone == Tone.POSITIVE:
                    attr = self._attr(PAIR_POSITIVE)
                elif cell.tone == Tone.NEGATIVE:
                    attr = self._attr(PAIR_NEGATIVE)
                else:
                    attr = 0
                self._put(stdscr, 2 + line, x, fit(cell.text, column.width), attr)
                x += column.width + 1

        footer = f"Page {table.page}/{table.page_count}  ({table.start + 1 if table.total else 0}-{table.end} of {table.total})"
        if self.status:
            footer = f"{footer}  {self.status}"
        self._put(stdscr, 2 + model.body_rows, 0, footer, self._attr(PAIR_BORDER))
        stdscr.refresh()

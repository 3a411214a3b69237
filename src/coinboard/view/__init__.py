"""Table view module."""

from .render import Cell, Column, COLUMNS, build_row, decorate_columns
from .state import ViewState, TableView, sort_records
from .screen import ScreenModel, KeyPress, Resize, Tick, Render, Quit, Echo

__all__ = [
    "Cell",
    "Column",
    "COLUMNS",
    "build_row",
    "decorate_columns",
    "ViewState",
    "TableView",
    "sort_records",
    "ScreenModel",
    "KeyPress",
    "Resize",
    "Tick",
    "Render",
    "Quit",
    "Echo",
]

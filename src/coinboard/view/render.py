"""Cell formatting for the market table."""

from dataclasses import dataclass
from typing import List, NamedTuple, Optional

from ..core.enums import SortKey, Tone
from ..core.models import CoinRecord

ASCENDING_ARROW = " ↑"
DESCENDING_ARROW = " ↓"
ELLIPSIS = "…"


class Cell(NamedTuple):
    """Rendered text plus a colour hint."""
    text: str
    tone: Tone = Tone.NEUTRAL


@dataclass(frozen=True)
class Column:
    """Table column definition."""
    title: str
    width: int
    sort_key: Optional[SortKey] = None


COLUMNS = (
    Column("Rank", 6, SortKey.RANK),
    Column("Name", 20, SortKey.NAME),
    Column("Symbol", 10),
    Column("Price (USD)", 15, SortKey.PRICE),
    Column("1h", 8, SortKey.CHANGE_1H),
    Column("24h", 8, SortKey.CHANGE_24H),
    Column("7d", 8, SortKey.CHANGE_7D),
    Column("Market Cap", 15, SortKey.MARKET_CAP),
    Column("Volume (24h)", 15, SortKey.VOLUME),
    Column("Total Supply", 15, SortKey.TOTAL_SUPPLY),
)


def sort_arrow(ascending: bool) -> str:
    return ASCENDING_ARROW if ascending else DESCENDING_ARROW


def decorate_columns(sort_key: Optional[SortKey], ascending: bool) -> List[Column]:
    """Copy of COLUMNS with the active sort column marked."""
    columns = []
    for column in COLUMNS:
        if sort_key is not None and column.sort_key == sort_key:
            column = Column(column.title + sort_arrow(ascending), column.width, column.sort_key)
        columns.append(column)
    return columns


def format_price(value: float) -> Cell:
    return Cell(f"${value:.2f}")


def format_change(value: float) -> Cell:
    """Percentage change, red when negative and green otherwise."""
    tone = Tone.NEGATIVE if value < 0 else Tone.POSITIVE
    return Cell(f"{value:.2f}%", tone)


def format_millions(value: float, currency: bool = True) -> Cell:
    prefix = "$" if currency else ""
    return Cell(f"{prefix}{value / 1e6:.2f}M")


def build_row(position: int, record: CoinRecord) -> List[Cell]:
    """Cells for one record; position is its 1-based place in the current ordering."""
    return [
        Cell(str(position)),
        Cell(record.name),
        Cell(record.symbol.upper()),
        format_price(record.price_usd),
        format_change(record.change_1h),
        format_change(record.change_24h),
        format_change(record.change_7d),
        format_millions(record.market_cap),
        format_millions(record.volume_24h),
        format_millions(record.total_supply, currency=False),
    ]


def fit(text: str, width: int) -> str:
    """Pad or truncate text to exactly width characters."""
    if width <= 0:
        return ""
    if len(text) > width:
        return text[:width - 1] + ELLIPSIS
    return text.ljust(width)

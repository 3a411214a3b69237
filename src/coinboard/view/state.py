"""Sort and pagination state behind the market table."""

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..core.enums import SortKey
from ..core.models import CoinRecord
from .render import Cell, Column, build_row, decorate_columns

logger = logging.getLogger(__name__)


def _name_initial(record: CoinRecord) -> str:
    # Only the first letter takes part in the comparison
    return record.name.lower()[:1]


SORT_FIELDS: Dict[SortKey, Callable[[CoinRecord], Any]] = {
    SortKey.RANK: lambda r: r.market_cap,
    SortKey.NAME: _name_initial,
    SortKey.PRICE: lambda r: r.price_usd,
    SortKey.CHANGE_1H: lambda r: r.change_1h,
    SortKey.CHANGE_24H: lambda r: r.change_24h,
    SortKey.CHANGE_7D: lambda r: r.change_7d,
    SortKey.MARKET_CAP: lambda r: r.market_cap,
    SortKey.VOLUME: lambda r: r.volume_24h,
    SortKey.TOTAL_SUPPLY: lambda r: r.total_supply,
}


def sort_records(records: Sequence[CoinRecord], key: SortKey, ascending: bool) -> List[CoinRecord]:
    """Return a new list ordered by key; the input is left untouched."""
    return sorted(records, key=SORT_FIELDS[key], reverse=not ascending)


@dataclass
class TableView:
    """Derived table contents for the current page."""
    columns: List[Column]
    rows: List[List[Cell]]
    page: int
    page_count: int
    start: int
    end: int
    total: int


class ViewState:
    """Ordered record set, page window and active sort.

    The records handed in are never reordered; sorting replaces ``records``
    with a new list.
    """

    def __init__(
        self,
        records: Sequence[CoinRecord],
        per_page: int = 50,
        page: int = 1,
        sort_key: SortKey = SortKey.RANK,
        ascending: bool = True,
    ):
        if per_page < 1:
            raise ValueError("per_page must be at least 1")
        self.records: List[CoinRecord] = list(records)
        self.per_page = per_page
        self.page = max(1, page)
        self.sort_key = sort_key
        self.ascending = ascending
        # Records arrive in API order; no header arrow until a sort is chosen
        self.sort_applied = False

    def toggle_sort(self, key: SortKey) -> None:
        """Flip direction on the active key, or switch to key ascending."""
        if key == self.sort_key:
            self.ascending = not self.ascending
        else:
            self.sort_key = key
            self.ascending = True
        self.sort_applied = True
        self.records = sort_records(self.records, self.sort_key, self.ascending)
        logger.debug(f"Sorted {len(self.records)} records by {self.sort_key.value} "
                     f"({'asc' if self.ascending else 'desc'})")

    def set_page(self, delta: int) -> bool:
        """Move delta pages, one step at a time, stopping at either end.

        Returns True if the page changed.
        """
        original = self.page
        step = 1 if delta > 0 else -1
        for _ in range(abs(delta)):
            if step > 0 and self.page * self.per_page < len(self.records):
                self.page += 1
            elif step < 0 and self.page > 1:
                self.page -= 1
            else:
                break
        return self.page != original

    @property
    def page_count(self) -> int:
        return max(1, math.ceil(len(self.records) / self.per_page))

    def window(self) -> Tuple[int, int]:
        """Visible [start, end) slice, clamped to the record count."""
        total = len(self.records)
        start = min((self.page - 1) * self.per_page, total)
        end = min(start + self.per_page, total)
        return start, end

    def visible_records(self) -> List[CoinRecord]:
        start, end = self.window()
        return self.records[start:end]

    def record_at(self, index: int) -> Optional[CoinRecord]:
        """Record at a row index within the current page."""
        visible = self.visible_records()
        if 0 <= index < len(visible):
            return visible[index]
        return None

    def recompute(self) -> TableView:
        """Derive visible rows and decorated headers."""
        start, end = self.window()
        rows = [
            build_row(start + offset + 1, record)
            for offset, record in enumerate(self.records[start:end])
        ]
        return TableView(
            columns=decorate_columns(self.sort_key if self.sort_applied else None, self.ascending),
            rows=rows,
            page=self.page,
            page_count=self.page_count,
            start=start,
            end=end,
            total=len(self.records),
        )

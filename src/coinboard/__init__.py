"""
Terminal Market Table

Fetches a ranked snapshot of cryptocurrency markets from CoinGecko, caches it
briefly on disk, and shows it as a sortable, paginated table in the terminal.
"""

__version__ = "0.1.0"
__author__ = "Coinboard Team"

from .core.models import CoinRecord
from .core.enums import SortKey
from .core.errors import CoinboardError, NetworkError, DecodeError
from .data.provider import MarketDataProvider, CoinGeckoProvider, MockProvider
from .view.state import ViewState

__all__ = [
    "CoinRecord",
    "SortKey",
    "CoinboardError",
    "NetworkError",
    "DecodeError",
    "MarketDataProvider",
    "CoinGeckoProvider",
    "MockProvider",
    "ViewState",
]

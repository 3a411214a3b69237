"""Market data module."""

from .cache import SnapshotCache
from .provider import MarketDataProvider, CachedMarketProvider, CoinGeckoProvider, MockProvider

__all__ = [
    "SnapshotCache",
    "MarketDataProvider",
    "CachedMarketProvider",
    "CoinGeckoProvider",
    "MockProvider",
]

"""Core enumerations for the market table."""

from enum import Enum


class SortKey(str, Enum):
    """Fields the table can be ordered by."""
    RANK = "rank"
    NAME = "name"
    PRICE = "price"
    CHANGE_1H = "change1h"
    CHANGE_24H = "change24h"
    CHANGE_7D = "change7d"
    MARKET_CAP = "marketCap"
    VOLUME = "volume"
    TOTAL_SUPPLY = "totalSupply"


class Tone(str, Enum):
    """Colour hint attached to a rendered cell."""
    NEUTRAL = "neutral"
    POSITIVE = "positive"
    NEGATIVE = "negative"

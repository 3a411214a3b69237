"""Core module for the market table."""

from .models import CoinRecord, decode_records, encode_records
from .enums import SortKey, Tone
from .errors import CoinboardError, NetworkError, DecodeError
from .oplog import OperationLog

__all__ = [
    "CoinRecord",
    "decode_records",
    "encode_records",
    "SortKey",
    "Tone",
    "CoinboardError",
    "NetworkError",
    "DecodeError",
    "OperationLog",
]

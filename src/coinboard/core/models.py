"""Core data models for the market table."""

import json
from typing import List, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class CoinRecord(BaseModel):
    """One ranked row from the markets endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    # Identity
    id: str = Field(description="Provider coin identifier")
    name: str = Field(description="Display name")
    symbol: str = Field(description="Ticker symbol")

    # Price data
    price_usd: float = Field(default=0.0, alias="current_price", description="Current price in USD")
    change_1h: float = Field(
        default=0.0,
        alias="price_change_percentage_1h_in_currency",
        description="Price change over 1h (%)",
    )
    change_24h: float = Field(
        default=0.0,
        alias="price_change_percentage_24h_in_currency",
        description="Price change over 24h (%)",
    )
    change_7d: float = Field(
        default=0.0,
        alias="price_change_percentage_7d_in_currency",
        description="Price change over 7d (%)",
    )

    # Size
    market_cap: float = Field(default=0.0, alias="market_cap", description="Market capitalization")
    volume_24h: float = Field(default=0.0, alias="total_volume", description="Traded volume over 24h")
    total_supply: float = Field(default=0.0, alias="total_supply", description="Total coin supply")

    @field_validator(
        'price_usd', 'change_1h', 'change_24h', 'change_7d',
        'market_cap', 'volume_24h', 'total_supply',
        mode='before',
    )
    @classmethod
    def null_as_zero(cls, v):
        # The API reports unknown figures as null
        return 0.0 if v is None else v


_records_adapter = TypeAdapter(List[CoinRecord])


def decode_records(payload: Union[str, bytes]) -> List[CoinRecord]:
    """Decode a JSON array of market objects.

    Raises ``json.JSONDecodeError`` or ``pydantic.ValidationError`` on malformed input.
    """
    return _records_adapter.validate_python(json.loads(payload))


def encode_records(records: Sequence[CoinRecord]) -> str:
    """Serialize records using the API field names."""
    return json.dumps([record.model_dump(by_alias=True) for record in records])

"""Pytest configuration and fixtures."""

import logging

import pytest

from coinboard.core.models import CoinRecord
from coinboard.core.oplog import OperationLog
from coinboard.data.cache import SnapshotCache


def make_record(name="Bitcoin", market_cap=1_000_000.0, **overrides):
    """Build a CoinRecord with sensible defaults."""
    fields = {
        "id": name.lower().replace(" ", "-"),
        "name": name,
        "symbol": name[:3].lower(),
        "price_usd": 100.0,
        "change_1h": 0.5,
        "change_24h": -1.25,
        "change_7d": 3.0,
        "market_cap": market_cap,
        "volume_24h": 250_000.0,
        "total_supply": 21_000_000.0,
    }
    fields.update(overrides)
    return CoinRecord(**fields)


@pytest.fixture
def sample_records():
    """Five records in market-cap-descending order, as the API returns them."""
    return [
        make_record("Bitcoin", 1_200_000_000_000.0, price_usd=64000.0, change_1h=0.2, volume_24h=30e9),
        make_record("Ethereum", 380_000_000_000.0, price_usd=3100.0, change_1h=-0.4, volume_24h=15e9),
        make_record("Tether", 110_000_000_000.0, price_usd=1.0, change_1h=0.0, volume_24h=50e9),
        make_record("Solana", 70_000_000_000.0, price_usd=150.0, change_1h=1.1, volume_24h=3e9),
        make_record("Cardano", 15_000_000_000.0, price_usd=0.42, change_1h=-2.3, volume_24h=0.5e9),
    ]


@pytest.fixture
def snapshot_cache(tmp_path):
    """Snapshot cache writing into a temporary directory."""
    return SnapshotCache(str(tmp_path / "crypto_cache.json"), max_age_seconds=30)


@pytest.fixture
def oplog():
    """Operation log writing to a dedicated test logger."""
    return OperationLog(logging.getLogger("coinboard.tests.operations"))


@pytest.fixture
def record_factory():
    """Factory for ad-hoc records."""
    return make_record

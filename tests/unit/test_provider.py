"""Unit tests for the cache-aware retrying provider."""

import asyncio
import logging
import os
import time
from unittest.mock import AsyncMock, call

import aiohttp
import pytest

from coinboard.core.errors import CoinboardError, DecodeError, NetworkError
from coinboard.core.models import encode_records
from coinboard.data.cache import SnapshotCache
from coinboard.data.provider import CoinGeckoProvider, MockProvider


RATE_LIMITED = (429, '{"status": {"error_code": 429}}')


class FakeResponse:
    """Minimal stand-in for an aiohttp response context manager."""

    def __init__(self, status, body):
        self.status = status
        self._body = body

    async def read(self):
        if isinstance(self._body, str):
            return self._body.encode("utf-8")
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Records GET calls and replays scripted responses or errors."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []
        self.closed = False
        self.close = AsyncMock()

    def get(self, url, params=None):
        self.calls.append((url, params))
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class TestCacheShortCircuit:
    @pytest.mark.asyncio
    async def test_fresh_snapshot_skips_network(self, snapshot_cache, sample_records, oplog):
        snapshot_cache.store(sample_records)
        sleep = AsyncMock()
        provider = MockProvider([ConnectionError("unused")], cache=snapshot_cache, oplog=oplog, sleep=sleep)

        records = await provider.get_records(1, 50)

        assert records == sample_records
        assert provider.attempts == 0
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stale_snapshot_triggers_fetch(self, snapshot_cache, sample_records, oplog):
        snapshot_cache.store(sample_records[:1])
        stamp = time.time() - 60
        os.utime(snapshot_cache.path, (stamp, stamp))
        provider = MockProvider([sample_records], cache=snapshot_cache, oplog=oplog)

        records = await provider.get_records(1, 50)

        assert records == sample_records
        assert provider.attempts == 1

    @pytest.mark.asyncio
    async def test_corrupt_snapshot_falls_back_to_fetch(self, snapshot_cache, sample_records, oplog):
        snapshot_cache.path.write_text("garbage", encoding="utf-8")
        provider = MockProvider([sample_records], cache=snapshot_cache, oplog=oplog)

        records = await provider.get_records(1, 50)

        assert records == sample_records
        assert provider.attempts == 1

    @pytest.mark.asyncio
    async def test_fetch_overwrites_snapshot(self, snapshot_cache, sample_records, oplog):
        provider = MockProvider([sample_records], cache=snapshot_cache, oplog=oplog)

        first = await provider.get_records(1, 50)
        second = await provider.get_records(1, 50)

        assert first == second == sample_records
        assert snapshot_cache.load() == sample_records
        # Second call is served from the snapshot just written
        assert provider.attempts == 1

    @pytest.mark.asyncio
    async def test_snapshot_write_failure_is_ignored(self, tmp_path, sample_records, oplog):
        cache = SnapshotCache(str(tmp_path / "no_such_dir" / "snap.json"))
        provider = MockProvider([sample_records], cache=cache, oplog=oplog)

        assert await provider.get_records(1, 50) == sample_records

    @pytest.mark.asyncio
    async def test_works_without_cache(self, sample_records, oplog):
        provider = MockProvider([sample_records], oplog=oplog)
        assert await provider.get_records(1, 50) == sample_records


class TestRetryBackoff:
    @pytest.mark.asyncio
    async def test_four_rate_limits_then_success(self, sample_records, oplog):
        sleep = AsyncMock()
        provider = MockProvider([RATE_LIMITED] * 4 + [sample_records], oplog=oplog, sleep=sleep)

        records = await provider.get_records(1, 50)

        assert records == sample_records
        assert provider.attempts == 5
        assert sleep.await_args_list == [call(1.0), call(2.0), call(4.0), call(8.0)]
        assert sum(c.args[0] for c in sleep.await_args_list) == 15.0

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self, sample_records, oplog):
        sleep = AsyncMock()
        provider = MockProvider(
            [aiohttp.ClientConnectionError("reset"), asyncio.TimeoutError(), sample_records],
            oplog=oplog,
            sleep=sleep,
        )

        records = await provider.get_records(1, 50)

        assert records == sample_records
        assert provider.attempts == 3
        assert sleep.await_args_list == [call(1.0), call(2.0)]

    @pytest.mark.asyncio
    async def test_exhausted_rate_limit_raises_network_error(self, oplog):
        sleep = AsyncMock()
        provider = MockProvider([RATE_LIMITED], oplog=oplog, sleep=sleep)

        with pytest.raises(NetworkError) as exc_info:
            await provider.get_records(1, 50)

        assert provider.attempts == 5
        assert exc_info.value.attempts == 5
        assert exc_info.value.status == 429
        assert sleep.await_count == 4

    @pytest.mark.asyncio
    async def test_exhausted_transport_errors_keep_last_error(self, oplog):
        last = aiohttp.ClientConnectionError("still down")
        provider = MockProvider(
            [aiohttp.ClientConnectionError("down")] * 4 + [last],
            oplog=oplog,
            sleep=AsyncMock(),
        )

        with pytest.raises(NetworkError) as exc_info:
            await provider.get_records(1, 50)

        assert exc_info.value.__cause__ is last
        assert "still down" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_backoff_base_is_configurable(self, sample_records, oplog):
        sleep = AsyncMock()
        provider = MockProvider(
            [RATE_LIMITED, RATE_LIMITED, sample_records],
            config={"backoff_base": 0.5, "max_attempts": 3},
            oplog=oplog,
            sleep=sleep,
        )

        await provider.get_records(1, 50)

        assert sleep.await_args_list == [call(0.5), call(1.0)]

    @pytest.mark.asyncio
    async def test_network_error_does_not_touch_snapshot(self, snapshot_cache, oplog):
        provider = MockProvider([RATE_LIMITED], cache=snapshot_cache, oplog=oplog, sleep=AsyncMock())

        with pytest.raises(NetworkError):
            await provider.get_records(1, 50)

        assert not snapshot_cache.path.exists()


class TestDecodeFailure:
    @pytest.mark.asyncio
    async def test_malformed_body_raises_decode_error_without_retry(self, snapshot_cache, oplog):
        sleep = AsyncMock()
        provider = MockProvider([(200, "<html>oops</html>")], cache=snapshot_cache, oplog=oplog, sleep=sleep)

        with pytest.raises(DecodeError):
            await provider.get_records(1, 50)

        assert provider.attempts == 1
        sleep.assert_not_awaited()
        assert not snapshot_cache.path.exists()

    @pytest.mark.asyncio
    async def test_server_error_body_is_decoded_not_retried(self, oplog):
        provider = MockProvider([(500, '{"error": "internal"}')], oplog=oplog, sleep=AsyncMock())

        with pytest.raises(DecodeError) as exc_info:
            await provider.get_records(1, 50)

        assert provider.attempts == 1
        assert "HTTP 500" in str(exc_info.value)


class TestOperationLogging:
    @pytest.mark.asyncio
    async def test_cache_hit_is_logged(self, snapshot_cache, sample_records, oplog, caplog):
        snapshot_cache.store(sample_records)
        provider = MockProvider([sample_records], cache=snapshot_cache, oplog=oplog)

        with caplog.at_level(logging.INFO, logger="coinboard.tests.operations"):
            await provider.get_records(1, 50)

        assert "Operation: Cache Hit, Result: Fetched 5 records from cache" in caplog.text

    @pytest.mark.asyncio
    async def test_fetch_is_logged(self, sample_records, oplog, caplog):
        provider = MockProvider([sample_records], oplog=oplog)

        with caplog.at_level(logging.INFO, logger="coinboard.tests.operations"):
            await provider.get_records(1, 50)

        assert "Operation: JSON Response" in caplog.text
        assert "Operation: Fetch Records, Result: Fetched 5 records" in caplog.text

    @pytest.mark.asyncio
    async def test_errors_are_logged(self, oplog, caplog):
        provider = MockProvider([(200, "nope")], oplog=oplog)

        with caplog.at_level(logging.INFO, logger="coinboard.tests.operations"):
            with pytest.raises(DecodeError):
                await provider.get_records(1, 50)

        assert "Operation: Unmarshal Response, Error:" in caplog.text


class TestMockProvider:
    def test_requires_replies(self):
        with pytest.raises(ValueError):
            MockProvider([])

    @pytest.mark.asyncio
    async def test_records_request_params(self, sample_records, oplog):
        provider = MockProvider([sample_records], oplog=oplog)

        await provider.get_records(2, 25)

        assert provider.requests[0]["page"] == "2"
        assert provider.requests[0]["per_page"] == "25"


class TestCoinGeckoProvider:
    @pytest.mark.asyncio
    async def test_issues_markets_request(self, sample_records, oplog):
        session = FakeSession([FakeResponse(200, encode_records(sample_records))])
        provider = CoinGeckoProvider(oplog=oplog, session=session)

        records = await provider.get_records(1, 50)

        assert records == sample_records
        url, params = session.calls[0]
        assert url == "https://api.coingecko.com/api/v3/coins/markets"
        assert params == {
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": "50",
            "page": "1",
            "sparkline": "false",
            "price_change_percentage": "1h,24h,7d",
        }

    @pytest.mark.asyncio
    async def test_retries_through_session(self, sample_records, oplog):
        session = FakeSession([
            FakeResponse(*RATE_LIMITED),
            aiohttp.ClientConnectionError("reset"),
            FakeResponse(200, encode_records(sample_records)),
        ])
        sleep = AsyncMock()
        provider = CoinGeckoProvider(oplog=oplog, session=session, sleep=sleep)

        records = await provider.get_records(1, 50)

        assert records == sample_records
        assert len(session.calls) == 3
        assert sleep.await_args_list == [call(1.0), call(2.0)]

    @pytest.mark.asyncio
    async def test_custom_base_url(self, sample_records, oplog):
        session = FakeSession([FakeResponse(200, encode_records(sample_records))])
        provider = CoinGeckoProvider({"base_url": "http://localhost:8080/api/"}, oplog=oplog, session=session)

        await provider.get_records(1, 10)

        assert session.calls[0][0] == "http://localhost:8080/api/coins/markets"

    @pytest.mark.asyncio
    async def test_injected_session_is_not_closed(self, oplog):
        session = FakeSession([])
        provider = CoinGeckoProvider(oplog=oplog, session=session)

        await provider.close()

        session.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_utf8_body_raises_decode_error(self, snapshot_cache, oplog, caplog):
        session = FakeSession([FakeResponse(200, b'[{"id": "x\xff"}]')])
        provider = CoinGeckoProvider(oplog=oplog, cache=snapshot_cache, session=session)

        with caplog.at_level(logging.INFO, logger="coinboard.tests.operations"):
            with pytest.raises(DecodeError) as exc_info:
                await provider.get_records(1, 50)

        assert isinstance(exc_info.value, CoinboardError)
        assert "Operation: JSON Response, Result: [{\"id\": \"x\ufffd\"}]" in caplog.text
        assert "Operation: Unmarshal Response, Error:" in caplog.text
        assert not snapshot_cache.path.exists()

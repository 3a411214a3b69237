"""Market data provider interface and implementations."""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union
import asyncio
import logging

import aiohttp
from pydantic import ValidationError

from ..core.errors import DecodeError, NetworkError
from ..core.models import CoinRecord, decode_records, encode_records
from ..core.oplog import OperationLog
from .cache import SnapshotCache

logger = logging.getLogger(__name__)

HTTP_TOO_MANY_REQUESTS = 429

# Failures that are worth another attempt
TRANSIENT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)

Sleeper = Callable[[float], Awaitable[Any]]
Body = Union[str, bytes]


class MarketDataProvider(ABC):
    """Abstract source of ranked market records."""

    @abstractmethod
    async def get_records(self, page: int, per_page: int) -> List[CoinRecord]:
        """Get one page of records ordered by market cap."""
        pass

    async def close(self):
        """Release any held resources."""
        pass


class CachedMarketProvider(MarketDataProvider):
    """Cache-aware fetch pipeline with bounded exponential backoff.

    Subclasses supply the transport by implementing ``_send``, which performs a
    single request and returns ``(status, body)``.
    """

    def __init__(
        self,
        config: Optional[Dict] = None,
        cache: Optional[SnapshotCache] = None,
        oplog: Optional[OperationLog] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        defaults = self._default_config()
        if config:
            defaults.update(config)
        self.config = defaults
        self.cache = cache
        self.oplog = oplog or OperationLog()
        self._sleep = sleep

    @staticmethod
    def _default_config() -> Dict:
        return {
            "base_url": "https://api.coingecko.com/api/v3",
            "vs_currency": "usd",
            "timeout": 10,
            "max_attempts": 5,
            "backoff_base": 1.0,
        }

    @property
    def markets_url(self) -> str:
        return f"{self.config['base_url'].rstrip('/')}/coins/markets"

    def build_params(self, page: int, per_page: int) -> Dict[str, str]:
        """Query parameters for the markets endpoint."""
        return {
            "vs_currency": self.config["vs_currency"],
            "order": "market_cap_desc",
            "per_page": str(per_page),
            "page": str(page),
            "sparkline": "false",
            "price_change_percentage": "1h,24h,7d",
        }

    @abstractmethod
    async def _send(self, params: Dict[str, str]) -> Tuple[int, Body]:
        """Issue one GET against the markets endpoint; the body is left undecoded."""
        pass

    async def get_records(self, page: int, per_page: int) -> List[CoinRecord]:
        """Return cached records when fresh, otherwise fetch, decode and re-cache."""
        if self.cache is not None:
            cached = self.cache.load()
            if cached is not None:
                self.oplog.record("Cache Hit", f"Fetched {len(cached)} records from cache")
                return cached

        status, body = await self._request_with_retry(self.build_params(page, per_page))
        if isinstance(body, bytes):
            self.oplog.record("JSON Response", body.decode("utf-8", errors="replace"))
        else:
            self.oplog.record("JSON Response", body)

        if status != 200:
            logger.warning(f"Markets endpoint answered HTTP {status}, decoding body anyway")

        try:
            records = decode_records(body)
        except (ValueError, ValidationError) as e:
            error = DecodeError(f"Malformed markets payload (HTTP {status}): {e}")
            self.oplog.record("Unmarshal Response", error=error)
            raise error from e

        if self.cache is not None:
            self.cache.store(records)

        self.oplog.record("Fetch Records", f"Fetched {len(records)} records")
        return records

    async def _request_with_retry(self, params: Dict[str, str]) -> Tuple[int, Body]:
        """Send until a response is neither an error nor rate limited.

        The delay before retry n is ``backoff_base * 2**(n-1)``.
        """
        max_attempts = self.config["max_attempts"]
        delay = self.config["backoff_base"]
        last_error: Optional[BaseException] = None
        last_status: Optional[int] = None

        for attempt in range(1, max_attempts + 1):
            try:
                status, body = await self._send(params)
            except TRANSIENT_ERRORS as e:
                last_error = e
                last_status = None
                logger.warning(f"Markets request attempt {attempt}/{max_attempts} failed: {e!r}")
            else:
                if status != HTTP_TOO_MANY_REQUESTS:
                    logger.debug(f"Markets request succeeded on attempt {attempt} (HTTP {status})")
                    return status, body
                last_error = None
                last_status = status
                logger.warning(f"Rate limited on attempt {attempt}/{max_attempts}")

            if attempt < max_attempts:
                await self._sleep(delay)
                delay *= 2

        if last_error is not None:
            message = f"Markets request failed after {max_attempts} attempts: {last_error!r}"
        else:
            message = f"Markets request rate limited (HTTP {last_status}) after {max_attempts} attempts"
        error = NetworkError(message, attempts=max_attempts, status=last_status)
        self.oplog.record("API Request", error=error)
        raise error from last_error


class CoinGeckoProvider(CachedMarketProvider):
    """CoinGecko ``/coins/markets`` over aiohttp."""

    def __init__(
        self,
        config: Optional[Dict] = None,
        cache: Optional[SnapshotCache] = None,
        oplog: Optional[OperationLog] = None,
        session: Optional[aiohttp.ClientSession] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        """Initialize CoinGecko provider."""
        super().__init__(config, cache=cache, oplog=oplog, sleep=sleep)
        self._session = session
        self._owns_session = session is None
        logger.info(f"CoinGecko provider initialized ({self.markets_url})")

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config["timeout"])
            )
            self._owns_session = True
        return self._session

    async def _send(self, params: Dict[str, str]) -> Tuple[int, Body]:
        session = await self._get_session()
        async with session.get(self.markets_url, params=params) as response:
            body = await response.read()
            return response.status, body

    async def close(self):
        """Close the HTTP session."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            logger.info("Closed CoinGecko session")


ScriptedReply = Union[Sequence[CoinRecord], Tuple[int, Body], BaseException]


class MockProvider(CachedMarketProvider):
    """Provider that replays scripted replies instead of touching the network.

    Each reply is consumed by one attempt and may be a record list (served as
    HTTP 200), a raw ``(status, body)`` pair, or an exception to raise. The
    last reply repeats once the script runs out.
    """

    def __init__(
        self,
        replies: Sequence[ScriptedReply],
        config: Optional[Dict] = None,
        cache: Optional[SnapshotCache] = None,
        oplog: Optional[OperationLog] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        super().__init__(config, cache=cache, oplog=oplog, sleep=sleep)
        if not replies:
            raise ValueError("MockProvider needs at least one reply")
        self.replies = list(replies)
        self.requests: List[Dict[str, str]] = []

    @property
    def attempts(self) -> int:
        return len(self.requests)

    async def _send(self, params: Dict[str, str]) -> Tuple[int, Body]:
        index = min(len(self.requests), len(self.replies) - 1)
        self.requests.append(params)
        reply = self.replies[index]

        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, tuple) and len(reply) == 2 and isinstance(reply[0], int):
            return reply
        return 200, encode_records(reply)

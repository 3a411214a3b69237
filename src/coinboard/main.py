"""Main market table application."""

import asyncio
import logging
import os
import sys
from typing import Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()

from .core.errors import CoinboardError
from .core.models import CoinRecord
from .core.oplog import OperationLog
from .data.cache import SnapshotCache
from .data.provider import CoinGeckoProvider, MarketDataProvider
from .view.screen import ScreenModel
from .view.state import ViewState
from .view.terminal import TerminalUI

logger = logging.getLogger(__name__)


def configure_logging(config: Dict) -> None:
    """Send all logging to the log file; the terminal belongs to the table."""
    logging.basicConfig(
        level=getattr(logging, str(config.get('level', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(config.get('file', 'crypto_app.log')),
        ]
    )


class CoinboardApp:
    """Fetches the market snapshot once and hands it to the table."""

    def __init__(self, config: Optional[Dict] = None, provider: Optional[MarketDataProvider] = None):
        """Initialize the app."""
        defaults = self._default_config()
        if config:
            for key, val in config.items():
                if isinstance(val, dict) and key in defaults and isinstance(defaults[key], dict):
                    defaults[key].update(val)
                else:
                    defaults[key] = val
        self.config = defaults

        self.oplog = OperationLog()
        self.provider = provider or self._build_provider()
        logger.info("Coinboard initialized")

    def _default_config(self) -> Dict:
        """Default configuration."""
        return {
            'provider': {
                'base_url': 'https://api.coingecko.com/api/v3',
                'vs_currency': 'usd',
                'timeout': 10,
                'max_attempts': 5,
                'backoff_base': 1.0,
            },
            'cache': {
                'path': 'crypto_cache.json',
                'max_age_seconds': 30,
            },
            'view': {
                'fetch_limit': 50,
                'page_size': 50,
                'table_height': 10,
            },
            'logging': {
                'file': 'crypto_app.log',
                'level': 'INFO',
            },
        }

    def _build_provider(self) -> MarketDataProvider:
        cache_config = self.config['cache']
        cache = SnapshotCache(
            cache_config['path'],
            max_age_seconds=cache_config['max_age_seconds'],
        )
        return CoinGeckoProvider(self.config['provider'], cache=cache, oplog=self.oplog)

    async def load_records(self) -> List[CoinRecord]:
        """Fetch the startup snapshot and release the provider."""
        try:
            return await self.provider.get_records(1, self.config['view']['fetch_limit'])
        finally:
            await self.provider.close()

    def build_model(self, records: List[CoinRecord]) -> ScreenModel:
        view_config = self.config['view']
        view = ViewState(records, per_page=view_config['page_size'])
        return ScreenModel(view, height=view_config['table_height'])

    def run(self) -> int:
        """Fetch, then run the interactive table. Returns the exit status."""
        try:
            records = asyncio.run(self.load_records())
        except CoinboardError as e:
            self.oplog.record("Main - Get Records", error=e)
            print(f"Error fetching data: {e}", file=sys.stderr)
            return 1

        model = self.build_model(records)

        try:
            TerminalUI(model).run()
        except Exception as e:
            self.oplog.record("Run Program", error=e)
            print(f"Error running program: {e}", file=sys.stderr)
            return 1

        return 0


def _config_from_env() -> Dict:
    """Build a partial config from environment variables."""
    config: Dict = {}

    # Provider
    provider = {}
    base_url = os.getenv('COINGECKO_API_URL', '').strip()
    vs_currency = os.getenv('COINGECKO_VS_CURRENCY', '').strip()
    timeout = os.getenv('COINGECKO_TIMEOUT', '').strip()
    max_attempts = os.getenv('COINGECKO_MAX_ATTEMPTS', '').strip()
    backoff_base = os.getenv('COINGECKO_BACKOFF_BASE', '').strip()
    if base_url:
        provider['base_url'] = base_url
    if vs_currency:
        provider['vs_currency'] = vs_currency.lower()
    if timeout:
        provider['timeout'] = float(timeout)
    if max_attempts:
        provider['max_attempts'] = int(max_attempts)
    if backoff_base:
        provider['backoff_base'] = float(backoff_base)
    if provider:
        config['provider'] = provider

    # Cache
    cache_path = os.getenv('COINBOARD_CACHE_PATH', '').strip()
    cache_ttl = os.getenv('COINBOARD_CACHE_TTL', '').strip()
    if cache_path or cache_ttl:
        config['cache'] = {}
        if cache_path:
            config['cache']['path'] = cache_path
        if cache_ttl:
            config['cache']['max_age_seconds'] = float(cache_ttl)

    # View
    fetch_limit = os.getenv('COINBOARD_FETCH_LIMIT', '').strip()
    page_size = os.getenv('COINBOARD_PAGE_SIZE', '').strip()
    if fetch_limit or page_size:
        config['view'] = {}
        if fetch_limit:
            config['view']['fetch_limit'] = int(fetch_limit)
        if page_size:
            config['view']['page_size'] = int(page_size)

    # Logging
    log_file = os.getenv('COINBOARD_LOG_FILE', '').strip()
    log_level = os.getenv('COINBOARD_LOG_LEVEL', '').strip()
    if log_file or log_level:
        config['logging'] = {}
        if log_file:
            config['logging']['file'] = log_file
        if log_level:
            config['logging']['level'] = log_level

    return config


def main():
    """Main entry point."""
    config = _config_from_env()
    configure_logging(config.get('logging', {}))

    app = CoinboardApp(config if config else None)
    sys.exit(app.run())


if __name__ == "__main__":
    main()

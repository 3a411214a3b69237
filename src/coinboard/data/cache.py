"""On-disk snapshot of the last successful fetch."""

import logging
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from pydantic import ValidationError

from ..core.models import CoinRecord, decode_records, encode_records

logger = logging.getLogger(__name__)


class SnapshotCache:
    """JSON file holding the latest record set.

    Freshness comes from the file modification time. The file is read and
    written without locking, so overlapping processes get approximate
    coherency only.
    """

    def __init__(
        self,
        path: str = "crypto_cache.json",
        max_age_seconds: float = 30.0,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize snapshot cache."""
        self.path = Path(path)
        self.max_age_seconds = max_age_seconds
        self._clock = clock

    def age(self) -> Optional[float]:
        """Seconds since the snapshot was written, or None if there is none."""
        try:
            mtime = self.path.stat().st_mtime
        except OSError:
            return None
        return self._clock() - mtime

    def is_fresh(self) -> bool:
        age = self.age()
        return age is not None and age < self.max_age_seconds

    def load(self) -> Optional[List[CoinRecord]]:
        """Return the snapshot if it is fresh and decodes cleanly, else None."""
        if not self.is_fresh():
            return None

        try:
            payload = self.path.read_bytes()
        except OSError as e:
            logger.warning(f"Snapshot {self.path} unreadable, falling back to fetch: {e}")
            return None

        try:
            return decode_records(payload)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Snapshot {self.path} corrupt, falling back to fetch: {e}")
            return None

    def store(self, records: Sequence[CoinRecord]) -> bool:
        """Overwrite the snapshot. Failures are logged and reported as False."""
        try:
            self.path.write_text(encode_records(records), encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not write snapshot {self.path}: {e}")
            return False
        logger.debug(f"Wrote {len(records)} records to {self.path}")
        return True

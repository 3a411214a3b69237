"""Serialized operation logging shared by the fetch pipeline and the app."""

import logging
import threading
from typing import Any, Optional


class OperationLog:
    """Writes one line per operation, either a result summary or an error.

    Each instance owns its lock, so entries written from several call sites
    are totally ordered.
    """

    def __init__(self, target: Optional[logging.Logger] = None, max_result_chars: int = 200):
        """Initialize operation log."""
        self.target = target or logging.getLogger("coinboard.operations")
        self.max_result_chars = max_result_chars
        self._lock = threading.Lock()
        self._entries = 0

    def record(self, operation: str, result: Any = None, error: Optional[BaseException] = None) -> None:
        """Log an operation outcome."""
        with self._lock:
            self._entries += 1
            if error is not None:
                self.target.error(f"Operation: {operation}, Error: {error}")
            else:
                self.target.info(f"Operation: {operation}, Result: {self._summarize(result)}")

    def _summarize(self, result: Any) -> str:
        text = str(result)
        if len(text) > self.max_result_chars:
            return f"{text[:self.max_result_chars]}... ({len(text)} chars)"
        return text

    def entry_count(self) -> int:
        """Number of entries written so far."""
        return self._entries

"""Exceptions raised by the fetch pipeline."""


class CoinboardError(Exception):
    """Base class for coinboard errors."""


class NetworkError(CoinboardError):
    """Transport failure, timeout, or retries exhausted on rate limiting."""

    def __init__(self, message: str, attempts: int = 0, status=None):
        super().__init__(message)
        self.attempts = attempts
        self.status = status


class DecodeError(CoinboardError):
    """Response payload could not be decoded into records."""

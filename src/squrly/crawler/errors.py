"""
Failure taxonomy for fetch attempts.
"""

from __future__ import annotations

from typing import Optional


class FetchError(Exception):
    """Base exception for a failed fetch attempt."""

    def __init__(self, url: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.url = url
        self.cause = cause


class StatusError(FetchError):
    """Raised when the final response is outside the 2xx range."""

    def __init__(self, url: str, status: int):
        super().__init__(url, f"Request Failed. Status Code: {status}")
        self.status = status


class TransportError(FetchError):
    """Raised on connection-level or TLS failures; eligible for protocol fallback."""
    pass


class FetchTimeoutError(FetchError):
    """Raised when the absolute request timeout expires."""
    pass

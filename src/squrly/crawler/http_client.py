"""
HTTP client with bounded-time fetches and a secure-to-insecure protocol fallback.
"""

from __future__ import annotations

import asyncio
import ssl
import time
from typing import Any, Dict, Optional

import aiohttp
import structlog

from squrly.config.config import Config, CrawlerConfig
from squrly.crawler.errors import FetchError, FetchTimeoutError, StatusError, TransportError
from squrly.observability import histogram, increment
from squrly.protocols import FetchResponse

logger = structlog.get_logger(__name__)

SECURE_PREFIX = "https://"
INSECURE_PREFIX = "http://"

# Connection-level failures, TLS/certificate validation and resets included.
TRANSPORT_ERRORS = (
    aiohttp.ClientOSError,
    aiohttp.ServerDisconnectedError,
    ssl.SSLError,
)


def insecure_variant(url: str) -> str:
    """Same host and path over the insecure scheme."""
    return INSECURE_PREFIX + url[len(SECURE_PREFIX):]


class HttpClient:
    """Single-request HTTP client used by the processor's rate-limited queue."""

    def __init__(self, config: Optional[Config] = None, *, crawler_config: Optional[CrawlerConfig] = None):
        self.crawler_config = crawler_config or (config.crawler if config else CrawlerConfig())
        self.timeout = self.crawler_config.timeout
        self.session: Optional[aiohttp.ClientSession] = None
        self._is_initialized = False
        self._owns_session = True

        # Metrics tracking
        self.attempts = 0
        self.fallbacks = 0

        logger.debug(
            "HTTP client created",
            timeout=self.timeout,
            user_agent=self.crawler_config.user_agent,
            max_redirects=self.crawler_config.max_redirects,
        )

    async def initialize(self, session: Optional[aiohttp.ClientSession] = None) -> None:
        """Initialize the HTTP client session."""
        if self.session is not None:
            return
        if session is not None:
            self.session = session
            self._owns_session = False
        else:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
            self._owns_session = True
        self._is_initialized = True
        logger.debug("HTTP client session initialized")

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        if self.session and self._owns_session:
            await self.session.close()
        self.session = None
        self._is_initialized = False
        logger.debug("HTTP client closed")

    async def __aenter__(self) -> "HttpClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def fetch(self, url: str, *, is_retry_attempt: bool = False) -> FetchResponse:
        """
        Fetch ``url`` once, following redirects.

        Args:
            url: Canonical URL to fetch
            is_retry_attempt: True for the scheduled retry and for the inner
                downgraded request, neither of which may fall back again

        Returns:
            FetchResponse for a 2xx final response

        Raises:
            StatusError: final response outside 2xx
            TransportError: connection-level or TLS failure
            FetchTimeoutError: absolute timeout expired
            FetchError: any other client-side failure
        """
        if not self._is_initialized:
            raise RuntimeError("HTTP client not initialized. Call initialize() first.")

        start_time = time.time()
        try:
            response = await self._perform_request(url, start_time)
        except TransportError as e:
            if is_retry_attempt or not url.startswith(SECURE_PREFIX):
                raise
            fallback_url = insecure_variant(url)
            self.fallbacks += 1
            increment("protocol_fallback_total")
            logger.info("Falling back to insecure scheme", url=url, fallback_url=fallback_url, error=str(e))
            response = await self.fetch(fallback_url, is_retry_attempt=True)
            response.downgraded = True
            return response

        histogram("fetch_latency_seconds", response.end_ts - response.start_ts)
        return response

    async def _perform_request(self, url: str, start_time: float) -> FetchResponse:
        """Perform the actual HTTP request, translating failures into FetchError."""
        assert self.session is not None
        self.attempts += 1
        outcome = "success"

        try:
            async with asyncio.timeout(self.timeout):
                async with self.session.get(
                    url,
                    allow_redirects=True,
                    max_redirects=self.crawler_config.max_redirects,
                    headers={"User-Agent": self.crawler_config.user_agent},
                ) as response:
                    if not 200 <= response.status < 300:
                        raise StatusError(url, response.status)
                    text = await response.text(errors="replace")
                    return FetchResponse(
                        url=url,
                        final_url=str(response.url),
                        status=response.status,
                        headers=dict(response.headers),
                        text=text,
                        start_ts=start_time,
                        end_ts=time.time(),
                    )
        except StatusError as e:
            outcome = "status_error"
            logger.debug("Non-2xx response", url=url, status=e.status)
            raise
        except TimeoutError as e:
            outcome = "timeout"
            raise FetchTimeoutError(url, f"Request timed out after {self.timeout}s", e) from e
        except TRANSPORT_ERRORS as e:
            outcome = "transport_error"
            raise TransportError(url, str(e) or e.__class__.__name__, e) from e
        except (aiohttp.ClientError, UnicodeDecodeError, LookupError) as e:
            outcome = "client_error"
            raise FetchError(url, str(e) or e.__class__.__name__, e) from e
        finally:
            increment("fetch_attempts_total", labels={"outcome": outcome})

    def get_stats(self) -> Dict[str, Any]:
        """Get current client statistics."""
        return {
            "attempts": self.attempts,
            "fallbacks": self.fallbacks,
            "initialized": self._is_initialized,
        }

"""
Test doubles for the fetcher seam of the processor.
"""

import asyncio
import time
from typing import Dict, List, Optional, Sequence, Tuple, Union

from aioresponses import aioresponses
from squrly.crawler.errors import StatusError, TransportError
from squrly.protocols import FetchResponse

Outcome = Union[str, BaseException]


class ScriptedFetcher:
    """
    Fetcher returning scripted outcomes per URL.

    Each URL maps to a sequence consumed one entry per attempt: a string is
    served as a 200 body, an exception instance is raised. The last entry
    repeats once the sequence is exhausted. Unknown URLs get an empty page.
    """

    def __init__(self, script: Optional[Dict[str, Sequence[Outcome]]] = None, delay: float = 0.0):
        self.script: Dict[str, List[Outcome]] = {url: list(outcomes) for url, outcomes in (script or {}).items()}
        self.delay = delay
        self.calls: List[Tuple[str, bool, float]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, url: str, *, is_retry_attempt: bool = False) -> FetchResponse:
        self.calls.append((url, is_retry_attempt, asyncio.get_running_loop().time()))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            outcomes = self.script.get(url, [""])
            outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
            if isinstance(outcome, BaseException):
                raise outcome
            now = time.time()
            return FetchResponse(
                url=url,
                final_url=url,
                status=200,
                headers={"Content-Type": "text/html"},
                text=outcome,
                start_ts=now,
                end_ts=now,
            )
        finally:
            self.in_flight -= 1

    def urls(self) -> List[str]:
        return [call[0] for call in self.calls]

    def attempts(self, url: str) -> List[bool]:
        """``is_retry_attempt`` flags of every attempt at ``url``, in order."""
        return [retry for called, retry, _ in self.calls if called == url]


def transport_failure(url: str) -> TransportError:
    return TransportError(url, "Cannot connect to host")


def status_failure(url: str, status: int = 503) -> StatusError:
    return StatusError(url, status)


def request_count(mock: aioresponses) -> int:
    """Total number of requests seen by an aioresponses mock."""
    return sum(len(calls) for calls in mock.requests.values())

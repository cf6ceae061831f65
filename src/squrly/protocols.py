"""
Shared data model and component protocols for squrly.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Protocol, runtime_checkable


class PipelinePhase(Enum):
    """Lifecycle of one processing run."""

    RUNNING = "running"  # input still arriving
    DRAINING = "draining"  # input ended, work outstanding
    COMPLETE = "complete"


@dataclass(slots=True, frozen=True)
class ProcessingTask:
    """One fetch-and-build unit of work for a canonical URL."""

    url: str
    is_retry_attempt: bool = False


@dataclass(slots=True, frozen=True)
class OutputRecord:
    """Result emitted exactly once per scheduled URL."""

    url: str
    title: Optional[str] = None
    email_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form; absent fields are omitted, never null."""
        data: Dict[str, Any] = {"url": self.url}
        if self.title:
            data["title"] = self.title
        if self.email_hash:
            data["email"] = self.email_hash
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)


@dataclass(slots=True)
class FetchResponse:
    """Successful (2xx) response from a single fetch attempt."""

    url: str
    final_url: str
    status: int
    headers: Dict[str, str]
    text: str
    start_ts: float
    end_ts: float
    downgraded: bool = False


@runtime_checkable
class Fetcher(Protocol):
    """Anything able to perform a fetch attempt for the processor."""

    async def fetch(self, url: str, *, is_retry_attempt: bool = False) -> FetchResponse:
        """Fetch ``url``; raise ``FetchError`` on any failure."""
        ...

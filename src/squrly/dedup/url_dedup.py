"""
Run-scoped deduplication of canonical URLs.
"""

from __future__ import annotations

from typing import Iterator, Set

import structlog

logger = structlog.get_logger(__name__)


class UrlDeduplicator:
    """Monotonic set of canonical URLs already scheduled in this run."""

    def __init__(self) -> None:
        self._seen: Set[str] = set()
        self.duplicates = 0

    def add(self, url: str) -> bool:
        """Record ``url``; True if it was new and should be scheduled."""
        if url in self._seen:
            self.duplicates += 1
            logger.debug("Duplicate URL dropped", url=url)
            return False
        self._seen.add(url)
        return True

    def __contains__(self, url: object) -> bool:
        return url in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def __iter__(self) -> Iterator[str]:
        return iter(self._seen)

"""
Delayed one-shot retries feeding back into the task queue.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Optional, Set

import structlog

from squrly.crawler.rate_limiter import QueueState, TaskQueue
from squrly.observability import gauge, increment
from squrly.observability.diagnostics import DiagnosticChannel
from squrly.protocols import ProcessingTask

logger = structlog.get_logger(__name__)


class RetryScheduler:
    """
    Arms at most one retry timer per URL for the lifetime of a run.

    ``state.pending_retries`` counts retries from arming until the retry
    task resolves, so completion cannot be signalled while a timer is armed.
    """

    def __init__(
        self,
        state: QueueState,
        queue: TaskQueue,
        *,
        delay: float = 60.0,
        diagnostics: Optional[DiagnosticChannel] = None,
    ):
        self.state = state
        self.queue = queue
        self.delay = delay
        self.diagnostics = diagnostics or DiagnosticChannel()
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._retried: Set[str] = set()

    @property
    def armed(self) -> int:
        """Timers not yet fired."""
        return len(self._timers)

    def has_retried(self, url: str) -> bool:
        return url in self._retried

    def schedule(self, url: str) -> bool:
        """Arm the retry for ``url``; False if it already had one."""
        if url in self._retried:
            logger.warning("Retry already used for URL", url=url)
            return False

        self._retried.add(url)
        self.diagnostics.retry_scheduled(url, self.delay)
        self.state.pending_retries += 1
        gauge("pending_retries", self.state.pending_retries)
        increment("retries_scheduled_total")

        loop = asyncio.get_running_loop()
        self._timers[url] = loop.call_later(self.delay, self._fire, url)
        logger.info("Retry scheduled", url=url, delay=self.delay)
        return True

    def _fire(self, url: str) -> None:
        self._timers.pop(url, None)
        logger.info("Retry timer fired", url=url)
        self.queue.push(ProcessingTask(url=url, is_retry_attempt=True))

    def resolve(self, url: str) -> None:
        """Mark the retry of ``url`` as resolved, whatever its outcome."""
        if self.state.pending_retries <= 0:
            logger.error("Retry resolved with no retry pending", url=url)
            return
        self.state.pending_retries -= 1
        gauge("pending_retries", self.state.pending_retries)

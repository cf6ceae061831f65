"""
Single-lane rate-limited task queue.

One worker coroutine executes tasks strictly one at a time, in FIFO order,
and waits ``interval`` seconds after a task finishes before starting the
next one. The worker exits when the queue empties and is restarted by the
next push, including pushes from retry timers that fire after it went idle; such a
restart still keeps ``interval`` seconds after the previous task ended.

The queue and the retry scheduler share a :class:`QueueState`; everything
runs on the event loop thread, so no locking is needed.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Deque, Optional

import structlog

from squrly.observability import gauge
from squrly.protocols import ProcessingTask

logger = structlog.get_logger(__name__)

TaskExecutor = Callable[[ProcessingTask], Awaitable[None]]


@dataclass
class QueueState:
    """Mutable state owned by one processor and shared by queue and retries."""

    pending: Deque[ProcessingTask] = field(default_factory=deque)
    executing: Optional[ProcessingTask] = None
    pending_retries: int = 0

    @property
    def can_finish(self) -> bool:
        """True iff nothing is queued, running, or waiting on a retry timer."""
        return not self.pending and self.executing is None and self.pending_retries == 0


class TaskQueue:
    """FIFO queue drained by a single paced worker."""

    def __init__(
        self,
        state: QueueState,
        executor: TaskExecutor,
        *,
        interval: float = 1.0,
        on_settled: Optional[Callable[[], None]] = None,
    ):
        self.state = state
        self.interval = interval
        self._executor = executor
        self._on_settled = on_settled
        self._worker: Optional[asyncio.Task[None]] = None
        self._last_finished: Optional[float] = None
        self.executed = 0

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def __len__(self) -> int:
        return len(self.state.pending)

    def push(self, task: ProcessingTask) -> None:
        """Append ``task`` and make sure the worker is running."""
        self.state.pending.append(task)
        gauge("queue_depth", len(self.state.pending))
        self.start()

    def start(self) -> None:
        """Start the worker if idle; a no-op while it is running."""
        if self.is_running or not self.state.pending:
            return
        self._worker = asyncio.get_running_loop().create_task(self._run(), name="squrly-task-queue")

    async def join(self) -> None:
        """Wait for the current worker run to finish."""
        if self._worker is not None:
            await asyncio.shield(self._worker)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()

        while self.state.pending:
            # Restart after idle: still keep the interval since the last task ended.
            if self._last_finished is not None:
                delay = self._last_finished + self.interval - loop.time()
                if delay > 0:
                    logger.debug("Rate limit wait", delay=round(delay, 3), queued=len(self.state.pending))
                    await asyncio.sleep(delay)

            task = self.state.pending.popleft()
            gauge("queue_depth", len(self.state.pending))
            self.state.executing = task

            try:
                await self._executor(task)
            except Exception:
                logger.exception("Task raised unexpectedly", url=task.url, retry=task.is_retry_attempt)
            finally:
                self.state.executing = None
                self._last_finished = loop.time()
                self.executed += 1

            if self._on_settled is not None:
                self._on_settled()

            if self.state.pending:
                logger.debug("Rate limit wait", delay=self.interval, queued=len(self.state.pending))
                await asyncio.sleep(self.interval)

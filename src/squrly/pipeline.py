"""
Pipeline orchestration for squrly.

raw text -> BracketTokenizer -> extract_url -> UrlDeduplicator -> TaskQueue
-> HttpClient -> ResultBuilder -> OutputRecord stream, with the
RetryScheduler re-injecting failed first attempts after a delay.
"""

from __future__ import annotations

import asyncio
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Callable,
    Iterable,
    Optional,
    TextIO,
    Tuple,
    Union,
)

import structlog

from squrly.config.config import Config
from squrly.crawler.errors import FetchError
from squrly.crawler.rate_limiter import QueueState, TaskQueue
from squrly.crawler.retry import RetryScheduler
from squrly.dedup.url_dedup import UrlDeduplicator
from squrly.extractor.result_builder import ResultBuilder
from squrly.observability import increment
from squrly.observability.diagnostics import DiagnosticChannel
from squrly.parser.tokenizer import BracketTokenizer
from squrly.parser.url_extractor import extract_url
from squrly.protocols import Fetcher, OutputRecord, PipelinePhase, ProcessingTask

Chunks = Union[AsyncIterable[str], Iterable[str]]


async def _aiter_chunks(chunks: Chunks) -> AsyncIterator[str]:
    if hasattr(chunks, "__aiter__"):
        async for chunk in chunks:  # type: ignore[union-attr]
            yield chunk
    else:
        for chunk in chunks:  # type: ignore[union-attr]
            yield chunk


class UrlProcessor:
    """
    Turns bracket groups into one output record per unique canonical URL.

    A processor instance serves exactly one run and one consumer. All of
    its state lives on the event loop thread.
    """

    def __init__(
        self,
        secret: str,
        fetcher: Fetcher,
        *,
        rate_limit_interval: float = 1.0,
        retry_delay: float = 60.0,
        diagnostics: Optional[Union[DiagnosticChannel, TextIO]] = None,
    ) -> None:
        self.builder = ResultBuilder(secret)
        self.fetcher = fetcher
        self.logger = structlog.get_logger(self.__class__.__name__)

        if isinstance(diagnostics, DiagnosticChannel):
            self.diagnostics = diagnostics
        else:
            self.diagnostics = DiagnosticChannel(diagnostics)

        self.state = QueueState()
        self.dedup = UrlDeduplicator()
        self.queue = TaskQueue(
            self.state,
            self._execute,
            interval=rate_limit_interval,
            on_settled=self._check_completion,
        )
        self.retries = RetryScheduler(self.state, self.queue, delay=retry_delay, diagnostics=self.diagnostics)

        self.phase = PipelinePhase.RUNNING
        self.all_complete = asyncio.Event()
        self._completion_callback: Optional[Callable[[], Any]] = None
        self._records: asyncio.Queue[Optional[OutputRecord]] = asyncio.Queue()
        self._consumed = False
        self.emitted = 0

    @classmethod
    def from_config(
        cls,
        config: Config,
        fetcher: Fetcher,
        *,
        diagnostics: Optional[Union[DiagnosticChannel, TextIO]] = None,
    ) -> "UrlProcessor":
        return cls(
            config.secret_value(),
            fetcher,
            rate_limit_interval=config.crawler.rate_limit_interval,
            retry_delay=config.effective_retry_delay,
            diagnostics=diagnostics,
        )

    # ------------------------------------------------------------------
    # Input side
    # ------------------------------------------------------------------

    def submit(self, group: str) -> Optional[str]:
        """
        Schedule the URL of one bracket group.

        Returns the canonical URL when a task was queued, None when the
        group had no URL or the URL was already scheduled.
        """
        if self.phase is not PipelinePhase.RUNNING:
            raise RuntimeError("Cannot submit after end of input")

        url = extract_url(group)
        if url is None:
            return None
        if not self.dedup.add(url):
            return None

        self.logger.debug("URL scheduled", url=url, queued=len(self.queue) + 1)
        self.queue.push(ProcessingTask(url=url))
        return url

    def end_of_input(self, callback: Optional[Callable[[], Any]] = None) -> None:
        """Mark the input as ended; ``callback`` fires once all work resolves."""
        if self.phase is not PipelinePhase.RUNNING:
            return
        self.phase = PipelinePhase.DRAINING
        self._completion_callback = callback
        self.logger.debug(
            "Input ended",
            queued=len(self.queue),
            executing=self.state.executing is not None,
            pending_retries=self.state.pending_retries,
        )
        self._check_completion()

    async def feed(self, chunks: Chunks) -> None:
        """Tokenize ``chunks``, submit every group, then end the input."""
        tokenizer = BracketTokenizer()
        try:
            async for chunk in _aiter_chunks(chunks):
                for group in tokenizer.feed(chunk):
                    self.submit(group)
        except Exception as e:
            self.logger.error("Input stream failed", error=str(e))
            # Unblock the consumer; the error is re-raised from stream().
            self._records.put_nowait(None)
            raise
        tokenizer.finish()
        self.end_of_input()

    # ------------------------------------------------------------------
    # Output side
    # ------------------------------------------------------------------

    async def records(self) -> AsyncIterator[OutputRecord]:
        """Yield records as they are produced until the run completes."""
        if self._consumed:
            raise RuntimeError("Record stream already consumed")
        self._consumed = True

        while True:
            record = await self._records.get()
            if record is None:
                return
            yield record

    async def stream(self, chunks: Chunks) -> AsyncIterator[OutputRecord]:
        """Process ``chunks`` end to end, yielding records in emission order."""
        feeder = asyncio.create_task(self.feed(chunks), name="squrly-input")
        try:
            async for record in self.records():
                yield record
            await feeder
        finally:
            if not feeder.done():
                feeder.cancel()

    async def run(self, chunks: Chunks, sink: Callable[[str], Any]) -> int:
        """Write every record to ``sink`` as a newline-terminated JSON line."""
        count = 0
        async for record in self.stream(chunks):
            sink(f"{record.to_json()}\n")
            count += 1
        return count

    async def wait_complete(self) -> None:
        await self.all_complete.wait()

    # ------------------------------------------------------------------
    # Task execution
    # ------------------------------------------------------------------

    async def _execute(self, task: ProcessingTask) -> None:
        try:
            outcome = await self._attempt(task)
        finally:
            if task.is_retry_attempt:
                self.retries.resolve(task.url)

        if outcome is not None:
            record, result = outcome
            self._emit(record, result)

    async def _attempt(self, task: ProcessingTask) -> Optional[Tuple[OutputRecord, str]]:
        """Run one attempt; None means a retry was scheduled instead."""
        try:
            response = await self.fetcher.fetch(task.url, is_retry_attempt=task.is_retry_attempt)
            self.logger.debug("Fetched", url=task.url, status=response.status, final_url=response.final_url)
            record = self.builder.build(task.url, response.text)
        except FetchError as e:
            return self._handle_failure(task, e)
        except Exception as e:
            self.logger.exception("Unexpected task failure", url=task.url)
            return self._handle_failure(task, e)

        return record, "success"

    def _handle_failure(self, task: ProcessingTask, error: BaseException) -> Optional[Tuple[OutputRecord, str]]:
        if not task.is_retry_attempt and self.retries.schedule(task.url):
            return None

        self.diagnostics.final_failure(task.url, error)
        return self.builder.failed(task.url), "failed"

    def _emit(self, record: OutputRecord, result: str) -> None:
        increment("records_emitted_total", labels={"result": result})
        self.emitted += 1
        self._records.put_nowait(record)

    def _check_completion(self) -> None:
        if self.phase is not PipelinePhase.DRAINING or not self.state.can_finish:
            return

        self.phase = PipelinePhase.COMPLETE
        self.logger.info("All work complete", emitted=self.emitted, unique_urls=len(self.dedup))

        callback, self._completion_callback = self._completion_callback, None
        self.all_complete.set()
        self._records.put_nowait(None)
        if callback is not None:
            callback()

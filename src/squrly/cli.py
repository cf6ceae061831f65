"""Command-line interface for squrly."""

from __future__ import annotations

import asyncio
import codecs
import sys
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Optional, TextIO

import click
import structlog

from squrly import __version__
from squrly.config.config import Config
from squrly.crawler.http_client import HttpClient
from squrly.observability import configure_logging, start_metrics_server
from squrly.pipeline import UrlProcessor

logger = structlog.get_logger(__name__)

MISSING_SECRET_MESSAGE = "Error: IM_SECRET environment variable is not set."


async def read_chunks(stream: BinaryIO, size: int) -> AsyncIterator[str]:
    """
    Read ``stream`` off the event loop thread and decode it as UTF-8.

    ``read1`` returns whatever is available so piped input is processed as
    it arrives; the incremental decoder keeps multi-byte characters split
    across reads intact.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    read = getattr(stream, "read1", stream.read)
    while True:
        data = await asyncio.to_thread(read, size)
        if not data:
            tail = decoder.decode(b"", final=True)
            if tail:
                yield tail
            return
        text = decoder.decode(data)
        if text:
            yield text


async def process_stream(config: Config, source: BinaryIO, out: TextIO, err: TextIO) -> int:
    """Run one processing pass from ``source`` to ``out``; returns the record count."""

    def write_line(line: str) -> None:
        out.write(line)
        out.flush()

    async with HttpClient(config) as client:
        processor = UrlProcessor.from_config(config, client, diagnostics=err)
        count = await processor.run(read_chunks(source, config.crawler.read_chunk_size), write_line)
        await processor.wait_complete()

    logger.info("Run finished", records=count, duplicates=processor.dedup.duplicates)
    return count


@click.command()
@click.version_option(version=__version__)
@click.argument(
    "path",
    required=False,
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (default from SQURLY_MONITORING__LOG_LEVEL or WARNING)",
)
def main(path: Optional[Path], log_level: Optional[str]) -> None:
    """Extract [bracketed] URLs from PATH (or stdin) and print one JSON record per URL."""
    err = click.get_text_stream("stderr")
    config = Config()

    if not config.secret_value():
        click.echo(MISSING_SECRET_MESSAGE, err=True)
        sys.exit(1)

    if log_level:
        config.monitoring.log_level = log_level.upper()
    configure_logging(config.monitoring)
    if config.monitoring.prometheus_port:
        start_metrics_server(config.monitoring.prometheus_port)

    out = click.get_text_stream("stdout")
    try:
        if path is not None:
            with path.open("rb") as source:
                asyncio.run(process_stream(config, source, out, err))
        else:
            asyncio.run(process_stream(config, sys.stdin.buffer, out, err))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down")
        sys.exit(130)
    except OSError as e:
        click.echo(f"Error reading input: {e}", err=True)
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()

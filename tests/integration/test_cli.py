"""
Integration tests for the squrly command line: input from a file or stdin,
JSON lines on stdout, diagnostics on stderr and process exit codes.
"""

import io
import json
import logging

import pytest
import structlog
from aioresponses import aioresponses
from click.testing import CliRunner
from squrly.cli import MISSING_SECRET_MESSAGE, main, process_stream
from squrly.config import Config

SECRET = "cli-secret"


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("IM_SECRET", "SQURLY_SECRET", "SQURLY_MONITORING__LOG_FILE", "SQURLY_MONITORING__PROMETHEUS_PORT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SQURLY_CRAWLER__RATE_LIMIT_INTERVAL", "0")
    monkeypatch.setenv("SQURLY_DEBUG__TEST_MODE", "true")
    yield
    # The CLI configures global logging against the runner's streams.
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


def json_lines(output: str):
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


@pytest.mark.integration
class TestCli:
    @pytest.fixture(autouse=True)
    def cleanup_tasks(self):
        # The command runs its own loop through asyncio.run().
        yield

    def test_missing_secret_exits_1(self):
        result = CliRunner().invoke(main, [])

        assert result.exit_code == 1
        assert MISSING_SECRET_MESSAGE in result.output
        assert json_lines(result.output) == []

    def test_missing_file_is_usage_error(self, monkeypatch):
        monkeypatch.setenv("IM_SECRET", SECRET)

        result = CliRunner().invoke(main, ["does-not-exist.txt"])

        assert result.exit_code == 2

    def test_file_input(self, monkeypatch, tmp_path):
        monkeypatch.setenv("IM_SECRET", SECRET)
        source = tmp_path / "input.txt"
        source.write_text("see [example.com/a] and [www.x.com example.com/b] and [example.com/a]\n", encoding="utf-8")

        with aioresponses() as m:
            m.get("https://example.com/a", status=200, body="<title> A </title>")
            m.get("https://example.com/b", status=200, body="<p>no title</p>")
            result = CliRunner().invoke(main, [str(source)])

        assert result.exit_code == 0, result.output
        assert json_lines(result.output) == [
            {"url": "https://example.com/a", "title": "A"},
            {"url": "https://example.com/b"},
        ]

    def test_stdin_input(self, monkeypatch):
        monkeypatch.setenv("IM_SECRET", SECRET)

        with aioresponses() as m:
            m.get("https://example.com/page", status=200, body="<title>Page</title> owner@example.com")
            result = CliRunner().invoke(main, [], input="text [example.com/page] more")

        assert result.exit_code == 0, result.output
        records = json_lines(result.output)
        assert len(records) == 1
        assert records[0]["title"] == "Page"
        assert len(records[0]["email"]) == 64

    def test_retry_then_final_failure(self, monkeypatch):
        monkeypatch.setenv("IM_SECRET", SECRET)

        with aioresponses() as m:
            m.get("https://example.com/down", status=503)
            m.get("https://example.com/down", status=503)
            result = CliRunner().invoke(main, [], input="[example.com/down]")

        assert result.exit_code == 0, result.output
        assert json_lines(result.output) == [{"url": "https://example.com/down"}]
        assert "[RETRY SCHEDULED] https://example.com/down in 10ms" in result.output
        assert "[FINAL FAILED] https://example.com/down: Request Failed. Status Code: 503" in result.output

    def test_version(self):
        result = CliRunner().invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "version" in result.output


@pytest.mark.integration
class TestProcessStream:
    @pytest.mark.asyncio
    async def test_records_to_stdout_and_diagnostics_to_stderr(self, monkeypatch):
        monkeypatch.setenv("IM_SECRET", SECRET)
        config = Config()
        source = io.BytesIO("[flaky.example.com/x] [ok.example.com]".encode("utf-8"))
        out, err = io.StringIO(), io.StringIO()

        with aioresponses() as m:
            m.get("https://flaky.example.com/x", status=500)
            m.get("https://flaky.example.com/x", status=200, body="<title>Later</title>")
            m.get("https://ok.example.com", status=200, body="<title>Now</title>")
            count = await process_stream(config, source, out, err)

        assert count == 2
        assert [json.loads(line) for line in out.getvalue().splitlines()] == [
            {"url": "https://ok.example.com", "title": "Now"},
            {"url": "https://flaky.example.com/x", "title": "Later"},
        ]
        assert err.getvalue() == "[RETRY SCHEDULED] https://flaky.example.com/x in 10ms\n"

    @pytest.mark.asyncio
    async def test_multibyte_characters_split_across_reads(self, monkeypatch):
        monkeypatch.setenv("IM_SECRET", SECRET)
        config = Config()
        config.crawler.read_chunk_size = 1
        source = io.BytesIO("é [example.com/ünï] ü".encode("utf-8"))
        out, err = io.StringIO(), io.StringIO()

        with aioresponses() as m:
            m.get("https://example.com/ünï", status=200, body="<title>Ok</title>")
            count = await process_stream(config, source, out, err)

        assert count == 1
        assert json.loads(out.getvalue()) == {"url": "https://example.com/ünï", "title": "Ok"}

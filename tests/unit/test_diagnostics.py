"""
Tests for the diagnostic side channel.
"""

import io
import sys

import pytest
from squrly.crawler.errors import StatusError
from squrly.observability.diagnostics import DiagnosticChannel


@pytest.mark.unit
class TestDiagnosticChannel:
    def test_retry_scheduled_line(self):
        stream = io.StringIO()
        channel = DiagnosticChannel(stream)

        channel.retry_scheduled("https://a.com", 0.01)
        channel.retry_scheduled("https://b.com", 60)

        assert stream.getvalue() == "[RETRY SCHEDULED] https://a.com in 10ms\n[RETRY SCHEDULED] https://b.com in 60000ms\n"

    def test_final_failure_line_uses_error_message(self):
        stream = io.StringIO()
        channel = DiagnosticChannel(stream)

        channel.final_failure("https://a.com", StatusError("https://a.com", 503))

        assert stream.getvalue() == "[FINAL FAILED] https://a.com: Request Failed. Status Code: 503\n"
        assert channel.lines == ["[FINAL FAILED] https://a.com: Request Failed. Status Code: 503"]

    def test_defaults_to_current_stderr(self, monkeypatch):
        captured = io.StringIO()
        channel = DiagnosticChannel()
        monkeypatch.setattr(sys, "stderr", captured)

        channel.write("hello")

        assert captured.getvalue() == "hello\n"

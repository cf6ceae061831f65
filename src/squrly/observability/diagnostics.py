"""
Human-readable diagnostic side channel (stderr by default).
"""

from __future__ import annotations

import sys
from typing import List, Optional, TextIO


class DiagnosticChannel:
    """Writes retry and final-failure notices, one flushed line each."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream
        self.lines: List[str] = []

    @property
    def stream(self) -> TextIO:
        # Resolved per write so redirected/captured stderr is honored.
        return self._stream if self._stream is not None else sys.stderr

    def write(self, line: str) -> None:
        self.lines.append(line)
        stream = self.stream
        stream.write(f"{line}\n")
        stream.flush()

    def retry_scheduled(self, url: str, delay: float) -> None:
        self.write(f"[RETRY SCHEDULED] {url} in {round(delay * 1000)}ms")

    def final_failure(self, url: str, cause: object) -> None:
        self.write(f"[FINAL FAILED] {url}: {cause}")

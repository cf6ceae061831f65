"""
Incremental bracket tokenizer.

Turns an arbitrarily chunked text stream into the sequence of complete,
top-level ``[...]`` groups it contains. Nesting is kept verbatim inside the
outer group, a backslash escapes the next character (an escaped bracket
never changes depth, and the backslash itself is kept in the output),
unmatched closing brackets are ignored and an unterminated group is
dropped at end of input.

Example::

    >>> tok = BracketTokenizer()
    >>> tok.feed("abc [123] def [456 [in")
    ['[123]']
    >>> tok.feed("ner] \\\\]]")
    ['[456 [inner] \\\\]]']
"""

from __future__ import annotations

from typing import AsyncIterable, AsyncIterator, Iterable, Iterator, List

ESCAPE = "\\"
OPEN = "["
CLOSE = "]"


class BracketTokenizer:
    """Character-level state machine surviving any chunk boundary."""

    __slots__ = ("depth", "_accumulator", "escaped")

    def __init__(self) -> None:
        self.depth = 0
        self._accumulator: List[str] = []
        self.escaped = False

    @property
    def accumulator(self) -> str:
        """Text of the group currently being collected."""
        return "".join(self._accumulator)

    def feed(self, chunk: str) -> List[str]:
        """Consume ``chunk`` and return the groups it completed, in order."""
        groups: List[str] = []
        acc = self._accumulator

        for char in chunk:
            if self.escaped:
                if self.depth > 0:
                    acc.append(char)
                self.escaped = False
            elif char == ESCAPE:
                self.escaped = True
                if self.depth > 0:
                    acc.append(char)
            elif char == OPEN:
                self.depth += 1
                if self.depth == 1:
                    acc.clear()
                acc.append(char)
            elif char == CLOSE:
                if self.depth == 0:
                    continue
                acc.append(char)
                self.depth -= 1
                if self.depth == 0:
                    groups.append("".join(acc))
                    acc.clear()
            elif self.depth > 0:
                acc.append(char)

        return groups

    def finish(self) -> None:
        """Signal end of input: an unterminated group is discarded."""
        self.depth = 0
        self._accumulator.clear()
        self.escaped = False


def iter_bracket_groups(chunks: Iterable[str]) -> Iterator[str]:
    """Lazily yield every bracket group found in ``chunks``."""
    tokenizer = BracketTokenizer()
    for chunk in chunks:
        yield from tokenizer.feed(chunk)
    tokenizer.finish()


async def aiter_bracket_groups(chunks: AsyncIterable[str]) -> AsyncIterator[str]:
    """Async counterpart of :func:`iter_bracket_groups`."""
    tokenizer = BracketTokenizer()
    async for chunk in chunks:
        for group in tokenizer.feed(chunk):
            yield group
    tokenizer.finish()

"""
Immutable line-oriented document text.

This is the buffer shape the rest of the package works against: a length,
a line count, 1-based line lookup, and cheap virtual concatenation so the
non-editable prefix and suffix can be combined with the editable body
without touching either.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Sequence


@dataclass(frozen=True)
class Line:
    """A single line of a ``Text``; ``end`` excludes the line break."""

    number: int
    start: int
    end: int
    text: str

    @property
    def length(self) -> int:
        return self.end - self.start


class Text:
    """Text stored as a list of lines joined by ``\\n``."""

    __slots__ = ("_lines", "_starts", "_length")

    def __init__(self, lines: Sequence[str]) -> None:
        if not lines:
            lines = [""]
        self._lines: List[str] = list(lines)
        starts = []
        pos = 0
        for line in self._lines:
            starts.append(pos)
            pos += len(line) + 1
        self._starts = starts
        self._length = pos - 1

    @classmethod
    def of(cls, lines: Iterable[str]) -> "Text":
        return cls(list(lines))

    @classmethod
    def from_string(cls, value: str) -> "Text":
        return cls(value.split("\n"))

    @property
    def length(self) -> int:
        return self._length

    @property
    def lines(self) -> int:
        return len(self._lines)

    def line(self, number: int) -> Line:
        """Return the 1-based line ``number``."""
        if number < 1 or number > len(self._lines):
            raise IndexError(f"Invalid line number {number} in {len(self._lines)}-line document")
        start = self._starts[number - 1]
        text = self._lines[number - 1]
        return Line(number=number, start=start, end=start + len(text), text=text)

    def line_at(self, offset: int) -> Line:
        """Return the line containing ``offset``."""
        if offset < 0 or offset > self._length:
            raise IndexError(f"Invalid position {offset} in document of length {self._length}")
        lo, hi = 0, len(self._starts) - 1
        while lo < hi:
            mid = (lo + hi + 1) // 2
            if self._starts[mid] <= offset:
                lo = mid
            else:
                hi = mid - 1
        return self.line(lo + 1)

    def append(self, other: "Text") -> "Text":
        lines = self._lines[:-1] + [self._lines[-1] + other._lines[0]] + other._lines[1:]
        return Text(lines)

    def slice_string(self, start: int, end: int) -> str:
        return str(self)[max(start, 0):max(end, 0)]

    def iter_lines(self) -> Iterator[str]:
        return iter(self._lines)

    def __str__(self) -> str:
        return "\n".join(self._lines)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Text):
            return NotImplemented
        return self._lines == other._lines

    def __hash__(self) -> int:
        return hash(tuple(self._lines))

    def __repr__(self) -> str:
        return f"Text({str(self)!r})"

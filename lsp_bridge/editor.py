"""
The editor-side collaborators the bridge talks to.

``EditorView`` is whatever owns the document buffer and can render
diagnostics; ``CompletionContext`` describes one completion query.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Protocol, Union

from lsp_bridge.text import Text
from lsp_bridge.types import Diagnostic

# Only this much of the current line is searched backwards from the cursor.
MATCH_BEFORE_LIMIT = 250


class EditorView(Protocol):
    @property
    def doc(self) -> Text: ...

    def set_diagnostics(self, diagnostics: List[Diagnostic]) -> None: ...


@dataclass(frozen=True)
class Match:
    start: int
    end: int
    text: str


@dataclass(frozen=True)
class CompletionContext:
    """A completion query at ``pos``; ``explicit`` when the user asked for it."""

    doc: Text
    pos: int
    explicit: bool = False

    def char_before(self) -> Optional[str]:
        line = self.doc.line_at(self.pos)
        column = self.pos - line.start
        return line.text[column - 1] if column > 0 else None

    def match_before(self, pattern: Union[str, Pattern[str]]) -> Optional[Match]:
        """Match ``pattern`` against the text just before the cursor on its line.

        The match must end at the cursor; ``None`` if there is none.
        """
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        if not regex.pattern.endswith("$"):
            regex = re.compile(f"(?:{regex.pattern})$", regex.flags)
        line = self.doc.line_at(self.pos)
        start = max(line.start, self.pos - MATCH_BEFORE_LIMIT)
        text = line.text[start - line.start:self.pos - line.start]
        found = regex.search(text)
        if found is None:
            return None
        return Match(start=start + found.start(), end=self.pos, text=found.group(0))

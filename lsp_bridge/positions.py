"""
Conversions between local character offsets and LSP positions.

The server sees a virtual document, ``prefix ++ doc ++ suffix``; the editor
only ever sees ``doc``. Offsets handed to or returned from these functions
are local to ``doc``, positions are in the padded space.
"""

from __future__ import annotations

from typing import Any, Mapping, Union

from lsp_bridge.exceptions import MappingError
from lsp_bridge.text import Text
from lsp_bridge.types import Position

PositionLike = Union[Position, Mapping[str, Any]]


def offset_to_position(doc: Text, prefix: Text, offset: int) -> Position:
    full_text = prefix.append(doc)
    full_offset = offset + prefix.length
    line = full_text.line_at(full_offset)
    return Position(line=line.number - 1, character=full_offset - line.start)


def _coerce(position: Any) -> Position:
    if isinstance(position, Position):
        return position
    if not isinstance(position, Mapping):
        raise MappingError(f"Expected an LSP position, got {type(position).__name__}")
    line = position.get("line")
    character = position.get("character")
    for value in (line, character):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise MappingError(f"Malformed LSP position: {dict(position)!r}")
    return Position(line=line, character=character)


def position_to_offset(doc: Text, prefix: Text, position: PositionLike) -> int:
    """Map an LSP position to a local offset, clamping to the end of ``doc``."""
    pos = _coerce(position)
    full_text = prefix.append(doc)
    if pos.line >= full_text.lines:
        return doc.length
    offset = full_text.line(pos.line + 1).start + pos.character
    if offset >= full_text.length:
        return doc.length
    return max(offset - prefix.length, 0)

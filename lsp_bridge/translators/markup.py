from __future__ import annotations

from typing import Any


def format_contents(contents: Any) -> str:
    """Flatten ``MarkupContent``, ``MarkedString`` or a list of them to text.

    List entries are each followed by a blank line.
    """
    if contents is None:
        return ""
    if isinstance(contents, list):
        return "".join(format_contents(item) + "\n\n" for item in contents)
    if isinstance(contents, str):
        return contents
    if isinstance(contents, dict):
        value = contents.get("value")
        return value if isinstance(value, str) else ""
    return str(contents)

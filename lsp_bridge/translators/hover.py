"""Translate a ``textDocument/hover`` response into a local tooltip."""

from __future__ import annotations

from typing import Any, Optional

from lsp_bridge.exceptions import MappingError
from lsp_bridge.positions import PositionLike, position_to_offset
from lsp_bridge.text import Text
from lsp_bridge.translators.markup import format_contents
from lsp_bridge.types import HoverTooltip
from lsp_bridge.utils.logger import setup_logger

logger = setup_logger(__name__)


def translate_hover(
    result: Any,
    doc: Text,
    prefix: Text,
    position: PositionLike,
    allow_html: bool = False,
) -> Optional[HoverTooltip]:
    """Return a tooltip, or ``None`` when there is nothing to show.

    Without a server range the tooltip is anchored, zero-width, at the
    requested position.
    """
    if not result or not isinstance(result, dict):
        return None

    content = format_contents(result.get("contents"))
    if not content.strip():
        return None

    try:
        range_ = result.get("range")
        if range_:
            pos = position_to_offset(doc, prefix, range_.get("start"))
            end = position_to_offset(doc, prefix, range_.get("end"))
        else:
            pos = position_to_offset(doc, prefix, position)
            end = None
    except (MappingError, AttributeError) as exc:
        logger.debug(f"Hover range could not be mapped: {exc}")
        return None

    return HoverTooltip(pos=pos, end=end, content=content, allow_html=allow_html)

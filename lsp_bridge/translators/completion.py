"""
Translate a ``textDocument/completion`` response into editor options.

Servers may disagree, item by item, about how much already-typed text an
item replaces. The editor wants one window, so every option is widened to
the earliest start by prefixing its insert text with the typed characters
it would otherwise leave in place.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional, Pattern, Set, Tuple

from lsprotocol import types as lsp

from lsp_bridge.editor import CompletionContext
from lsp_bridge.exceptions import MappingError
from lsp_bridge.positions import position_to_offset
from lsp_bridge.text import Text
from lsp_bridge.translators.markup import format_contents
from lsp_bridge.types import CompletionOption, CompletionResult
from lsp_bridge.utils.logger import setup_logger

logger = setup_logger(__name__)

COMPLETION_ITEM_KINDS: Dict[int, str] = {
    kind.value: kind.name.lower() for kind in lsp.CompletionItemKind
}

WORD_BEFORE = re.compile(r"\w+$")


def _edit_start(item: Dict[str, Any], doc: Text, prefix: Text) -> Optional[int]:
    text_edit = item.get("textEdit")
    if not isinstance(text_edit, dict):
        return None
    # TextEdit carries "range"; InsertReplaceEdit carries "insert"/"replace".
    edit_range = text_edit.get("range") or text_edit.get("replace")
    if not isinstance(edit_range, dict):
        return None
    try:
        return position_to_offset(doc, prefix, edit_range.get("start"))
    except MappingError as exc:
        logger.debug(f"Completion edit range for {item.get('label')!r} not mappable: {exc}")
        return None


def _to_option(item: Dict[str, Any], doc: Text, prefix: Text) -> CompletionOption:
    label = item["label"]
    text_edit = item.get("textEdit")
    new_text = text_edit.get("newText") if isinstance(text_edit, dict) else None
    documentation = item.get("documentation")
    sort_text = item.get("sortText")
    filter_text = item.get("filterText")
    return CompletionOption(
        label=label,
        detail=item.get("detail"),
        apply=new_text if new_text is not None else label,
        start=_edit_start(item, doc, prefix),
        type=COMPLETION_ITEM_KINDS.get(item.get("kind")),
        sort_text=sort_text if sort_text is not None else label,
        filter_text=filter_text if filter_text is not None else label,
        info=format_contents(documentation) if documentation else None,
    )


def _to_set(chars: Set[str]) -> str:
    flat = "".join(sorted(chars))
    if not flat:
        return r"[^\s\S]"
    preamble = ""
    if re.search(r"\w", flat):
        preamble = r"\w"
        flat = re.sub(r"\w", "", flat)
    return "[" + preamble + re.sub(r"[^\w\s]", lambda m: "\\" + m.group(0), flat) + "]"


def prefix_match(options: Iterable[CompletionOption]) -> Tuple[Pattern[str], Pattern[str]]:
    """Build regexes matching any text typed as a prefix of the options.

    Returns an anchored pattern (the whole typed text must match) and an
    unanchored one (matches at the end of the line).
    """
    first: Set[str] = set()
    rest: Set[str] = set()
    for option in options:
        if not option.apply:
            continue
        first.add(option.apply[0])
        rest.update(option.apply[1:])
    source = _to_set(first) + _to_set(rest) + "*$"
    return re.compile("^" + source), re.compile(source)


def translate_completion(
    result: Any, context: CompletionContext, prefix: Text
) -> Optional[CompletionResult]:
    """Return options sharing the window ``[start, context.pos)``, or ``None``."""
    if not result:
        return None
    items = result.get("items") if isinstance(result, dict) else result
    if not isinstance(items, list):
        return None

    options: List[CompletionOption] = []
    for item in items:
        if not isinstance(item, dict) or not isinstance(item.get("label"), str):
            logger.debug(f"Skipping malformed completion item: {item!r}")
            continue
        options.append(_to_option(item, context.doc, prefix))
    if not options:
        return None

    to = context.pos
    word = context.match_before(WORD_BEFORE)
    default_start = word.start if word else to
    starts = [o.start if o.start is not None else default_start for o in options]
    start = min(starts)

    if start < to:
        for option, own_start in zip(options, starts):
            if own_start > start:
                typed = context.doc.slice_string(start, min(own_start, to))
                option.apply = typed + option.apply

    return CompletionResult(
        start=start,
        options=options,
        filter=False,
        valid_for=prefix_match(options)[0].pattern,
    )

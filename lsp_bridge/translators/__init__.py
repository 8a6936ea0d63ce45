from lsp_bridge.translators.completion import (
    COMPLETION_ITEM_KINDS,
    prefix_match,
    translate_completion,
)
from lsp_bridge.translators.diagnostics import translate_diagnostics
from lsp_bridge.translators.hover import translate_hover
from lsp_bridge.translators.markup import format_contents

__all__ = [
    "COMPLETION_ITEM_KINDS",
    "format_contents",
    "prefix_match",
    "translate_completion",
    "translate_diagnostics",
    "translate_hover",
]

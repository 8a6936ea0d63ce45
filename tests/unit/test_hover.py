"""
Unit tests for hover translation and markup flattening.
"""

import pytest

from lsp_bridge.text import Text
from lsp_bridge.translators.hover import translate_hover
from lsp_bridge.translators.markup import format_contents
from lsp_bridge.types import Position

DOC = Text.from_string("value = compute()\nprint(value)")
EMPTY = Text.from_string("")


@pytest.mark.unit
class TestFormatContents:
    def test_plain_string(self):
        assert format_contents("int") == "int"

    def test_markup_content(self):
        assert format_contents({"kind": "markdown", "value": "**int**"}) == "**int**"

    def test_marked_string_list(self):
        contents = ["first", {"language": "python", "value": "def f(): ..."}]
        assert format_contents(contents) == "first\n\ndef f(): ...\n\n"

    def test_none(self):
        assert format_contents(None) == ""


@pytest.mark.unit
class TestTranslateHover:
    def test_without_range_anchors_at_request(self):
        tooltip = translate_hover(
            {"contents": "int"}, DOC, EMPTY, Position(line=1, character=6)
        )
        assert tooltip.pos == 24
        assert tooltip.end is None
        assert tooltip.content == "int"
        assert tooltip.above is True
        assert tooltip.allow_html is False

    def test_range_is_mapped_through_prefix(self):
        prefix = Text.from_string("from lib import compute\n")
        result = {
            "contents": {"kind": "plaintext", "value": "compute() -> int"},
            "range": {
                "start": {"line": 1, "character": 8},
                "end": {"line": 1, "character": 15},
            },
        }
        tooltip = translate_hover(result, DOC, prefix, Position(line=1, character=10))
        assert (tooltip.pos, tooltip.end) == (8, 15)

    def test_allow_html_is_carried(self):
        tooltip = translate_hover(
            {"contents": "<b>int</b>"}, DOC, EMPTY, {"line": 0, "character": 0}, allow_html=True
        )
        assert tooltip.allow_html is True

    @pytest.mark.parametrize(
        "result",
        [
            None,
            {},
            {"contents": ""},
            {"contents": []},
            {"contents": ["", {"language": "python", "value": ""}]},
            {"contents": {"kind": "markdown", "value": "   "}},
        ],
    )
    def test_nothing_to_show(self, result):
        assert translate_hover(result, DOC, EMPTY, {"line": 0, "character": 0}) is None

    def test_unmappable_range_is_no_result(self):
        result = {"contents": "x", "range": {"start": {"line": -1, "character": 0}}}
        assert translate_hover(result, DOC, EMPTY, {"line": 0, "character": 0}) is None

"""
Unit tests for DocumentContext: open, debounced full-text sync, requests
and diagnostics routing.
"""

import asyncio

import pytest

from lsp_bridge.config import DocumentConfig
from lsp_bridge.document import DocumentContext, DocumentState
from lsp_bridge.exceptions import TransportError
from lsp_bridge.types import Position

URI = "file:///workspace/main.py"


def _publish(uri, diagnostics):
    return {
        "jsonrpc": "2.0",
        "method": "textDocument/publishDiagnostics",
        "params": {"uri": uri, "diagnostics": diagnostics},
    }


def _diagnostic(line, start, end, message, severity=1):
    return {
        "range": {
            "start": {"line": line, "character": start},
            "end": {"line": line, "character": end},
        },
        "severity": severity,
        "message": message,
    }


@pytest.mark.unit
class TestOpen:
    @pytest.mark.asyncio
    async def test_did_open_follows_handshake(self, make_context, transport):
        context = make_context("x = 1", prefix="import os\n", suffix="\nprint(x)")
        await context.open()

        assert transport.methods() == ["initialize", "initialized", "textDocument/didOpen"]
        document = transport.params_of("textDocument/didOpen")[0]["textDocument"]
        assert document == {
            "uri": URI,
            "languageId": "python",
            "text": "import os\nx = 1\nprint(x)",
            "version": 0,
        }
        assert context.state is DocumentState.OPEN

    @pytest.mark.asyncio
    async def test_open_is_idempotent(self, make_context, transport):
        context = make_context("x")
        await context.open()
        await context.open()
        assert transport.methods().count("textDocument/didOpen") == 1

    @pytest.mark.asyncio
    async def test_edits_before_open_are_carried_by_did_open(self, make_context, transport):
        context = make_context("a")
        context.view.edit("ab")
        context.on_change()
        assert context.dirty is False

        await context.open()
        assert transport.params_of("textDocument/didOpen")[0]["textDocument"]["text"] == "ab"

    @pytest.mark.asyncio
    async def test_edit_during_open_is_flushed_afterwards(self, make_context, transport):
        context = make_context("a")
        opening = asyncio.ensure_future(context.open())
        await asyncio.sleep(0)
        assert context.state is DocumentState.OPENING

        context.view.edit("abc")
        context.on_change()
        await opening
        await asyncio.sleep(0.05)

        changes = transport.params_of("textDocument/didChange")
        assert len(changes) == 1
        assert changes[0]["textDocument"]["version"] == 0
        assert changes[0]["contentChanges"] == [{"text": "abc"}]

    @pytest.mark.asyncio
    async def test_failed_open_can_be_retried(self, make_context, transport):
        context = make_context("x")
        transport.failing_methods.add("textDocument/didOpen")
        with pytest.raises(TransportError):
            await context.open()
        assert context.state is DocumentState.UNINITIALIZED

        transport.failing_methods.clear()
        await context.open()
        assert context.state is DocumentState.OPEN


@pytest.mark.unit
class TestChanges:
    @pytest.mark.asyncio
    async def test_versions_count_flushes(self, make_context, transport):
        context = make_context("x = 0", prefix="# header\n")
        await context.open()

        for i in range(1, 4):
            context.view.edit(f"x = {i}")
            context.on_change()
            await context.send_change()

        changes = transport.params_of("textDocument/didChange")
        assert [c["textDocument"]["version"] for c in changes] == [0, 1, 2]
        assert [c["contentChanges"] for c in changes] == [
            [{"text": "# header\nx = 1"}],
            [{"text": "# header\nx = 2"}],
            [{"text": "# header\nx = 3"}],
        ]
        assert context.version == 3

    @pytest.mark.asyncio
    async def test_clean_document_is_not_sent(self, make_context, transport):
        context = make_context("x")
        await context.open()
        await context.send_change()
        await context.request_diagnostics()
        assert "textDocument/didChange" not in transport.methods()

    @pytest.mark.asyncio
    async def test_burst_of_edits_is_debounced(self, make_context, transport):
        context = make_context("")
        await context.open()

        for text in ("p", "pr", "pri"):
            context.view.edit(text)
            context.on_change()
        await asyncio.sleep(0.05)

        changes = transport.params_of("textDocument/didChange")
        assert len(changes) == 1
        assert changes[0]["contentChanges"] == [{"text": "pri"}]
        assert context.dirty is False

    @pytest.mark.asyncio
    async def test_failed_flush_keeps_document_dirty(self, make_context, transport):
        context = make_context("a")
        await context.open()
        transport.failing_methods.add("textDocument/didChange")

        context.view.edit("ab")
        context.on_change()
        await context.send_change()
        assert context.dirty is True
        assert context.version == 1

        transport.failing_methods.clear()
        await context.send_change()
        changes = transport.params_of("textDocument/didChange")
        assert changes == [
            {
                "textDocument": {"uri": URI, "version": 1},
                "contentChanges": [{"text": "ab"}],
            }
        ]
        assert context.dirty is False

    @pytest.mark.asyncio
    async def test_failed_flush_is_retried_by_timer(self, make_context, transport):
        context = make_context("a")
        await context.open()
        transport.failing_methods.add("textDocument/didChange")

        context.view.edit("ab")
        context.on_change()
        await context.send_change()
        assert transport.params_of("textDocument/didChange") == []

        transport.failing_methods.clear()
        await asyncio.sleep(0.05)

        assert transport.params_of("textDocument/didChange") == [
            {
                "textDocument": {"uri": URI, "version": 1},
                "contentChanges": [{"text": "ab"}],
            }
        ]
        assert context.dirty is False

    @pytest.mark.asyncio
    async def test_destroy_stops_syncing(self, make_context, session, transport):
        context = make_context("a")
        await context.open()
        context.view.edit("ab")
        context.on_change()

        await context.destroy()
        await asyncio.sleep(0.05)
        context.on_change()

        assert context.state is DocumentState.CLOSED
        assert context not in session.subscribers
        assert "textDocument/didChange" not in transport.methods()


@pytest.mark.unit
class TestRequests:
    @pytest.mark.asyncio
    async def test_hover_flushes_pending_edits_first(self, make_context, transport):
        transport.results["textDocument/hover"] = {"contents": "int"}
        context = make_context("x = 1")
        await context.open()
        context.view.edit("x = 12")
        context.on_change()

        tooltip = await context.request_hover(Position(line=0, character=0))

        methods = transport.methods()
        assert methods.index("textDocument/didChange") < methods.index("textDocument/hover")
        assert tooltip.content == "int"
        assert tooltip.pos == 0

    @pytest.mark.asyncio
    async def test_hover_without_capability_sends_nothing(self, make_context, transport):
        transport.results["initialize"] = {"capabilities": {}}
        context = make_context("x")
        await context.open()

        assert await context.request_hover(Position(line=0, character=0)) is None
        assert "textDocument/hover" not in transport.methods()

    @pytest.mark.asyncio
    async def test_hover_error_is_no_result(self, make_context, transport):
        transport.errors["textDocument/hover"] = {"code": -32603, "message": "boom"}
        context = make_context("x")
        await context.open()

        assert await context.request_hover(Position(line=0, character=0)) is None

    @pytest.mark.asyncio
    async def test_hover_timeout_is_no_result(self, make_session, transport, make_view):
        session = make_session(request_timeout=0.01, initialize_timeout=1.0)
        context = DocumentContext(
            make_view("x"), session, DocumentConfig(document_uri=URI, language_id="python")
        )
        await context.open()

        assert await context.request_hover(Position(line=0, character=0)) is None
        assert session.pending_requests == []

    @pytest.mark.asyncio
    async def test_hover_before_open_is_no_result(self, make_context, transport):
        context = make_context("x")
        assert await context.request_hover(Position(line=0, character=0)) is None
        assert transport.sent == []


@pytest.mark.unit
class TestDiagnostics:
    @pytest.mark.asyncio
    async def test_matching_uri_is_rendered_sorted(self, make_context, transport):
        context = make_context("abc\ndef", prefix="# header\n")
        await context.open()

        transport.push(
            _publish(
                URI,
                [
                    _diagnostic(2, 0, 3, "second", severity=2),
                    _diagnostic(1, 1, 2, "first", severity=1),
                ],
            )
        )

        assert [d.message for d in context.diagnostics] == ["first", "second"]
        assert [(d.start, d.end) for d in context.diagnostics] == [(1, 2), (4, 7)]
        assert [d.severity for d in context.diagnostics] == ["error", "warning"]
        assert context.view.rendered == [context.diagnostics]

    @pytest.mark.asyncio
    async def test_other_uri_is_ignored(self, make_context, transport):
        context = make_context("abc")
        await context.open()

        transport.push(_publish("file:///workspace/other.py", [_diagnostic(0, 0, 1, "nope")]))

        assert context.diagnostics == []
        assert context.view.rendered == []

    @pytest.mark.asyncio
    async def test_empty_list_clears_diagnostics(self, make_context, transport):
        context = make_context("abc")
        await context.open()
        transport.push(_publish(URI, [_diagnostic(0, 0, 1, "oops")]))
        transport.push(_publish(URI, []))

        assert context.diagnostics == []
        assert context.view.rendered[-1] == []

    @pytest.mark.asyncio
    async def test_malformed_payload_does_not_block_later_ones(self, make_context, transport):
        context = make_context("abc")
        await context.open()

        transport.push(_publish(URI, 5))
        transport.push(_publish(URI, [_diagnostic(0, 0, 1, "after")]))

        assert [d.message for d in context.diagnostics] == ["after"]

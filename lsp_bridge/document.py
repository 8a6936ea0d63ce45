"""
Per-document synchronization with the language server.

A ``DocumentContext`` opens its document once the session handshake is
done, debounces local edits into full-text ``didChange`` notifications,
issues hover and completion requests in padded coordinates, and turns the
server's diagnostics for its URI into local ones.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from lsprotocol import types as lsp

from lsp_bridge.config import DocumentConfig
from lsp_bridge.editor import CompletionContext, EditorView
from lsp_bridge.exceptions import (
    NotInitializedError,
    ProtocolError,
    RequestTimeout,
    TransportError,
)
from lsp_bridge.session import LanguageServerSession
from lsp_bridge.text import Text
from lsp_bridge.translators.completion import translate_completion
from lsp_bridge.translators.diagnostics import translate_diagnostics
from lsp_bridge.translators.hover import translate_hover
from lsp_bridge.types import (
    CompletionResult,
    Diagnostic,
    HoverTooltip,
    LspMethod,
    Position,
)
from lsp_bridge.utils.logger import log_context, setup_logger

logger = setup_logger(__name__)

# Failures that turn a hover or completion into "no result".
REQUEST_ERRORS = (RequestTimeout, ProtocolError, TransportError, NotInitializedError)


class DocumentState(str, Enum):
    UNINITIALIZED = "uninitialized"
    OPENING = "opening"
    OPEN = "open"
    CLOSED = "closed"


class DocumentContext:
    """Synchronization state for one editor document on one session."""

    def __init__(
        self,
        view: EditorView,
        session: LanguageServerSession,
        config: DocumentConfig,
        on_diagnostics: Optional[Callable[[List[Diagnostic]], None]] = None,
    ) -> None:
        self.view = view
        self.session = session
        self.config = config
        self.document_uri = config.document_uri
        self.language_id = config.language_id
        self.prefix = Text.from_string(config.prefix)
        self.suffix = Text.from_string(config.suffix)

        self.version = 0
        self.dirty = False
        self.state = DocumentState.UNINITIALIZED
        self.diagnostics: List[Diagnostic] = []

        self._on_diagnostics = on_diagnostics
        self._change_handle: Optional[asyncio.TimerHandle] = None
        self._flushes: Set[asyncio.Task] = set()

        session.attach(self)

    def full_text(self, doc: Text) -> str:
        return str(self.prefix.append(doc).append(self.suffix))

    # -- lifecycle ---------------------------------------------------------

    async def open(self) -> None:
        """Wait for the session handshake, then send ``didOpen`` at version 0."""
        if self.state is not DocumentState.UNINITIALIZED:
            return
        self.state = DocumentState.OPENING
        with log_context(document_uri=self.document_uri):
            try:
                await self.session.ensure_initialized()
                await self.session.text_document_did_open(
                    {
                        "textDocument": {
                            "uri": self.document_uri,
                            "languageId": self.language_id,
                            "text": self.full_text(self.view.doc),
                            "version": self.version,
                        }
                    }
                )
            except BaseException:
                if self.state is DocumentState.OPENING:
                    self.state = DocumentState.UNINITIALIZED
                raise
            if self.state is not DocumentState.OPENING:
                return
            self.state = DocumentState.OPEN
            logger.debug("didOpen sent")
            if self.dirty:
                self._arm_change_timer()

    async def destroy(self, release_session: bool = True) -> None:
        """Stop syncing. With ``release_session`` an idle auto-close session is closed."""
        if self.state is DocumentState.CLOSED:
            return
        self.state = DocumentState.CLOSED
        self._cancel_change_timer()
        await self.session.detach(self, close_if_idle=release_session)

    # -- edits -------------------------------------------------------------

    def on_change(self) -> None:
        """Record a local edit and (re)arm the debounce timer."""
        if self.state in (DocumentState.UNINITIALIZED, DocumentState.CLOSED):
            # Not opened yet: didOpen will carry the current text.
            return
        self.dirty = True
        self._arm_change_timer()

    async def send_change(self) -> None:
        """Flush the whole rendered document if it changed since the last flush."""
        if not self.session.ready or not self.dirty or self.state is not DocumentState.OPEN:
            return
        self._cancel_change_timer()
        self.dirty = False
        version = self.version
        self.version += 1
        try:
            await self.session.text_document_did_change(
                {
                    "textDocument": {"uri": self.document_uri, "version": version},
                    "contentChanges": [{"text": self.full_text(self.view.doc)}],
                }
            )
        except Exception:
            # The next flush resends the full text under a newer version.
            self.dirty = True
            if self.state is DocumentState.OPEN:
                self._arm_change_timer()
            logger.exception(
                f"didChange failed for {self.document_uri} (version {version})"
            )

    async def request_diagnostics(self) -> None:
        await self.send_change()

    def _arm_change_timer(self) -> None:
        self._cancel_change_timer()
        loop = asyncio.get_running_loop()
        self._change_handle = loop.call_later(self.config.change_delay, self._on_change_timer)

    def _cancel_change_timer(self) -> None:
        if self._change_handle is not None:
            self._change_handle.cancel()
            self._change_handle = None

    def _on_change_timer(self) -> None:
        self._change_handle = None
        task = asyncio.ensure_future(self.send_change())
        self._flushes.add(task)
        task.add_done_callback(self._flushes.discard)

    # -- requests ----------------------------------------------------------

    async def request_hover(self, position: Position) -> Optional[HoverTooltip]:
        capabilities = self.session.capabilities
        if not self.session.ready or capabilities is None or not capabilities.hover:
            return None
        await self.send_change()
        try:
            result = await self.session.text_document_hover(
                {
                    "textDocument": {"uri": self.document_uri},
                    "position": position.to_lsp(),
                }
            )
        except REQUEST_ERRORS as exc:
            logger.warning(f"Hover request failed for {self.document_uri}: {exc}")
            return None
        return translate_hover(
            result,
            self.view.doc,
            self.prefix,
            position,
            allow_html=self.config.allow_html_content,
        )

    async def request_completion(
        self,
        context: CompletionContext,
        position: Position,
        trigger_kind: lsp.CompletionTriggerKind = lsp.CompletionTriggerKind.Invoked,
        trigger_character: Optional[str] = None,
    ) -> Optional[CompletionResult]:
        capabilities = self.session.capabilities
        if not self.session.ready or capabilities is None or not capabilities.completion:
            return None
        await self.send_change()

        completion_context: Dict[str, Any] = {"triggerKind": int(trigger_kind)}
        if trigger_character is not None:
            completion_context["triggerCharacter"] = trigger_character
        try:
            result = await self.session.text_document_completion(
                {
                    "textDocument": {"uri": self.document_uri},
                    "position": position.to_lsp(),
                    "context": completion_context,
                }
            )
        except REQUEST_ERRORS as exc:
            logger.warning(f"Completion request failed for {self.document_uri}: {exc}")
            return None
        return translate_completion(result, context, self.prefix)

    # -- notifications -----------------------------------------------------

    def process_notification(self, method: str, params: Any) -> None:
        try:
            if method == LspMethod.PUBLISH_DIAGNOSTICS.value:
                self.process_diagnostics(params)
        except Exception:
            logger.exception(f"Failed to process '{method}' for {self.document_uri}")

    def process_diagnostics(self, params: Any) -> None:
        if not isinstance(params, dict) or params.get("uri") != self.document_uri:
            return
        diagnostics = translate_diagnostics(
            params.get("diagnostics") or [], self.view.doc, self.prefix
        )
        self.diagnostics = diagnostics
        self.view.set_diagnostics(diagnostics)
        if self._on_diagnostics is not None:
            self._on_diagnostics(diagnostics)

"""
Editor-facing wiring: one ``LanguageServer`` per editor document.

The editor calls ``attach`` when its view is created, ``changed`` after each
local edit, ``hover`` and ``complete`` from its tooltip and autocompletion
sources, and ``detach`` when the view goes away. Offsets in and out are
local to the editor's document.
"""

from __future__ import annotations

import dataclasses
from typing import Callable, List, Optional

from lsprotocol import types as lsp

from lsp_bridge.config import LanguageServerOptions
from lsp_bridge.document import DocumentContext
from lsp_bridge.editor import CompletionContext, EditorView
from lsp_bridge.exceptions import ConfigurationError
from lsp_bridge.positions import offset_to_position
from lsp_bridge.session import LanguageServerSession
from lsp_bridge.transports.base import BaseTransport
from lsp_bridge.transports.websocket import WebSocketTransport
from lsp_bridge.types import CompletionResult, Diagnostic, HoverTooltip


class LanguageServer:
    """Binds one editor view to a (possibly shared) language server session."""

    def __init__(
        self,
        options: LanguageServerOptions,
        transport: Optional[BaseTransport] = None,
        session: Optional[LanguageServerSession] = None,
    ) -> None:
        owns_session = session is None
        if session is None:
            if transport is None:
                raise ConfigurationError("Either a transport or a session is required.")
            # A session created here belongs to this document alone.
            session = LanguageServerSession(
                transport, dataclasses.replace(options.session, auto_close=True)
            )
        self.options = options
        self.session = session
        self._owns_session = owns_session
        self.context: Optional[DocumentContext] = None

    async def attach(
        self,
        view: EditorView,
        on_diagnostics: Optional[Callable[[List[Diagnostic]], None]] = None,
    ) -> DocumentContext:
        if self.context is not None:
            raise ConfigurationError(
                f"{self.options.document.document_uri} is already attached to a view."
            )
        context = DocumentContext(
            view, self.session, self.options.document, on_diagnostics=on_diagnostics
        )
        self.context = context
        try:
            await context.open()
        except BaseException:
            # Leave the session running so attach can be retried.
            self.context = None
            await context.destroy(release_session=False)
            raise
        return context

    def changed(self) -> None:
        if self.context is not None:
            self.context.on_change()

    async def hover(self, pos: int) -> Optional[HoverTooltip]:
        context = self.context
        if context is None:
            return None
        position = offset_to_position(context.view.doc, context.prefix, pos)
        return await context.request_hover(position)

    async def complete(self, completion: CompletionContext) -> Optional[CompletionResult]:
        """Autocompletion source.

        Explicit requests are always sent. Implicit ones are sent when the
        character before the cursor is a server trigger character, or when
        a word is being typed; otherwise there is nothing to ask for.
        """
        context = self.context
        if context is None:
            return None

        trigger_kind = lsp.CompletionTriggerKind.Invoked
        trigger_character: Optional[str] = None
        if not completion.explicit:
            char = completion.char_before()
            capabilities = self.session.capabilities
            if capabilities is not None and capabilities.triggers_completion(char):
                trigger_kind = lsp.CompletionTriggerKind.TriggerCharacter
                trigger_character = char
            elif completion.match_before(r"\w+$") is None:
                return None

        position = offset_to_position(completion.doc, context.prefix, completion.pos)
        return await context.request_completion(
            completion, position, trigger_kind, trigger_character
        )

    async def detach(self) -> None:
        if self.context is None:
            if self._owns_session and not self.session.subscribers:
                await self.session.close()
            return
        context, self.context = self.context, None
        await context.destroy()


def language_server_with_transport(
    transport: Optional[BaseTransport],
    options: LanguageServerOptions,
    session: Optional[LanguageServerSession] = None,
) -> LanguageServer:
    """Wire a document to a server reached over ``transport``.

    Pass ``session`` to share one server connection between documents; the
    transport is then ignored.
    """
    return LanguageServer(options, transport=transport, session=session)


def language_server(server_uri: str, options: LanguageServerOptions) -> LanguageServer:
    """Wire a document to a server behind a ``ws://`` or ``wss://`` URI."""
    return language_server_with_transport(WebSocketTransport(server_uri), options)

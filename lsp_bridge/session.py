"""
JSON-RPC session with one language server.

The session owns the transport, correlates requests with responses through
a table of pending requests, performs the ``initialize`` handshake once,
and fans server notifications out to every attached document.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, List, Optional, Protocol, Set, Union

from lsp_bridge.config import SessionConfig
from lsp_bridge.exceptions import (
    NotInitializedError,
    ProtocolError,
    RequestTimeout,
    TransportError,
)
from lsp_bridge.transports.base import BaseTransport, Message
from lsp_bridge.types import CapabilitySet, LspMethod
from lsp_bridge.utils.logger import setup_logger

logger = setup_logger(__name__)

METHOD_NOT_FOUND = -32601

# Advertised to every server; bump the version when the payload changes.
CLIENT_CAPABILITIES_VERSION = 1
CLIENT_CAPABILITIES: Dict[str, Any] = {
    "textDocument": {
        "hover": {
            "dynamicRegistration": True,
            "contentFormat": ["plaintext", "markdown"],
        },
        "moniker": {},
        "synchronization": {
            "dynamicRegistration": True,
            "willSave": False,
            "didSave": False,
            "willSaveWaitUntil": False,
        },
        "completion": {
            "dynamicRegistration": True,
            "completionItem": {
                "snippetSupport": False,
                "commitCharactersSupport": True,
                "documentationFormat": ["plaintext", "markdown"],
                "deprecatedSupport": False,
                "preselectSupport": False,
            },
            "contextSupport": False,
        },
        "signatureHelp": {
            "dynamicRegistration": True,
            "signatureInformation": {
                "documentationFormat": ["plaintext", "markdown"],
            },
        },
        "declaration": {"dynamicRegistration": True, "linkSupport": True},
        "definition": {"dynamicRegistration": True, "linkSupport": True},
        "typeDefinition": {"dynamicRegistration": True, "linkSupport": True},
        "implementation": {"dynamicRegistration": True, "linkSupport": True},
    },
    "workspace": {
        "didChangeConfiguration": {"dynamicRegistration": True},
    },
}


class NotificationSubscriber(Protocol):
    def process_notification(self, method: str, params: Any) -> None: ...


@dataclass
class PendingRequest:
    """An in-flight request; removed from the table when it resolves."""

    method: str
    id: int
    deadline: float
    future: asyncio.Future


def _method_name(method: Union[LspMethod, str]) -> str:
    return method.value if isinstance(method, LspMethod) else method


class LanguageServerSession:
    """One connection to one language server, shared by any number of documents."""

    def __init__(
        self, transport: BaseTransport, config: Optional[SessionConfig] = None
    ) -> None:
        self.transport = transport
        self.config = config or SessionConfig()
        self.root_uri = self.config.root_uri
        self.workspace_folders = self.config.workspace_folders
        self.auto_close = self.config.auto_close

        self.ready = False
        self.capabilities: Optional[CapabilitySet] = None

        self._subscribers: List[NotificationSubscriber] = []
        self._pending: Dict[int, PendingRequest] = {}
        self._next_id = 0
        self._started = False
        self._closed = False
        self._initialize_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_requests(self) -> List[PendingRequest]:
        return list(self._pending.values())

    @property
    def subscribers(self) -> List[NotificationSubscriber]:
        return list(self._subscribers)

    # -- lifecycle ---------------------------------------------------------

    async def initialize(self) -> None:
        """Run the handshake, or wait for the one already in progress."""
        await self.ensure_initialized()

    async def ensure_initialized(self) -> None:
        if self.ready:
            return
        task = self._initialize_task
        if task is None or (task.done() and (task.cancelled() or task.exception() is not None)):
            # A failed handshake is not cached; the next caller starts a fresh one.
            task = self._initialize_task = asyncio.ensure_future(self._handshake())
        # Shielded so a cancelled waiter does not abort the shared handshake.
        await asyncio.shield(task)

    async def _handshake(self) -> None:
        if self._closed:
            raise TransportError("Session is closed.")
        if not self._started:
            await self.transport.start(self._handle_message, self._handle_close)
            self._started = True

        result = await self.request(
            LspMethod.INITIALIZE,
            {
                "capabilities": CLIENT_CAPABILITIES,
                "initializationOptions": None,
                "processId": None,
                "rootUri": self.root_uri,
                "workspaceFolders": self.workspace_folders,
            },
            timeout=self.config.initialize_timeout,
        )
        raw = result.get("capabilities") if isinstance(result, dict) else None
        self.capabilities = CapabilitySet.from_lsp(raw)
        await self.notify(LspMethod.INITIALIZED, {})
        self.ready = True
        logger.info(
            f"Language server ready: hover={self.capabilities.hover} "
            f"completion={self.capabilities.completion} "
            f"trigger_characters={self.capabilities.trigger_characters}"
        )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.ready = False
        if self._started:
            await self.transport.close()
        self._fail_pending(TransportError("Session closed."))
        logger.info("Language server session closed")

    def attach(self, subscriber: NotificationSubscriber) -> None:
        self._subscribers.append(subscriber)

    async def detach(
        self, subscriber: NotificationSubscriber, close_if_idle: bool = True
    ) -> None:
        try:
            self._subscribers.remove(subscriber)
        except ValueError:
            return
        if close_if_idle and self.auto_close and not self._subscribers:
            await self.close()

    # -- primitives --------------------------------------------------------

    async def request(
        self,
        method: Union[LspMethod, str],
        params: Any,
        timeout: Optional[float] = None,
    ) -> Any:
        name = _method_name(method)
        if self._closed:
            raise TransportError("Session is closed.")
        if not self.ready and name != LspMethod.INITIALIZE.value:
            raise NotInitializedError(f"Cannot send '{name}' before initialize completes.")

        if timeout is None:
            timeout = self.config.request_timeout
        loop = asyncio.get_running_loop()
        self._next_id += 1
        pending = PendingRequest(
            method=name,
            id=self._next_id,
            deadline=loop.time() + timeout,
            future=loop.create_future(),
        )
        self._pending[pending.id] = pending
        try:
            await self.transport.send(
                {"jsonrpc": "2.0", "id": pending.id, "method": name, "params": params}
            )
            return await asyncio.wait_for(
                pending.future, timeout=max(pending.deadline - loop.time(), 0)
            )
        except asyncio.TimeoutError as exc:
            logger.warning(f"Request '{name}' (id={pending.id}) timed out after {timeout:g}s")
            raise RequestTimeout(name, timeout) from exc
        finally:
            self._pending.pop(pending.id, None)

    async def notify(self, method: Union[LspMethod, str], params: Any) -> None:
        name = _method_name(method)
        if self._closed:
            raise TransportError("Session is closed.")
        if not self.ready and name != LspMethod.INITIALIZED.value:
            raise NotInitializedError(f"Cannot send '{name}' before initialize completes.")
        await self.transport.send({"jsonrpc": "2.0", "method": name, "params": params})

    # -- typed helpers -----------------------------------------------------

    async def text_document_did_open(self, params: Dict[str, Any]) -> None:
        await self.notify(LspMethod.DID_OPEN, params)

    async def text_document_did_change(self, params: Dict[str, Any]) -> None:
        await self.notify(LspMethod.DID_CHANGE, params)

    async def text_document_hover(self, params: Dict[str, Any]) -> Any:
        return await self.request(LspMethod.HOVER, params)

    async def text_document_completion(self, params: Dict[str, Any]) -> Any:
        return await self.request(LspMethod.COMPLETION, params)

    # -- inbound -----------------------------------------------------------

    def _handle_message(self, message: Message) -> None:
        method = message.get("method")
        message_id = message.get("id")
        if method is not None:
            if message_id is not None:
                self._answer_server_request(method, message_id)
            else:
                self._dispatch_notification(method, message.get("params"))
            return
        if message_id is not None:
            self._resolve(message_id, message)
            return
        logger.warning(f"Dropping message with neither method nor id: {message!r}")

    def _resolve(self, message_id: Any, message: Message) -> None:
        pending = self._pending.pop(message_id, None)
        if pending is None:
            logger.debug(f"Ignoring response for unknown or expired request id={message_id}")
            return
        if pending.future.done():
            return
        error = message.get("error")
        if error is not None:
            pending.future.set_exception(ProtocolError.from_lsp(error))
        else:
            pending.future.set_result(message.get("result"))

    def _dispatch_notification(self, method: str, params: Any) -> None:
        for subscriber in list(self._subscribers):
            subscriber.process_notification(method, params)

    def _answer_server_request(self, method: str, message_id: Any) -> None:
        if self.transport.answers_stray_requests:
            # Keeps socket-bridged servers from blocking on requests we never registered for.
            reply: Message = {"jsonrpc": "2.0", "id": message_id, "result": None}
        else:
            reply = {
                "jsonrpc": "2.0",
                "id": message_id,
                "error": {"code": METHOD_NOT_FOUND, "message": f"Unhandled method {method}"},
            }
        logger.debug(f"Answering unsupported server request '{method}' (id={message_id})")
        self._spawn(self._send_reply(reply))

    async def _send_reply(self, reply: Message) -> None:
        try:
            await self.transport.send(reply)
        except TransportError as exc:
            logger.warning(f"Failed to answer server request id={reply.get('id')}: {exc}")

    def _handle_close(self, error: Optional[BaseException]) -> None:
        self.ready = False
        logger.warning(f"Language server connection lost: {error!r}")
        self._fail_pending(TransportError(f"Connection lost: {error!r}"))

    def _fail_pending(self, error: TransportError) -> None:
        pending, self._pending = self._pending, {}
        for entry in pending.values():
            if not entry.future.done():
                entry.future.set_exception(error)

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

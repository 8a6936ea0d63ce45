"""
JSON-RPC over ``Content-Length`` framed byte streams, via pygls.

pygls does the framing and the process handling; request/response
correlation stays with ``LanguageServerSession``, so the protocol here
hands every decoded message on as a plain dict.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Callable, Dict, Optional

from pygls.client import JsonRPCClient
from pygls.io_ import run_async
from pygls.protocol import JsonRPCProtocol

from lsp_bridge.exceptions import TransportError
from lsp_bridge.transports.base import (
    BaseTransport,
    CloseHandler,
    Message,
    MessageHandler,
)
from lsp_bridge.utils.logger import setup_logger

logger = setup_logger(__name__)


class PassthroughProtocol(JsonRPCProtocol):
    """pygls framing with dispatch left to the session.

    Bodies are not structured into pygls message classes, and none of
    ``JsonRPCProtocol``'s own request bookkeeping is used.
    """

    def __init__(self, server, converter):
        super().__init__(server, converter)
        self.on_message: Optional[MessageHandler] = None

    def structure_message(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return data

    def handle_message(self, message: Any) -> None:
        if not isinstance(message, dict):
            logger.warning(f"Dropping non-object message: {message!r}")
            return
        if self.on_message is None:
            logger.debug(f"No handler attached; dropping {message!r}")
            return
        try:
            self.on_message(message)
        except Exception:
            logger.exception("Unhandled error while dispatching message")

    def send_message(self, message: Message) -> None:
        self._send_data(message)


class BridgeClient(JsonRPCClient):
    """``JsonRPCClient`` speaking ``PassthroughProtocol``.

    ``on_exit`` is called with the return code when a server started with
    ``start_io`` exits.
    """

    def __init__(self, on_exit: Optional[Callable[[Optional[int]], None]] = None) -> None:
        super().__init__(protocol_cls=PassthroughProtocol)
        self._on_exit = on_exit

    @property
    def process(self) -> Optional[asyncio.subprocess.Process]:
        return self._server

    async def server_exit(self, server: asyncio.subprocess.Process) -> None:
        if self._on_exit is not None:
            self._on_exit(server.returncode)

    def report_server_error(self, error: Exception, source: Any) -> None:
        logger.opt(exception=error).error(
            f"JSON-RPC stream error ({getattr(source, '__name__', source)}): {error}"
        )


class StreamTransport(BaseTransport):
    """Transport over an existing ``StreamReader``/``StreamWriter`` pair."""

    def __init__(
        self,
        reader: Optional[asyncio.StreamReader] = None,
        writer: Optional[asyncio.StreamWriter] = None,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.client: Optional[BridgeClient] = None
        self._stop_event = threading.Event()
        self._read_task: Optional[asyncio.Task] = None
        self._on_close: Optional[CloseHandler] = None
        self._closing = False
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def start(self, on_message: MessageHandler, on_close: CloseHandler) -> None:
        if self.reader is None or self.writer is None:
            raise TransportError("Stream transport has no reader/writer to start on.")
        self.client = BridgeClient()
        self.client.protocol.on_message = on_message
        self.client.protocol.set_writer(self.writer)
        self._on_close = on_close
        self._open = True
        self._read_task = asyncio.create_task(self._read_messages())

    async def send(self, message: Message) -> None:
        if not self._open or self.client is None:
            raise TransportError("Transport is closed.")
        self.client.protocol.send_message(message)
        try:
            await self.writer.drain()
        except (ConnectionError, RuntimeError) as exc:
            raise TransportError(f"Failed to write message: {exc}") from exc

    async def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        self._open = False
        self._stop_event.set()
        if self._read_task and not self._read_task.done():
            self._read_task.cancel()
            try:
                await self._read_task
            except asyncio.CancelledError:
                pass
        if self.writer is not None:
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except (ConnectionError, RuntimeError) as exc:
                logger.debug(f"Error while closing stream writer: {exc}")

    async def _read_messages(self) -> None:
        error: Optional[BaseException] = None
        try:
            await run_async(
                stop_event=self._stop_event,
                reader=self.reader,
                protocol=self.client.protocol,
                error_handler=self.client.report_server_error,
            )
        except (asyncio.IncompleteReadError, ConnectionError) as exc:
            error = exc
        self._open = False
        if not self._closing and self._on_close is not None:
            self._on_close(error)

"""
JSON-RPC over a WebSocket: one JSON text frame per message.

Socket-based language server bridges forward every server->client request,
including ones this client never registered for, so this transport asks the
session to answer them.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from lsp_bridge.exceptions import TransportError
from lsp_bridge.transports.base import (
    BaseTransport,
    CloseHandler,
    Message,
    MessageHandler,
)
from lsp_bridge.utils.logger import setup_logger

logger = setup_logger(__name__)


class WebSocketTransport(BaseTransport):
    answers_stray_requests = True

    def __init__(self, uri: str, open_timeout: float = 10.0) -> None:
        if not uri.startswith(("ws://", "wss://")):
            raise TransportError(f"WebSocket server URI must be ws:// or wss://, got {uri!r}")
        self.uri = uri
        self.open_timeout = open_timeout
        self._connection: Optional[Any] = None
        self._read_task: Optional[asyncio.Task] = None
        self._on_close: Optional[CloseHandler] = None
        self._closing = False

    @property
    def is_open(self) -> bool:
        return self._connection is not None and not self._closing

    async def start(self, on_message: MessageHandler, on_close: CloseHandler) -> None:
        try:
            self._connection = await websockets.connect(
                self.uri, open_timeout=self.open_timeout
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            raise TransportError(f"Failed to connect to {self.uri}: {exc}") from exc
        logger.info(f"Connected to language server at {self.uri}")
        self._on_close = on_close
        self._read_task = asyncio.create_task(self._read_messages(on_message))

    async def send(self, message: Message) -> None:
        if not self.is_open:
            raise TransportError("Transport is closed.")
        try:
            await self._connection.send(json.dumps(message))
        except ConnectionClosed as exc:
            raise TransportError(f"Connection to {self.uri} closed: {exc}") from exc

    async def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        if self._read_task and not self._read_task.done():
            self._read_task.cancel()
            try:
                await self._read_task
            except asyncio.CancelledError:
                pass
        if self._connection is not None:
            await self._connection.close()

    async def _read_messages(self, on_message: MessageHandler) -> None:
        error: Optional[BaseException] = None
        try:
            async for raw in self._connection:
                try:
                    message = json.loads(raw)
                except (TypeError, json.JSONDecodeError) as exc:
                    logger.warning(f"Dropping undecodable frame: {exc}")
                    continue
                if not isinstance(message, dict):
                    logger.warning(f"Dropping non-object frame: {message!r}")
                    continue
                try:
                    on_message(message)
                except Exception:
                    logger.exception("Unhandled error while dispatching message")
        except asyncio.CancelledError:
            raise
        except ConnectionClosed as exc:
            error = exc
        if not self._closing and self._on_close is not None:
            self._on_close(error)

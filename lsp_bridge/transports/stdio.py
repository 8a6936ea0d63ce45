"""
Language server spawned as a child process, spoken to over its stdio pipes.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from typing import Optional

from lsp_bridge.config import ServerProcessConfig
from lsp_bridge.exceptions import TransportError
from lsp_bridge.transports.base import BaseTransport, CloseHandler, Message, MessageHandler
from lsp_bridge.transports.stream import BridgeClient
from lsp_bridge.utils.logger import setup_logger

logger = setup_logger(__name__)


class StdioTransport(BaseTransport):
    """Starts the configured command with pygls and frames messages over its pipes."""

    def __init__(self, config: ServerProcessConfig) -> None:
        self.config = config
        self.client: Optional[BridgeClient] = None
        self._on_close: Optional[CloseHandler] = None
        self._closing = False
        self._exited = False

    @property
    def is_open(self) -> bool:
        return self.client is not None and not self._closing and not self._exited

    async def start(self, on_message: MessageHandler, on_close: CloseHandler) -> None:
        executable = self.config.command[0]
        if shutil.which(executable) is None:
            raise TransportError(
                f"Language server executable '{executable}' is not available in PATH."
            )

        env = os.environ.copy()
        env.update(self.config.environment)

        self._on_close = on_close
        self.client = BridgeClient(on_exit=self._on_server_exit)
        self.client.protocol.on_message = on_message
        try:
            await self.client.start_io(
                executable,
                *self.config.command[1:],
                cwd=self.config.cwd,
                env=env,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            self.client = None
            raise TransportError(
                f"Failed to start language server {list(self.config.command)}: {exc}"
            ) from exc

        process = self.client.process
        logger.info(
            f"Started language server pid={getattr(process, 'pid', None)} "
            f"command={list(self.config.command)}"
        )

    async def send(self, message: Message) -> None:
        if not self.is_open:
            raise TransportError("Transport is closed.")
        self.client.protocol.send_message(message)
        process = self.client.process
        if process is None or process.stdin is None:
            return
        try:
            await process.stdin.drain()
        except (ConnectionError, RuntimeError) as exc:
            raise TransportError(f"Failed to write message: {exc}") from exc

    async def close(self) -> None:
        if self._closing or self.client is None:
            self._closing = True
            return
        self._closing = True
        try:
            await asyncio.wait_for(self.client.stop(), timeout=self.config.shutdown_timeout)
        except asyncio.TimeoutError:
            process = self.client.process
            if process is not None and process.returncode is None:
                logger.warning(f"Language server pid={process.pid} ignored terminate; killing")
                try:
                    process.kill()
                except ProcessLookupError:
                    return
                await process.wait()

    def _on_server_exit(self, returncode: Optional[int]) -> None:
        self._exited = True
        if self._closing or self._on_close is None:
            return
        logger.warning(f"Language server exited with code {returncode}")
        self._on_close(TransportError(f"Language server exited with code {returncode}"))

"""
Core transport primitives shared by every connection type.

A transport moves whole JSON-RPC messages (already-decoded dicts) in both
directions. Correlation of requests and responses belongs to the session,
not to the transport.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

Message = Dict[str, Any]
MessageHandler = Callable[[Message], None]
CloseHandler = Callable[[Optional[BaseException]], None]


class BaseTransport:
    """
    Abstract interface for a duplex JSON-RPC message channel.

    ``answers_stray_requests`` marks transports whose servers may send
    requests the bridge does not implement and then block waiting for the
    answer; the session replies to those with a null result.
    """

    answers_stray_requests: bool = False

    async def start(self, on_message: MessageHandler, on_close: CloseHandler) -> None:
        """Open the channel and begin delivering inbound messages.

        ``on_close`` is called once if the peer goes away, with the error
        that ended the connection (or ``None`` on a clean end of stream).
        It is not called for a ``close()`` initiated locally.
        """
        raise NotImplementedError

    async def send(self, message: Message) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError

    @property
    def is_open(self) -> bool:
        raise NotImplementedError

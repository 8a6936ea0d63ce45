from lsp_bridge.transports.base import BaseTransport
from lsp_bridge.transports.stdio import StdioTransport
from lsp_bridge.transports.stream import StreamTransport
from lsp_bridge.transports.websocket import WebSocketTransport

__all__ = [
    "BaseTransport",
    "StdioTransport",
    "StreamTransport",
    "WebSocketTransport",
]

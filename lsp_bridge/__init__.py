"""
lsp_bridge - keep an editor document in sync with a Language Server.

The bridge opens and debounces full-text synchronization of a local
document, maps local offsets to LSP positions (optionally padding the
document with a non-editable prefix and suffix), and turns hover,
completion and diagnostics responses into editor-ready objects.

Example:
    >>> from lsp_bridge import (
    ...     DocumentConfig, LanguageServerOptions, SessionConfig, language_server,
    ... )
    >>>
    >>> options = LanguageServerOptions(
    ...     document=DocumentConfig(
    ...         document_uri="file:///workspace/main.py", language_id="python"
    ...     ),
    ...     session=SessionConfig(root_uri="file:///workspace"),
    ... )
    >>> server = language_server("ws://localhost:3000/python", options)
    >>> context = await server.attach(view)     # sends initialize + didOpen
    >>> server.changed()                        # after each local edit
    >>> tooltip = await server.hover(offset)
"""

from loguru import logger as _logger

from lsp_bridge.config import (
    DocumentConfig,
    LanguageServerOptions,
    ServerProcessConfig,
    SessionConfig,
)
from lsp_bridge.document import DocumentContext, DocumentState
from lsp_bridge.editor import CompletionContext, EditorView
from lsp_bridge.exceptions import (
    ConfigurationError,
    LanguageServerError,
    MappingError,
    NotInitializedError,
    ProtocolError,
    RequestTimeout,
    TransportError,
)
from lsp_bridge.language_server import (
    LanguageServer,
    language_server,
    language_server_with_transport,
)
from lsp_bridge.positions import offset_to_position, position_to_offset
from lsp_bridge.session import LanguageServerSession
from lsp_bridge.text import Line, Text
from lsp_bridge.transports import (
    BaseTransport,
    StdioTransport,
    StreamTransport,
    WebSocketTransport,
)
from lsp_bridge.types import (
    CapabilitySet,
    CompletionOption,
    CompletionResult,
    Diagnostic,
    HoverTooltip,
    Position,
)
from lsp_bridge.utils.logger import configure_logging

__version__ = "0.1.0"

# Silent until the host application calls configure_logging().
_logger.disable("lsp_bridge")

__all__ = [
    # Entry points
    "LanguageServer",
    "language_server",
    "language_server_with_transport",
    "LanguageServerSession",
    "DocumentContext",
    "DocumentState",
    # Configuration
    "DocumentConfig",
    "LanguageServerOptions",
    "ServerProcessConfig",
    "SessionConfig",
    # Editor collaborators
    "CompletionContext",
    "EditorView",
    "Line",
    "Text",
    # Transports
    "BaseTransport",
    "StdioTransport",
    "StreamTransport",
    "WebSocketTransport",
    # Coordinates
    "offset_to_position",
    "position_to_offset",
    # Types
    "CapabilitySet",
    "CompletionOption",
    "CompletionResult",
    "Diagnostic",
    "HoverTooltip",
    "Position",
    # Errors
    "LanguageServerError",
    "ConfigurationError",
    "NotInitializedError",
    "TransportError",
    "RequestTimeout",
    "ProtocolError",
    "MappingError",
    # Logging
    "configure_logging",
]

"""Configuration for sessions, documents and spawned language servers."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from lsp_bridge.exceptions import ConfigurationError

DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_CHANGE_DELAY = 0.5


@dataclass
class SessionConfig:
    """Configuration for one connection to one language server.

    Attributes:
        root_uri: Workspace root URI sent with ``initialize``.
        workspace_folders: LSP ``WorkspaceFolder`` dicts sent with ``initialize``.
        auto_close: Close the transport when the last document detaches.
        request_timeout: Seconds to wait for an ordinary request.
        initialize_timeout: Seconds to wait for the handshake; three times
            ``request_timeout`` if not given.
    """

    root_uri: Optional[str] = None
    workspace_folders: Optional[List[Dict[str, str]]] = None
    auto_close: bool = False
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    initialize_timeout: Optional[float] = None

    def __post_init__(self):
        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive")
        if self.initialize_timeout is None:
            self.initialize_timeout = self.request_timeout * 3
        elif self.initialize_timeout <= 0:
            raise ConfigurationError("initialize_timeout must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> "SessionConfig":
        """Build a config from ``LSP_BRIDGE_*`` environment variables."""
        values: Dict[str, Any] = {}
        root_uri = os.getenv("LSP_BRIDGE_ROOT_URI")
        if root_uri:
            values["root_uri"] = root_uri
        timeout = os.getenv("LSP_BRIDGE_REQUEST_TIMEOUT")
        if timeout:
            try:
                values["request_timeout"] = float(timeout)
            except ValueError as exc:
                raise ConfigurationError(
                    f"LSP_BRIDGE_REQUEST_TIMEOUT is not a number: {timeout!r}"
                ) from exc
        values.update(overrides)
        return cls(**values)


@dataclass
class DocumentConfig:
    """Configuration for one editor document bound to a session.

    ``prefix`` and ``suffix`` are shown to the server around the document
    text but are never editable locally.
    """

    document_uri: str
    language_id: str
    prefix: str = ""
    suffix: str = ""
    allow_html_content: bool = False
    change_delay: float = DEFAULT_CHANGE_DELAY

    def __post_init__(self):
        if not self.document_uri:
            raise ConfigurationError("document_uri is required")
        if not self.language_id:
            raise ConfigurationError("language_id is required")
        if self.change_delay < 0:
            raise ConfigurationError("change_delay cannot be negative")


@dataclass
class ServerProcessConfig:
    """Process-level configuration for launching a language server."""

    command: Sequence[str]
    environment: Mapping[str, str] = field(default_factory=dict)
    cwd: Optional[str] = None
    shutdown_timeout: float = 5.0

    def __post_init__(self):
        if not self.command:
            raise ConfigurationError("Language server command is not configured.")

    @classmethod
    def from_command_string(cls, command: str, **kwargs: Any) -> "ServerProcessConfig":
        return cls(command=shlex.split(command), **kwargs)


@dataclass
class LanguageServerOptions:
    """Everything the editor-facing facade needs for one document."""

    document: DocumentConfig
    session: SessionConfig = field(default_factory=SessionConfig)

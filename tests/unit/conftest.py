"""
Minimal conftest for unit tests.

Unit tests talk to an in-memory transport that plays the language server,
so no process, socket or real server is needed.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

# Add project root to path for imports (idempotent)
project_root = Path(__file__).parent.parent.parent.resolve()
project_root_str = str(project_root)
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

from lsp_bridge.config import DocumentConfig, SessionConfig  # noqa: E402
from lsp_bridge.document import DocumentContext  # noqa: E402
from lsp_bridge.exceptions import TransportError  # noqa: E402
from lsp_bridge.session import LanguageServerSession  # noqa: E402
from lsp_bridge.text import Text  # noqa: E402
from lsp_bridge.transports.base import BaseTransport  # noqa: E402

DEFAULT_CAPABILITIES = {
    "hoverProvider": True,
    "completionProvider": {"triggerCharacters": ["."]},
    "textDocumentSync": 1,
}


class FakeTransport(BaseTransport):
    """Records outgoing messages and answers requests from canned results."""

    def __init__(self, answers_stray_requests: bool = False) -> None:
        self.answers_stray_requests = answers_stray_requests
        self.sent: List[Dict[str, Any]] = []
        self.results: Dict[str, Any] = {
            "initialize": {"capabilities": dict(DEFAULT_CAPABILITIES)}
        }
        self.errors: Dict[str, Dict[str, Any]] = {}
        self.failing_methods: set = set()
        self.on_message: Optional[Callable[[Dict[str, Any]], None]] = None
        self.on_close: Optional[Callable[[Optional[BaseException]], None]] = None
        self.start_count = 0
        self.closed = False

    @property
    def is_open(self) -> bool:
        return self.start_count > 0 and not self.closed

    async def start(self, on_message, on_close) -> None:
        self.start_count += 1
        self.on_message = on_message
        self.on_close = on_close

    async def send(self, message: Dict[str, Any]) -> None:
        if self.closed:
            raise TransportError("closed")
        method = message.get("method")
        if method in self.failing_methods:
            raise TransportError(f"cannot send {method}")
        self.sent.append(message)
        if method is None or message.get("id") is None:
            return
        reply: Dict[str, Any] = {"jsonrpc": "2.0", "id": message["id"]}
        if method in self.errors:
            reply["error"] = self.errors[method]
        elif method in self.results:
            result = self.results[method]
            reply["result"] = result(message.get("params")) if callable(result) else result
        else:
            return
        asyncio.get_running_loop().call_soon(self.on_message, reply)

    async def close(self) -> None:
        self.closed = True

    def push(self, message: Dict[str, Any]) -> None:
        """Deliver a server-originated message."""
        self.on_message(message)

    def methods(self) -> List[str]:
        return [m.get("method") for m in self.sent if m.get("method")]

    def params_of(self, method: str) -> List[Any]:
        return [m.get("params") for m in self.sent if m.get("method") == method]


class FakeView:
    """Editor view holding a document and collecting rendered diagnostics."""

    def __init__(self, text: str = "") -> None:
        self.doc = Text.from_string(text)
        self.rendered: List[list] = []

    def set_diagnostics(self, diagnostics) -> None:
        self.rendered.append(diagnostics)

    def edit(self, text: str) -> None:
        self.doc = Text.from_string(text)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def make_session(transport):
    def _make(**config: Any) -> LanguageServerSession:
        config.setdefault("root_uri", "file:///workspace")
        return LanguageServerSession(transport, SessionConfig(**config))

    return _make


@pytest.fixture
def session(make_session):
    return make_session()


@pytest.fixture
def make_view():
    return FakeView


@pytest.fixture
def make_context(session):
    def _make(text: str = "", **config: Any) -> DocumentContext:
        config.setdefault("document_uri", "file:///workspace/main.py")
        config.setdefault("language_id", "python")
        config.setdefault("change_delay", 0.01)
        return DocumentContext(FakeView(text), session, DocumentConfig(**config))

    return _make

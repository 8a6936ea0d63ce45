"""Exception hierarchy for the lsp_bridge library."""

from typing import Any, Optional


class LanguageServerError(Exception):
    """Base exception for all lsp_bridge errors."""

    pass


class ConfigurationError(LanguageServerError):
    """Configuration is invalid or missing required values."""

    pass


class NotInitializedError(LanguageServerError):
    """Session used before the initialize handshake completed."""

    pass


class TransportError(LanguageServerError):
    """The connection to the language server failed or is closed."""

    pass


class RequestTimeout(LanguageServerError):
    """No response arrived before the request timed out."""

    def __init__(self, method: str, timeout: float):
        super().__init__(f"Request '{method}' timed out after {timeout:g}s")
        self.method = method
        self.timeout = timeout


class ProtocolError(LanguageServerError):
    """The server answered a request with a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message
        self.data = data

    @classmethod
    def from_lsp(cls, error: Any) -> "ProtocolError":
        if not isinstance(error, dict):
            return cls(-32603, str(error))
        return cls(
            error.get("code", -32603),
            error.get("message", "Unknown error"),
            error.get("data"),
        )


class MappingError(LanguageServerError):
    """A server position could not be translated to a local offset."""

    pass

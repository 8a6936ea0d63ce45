"""
Shared types and enumerations for the editor <-> language server bridge.

Wire payloads stay plain dicts on their way through the session; these
models describe what the bridge hands back to the editor (completion
options, hover tooltips, diagnostics) plus the few LSP shapes it reasons
about directly (positions and server capabilities).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class LspMethod(str, Enum):
    """LSP methods the bridge sends or consumes."""

    INITIALIZE = "initialize"
    INITIALIZED = "initialized"
    DID_OPEN = "textDocument/didOpen"
    DID_CHANGE = "textDocument/didChange"
    HOVER = "textDocument/hover"
    COMPLETION = "textDocument/completion"
    PUBLISH_DIAGNOSTICS = "textDocument/publishDiagnostics"


Severity = Literal["error", "warning", "info"]


class Position(BaseModel):
    """Represents a zero-based line/character location in a text document."""

    line: int = Field(..., ge=0, description="Zero-based line index.")
    character: int = Field(..., ge=0, description="Zero-based character offset.")

    @classmethod
    def from_lsp(cls, data: dict[str, Any]) -> "Position":
        return cls(line=data["line"], character=data["character"])

    def to_lsp(self) -> dict[str, int]:
        return {"line": self.line, "character": self.character}


class CapabilitySet(BaseModel):
    """Server capabilities reduced to the predicates the bridge consults."""

    hover: bool = Field(False, description="Server answers textDocument/hover.")
    completion: bool = Field(
        False, description="Server answers textDocument/completion."
    )
    trigger_characters: List[str] = Field(
        default_factory=list,
        description="Characters that should trigger completion automatically.",
    )
    raw: Dict[str, Any] = Field(
        default_factory=dict, description="ServerCapabilities as received."
    )

    @classmethod
    def from_lsp(cls, data: Optional[dict[str, Any]]) -> "CapabilitySet":
        data = data or {}
        # Providers are either booleans or option objects; an empty options
        # object still means the feature is supported.
        hover_provider = data.get("hoverProvider")
        completion_provider = data.get("completionProvider")

        trigger_characters: List[str] = []
        if isinstance(completion_provider, dict):
            trigger_characters = list(completion_provider.get("triggerCharacters") or [])

        return cls(
            hover=hover_provider not in (None, False),
            completion=completion_provider not in (None, False),
            trigger_characters=trigger_characters,
            raw=data,
        )

    def triggers_completion(self, char: Optional[str]) -> bool:
        return bool(char) and char in self.trigger_characters


class CompletionOption(BaseModel):
    """A single completion candidate in local (unpadded) coordinates."""

    label: str
    apply: str = Field(..., description="Text inserted over the replacement window.")
    start: Optional[int] = Field(
        None, description="Local offset where this candidate's own edit starts."
    )
    detail: Optional[str] = None
    type: Optional[str] = Field(None, description="Lowercase CompletionItemKind name.")
    sort_text: str
    filter_text: str
    info: Optional[str] = Field(None, description="Formatted documentation.")


class CompletionResult(BaseModel):
    """Completion options sharing one replacement window ``[start, cursor)``."""

    start: int
    options: List[CompletionOption] = Field(default_factory=list)
    filter: bool = Field(
        False, description="Whether the editor should filter options itself."
    )
    valid_for: Optional[str] = Field(
        None,
        description="Regex source; while the typed text matches it the options stay valid.",
    )


class HoverTooltip(BaseModel):
    """Hover content anchored at local offsets."""

    pos: int
    end: Optional[int] = None
    content: str
    allow_html: bool = False
    above: bool = True


class Diagnostic(BaseModel):
    """A server diagnostic mapped into local offsets."""

    start: int
    end: int
    severity: Severity
    message: str
    source: Optional[str] = None

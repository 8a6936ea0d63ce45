"""Translate ``textDocument/publishDiagnostics`` entries into local diagnostics."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from lsprotocol import types as lsp

from lsp_bridge.exceptions import MappingError
from lsp_bridge.positions import position_to_offset
from lsp_bridge.text import Text
from lsp_bridge.types import Diagnostic, Severity
from lsp_bridge.utils.logger import setup_logger

logger = setup_logger(__name__)

SEVERITIES: Dict[int, Severity] = {
    lsp.DiagnosticSeverity.Error: "error",
    lsp.DiagnosticSeverity.Warning: "warning",
    lsp.DiagnosticSeverity.Information: "info",
    lsp.DiagnosticSeverity.Hint: "info",
}
DEFAULT_SEVERITY: Severity = "error"


def _translate_one(entry: Any, doc: Text, prefix: Text) -> Optional[Diagnostic]:
    if not isinstance(entry, dict) or not isinstance(entry.get("range"), dict):
        return None
    try:
        start = position_to_offset(doc, prefix, entry["range"].get("start"))
        end = position_to_offset(doc, prefix, entry["range"].get("end"))
    except MappingError as exc:
        logger.debug(f"Dropping diagnostic with unmappable range: {exc}")
        return None
    source = entry.get("source")
    return Diagnostic(
        start=start,
        end=end,
        severity=SEVERITIES.get(entry.get("severity"), DEFAULT_SEVERITY),
        message=str(entry.get("message", "")),
        source=source if isinstance(source, str) else None,
    )


def translate_diagnostics(entries: Iterable[Any], doc: Text, prefix: Text) -> List[Diagnostic]:
    """Map each entry's range locally, drop the unmappable, sort by start.

    ``sorted`` is stable, so entries with equal starts keep server order.
    """
    diagnostics = [
        diagnostic
        for diagnostic in (_translate_one(entry, doc, prefix) for entry in entries)
        if diagnostic is not None
    ]
    return sorted(diagnostics, key=lambda d: d.start)

"""
Logging for lsp_bridge.

Modules log through ``setup_logger(__name__)``. The package is disabled in
loguru on import, so an application that embeds the bridge sees nothing
until it calls ``configure_logging()`` or ``logger.enable("lsp_bridge")``.
"""

import inspect
import json
import logging
import os
import sys
from contextlib import contextmanager
from typing import Any, Optional, Union

from loguru import logger

PACKAGE = "lsp_bridge"

# Libraries whose stdlib logging can be routed into the bridge's sink.
TRANSPORT_LOGGERS = ("pygls", "websockets")

DEVELOPMENT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

_handler_id: Optional[int] = None
_intercept_handler: Optional[logging.Handler] = None


def _json_line(record: dict) -> str:
    """One flat JSON object per record, bound extras at the top level."""
    data = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "logger": record["extra"].get("name", record["name"]),
        "function": record["function"],
        "line": record["line"],
        "message": record["message"],
    }
    for key, value in record["extra"].items():
        if key != "name":
            data[key] = value
    if record["exception"] is not None:
        exc_type, exc_value, _ = record["exception"]
        data["exception"] = {
            "type": getattr(exc_type, "__name__", str(exc_type)),
            "value": str(exc_value),
        }
    return json.dumps(data, default=str)


def _json_format(record: dict) -> str:
    record["extra"]["_json"] = _json_line(record)
    return "{extra[_json]}\n"


def _from_bridge(record: dict) -> bool:
    name = record["extra"].get("name") or record["name"] or ""
    return name.startswith((PACKAGE,) + TRANSPORT_LOGGERS)


class InterceptHandler(logging.Handler):
    """Forward stdlib records from transport libraries to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: Union[str, int] = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def configure_logging(
    level: Optional[str] = None,
    sink: Any = sys.stderr,
    serialize: Optional[bool] = None,
    intercept_stdlib: bool = False,
) -> int:
    """
    Send lsp_bridge records to ``sink`` and enable the package.

    Only the handler added by a previous call is replaced; handlers the host
    application installed on loguru or on the stdlib root logger are left
    alone.

    ``level`` defaults to ``LOG_LEVEL`` (INFO). ``serialize`` defaults to
    ``ENV == "production"`` and writes one JSON object per line.
    ``intercept_stdlib`` routes the pygls and websockets loggers into the
    same sink at WARNING and above.

    Returns the loguru handler id.
    """
    global _handler_id

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
    if serialize is None:
        serialize = os.getenv("ENV", "development") == "production"

    if _handler_id is not None:
        try:
            logger.remove(_handler_id)
        except ValueError:
            pass

    if serialize:
        _handler_id = logger.add(sink, level=level, format=_json_format, filter=_from_bridge)
    else:
        _handler_id = logger.add(
            sink,
            level=level,
            format=DEVELOPMENT_FORMAT,
            filter=_from_bridge,
        )
    logger.enable(PACKAGE)

    if intercept_stdlib:
        _intercept_transport_loggers()
    return _handler_id


def _intercept_transport_loggers() -> None:
    global _intercept_handler
    if _intercept_handler is None:
        _intercept_handler = InterceptHandler()
    for name in TRANSPORT_LOGGERS:
        library_logger = logging.getLogger(name)
        if _intercept_handler not in library_logger.handlers:
            library_logger.addHandler(_intercept_handler)
        library_logger.setLevel(logging.WARNING)
        library_logger.propagate = False


@contextmanager
def log_context(**kwargs):
    """
    Add identifiers to every record logged inside the block.

    Usage:
        with log_context(document_uri=uri):
            logger.info("didOpen sent")
    """
    with logger.contextualize(**kwargs):
        yield


def setup_logger(name: str):
    """Return the loguru logger bound to ``name``. Does not add any handler."""
    return logger.bind(name=name)

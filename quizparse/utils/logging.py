"""
Logging configuration for the quizparse decoder.

This module sets up logging with a Rich console handler and an optional
structured (JSON lines) file handler, plus context tracking so every
record emitted during one decode call can carry the same fields.
"""

import json
import logging
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

from quizparse.config import get_settings

_RESERVED_ATTRS = frozenset(
    [
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    ]
)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add extra fields if present
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


# Fields attached to every record emitted in the current thread or task.
# Always replaced, never mutated, so nested contexts restore by token.
_log_context: ContextVar[Dict[str, Any]] = ContextVar("quizparse_log_context", default={})


class ContextFilter(logging.Filter):
    """Copy the active ``LogContext`` fields onto each record."""

    @property
    def context(self) -> Dict[str, Any]:
        return dict(_log_context.get())

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            setattr(record, key, value)
        return True


# Global context filter instance
context_filter = ContextFilter()


def _console_handler(dev_mode: bool) -> logging.Handler:
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        rich_tracebacks=True,
        tracebacks_show_locals=dev_mode,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _file_handler(log_file_path: Path, structured: bool) -> logging.Handler:
    handler = logging.FileHandler(log_file_path, encoding="utf-8")
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    return handler


def setup_logging(
    log_level: Optional[str] = None,
    log_file_path: Optional[Path] = None,
    use_structured_logging: bool = True,
) -> None:
    """
    Configure the root logger: Rich output on stderr, optionally a log file.

    Args:
        log_level: Logging level (defaults to settings)
        log_file_path: Path to log file (defaults to settings)
        use_structured_logging: Write JSON lines to the file instead of plain text
    """
    settings = get_settings()
    log_level = log_level or settings.log_level
    log_file_path = log_file_path or settings.get_log_file_path()

    handlers = [_console_handler(settings.dev_mode)]
    if log_file_path:
        handlers.append(_file_handler(log_file_path, use_structured_logging))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(log_level)
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    logging.getLogger(__name__).debug(
        "Logging configured",
        extra={"log_level": log_level, "log_file": str(log_file_path) if log_file_path else None},
    )


def get_logger(name: str) -> logging.Logger:
    """Logger for a quizparse module (pass ``__name__``)."""
    return logging.getLogger(name)


class LogContext:
    """
    Attach fields to every record logged inside the ``with`` block.

    Context is per thread and per asyncio task, so concurrent decode calls
    never see each other's fields.
    """

    def __init__(self, **kwargs: Any) -> None:
        self.context = kwargs
        self._token: Optional[Token] = None

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set({**_log_context.get(), **self.context})
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


def preview(text: Any, limit: Optional[int] = None) -> str:
    """
    Bounded excerpt of model output for diagnostics.

    Args:
        text: Raw value (anything; non-strings are repr'd)
        limit: Maximum characters (defaults to settings.preview_chars)

    Returns:
        At most ``limit`` characters, with an ellipsis when truncated
    """
    limit = limit or get_settings().preview_chars
    if not isinstance(text, str):
        text = repr(text)
    if len(text) <= limit:
        return text
    return text[:limit] + "..."

"""Structured logging for requisition-parser.

Every record gets its ``extra_data`` rendered as ``[key=value, ...]`` after
the message, followed by the document being parsed and the batch it belongs
to when those are set in the current context.
"""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Optional, TextIO

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

document_var: ContextVar[Optional[str]] = ContextVar("document", default=None)
batch_id_var: ContextVar[Optional[str]] = ContextVar("batch_id", default=None)

ExtraData = Optional[dict[str, Any]]


def _with_context(extra_data: ExtraData) -> dict[str, Any]:
    fields = dict(extra_data or {})
    document = document_var.get()
    # Records that already name their file keep it
    if document and "file_name" not in fields:
        fields["document"] = document
    batch_id = batch_id_var.get()
    if batch_id:
        fields["batch_id"] = batch_id
    return fields


class ContextLogger:
    """Logger wrapper that appends key=value data and parsing context to messages."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @staticmethod
    def render(msg: str, fields: dict[str, Any]) -> str:
        if not fields:
            return msg
        return f"{msg} [" + ", ".join(f"{key}={value}" for key, value in fields.items()) + "]"

    def _log(self, level: int, msg: str, extra_data: ExtraData = None, **kwargs):
        if self.logger.isEnabledFor(level):
            self.logger.log(level, self.render(msg, _with_context(extra_data)), **kwargs)

    def debug(self, msg: str, extra_data: ExtraData = None, **kwargs):
        """Log a debug message with extra data."""
        self._log(logging.DEBUG, msg, extra_data, **kwargs)

    def info(self, msg: str, extra_data: ExtraData = None, **kwargs):
        """Log an info message with extra data."""
        self._log(logging.INFO, msg, extra_data, **kwargs)

    def warning(self, msg: str, extra_data: ExtraData = None, **kwargs):
        """Log a warning message with extra data."""
        self._log(logging.WARNING, msg, extra_data, **kwargs)

    def error(self, msg: str, extra_data: ExtraData = None, **kwargs):
        """Log an error message with extra data."""
        self._log(logging.ERROR, msg, extra_data, **kwargs)


def setup_logging(log_level: str = "INFO", stream: Optional[TextIO] = None):
    """Send all records to a single plain-text handler.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        stream: Output stream, stdout by default
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)


def get_logger(name: str) -> ContextLogger:
    return ContextLogger(logging.getLogger(name))


def set_document(file_name: Optional[str]) -> None:
    """Tag subsequent records with the document being parsed."""
    document_var.set(file_name)


def start_batch(batch_id: Optional[str] = None) -> str:
    """Tag subsequent records with a batch id, generating a short one if needed."""
    if batch_id is None:
        batch_id = uuid.uuid4().hex[:12]
    batch_id_var.set(batch_id)
    return batch_id


class Timer:
    """Measures a block in milliseconds; readable while still running."""

    def __init__(self, name: str):
        self.name = name
        self.started: Optional[float] = None
        self.elapsed_ms: Optional[int] = None

    def _since_start(self) -> int:
        return int((time.monotonic() - self.started) * 1000)

    def __enter__(self) -> "Timer":
        self.started = time.monotonic()
        return self

    def __exit__(self, *exc_info):
        if self.started is not None:
            self.elapsed_ms = self._since_start()

    def get_elapsed_ms(self) -> int:
        if self.elapsed_ms is not None:
            return self.elapsed_ms
        return self._since_start() if self.started is not None else 0

"""
Structured JSON logging for the ledger.

Every record under the ``ledger_kernel`` logger is written as one JSON
object per line.  Request-scoped fields (correlation id, operation, the
acting profile, the job being paid) are bound once by the operations facade
and stamped onto every record emitted while the binding is active, so a
``job_payment_completed`` line from the kernel and the facade's
``operation_completed`` line can be joined on ``correlation_id``.

Ledger errors logged with ``exc_info`` contribute their ``code`` and
``kind`` as ``error_code`` / ``error_kind``.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

CONTEXT_FIELDS = ("correlation_id", "operation", "profile_id", "job_id")

_LOGGER_PREFIX = "ledger_kernel"

_context: ContextVar[dict[str, str]] = ContextVar("ledger_log_context", default={})


class LogContext:
    """Request-scoped log fields, isolated per thread and per task."""

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[None]:
        """
        Add fields for the duration of a ``with`` block.

        None values are skipped, so optional identifiers can be passed
        through unconditionally.  Unknown field names raise ValueError.
        """
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise ValueError(f"unknown log context fields: {sorted(unknown)}")
        merged = {**_context.get(), **{k: v for k, v in fields.items() if v is not None}}
        token = _context.set(merged)
        try:
            yield
        finally:
            _context.reset(token)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    return repr(value)


# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "taskName"}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, message, context, extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in payload
        )

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            code = getattr(exc, "code", None)
            if isinstance(code, str):
                payload["error_code"] = code
                payload["error_kind"] = getattr(exc, "kind", None)
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger named ``ledger_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``ledger_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``.  ``level``
    accepts a number or a level name such as ``"INFO"`` (the form used by
    ``LoggingConfig.level``).
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(level)
    root.propagate = False
    out = handler or logging.StreamHandler(sys.stderr)
    out.setFormatter(StructuredFormatter())
    root.addHandler(out)


def reset_logging() -> None:
    """Undo configure_logging(); used between tests."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_LOGGER_PREFIX)
    root.handlers.clear()
    root.setLevel(logging.NOTSET)
    root.propagate = True

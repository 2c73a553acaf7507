"""
Structured JSON logging for the service credit ledger.

Every record emitted under the ``credit_ledger`` logger is rendered as one
JSON line.  Request-scoped fields travel in a single context variable, so
the facade binds correlation id, actor, employee and operation once per
unit of work and every service log line inside it carries them.

Ledger exceptions attached with ``exc_info`` contribute their structured
attributes under an ``exc_`` prefix (``exc_code``, ``exc_available``,
``exc_invariant`` ...).
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
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from credit_ledger.exceptions import ServiceCreditError

_LOGGER_PREFIX = "credit_ledger"

CONTEXT_FIELDS = ("correlation_id", "actor_id", "employee_id", "operation")

_context: ContextVar[Mapping[str, str]] = ContextVar(
    "credit_ledger_log_context", default={}
)


class LogContext:
    """Request-scoped log fields, safe across threads and tasks."""

    @staticmethod
    def _checked(fields: Mapping[str, str | None]) -> dict[str, str]:
        unknown = sorted(set(fields) - set(CONTEXT_FIELDS))
        if unknown:
            raise TypeError(f"Unknown log context field(s): {', '.join(unknown)}")
        return {k: v for k, v in fields.items() if v is not None}

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Merge fields into the current context; None values are ignored."""
        _context.set({**_context.get(), **cls._checked(fields)})

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """Overlay fields for the duration of the block."""
        token = _context.set({**_context.get(), **cls._checked(fields)})
        try:
            yield cls
        finally:
            _context.reset(token)


# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    if isinstance(exc, ServiceCreditError):
        fields["exc_code"] = exc.code
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: core fields, context, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }
        for name, value in vars(record).items():
            if name not in _RECORD_ATTRS:
                entry.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            entry.update(_exception_fields(record.exc_info[1]))
            entry["traceback"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger under the credit_ledger namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_lock = threading.Lock()
_MARKER = "_credit_ledger_installed"


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Install the JSON handler on the credit_ledger logger.

    Idempotent: once a handler has been installed, later calls are no-ops
    until reset_logging().
    """
    ledger_logger = logging.getLogger(_LOGGER_PREFIX)
    with _lock:
        if any(getattr(h, _MARKER, False) for h in ledger_logger.handlers):
            return
        installed = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        installed.setFormatter(StructuredFormatter())
        setattr(installed, _MARKER, True)
        ledger_logger.setLevel(level)
        ledger_logger.propagate = False
        ledger_logger.addHandler(installed)


def reset_logging() -> None:
    """Drop every handler from the credit_ledger logger. For tests."""
    ledger_logger = logging.getLogger(_LOGGER_PREFIX)
    with _lock:
        for h in list(ledger_logger.handlers):
            ledger_logger.removeHandler(h)
        ledger_logger.setLevel(logging.WARNING)
        ledger_logger.propagate = True

"""
Structured JSON logging for the gym kernel.

Every record under the ``gym_kernel`` logger is rendered as one JSON line:
timestamp, level, logger, message, the fields bound in ``LogContext`` and
whatever the call site passed through ``extra=``.

Context fields:
    correlation_id  request or batch the work belongs to
    actor_id        who triggered it
    operation       unit-of-work label (bound by the coordinator)
    root_id         root entity of a cascade
"""

__all__ = [
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
from collections.abc import Mapping
from contextvars import ContextVar, Token
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

LOGGER_NAMESPACE = "gym_kernel"

_CONTEXT_FIELDS = ("correlation_id", "actor_id", "operation", "root_id")

_context: ContextVar[Mapping[str, str]] = ContextVar("gym_kernel_log_context", default={})


class LogContext:
    """Operation-scoped log fields, isolated per thread and per task."""

    @staticmethod
    def _merged(fields: dict[str, Any]) -> dict[str, str]:
        unknown = set(fields) - set(_CONTEXT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown log context field(s): {sorted(unknown)}")
        merged = dict(_context.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        return merged

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set fields for the rest of the current context. None leaves a field as is."""
        _context.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    def bind(cls, **fields: Any) -> "_BoundContext":
        """
        Set fields inside a ``with`` block and restore the previous values
        on exit::

            with LogContext.bind(operation="create_contract"):
                ...
        """
        return _BoundContext(cls._merged(fields))


class _BoundContext:
    def __init__(self, values: dict[str, str]):
        self._values = values
        self._token: Token | None = None

    def __enter__(self) -> type[LogContext]:
        self._token = _context.set(self._values)
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        if self._token is not None:
            _context.reset(self._token)
            self._token = None


# Attributes every LogRecord carries; anything else came in through extra=.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in entry
        )

        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            entry["exc_type"] = type(error).__name__
            entry["exc_message"] = str(error)
            code = getattr(error, "code", None)
            if code is not None:
                entry["exc_code"] = code
            # typed kernel errors carry their context as public attributes
            entry.update(
                (f"exc_{name}", value)
                for name, value in vars(error).items()
                if not name.startswith("_")
            )
            entry["traceback"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=_to_json)


def get_logger(name: str) -> logging.Logger:
    """Logger ``gym_kernel.<name>``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``gym_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``.  Records do
    not propagate to the root logger, so host applications keep their own
    formatting.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    target = handler or logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())

    kernel_logger = logging.getLogger(LOGGER_NAMESPACE)
    kernel_logger.setLevel(level.upper() if isinstance(level, str) else level)
    kernel_logger.propagate = False
    kernel_logger.addHandler(target)


def reset_logging() -> None:
    """Drop handlers and allow ``configure_logging`` to run again (tests)."""
    global _configured
    with _lock:
        _configured = False
    kernel_logger = logging.getLogger(LOGGER_NAMESPACE)
    kernel_logger.handlers.clear()
    kernel_logger.setLevel(logging.WARNING)

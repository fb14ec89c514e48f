"""
Structured JSON logging for the warehouse kernel.

Every kernel module logs through ``get_logger(__name__-ish)`` under the
``warehouse_kernel`` namespace.  Records are rendered one JSON object per
line: a fixed envelope (``ts``, ``level``, ``logger``, ``message``), the
request-scoped fields held in ``LogContext``, any ``extra=`` fields, and for
exceptions the type, message, traceback and, for kernel errors, the
machine ``code`` plus the error's structured details as ``exc_*`` keys.

The host application calls ``configure_logging()`` once (or goes through
``warehouse_config.bridges.init_logging``).
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
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping
from uuid import UUID


# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_EMPTY: Mapping[str, str] = MappingProxyType({})

_context: ContextVar[Mapping[str, str]] = ContextVar("warehouse_log_context", default=_EMPTY)


class LogContext:
    """
    Request-scoped fields merged into every record.

    Backed by one ContextVar holding an immutable mapping, so each thread
    and each asyncio task sees its own values.  Only the names in
    ``FIELDS`` are carried.
    """

    FIELDS = ("correlation_id", "actor_id", "item_id", "po_id", "trace_id")

    @classmethod
    def _merged(cls, fields: Mapping[str, Any]) -> Mapping[str, str]:
        current = dict(_context.get())
        for name, value in fields.items():
            if name in cls.FIELDS and value is not None:
                current[name] = str(value)
        return MappingProxyType(current)

    @classmethod
    def set(
        cls,
        *,
        correlation_id: str | None = None,
        actor_id: str | None = None,
        item_id: str | None = None,
        po_id: str | None = None,
        trace_id: str | None = None,
    ) -> None:
        """Set fields for the rest of the current context; None leaves a field as is."""
        _context.set(
            cls._merged(
                {
                    "correlation_id": correlation_id,
                    "actor_id": actor_id,
                    "item_id": item_id,
                    "po_id": po_id,
                    "trace_id": trace_id,
                }
            )
        )

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set(_EMPTY)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """
        Set fields for the duration of a ``with`` block.

        Values are stringified; unknown names and None values are ignored.
        The previous context is restored on exit, including on error.
        """
        token = _context.set(cls._merged(fields))
        try:
            yield cls
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else came in via ``extra=``
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _to_json(obj: Any) -> Any:
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # WarehouseKernelError keeps its context as public attributes
    for key, value in vars(exc).items():
        if not key.startswith("_") and key != "code":
            fields[f"exc_{key}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_context.get())

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Logger factory and initialization
# ---------------------------------------------------------------------------

_ROOT = "warehouse_kernel"

_configured = False
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """``get_logger("services.scan_in")`` -> ``warehouse_kernel.services.scan_in``."""
    return logging.getLogger(f"{_ROOT}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``warehouse_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``.  ``level``
    may be a number or a level name ("DEBUG").  Records do not propagate to
    the root logger.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())

    root = logging.getLogger(_ROOT)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    root.propagate = False
    root.addHandler(handler)


def reset_logging() -> None:
    """Drop handlers and allow ``configure_logging`` again.  For tests."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_ROOT)
    root.handlers.clear()
    root.setLevel(logging.WARNING)

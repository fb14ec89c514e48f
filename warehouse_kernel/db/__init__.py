"""Database layer - engine, base classes and column types."""

from warehouse_kernel.db.base import UUID, Base, TrackedBase, UTCDateTime, UUIDString
from warehouse_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    run_in_transaction,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "run_in_transaction",
    "session_scope",
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "UUIDString",
    "UUID",
]

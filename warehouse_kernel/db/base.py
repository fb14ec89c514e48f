"""
Declarative base and shared column types for every warehouse table.

Nothing under ``db/`` imports models, services or selectors; all of them
import from here.

- Every row gets a uuid4 primary key, stored as a 36-character string so
  SQLite and PostgreSQL share one schema.
- Datetimes go in and come out as aware UTC.  SQLite drops offsets, so
  ``UTCDateTime`` strips the zone on write and reattaches UTC on read;
  writing a naive value is a ValueError.  Reporting windows compare these
  values directly.
- ``TrackedBase`` adds who/when columns to the mutable entities
  (customers, parts, purchase orders, items).
"""

from datetime import UTC, datetime
from typing import Any, ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import JSON, BigInteger, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """uuid.UUID <-> "550e8400-e29b-41d4-a716-446655440000"."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(value)


class UTCDateTime(TypeDecorator):
    """Aware datetimes only; always read back in UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime not allowed: {value!r}")
        value = value.astimezone(UTC)
        if dialect.name == "sqlite":
            # SQLite compares datetimes as text; keep a single offset-free form
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class Base(DeclarativeBase):
    """
    Root of every mapped class.

    Plain annotations resolve through ``type_annotation_map``: ``datetime``
    columns become UTCDateTime, ``UUID`` becomes UUIDString, ``int`` becomes
    BigInteger and ``dict[str, Any]`` becomes JSON.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        PyUUID: UUIDString(),
        int: BigInteger,
        dict[str, Any]: JSON,
    }

    id: Mapped[PyUUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Adds created/updated timestamps (server-side NOW()) and the acting
    user's id.  ``updated_by_id`` stays NULL until the first edit.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), onupdate=func.now(), nullable=False
    )
    created_by_id: Mapped[PyUUID] = mapped_column(UUIDString(), nullable=False)
    updated_by_id: Mapped[PyUUID | None] = mapped_column(UUIDString(), nullable=True)


UUID = PyUUID

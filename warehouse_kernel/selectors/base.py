"""
Module: warehouse_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
    Selectors are the query side of the kernel: inventory listings,
    delete-request queues and dashboard reporting.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and the value types in domain/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller but never
      call session.add(), session.delete(), session.commit() or
      session.flush().
    - DTO return convention: selectors return frozen dataclasses, not ORM
      instances.
    - Session ownership: the caller owns the session and its transaction.

Failure modes:
    - Lookups by id return None on absence rather than raising.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from warehouse_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs or computed results.
    """

    def __init__(self, session: Session):
        self.session = session

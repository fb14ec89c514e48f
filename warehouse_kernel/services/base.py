"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session-handling contract for every write-side
    service.  Services receive a SQLAlchemy ``Session`` and use
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell.  Every service in
    ``warehouse_kernel/services/`` that performs writes extends this class.

Invariants enforced:
    Transaction boundaries belong to the caller (``session_scope`` or
    ``run_in_transaction``).  Scan-In's item insert, PO increment and
    part-cache update therefore commit or roll back together.

Failure modes:
    - A subclass that commits on its own breaks that all-or-nothing
      guarantee: a failed PO increment could leave an item behind.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from warehouse_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``; savepoints it opens are released or rolled
          back before it returns.

    Non-goals:
        - Read-only queries belong in ``warehouse_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session

"""
Module: warehouse_kernel.models.customer
Responsibility: ORM persistence for customers -- the owners of parts and
    purchase orders.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    Only ACTIVE customers may receive new POs or scanned items.  The check is
    made by PurchaseOrderService and ScanInService; this model is the data
    source for it (``can_transact``).

Failure modes:
    - Guard rejection (InactiveCustomerError) upstream when can_transact is
      False.
"""

from enum import Enum
from typing import Any

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from warehouse_kernel.db.base import TrackedBase


class CustomerStatus(str, Enum):
    """Customer lifecycle status.

    PENDING_DELETE and DELETED are driven by a request/approval workflow
    outside the kernel; both block new business.
    """

    ACTIVE = "active"
    PENDING_DELETE = "pending_delete"
    DELETED = "deleted"


class Customer(TrackedBase):
    """A customer that owns parts and places purchase orders."""

    __tablename__ = "customers"

    __table_args__ = (
        Index("idx_customer_name", "name"),
        Index("idx_customer_status", "status"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Free-form contact details (email, phone, person)
    contact_info: Mapped[dict[str, Any] | None] = mapped_column(nullable=True)

    status: Mapped[CustomerStatus] = mapped_column(
        String(20),
        nullable=False,
        default=CustomerStatus.ACTIVE.value,
    )

    @property
    def can_transact(self) -> bool:
        return CustomerStatus(self.status) == CustomerStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Customer {self.name} ({self.status})>"

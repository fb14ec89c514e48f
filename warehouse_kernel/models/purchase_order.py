"""
Module: warehouse_kernel.models.purchase_order
Responsibility: ORM persistence for purchase orders and their delivery
    ledger (total vs delivered quantity).
Architecture position: Kernel > Models.  May import from db/ and the pure
    status rules in domain/po_rules.py.

Invariants enforced:
    - po_number is unique (uq_po_number).
    - total_quantity > 0 and delivered_quantity >= 0 (CHECK constraints).
    - status is derived from the quantities by recompute_status except for
      the manual CANCELLED override.  delivered_quantity is changed ONLY by
      PurchaseOrderLedger.apply_delivery, as a single conditional UPDATE.

Failure modes:
    - IntegrityError on duplicate po_number or on a CHECK violation.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warehouse_kernel.db.base import TrackedBase, UUIDString
from warehouse_kernel.domain.po_rules import PurchaseOrderStatus, remaining_quantity

if TYPE_CHECKING:
    from warehouse_kernel.models.customer import Customer
    from warehouse_kernel.models.part import Part


class PurchaseOrder(TrackedBase):
    """A customer's order for a quantity of one part."""

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("po_number", name="uq_po_number"),
        CheckConstraint("total_quantity > 0", name="ck_po_total_positive"),
        CheckConstraint("delivered_quantity >= 0", name="ck_po_delivered_nonneg"),
        Index("idx_po_customer_status", "customer_id", "status"),
        Index("idx_po_part_status", "part_id", "status"),
    )

    po_number: Mapped[str] = mapped_column(String(50), nullable=False)

    part_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("parts.id"),
        nullable=False,
    )

    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("customers.id"),
        nullable=False,
    )

    total_quantity: Mapped[int] = mapped_column(nullable=False)

    delivered_quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    status: Mapped[PurchaseOrderStatus] = mapped_column(
        String(20),
        nullable=False,
        default=PurchaseOrderStatus.OPEN.value,
    )

    delivery_date: Mapped[datetime | None] = mapped_column(nullable=True)

    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    part: Mapped["Part"] = relationship()
    customer: Mapped["Customer"] = relationship()

    @property
    def remaining_quantity(self) -> int:
        return remaining_quantity(self.total_quantity, self.delivered_quantity)

    @property
    def is_cancelled(self) -> bool:
        return PurchaseOrderStatus(self.status) == PurchaseOrderStatus.CANCELLED

    def __repr__(self) -> str:
        return (
            f"<PurchaseOrder {self.po_number} "
            f"{self.delivered_quantity}/{self.total_quantity} {self.status}>"
        )

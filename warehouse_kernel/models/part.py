"""
Module: warehouse_kernel.models.part
Responsibility: ORM persistence for parts owned by a customer, including the
    supplier identifiers that feed the item unique id.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - internal_part_no is globally unique (uq_part_internal_no).
    - po_number is a read-through CACHE of the most recently created PO that
      references this part.  The authoritative link is
      PurchaseOrder.part_id.  PurchaseOrderService rewrites the cache in the
      same transaction as every PO create/update/delete, and
      ``resync_part_po_numbers`` rebuilds it from the authoritative link.

Failure modes:
    - IntegrityError on duplicate internal_part_no.
"""

from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warehouse_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from warehouse_kernel.models.customer import Customer


class Part(TrackedBase):
    """A part a customer orders and the warehouse stocks."""

    __tablename__ = "parts"

    __table_args__ = (
        UniqueConstraint("internal_part_no", name="uq_part_internal_no"),
        Index("idx_part_customer", "customer_id", "internal_part_no"),
        Index("idx_part_supplier", "supplier_id"),
    )

    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("customers.id"),
        nullable=False,
    )

    internal_part_no: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # Supplier identity used by the unique-id format
    supplier_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    supplier_part_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    specifications: Mapped[dict[str, Any] | None] = mapped_column(nullable=True)

    # Cache of the latest PO number; see module docstring
    po_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    customer: Mapped["Customer"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<Part {self.internal_part_no}: {self.name}>"

"""
Module: warehouse_kernel.models.inventory_item
Responsibility: ORM persistence for inventory items and their status
    history.
Architecture position: Kernel > Models.  May import from db/ and the pure
    lifecycle enum in domain/lifecycle.py.

Invariants enforced:
    - unique_id is globally unique (uq_item_unique_id) and never updated.
    - barcode is unique when present (uq_item_barcode).
    - status changes ONLY through ItemLifecycleService, as a compare-and-swap
      UPDATE, and every change appends exactly one ItemHistoryEntry.
    - (item_id, sequence) is unique, so two writers can never both append
      the "next" history entry.
    - History rows are removed with their item (ON DELETE CASCADE); the item
      row itself is removed only by an approved delete request.

Failure modes:
    - IntegrityError on unique_id/barcode collision (handled by
      ScanInService with a savepoint and a fresh identifier).
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warehouse_kernel.db.base import Base, TrackedBase, UUIDString
from warehouse_kernel.domain.lifecycle import ItemStatus

if TYPE_CHECKING:
    from warehouse_kernel.models.customer import Customer
    from warehouse_kernel.models.part import Part
    from warehouse_kernel.models.purchase_order import PurchaseOrder


class InventoryItem(TrackedBase):
    """One received lot of a part, tracked from Scan-In to Scan-Out."""

    __tablename__ = "inventory_items"

    __table_args__ = (
        UniqueConstraint("unique_id", name="uq_item_unique_id"),
        UniqueConstraint("barcode", name="uq_item_barcode"),
        Index("idx_item_part_status", "part_id", "status"),
        Index("idx_item_po_status", "po_id", "status"),
        Index("idx_item_status_created", "status", "created_at"),
        Index("idx_item_lot", "lot_id"),
    )

    unique_id: Mapped[str] = mapped_column(String(120), nullable=False)

    part_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("parts.id"),
        nullable=False,
    )

    po_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("purchase_orders.id"),
        nullable=False,
    )

    # Derived from the part at Scan-In
    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("customers.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(nullable=False)

    status: Mapped[ItemStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ItemStatus.IN.value,
    )

    lot_id: Mapped[str] = mapped_column(String(50), nullable=False)
    gate_id: Mapped[str | None] = mapped_column(String(50), nullable=True)

    qr_code_data: Mapped[str] = mapped_column(Text, nullable=False)
    qr_code_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    barcode: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Number of labels requested; never multiplies quantity
    copies: Mapped[int] = mapped_column(nullable=False, default=1)

    location: Mapped[dict[str, Any] | None] = mapped_column(nullable=True)

    created_by_username: Mapped[str] = mapped_column(String(100), nullable=False)

    # Pending delete request (set on IN -> PENDING_DELETE, cleared on reject)
    delete_requested_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    delete_requested_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    delete_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    delete_requested_at: Mapped[datetime | None] = mapped_column(nullable=True)

    part: Mapped["Part"] = relationship()
    customer: Mapped["Customer"] = relationship()
    purchase_order: Mapped["PurchaseOrder"] = relationship()

    history: Mapped[list["ItemHistoryEntry"]] = relationship(
        back_populates="item",
        order_by="ItemHistoryEntry.sequence",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def has_delete_request(self) -> bool:
        return self.delete_requested_at is not None

    def __repr__(self) -> str:
        return f"<InventoryItem {self.unique_id} {self.status}>"


class ItemHistoryEntry(Base):
    """
    One status change of an inventory item.

    The history table is the sole source for time-windowed reporting.
    """

    __tablename__ = "inventory_item_history"

    __table_args__ = (
        UniqueConstraint("item_id", "sequence", name="uq_item_history_seq"),
        Index("idx_item_history_ts_status", "timestamp", "status"),
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_items.id", ondelete="CASCADE"),
        nullable=False,
    )

    sequence: Mapped[int] = mapped_column(nullable=False)

    status: Mapped[ItemStatus] = mapped_column(String(20), nullable=False)

    timestamp: Mapped[datetime] = mapped_column(nullable=False)

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    item: Mapped["InventoryItem"] = relationship(back_populates="history")

    def __repr__(self) -> str:
        return f"<ItemHistoryEntry #{self.sequence} {self.status} @ {self.timestamp}>"

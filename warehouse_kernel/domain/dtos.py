"""
DTOs -- immutable values crossing the kernel boundary.

Responsibility:
    Inputs to the orchestrators (ActingUser, ScanInRequest), their results
    (ScanInResult, ScanOutResult, ScanOutPreview, LifecycleResult, ...), the
    display summaries callers render, and the AuditEntryRequest every
    mutating operation yields for the caller to persist.

Architecture position:
    Kernel > Domain.  ``from_model()`` class methods are boundary converters
    invoked only from services/ and selectors/ -- domain logic never touches
    ORM entities.

Invariants enforced:
    - Results never expose ORM instances; callers cannot lazy-load or
      mutate through them after the session closes.
    - Every mutating result carries at least one AuditEntryRequest.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from warehouse_kernel.domain.lifecycle import ItemStatus
from warehouse_kernel.domain.po_rules import PurchaseOrderStatus

if TYPE_CHECKING:
    from warehouse_kernel.models.inventory_item import (
        InventoryItem as InventoryItemModel,
    )
    from warehouse_kernel.models.inventory_item import (
        ItemHistoryEntry as ItemHistoryEntryModel,
    )
    from warehouse_kernel.models.purchase_order import (
        PurchaseOrder as PurchaseOrderModel,
    )


# ---------------------------------------------------------------------------
# Actors and audit
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ActingUser:
    """The authenticated staff member on whose behalf the kernel acts."""

    user_id: UUID
    username: str
    role: str = "staff"


class AuditAction(str, Enum):
    SCAN_IN = "SCAN_IN"
    SCAN_OUT = "SCAN_OUT"
    DELETE_REQUEST = "DELETE_REQUEST"
    DELETE_APPROVE = "DELETE_APPROVE"
    DELETE_REJECT = "DELETE_REJECT"
    MARK_DAMAGED = "MARK_DAMAGED"
    PO_CREATE = "PO_CREATE"
    PO_UPDATE = "PO_UPDATE"
    PO_CANCEL = "PO_CANCEL"
    PO_DELETE = "PO_DELETE"


@dataclass(frozen=True)
class AuditEntryRequest:
    """
    An audit-log row the caller is responsible for persisting.

    The kernel only produces these; it never writes or reads the audit log.
    """

    user_id: UUID
    username: str
    action: AuditAction
    details: str
    resource_type: str
    resource_id: str

    @classmethod
    def for_user(
        cls,
        user: ActingUser,
        action: AuditAction,
        details: str,
        resource_type: str,
        resource_id: Any,
    ) -> AuditEntryRequest:
        return cls(
            user_id=user.user_id,
            username=user.username,
            action=action,
            details=details,
            resource_type=resource_type,
            resource_id=str(resource_id),
        )


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScanInRequest:
    """
    Raw Scan-In input as parsed by the surrounding layer.

    ``quantity`` is validated by the orchestrator (after the part/PO checks),
    so it is typed loosely here.
    """

    part_id: UUID
    po_id: UUID
    quantity: Any
    lot_id: str
    gate_id: str | None = None
    copies: int = 1
    location: dict[str, Any] | None = None
    notes: str | None = None


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HistoryEntryInfo:
    sequence: int
    status: ItemStatus
    timestamp: datetime
    user_id: UUID
    notes: str | None

    @classmethod
    def from_model(cls, model: ItemHistoryEntryModel) -> HistoryEntryInfo:
        return cls(
            sequence=model.sequence,
            status=ItemStatus(model.status),
            timestamp=model.timestamp,
            user_id=model.user_id,
            notes=model.notes,
        )


@dataclass(frozen=True)
class DeleteRequestInfo:
    requested_by_id: UUID | None
    requested_by: str | None
    reason: str | None
    requested_at: datetime


@dataclass(frozen=True)
class PurchaseOrderInfo:
    id: UUID
    po_number: str
    part_id: UUID
    customer_id: UUID
    total_quantity: int
    delivered_quantity: int
    remaining_quantity: int
    status: PurchaseOrderStatus
    delivery_date: datetime | None = None
    notes: str | None = None

    @classmethod
    def from_model(cls, model: PurchaseOrderModel) -> PurchaseOrderInfo:
        return cls(
            id=model.id,
            po_number=model.po_number,
            part_id=model.part_id,
            customer_id=model.customer_id,
            total_quantity=model.total_quantity,
            delivered_quantity=model.delivered_quantity,
            remaining_quantity=model.remaining_quantity,
            status=PurchaseOrderStatus(model.status),
            delivery_date=model.delivery_date,
            notes=model.notes,
        )


@dataclass(frozen=True)
class ItemInfo:
    """An inventory item with resolved part, customer and PO names."""

    id: UUID
    unique_id: str
    status: ItemStatus
    quantity: int
    lot_id: str
    gate_id: str | None
    barcode: str | None
    qr_code_data: str
    qr_code_image: str | None
    copies: int
    part_id: UUID
    part_name: str
    internal_part_no: str
    customer_id: UUID
    customer_name: str
    po_id: UUID
    po_number: str
    created_by: str
    created_at: datetime | None
    location: dict[str, Any] | None = None
    delete_request: DeleteRequestInfo | None = None
    history: tuple[HistoryEntryInfo, ...] = field(default_factory=tuple)

    @classmethod
    def from_model(cls, model: InventoryItemModel) -> ItemInfo:
        delete_request = None
        if model.delete_requested_at is not None:
            delete_request = DeleteRequestInfo(
                requested_by_id=model.delete_requested_by_id,
                requested_by=model.delete_requested_by,
                reason=model.delete_reason,
                requested_at=model.delete_requested_at,
            )
        return cls(
            id=model.id,
            unique_id=model.unique_id,
            status=ItemStatus(model.status),
            quantity=model.quantity,
            lot_id=model.lot_id,
            gate_id=model.gate_id,
            barcode=model.barcode,
            qr_code_data=model.qr_code_data,
            qr_code_image=model.qr_code_image,
            copies=model.copies,
            part_id=model.part_id,
            part_name=model.part.name,
            internal_part_no=model.part.internal_part_no,
            customer_id=model.customer_id,
            customer_name=model.customer.name,
            po_id=model.po_id,
            po_number=model.purchase_order.po_number,
            created_by=model.created_by_username,
            created_at=model.created_at,
            location=dict(model.location) if model.location else None,
            delete_request=delete_request,
            history=tuple(HistoryEntryInfo.from_model(h) for h in model.history),
        )

    @property
    def history_statuses(self) -> tuple[ItemStatus, ...]:
        return tuple(h.status for h in self.history)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GeneratedIdentifiers:
    unique_id: str
    barcode: str
    qr_payload: str


@dataclass(frozen=True)
class ScanInResult:
    item: ItemInfo
    purchase_order: PurchaseOrderInfo
    audit: AuditEntryRequest


@dataclass(frozen=True)
class ScanOutResult:
    item: ItemInfo
    audit: AuditEntryRequest


@dataclass(frozen=True)
class ScanOutPreview:
    """Read-only Scan-Out check; ``can_scan_out`` iff status is IN."""

    item: ItemInfo
    can_scan_out: bool
    blocking_reason: str | None = None


@dataclass(frozen=True)
class LifecycleResult:
    """Outcome of a delete/damage transition.  ``item`` is None once removed."""

    item_id: UUID
    unique_id: str
    status: ItemStatus | None
    item: ItemInfo | None
    audit: AuditEntryRequest


@dataclass(frozen=True)
class BulkFailure:
    item_id: UUID
    code: str
    message: str


@dataclass(frozen=True)
class BulkDamageResult:
    succeeded: tuple[LifecycleResult, ...]
    failed: tuple[BulkFailure, ...]

    @property
    def audits(self) -> tuple[AuditEntryRequest, ...]:
        return tuple(r.audit for r in self.succeeded)


@dataclass(frozen=True)
class PurchaseOrderResult:
    purchase_order: PurchaseOrderInfo
    audit: AuditEntryRequest


@dataclass(frozen=True)
class PoNumberDrift:
    """A Part.po_number cache entry that disagrees with the PO table."""

    part_id: UUID
    internal_part_no: str
    cached: str | None
    expected: str | None

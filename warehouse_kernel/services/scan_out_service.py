"""
ScanOutService -- removes stock from warehouse tracking by scan code.

Responsibility:
    Resolves a scanned code to exactly one inventory item and moves it
    IN -> OUT through ItemLifecycleService.  Also offers a read-only
    preview so the counter UI can warn before committing.

Architecture position:
    Kernel > Services -- orchestrator.

Invariants enforced:
    - PO delivered_quantity is never touched: delivered tracks intake, not
      outflow.
    - Scanning the same code twice succeeds exactly once; the second call
      fails the compare-and-swap and raises InvalidScanOutStateError.
    - ``preview`` performs no writes.

Failure modes:
    - InvalidFieldError: empty scan code.
    - ItemNotFoundError: nothing matches the code.
    - InvalidScanOutStateError: the item is OUT, PENDING_DELETE or DAMAGED.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from warehouse_kernel.domain.clock import Clock
from warehouse_kernel.domain.dtos import (
    ActingUser,
    AuditAction,
    AuditEntryRequest,
    ItemInfo,
    ScanOutPreview,
    ScanOutResult,
)
from warehouse_kernel.domain.identifiers import parse_scan_code
from warehouse_kernel.domain.lifecycle import ItemEvent, ItemStatus, check_transition
from warehouse_kernel.exceptions import (
    InvalidFieldError,
    InvalidScanOutStateError,
    ItemNotFoundError,
)
from warehouse_kernel.logging_config import LogContext, get_logger
from warehouse_kernel.models.inventory_item import InventoryItem
from warehouse_kernel.services.base import BaseService
from warehouse_kernel.services.item_lifecycle import ItemLifecycleService

logger = get_logger("services.scan_out")


class ScanOutService(BaseService[InventoryItem]):
    """
    Contract:
        ``scan_out(code, user)`` returns the item as OUT with resolved part,
        customer and PO names, plus the audit entry request.
    """

    def __init__(self, session: Session, clock: Clock):
        super().__init__(session)
        self._lifecycle = ItemLifecycleService(session, clock)

    def _find_by(self, column, value: str) -> InventoryItem | None:
        return self.session.execute(
            select(InventoryItem).where(column == value)
        ).scalars().first()

    def resolve(self, scan_code: str) -> InventoryItem:
        """
        Find the item a scan refers to.

        A QR payload resolves by its ``uniqueId``; a raw value is tried as
        unique id, then barcode, then stored QR payload.
        """
        lookup = parse_scan_code(scan_code)
        if not lookup.raw:
            raise InvalidFieldError("scan_code", "must not be empty")

        if lookup.is_payload:
            item = self._find_by(InventoryItem.unique_id, lookup.unique_id)
        else:
            item = (
                self._find_by(InventoryItem.unique_id, lookup.raw)
                or self._find_by(InventoryItem.barcode, lookup.raw)
                or self._find_by(InventoryItem.qr_code_data, lookup.raw)
            )
        if item is None:
            logger.info("scan_code_unresolved", extra={"scan_code": lookup.raw[:120]})
            raise ItemNotFoundError(lookup.raw)
        return item

    def preview(self, scan_code: str) -> ScanOutPreview:
        """Current item summary and whether Scan-Out would succeed now."""
        item = self.resolve(scan_code)
        status = ItemStatus(item.status)
        allowed = check_transition(ItemEvent.SCAN_OUT, status) is not None
        reason = None
        if not allowed:
            reason = str(InvalidScanOutStateError(item.unique_id, status.value))
        return ScanOutPreview(
            item=ItemInfo.from_model(item),
            can_scan_out=allowed,
            blocking_reason=reason,
        )

    def scan_out(
        self,
        scan_code: str,
        user: ActingUser,
        notes: str | None = None,
    ) -> ScanOutResult:
        item = self.resolve(scan_code)
        with LogContext.bind(actor_id=str(user.user_id), item_id=str(item.id)):
            item = self._lifecycle.scan_out(item.id, user, notes)
            logger.info(
                "scan_out_completed",
                extra={"unique_id": item.unique_id, "quantity": item.quantity},
            )
            info = ItemInfo.from_model(item)
            return ScanOutResult(
                item=info,
                audit=AuditEntryRequest.for_user(
                    user,
                    AuditAction.SCAN_OUT,
                    f"Item '{info.unique_id}' scanned OUT - Part: {info.part_name}, "
                    f"Customer: {info.customer_name}, Qty: {info.quantity}, "
                    f"PO: {info.po_number}",
                    "InventoryItem",
                    info.id,
                ),
            )

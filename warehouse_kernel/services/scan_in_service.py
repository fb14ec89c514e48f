"""
ScanInService -- registers received stock against a purchase order.

Responsibility:
    Validates the part / PO / customer linkage, creates one IN inventory
    item with fresh identifiers, credits the PO through the ledger, refreshes
    the part's PO-number cache and records the initial history entry.

Architecture position:
    Kernel > Services -- orchestrator.  Composes PurchaseOrderLedger and
    IdentifierService over the caller's session.

Invariants enforced:
    - Preconditions are checked in a fixed order so the first failing one
      is the one reported: part exists, PO exists and matches the part and
      its customer, customer is active, PO not cancelled, quantity valid,
      lot/gate/notes valid.  No write happens before all of them pass.
    - All effects run inside one savepoint: the PO increment, the item
      insert, the part cache and the history entry land together or not
      at all, even if the caller keeps using the session after an error.
    - ``copies`` is a label count; it never multiplies quantity.

Failure modes:
    - PartNotFoundError, PurchaseOrderNotFoundError,
      PartCustomerMismatchError, InactiveCustomerError, POCancelledError,
      InvalidQuantityError, InvalidFieldError: rejected before any write.
    - OverDeliveryError: the ledger's capped UPDATE matched no row.
    - GenerationExhaustedError, DeliveryContentionError: infrastructure
      limits; nothing persisted.
"""

from random import Random

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from warehouse_kernel.domain.clock import Clock
from warehouse_kernel.domain.dtos import (
    ActingUser,
    AuditAction,
    AuditEntryRequest,
    ItemInfo,
    PurchaseOrderInfo,
    ScanInRequest,
    ScanInResult,
)
from warehouse_kernel.domain.lifecycle import INITIAL_STATUS
from warehouse_kernel.domain.po_rules import MAX_SCAN_QUANTITY, validate_quantity
from warehouse_kernel.domain.policies import DeliveryPolicy, IdentifierPolicy
from warehouse_kernel.exceptions import (
    InactiveCustomerError,
    InvalidFieldError,
    PartCustomerMismatchError,
    PartNotFoundError,
    POCancelledError,
    PurchaseOrderNotFoundError,
)
from warehouse_kernel.logging_config import LogContext, get_logger
from warehouse_kernel.models.customer import Customer
from warehouse_kernel.models.inventory_item import InventoryItem, ItemHistoryEntry
from warehouse_kernel.models.part import Part
from warehouse_kernel.models.purchase_order import PurchaseOrder
from warehouse_kernel.services.base import BaseService
from warehouse_kernel.services.identifier_service import (
    IdentifierContext,
    IdentifierService,
    LabelRenderer,
)
from warehouse_kernel.services.item_lifecycle import validate_notes
from warehouse_kernel.services.po_ledger import PurchaseOrderLedger

logger = get_logger("services.scan_in")

LOT_ID_MIN = 3
LOT_ID_MAX = 50
GATE_ID_MAX = 50
MAX_COPIES = 100

CREATED_NOTE = "Item created via Scan In"


def _normalize_lot_id(lot_id: str | None) -> str:
    lot = (lot_id or "").strip().upper()
    if not LOT_ID_MIN <= len(lot) <= LOT_ID_MAX:
        raise InvalidFieldError(
            "lot_id", f"must be between {LOT_ID_MIN} and {LOT_ID_MAX} characters"
        )
    return lot


def _normalize_gate_id(gate_id: str | None) -> str | None:
    gate = (gate_id or "").strip().upper()
    if len(gate) > GATE_ID_MAX:
        raise InvalidFieldError("gate_id", f"must be at most {GATE_ID_MAX} characters")
    return gate or None


def _validate_copies(copies: object) -> int:
    if isinstance(copies, bool) or not isinstance(copies, int) or not 1 <= copies <= MAX_COPIES:
        raise InvalidFieldError("copies", f"must be an integer between 1 and {MAX_COPIES}")
    return copies


class ScanInService(BaseService[InventoryItem]):
    """
    Contract:
        ``scan_in(request, user)`` returns the created item (with part,
        customer and PO summaries), the PO as credited, and the audit entry
        request for the caller to persist.

    Non-goals:
        - Does not persist the audit entry.
        - Does not render label images unless a renderer is injected.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock,
        delivery_policy: DeliveryPolicy | None = None,
        identifier_policy: IdentifierPolicy | None = None,
        label_renderer: LabelRenderer | None = None,
        rng: Random | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._ledger = PurchaseOrderLedger(session, delivery_policy)
        self._identifiers = IdentifierService(
            session,
            clock,
            identifier_policy,
            rng=rng,
            label_renderer=label_renderer,
        )

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    def _check_linkage(self, request: ScanInRequest) -> tuple[Part, PurchaseOrder, Customer]:
        part = self.session.get(Part, request.part_id)
        if part is None:
            raise PartNotFoundError(request.part_id)

        po = self.session.get(PurchaseOrder, request.po_id)
        if po is None:
            raise PurchaseOrderNotFoundError(request.po_id)
        if po.part_id != part.id or po.customer_id != part.customer_id:
            raise PartCustomerMismatchError(part.id, part.customer_id, po.id)

        customer = part.customer
        if not customer.can_transact:
            raise InactiveCustomerError(customer.id, customer.status)

        if po.is_cancelled:
            raise POCancelledError(po.po_number)

        return part, po, customer

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------

    def _insert_item(
        self,
        ctx: IdentifierContext,
        request: ScanInRequest,
        copies: int,
        notes: str | None,
    ) -> InventoryItem:
        barcode = self._identifiers.next_barcode()
        now = self._clock.now()
        history_note = f"{CREATED_NOTE}: {notes}" if notes else CREATED_NOTE

        for unique_id in self._identifiers.candidates(ctx):
            item = InventoryItem(
                unique_id=unique_id,
                part=ctx.part,
                purchase_order=ctx.purchase_order,
                customer=ctx.customer,
                quantity=ctx.quantity,
                status=INITIAL_STATUS.value,
                lot_id=ctx.lot_id,
                gate_id=ctx.gate_id,
                qr_code_data=self._identifiers.qr_payload(unique_id, ctx),
                qr_code_image=self._identifiers.render_label(unique_id),
                barcode=barcode,
                copies=copies,
                location=dict(request.location) if request.location else None,
                created_by_id=ctx.user.user_id,
                created_by_username=ctx.user.username,
                history=[
                    ItemHistoryEntry(
                        sequence=1,
                        status=INITIAL_STATUS.value,
                        timestamp=now,
                        user_id=ctx.user.user_id,
                        notes=history_note,
                    )
                ],
            )
            savepoint = self.session.begin_nested()
            try:
                self.session.add(item)
                self.session.flush()
            except IntegrityError:
                # Another Scan-In took this unique id since the pre-check
                savepoint.rollback()
                logger.warning("unique_id_insert_race", extra={"unique_id": unique_id})
                continue
            savepoint.commit()
            return item

        raise self._identifiers.exhausted(ctx)

    def scan_in(self, request: ScanInRequest, user: ActingUser) -> ScanInResult:
        """
        Register received stock.

        Preconditions:
            - ``user`` is authenticated and authorised by the caller.
        Postconditions:
            - One new IN item exists with one history entry.
            - PO delivered_quantity increased by exactly ``quantity``.
            - Part.po_number equals the PO's number.
        """
        with LogContext.bind(actor_id=str(user.user_id), po_id=str(request.po_id)):
            part, po, customer = self._check_linkage(request)
            quantity = validate_quantity(request.quantity, maximum=MAX_SCAN_QUANTITY)
            lot_id = _normalize_lot_id(request.lot_id)
            gate_id = _normalize_gate_id(request.gate_id)
            copies = _validate_copies(request.copies)
            notes = validate_notes(request.notes)

            with self.session.begin_nested():
                po = self._ledger.apply_delivery(po.id, quantity, actor_id=user.user_id)
                ctx = IdentifierContext(
                    part=part,
                    purchase_order=po,
                    customer=customer,
                    quantity=quantity,
                    lot_id=lot_id,
                    gate_id=gate_id,
                    user=user,
                )
                item = self._insert_item(ctx, request, copies, notes)
                part.po_number = po.po_number
                part.updated_by_id = user.user_id
                self.session.flush()

            logger.info(
                "scan_in_completed",
                extra={
                    "unique_id": item.unique_id,
                    "part_id": str(part.id),
                    "quantity": quantity,
                    "copies": copies,
                    "po_status": po.status,
                    "delivered_quantity": po.delivered_quantity,
                },
            )

            return ScanInResult(
                item=ItemInfo.from_model(item),
                purchase_order=PurchaseOrderInfo.from_model(po),
                audit=AuditEntryRequest.for_user(
                    user,
                    AuditAction.SCAN_IN,
                    f"Item '{item.unique_id}' created - Part: {part.name}, "
                    f"Qty: {quantity}, Lot: {lot_id}, PO: {po.po_number}",
                    "InventoryItem",
                    item.id,
                ),
            )

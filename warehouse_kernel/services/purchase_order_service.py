"""
PurchaseOrderService -- purchase-order maintenance and the Part PO cache.

Responsibility:
    Creates, updates, cancels and deletes purchase orders, and keeps the
    ``Part.po_number`` cache in step with them in the same transaction.
    Also rebuilds or reports cache entries that have drifted.

Architecture position:
    Kernel > Services.  Total-quantity changes go through
    PurchaseOrderLedger so status derivation lives in one place;
    delivered_quantity is never written here.

Invariants enforced:
    - po_number is unique and matches ``^[A-Z0-9\\-_/]{3,50}$`` after
      trimming and upper-casing.
    - Creating, updating or deleting a PO needs an ACTIVE customer; a new
      PO also needs a part owned by that customer.
    - Update, cancel and delete lock the PO row first, so a total change
      derives status from the delivered quantity as committed.
    - A PO referenced by inventory items cannot be deleted or moved to
      another part.
    - Part.po_number names a PO of that part, or is None when the part has
      none.  Create, update and Scan-In set it to the PO just touched;
      delete falls back to the part's most recently created remaining PO.

Failure modes:
    - InvalidPONumberError, InvalidQuantityError, InvalidFieldError:
      malformed input.
    - DuplicateKeyError: po_number already taken.
    - CustomerNotFoundError, PartNotFoundError, PurchaseOrderNotFoundError.
    - InactiveCustomerError, PartCustomerMismatchError.
    - PurchaseOrderInUseError, POCancelledError.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from warehouse_kernel.domain.dtos import (
    ActingUser,
    AuditAction,
    AuditEntryRequest,
    PoNumberDrift,
    PurchaseOrderInfo,
    PurchaseOrderResult,
)
from warehouse_kernel.domain.po_rules import (
    MAX_PO_QUANTITY,
    PurchaseOrderStatus,
    normalize_po_number,
    validate_quantity,
)
from warehouse_kernel.domain.policies import DeliveryPolicy
from warehouse_kernel.exceptions import (
    CustomerNotFoundError,
    DuplicateKeyError,
    InactiveCustomerError,
    PartCustomerMismatchError,
    PartNotFoundError,
    POCancelledError,
    PurchaseOrderInUseError,
    PurchaseOrderNotFoundError,
)
from warehouse_kernel.logging_config import LogContext, get_logger
from warehouse_kernel.models.customer import Customer
from warehouse_kernel.models.inventory_item import InventoryItem
from warehouse_kernel.models.part import Part
from warehouse_kernel.models.purchase_order import PurchaseOrder
from warehouse_kernel.services.base import BaseService
from warehouse_kernel.services.item_lifecycle import validate_notes
from warehouse_kernel.services.po_ledger import PurchaseOrderLedger

logger = get_logger("services.purchase_order")

_RESOURCE = "PurchaseOrder"


class PurchaseOrderService(BaseService[PurchaseOrder]):
    """
    Contract:
        Every mutating method returns a PurchaseOrderResult whose audit entry
        the caller persists.  Nothing is committed here.
    """

    def __init__(self, session: Session, delivery_policy: DeliveryPolicy | None = None):
        super().__init__(session)
        self._ledger = PurchaseOrderLedger(session, delivery_policy)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_po(self, po_id: UUID, *, lock: bool = False) -> PurchaseOrder:
        if lock:
            # Row lock, then a fresh read: delivered_quantity may have moved
            po = self.session.execute(
                select(PurchaseOrder)
                .where(PurchaseOrder.id == po_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
        else:
            po = self.session.get(PurchaseOrder, po_id)
        if po is None:
            raise PurchaseOrderNotFoundError(po_id)
        return po

    def _require_active_customer(self, customer_id: UUID) -> Customer:
        customer = self.session.get(Customer, customer_id)
        if customer is None:
            raise CustomerNotFoundError(customer_id)
        if not customer.can_transact:
            raise InactiveCustomerError(customer.id, customer.status)
        return customer

    def _get_part(self, part_id: UUID) -> Part:
        part = self.session.get(Part, part_id)
        if part is None:
            raise PartNotFoundError(part_id)
        return part

    def _ensure_unique_number(self, po_number: str, exclude_id: UUID | None = None) -> None:
        stmt = select(PurchaseOrder.id).where(PurchaseOrder.po_number == po_number)
        if exclude_id is not None:
            stmt = stmt.where(PurchaseOrder.id != exclude_id)
        if self.session.execute(stmt).first() is not None:
            raise DuplicateKeyError("PurchaseOrder", "po_number", po_number)

    def _item_count(self, po_id: UUID) -> int:
        return self.session.execute(
            select(func.count(InventoryItem.id)).where(InventoryItem.po_id == po_id)
        ).scalar_one()

    def _latest_po_number(self, part_id: UUID, exclude_id: UUID | None = None) -> str | None:
        # po_number breaks created_at ties (second resolution on SQLite)
        stmt = (
            select(PurchaseOrder.po_number)
            .where(PurchaseOrder.part_id == part_id)
            .order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.po_number.desc())
            .limit(1)
        )
        if exclude_id is not None:
            stmt = stmt.where(PurchaseOrder.id != exclude_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def _audit(self, user: ActingUser, action: AuditAction, po: PurchaseOrder, details: str):
        return PurchaseOrderResult(
            purchase_order=PurchaseOrderInfo.from_model(po),
            audit=AuditEntryRequest.for_user(user, action, details, _RESOURCE, po.id),
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(
        self,
        po_number: str,
        part_id: UUID,
        customer_id: UUID,
        total_quantity: object,
        user: ActingUser,
        delivery_date: datetime | None = None,
        notes: str | None = None,
    ) -> PurchaseOrderResult:
        """
        Open a purchase order for one part of an active customer.

        Postconditions:
            - status OPEN, delivered_quantity 0.
            - The part's po_number cache names the new PO.
        """
        number = normalize_po_number(po_number)
        total = validate_quantity(total_quantity, maximum=MAX_PO_QUANTITY)
        notes = validate_notes(notes)
        self._ensure_unique_number(number)

        customer = self._require_active_customer(customer_id)

        part = self._get_part(part_id)
        if part.customer_id != customer.id:
            raise PartCustomerMismatchError(part.id, customer.id)

        po = PurchaseOrder(
            po_number=number,
            part_id=part.id,
            customer_id=customer.id,
            total_quantity=total,
            delivered_quantity=0,
            status=PurchaseOrderStatus.OPEN.value,
            delivery_date=delivery_date,
            notes=notes,
            created_by_id=user.user_id,
        )
        self.session.add(po)
        part.po_number = number
        part.updated_by_id = user.user_id
        self.session.flush()

        logger.info(
            "purchase_order_created",
            extra={"po_id": str(po.id), "po_number": number, "total_quantity": total},
        )
        return self._audit(
            user,
            AuditAction.PO_CREATE,
            po,
            f"Created purchase order: {number} for part {part.internal_part_no}, "
            f"qty {total}",
        )

    def update(
        self,
        po_id: UUID,
        user: ActingUser,
        *,
        po_number: str | None = None,
        part_id: UUID | None = None,
        total_quantity: object = None,
        delivery_date: datetime | None = None,
        notes: str | None = None,
    ) -> PurchaseOrderResult:
        """
        Change the given fields of a PO; omitted (None) fields stay as they are.

        A new total re-derives status through the ledger.  Moving the PO to
        another part is refused once items reference it.
        """
        po = self._get_po(po_id, lock=True)
        self._require_active_customer(po.customer_id)
        with LogContext.bind(actor_id=str(user.user_id), po_id=str(po.id)):
            changes: list[str] = []
            old_part_id = po.part_id

            if po_number is not None:
                number = normalize_po_number(po_number)
                if number != po.po_number:
                    self._ensure_unique_number(number, exclude_id=po.id)
                    changes.append(f"po_number {po.po_number} -> {number}")
                    po.po_number = number

            if part_id is not None and part_id != po.part_id:
                part = self._get_part(part_id)
                if part.customer_id != po.customer_id:
                    raise PartCustomerMismatchError(part.id, po.customer_id)
                in_use = self._item_count(po.id)
                if in_use:
                    raise PurchaseOrderInUseError(po.po_number, in_use)
                changes.append(f"part {old_part_id} -> {part.id}")
                po.part_id = part.id

            if total_quantity is not None:
                before = po.total_quantity
                self._ledger.change_total(po, total_quantity)
                if po.total_quantity != before:
                    changes.append(f"total {before} -> {po.total_quantity}")

            if delivery_date is not None:
                po.delivery_date = delivery_date
                changes.append("delivery_date")

            if notes is not None:
                po.notes = validate_notes(notes)
                changes.append("notes")

            po.updated_by_id = user.user_id
            self.session.flush()

            if po.part_id != old_part_id:
                old_part = self.session.get(Part, old_part_id)
                old_part.po_number = self._latest_po_number(old_part_id, exclude_id=po.id)
                old_part.updated_by_id = user.user_id
            part = self.session.get(Part, po.part_id)
            part.po_number = po.po_number
            part.updated_by_id = user.user_id
            self.session.flush()

            logger.info(
                "purchase_order_updated",
                extra={"po_number": po.po_number, "changes": changes, "status": po.status},
            )
            return self._audit(
                user,
                AuditAction.PO_UPDATE,
                po,
                f"Updated purchase order: {po.po_number}"
                + (f" ({', '.join(changes)})" if changes else ""),
            )

    def cancel(self, po_id: UUID, user: ActingUser) -> PurchaseOrderResult:
        """Mark the PO cancelled; further Scan-Ins against it are refused."""
        po = self._get_po(po_id, lock=True)
        if po.is_cancelled:
            raise POCancelledError(po.po_number)
        previous = po.status
        po.status = PurchaseOrderStatus.CANCELLED.value
        po.updated_by_id = user.user_id
        self.session.flush()

        logger.info(
            "purchase_order_cancelled",
            extra={"po_id": str(po.id), "po_number": po.po_number, "previous_status": previous},
        )
        return self._audit(
            user,
            AuditAction.PO_CANCEL,
            po,
            f"Cancelled purchase order: {po.po_number} "
            f"(delivered {po.delivered_quantity} of {po.total_quantity})",
        )

    def delete(self, po_id: UUID, user: ActingUser) -> PurchaseOrderResult:
        """
        Remove a PO that no inventory item references.

        The part's cache falls back to its most recent remaining PO.
        """
        po = self._get_po(po_id, lock=True)
        self._require_active_customer(po.customer_id)
        in_use = self._item_count(po.id)
        if in_use:
            raise PurchaseOrderInUseError(po.po_number, in_use)

        result = self._audit(
            user,
            AuditAction.PO_DELETE,
            po,
            f"Deleted purchase order: {po.po_number}",
        )
        part = self.session.get(Part, po.part_id)
        self.session.delete(po)
        self.session.flush()

        if part is not None:
            part.po_number = self._latest_po_number(part.id)
            part.updated_by_id = user.user_id
            self.session.flush()

        logger.info(
            "purchase_order_deleted",
            extra={"po_id": str(po_id), "po_number": result.purchase_order.po_number},
        )
        return result

    # ------------------------------------------------------------------
    # Cache maintenance
    # ------------------------------------------------------------------

    def _drift(self) -> list[tuple[Part, str | None]]:
        parts = self.session.execute(
            select(Part).order_by(Part.internal_part_no)
        ).scalars().all()
        numbers_by_part: dict[UUID, set[str]] = {}
        for part_id, number in self.session.execute(
            select(PurchaseOrder.part_id, PurchaseOrder.po_number)
        ):
            numbers_by_part.setdefault(part_id, set()).add(number)

        drifted = []
        for part in parts:
            numbers = numbers_by_part.get(part.id, set())
            cached = part.po_number or None
            if cached in numbers or (cached is None and not numbers):
                continue
            drifted.append((part, self._latest_po_number(part.id)))
        return drifted

    def find_po_number_drift(self) -> list[PoNumberDrift]:
        """
        Parts whose cached po_number names no PO of that part.

        ``expected`` is the part's most recently created PO number, or None.
        """
        return [
            PoNumberDrift(
                part_id=part.id,
                internal_part_no=part.internal_part_no,
                cached=part.po_number,
                expected=expected,
            )
            for part, expected in self._drift()
        ]

    def resync_part_po_numbers(self) -> list[PoNumberDrift]:
        """Rewrite every drifted cache entry; returns what was changed."""
        fixed = []
        for part, expected in self._drift():
            fixed.append(
                PoNumberDrift(
                    part_id=part.id,
                    internal_part_no=part.internal_part_no,
                    cached=part.po_number,
                    expected=expected,
                )
            )
            part.po_number = expected
        self.session.flush()
        logger.info("part_po_numbers_resynced", extra={"parts_fixed": len(fixed)})
        return fixed

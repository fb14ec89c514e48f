"""
PurchaseOrderLedger -- delivered-quantity accounting for purchase orders.

Responsibility:
    The only sanctioned way to change ``PurchaseOrder.delivered_quantity``.
    ``apply_delivery`` credits a PO with received stock and re-derives its
    status in the same statement; ``recompute`` re-derives status after a
    total-quantity change.

Architecture position:
    Kernel > Services.  Called by ScanInService (deliveries) and
    PurchaseOrderService (total changes).  Trusts that the PO passed
    create/update validation; it does not re-check customer or part links.

Invariants enforced:
    - No lost increments: the credit is ONE conditional UPDATE
          SET delivered_quantity = delivered_quantity + :q,
              status = CASE ... END
          WHERE id = :po AND status <> 'cancelled'
                [AND delivered_quantity + :q <= total_quantity]
      evaluated by the database against the current row, never a
      read-add-write in Python.  PostgreSQL's row lock on UPDATE serialises
      concurrent Scan-Ins on the same PO; on SQLite BEGIN IMMEDIATE does.
    - status == COMPLETED iff delivered >= total, OPEN iff delivered == 0,
      CANCELLED untouched (mirrors domain.po_rules.recompute_status).
    - Over-delivery is rejected unless DeliveryPolicy says ``allow``.

Failure modes:
    - InvalidQuantityError: non-positive delta.
    - PurchaseOrderNotFoundError / POCancelledError / OverDeliveryError:
      diagnosed after the UPDATE matched no row.
    - DeliveryContentionError: the UPDATE kept failing with OperationalError
      (lock timeout, deadlock victim) past the attempt budget.  Retryable.
"""

import time
from uuid import UUID

from sqlalchemy import case, select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from warehouse_kernel.domain.po_rules import (
    MAX_PO_QUANTITY,
    PurchaseOrderStatus,
    recompute_status,
    validate_quantity,
)
from warehouse_kernel.domain.policies import DeliveryPolicy
from warehouse_kernel.exceptions import (
    DeliveryContentionError,
    InvalidQuantityError,
    OverDeliveryError,
    POCancelledError,
    PurchaseOrderNotFoundError,
)
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.purchase_order import PurchaseOrder
from warehouse_kernel.services.base import BaseService

logger = get_logger("services.po_ledger")


def _status_case(delivered_expr):
    """SQL twin of recompute_status for a non-cancelled row."""
    return case(
        (delivered_expr >= PurchaseOrder.total_quantity, PurchaseOrderStatus.COMPLETED.value),
        (delivered_expr > 0, PurchaseOrderStatus.PARTIAL.value),
        else_=PurchaseOrderStatus.OPEN.value,
    )


class PurchaseOrderLedger(BaseService[PurchaseOrder]):
    """
    Contract:
        ``apply_delivery(po_id, q)`` returns the PO as persisted after the
        increment.  Concurrent callers against the same PO end with
        ``delivered == original + sum(q)``.

    Non-goals:
        - Never decrements delivered quantity (Scan-Out and approved deletes
          leave it alone).
    """

    def __init__(self, session: Session, policy: DeliveryPolicy | None = None):
        super().__init__(session)
        self._policy = policy or DeliveryPolicy()

    def _load(self, po_id: UUID) -> PurchaseOrder | None:
        return self.session.execute(
            select(PurchaseOrder)
            .where(PurchaseOrder.id == po_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _delivery_statement(self, po_id: UUID, quantity: int, actor_id: UUID | None):
        new_delivered = PurchaseOrder.delivered_quantity + quantity
        stmt = (
            update(PurchaseOrder)
            .where(
                PurchaseOrder.id == po_id,
                PurchaseOrder.status != PurchaseOrderStatus.CANCELLED.value,
            )
            .values(
                delivered_quantity=new_delivered,
                status=_status_case(new_delivered),
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        if self._policy.caps_at_total:
            stmt = stmt.where(new_delivered <= PurchaseOrder.total_quantity)
        return stmt

    def apply_delivery(
        self,
        po_id: UUID,
        quantity: int,
        actor_id: UUID | None = None,
    ) -> PurchaseOrder:
        """
        Atomically credit ``quantity`` to the PO and re-derive its status.

        Preconditions:
            - ``quantity`` > 0.
            - The caller holds an open transaction; this method flushes
              nothing else and never commits.
        Postconditions:
            - delivered_quantity increased by exactly ``quantity``.
            - status reflects the new quantities.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantityError(quantity, "delivery must be a positive integer")

        stmt = self._delivery_statement(po_id, quantity, actor_id)
        attempts = self._policy.max_attempts

        for attempt in range(1, attempts + 1):
            savepoint = self.session.begin_nested()
            try:
                matched = self.session.execute(stmt).rowcount
                savepoint.commit()
                break
            except OperationalError:
                savepoint.rollback()
                logger.warning(
                    "delivery_contention",
                    extra={"po_id": str(po_id), "attempt": attempt, "max_attempts": attempts},
                )
                if attempt == attempts:
                    raise DeliveryContentionError(po_id, attempts)
                time.sleep(self._policy.base_delay_seconds * attempt)

        po = self._load(po_id)
        if matched == 0:
            self._raise_rejection(po_id, po, quantity)

        logger.info(
            "delivery_applied",
            extra={
                "po_id": str(po_id),
                "po_number": po.po_number,
                "quantity": quantity,
                "delivered_quantity": po.delivered_quantity,
                "total_quantity": po.total_quantity,
                "status": po.status,
            },
        )
        return po

    def _raise_rejection(self, po_id: UUID, po: PurchaseOrder | None, quantity: int) -> None:
        if po is None:
            raise PurchaseOrderNotFoundError(po_id)
        if po.is_cancelled:
            raise POCancelledError(po.po_number)
        logger.info(
            "delivery_rejected_over_total",
            extra={
                "po_id": str(po_id),
                "quantity": quantity,
                "delivered_quantity": po.delivered_quantity,
                "total_quantity": po.total_quantity,
            },
        )
        raise OverDeliveryError(
            po.po_number, po.total_quantity, po.delivered_quantity, quantity
        )

    def recompute(self, po: PurchaseOrder) -> PurchaseOrderStatus:
        """Re-derive ``po.status`` from its quantities (CANCELLED is kept)."""
        status = recompute_status(po.total_quantity, po.delivered_quantity, po.status)
        po.status = status.value
        return status

    def change_total(self, po: PurchaseOrder, total_quantity: object) -> PurchaseOrderStatus:
        """
        Set a new total and re-derive status.

        With the over-delivery cap in force the total may not drop below
        what has already been delivered.  ``po`` must have been read under a
        row lock; the cap and the new status use its delivered_quantity.
        """
        total = validate_quantity(total_quantity, maximum=MAX_PO_QUANTITY)
        if self._policy.caps_at_total and total < po.delivered_quantity:
            raise InvalidQuantityError(
                total_quantity,
                f"must not be below delivered quantity {po.delivered_quantity}",
            )
        po.total_quantity = total
        return self.recompute(po)

"""
Tests for PurchaseOrderLedger.

Covers:
- Delivered-quantity increments and status derivation in SQL
- Over-delivery policy (reject / allow)
- Rejections diagnosed after a zero-row UPDATE
- Total-quantity changes
"""

from uuid import uuid4

import pytest

from warehouse_kernel.domain.po_rules import PurchaseOrderStatus
from warehouse_kernel.domain.policies import DeliveryPolicy, OverDeliveryMode
from warehouse_kernel.exceptions import (
    InvalidQuantityError,
    OverDeliveryError,
    POCancelledError,
    PurchaseOrderNotFoundError,
)
from warehouse_kernel.services.po_ledger import PurchaseOrderLedger


@pytest.fixture
def ledger(session):
    return PurchaseOrderLedger(session)


class TestApplyDelivery:
    """Atomic credit of received stock."""

    def test_first_delivery_makes_po_partial(self, ledger, open_po):
        po = ledger.apply_delivery(open_po.id, 40)

        assert po.delivered_quantity == 40
        assert po.status == PurchaseOrderStatus.PARTIAL.value
        assert po.remaining_quantity == 60

    def test_exact_fill_completes_po(self, ledger, open_po):
        ledger.apply_delivery(open_po.id, 40)
        po = ledger.apply_delivery(open_po.id, 60)

        assert po.delivered_quantity == 100
        assert po.status == PurchaseOrderStatus.COMPLETED.value

    def test_increments_accumulate(self, ledger, open_po):
        for _ in range(5):
            ledger.apply_delivery(open_po.id, 3)

        assert ledger._load(open_po.id).delivered_quantity == 15

    def test_records_actor(self, ledger, open_po, test_actor_id):
        po = ledger.apply_delivery(open_po.id, 1, actor_id=test_actor_id)
        assert po.updated_by_id == test_actor_id

    @pytest.mark.parametrize("quantity", [0, -5, True, 2.5])
    def test_rejects_non_positive_or_non_integer(self, ledger, open_po, quantity):
        with pytest.raises(InvalidQuantityError):
            ledger.apply_delivery(open_po.id, quantity)

    def test_over_delivery_rejected_by_default(self, ledger, open_po):
        ledger.apply_delivery(open_po.id, 90)

        with pytest.raises(OverDeliveryError) as exc_info:
            ledger.apply_delivery(open_po.id, 11)

        assert exc_info.value.remaining == 10
        assert exc_info.value.requested == 11
        assert ledger._load(open_po.id).delivered_quantity == 90

    def test_completed_po_refuses_more(self, ledger, open_po):
        ledger.apply_delivery(open_po.id, 100)

        with pytest.raises(OverDeliveryError):
            ledger.apply_delivery(open_po.id, 1)

    def test_over_delivery_allowed_by_policy(self, session, open_po):
        ledger = PurchaseOrderLedger(
            session, DeliveryPolicy(over_delivery=OverDeliveryMode.ALLOW)
        )
        po = ledger.apply_delivery(open_po.id, 130)

        assert po.delivered_quantity == 130
        assert po.status == PurchaseOrderStatus.COMPLETED.value

    def test_cancelled_po_rejected(self, ledger, open_po, session):
        open_po.status = PurchaseOrderStatus.CANCELLED.value
        session.flush()

        with pytest.raises(POCancelledError):
            ledger.apply_delivery(open_po.id, 1)
        assert ledger._load(open_po.id).delivered_quantity == 0

    def test_unknown_po(self, ledger, db_tables):
        with pytest.raises(PurchaseOrderNotFoundError):
            ledger.apply_delivery(uuid4(), 1)

    def test_logs_delivery(self, ledger, open_po, captured_logs):
        ledger.apply_delivery(open_po.id, 25)

        records = [r for r in captured_logs() if r["message"] == "delivery_applied"]
        assert len(records) == 1
        assert records[0]["delivered_quantity"] == 25
        assert records[0]["status"] == "partial"


class TestChangeTotal:
    """Total-quantity edits re-derive status."""

    def test_raising_total_reopens_completed_po(self, ledger, open_po):
        ledger.apply_delivery(open_po.id, 100)
        po = ledger._load(open_po.id)

        status = ledger.change_total(po, 150)

        assert status == PurchaseOrderStatus.PARTIAL
        assert po.status == "partial"
        assert po.total_quantity == 150

    def test_lowering_total_to_delivered_completes_po(self, ledger, open_po):
        po = ledger.apply_delivery(open_po.id, 60)

        assert ledger.change_total(po, 60) == PurchaseOrderStatus.COMPLETED

    def test_total_below_delivered_rejected(self, ledger, open_po):
        po = ledger.apply_delivery(open_po.id, 60)

        with pytest.raises(InvalidQuantityError, match="delivered quantity 60"):
            ledger.change_total(po, 59)

    def test_cancelled_stays_cancelled(self, ledger, open_po):
        open_po.status = PurchaseOrderStatus.CANCELLED.value

        assert ledger.change_total(open_po, 10) == PurchaseOrderStatus.CANCELLED

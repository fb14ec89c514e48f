"""
Tests for purchase-order status derivation and input validators.
"""

import pytest

from warehouse_kernel.domain.po_rules import (
    MAX_PO_QUANTITY,
    MAX_SCAN_QUANTITY,
    PurchaseOrderStatus,
    normalize_po_number,
    recompute_status,
    remaining_quantity,
    validate_quantity,
)
from warehouse_kernel.exceptions import InvalidPONumberError, InvalidQuantityError


class TestRecomputeStatus:
    """Status follows the quantities; CANCELLED is sticky."""

    def test_nothing_delivered_is_open(self):
        assert recompute_status(100, 0) == PurchaseOrderStatus.OPEN

    def test_some_delivered_is_partial(self):
        assert recompute_status(100, 40) == PurchaseOrderStatus.PARTIAL

    def test_fully_delivered_is_completed(self):
        assert recompute_status(100, 100) == PurchaseOrderStatus.COMPLETED

    def test_over_delivered_is_completed(self):
        assert recompute_status(100, 130) == PurchaseOrderStatus.COMPLETED

    def test_cancelled_is_kept(self):
        assert recompute_status(100, 100, "cancelled") == PurchaseOrderStatus.CANCELLED

    def test_non_cancelled_current_is_ignored(self):
        assert recompute_status(100, 0, PurchaseOrderStatus.COMPLETED) == PurchaseOrderStatus.OPEN


class TestRemainingQuantity:

    def test_remaining(self):
        assert remaining_quantity(100, 40) == 60

    def test_never_negative(self):
        assert remaining_quantity(100, 130) == 0


class TestValidateQuantity:
    """Shared positive-integer validator."""

    def test_accepts_int(self):
        assert validate_quantity(40, maximum=MAX_SCAN_QUANTITY) == 40

    def test_accepts_numeric_string(self):
        assert validate_quantity(" 25 ", maximum=MAX_SCAN_QUANTITY) == 25

    def test_accepts_integral_float(self):
        assert validate_quantity(5.0, maximum=MAX_SCAN_QUANTITY) == 5

    @pytest.mark.parametrize("value", [0, -1, "-3", "0"])
    def test_rejects_non_positive(self, value):
        with pytest.raises(InvalidQuantityError, match="greater than zero"):
            validate_quantity(value, maximum=MAX_SCAN_QUANTITY)

    @pytest.mark.parametrize("value", [True, 2.5, "abc", None, "1e3"])
    def test_rejects_non_integers(self, value):
        with pytest.raises(InvalidQuantityError, match="integer"):
            validate_quantity(value, maximum=MAX_SCAN_QUANTITY)

    def test_rejects_above_maximum(self):
        with pytest.raises(InvalidQuantityError, match="must not exceed"):
            validate_quantity(MAX_PO_QUANTITY + 1, maximum=MAX_PO_QUANTITY)


class TestNormalizePONumber:

    def test_upper_cases_and_trims(self):
        assert normalize_po_number("  po-2024/001 ") == "PO-2024/001"

    @pytest.mark.parametrize("value", ["", "AB", "PO 001", "PO#1", "X" * 51])
    def test_rejects_malformed(self, value):
        with pytest.raises(InvalidPONumberError):
            normalize_po_number(value)

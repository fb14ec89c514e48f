"""
Purchase-order status rules.

Responsibility:
    Pure derivation of a PO's status from its quantities, plus the shared
    quantity and PO-number validators used by Scan-In and PO maintenance.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The SQL form of
    ``recompute_status`` lives in services/po_ledger.py and must stay in
    step with this function.

Invariants enforced:
    - delivered == 0                -> OPEN
    - 0 < delivered < total         -> PARTIAL
    - delivered >= total            -> COMPLETED
    - CANCELLED is a manual override and is never recomputed away.
"""

import re
from enum import Enum
from typing import Any

from warehouse_kernel.exceptions import InvalidPONumberError, InvalidQuantityError


class PurchaseOrderStatus(str, Enum):
    """PO status; CANCELLED is the only manually set value."""

    OPEN = "open"
    PARTIAL = "partial"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


MAX_PO_QUANTITY = 1_000_000
MAX_SCAN_QUANTITY = 10_000

_PO_NUMBER_RE = re.compile(r"^[A-Z0-9\-_/]{3,50}$")


def recompute_status(
    total: int,
    delivered: int,
    current: PurchaseOrderStatus | str | None = None,
) -> PurchaseOrderStatus:
    """Status implied by ``total`` and ``delivered``; CANCELLED is sticky."""
    if current is not None and PurchaseOrderStatus(current) == PurchaseOrderStatus.CANCELLED:
        return PurchaseOrderStatus.CANCELLED
    if delivered <= 0:
        return PurchaseOrderStatus.OPEN
    if delivered >= total:
        return PurchaseOrderStatus.COMPLETED
    return PurchaseOrderStatus.PARTIAL


def remaining_quantity(total: int, delivered: int) -> int:
    return max(total - delivered, 0)


def validate_quantity(value: Any, *, maximum: int) -> int:
    """
    Coerce ``value`` to a positive integer no larger than ``maximum``.

    Accepts ints and integral strings ("40").  Booleans, floats with a
    fractional part, and anything non-numeric are rejected.
    """
    if isinstance(value, bool):
        raise InvalidQuantityError(value, "must be an integer")
    if isinstance(value, int):
        quantity = value
    elif isinstance(value, float) and value.is_integer():
        quantity = int(value)
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        quantity = int(value.strip())
    else:
        raise InvalidQuantityError(value, "must be an integer")

    if quantity <= 0:
        raise InvalidQuantityError(value, "must be greater than zero")
    if quantity > maximum:
        raise InvalidQuantityError(value, f"must not exceed {maximum:,}")
    return quantity


def normalize_po_number(po_number: str) -> str:
    """Trim and upper-case a PO number, rejecting malformed values."""
    normalized = (po_number or "").strip().upper()
    if not _PO_NUMBER_RE.match(normalized):
        raise InvalidPONumberError(po_number)
    return normalized

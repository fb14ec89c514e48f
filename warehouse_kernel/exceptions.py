"""
Typed Exception Hierarchy for the Warehouse Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejected warehouse operation maps to a concrete instruction for the
staff member at the counter ("the PO is cancelled", "the item is already
OUT").  Callers must be able to tell these apart without parsing messages:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Every exception has an HTTP_STATUS hint for the surrounding layer
  4. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        scan_out(code)
    except Exception as e:
        if "already OUT" in str(e):  # FRAGILE - message might change
            ...

Example - RIGHT way (what this module enables):
    try:
        scan_out(code)
    except InvalidScanOutStateError as e:
        respond(e.http_status, e.to_dict())

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    WarehouseKernelError (base)
    |
    +-- NotFoundError                       404
    |   +-- CustomerNotFoundError
    |   +-- PartNotFoundError
    |   +-- PurchaseOrderNotFoundError
    |   +-- ItemNotFoundError
    |
    +-- ValidationError                     400
    |   +-- InvalidQuantityError
    |   +-- OverDeliveryError
    |   +-- InvalidPONumberError
    |   +-- PartCustomerMismatchError
    |   +-- InvalidFieldError
    |
    +-- InactiveCustomerError               403
    +-- DuplicateKeyError                   409
    +-- PurchaseOrderInUseError             409
    +-- POCancelledError                    409
    |
    +-- InvalidTransitionError              409
    |   +-- InvalidScanOutStateError
    |
    +-- GenerationExhaustedError            503
    |
    +-- ConcurrencyError                    409 (retryable)
    |   +-- DeliveryContentionError
    |
    +-- StorageError                        503

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Not found       | CUSTOMER_NOT_FOUND          | Customer ID doesn't exist
                | PART_NOT_FOUND              | Part ID doesn't exist
                | PO_NOT_FOUND                | Purchase order ID doesn't exist
                | ITEM_NOT_FOUND              | Item ID / scan code resolves to nothing
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_QUANTITY            | Non-positive, non-integer, out of range
                | OVER_DELIVERY               | Delivery would exceed PO total
                | INVALID_PO_NUMBER           | PO number format rejected
                | PART_CUSTOMER_MISMATCH      | Part does not belong to customer/PO
                | INVALID_FIELD               | Free-text field length/format rejected
----------------|-----------------------------|-----------------------------------------
State           | INACTIVE_CUSTOMER           | Customer is not active
                | DUPLICATE_KEY               | Unique field collision
                | PO_IN_USE                   | PO referenced by inventory items
                | PO_CANCELLED                | Delivery against a cancelled PO
                | INVALID_TRANSITION          | Lifecycle guard violated
                | INVALID_SCAN_OUT_STATE      | Scan-Out on a non-IN item
----------------|-----------------------------|-----------------------------------------
Infrastructure  | GENERATION_EXHAUSTED        | No unique identifier within budget
                | DELIVERY_CONTENTION         | PO increment lost to contention
                | STORAGE_ERROR               | Unexpected storage-layer failure

===============================================================================
DESIGN DECISIONS
===============================================================================

1. WHY INHERIT FROM Exception (not ValueError, etc.)?
   Domain exceptions should be catchable as a group. Inheriting from
   built-in types mixes domain errors with programming errors.

2. WHY code AND http_status AS CLASS ATTRIBUTES?
   Both are static per exception type, so the outer layer can build its
   error table without instantiating anything.

3. WHY STORE ALL CONTEXT AS ATTRIBUTES?
   Exceptions are logged (StructuredFormatter copies public attributes into
   ``exc_*`` fields) and serialized through ``to_dict()``.  Structured
   attributes survive; parsed message strings don't.

===============================================================================
"""

from typing import Any


class WarehouseKernelError(Exception):
    """
    Base exception for all warehouse kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification and an `http_status` hint for the outer layer.
    """

    code: str = "WAREHOUSE_KERNEL_ERROR"
    http_status: int = 500
    retryable: bool = False

    def details(self) -> dict[str, Any]:
        """Structured context attached to this error."""
        return {
            k: (str(v) if v is not None and not isinstance(v, (int, float, bool, list, dict)) else v)
            for k, v in vars(self).items()
            if not k.startswith("_")
        }

    def to_dict(self) -> dict[str, Any]:
        """Render the error for a response envelope."""
        return {
            "code": self.code,
            "message": str(self),
            "http_status": self.http_status,
            "details": self.details(),
        }


# Not-found exceptions


class NotFoundError(WarehouseKernelError):
    """Base exception for missing referenced entities."""

    code: str = "NOT_FOUND"
    http_status: int = 404


class CustomerNotFoundError(NotFoundError):
    """Customer with given ID was not found."""

    code: str = "CUSTOMER_NOT_FOUND"

    def __init__(self, customer_id: Any):
        self.customer_id = customer_id
        super().__init__(f"Customer not found: {customer_id}")


class PartNotFoundError(NotFoundError):
    """Part with given ID was not found."""

    code: str = "PART_NOT_FOUND"

    def __init__(self, part_id: Any):
        self.part_id = part_id
        super().__init__(f"Part not found: {part_id}")


class PurchaseOrderNotFoundError(NotFoundError):
    """Purchase order with given ID was not found."""

    code: str = "PO_NOT_FOUND"

    def __init__(self, po_id: Any):
        self.po_id = po_id
        super().__init__(f"Purchase order not found: {po_id}")


class ItemNotFoundError(NotFoundError):
    """No inventory item matches the given ID or scan code."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, reference: Any):
        self.reference = reference
        super().__init__(f"Item with data '{reference}' not found")


# Validation exceptions


class ValidationError(WarehouseKernelError):
    """Base exception for rejected input values."""

    code: str = "VALIDATION_ERROR"
    http_status: int = 400


class InvalidQuantityError(ValidationError):
    """Quantity is non-numeric, non-positive, or outside the allowed range."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: Any, reason: str):
        self.quantity = quantity
        self.reason = reason
        super().__init__(f"Invalid quantity {quantity!r}: {reason}")


class OverDeliveryError(ValidationError):
    """
    Delivery would push a PO's delivered quantity past its total.

    Raised only when the over-delivery policy is ``reject``.
    """

    code: str = "OVER_DELIVERY"

    def __init__(self, po_number: str, total: int, delivered: int, requested: int):
        self.po_number = po_number
        self.total = total
        self.delivered = delivered
        self.requested = requested
        self.remaining = max(total - delivered, 0)
        super().__init__(
            f"Quantity {requested} exceeds remaining PO quantity "
            f"{self.remaining} for PO {po_number} "
            f"(delivered {delivered} of {total})"
        )


class InvalidPONumberError(ValidationError):
    """PO number does not match the accepted format."""

    code: str = "INVALID_PO_NUMBER"

    def __init__(self, po_number: str):
        self.po_number = po_number
        super().__init__(
            f"Invalid PO number '{po_number}': use 3-50 characters of "
            "A-Z, 0-9, '-', '_' or '/'"
        )


class PartCustomerMismatchError(ValidationError):
    """Part does not belong to the customer the PO or scan refers to."""

    code: str = "PART_CUSTOMER_MISMATCH"

    def __init__(self, part_id: Any, customer_id: Any, po_id: Any = None):
        self.part_id = part_id
        self.customer_id = customer_id
        self.po_id = po_id
        if po_id is not None:
            msg = f"Purchase order {po_id} is not for part {part_id}"
        else:
            msg = f"Part {part_id} does not belong to customer {customer_id}"
        super().__init__(msg)


class InvalidFieldError(ValidationError):
    """A free-text field (lot id, reason, notes) failed validation."""

    code: str = "INVALID_FIELD"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InvalidDeleteReasonError(InvalidFieldError):
    """Delete-request reason is missing or outside the length limits."""

    code: str = "INVALID_DELETE_REASON"

    def __init__(self, reason: str):
        super().__init__("reason", reason)


# State exceptions


class InactiveCustomerError(WarehouseKernelError):
    """Operation requires an active customer."""

    code: str = "INACTIVE_CUSTOMER"
    http_status: int = 403

    def __init__(self, customer_id: Any, status: str):
        self.customer_id = customer_id
        self.status = status
        super().__init__(
            f"Customer {customer_id} is not active (status: {status}); "
            "purchase orders and scans are not allowed"
        )


class DuplicateKeyError(WarehouseKernelError):
    """A unique field collided with an existing record."""

    code: str = "DUPLICATE_KEY"
    http_status: int = 409

    def __init__(self, entity_type: str, field: str, value: Any):
        self.entity_type = entity_type
        self.field = field
        self.value = value
        super().__init__(f"{entity_type} with {field} '{value}' already exists")


class PurchaseOrderInUseError(WarehouseKernelError):
    """PO cannot be deleted while inventory items reference it."""

    code: str = "PO_IN_USE"
    http_status: int = 409

    def __init__(self, po_number: str, item_count: int):
        self.po_number = po_number
        self.item_count = item_count
        super().__init__(
            f"Purchase order {po_number} is used by {item_count} inventory "
            "item(s) and cannot be deleted"
        )


class POCancelledError(WarehouseKernelError):
    """Delivery or scan attempted against a cancelled PO."""

    code: str = "PO_CANCELLED"
    http_status: int = 409

    def __init__(self, po_number: str):
        self.po_number = po_number
        super().__init__(f"Purchase order {po_number} is cancelled")


# Lifecycle exceptions


class InvalidTransitionError(WarehouseKernelError):
    """
    Item lifecycle guard violated.

    Raised after a compare-and-swap on status matched no row; the persisted
    item is unchanged.
    """

    code: str = "INVALID_TRANSITION"
    http_status: int = 409

    def __init__(self, unique_id: str, from_status: str, to_status: str, message: str | None = None):
        self.unique_id = unique_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            message
            or f"Item '{unique_id}' cannot move from {from_status} to {to_status}"
        )


class InvalidScanOutStateError(InvalidTransitionError):
    """Scan-Out attempted on an item that is not IN."""

    code: str = "INVALID_SCAN_OUT_STATE"

    _MESSAGES = {
        "OUT": "Item '{uid}' is already OUT",
        "PENDING_DELETE": "Item '{uid}' is pending deletion",
        "DAMAGED": "Item '{uid}' is DAMAGED and cannot be scanned OUT",
    }

    def __init__(self, unique_id: str, current_status: str):
        self.current_status = current_status
        template = self._MESSAGES.get(
            current_status,
            "Item '{uid}' cannot be scanned OUT (status: {status})",
        )
        super().__init__(
            unique_id,
            current_status,
            "OUT",
            template.format(uid=unique_id, status=current_status),
        )


# Infrastructure exceptions


class GenerationExhaustedError(WarehouseKernelError):
    """Identifier generator could not produce a unique value."""

    code: str = "GENERATION_EXHAUSTED"
    http_status: int = 503

    def __init__(self, base_id: str, attempts: int):
        self.base_id = base_id
        self.attempts = attempts
        super().__init__(
            f"Could not generate a unique item id from {base_id} "
            f"after {attempts} attempts"
        )


class ConcurrencyError(WarehouseKernelError):
    """Base exception for contention the caller may retry."""

    code: str = "CONCURRENCY_ERROR"
    http_status: int = 409
    retryable: bool = True


class DeliveryContentionError(ConcurrencyError):
    """The atomic PO increment kept failing under lock contention."""

    code: str = "DELIVERY_CONTENTION"

    def __init__(self, po_id: Any, attempts: int):
        self.po_id = po_id
        self.attempts = attempts
        super().__init__(
            f"Delivery to purchase order {po_id} failed after {attempts} "
            "attempts due to concurrent updates"
        )


class StorageError(WarehouseKernelError):
    """Unexpected storage-layer failure surfaced without interpretation."""

    code: str = "STORAGE_ERROR"
    http_status: int = 503

    def __init__(self, operation: str, cause: str):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Storage failure during {operation}: {cause}")

"""
Pure domain layer.

Lifecycle table, PO status rules, identifier formats, policies, clocks and
DTOs.  Nothing here opens a session or performs I/O.
"""

from warehouse_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from warehouse_kernel.domain.dtos import (
    ActingUser,
    AuditAction,
    AuditEntryRequest,
    ItemInfo,
    PurchaseOrderInfo,
    ScanInRequest,
)
from warehouse_kernel.domain.lifecycle import (
    ITEM_TRANSITIONS,
    ItemEvent,
    ItemStatus,
    is_valid_history,
)
from warehouse_kernel.domain.po_rules import PurchaseOrderStatus, recompute_status
from warehouse_kernel.domain.policies import (
    DeliveryPolicy,
    IdentifierPolicy,
    OverDeliveryMode,
    RetryPolicy,
)

__all__ = [
    "ActingUser",
    "AuditAction",
    "AuditEntryRequest",
    "Clock",
    "DeliveryPolicy",
    "DeterministicClock",
    "ITEM_TRANSITIONS",
    "IdentifierPolicy",
    "ItemEvent",
    "ItemInfo",
    "ItemStatus",
    "OverDeliveryMode",
    "PurchaseOrderInfo",
    "PurchaseOrderStatus",
    "RetryPolicy",
    "ScanInRequest",
    "SystemClock",
    "is_valid_history",
    "recompute_status",
]

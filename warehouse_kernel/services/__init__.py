"""Services for the warehouse kernel (write side)."""

from warehouse_kernel.services.identifier_service import (
    IdentifierContext,
    IdentifierService,
    LabelRenderer,
)
from warehouse_kernel.services.item_lifecycle import ItemLifecycleService
from warehouse_kernel.services.po_ledger import PurchaseOrderLedger
from warehouse_kernel.services.purchase_order_service import PurchaseOrderService
from warehouse_kernel.services.scan_in_service import ScanInService
from warehouse_kernel.services.scan_out_service import ScanOutService
from warehouse_kernel.services.sequence_service import SequenceService

__all__ = [
    "IdentifierContext",
    "IdentifierService",
    "ItemLifecycleService",
    "LabelRenderer",
    "PurchaseOrderLedger",
    "PurchaseOrderService",
    "ScanInService",
    "ScanOutService",
    "SequenceService",
]

"""ORM models for the warehouse kernel."""

from warehouse_kernel.models.customer import Customer, CustomerStatus
from warehouse_kernel.models.inventory_item import InventoryItem, ItemHistoryEntry
from warehouse_kernel.models.part import Part
from warehouse_kernel.models.purchase_order import PurchaseOrder
from warehouse_kernel.models.sequence_counter import SequenceCounter

__all__ = [
    "Customer",
    "CustomerStatus",
    "InventoryItem",
    "ItemHistoryEntry",
    "Part",
    "PurchaseOrder",
    "SequenceCounter",
]

"""Selectors for the warehouse kernel (read side)."""

from warehouse_kernel.selectors.item_selector import InventorySelector, ItemFilters, ItemPage
from warehouse_kernel.selectors.reporting_selector import (
    ActivityBucket,
    ActivityGranularity,
    CustomerScanOut,
    InventorySummary,
    ReportingSelector,
    StatusTotals,
    TodayCounters,
)

__all__ = [
    "ActivityBucket",
    "ActivityGranularity",
    "CustomerScanOut",
    "InventorySelector",
    "InventorySummary",
    "ItemFilters",
    "ItemPage",
    "ReportingSelector",
    "StatusTotals",
    "TodayCounters",
]

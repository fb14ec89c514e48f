"""
Warehouse Kernel

Inventory lifecycle and purchase-order reconciliation core:
- Scan-In / Scan-Out orchestration
- Atomic PO delivery ledger
- Explicit item state machine with compare-and-swap transitions
- Identifier, barcode and QR payload generation
- History-derived reporting
"""

__version__ = "0.1.0"

"""
Identifier formats for inventory items.

Responsibility:
    Pure construction and parsing of the three item-facing codes:

    * unique id  -- ``UML-{SUPPLIERPARTNO}-{SUPPLIERID}-{QTY}-{LOTID}/{YEAR}``
      with an optional ``-{SUFFIX}`` appended to the base when a previous
      candidate collided.
    * barcode    -- ``{PREFIX}{YY}{MM}{SERIAL:06d}``.
    * QR payload -- compact JSON carrying ``uniqueId`` plus display summaries.

    ``parse_scan_code`` is the inverse used by Scan-Out: it accepts either a
    QR payload or a raw code and yields the candidate keys to look up.

Architecture position:
    Kernel > Domain -- pure functional core.  The uniqueness check against
    the store lives in services/identifier_service.py.

Invariants enforced:
    - Every QR payload contains ``uniqueId``, so a scan resolves with a
      single key fetch.
    - Unique-id components are stripped to ``[A-Z0-9]`` and truncated, so the
      separators ``-`` and ``/`` are unambiguous.
"""

from __future__ import annotations

import json
import random
import re
import string
from dataclasses import dataclass
from datetime import datetime
from typing import Any

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits

SUPPLIER_PART_MAX = 20
SUPPLIER_ID_MAX = 10
LOT_ID_MAX = 15


def clean_component(value: str | None, max_length: int, fallback: str) -> str:
    """Strip non-alphanumerics, upper-case and truncate; ``fallback`` if empty."""
    cleaned = _NON_ALNUM.sub("", value or "").upper()[:max_length]
    return cleaned or fallback


def build_unique_id(
    *,
    prefix: str,
    supplier_part_number: str | None,
    supplier_id: str | None,
    quantity: int,
    lot_id: str,
    year: int,
    suffix: str | None = None,
) -> str:
    part_no = clean_component(supplier_part_number, SUPPLIER_PART_MAX, "NOPART")
    supplier = clean_component(supplier_id, SUPPLIER_ID_MAX, "NOSUP")
    lot = clean_component(lot_id, LOT_ID_MAX, "NOLOT")
    base = f"{prefix}-{part_no}-{supplier}-{quantity}-{lot}"
    if suffix:
        base = f"{base}-{suffix}"
    return f"{base}/{year}"


def random_suffix(length: int = 4, rng: random.Random | None = None) -> str:
    chooser = rng or random.SystemRandom()
    return "".join(chooser.choice(_SUFFIX_ALPHABET) for _ in range(length))


def format_barcode(prefix: str, moment: datetime, serial: int) -> str:
    return f"{prefix}{moment:%y}{moment:%m}{serial:06d}"


@dataclass(frozen=True)
class QRContext:
    """Everything the QR payload summarises about a freshly scanned item."""

    unique_id: str
    customer_id: str
    customer_name: str
    part_id: str
    part_name: str
    internal_part_no: str
    po_id: str
    po_number: str
    quantity: int
    lot_id: str
    gate_id: str | None
    created_at: datetime
    created_by: str
    description: str = ""


def build_qr_payload(ctx: QRContext) -> str:
    return json.dumps(
        {
            "uniqueId": ctx.unique_id,
            "customer": {"id": ctx.customer_id, "name": ctx.customer_name},
            "part": {
                "id": ctx.part_id,
                "name": ctx.part_name,
                "partNo": ctx.internal_part_no,
                "description": ctx.description,
            },
            "po": {"id": ctx.po_id, "poNumber": ctx.po_number},
            "quantity": ctx.quantity,
            "lotId": ctx.lot_id,
            "gateId": ctx.gate_id,
            "createdAt": ctx.created_at.isoformat(),
            "createdBy": ctx.created_by,
        },
        separators=(",", ":"),
    )


@dataclass(frozen=True)
class ScanCodeLookup:
    """Keys to try, in order, when resolving a scanned code."""

    raw: str
    unique_id: str | None

    @property
    def is_payload(self) -> bool:
        return self.unique_id is not None


def parse_scan_code(scan_code: str) -> ScanCodeLookup:
    """
    Interpret a scanned value.

    A JSON object carrying ``uniqueId`` (or the legacy ``id`` key) is a QR
    payload; anything else is treated as a raw unique id, barcode or stored
    payload string.
    """
    raw = (scan_code or "").strip()
    unique_id: str | None = None
    if raw.startswith("{"):
        try:
            decoded: Any = json.loads(raw)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, dict):
            candidate = decoded.get("uniqueId") or decoded.get("id")
            if isinstance(candidate, str) and candidate:
                unique_id = candidate
    return ScanCodeLookup(raw=raw, unique_id=unique_id)

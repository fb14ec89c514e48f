"""
IdentifierService -- unique item codes at Scan-In time.

Responsibility:
    Produces ``{unique_id, barcode, qr_payload}`` for a new inventory item.
    The unique id follows the UML format from domain/identifiers.py and is
    checked against the store; the barcode serial comes from the locked
    ``item_barcode`` sequence.

Architecture position:
    Kernel > Services.  Called by ScanInService, which also owns the final
    uniqueness guarantee (the insert under a savepoint).

Invariants enforced:
    - At most ``IdentifierPolicy.max_attempts`` candidates are ever proposed
      for one item, whether rejected by the pre-check or by a unique-key
      race at insert time.
    - The first candidate is the bare UML id; later candidates append a
      random base-36 suffix.

Failure modes:
    - GenerationExhaustedError when the attempt budget runs out.
"""

from dataclasses import dataclass
from random import Random
from typing import Callable, Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session

from warehouse_kernel.domain.clock import Clock
from warehouse_kernel.domain.dtos import ActingUser, GeneratedIdentifiers
from warehouse_kernel.domain.identifiers import (
    QRContext,
    build_qr_payload,
    build_unique_id,
    format_barcode,
    random_suffix,
)
from warehouse_kernel.domain.policies import IdentifierPolicy
from warehouse_kernel.exceptions import GenerationExhaustedError
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.customer import Customer
from warehouse_kernel.models.inventory_item import InventoryItem
from warehouse_kernel.models.part import Part
from warehouse_kernel.models.purchase_order import PurchaseOrder
from warehouse_kernel.services.base import BaseService
from warehouse_kernel.services.sequence_service import SequenceService

logger = get_logger("services.identifier")

# Renders label image data (e.g. a PNG data URL) for a unique id
LabelRenderer = Callable[[str], str]


@dataclass(frozen=True)
class IdentifierContext:
    """What the generator needs to know about the item being created."""

    part: Part
    purchase_order: PurchaseOrder
    customer: Customer
    quantity: int
    lot_id: str
    gate_id: str | None
    user: ActingUser


class IdentifierService(BaseService[InventoryItem]):
    """
    Contract:
        ``generate(ctx)`` returns identifiers whose unique id is not present in
        inventory_items at the time of the call.  ``candidates(ctx)`` exposes
        the same bounded stream so a caller can retry an insert race.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock,
        policy: IdentifierPolicy | None = None,
        rng: Random | None = None,
        label_renderer: LabelRenderer | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._policy = policy or IdentifierPolicy()
        self._rng = rng
        self._label_renderer = label_renderer
        self._sequences = SequenceService(session)

    def _exists(self, unique_id: str) -> bool:
        return self.session.execute(
            select(InventoryItem.id).where(InventoryItem.unique_id == unique_id)
        ).first() is not None

    def _unique_id(self, ctx: IdentifierContext, suffix: str | None = None) -> str:
        return build_unique_id(
            prefix=self._policy.unique_id_prefix,
            supplier_part_number=ctx.part.supplier_part_number,
            supplier_id=ctx.part.supplier_id,
            quantity=ctx.quantity,
            lot_id=ctx.lot_id,
            year=self._clock.now().year,
            suffix=suffix,
        )

    def candidates(self, ctx: IdentifierContext) -> Iterator[str]:
        """
        Yield unique-id candidates not currently in the store.

        Stops after ``max_attempts`` draws; the caller then raises
        ``exhausted(ctx)``.
        """
        base = self._unique_id(ctx)
        for attempt in range(self._policy.max_attempts):
            if attempt == 0:
                candidate = base
            else:
                candidate = self._unique_id(
                    ctx, random_suffix(self._policy.suffix_length, self._rng)
                )
            if self._exists(candidate):
                logger.debug(
                    "unique_id_collision",
                    extra={"candidate": candidate, "attempt": attempt + 1},
                )
                continue
            yield candidate

    def exhausted(self, ctx: IdentifierContext) -> GenerationExhaustedError:
        base = self._unique_id(ctx)
        logger.error(
            "unique_id_generation_exhausted",
            extra={"base_id": base, "attempts": self._policy.max_attempts},
        )
        return GenerationExhaustedError(base, self._policy.max_attempts)

    def next_barcode(self) -> str:
        serial = self._sequences.next_value(SequenceService.ITEM_BARCODE)
        return format_barcode(self._policy.barcode_prefix, self._clock.now(), serial)

    def qr_payload(self, unique_id: str, ctx: IdentifierContext) -> str:
        return build_qr_payload(
            QRContext(
                unique_id=unique_id,
                customer_id=str(ctx.customer.id),
                customer_name=ctx.customer.name,
                part_id=str(ctx.part.id),
                part_name=ctx.part.name,
                internal_part_no=ctx.part.internal_part_no,
                description=ctx.part.description or "",
                po_id=str(ctx.purchase_order.id),
                po_number=ctx.purchase_order.po_number,
                quantity=ctx.quantity,
                lot_id=ctx.lot_id,
                gate_id=ctx.gate_id,
                created_at=self._clock.now(),
                created_by=ctx.user.username,
            )
        )

    def render_label(self, unique_id: str) -> str | None:
        """Label image for ``unique_id`` if a renderer was injected."""
        if self._label_renderer is None:
            return None
        return self._label_renderer(unique_id)

    def generate(self, ctx: IdentifierContext) -> GeneratedIdentifiers:
        unique_id = next(self.candidates(ctx), None)
        if unique_id is None:
            raise self.exhausted(ctx)
        return GeneratedIdentifiers(
            unique_id=unique_id,
            barcode=self.next_barcode(),
            qr_payload=self.qr_payload(unique_id, ctx),
        )

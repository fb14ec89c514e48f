"""
ItemLifecycleService -- guarded status changes for inventory items.

Responsibility:
    Executes every transition declared in domain/lifecycle.py: Scan-Out,
    delete request, delete rejection, delete approval and damage marking.
    Each transition is a compare-and-swap on ``status`` followed by one
    appended history entry.

Architecture position:
    Kernel > Services.  ScanOutService delegates its state change here;
    delete-request and damage flows call it directly.

Invariants enforced:
    - Single transition table: the expected source status and the target
      come from ITEM_TRANSITIONS, never from caller-supplied values.
    - Compare-and-swap: ``UPDATE ... WHERE id = :id AND status = :expected``
      (or ``DELETE`` for approval).  Of two racing writers exactly one
      matches; the other sees zero rows and gets a typed error.
    - No partial writes: the history entry is appended only after the CAS
      matched, inside the same transaction.
    - Every non-removing transition appends exactly one history entry.

Failure modes:
    - ItemNotFoundError: no row with that id.
    - InvalidScanOutStateError: Scan-Out on a non-IN item.
    - InvalidTransitionError: any other guard violation.
    - InvalidFieldError: delete reason / notes outside the length limits.
"""

from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, selectinload

from warehouse_kernel.domain.clock import Clock
from warehouse_kernel.domain.dtos import (
    ActingUser,
    AuditAction,
    AuditEntryRequest,
    BulkDamageResult,
    BulkFailure,
    ItemInfo,
    LifecycleResult,
)
from warehouse_kernel.domain.lifecycle import ItemEvent, ItemStatus, transition_for
from warehouse_kernel.exceptions import (
    InvalidDeleteReasonError,
    InvalidFieldError,
    InvalidScanOutStateError,
    InvalidTransitionError,
    ItemNotFoundError,
    WarehouseKernelError,
)
from warehouse_kernel.logging_config import LogContext, get_logger
from warehouse_kernel.models.inventory_item import InventoryItem, ItemHistoryEntry
from warehouse_kernel.services.base import BaseService

logger = get_logger("services.item_lifecycle")

DELETE_REASON_MIN = 10
DELETE_REASON_MAX = 500
NOTES_MAX = 500

_RESOURCE = "InventoryItem"


def validate_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    notes = notes.strip()
    if len(notes) > NOTES_MAX:
        raise InvalidFieldError("notes", f"must be at most {NOTES_MAX} characters")
    return notes or None


def validate_delete_reason(reason: str | None) -> str:
    reason = (reason or "").strip()
    if not DELETE_REASON_MIN <= len(reason) <= DELETE_REASON_MAX:
        raise InvalidDeleteReasonError(
            f"must be between {DELETE_REASON_MIN} and {DELETE_REASON_MAX} characters",
        )
    return reason


class ItemLifecycleService(BaseService[InventoryItem]):
    """
    Contract:
        ``transition(item_id, event, user, ...)`` either applies the edge for
        ``event`` and returns the reloaded item (None when the edge removes
        it), or raises and leaves the row untouched.
    """

    def __init__(self, session: Session, clock: Clock):
        super().__init__(session)
        self._clock = clock

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _reload(self, item_id: UUID) -> InventoryItem | None:
        return self.session.execute(
            select(InventoryItem)
            .where(InventoryItem.id == item_id)
            .options(selectinload(InventoryItem.history))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _require(self, item_id: UUID) -> InventoryItem:
        item = self._reload(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    # ------------------------------------------------------------------
    # Core transition
    # ------------------------------------------------------------------

    def _append_history(
        self,
        item_id: UUID,
        status: ItemStatus,
        user: ActingUser,
        notes: str | None,
    ) -> ItemHistoryEntry:
        last = self.session.execute(
            select(func.coalesce(func.max(ItemHistoryEntry.sequence), 0))
            .where(ItemHistoryEntry.item_id == item_id)
        ).scalar_one()
        entry = ItemHistoryEntry(
            item_id=item_id,
            sequence=last + 1,
            status=status.value,
            timestamp=self._clock.now(),
            user_id=user.user_id,
            notes=notes,
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def _raise_guard(self, item_id: UUID, event: ItemEvent) -> None:
        transition = transition_for(event)
        item = self._reload(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        current = ItemStatus(item.status).value
        logger.info(
            "item_transition_rejected",
            extra={
                "unique_id": item.unique_id,
                "event": event.value,
                "current_status": current,
                "expected_status": transition.source.value,
            },
        )
        if event == ItemEvent.SCAN_OUT:
            raise InvalidScanOutStateError(item.unique_id, current)
        target = transition.target.value if transition.target else "REMOVED"
        raise InvalidTransitionError(item.unique_id, current, target)

    def transition(
        self,
        item_id: UUID,
        event: ItemEvent,
        user: ActingUser,
        notes: str | None = None,
        extra_values: dict | None = None,
    ) -> InventoryItem | None:
        """Apply the lifecycle edge for ``event`` as a compare-and-swap."""
        transition = transition_for(event)
        with LogContext.bind(item_id=str(item_id), actor_id=str(user.user_id)):
            if transition.removes_item:
                stmt = (
                    delete(InventoryItem)
                    .where(
                        InventoryItem.id == item_id,
                        InventoryItem.status == transition.source.value,
                    )
                    .execution_options(synchronize_session="fetch")
                )
            else:
                values = {
                    "status": transition.target.value,
                    "updated_by_id": user.user_id,
                }
                values.update(extra_values or {})
                stmt = (
                    update(InventoryItem)
                    .where(
                        InventoryItem.id == item_id,
                        InventoryItem.status == transition.source.value,
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )

            if self.session.execute(stmt).rowcount == 0:
                self._raise_guard(item_id, event)

            if transition.removes_item:
                self.session.flush()
                logger.info(
                    "item_removed",
                    extra={"event": event.value, "from_status": transition.source.value},
                )
                return None

            self._append_history(item_id, transition.target, user, notes)
            item = self._reload(item_id)
            logger.info(
                "item_transitioned",
                extra={
                    "unique_id": item.unique_id,
                    "event": event.value,
                    "from_status": transition.source.value,
                    "to_status": transition.target.value,
                },
            )
            return item

    # ------------------------------------------------------------------
    # Named flows
    # ------------------------------------------------------------------

    def scan_out(self, item_id: UUID, user: ActingUser, notes: str | None = None) -> InventoryItem:
        return self.transition(
            item_id,
            ItemEvent.SCAN_OUT,
            user,
            notes=validate_notes(notes) or "Item scanned out",
        )

    def request_delete(self, item_id: UUID, reason: str, user: ActingUser) -> LifecycleResult:
        """IN -> PENDING_DELETE, recording who asked and why."""
        reason = validate_delete_reason(reason)
        item = self.transition(
            item_id,
            ItemEvent.REQUEST_DELETE,
            user,
            notes=f"Delete requested: {reason}",
            extra_values={
                "delete_requested_by_id": user.user_id,
                "delete_requested_by": user.username,
                "delete_reason": reason,
                "delete_requested_at": self._clock.now(),
            },
        )
        return LifecycleResult(
            item_id=item.id,
            unique_id=item.unique_id,
            status=ItemStatus(item.status),
            item=ItemInfo.from_model(item),
            audit=AuditEntryRequest.for_user(
                user,
                AuditAction.DELETE_REQUEST,
                f"Delete requested for item '{item.unique_id}': {reason}",
                _RESOURCE,
                item.id,
            ),
        )

    def approve_delete(self, item_id: UUID, user: ActingUser) -> LifecycleResult:
        """PENDING_DELETE -> removed.  PO delivered quantity is not reversed."""
        item = self._require(item_id)
        unique_id = item.unique_id
        reason = item.delete_reason
        self.transition(item_id, ItemEvent.APPROVE_DELETE, user)
        return LifecycleResult(
            item_id=item_id,
            unique_id=unique_id,
            status=None,
            item=None,
            audit=AuditEntryRequest.for_user(
                user,
                AuditAction.DELETE_APPROVE,
                f"Delete request approved; item '{unique_id}' removed (reason: {reason})",
                _RESOURCE,
                item_id,
            ),
        )

    def reject_delete(
        self,
        item_id: UUID,
        user: ActingUser,
        notes: str | None = None,
    ) -> LifecycleResult:
        """PENDING_DELETE -> IN, clearing the request."""
        notes = validate_notes(notes)
        item = self.transition(
            item_id,
            ItemEvent.REJECT_DELETE,
            user,
            notes=f"Delete request rejected: {notes}" if notes else "Delete request rejected",
            extra_values={
                "delete_requested_by_id": None,
                "delete_requested_by": None,
                "delete_reason": None,
                "delete_requested_at": None,
            },
        )
        return LifecycleResult(
            item_id=item.id,
            unique_id=item.unique_id,
            status=ItemStatus(item.status),
            item=ItemInfo.from_model(item),
            audit=AuditEntryRequest.for_user(
                user,
                AuditAction.DELETE_REJECT,
                f"Delete request rejected for item '{item.unique_id}'",
                _RESOURCE,
                item.id,
            ),
        )

    def mark_damaged(
        self,
        item_id: UUID,
        user: ActingUser,
        notes: str | None = None,
    ) -> LifecycleResult:
        item = self.transition(
            item_id,
            ItemEvent.MARK_DAMAGED,
            user,
            notes=validate_notes(notes) or "Marked as damaged",
        )
        return LifecycleResult(
            item_id=item.id,
            unique_id=item.unique_id,
            status=ItemStatus(item.status),
            item=ItemInfo.from_model(item),
            audit=AuditEntryRequest.for_user(
                user,
                AuditAction.MARK_DAMAGED,
                f"Item '{item.unique_id}' marked as DAMAGED",
                _RESOURCE,
                item.id,
            ),
        )

    def bulk_mark_damaged(
        self,
        item_ids: list[UUID],
        user: ActingUser,
        notes: str | None = None,
    ) -> BulkDamageResult:
        """
        Mark each item DAMAGED independently.

        Each item runs in its own savepoint; a rejected item is reported in
        ``failed`` and does not undo the others.
        """
        notes = validate_notes(notes)
        succeeded: list[LifecycleResult] = []
        failed: list[BulkFailure] = []
        for item_id in item_ids:
            savepoint = self.session.begin_nested()
            try:
                result = self.mark_damaged(item_id, user, notes)
            except WarehouseKernelError as exc:
                savepoint.rollback()
                failed.append(BulkFailure(item_id=item_id, code=exc.code, message=str(exc)))
                continue
            savepoint.commit()
            succeeded.append(result)

        logger.info(
            "bulk_mark_damaged_completed",
            extra={"requested": len(item_ids), "succeeded": len(succeeded), "failed": len(failed)},
        )
        return BulkDamageResult(succeeded=tuple(succeeded), failed=tuple(failed))

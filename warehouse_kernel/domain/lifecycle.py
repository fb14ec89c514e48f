"""
Inventory item lifecycle -- the single transition table.

Responsibility:
    Declares the item states, the events that move an item between them,
    and the one table (ITEM_TRANSITIONS) that every mutating entry point
    consults.  Scan-Out, delete request/approve/reject and damage marking all
    resolve their guard from here, so the guards cannot drift apart.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Consumed by services/item_lifecycle.py (which turns a transition into a
    compare-and-swap UPDATE) and by the history-path checks in tests.

Invariants enforced:
    - Only IN may move to OUT, PENDING_DELETE or DAMAGED.
    - PENDING_DELETE resolves either back to IN (rejected) or to removal
      (approved).
    - OUT and DAMAGED have no outgoing transitions.
    - A history is a valid path iff it starts at IN and every consecutive
      pair of statuses is an edge of the table.

Failure modes:
    - ``check_transition`` returns None (never raises); the service layer
      decides which typed error to raise, because only it knows the item's
      unique id and the persisted status.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class ItemStatus(str, Enum):
    """Inventory item states."""

    IN = "IN"
    OUT = "OUT"
    PENDING_DELETE = "PENDING_DELETE"
    DAMAGED = "DAMAGED"


class ItemEvent(str, Enum):
    """Triggers that move an item through its lifecycle."""

    SCAN_OUT = "scan_out"
    REQUEST_DELETE = "request_delete"
    REJECT_DELETE = "reject_delete"
    APPROVE_DELETE = "approve_delete"
    MARK_DAMAGED = "mark_damaged"


@dataclass(frozen=True)
class Transition:
    """One edge of the lifecycle.  ``target`` None means the row is removed."""

    event: ItemEvent
    source: ItemStatus
    target: ItemStatus | None

    @property
    def removes_item(self) -> bool:
        return self.target is None


INITIAL_STATUS = ItemStatus.IN

ITEM_TRANSITIONS: dict[ItemEvent, Transition] = {
    ItemEvent.SCAN_OUT: Transition(
        ItemEvent.SCAN_OUT, ItemStatus.IN, ItemStatus.OUT
    ),
    # Delete requests are only accepted from IN.  OUT stays terminal.
    ItemEvent.REQUEST_DELETE: Transition(
        ItemEvent.REQUEST_DELETE, ItemStatus.IN, ItemStatus.PENDING_DELETE
    ),
    ItemEvent.REJECT_DELETE: Transition(
        ItemEvent.REJECT_DELETE, ItemStatus.PENDING_DELETE, ItemStatus.IN
    ),
    ItemEvent.APPROVE_DELETE: Transition(
        ItemEvent.APPROVE_DELETE, ItemStatus.PENDING_DELETE, None
    ),
    ItemEvent.MARK_DAMAGED: Transition(
        ItemEvent.MARK_DAMAGED, ItemStatus.IN, ItemStatus.DAMAGED
    ),
}

# Status -> statuses reachable in one step (removal excluded)
ALLOWED_STEPS: dict[ItemStatus, frozenset[ItemStatus]] = {
    status: frozenset(
        t.target
        for t in ITEM_TRANSITIONS.values()
        if t.source == status and t.target is not None
    )
    for status in ItemStatus
}


def transition_for(event: ItemEvent) -> Transition:
    """Look up the edge for ``event``."""
    return ITEM_TRANSITIONS[event]


def check_transition(event: ItemEvent, current: ItemStatus | str) -> Transition | None:
    """Return the edge if ``event`` may fire from ``current``, else None."""
    transition = ITEM_TRANSITIONS[event]
    if ItemStatus(current) != transition.source:
        return None
    return transition


def is_valid_history(statuses: Iterable[ItemStatus | str]) -> bool:
    """True if ``statuses`` is a walk through the lifecycle starting at IN."""
    previous: ItemStatus | None = None
    for raw in statuses:
        status = ItemStatus(raw)
        if previous is None:
            if status != INITIAL_STATUS:
                return False
        elif status not in ALLOWED_STEPS[previous]:
            return False
        previous = status
    return True

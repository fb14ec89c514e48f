"""
Tests for the item lifecycle transition table.

Covers:
- Every edge declared in ITEM_TRANSITIONS
- Guard lookups for allowed and refused events
- History path validation
"""

import pytest

from warehouse_kernel.domain.lifecycle import (
    ALLOWED_STEPS,
    INITIAL_STATUS,
    ITEM_TRANSITIONS,
    ItemEvent,
    ItemStatus,
    check_transition,
    is_valid_history,
    transition_for,
)


class TestTransitionTable:
    """The single source of lifecycle edges."""

    def test_every_event_has_an_edge(self):
        assert set(ITEM_TRANSITIONS) == set(ItemEvent)

    def test_new_items_start_in(self):
        assert INITIAL_STATUS == ItemStatus.IN

    @pytest.mark.parametrize(
        "event, source, target",
        [
            (ItemEvent.SCAN_OUT, ItemStatus.IN, ItemStatus.OUT),
            (ItemEvent.REQUEST_DELETE, ItemStatus.IN, ItemStatus.PENDING_DELETE),
            (ItemEvent.REJECT_DELETE, ItemStatus.PENDING_DELETE, ItemStatus.IN),
            (ItemEvent.APPROVE_DELETE, ItemStatus.PENDING_DELETE, None),
            (ItemEvent.MARK_DAMAGED, ItemStatus.IN, ItemStatus.DAMAGED),
        ],
    )
    def test_edges(self, event, source, target):
        transition = transition_for(event)
        assert transition.source == source
        assert transition.target == target

    def test_only_approval_removes_the_item(self):
        removing = [t.event for t in ITEM_TRANSITIONS.values() if t.removes_item]
        assert removing == [ItemEvent.APPROVE_DELETE]

    def test_out_and_damaged_are_terminal(self):
        assert ALLOWED_STEPS[ItemStatus.OUT] == frozenset()
        assert ALLOWED_STEPS[ItemStatus.DAMAGED] == frozenset()


class TestCheckTransition:
    """Guard lookups."""

    def test_scan_out_allowed_from_in(self):
        assert check_transition(ItemEvent.SCAN_OUT, ItemStatus.IN) is not None

    @pytest.mark.parametrize(
        "status", [ItemStatus.OUT, ItemStatus.PENDING_DELETE, ItemStatus.DAMAGED]
    )
    def test_scan_out_refused_elsewhere(self, status):
        assert check_transition(ItemEvent.SCAN_OUT, status) is None

    def test_accepts_raw_status_strings(self):
        assert check_transition(ItemEvent.REJECT_DELETE, "PENDING_DELETE") is not None

    def test_delete_request_refused_on_out_item(self):
        assert check_transition(ItemEvent.REQUEST_DELETE, ItemStatus.OUT) is None


class TestHistoryValidation:
    """History sequences must be walks through the table."""

    def test_scan_in_then_out(self):
        assert is_valid_history([ItemStatus.IN, ItemStatus.OUT])

    def test_rejected_delete_round_trip(self):
        assert is_valid_history(["IN", "PENDING_DELETE", "IN", "OUT"])

    def test_must_start_in(self):
        assert not is_valid_history([ItemStatus.OUT])

    def test_out_never_returns_to_in(self):
        assert not is_valid_history([ItemStatus.IN, ItemStatus.OUT, ItemStatus.IN])

    def test_no_repeated_scan_out(self):
        assert not is_valid_history([ItemStatus.IN, ItemStatus.OUT, ItemStatus.OUT])

    def test_empty_history_is_trivially_valid(self):
        assert is_valid_history([])

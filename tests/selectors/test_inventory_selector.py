"""
Tests for InventorySelector: listings, the delete-request queue and detail.
"""

from uuid import uuid4

import pytest

from warehouse_kernel.domain.dtos import ActingUser
from warehouse_kernel.domain.lifecycle import ItemStatus
from warehouse_kernel.exceptions import InvalidFieldError
from warehouse_kernel.selectors.item_selector import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    InventorySelector,
    ItemFilters,
)

REASON = "Label printed twice for one box"


@pytest.fixture
def selector(session):
    return InventorySelector(session)


@pytest.fixture
def stocked(scan_in, create_po, open_po, scan_out_service, acting_user):
    """Three items on open_po (one shipped) and one on a second PO."""
    kept = scan_in(open_po, quantity=4, lot_id="LOT-RED").item
    other = scan_in(open_po, quantity=6, lot_id="LOT-BLUE").item
    shipped = scan_in(open_po, quantity=8, lot_id="LOT-GREEN").item
    scan_out_service.scan_out(shipped.unique_id, acting_user)
    second_po = create_po(total_quantity=50)
    foreign = scan_in(second_po, quantity=3, lot_id="LOT-RED").item
    return {"kept": kept, "other": other, "shipped": shipped, "foreign": foreign, "po2": second_po}


class TestListItems:

    def test_status_filter(self, selector, stocked):
        page = selector.list_items(ItemFilters(status=ItemStatus.OUT))

        assert [i.id for i in page.items] == [stocked["shipped"].id]
        assert page.items[0].status == ItemStatus.OUT

    def test_po_filter(self, selector, stocked, open_po):
        page = selector.list_items(ItemFilters(po_id=open_po.id))

        assert page.total == 3
        assert {i.po_number for i in page.items} == {open_po.po_number}

    def test_customer_filter(self, selector, stocked):
        page = selector.list_items(ItemFilters(customer_id=stocked["po2"].customer_id))

        assert [i.id for i in page.items] == [stocked["foreign"].id]

    def test_search_matches_lot_case_insensitively(self, selector, stocked):
        page = selector.list_items(ItemFilters(search="lot-red"))

        assert {i.id for i in page.items} == {stocked["kept"].id, stocked["foreign"].id}

    def test_search_by_barcode(self, selector, stocked):
        page = selector.list_items(ItemFilters(search=stocked["other"].barcode))

        assert [i.id for i in page.items] == [stocked["other"].id]

    def test_pagination(self, selector, stocked, open_po):
        filters = ItemFilters(po_id=open_po.id)

        first = selector.list_items(filters, page=1, limit=2)
        second = selector.list_items(filters, page=2, limit=2)

        assert len(first.items) == 2
        assert len(second.items) == 1
        assert {i.id for i in first.items + second.items} == {
            stocked["kept"].id, stocked["other"].id, stocked["shipped"].id
        }
        assert first.pagination() == {
            "page": 1,
            "limit": 2,
            "total": 3,
            "total_pages": 2,
            "has_next_page": True,
            "has_prev_page": False,
        }
        assert not second.has_next_page
        assert second.has_prev_page

    @pytest.mark.parametrize(
        "page, limit, expected",
        [
            (0, 0, (1, DEFAULT_PAGE_SIZE)),
            (-3, None, (1, DEFAULT_PAGE_SIZE)),
            (2, 500, (2, MAX_PAGE_SIZE)),
            (None, 25, (1, 25)),
        ],
    )
    def test_page_and_limit_clamped(self, selector, db_tables, page, limit, expected):
        result = selector.list_items(page=page, limit=limit)

        assert (result.page, result.limit) == expected

    def test_empty_result(self, selector, db_tables):
        page = selector.list_items(ItemFilters(part_id=uuid4()))

        assert page.items == ()
        assert page.total == 0
        assert page.total_pages == 0
        assert not page.has_next_page

    @pytest.mark.parametrize(
        "page, limit, field",
        [("two", 10, "page"), (1, "ten", "limit"), (object(), None, "page")],
    )
    def test_non_numeric_paging_rejected(self, selector, db_tables, page, limit, field):
        with pytest.raises(InvalidFieldError) as exc_info:
            selector.list_items(page=page, limit=limit)
        assert exc_info.value.field == field

    def test_numeric_strings_accepted(self, selector, db_tables):
        result = selector.list_items(page="2", limit="5")

        assert (result.page, result.limit) == (2, 5)

    def test_unknown_status_filter_rejected(self, selector, db_tables):
        with pytest.raises(InvalidFieldError) as exc_info:
            selector.list_items(ItemFilters(status="LOST"))
        assert exc_info.value.field == "status"


class TestPendingDeleteRequests:

    def test_queue_oldest_first_and_per_requester(
        self, selector, stocked, lifecycle_service, acting_user, deterministic_clock
    ):
        colleague = ActingUser(user_id=uuid4(), username="gudang.lain")
        lifecycle_service.request_delete(stocked["other"].id, REASON, colleague)
        deterministic_clock.advance(60)
        lifecycle_service.request_delete(stocked["kept"].id, REASON, acting_user)

        everyone = selector.pending_delete_requests()
        mine = selector.pending_delete_requests(requested_by_id=acting_user.user_id)

        assert [i.id for i in everyone] == [stocked["other"].id, stocked["kept"].id]
        assert [i.id for i in mine] == [stocked["kept"].id]
        assert mine[0].delete_request.reason == REASON


class TestItemDetail:

    def test_detail_resolves_names_and_history(self, selector, stocked, open_po):
        detail = selector.get_item_detail(stocked["shipped"].id)

        assert detail.po_number == open_po.po_number
        assert detail.part_name == "Bracket Assembly"
        assert detail.history_statuses == (ItemStatus.IN, ItemStatus.OUT)

    def test_unknown_item(self, selector, db_tables):
        assert selector.get_item_detail(uuid4()) is None

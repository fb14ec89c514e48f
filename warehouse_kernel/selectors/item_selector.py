"""
Module: warehouse_kernel.selectors.item_selector
Responsibility: Read-only access to inventory items: filtered, paginated
    listings, the pending delete-request queue and single-item detail.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/dtos.py and selectors/base.py.

Invariants enforced:
    - Read-only: no mutations performed on any queried data.
    - Results are ItemInfo DTOs with part, customer and PO names resolved.
    - Page size is clamped to 1..100.

Failure modes:
    - Returns None / empty pages when nothing matches.
    - InvalidFieldError for a non-numeric page or limit, or an unknown
      status filter.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload, selectinload

from warehouse_kernel.domain.dtos import ItemInfo
from warehouse_kernel.domain.lifecycle import ItemStatus
from warehouse_kernel.exceptions import InvalidFieldError
from warehouse_kernel.models.inventory_item import InventoryItem
from warehouse_kernel.selectors.base import BaseSelector

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class ItemFilters:
    """Listing filters; None means "any"."""

    status: ItemStatus | None = None
    part_id: UUID | None = None
    po_id: UUID | None = None
    customer_id: UUID | None = None
    search: str | None = None


@dataclass(frozen=True)
class ItemPage:
    items: tuple[ItemInfo, ...]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1

    def pagination(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "total_pages": self.total_pages,
            "has_next_page": self.has_next_page,
            "has_prev_page": self.has_prev_page,
        }


def _as_int(name: str, value: object, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidFieldError(name, f"must be a whole number, got {value!r}") from None


def _clamp_page(page: object, limit: object) -> tuple[int, int]:
    page = max(_as_int("page", page, 1), 1)
    limit = min(max(_as_int("limit", limit, DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)
    return page, limit


def _status_value(status: ItemStatus | str) -> str:
    try:
        return ItemStatus(status).value
    except ValueError:
        raise InvalidFieldError(
            "status", f"must be one of {', '.join(s.value for s in ItemStatus)}"
        ) from None


class InventorySelector(BaseSelector[InventoryItem]):
    """
    Selector for inventory item queries.

    Guarantees:
        - Listings are ordered newest first, then by unique id.
        - Related rows are eager-loaded; DTO conversion issues no lazy loads.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    @staticmethod
    def _with_related(stmt):
        return stmt.options(
            joinedload(InventoryItem.part),
            joinedload(InventoryItem.customer),
            joinedload(InventoryItem.purchase_order),
            selectinload(InventoryItem.history),
        )

    @staticmethod
    def _apply_filters(stmt, filters: ItemFilters):
        if filters.status is not None:
            stmt = stmt.where(InventoryItem.status == _status_value(filters.status))
        if filters.part_id is not None:
            stmt = stmt.where(InventoryItem.part_id == filters.part_id)
        if filters.po_id is not None:
            stmt = stmt.where(InventoryItem.po_id == filters.po_id)
        if filters.customer_id is not None:
            stmt = stmt.where(InventoryItem.customer_id == filters.customer_id)
        term = (filters.search or "").strip()
        if term:
            pattern = f"%{term}%"
            stmt = stmt.where(
                or_(
                    InventoryItem.unique_id.ilike(pattern),
                    InventoryItem.lot_id.ilike(pattern),
                    InventoryItem.barcode.ilike(pattern),
                )
            )
        return stmt

    def list_items(
        self,
        filters: ItemFilters | None = None,
        page: int | None = 1,
        limit: int | None = DEFAULT_PAGE_SIZE,
    ) -> ItemPage:
        filters = filters or ItemFilters()
        page, limit = _clamp_page(page, limit)

        total = self.session.execute(
            self._apply_filters(select(func.count(InventoryItem.id)), filters)
        ).scalar_one()

        stmt = self._with_related(
            self._apply_filters(select(InventoryItem), filters)
            .order_by(InventoryItem.created_at.desc(), InventoryItem.unique_id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = self.session.execute(stmt).unique().scalars().all()

        return ItemPage(
            items=tuple(ItemInfo.from_model(row) for row in rows),
            page=page,
            limit=limit,
            total=total,
        )

    def pending_delete_requests(self, requested_by_id: UUID | None = None) -> list[ItemInfo]:
        """
        Items awaiting delete approval, oldest request first.

        Staff pass their own id to see only what they asked for; approvers
        pass None.
        """
        stmt = select(InventoryItem).where(
            InventoryItem.status == ItemStatus.PENDING_DELETE.value
        )
        if requested_by_id is not None:
            stmt = stmt.where(InventoryItem.delete_requested_by_id == requested_by_id)
        stmt = self._with_related(
            stmt.order_by(InventoryItem.delete_requested_at, InventoryItem.unique_id)
        )
        rows = self.session.execute(stmt).unique().scalars().all()
        return [ItemInfo.from_model(row) for row in rows]

    def get_item_detail(self, item_id: UUID) -> ItemInfo | None:
        stmt = self._with_related(select(InventoryItem).where(InventoryItem.id == item_id))
        row = self.session.execute(stmt).unique().scalar_one_or_none()
        return ItemInfo.from_model(row) if row is not None else None

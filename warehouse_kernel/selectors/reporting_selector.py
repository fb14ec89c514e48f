"""
Module: warehouse_kernel.selectors.reporting_selector
Responsibility: Dashboard and report aggregates derived from item history:
    today's counters, bucketed Scan-In/Scan-Out activity, the stock summary
    by status and Scan-Out volume per customer.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.

Invariants enforced:
    - Read-only.
    - Everything is derived from inventory_item_history; there are no stored
      counters.  A Scan-In is the item's first history entry (sequence 1),
      so an IN entry appended by a rejected delete request never counts as
      intake.  A Scan-Out is any OUT entry.
    - Calendar boundaries (today, days, months) are evaluated in the
      configured reporting timezone.  Results do not depend on the order in
      which scans happened.

Failure modes:
    - InvalidFieldError: naive datetimes, an empty range or an unknown
      granularity.
"""

from bisect import bisect_right
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from enum import Enum
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from warehouse_kernel.domain.lifecycle import ItemStatus
from warehouse_kernel.exceptions import InvalidFieldError
from warehouse_kernel.models.customer import Customer
from warehouse_kernel.models.inventory_item import InventoryItem, ItemHistoryEntry
from warehouse_kernel.selectors.base import BaseSelector


class ActivityGranularity(str, Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class TodayCounters:
    day: date
    items_in: int
    quantity_in: int
    items_out: int
    quantity_out: int


@dataclass(frozen=True)
class ActivityBucket:
    """Scan totals for one period; ``start`` is local to the reporting timezone."""

    start: datetime
    scan_in_count: int = 0
    scan_in_quantity: int = 0
    scan_out_count: int = 0
    scan_out_quantity: int = 0


@dataclass(frozen=True)
class StatusTotals:
    status: ItemStatus
    item_count: int
    quantity: int


@dataclass(frozen=True)
class InventorySummary:
    by_status: tuple[StatusTotals, ...]

    @property
    def total_items(self) -> int:
        return sum(row.item_count for row in self.by_status)

    @property
    def total_quantity(self) -> int:
        return sum(row.quantity for row in self.by_status)

    def for_status(self, status: ItemStatus) -> StatusTotals:
        return next(row for row in self.by_status if row.status == status)


@dataclass(frozen=True)
class CustomerScanOut:
    customer_id: UUID
    customer_name: str
    item_count: int
    quantity: int


def _require_aware(name: str, moment: datetime) -> None:
    if moment.tzinfo is None or moment.utcoffset() is None:
        raise InvalidFieldError(name, "must be timezone-aware")


def _add_month(moment: datetime) -> datetime:
    if moment.month == 12:
        return moment.replace(year=moment.year + 1, month=1)
    return moment.replace(month=moment.month + 1)


# Scan-In is the first history entry; Scan-Out is any OUT entry
_IS_SCAN_IN = and_(
    ItemHistoryEntry.sequence == 1,
    ItemHistoryEntry.status == ItemStatus.IN.value,
)
_IS_SCAN_OUT = ItemHistoryEntry.status == ItemStatus.OUT.value


class ReportingSelector(BaseSelector[ItemHistoryEntry]):
    """
    Contract:
        All window arguments are timezone-aware; windows are half-open
        ``[start, end)``.
    """

    def __init__(self, session: Session, tz: tzinfo | str = timezone.utc):
        super().__init__(session)
        self._tz = ZoneInfo(tz) if isinstance(tz, str) else tz

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _local_day_bounds(self, now: datetime) -> tuple[date, datetime, datetime]:
        day = now.astimezone(self._tz).date()
        start = datetime(day.year, day.month, day.day, tzinfo=self._tz)
        end = start.replace(tzinfo=None) + timedelta(days=1)
        return day, start, end.replace(tzinfo=self._tz)

    def _scan_rows(self, start: datetime, end: datetime):
        """(timestamp, is_scan_in, quantity) for every scan in the window."""
        stmt = (
            select(ItemHistoryEntry.timestamp, ItemHistoryEntry.status, ItemHistoryEntry.sequence,
                   InventoryItem.quantity)
            .join(InventoryItem, InventoryItem.id == ItemHistoryEntry.item_id)
            .where(
                ItemHistoryEntry.timestamp >= start,
                ItemHistoryEntry.timestamp < end,
                or_(_IS_SCAN_IN, _IS_SCAN_OUT),
            )
        )
        for timestamp, status, sequence, quantity in self.session.execute(stmt):
            yield timestamp, status == ItemStatus.IN.value and sequence == 1, quantity

    def _boundaries(
        self, start: datetime, end: datetime, granularity: ActivityGranularity
    ) -> list[datetime]:
        """
        UTC start instants of every bucket from the one containing ``start``
        up to ``end``.

        Hours step in absolute time, so the repeated hour when clocks fall
        back is its own bucket.  Days and months step on the local calendar.
        """
        local = start.astimezone(self._tz)
        if granularity == ActivityGranularity.HOURLY:
            into_hour = timedelta(
                minutes=local.minute, seconds=local.second, microseconds=local.microsecond
            )
            moment = start.astimezone(timezone.utc) - into_hour
            bounds = []
            while moment < end:
                bounds.append(moment)
                moment += timedelta(hours=1)
            return bounds

        wall = local.replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None, fold=0)
        if granularity == ActivityGranularity.MONTHLY:
            wall = wall.replace(day=1)
        bounds = []
        while True:
            moment = wall.replace(tzinfo=self._tz).astimezone(timezone.utc)
            if moment >= end:
                return bounds
            bounds.append(moment)
            if granularity == ActivityGranularity.MONTHLY:
                wall = _add_month(wall)
            else:
                wall += timedelta(days=1)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def today_counters(self, now: datetime) -> TodayCounters:
        """Scan-In and Scan-Out totals for the local calendar day containing ``now``."""
        _require_aware("now", now)
        day, start, end = self._local_day_bounds(now)

        items_in = quantity_in = items_out = quantity_out = 0
        for _, is_scan_in, quantity in self._scan_rows(start, end):
            if is_scan_in:
                items_in += 1
                quantity_in += quantity
            else:
                items_out += 1
                quantity_out += quantity

        return TodayCounters(
            day=day,
            items_in=items_in,
            quantity_in=quantity_in,
            items_out=items_out,
            quantity_out=quantity_out,
        )

    def activity(
        self,
        start: datetime,
        end: datetime,
        granularity: ActivityGranularity | str = ActivityGranularity.DAILY,
    ) -> list[ActivityBucket]:
        """
        Scan activity bucketed by hour, day or month, zero-filled.

        The first bucket is the one containing ``start``; buckets continue
        up to (not including) ``end``.
        """
        _require_aware("start", start)
        _require_aware("end", end)
        if start >= end:
            raise InvalidFieldError("end", "must be after start")
        try:
            granularity = ActivityGranularity(granularity)
        except ValueError:
            raise InvalidFieldError(
                "granularity",
                f"must be one of {', '.join(g.value for g in ActivityGranularity)}",
            ) from None

        bounds = self._boundaries(start, end, granularity)
        totals = [[0, 0, 0, 0] for _ in bounds]

        for timestamp, is_scan_in, quantity in self._scan_rows(start, end):
            bucket = totals[max(bisect_right(bounds, timestamp) - 1, 0)]
            if is_scan_in:
                bucket[0] += 1
                bucket[1] += quantity
            else:
                bucket[2] += 1
                bucket[3] += quantity

        return [
            ActivityBucket(
                start=moment.astimezone(self._tz),
                scan_in_count=counts[0],
                scan_in_quantity=counts[1],
                scan_out_count=counts[2],
                scan_out_quantity=counts[3],
            )
            for moment, counts in zip(bounds, totals)
        ]

    def inventory_summary(self) -> InventorySummary:
        """Current item count and quantity for every status (zero-filled)."""
        rows = self.session.execute(
            select(
                InventoryItem.status,
                func.count(InventoryItem.id),
                func.coalesce(func.sum(InventoryItem.quantity), 0),
            ).group_by(InventoryItem.status)
        ).all()
        found = {status: (count, quantity) for status, count, quantity in rows}
        return InventorySummary(
            by_status=tuple(
                StatusTotals(
                    status=status,
                    item_count=found.get(status.value, (0, 0))[0],
                    quantity=int(found.get(status.value, (0, 0))[1]),
                )
                for status in ItemStatus
            )
        )

    def scan_out_by_customer(self, start: datetime, end: datetime) -> list[CustomerScanOut]:
        """Scan-Out volume per customer in ``[start, end)``, largest first."""
        _require_aware("start", start)
        _require_aware("end", end)
        quantity = func.coalesce(func.sum(InventoryItem.quantity), 0)
        stmt = (
            select(
                Customer.id,
                Customer.name,
                func.count(ItemHistoryEntry.id),
                quantity,
            )
            .select_from(ItemHistoryEntry)
            .join(InventoryItem, InventoryItem.id == ItemHistoryEntry.item_id)
            .join(Customer, Customer.id == InventoryItem.customer_id)
            .where(
                _IS_SCAN_OUT,
                ItemHistoryEntry.timestamp >= start,
                ItemHistoryEntry.timestamp < end,
            )
            .group_by(Customer.id, Customer.name)
            .order_by(quantity.desc(), Customer.name)
        )
        return [
            CustomerScanOut(
                customer_id=customer_id,
                customer_name=name,
                item_count=count,
                quantity=int(total),
            )
            for customer_id, name, count, total in self.session.execute(stmt)
        ]

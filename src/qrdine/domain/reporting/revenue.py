from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from qrdine.domain.bill.entities import Bill, BillStatus
from qrdine.domain.common.ids import MenuItemId
from qrdine.domain.reporting.time_window import LocalDayWindow, to_local_date_string


class RevenueRange(str, Enum):
    TODAY = "today"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"

    @property
    def days(self) -> int:
        return _RANGE_DAYS[self]


_RANGE_DAYS: dict[RevenueRange, int] = {
    RevenueRange.TODAY: 1,
    RevenueRange.LAST_7_DAYS: 7,
    RevenueRange.LAST_30_DAYS: 30,
}

_RANGE_ALIASES: dict[str, RevenueRange] = {
    "today": RevenueRange.TODAY,
    "7d": RevenueRange.LAST_7_DAYS,
    "7days": RevenueRange.LAST_7_DAYS,
    "30d": RevenueRange.LAST_30_DAYS,
    "30days": RevenueRange.LAST_30_DAYS,
    "month": RevenueRange.LAST_30_DAYS,
}

ACCEPTED_RANGES = [item.value for item in RevenueRange]


class InvalidRangeError(Exception):
    def __init__(self, raw: str) -> None:
        super().__init__(f"invalid range: {raw}. Use {'|'.join(ACCEPTED_RANGES)}")
        self.details = {"accepted": list(ACCEPTED_RANGES)}


def parse_revenue_range(raw: str) -> RevenueRange:
    normalized = raw.strip().lower() if isinstance(raw, str) else ""
    revenue_range = _RANGE_ALIASES.get(normalized)
    if revenue_range is None:
        raise InvalidRangeError(str(raw))
    return revenue_range


@dataclass(frozen=True)
class DailyRevenue:
    date: str
    revenue_cents: int
    bills: int


@dataclass(frozen=True)
class RevenueTotals:
    total_bills: int
    total_revenue_cents: int
    daily: list[DailyRevenue]


@dataclass(frozen=True)
class ItemRevenue:
    item_id: MenuItemId
    name: str
    quantity: int
    revenue_cents: int


def closed_bills_in_window(bills: list[Bill], window: LocalDayWindow) -> list[Bill]:
    return [
        bill
        for bill in bills
        if bill.status == BillStatus.CLOSED and window.contains(bill.closed_at)
    ]


def daily_breakdown(bills: list[Bill], window: LocalDayWindow) -> list[DailyRevenue]:
    buckets: dict[str, list[int]] = {day: [0, 0] for day in window.local_dates()}
    for bill in closed_bills_in_window(bills, window):
        day = to_local_date_string(bill.closed_at, window.offset_minutes)
        bucket = buckets.get(day)
        if bucket is None:
            continue
        bucket[0] += bill.grand_total.amount_cents
        bucket[1] += 1

    return [
        DailyRevenue(date=day, revenue_cents=revenue_cents, bills=count)
        for day, (revenue_cents, count) in buckets.items()
    ]


def summarize_revenue(bills: list[Bill], window: LocalDayWindow) -> RevenueTotals:
    daily = daily_breakdown(bills, window)
    return RevenueTotals(
        total_bills=sum(day.bills for day in daily),
        total_revenue_cents=sum(day.revenue_cents for day in daily),
        daily=daily,
    )


def top_items(bills: list[Bill], window: LocalDayWindow, limit: int) -> list[ItemRevenue]:
    grouped: dict[MenuItemId, ItemRevenue] = {}
    for bill in closed_bills_in_window(bills, window):
        for line in bill.lines:
            previous = grouped.get(line.item_id)
            if previous is None:
                grouped[line.item_id] = ItemRevenue(
                    item_id=line.item_id,
                    name=line.name,
                    quantity=line.quantity,
                    revenue_cents=line.line_total.amount_cents,
                )
                continue
            grouped[line.item_id] = ItemRevenue(
                item_id=previous.item_id,
                name=previous.name,
                quantity=previous.quantity + line.quantity,
                revenue_cents=previous.revenue_cents + line.line_total.amount_cents,
            )

    ranked = sorted(grouped.values(), key=lambda item: item.revenue_cents, reverse=True)
    return ranked[:limit]

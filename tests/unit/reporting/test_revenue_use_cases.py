from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from qrdine.application.errors import DependencyFailureError
from qrdine.application.ports.repositories import StorageError
from qrdine.application.use_cases.revenue import (
    InvalidRevenueQueryError,
    RestaurantNotFoundError,
    RevenueSummary,
    RevenueTrend,
    TopItems,
)
from qrdine.domain.bill.entities import Bill, BillLine
from qrdine.domain.common.ids import BillId, MenuItemId, OrderId, RestaurantId, TableId
from qrdine.domain.common.money import Money
from qrdine.domain.reporting.revenue import InvalidRangeError
from qrdine.domain.restaurant.entities import RestaurantSettings

NOW = datetime(2024, 1, 16, 10, 0, tzinfo=timezone.utc)


class FakeBillRepository:
    def __init__(self, bills: list[Bill], fail: bool = False) -> None:
        self._bills = bills
        self._fail = fail
        self.windows: list[tuple[datetime, datetime]] = []

    def find_bills_in_window(
        self,
        restaurant_id: RestaurantId,
        start_utc: datetime,
        end_utc: datetime,
    ) -> list[Bill]:
        if self._fail:
            raise StorageError("statement timeout")
        self.windows.append((start_utc, end_utc))
        return [bill for bill in self._bills if start_utc <= bill.closed_at <= end_utc]


class FakeRestaurantRepository:
    def __init__(self, settings: RestaurantSettings | None) -> None:
        self._settings = settings

    def get_settings(self, restaurant_id: RestaurantId) -> RestaurantSettings | None:
        return self._settings


def _settings(offset: int = 330) -> RestaurantSettings:
    return RestaurantSettings(
        restaurant_id=RestaurantId("rst_001"),
        utc_offset_minutes=offset,
        currency="INR",
    )


def _bill(bill_id: str, closed_at: datetime, cents: int, item_id: str = "itm_a") -> Bill:
    line = BillLine(
        item_id=MenuItemId(item_id),
        name=item_id.upper(),
        unit_price=Money(amount_cents=cents, currency="INR"),
        quantity=1,
        line_total=Money(amount_cents=cents, currency="INR"),
    )
    return Bill(
        bill_id=BillId(bill_id),
        restaurant_id=RestaurantId("rst_001"),
        table_id=TableId("tbl_001"),
        order_ids=[OrderId(f"ord_{bill_id}")],
        lines=[line],
        subtotal=line.line_total,
        tax_amount=Money.zero("INR"),
        grand_total=line.line_total,
        closed_at=closed_at,
    )


def _bills() -> list[Bill]:
    return [
        _bill("bil_001", datetime(2024, 1, 15, 19, 0, tzinfo=timezone.utc), 10000),
        _bill("bil_002", datetime(2024, 1, 16, 8, 0, tzinfo=timezone.utc), 5001, "itm_b"),
        _bill("bil_003", datetime(2024, 1, 16, 9, 0, tzinfo=timezone.utc), 5000, "itm_b"),
        _bill("bil_004", datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc), 7000),
    ]


def test_summary_uses_the_restaurant_local_day() -> None:
    bills = FakeBillRepository(_bills())
    use_case = RevenueSummary(bills, FakeRestaurantRepository(_settings()), now=lambda: NOW)

    response = use_case.execute(RestaurantId("rst_001"), "today")

    assert bills.windows == [
        (
            datetime(2024, 1, 15, 18, 30, tzinfo=timezone.utc),
            datetime(2024, 1, 16, 18, 29, 59, 999999, tzinfo=timezone.utc),
        )
    ]
    assert response.range == "today"
    assert response.currency == "INR"
    assert response.totalBills == 3
    assert response.totalRevenue == 200.01
    assert response.averageBillValue == 66.67
    assert response.averageBill == response.averageBillValue
    assert [(day.date, day.bills) for day in response.dailyBreakdown] == [("2024-01-16", 3)]


def test_summary_with_no_bills_reports_zero_average() -> None:
    use_case = RevenueSummary(
        FakeBillRepository([]),
        FakeRestaurantRepository(_settings()),
        now=lambda: NOW,
    )

    response = use_case.execute(RestaurantId("rst_001"), "7d")

    assert response.totalBills == 0
    assert response.totalRevenue == 0.0
    assert response.averageBillValue == 0.0
    assert len(response.dailyBreakdown) == 7


def test_trend_lists_every_day_in_range() -> None:
    use_case = RevenueTrend(
        FakeBillRepository(_bills()),
        FakeRestaurantRepository(_settings(offset=0)),
        now=lambda: NOW,
    )

    response = use_case.execute(RestaurantId("rst_001"), "30d")

    assert len(response.daily) == 30
    assert response.daily[-1].date == "2024-01-16"
    assert response.daily[-2].revenue == 170.0
    assert response.daily[-1].revenue == 100.01


def test_top_items_ranks_window_lines() -> None:
    use_case = TopItems(
        FakeBillRepository(_bills()),
        FakeRestaurantRepository(_settings()),
        now=lambda: NOW,
    )

    response = use_case.execute(RestaurantId("rst_001"), "today", limit=2)

    assert [(item.itemId, item.quantity, item.revenue) for item in response.items] == [
        ("itm_b", 2, 100.01),
        ("itm_a", 1, 100.0),
    ]


@pytest.mark.parametrize("limit", [0, 51])
def test_top_items_limit_out_of_bounds_is_rejected(limit: int) -> None:
    bills = FakeBillRepository(_bills())
    use_case = TopItems(bills, FakeRestaurantRepository(_settings()), now=lambda: NOW)

    with pytest.raises(InvalidRevenueQueryError):
        use_case.execute(RestaurantId("rst_001"), "today", limit=limit)
    assert bills.windows == []


def test_invalid_range_is_rejected() -> None:
    use_case = RevenueSummary(
        FakeBillRepository(_bills()),
        FakeRestaurantRepository(_settings()),
        now=lambda: NOW,
    )

    with pytest.raises(InvalidRangeError):
        use_case.execute(RestaurantId("rst_001"), "quarter")


def test_unknown_restaurant_raises_not_found() -> None:
    use_case = RevenueSummary(FakeBillRepository([]), FakeRestaurantRepository(None), now=lambda: NOW)

    with pytest.raises(RestaurantNotFoundError):
        use_case.execute(RestaurantId("rst_404"), "today")


def test_storage_failure_surfaces_as_dependency_failure() -> None:
    use_case = RevenueSummary(
        FakeBillRepository([], fail=True),
        FakeRestaurantRepository(_settings()),
        now=lambda: NOW,
    )

    with pytest.raises(DependencyFailureError):
        use_case.execute(RestaurantId("rst_001"), "today")

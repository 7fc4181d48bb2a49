from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal

from qrdine.application.dto.responses import (
    DailyRevenueResponse,
    RevenueSummaryResponse,
    RevenueTrendResponse,
    TopItemResponse,
    TopItemsResponse,
)
from qrdine.application.errors import storage_guard
from qrdine.application.mappers.bill_mapper import cents_to_amount
from qrdine.application.metrics.order_lifecycle import record_revenue_query
from qrdine.application.ports.repositories import BillRepository, RestaurantRepository
from qrdine.domain.bill.entities import Bill
from qrdine.domain.common.ids import RestaurantId
from qrdine.domain.reporting.revenue import (
    DailyRevenue,
    RevenueRange,
    parse_revenue_range,
    summarize_revenue,
    top_items,
)
from qrdine.domain.reporting.time_window import LocalDayWindow, local_day_window
from qrdine.domain.restaurant.entities import RestaurantSettings

DEFAULT_TOP_ITEMS_LIMIT = 10
MAX_TOP_ITEMS_LIMIT = 50


class RestaurantNotFoundError(Exception):
    pass


class InvalidRevenueQueryError(Exception):
    pass


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _daily_response(daily: list[DailyRevenue]) -> list[DailyRevenueResponse]:
    return [
        DailyRevenueResponse(
            date=day.date,
            revenue=cents_to_amount(day.revenue_cents),
            bills=day.bills,
        )
        for day in daily
    ]


class _RevenueQuery:
    report = "revenue"

    def __init__(
        self,
        bill_repository: BillRepository,
        restaurant_repository: RestaurantRepository,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._bill_repository = bill_repository
        self._restaurant_repository = restaurant_repository
        self._now = now or _utc_now

    def _load(
        self,
        restaurant_id: RestaurantId,
        raw_range: str,
    ) -> tuple[RevenueRange, RestaurantSettings, LocalDayWindow, list[Bill]]:
        revenue_range = parse_revenue_range(raw_range)
        with storage_guard(self.report, restaurant_id=str(restaurant_id)):
            settings = self._restaurant_repository.get_settings(restaurant_id)
            if settings is None:
                raise RestaurantNotFoundError(f"restaurant {restaurant_id} not found")

            window = local_day_window(
                now_utc=self._now(),
                offset_minutes=settings.utc_offset_minutes,
                days=revenue_range.days,
            )
            bills = self._bill_repository.find_bills_in_window(
                restaurant_id=restaurant_id,
                start_utc=window.start_utc,
                end_utc=window.end_utc,
            )
        record_revenue_query(report=self.report, range_key=revenue_range.value)
        return revenue_range, settings, window, bills


class RevenueSummary(_RevenueQuery):
    report = "revenue_summary"

    def execute(self, restaurant_id: RestaurantId, raw_range: str) -> RevenueSummaryResponse:
        revenue_range, settings, window, bills = self._load(restaurant_id, raw_range)
        totals = summarize_revenue(bills, window)

        average_cents = (
            Decimal(totals.total_revenue_cents) / totals.total_bills
            if totals.total_bills
            else Decimal(0)
        )
        average = cents_to_amount(average_cents)
        return RevenueSummaryResponse(
            range=revenue_range.value,
            currency=settings.currency,
            totalBills=totals.total_bills,
            totalRevenue=cents_to_amount(totals.total_revenue_cents),
            averageBillValue=average,
            averageBill=average,
            dailyBreakdown=_daily_response(totals.daily),
        )


class RevenueTrend(_RevenueQuery):
    report = "revenue_trend"

    def execute(self, restaurant_id: RestaurantId, raw_range: str) -> RevenueTrendResponse:
        revenue_range, settings, window, bills = self._load(restaurant_id, raw_range)
        totals = summarize_revenue(bills, window)
        return RevenueTrendResponse(
            range=revenue_range.value,
            currency=settings.currency,
            daily=_daily_response(totals.daily),
        )


class TopItems(_RevenueQuery):
    report = "top_items"

    def execute(
        self,
        restaurant_id: RestaurantId,
        raw_range: str,
        limit: int = DEFAULT_TOP_ITEMS_LIMIT,
    ) -> TopItemsResponse:
        if limit < 1 or limit > MAX_TOP_ITEMS_LIMIT:
            raise InvalidRevenueQueryError(f"limit must be between 1 and {MAX_TOP_ITEMS_LIMIT}")

        revenue_range, settings, window, bills = self._load(restaurant_id, raw_range)
        ranked = top_items(bills, window, limit)
        return TopItemsResponse(
            range=revenue_range.value,
            currency=settings.currency,
            items=[
                TopItemResponse(
                    itemId=str(item.item_id),
                    name=item.name,
                    quantity=item.quantity,
                    revenue=cents_to_amount(item.revenue_cents),
                )
                for item in ranked
            ],
        )

from __future__ import annotations

from fastapi import APIRouter, Query

from qrdine.application.dto.responses import (
    RevenueSummaryResponse,
    RevenueTrendResponse,
    TopItemsResponse,
)
from qrdine.application.use_cases.revenue import (
    DEFAULT_TOP_ITEMS_LIMIT,
    RevenueSummary,
    RevenueTrend,
    TopItems,
)
from qrdine.domain.common.ids import RestaurantId
from qrdine.infrastructure.db.repositories.bill_repo import SqlAlchemyBillRepository
from qrdine.infrastructure.db.repositories.restaurant_repo import SqlAlchemyRestaurantRepository

router = APIRouter()

DEFAULT_RANGE = "today"


def _revenue_summary_use_case() -> RevenueSummary:
    return RevenueSummary(
        bill_repository=SqlAlchemyBillRepository(),
        restaurant_repository=SqlAlchemyRestaurantRepository(),
    )


def _revenue_trend_use_case() -> RevenueTrend:
    return RevenueTrend(
        bill_repository=SqlAlchemyBillRepository(),
        restaurant_repository=SqlAlchemyRestaurantRepository(),
    )


def _top_items_use_case() -> TopItems:
    return TopItems(
        bill_repository=SqlAlchemyBillRepository(),
        restaurant_repository=SqlAlchemyRestaurantRepository(),
    )


@router.get(
    "/v1/restaurants/{restaurant_id}/revenue/summary",
    response_model=RevenueSummaryResponse,
)
def revenue_summary(
    restaurant_id: str,
    range_: str = Query(default=DEFAULT_RANGE, alias="range"),
) -> RevenueSummaryResponse:
    return _revenue_summary_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        raw_range=range_,
    )


@router.get(
    "/v1/restaurants/{restaurant_id}/revenue/trend",
    response_model=RevenueTrendResponse,
)
def revenue_trend(
    restaurant_id: str,
    range_: str = Query(default=DEFAULT_RANGE, alias="range"),
) -> RevenueTrendResponse:
    return _revenue_trend_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        raw_range=range_,
    )


@router.get(
    "/v1/restaurants/{restaurant_id}/revenue/top-items",
    response_model=TopItemsResponse,
)
def revenue_top_items(
    restaurant_id: str,
    range_: str = Query(default=DEFAULT_RANGE, alias="range"),
    limit: int = Query(default=DEFAULT_TOP_ITEMS_LIMIT),
) -> TopItemsResponse:
    return _top_items_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        raw_range=range_,
        limit=limit,
    )

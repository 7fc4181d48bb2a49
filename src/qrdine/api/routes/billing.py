from __future__ import annotations

from fastapi import APIRouter, Header, Query

from qrdine.api.request_context import actor_context, trace_context
from qrdine.application.dto.requests import CloseBillRequest
from qrdine.application.dto.responses import (
    BillHistoryResponse,
    BillResponse,
    OpenBillResponse,
    RecentBillsResponse,
)
from qrdine.application.use_cases.billing import (
    CloseBill,
    GetBill,
    GetBillHistory,
    PreviewOpenBill,
    RecentBills,
)
from qrdine.domain.common.ids import BillId, RestaurantId, TableId
from qrdine.infrastructure.db.repositories.bill_repo import SqlAlchemyBillRepository
from qrdine.infrastructure.db.repositories.order_repo import SqlAlchemyOrderRepository
from qrdine.infrastructure.db.repositories.restaurant_repo import SqlAlchemyRestaurantRepository
from qrdine.infrastructure.messaging.redis_publisher import RedisEventPublisher

router = APIRouter()


def _preview_open_bill_use_case() -> PreviewOpenBill:
    return PreviewOpenBill(
        order_repository=SqlAlchemyOrderRepository(),
        restaurant_repository=SqlAlchemyRestaurantRepository(),
    )


def _close_bill_use_case() -> CloseBill:
    return CloseBill(
        order_repository=SqlAlchemyOrderRepository(),
        bill_repository=SqlAlchemyBillRepository(),
        publisher=RedisEventPublisher(),
    )


def _bill_history_use_case() -> GetBillHistory:
    return GetBillHistory(bill_repository=SqlAlchemyBillRepository())


def _get_bill_use_case() -> GetBill:
    return GetBill(bill_repository=SqlAlchemyBillRepository())


def _recent_bills_use_case() -> RecentBills:
    return RecentBills(bill_repository=SqlAlchemyBillRepository())


@router.get(
    "/v1/restaurants/{restaurant_id}/tables/{table_id}/bill",
    response_model=OpenBillResponse,
)
def preview_open_bill(restaurant_id: str, table_id: str) -> OpenBillResponse:
    return _preview_open_bill_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        table_id=TableId(table_id),
    )


@router.post(
    "/v1/restaurants/{restaurant_id}/tables/{table_id}/bill/close",
    response_model=BillResponse,
)
def close_bill(
    restaurant_id: str,
    table_id: str,
    x_actor_id: str | None = Header(default=None),
) -> BillResponse:
    actor = actor_context(x_actor_id)
    return _close_bill_use_case().execute(
        request_dto=CloseBillRequest(
            restaurant_id=restaurant_id,
            table_id=table_id,
            actor_id=str(actor.actor_id) if actor.actor_id else None,
        ),
        trace_ctx=trace_context(),
    )


@router.get(
    "/v1/restaurants/{restaurant_id}/tables/{table_id}/bills",
    response_model=BillHistoryResponse,
)
def bill_history(restaurant_id: str, table_id: str) -> BillHistoryResponse:
    return _bill_history_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        table_id=TableId(table_id),
    )


@router.get("/v1/restaurants/{restaurant_id}/bills", response_model=RecentBillsResponse)
def recent_bills(
    restaurant_id: str,
    limit: int = Query(default=20),
) -> RecentBillsResponse:
    return _recent_bills_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        limit=limit,
    )


@router.get("/v1/restaurants/{restaurant_id}/bills/{bill_id}", response_model=BillResponse)
def get_bill(restaurant_id: str, bill_id: str) -> BillResponse:
    return _get_bill_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        bill_id=BillId(bill_id),
    )

from __future__ import annotations

from fastapi import APIRouter, Header, status

from qrdine.api.request_context import actor_context, trace_context
from qrdine.application.dto.requests import PlaceOrderRequest, UpdateOrderStatusRequest
from qrdine.application.dto.responses import (
    LiveOrdersResponse,
    OrderResponse,
    SessionOrdersResponse,
)
from qrdine.application.use_cases.get_order import GetOrder, SessionOrders
from qrdine.application.use_cases.live_orders import LiveOrdersByTable
from qrdine.application.use_cases.place_order import PlaceOrder
from qrdine.application.use_cases.update_order_status import UpdateOrderStatus
from qrdine.domain.common.ids import OrderId, RestaurantId, SessionId, TableId
from qrdine.infrastructure.db.repositories.menu_repo import SqlAlchemyMenuRepository
from qrdine.infrastructure.db.repositories.order_repo import SqlAlchemyOrderRepository
from qrdine.infrastructure.db.repositories.table_repo import SqlAlchemyTableRepository
from qrdine.infrastructure.messaging.redis_publisher import RedisEventPublisher

router = APIRouter()


def _place_order_use_case() -> PlaceOrder:
    return PlaceOrder(
        menu_repository=SqlAlchemyMenuRepository(),
        table_repository=SqlAlchemyTableRepository(),
        order_repository=SqlAlchemyOrderRepository(),
        publisher=RedisEventPublisher(),
    )


def _get_order_use_case() -> GetOrder:
    return GetOrder(order_repository=SqlAlchemyOrderRepository())


def _session_orders_use_case() -> SessionOrders:
    return SessionOrders(order_repository=SqlAlchemyOrderRepository())


def _update_order_status_use_case() -> UpdateOrderStatus:
    return UpdateOrderStatus(
        order_repository=SqlAlchemyOrderRepository(),
        publisher=RedisEventPublisher(),
    )


def _live_orders_use_case() -> LiveOrdersByTable:
    return LiveOrdersByTable(order_repository=SqlAlchemyOrderRepository())


@router.post(
    "/v1/restaurants/{restaurant_id}/tables/{table_id}/orders",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
)
def place_order(
    restaurant_id: str,
    table_id: str,
    request_dto: PlaceOrderRequest,
) -> OrderResponse:
    return _place_order_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        table_id=TableId(table_id),
        request_dto=request_dto,
        trace_ctx=trace_context(),
    )


@router.get("/v1/orders/{order_id}", response_model=OrderResponse)
def get_order(order_id: str) -> OrderResponse:
    return _get_order_use_case().execute(order_id=OrderId(order_id))


@router.patch("/v1/orders/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: str,
    request_dto: UpdateOrderStatusRequest,
    x_actor_id: str | None = Header(default=None),
) -> OrderResponse:
    return _update_order_status_use_case().execute(
        order_id=OrderId(order_id),
        request_dto=request_dto,
        actor=actor_context(x_actor_id),
        trace_ctx=trace_context(),
    )


@router.get("/v1/sessions/{session_id}/orders", response_model=SessionOrdersResponse)
def session_orders(session_id: str) -> SessionOrdersResponse:
    return _session_orders_use_case().execute(session_id=SessionId(session_id))


@router.get("/v1/restaurants/{restaurant_id}/orders/live", response_model=LiveOrdersResponse)
def live_orders(restaurant_id: str) -> LiveOrdersResponse:
    return _live_orders_use_case().execute(restaurant_id=RestaurantId(restaurant_id))

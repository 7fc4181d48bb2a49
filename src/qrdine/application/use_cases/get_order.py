from __future__ import annotations

from qrdine.application.dto.responses import OrderResponse, SessionOrdersResponse
from qrdine.application.errors import storage_guard
from qrdine.application.mappers.order_mapper import to_order_response
from qrdine.application.ports.repositories import OrderRepository
from qrdine.domain.common.ids import OrderId, SessionId


class OrderNotFoundError(Exception):
    pass


class GetOrder:
    def __init__(self, order_repository: OrderRepository) -> None:
        self._order_repository = order_repository

    def execute(self, order_id: OrderId) -> OrderResponse:
        with storage_guard("get_order", order_id=str(order_id)):
            order = self._order_repository.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"order {order_id} not found")
        return to_order_response(order)


class SessionOrders:
    def __init__(self, order_repository: OrderRepository) -> None:
        self._order_repository = order_repository

    def execute(self, session_id: SessionId) -> SessionOrdersResponse:
        with storage_guard("session_orders"):
            orders = self._order_repository.list_for_session(session_id)
        ordered = sorted(orders, key=lambda order: order.created_at, reverse=True)
        return SessionOrdersResponse(
            sessionId=str(session_id),
            orders=[to_order_response(order) for order in ordered],
        )

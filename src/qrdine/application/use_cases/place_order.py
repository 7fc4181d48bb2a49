from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from qrdine.application.dto.requests import PlaceOrderRequest
from qrdine.application.dto.responses import OrderResponse
from qrdine.application.errors import storage_guard
from qrdine.application.mappers.event_envelope import (
    serialize_customer_orders_updated_event,
    serialize_order_updated_event,
)
from qrdine.application.mappers.order_mapper import to_order_response
from qrdine.application.metrics.order_lifecycle import record_order_status
from qrdine.application.notifications import publish_best_effort
from qrdine.application.ports.publisher import EventPublisher, session_channel, staff_channel
from qrdine.application.ports.repositories import (
    MenuRepository,
    OrderRepository,
    TableRepository,
)
from qrdine.application.use_cases.context import TraceContext
from qrdine.domain.common.ids import OrderId, OrderLineId, RestaurantId, SessionId, TableId
from qrdine.domain.order.entities import OrderLine, create_pending_order
from qrdine.domain.order.events import OrderPlaced


class TableNotFoundError(Exception):
    pass


class MenuNotFoundError(Exception):
    pass


class MenuItemUnavailableError(Exception):
    pass


class PlaceOrder:
    def __init__(
        self,
        menu_repository: MenuRepository,
        table_repository: TableRepository,
        order_repository: OrderRepository,
        publisher: EventPublisher,
    ) -> None:
        self._menu_repository = menu_repository
        self._table_repository = table_repository
        self._order_repository = order_repository
        self._publisher = publisher

    def execute(
        self,
        restaurant_id: RestaurantId,
        table_id: TableId,
        request_dto: PlaceOrderRequest,
        trace_ctx: TraceContext,
    ) -> OrderResponse:
        with storage_guard("place_order", restaurant_id=str(restaurant_id)):
            table = self._table_repository.get(table_id=table_id, restaurant_id=restaurant_id)
            if table is None:
                raise TableNotFoundError(
                    f"table not found for restaurant_id={restaurant_id}, table_id={table_id}"
                )
            table.ensure_active()

            menu = self._menu_repository.get_menu_by_restaurant_id(restaurant_id)
            if menu is None:
                raise MenuNotFoundError(f"menu not found for restaurant_id={restaurant_id}")

        order_lines: list[OrderLine] = []
        for request_line in request_dto.lines:
            if request_line.quantity < 1:
                raise MenuItemUnavailableError("quantity must be >= 1")

            menu_item = menu.find_item(request_line.item_id)
            if menu_item is None:
                raise MenuItemUnavailableError(f"menu item {request_line.item_id} does not exist")
            if not menu_item.is_available:
                raise MenuItemUnavailableError(f"menu item {request_line.item_id} is unavailable")

            unit_price = menu_item.price_money
            order_lines.append(
                OrderLine(
                    line_id=OrderLineId(f"orl_{uuid4().hex[:12]}"),
                    item_id=menu_item.item_id,
                    name=menu_item.name,
                    quantity=request_line.quantity,
                    unit_price=unit_price,
                    line_total=unit_price.times(request_line.quantity),
                    notes=request_line.notes,
                )
            )

        currencies = {line.unit_price.currency for line in order_lines}
        if len(currencies) > 1:
            raise MenuItemUnavailableError("order lines must share one currency")

        now = datetime.now(timezone.utc)
        order = create_pending_order(
            order_id=OrderId(f"ord_{uuid4().hex[:12]}"),
            restaurant_id=restaurant_id,
            table_id=table_id,
            session_id=SessionId(request_dto.session_id),
            lines=order_lines,
            now=now,
            note=request_dto.note,
        )
        with storage_guard("place_order", restaurant_id=str(restaurant_id)):
            self._order_repository.add(order)

        event = OrderPlaced(
            order_id=order.order_id,
            restaurant_id=order.restaurant_id,
            table_id=order.table_id,
            session_id=order.session_id,
            total=order.total,
            created_at=order.created_at,
        )
        record_order_status(order)
        publish_best_effort(
            self._publisher,
            channel=staff_channel(str(event.restaurant_id)),
            event_name="order_updated",
            message=serialize_order_updated_event(
                update_type="NEW_ORDER",
                occurred_at=event.created_at,
                order=order,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )
        publish_best_effort(
            self._publisher,
            channel=session_channel(str(event.session_id)),
            event_name="customer_orders_updated",
            message=serialize_customer_orders_updated_event(
                occurred_at=event.created_at,
                order=order,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )

        return to_order_response(order)

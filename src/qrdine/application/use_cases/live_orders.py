from __future__ import annotations

from qrdine.application.dto.responses import LiveOrdersResponse, LiveTableResponse
from qrdine.application.errors import storage_guard
from qrdine.application.mappers.order_mapper import to_money_response, to_order_response
from qrdine.application.ports.repositories import OrderRepository
from qrdine.domain.common.ids import RestaurantId, TableId
from qrdine.domain.common.money import sum_money
from qrdine.domain.order.entities import Order


class LiveOrdersByTable:
    """Staff board of every table that still has unbilled orders."""

    def __init__(self, order_repository: OrderRepository) -> None:
        self._order_repository = order_repository

    def execute(self, restaurant_id: RestaurantId) -> LiveOrdersResponse:
        with storage_guard("live_orders", restaurant_id=str(restaurant_id)):
            orders = self._order_repository.find_billable_for_restaurant(restaurant_id)

        by_table: dict[TableId, list[Order]] = {}
        for order in sorted(orders, key=lambda order: order.created_at):
            by_table.setdefault(order.table_id, []).append(order)

        tables = [
            LiveTableResponse(
                tableId=str(table_id),
                lastOrderAt=table_orders[-1].created_at,
                totalOpenAmount=to_money_response(
                    sum_money(
                        [order.total for order in table_orders],
                        table_orders[0].total.currency,
                    )
                ),
                orders=[to_order_response(order) for order in table_orders],
            )
            for table_id, table_orders in by_table.items()
        ]
        tables.sort(key=lambda table: table.lastOrderAt, reverse=True)
        return LiveOrdersResponse(count=len(tables), tables=tables)

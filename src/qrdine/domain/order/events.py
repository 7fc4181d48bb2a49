from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from qrdine.domain.common.ids import OrderId, RestaurantId, SessionId, TableId
from qrdine.domain.common.money import Money
from qrdine.domain.order.entities import OrderStatus


@dataclass(frozen=True)
class OrderPlaced:
    order_id: OrderId
    restaurant_id: RestaurantId
    table_id: TableId
    session_id: SessionId
    total: Money
    created_at: datetime


@dataclass(frozen=True)
class OrderStatusChanged:
    order_id: OrderId
    restaurant_id: RestaurantId
    table_id: TableId
    session_id: SessionId
    from_status: OrderStatus
    to_status: OrderStatus
    occurred_at: datetime

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from qrdine.domain.common.ids import BillId, OrderId, RestaurantId, TableId
from qrdine.domain.common.money import Money


@dataclass(frozen=True)
class BillClosed:
    bill_id: BillId
    restaurant_id: RestaurantId
    table_id: TableId
    order_ids: list[OrderId]
    grand_total: Money
    closed_at: datetime

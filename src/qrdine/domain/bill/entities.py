from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from qrdine.domain.common.ids import ActorId, BillId, MenuItemId, OrderId, RestaurantId, TableId
from qrdine.domain.common.money import Money


class BillStatus(str, Enum):
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class BillLine:
    item_id: MenuItemId
    name: str
    unit_price: Money
    quantity: int
    line_total: Money

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")
        if self.unit_price.currency != self.line_total.currency:
            raise ValueError("line_total currency must match unit_price currency")
        if self.line_total.amount_cents != self.unit_price.amount_cents * self.quantity:
            raise ValueError("line_total must equal unit_price * quantity")


@dataclass(frozen=True)
class Bill:
    bill_id: BillId
    restaurant_id: RestaurantId
    table_id: TableId
    order_ids: list[OrderId]
    lines: list[BillLine]
    subtotal: Money
    tax_amount: Money
    grand_total: Money
    closed_at: datetime
    closed_by: ActorId | None = None
    status: BillStatus = BillStatus.CLOSED

    def __post_init__(self) -> None:
        if not self.order_ids:
            raise ValueError("bill must reference at least one order")
        if len(set(self.order_ids)) != len(self.order_ids):
            raise ValueError("bill order ids must be unique")
        if not self.lines:
            raise ValueError("bill must contain at least one line")

        currency = self.subtotal.currency
        if any(line.line_total.currency != currency for line in self.lines):
            raise ValueError("bill lines must share the subtotal currency")
        if self.tax_amount.currency != currency or self.grand_total.currency != currency:
            raise ValueError("bill totals must share one currency")

        expected_subtotal = sum(line.line_total.amount_cents for line in self.lines)
        if self.subtotal.amount_cents != expected_subtotal:
            raise ValueError("subtotal must equal sum of line totals")
        expected_grand_total = self.subtotal.amount_cents + self.tax_amount.amount_cents
        if self.grand_total.amount_cents != expected_grand_total:
            raise ValueError("grand_total must equal subtotal + tax_amount")

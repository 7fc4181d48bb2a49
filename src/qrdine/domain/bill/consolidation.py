"""Merging a table's billable orders into one bill.

Two order lines land on the same bill line only when both the menu item and
the snapshotted unit price match, so a price change in the middle of a table
session shows up as separate lines instead of being averaged away.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from qrdine.domain.bill.entities import Bill, BillLine
from qrdine.domain.bill.tax import NoTax, TaxPolicy
from qrdine.domain.common.ids import ActorId, BillId, MenuItemId, RestaurantId, TableId
from qrdine.domain.common.money import Money
from qrdine.domain.order.entities import Order, is_billable


class MixedCurrencyError(Exception):
    pass


@dataclass(frozen=True)
class ConsolidationKey:
    item_id: MenuItemId
    unit_price_cents: int


def consolidate_lines(orders: list[Order]) -> list[BillLine]:
    merged: dict[ConsolidationKey, BillLine] = {}
    currency: str | None = None

    for order in orders:
        for line in order.lines:
            if currency is None:
                currency = line.unit_price.currency
            elif line.unit_price.currency != currency:
                raise MixedCurrencyError(
                    f"order {order.order_id} uses {line.unit_price.currency}, expected {currency}"
                )

            key = ConsolidationKey(
                item_id=line.item_id,
                unit_price_cents=line.unit_price.amount_cents,
            )
            previous = merged.get(key)
            quantity = line.quantity if previous is None else previous.quantity + line.quantity
            merged[key] = BillLine(
                item_id=line.item_id,
                name=line.name if previous is None else previous.name,
                unit_price=line.unit_price,
                quantity=quantity,
                line_total=line.unit_price.times(quantity),
            )

    return list(merged.values())


def build_bill(
    bill_id: BillId,
    restaurant_id: RestaurantId,
    table_id: TableId,
    orders: list[Order],
    closed_at: datetime,
    closed_by: ActorId | None = None,
    tax_policy: TaxPolicy | None = None,
) -> Bill:
    if not orders:
        raise ValueError("cannot build a bill without orders")
    for order in orders:
        if not is_billable(order):
            raise ValueError(f"order {order.order_id} is not billable")
        if order.restaurant_id != restaurant_id or order.table_id != table_id:
            raise ValueError(f"order {order.order_id} belongs to another table")

    lines = consolidate_lines(orders)
    currency = lines[0].unit_price.currency
    subtotal = Money(
        amount_cents=sum(line.line_total.amount_cents for line in lines),
        currency=currency,
    )
    tax_amount = (tax_policy or NoTax()).tax_for(subtotal)
    return Bill(
        bill_id=bill_id,
        restaurant_id=restaurant_id,
        table_id=table_id,
        order_ids=[order.order_id for order in orders],
        lines=lines,
        subtotal=subtotal,
        tax_amount=tax_amount,
        grand_total=subtotal + tax_amount,
        closed_at=closed_at,
        closed_by=closed_by,
    )

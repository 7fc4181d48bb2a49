from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from qrdine.domain.bill.consolidation import MixedCurrencyError, build_bill, consolidate_lines
from qrdine.domain.bill.entities import Bill, BillLine, BillStatus
from qrdine.domain.common.ids import (
    ActorId,
    BillId,
    MenuItemId,
    OrderId,
    OrderLineId,
    RestaurantId,
    SessionId,
    TableId,
)
from qrdine.domain.common.money import Money
from qrdine.domain.order.entities import Order, OrderLine, OrderStatus, create_pending_order

T0 = datetime(2024, 1, 15, 18, 0, tzinfo=timezone.utc)


class FlatTax:
    def __init__(self, cents: int) -> None:
        self._cents = cents

    def tax_for(self, subtotal: Money) -> Money:
        return Money(amount_cents=self._cents, currency=subtotal.currency)


def _line(item_id: str, name: str, quantity: int, unit_cents: int, currency: str = "INR"):
    return OrderLine(
        line_id=OrderLineId(f"orl_{item_id}_{quantity}_{unit_cents}"),
        item_id=MenuItemId(item_id),
        name=name,
        quantity=quantity,
        unit_price=Money(amount_cents=unit_cents, currency=currency),
        line_total=Money(amount_cents=unit_cents * quantity, currency=currency),
    )


def _order(order_id: str, lines: list[OrderLine], minutes: int = 0) -> Order:
    return create_pending_order(
        order_id=OrderId(order_id),
        restaurant_id=RestaurantId("rst_001"),
        table_id=TableId("tbl_001"),
        session_id=SessionId("ses_001"),
        lines=lines,
        now=T0 + timedelta(minutes=minutes),
    )


def _build(orders: list[Order], **kwargs) -> Bill:
    return build_bill(
        bill_id=BillId("bil_001"),
        restaurant_id=RestaurantId("rst_001"),
        table_id=TableId("tbl_001"),
        orders=orders,
        closed_at=T0 + timedelta(hours=1),
        **kwargs,
    )


def test_same_item_and_price_merge_into_one_line() -> None:
    orders = [
        _order("ord_001", [_line("itm_burger", "Burger", 2, 10000)]),
        _order(
            "ord_002",
            [_line("itm_burger", "Burger", 1, 10000), _line("itm_fries", "Fries", 1, 5000)],
            minutes=5,
        ),
    ]

    bill = _build(orders)

    assert [(line.name, line.quantity, line.line_total.amount_cents) for line in bill.lines] == [
        ("Burger", 3, 30000),
        ("Fries", 1, 5000),
    ]
    assert bill.subtotal.amount_cents == 35000
    assert bill.tax_amount.amount_cents == 0
    assert bill.grand_total.amount_cents == 35000
    assert bill.order_ids == [OrderId("ord_001"), OrderId("ord_002")]
    assert bill.status == BillStatus.CLOSED


def test_price_change_between_orders_keeps_separate_lines() -> None:
    orders = [
        _order("ord_001", [_line("itm_burger", "Burger", 2, 10000)]),
        _order("ord_002", [_line("itm_burger", "Burger", 1, 11000)], minutes=5),
    ]

    lines = consolidate_lines(orders)

    assert [(line.quantity, line.unit_price.amount_cents, line.line_total.amount_cents) for line in lines] == [
        (2, 10000, 20000),
        (1, 11000, 11000),
    ]


def test_first_seen_order_and_name_are_kept() -> None:
    orders = [
        _order("ord_001", [_line("itm_chai", "Masala Chai", 1, 4000)]),
        _order(
            "ord_002",
            [_line("itm_naan", "Garlic Naan", 2, 6000), _line("itm_chai", "Chai (renamed)", 2, 4000)],
            minutes=1,
        ),
    ]

    lines = consolidate_lines(orders)

    assert [line.item_id for line in lines] == [MenuItemId("itm_chai"), MenuItemId("itm_naan")]
    assert lines[0].name == "Masala Chai"
    assert lines[0].quantity == 3


def test_bill_totals_reconcile_with_tax_policy() -> None:
    orders = [
        _order("ord_001", [_line("itm_a", "A", 3, 333), _line("itm_b", "B", 7, 129)]),
        _order("ord_002", [_line("itm_a", "A", 4, 333)], minutes=2),
    ]

    bill = _build(orders, tax_policy=FlatTax(cents=125), closed_by=ActorId("usr_001"))

    line_sum = sum(line.line_total.amount_cents for line in bill.lines)
    merged_sum = sum(line.unit_price.amount_cents * line.quantity for line in bill.lines)
    assert bill.subtotal.amount_cents == line_sum == merged_sum
    assert bill.grand_total.amount_cents == bill.subtotal.amount_cents + 125
    assert bill.closed_by == ActorId("usr_001")


def test_build_bill_refuses_cancelled_or_foreign_orders() -> None:
    cancelled = _order("ord_001", [_line("itm_a", "A", 1, 100)]).transition_to(
        OrderStatus.CANCELLED,
        now=T0,
    )
    with pytest.raises(ValueError):
        _build([cancelled])

    foreign = create_pending_order(
        order_id=OrderId("ord_009"),
        restaurant_id=RestaurantId("rst_001"),
        table_id=TableId("tbl_999"),
        session_id=SessionId("ses_009"),
        lines=[_line("itm_a", "A", 1, 100)],
        now=T0,
    )
    with pytest.raises(ValueError):
        _build([foreign])

    with pytest.raises(ValueError):
        _build([])


def test_mixed_currencies_are_rejected() -> None:
    orders = [
        _order("ord_001", [_line("itm_a", "A", 1, 100, currency="INR")]),
        _order("ord_002", [_line("itm_b", "B", 1, 100, currency="USD")], minutes=1),
    ]

    with pytest.raises(MixedCurrencyError):
        consolidate_lines(orders)


def test_bill_invariants_are_enforced() -> None:
    line = BillLine(
        item_id=MenuItemId("itm_a"),
        name="A",
        unit_price=Money(amount_cents=100, currency="INR"),
        quantity=2,
        line_total=Money(amount_cents=200, currency="INR"),
    )
    with pytest.raises(ValueError):
        Bill(
            bill_id=BillId("bil_001"),
            restaurant_id=RestaurantId("rst_001"),
            table_id=TableId("tbl_001"),
            order_ids=[OrderId("ord_001")],
            lines=[line],
            subtotal=Money(amount_cents=200, currency="INR"),
            tax_amount=Money(amount_cents=0, currency="INR"),
            grand_total=Money(amount_cents=250, currency="INR"),
            closed_at=T0,
        )
    with pytest.raises(ValueError):
        Bill(
            bill_id=BillId("bil_001"),
            restaurant_id=RestaurantId("rst_001"),
            table_id=TableId("tbl_001"),
            order_ids=[OrderId("ord_001"), OrderId("ord_001")],
            lines=[line],
            subtotal=Money(amount_cents=200, currency="INR"),
            tax_amount=Money(amount_cents=0, currency="INR"),
            grand_total=Money(amount_cents=200, currency="INR"),
            closed_at=T0,
        )

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from qrdine.domain.common.ids import (
    BillId,
    MenuItemId,
    OrderId,
    OrderLineId,
    RestaurantId,
    SessionId,
    TableId,
)
from qrdine.domain.common.money import Money


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    IN_KITCHEN = "IN_KITCHEN"
    READY = "READY"
    SERVED = "SERVED"
    COMPLETED = "COMPLETED"


TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REJECTED})
NON_BILLABLE_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.REJECTED})

DEFAULT_CANCEL_REASON = "Cancelled by restaurant"
DEFAULT_REJECT_REASON = "Rejected by restaurant"


class InvalidTransitionError(Exception):
    pass


class UnknownStatusError(Exception):
    pass


def parse_order_status(raw: str) -> OrderStatus:
    normalized = raw.strip().upper() if isinstance(raw, str) else ""
    try:
        return OrderStatus(normalized)
    except ValueError as exc:
        raise UnknownStatusError(f"unknown order status: {raw}") from exc


@dataclass(frozen=True)
class OrderLine:
    line_id: OrderLineId
    item_id: MenuItemId
    name: str
    quantity: int
    unit_price: Money
    line_total: Money
    notes: str | None = None

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")
        if self.unit_price.currency != self.line_total.currency:
            raise ValueError("line_total currency must match unit_price currency")
        expected_total = self.unit_price.amount_cents * self.quantity
        if self.line_total.amount_cents != expected_total:
            raise ValueError("line_total must equal unit_price * quantity")


@dataclass(frozen=True)
class Order:
    order_id: OrderId
    restaurant_id: RestaurantId
    table_id: TableId
    session_id: SessionId
    status: OrderStatus
    lines: list[OrderLine]
    total: Money
    created_at: datetime
    updated_at: datetime | None = None
    note: str | None = None
    cancel_reason: str | None = None
    billed: bool = False
    bill_id: BillId | None = None
    version: int = 1

    def __post_init__(self) -> None:
        if not self.lines:
            raise ValueError("order must contain at least one line")
        line_currency = self.lines[0].line_total.currency
        if self.total.currency != line_currency:
            raise ValueError("order total currency must match line currency")
        expected_total = sum(line.line_total.amount_cents for line in self.lines)
        if self.total.amount_cents != expected_total:
            raise ValueError("order total must equal sum of line totals")
        if self.billed and self.bill_id is None:
            raise ValueError("billed orders must reference a bill")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition_to(
        self,
        target: OrderStatus,
        now: datetime,
        reason: str | None = None,
    ) -> Order:
        if self.is_terminal:
            raise InvalidTransitionError(
                f"cannot change status from terminal status={self.status.value}"
            )
        if target == OrderStatus.COMPLETED:
            raise InvalidTransitionError("orders are completed only by closing the table bill")
        if target == OrderStatus.REJECTED and self.status != OrderStatus.PENDING:
            raise InvalidTransitionError(f"cannot reject order from status={self.status.value}")

        cancel_reason = self.cancel_reason
        if target == OrderStatus.CANCELLED:
            cancel_reason = (reason or "").strip() or DEFAULT_CANCEL_REASON
        elif target == OrderStatus.REJECTED:
            cancel_reason = (reason or "").strip() or DEFAULT_REJECT_REASON

        return replace(self, status=target, cancel_reason=cancel_reason, updated_at=now)


def is_billable(order: Order) -> bool:
    return not order.billed and order.status not in NON_BILLABLE_STATUSES


def create_pending_order(
    order_id: OrderId,
    restaurant_id: RestaurantId,
    table_id: TableId,
    session_id: SessionId,
    lines: list[OrderLine],
    now: datetime,
    note: str | None = None,
) -> Order:
    if not lines:
        raise ValueError("order must contain at least one line")

    currency = lines[0].line_total.currency
    total = Money(
        amount_cents=sum(line.line_total.amount_cents for line in lines),
        currency=currency,
    )
    return Order(
        order_id=order_id,
        restaurant_id=restaurant_id,
        table_id=table_id,
        session_id=session_id,
        status=OrderStatus.PENDING,
        lines=lines,
        total=total,
        created_at=now,
        updated_at=now,
        note=note,
    )

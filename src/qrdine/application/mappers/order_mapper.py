from __future__ import annotations

from qrdine.application.dto.responses import (
    MoneyResponse,
    OrderLineResponse,
    OrderResponse,
)
from qrdine.domain.common.money import Money
from qrdine.domain.order.entities import Order


def to_money_response(money: Money) -> MoneyResponse:
    return MoneyResponse(amountCents=money.amount_cents, currency=money.currency)


def to_order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        orderId=str(order.order_id),
        restaurantId=str(order.restaurant_id),
        tableId=str(order.table_id),
        sessionId=str(order.session_id),
        status=order.status.value,
        lines=[
            OrderLineResponse(
                lineId=str(line.line_id),
                itemId=str(line.item_id),
                name=line.name,
                quantity=line.quantity,
                unitPrice=to_money_response(line.unit_price),
                lineTotal=to_money_response(line.line_total),
                notes=line.notes,
            )
            for line in order.lines
        ],
        total=to_money_response(order.total),
        note=order.note,
        cancelReason=order.cancel_reason,
        billed=order.billed,
        billId=str(order.bill_id) if order.bill_id is not None else None,
        createdAt=order.created_at,
        updatedAt=order.updated_at,
    )

from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import uuid4

from qrdine.domain.bill.entities import Bill
from qrdine.domain.order.entities import Order
from qrdine.domain.service_request.entities import ServiceRequest


def _serialize_event(
    *,
    event_type: str,
    occurred_at: datetime,
    restaurant_id: str,
    payload: dict[str, Any],
    trace_id: str | None,
    request_id: str | None,
) -> str:
    envelope = {
        "event_id": str(uuid4()),
        "event_type": event_type,
        "occurred_at": occurred_at.isoformat(),
        "request_id": request_id,
        "trace_id": trace_id,
        "restaurant_id": restaurant_id,
        "payload": payload,
    }
    return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)


def _money(amount_cents: int, currency: str) -> dict[str, Any]:
    return {"amountCents": amount_cents, "currency": currency}


def order_payload(order: Order) -> dict[str, Any]:
    return {
        "orderId": str(order.order_id),
        "tableId": str(order.table_id),
        "sessionId": str(order.session_id),
        "status": order.status.value,
        "billed": order.billed,
        "billId": str(order.bill_id) if order.bill_id is not None else None,
        "cancelReason": order.cancel_reason,
        "note": order.note,
        "totalMoney": _money(order.total.amount_cents, order.total.currency),
        "createdAt": order.created_at.isoformat(),
        "lines": [
            {
                "lineId": str(line.line_id),
                "itemId": str(line.item_id),
                "name": line.name,
                "quantity": line.quantity,
                "unitPrice": _money(line.unit_price.amount_cents, line.unit_price.currency),
                "lineTotal": _money(line.line_total.amount_cents, line.line_total.currency),
                "notes": line.notes,
            }
            for line in order.lines
        ],
    }


def serialize_order_updated_event(
    *,
    update_type: str,
    occurred_at: datetime,
    order: Order,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type="order_updated",
        occurred_at=occurred_at,
        restaurant_id=str(order.restaurant_id),
        trace_id=trace_id,
        request_id=request_id,
        payload={"type": update_type, "order": order_payload(order)},
    )


def serialize_order_status_event(
    *,
    occurred_at: datetime,
    order: Order,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type="order_status",
        occurred_at=occurred_at,
        restaurant_id=str(order.restaurant_id),
        trace_id=trace_id,
        request_id=request_id,
        payload={
            "orderId": str(order.order_id),
            "status": order.status.value,
            "order": order_payload(order),
        },
    )


def serialize_customer_orders_updated_event(
    *,
    occurred_at: datetime,
    order: Order,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type="customer_orders_updated",
        occurred_at=occurred_at,
        restaurant_id=str(order.restaurant_id),
        trace_id=trace_id,
        request_id=request_id,
        payload={
            "sessionId": str(order.session_id),
            "orderId": str(order.order_id),
            "status": order.status.value,
        },
    )


def serialize_billing_closed_event(
    *,
    occurred_at: datetime,
    bill: Bill,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type="billing_closed",
        occurred_at=occurred_at,
        restaurant_id=str(bill.restaurant_id),
        trace_id=trace_id,
        request_id=request_id,
        payload={
            "billId": str(bill.bill_id),
            "tableId": str(bill.table_id),
            "orderIds": [str(order_id) for order_id in bill.order_ids],
            "grandTotal": _money(bill.grand_total.amount_cents, bill.grand_total.currency),
        },
    )


def serialize_service_request_event(
    *,
    event_type: str,
    occurred_at: datetime,
    request: ServiceRequest,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type=event_type,
        occurred_at=occurred_at,
        restaurant_id=str(request.restaurant_id),
        trace_id=trace_id,
        request_id=request_id,
        payload={
            "request": {
                "requestId": str(request.request_id),
                "tableId": str(request.table_id),
                "tableCode": request.table_code,
                "type": request.type.value,
                "status": request.status.value,
                "createdAt": request.created_at.isoformat(),
                "ackAt": request.ack_at.isoformat() if request.ack_at else None,
                "closedAt": request.closed_at.isoformat() if request.closed_at else None,
            }
        },
    )

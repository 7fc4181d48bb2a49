from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from qrdine.application.dto.responses import BillLineResponse, BillResponse
from qrdine.application.mappers.order_mapper import to_money_response
from qrdine.domain.bill.entities import Bill

_CENT = Decimal("0.01")


def cents_to_amount(cents: int | Decimal) -> float:
    return float((Decimal(cents) / 100).quantize(_CENT, rounding=ROUND_HALF_UP))


def to_bill_response(bill: Bill) -> BillResponse:
    return BillResponse(
        billId=str(bill.bill_id),
        restaurantId=str(bill.restaurant_id),
        tableId=str(bill.table_id),
        orderIds=[str(order_id) for order_id in bill.order_ids],
        lines=[
            BillLineResponse(
                itemId=str(line.item_id),
                name=line.name,
                unitPrice=to_money_response(line.unit_price),
                quantity=line.quantity,
                lineTotal=to_money_response(line.line_total),
            )
            for line in bill.lines
        ],
        subtotal=to_money_response(bill.subtotal),
        taxAmount=to_money_response(bill.tax_amount),
        grandTotal=to_money_response(bill.grand_total),
        status=bill.status.value,
        closedAt=bill.closed_at,
        closedBy=str(bill.closed_by) if bill.closed_by is not None else None,
    )

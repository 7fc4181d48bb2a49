from __future__ import annotations

from prometheus_client import Counter, Histogram

from qrdine.domain.bill.entities import Bill
from qrdine.domain.order.entities import Order, OrderStatus

ORDERS_TOTAL = Counter(
    "qrdine_orders_total",
    "Total number of orders observed by status.",
    ["restaurant_id", "status"],
)

ORDER_TRANSITION_TOTAL = Counter(
    "qrdine_order_transition_total",
    "Total number of order lifecycle transitions.",
    ["from", "to"],
)

ORDER_TRANSITION_REJECTED_TOTAL = Counter(
    "qrdine_order_transition_rejected_total",
    "Total number of refused order status changes.",
    ["from", "to"],
)

BILLS_CLOSED_TOTAL = Counter(
    "qrdine_bills_closed_total",
    "Total number of bills closed.",
    ["restaurant_id"],
)

BILL_ORDERS_PER_BILL = Histogram(
    "qrdine_bill_orders_per_bill",
    "Number of orders consolidated into one bill.",
    buckets=(1, 2, 3, 5, 8, 13, 21),
)

BILL_GRAND_TOTAL_CENTS = Histogram(
    "qrdine_bill_grand_total_cents",
    "Grand total of closed bills in minor currency units.",
    buckets=(1000, 2500, 5000, 10000, 25000, 50000, 100000),
)

BILL_CLOSE_CONFLICTS_TOTAL = Counter(
    "qrdine_bill_close_conflicts_total",
    "Bill closes that lost a race and were voided and retried.",
    ["restaurant_id"],
)

BILL_CLOSE_EMPTY_TOTAL = Counter(
    "qrdine_bill_close_empty_total",
    "Bill close attempts with no billable orders.",
    ["restaurant_id"],
)

REVENUE_QUERIES_TOTAL = Counter(
    "qrdine_revenue_queries_total",
    "Total number of revenue report queries.",
    ["report", "range"],
)

SERVICE_REQUESTS_TOTAL = Counter(
    "qrdine_service_requests_total",
    "Total number of service requests created.",
    ["restaurant_id", "type"],
)


def record_order_status(order: Order) -> None:
    ORDERS_TOTAL.labels(
        restaurant_id=str(order.restaurant_id),
        status=order.status.value,
    ).inc()


def record_transition(from_status: OrderStatus, to_status: OrderStatus) -> None:
    ORDER_TRANSITION_TOTAL.labels(**{"from": from_status.value, "to": to_status.value}).inc()


def record_transition_rejected(from_status: OrderStatus, to_status: OrderStatus) -> None:
    ORDER_TRANSITION_REJECTED_TOTAL.labels(
        **{"from": from_status.value, "to": to_status.value}
    ).inc()


def record_bill_closed(bill: Bill) -> None:
    BILLS_CLOSED_TOTAL.labels(restaurant_id=str(bill.restaurant_id)).inc()
    BILL_ORDERS_PER_BILL.observe(len(bill.order_ids))
    BILL_GRAND_TOTAL_CENTS.observe(bill.grand_total.amount_cents)


def record_bill_close_conflict(restaurant_id: str) -> None:
    BILL_CLOSE_CONFLICTS_TOTAL.labels(restaurant_id=restaurant_id).inc()


def record_bill_close_empty(restaurant_id: str) -> None:
    BILL_CLOSE_EMPTY_TOTAL.labels(restaurant_id=restaurant_id).inc()


def record_revenue_query(report: str, range_key: str) -> None:
    REVENUE_QUERIES_TOTAL.labels(report=report, range=range_key).inc()


def record_service_request(restaurant_id: str, request_type: str) -> None:
    SERVICE_REQUESTS_TOTAL.labels(restaurant_id=restaurant_id, type=request_type).inc()

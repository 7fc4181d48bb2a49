from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from uuid import uuid4

from qrdine.application.dto.requests import CloseBillRequest
from qrdine.application.dto.responses import (
    BillHistoryResponse,
    BillResponse,
    OpenBillResponse,
    RecentBillsResponse,
)
from qrdine.application.errors import storage_guard
from qrdine.application.mappers.bill_mapper import to_bill_response
from qrdine.application.mappers.event_envelope import serialize_billing_closed_event
from qrdine.application.mappers.order_mapper import to_money_response, to_order_response
from qrdine.application.metrics.order_lifecycle import (
    record_bill_close_conflict,
    record_bill_close_empty,
    record_bill_closed,
)
from qrdine.application.notifications import publish_best_effort
from qrdine.application.ports.publisher import EventPublisher, staff_channel
from qrdine.application.ports.repositories import (
    BillRepository,
    OptimisticConcurrencyError,
    OrderRepository,
    RestaurantRepository,
)
from qrdine.application.use_cases.context import TraceContext
from qrdine.application.use_cases.revenue import RestaurantNotFoundError
from qrdine.domain.bill.consolidation import build_bill
from qrdine.domain.bill.entities import Bill
from qrdine.domain.bill.events import BillClosed
from qrdine.domain.bill.tax import NoTax, TaxPolicy
from qrdine.domain.common.ids import ActorId, BillId, RestaurantId, TableId
from qrdine.domain.common.money import sum_money
from qrdine.domain.order.entities import Order

logger = logging.getLogger(__name__)

DEFAULT_CLOSE_ATTEMPTS = 3
MAX_RECENT_BILLS = 100


class NoOpenOrdersError(Exception):
    pass


class BillCloseConflictError(Exception):
    pass


class BillNotFoundError(Exception):
    pass


class InvalidBillQueryError(Exception):
    pass


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _oldest_first(orders: list[Order]) -> list[Order]:
    return sorted(orders, key=lambda order: order.created_at)


class PreviewOpenBill:
    def __init__(
        self,
        order_repository: OrderRepository,
        restaurant_repository: RestaurantRepository,
    ) -> None:
        self._order_repository = order_repository
        self._restaurant_repository = restaurant_repository

    def execute(self, restaurant_id: RestaurantId, table_id: TableId) -> OpenBillResponse:
        with storage_guard("preview_open_bill", restaurant_id=str(restaurant_id)):
            orders = _oldest_first(
                self._order_repository.find_billable_orders(
                    restaurant_id=restaurant_id,
                    table_id=table_id,
                )
            )
            if orders:
                currency = orders[0].total.currency
            else:
                settings = self._restaurant_repository.get_settings(restaurant_id)
                if settings is None:
                    raise RestaurantNotFoundError(f"restaurant {restaurant_id} not found")
                currency = settings.currency

        total = sum_money([order.total for order in orders], currency)
        return OpenBillResponse(
            restaurantId=str(restaurant_id),
            tableId=str(table_id),
            orders=[to_order_response(order) for order in orders],
            totalAmount=to_money_response(total),
        )


class CloseBill:
    """Consolidates a table's billable orders into one closed bill.

    The bill and the order flip are written in one storage transaction. When
    the write loses a race (another close billed some of the orders first)
    nothing is stored and the read-build-write cycle is retried against fresh
    state, up to ``max_attempts`` times.
    """

    def __init__(
        self,
        order_repository: OrderRepository,
        bill_repository: BillRepository,
        publisher: EventPublisher,
        tax_policy: TaxPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
        max_attempts: int = DEFAULT_CLOSE_ATTEMPTS,
    ) -> None:
        self._order_repository = order_repository
        self._bill_repository = bill_repository
        self._publisher = publisher
        self._tax_policy = tax_policy or NoTax()
        self._clock = clock or _utc_now
        self._max_attempts = max(1, max_attempts)

    def execute(self, request_dto: CloseBillRequest, trace_ctx: TraceContext) -> BillResponse:
        restaurant_id = RestaurantId(request_dto.restaurant_id)
        table_id = TableId(request_dto.table_id)
        closed_by = ActorId(request_dto.actor_id) if request_dto.actor_id else None
        log_context = {"restaurant_id": str(restaurant_id), "table_id": str(table_id)}

        for attempt in range(1, self._max_attempts + 1):
            with storage_guard("close_bill", **log_context):
                orders = _oldest_first(
                    self._order_repository.find_billable_orders(
                        restaurant_id=restaurant_id,
                        table_id=table_id,
                    )
                )
            if not orders:
                record_bill_close_empty(restaurant_id=str(restaurant_id))
                raise NoOpenOrdersError(f"table {table_id} has no open orders to bill")

            bill = build_bill(
                bill_id=BillId(f"bil_{uuid4().hex[:12]}"),
                restaurant_id=restaurant_id,
                table_id=table_id,
                orders=orders,
                closed_at=self._clock(),
                closed_by=closed_by,
                tax_policy=self._tax_policy,
            )
            try:
                with storage_guard("close_bill", bill_id=str(bill.bill_id), **log_context):
                    self._bill_repository.close_with_orders(bill)
            except OptimisticConcurrencyError:
                logger.warning(
                    "bill_close_conflict",
                    extra={**log_context, "bill_id": str(bill.bill_id), "attempt": attempt},
                )
                record_bill_close_conflict(restaurant_id=str(restaurant_id))
                continue

            self._announce(bill, trace_ctx)
            return to_bill_response(bill)

        raise BillCloseConflictError(
            f"table {table_id} kept changing while closing the bill; retry the close"
        )

    def _announce(self, bill: Bill, trace_ctx: TraceContext) -> None:
        event = BillClosed(
            bill_id=bill.bill_id,
            restaurant_id=bill.restaurant_id,
            table_id=bill.table_id,
            order_ids=list(bill.order_ids),
            grand_total=bill.grand_total,
            closed_at=bill.closed_at,
        )
        logger.info(
            "bill_closed",
            extra={
                "bill_id": str(event.bill_id),
                "restaurant_id": str(event.restaurant_id),
                "table_id": str(event.table_id),
                "order_count": len(event.order_ids),
                "grand_total_cents": event.grand_total.amount_cents,
            },
        )
        record_bill_closed(bill)
        publish_best_effort(
            self._publisher,
            channel=staff_channel(str(event.restaurant_id)),
            event_name="billing_closed",
            message=serialize_billing_closed_event(
                occurred_at=event.closed_at,
                bill=bill,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )


class GetBillHistory:
    def __init__(self, bill_repository: BillRepository) -> None:
        self._bill_repository = bill_repository

    def execute(self, restaurant_id: RestaurantId, table_id: TableId) -> BillHistoryResponse:
        with storage_guard("bill_history", restaurant_id=str(restaurant_id)):
            bills = self._bill_repository.find_bills_by_table(
                restaurant_id=restaurant_id,
                table_id=table_id,
            )
        ordered = sorted(bills, key=lambda bill: bill.closed_at, reverse=True)
        return BillHistoryResponse(
            tableId=str(table_id),
            count=len(ordered),
            bills=[to_bill_response(bill) for bill in ordered],
        )


class GetBill:
    def __init__(self, bill_repository: BillRepository) -> None:
        self._bill_repository = bill_repository

    def execute(self, restaurant_id: RestaurantId, bill_id: BillId) -> BillResponse:
        with storage_guard("get_bill", restaurant_id=str(restaurant_id)):
            bill = self._bill_repository.get(restaurant_id=restaurant_id, bill_id=bill_id)
        if bill is None:
            raise BillNotFoundError(f"bill {bill_id} not found")
        return to_bill_response(bill)


class RecentBills:
    def __init__(self, bill_repository: BillRepository) -> None:
        self._bill_repository = bill_repository

    def execute(self, restaurant_id: RestaurantId, limit: int = 20) -> RecentBillsResponse:
        if limit < 1 or limit > MAX_RECENT_BILLS:
            raise InvalidBillQueryError(f"limit must be between 1 and {MAX_RECENT_BILLS}")

        with storage_guard("recent_bills", restaurant_id=str(restaurant_id)):
            bills = self._bill_repository.list_recent(restaurant_id=restaurant_id, limit=limit)
        ordered = sorted(bills, key=lambda bill: bill.closed_at, reverse=True)[:limit]
        return RecentBillsResponse(
            count=len(ordered),
            bills=[to_bill_response(bill) for bill in ordered],
        )

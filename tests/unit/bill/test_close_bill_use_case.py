from __future__ import annotations

import json
import logging
import sys
import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from qrdine.application.dto.requests import CloseBillRequest
from qrdine.application.errors import DependencyFailureError
from qrdine.application.ports.repositories import OptimisticConcurrencyError, StorageError
from qrdine.application.use_cases.billing import (
    BillCloseConflictError,
    BillNotFoundError,
    CloseBill,
    GetBill,
    GetBillHistory,
    InvalidBillQueryError,
    NoOpenOrdersError,
    PreviewOpenBill,
    RecentBills,
)
from qrdine.application.use_cases.context import TraceContext
from qrdine.application.use_cases.revenue import RestaurantNotFoundError
from qrdine.domain.bill.entities import Bill
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
from qrdine.domain.order.entities import Order, OrderLine, OrderStatus, is_billable
from qrdine.domain.restaurant.entities import RestaurantSettings

T0 = datetime(2024, 1, 15, 18, 0, tzinfo=timezone.utc)
CLOSED_AT = datetime(2024, 1, 15, 19, 0, tzinfo=timezone.utc)
TRACE = TraceContext(trace_id="trace-1", request_id="req-1")


class FakeOrderRepository:
    def __init__(self, orders: list[Order], barrier: threading.Barrier | None = None) -> None:
        self._orders = {order.order_id: order for order in orders}
        self._lock = threading.Lock()
        self._barrier = barrier
        self._barrier_waits = 0

    def find_billable_orders(self, restaurant_id: RestaurantId, table_id: TableId) -> list[Order]:
        with self._lock:
            snapshot = [
                order
                for order in self._orders.values()
                if order.restaurant_id == restaurant_id
                and order.table_id == table_id
                and is_billable(order)
            ]
            wait = self._barrier is not None and self._barrier_waits < self._barrier.parties
            if wait:
                self._barrier_waits += 1
        if wait:
            self._barrier.wait(timeout=5)
        return snapshot

    def bill_orders(self, order_ids: list[OrderId], bill_id: BillId) -> None:
        with self._lock:
            if any(not is_billable(self._orders[order_id]) for order_id in order_ids):
                raise OptimisticConcurrencyError("orders already billed")
            for order_id in order_ids:
                self._orders[order_id] = replace(
                    self._orders[order_id],
                    status=OrderStatus.COMPLETED,
                    billed=True,
                    bill_id=bill_id,
                    version=self._orders[order_id].version + 1,
                )

    def order(self, order_id: str) -> Order:
        return self._orders[OrderId(order_id)]


class FakeBillRepository:
    def __init__(self, orders: FakeOrderRepository | None = None) -> None:
        self._orders = orders
        self.bills: dict[BillId, Bill] = {}
        self._lock = threading.Lock()
        self.close_attempts = 0
        self.conflicts_remaining = 0
        self.fail_with: Exception | None = None
        self.recent_limit: int | None = None

    def close_with_orders(self, bill: Bill) -> Bill:
        if self.fail_with is not None:
            raise self.fail_with
        with self._lock:
            self.close_attempts += 1
            if self.conflicts_remaining > 0:
                self.conflicts_remaining -= 1
                raise OptimisticConcurrencyError("orders changed underneath")
            self._orders.bill_orders(list(bill.order_ids), bill.bill_id)
            self.bills[bill.bill_id] = bill
        return bill

    def get(self, restaurant_id: RestaurantId, bill_id: BillId) -> Bill | None:
        bill = self.bills.get(bill_id)
        if bill is None or bill.restaurant_id != restaurant_id:
            return None
        return bill

    def find_bills_by_table(self, restaurant_id: RestaurantId, table_id: TableId) -> list[Bill]:
        return [
            bill
            for bill in self.bills.values()
            if bill.restaurant_id == restaurant_id and bill.table_id == table_id
        ]

    def list_recent(self, restaurant_id: RestaurantId, limit: int) -> list[Bill]:
        self.recent_limit = limit
        return [bill for bill in self.bills.values() if bill.restaurant_id == restaurant_id]


class FakeRestaurantRepository:
    def __init__(self, settings: RestaurantSettings | None) -> None:
        self._settings = settings

    def get_settings(self, restaurant_id: RestaurantId) -> RestaurantSettings | None:
        return self._settings


class FakePublisher:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str]] = []

    def publish(self, channel: str, event_name: str, message: str) -> None:
        self.calls.append((channel, event_name, message))


class BrokenPublisher:
    def publish(self, channel: str, event_name: str, message: str) -> None:
        raise ConnectionError("redis unavailable")


def _line(item_id: str, name: str, quantity: int, unit_cents: int, suffix: str) -> OrderLine:
    return OrderLine(
        line_id=OrderLineId(f"orl_{suffix}_{item_id}"),
        item_id=MenuItemId(item_id),
        name=name,
        quantity=quantity,
        unit_price=Money(amount_cents=unit_cents, currency="INR"),
        line_total=Money(amount_cents=unit_cents * quantity, currency="INR"),
    )


def _order(
    order_id: str,
    lines: list[OrderLine],
    minutes: int,
    table_id: str = "tbl_001",
    status: OrderStatus = OrderStatus.SERVED,
) -> Order:
    return Order(
        order_id=OrderId(order_id),
        restaurant_id=RestaurantId("rst_001"),
        table_id=TableId(table_id),
        session_id=SessionId("ses_001"),
        status=status,
        lines=lines,
        total=Money(
            amount_cents=sum(line.line_total.amount_cents for line in lines),
            currency="INR",
        ),
        created_at=T0 + timedelta(minutes=minutes),
    )


def _table_orders() -> list[Order]:
    return [
        _order("ord_002", [_line("itm_burger", "Burger", 1, 10000, "b"),
                           _line("itm_fries", "Fries", 1, 5000, "b")], minutes=5),
        _order("ord_001", [_line("itm_burger", "Burger", 2, 10000, "a")], minutes=0),
        _order("ord_003", [_line("itm_lassi", "Lassi", 1, 4000, "c")], minutes=8,
               status=OrderStatus.CANCELLED),
        _order("ord_004", [_line("itm_lassi", "Lassi", 3, 4000, "d")], minutes=9,
               table_id="tbl_002"),
    ]


def _close_bill(
    orders: FakeOrderRepository,
    bills: FakeBillRepository,
    publisher=None,
) -> CloseBill:
    return CloseBill(
        order_repository=orders,
        bill_repository=bills,
        publisher=publisher or FakePublisher(),
        clock=lambda: CLOSED_AT,
    )


def _request(table_id: str = "tbl_001") -> CloseBillRequest:
    return CloseBillRequest(restaurant_id="rst_001", table_id=table_id, actor_id="usr_cashier")


def test_close_bill_consolidates_and_completes_orders() -> None:
    orders = FakeOrderRepository(_table_orders())
    bills = FakeBillRepository(orders)
    publisher = FakePublisher()

    response = _close_bill(orders, bills, publisher).execute(_request(), TRACE)

    assert response.orderIds == ["ord_001", "ord_002"]
    assert [(line.name, line.quantity, line.lineTotal.amountCents) for line in response.lines] == [
        ("Burger", 3, 30000),
        ("Fries", 1, 5000),
    ]
    assert response.grandTotal.amountCents == 35000
    assert response.closedBy == "usr_cashier"
    assert response.closedAt == CLOSED_AT
    assert list(bills.bills) == [BillId(response.billId)]

    for order_id in ("ord_001", "ord_002"):
        order = orders.order(order_id)
        assert order.status == OrderStatus.COMPLETED
        assert order.billed is True
        assert order.bill_id == BillId(response.billId)
    assert orders.order("ord_003").status == OrderStatus.CANCELLED
    assert orders.order("ord_004").billed is False

    assert [(channel, event_name) for channel, event_name, _ in publisher.calls] == [
        ("restaurant:rst_001", "billing_closed"),
    ]
    event = json.loads(publisher.calls[0][2])
    assert event["payload"]["billId"] == response.billId
    assert event["payload"]["grandTotal"] == {"amountCents": 35000, "currency": "INR"}


def test_close_bill_without_open_orders_raises_and_writes_nothing() -> None:
    orders = FakeOrderRepository(_table_orders())
    bills = FakeBillRepository(orders)
    publisher = FakePublisher()

    with pytest.raises(NoOpenOrdersError):
        _close_bill(orders, bills, publisher).execute(_request(table_id="tbl_009"), TRACE)

    assert bills.bills == {}
    assert publisher.calls == []


def test_second_close_of_same_table_finds_nothing() -> None:
    orders = FakeOrderRepository(_table_orders())
    bills = FakeBillRepository(orders)
    use_case = _close_bill(orders, bills)

    use_case.execute(_request(), TRACE)
    with pytest.raises(NoOpenOrdersError):
        use_case.execute(_request(), TRACE)

    assert len(bills.bills) == 1
    assert bills.close_attempts == 2
    (bill,) = bills.bills.values()
    assert orders.order("ord_001").bill_id == bill.bill_id
    assert orders.order("ord_002").bill_id == bill.bill_id


def test_conflict_retries_against_fresh_state() -> None:
    orders = FakeOrderRepository(_table_orders())
    bills = FakeBillRepository(orders)
    bills.conflicts_remaining = 1

    response = _close_bill(orders, bills).execute(_request(), TRACE)

    assert bills.close_attempts == 2
    assert list(bills.bills) == [BillId(response.billId)]
    assert orders.order("ord_001").bill_id == BillId(response.billId)


def test_persistent_conflict_gives_up_with_conflict_error(caplog) -> None:
    orders = FakeOrderRepository(_table_orders())
    bills = FakeBillRepository(orders)
    bills.conflicts_remaining = 99

    with caplog.at_level(logging.WARNING):
        with pytest.raises(BillCloseConflictError):
            _close_bill(orders, bills).execute(_request(), TRACE)

    assert bills.close_attempts == 3
    assert bills.bills == {}
    assert orders.order("ord_001").billed is False
    conflicts = [record for record in caplog.records if record.getMessage() == "bill_close_conflict"]
    assert [record.attempt for record in conflicts] == [1, 2, 3]


def test_storage_failure_leaves_orders_open_and_surfaces_dependency_failure() -> None:
    orders = FakeOrderRepository(_table_orders())
    bills = FakeBillRepository(orders)
    bills.fail_with = StorageError("connection reset")
    publisher = FakePublisher()

    with pytest.raises(DependencyFailureError):
        _close_bill(orders, bills, publisher).execute(_request(), TRACE)

    assert bills.bills == {}
    assert orders.order("ord_001").billed is False
    assert orders.order("ord_002").billed is False
    assert publisher.calls == []


def test_close_bill_survives_publish_failure() -> None:
    orders = FakeOrderRepository(_table_orders())
    bills = FakeBillRepository(orders)

    response = _close_bill(orders, bills, BrokenPublisher()).execute(_request(), TRACE)

    assert response.status == "CLOSED"
    assert orders.order("ord_001").billed is True


def test_preview_lists_open_orders_oldest_first() -> None:
    orders = FakeOrderRepository(_table_orders())
    settings = RestaurantSettings(
        restaurant_id=RestaurantId("rst_001"),
        utc_offset_minutes=330,
        currency="INR",
    )

    response = PreviewOpenBill(orders, FakeRestaurantRepository(settings)).execute(
        RestaurantId("rst_001"),
        TableId("tbl_001"),
    )

    assert [order.orderId for order in response.orders] == ["ord_001", "ord_002"]
    assert response.totalAmount.amountCents == 35000
    assert orders.order("ord_001").billed is False


def test_empty_preview_uses_restaurant_currency() -> None:
    settings = RestaurantSettings(
        restaurant_id=RestaurantId("rst_001"),
        utc_offset_minutes=0,
        currency="EUR",
    )

    response = PreviewOpenBill(FakeOrderRepository([]), FakeRestaurantRepository(settings)).execute(
        RestaurantId("rst_001"),
        TableId("tbl_001"),
    )

    assert response.orders == []
    assert response.totalAmount.amountCents == 0
    assert response.totalAmount.currency == "EUR"


def test_empty_preview_for_unknown_restaurant_raises() -> None:
    with pytest.raises(RestaurantNotFoundError):
        PreviewOpenBill(FakeOrderRepository([]), FakeRestaurantRepository(None)).execute(
            RestaurantId("rst_404"),
            TableId("tbl_001"),
        )


def test_history_get_and_recent_read_back_closed_bills() -> None:
    orders = FakeOrderRepository(_table_orders())
    bills = FakeBillRepository(orders)
    closed = _close_bill(orders, bills).execute(_request(), TRACE)

    history = GetBillHistory(bills).execute(RestaurantId("rst_001"), TableId("tbl_001"))
    fetched = GetBill(bills).execute(RestaurantId("rst_001"), BillId(closed.billId))
    recent = RecentBills(bills).execute(RestaurantId("rst_001"), limit=5)

    assert history.count == 1
    assert history.bills[0].billId == closed.billId
    assert fetched.grandTotal.amountCents == 35000
    assert recent.count == 1
    assert bills.recent_limit == 5


def test_get_bill_scoped_to_restaurant() -> None:
    orders = FakeOrderRepository(_table_orders())
    bills = FakeBillRepository(orders)
    closed = _close_bill(orders, bills).execute(_request(), TRACE)

    with pytest.raises(BillNotFoundError):
        GetBill(bills).execute(RestaurantId("rst_other"), BillId(closed.billId))


@pytest.mark.parametrize("limit", [0, 101])
def test_recent_bills_limit_is_validated(limit: int) -> None:
    with pytest.raises(InvalidBillQueryError):
        RecentBills(FakeBillRepository()).execute(RestaurantId("rst_001"), limit=limit)

from __future__ import annotations

import json
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from qrdine.application.dto.requests import (
    CloseBillRequest,
    PlaceOrderLineRequest,
    PlaceOrderRequest,
    UpdateOrderStatusRequest,
)
from qrdine.application.use_cases.billing import (
    CloseBill,
    GetBillHistory,
    NoOpenOrdersError,
    PreviewOpenBill,
)
from qrdine.application.use_cases.context import ActorContext, TraceContext
from qrdine.application.use_cases.live_orders import LiveOrdersByTable
from qrdine.application.use_cases.place_order import MenuItemUnavailableError, PlaceOrder
from qrdine.application.use_cases.revenue import RevenueSummary
from qrdine.application.use_cases.update_order_status import UpdateOrderStatus
from qrdine.domain.common.ids import OrderId, RestaurantId, TableId
from qrdine.domain.order.entities import InvalidTransitionError
from qrdine.domain.table.entities import TableInactiveError
import qrdine.infrastructure.db.repositories.bill_repo as bill_repo_module
from qrdine.infrastructure.db.models.bill import BillOrderModel
from qrdine.infrastructure.db.repositories.bill_repo import SqlAlchemyBillRepository
from qrdine.infrastructure.db.repositories.menu_repo import SqlAlchemyMenuRepository
from qrdine.infrastructure.db.repositories.order_repo import (
    SqlAlchemyOrderRepository,
    mark_orders_billed,
)
from qrdine.infrastructure.db.repositories.restaurant_repo import SqlAlchemyRestaurantRepository
from qrdine.infrastructure.db.repositories.table_repo import SqlAlchemyTableRepository

TRACE = TraceContext(trace_id=None, request_id="req-flow")


def _place(engine, publisher, table_id: str, lines: list[tuple[str, int]]):
    use_case = PlaceOrder(
        menu_repository=SqlAlchemyMenuRepository(engine),
        table_repository=SqlAlchemyTableRepository(engine),
        order_repository=SqlAlchemyOrderRepository(engine),
        publisher=publisher,
    )
    return use_case.execute(
        restaurant_id=RestaurantId("rst_001"),
        table_id=TableId(table_id),
        request_dto=PlaceOrderRequest(
            session_id="ses_001",
            lines=[
                PlaceOrderLineRequest(item_id=item_id, quantity=quantity)
                for item_id, quantity in lines
            ],
        ),
        trace_ctx=TRACE,
    )


def _close(engine, publisher, table_id: str = "tbl_001"):
    use_case = CloseBill(
        order_repository=SqlAlchemyOrderRepository(engine),
        bill_repository=SqlAlchemyBillRepository(engine),
        publisher=publisher,
    )
    return use_case.execute(
        CloseBillRequest(restaurant_id="rst_001", table_id=table_id, actor_id="usr_cashier"),
        TRACE,
    )


def test_table_session_from_first_order_to_closed_bill(engine, publisher) -> None:
    first = _place(engine, publisher, "tbl_001", [("itm_burger", 2)])
    second = _place(engine, publisher, "tbl_001", [("itm_burger", 1), ("itm_fries", 1)])
    third = _place(engine, publisher, "tbl_001", [("itm_fries", 1)])
    _place(engine, publisher, "tbl_002", [("itm_fries", 2)])

    UpdateOrderStatus(SqlAlchemyOrderRepository(engine), publisher).execute(
        order_id=OrderId(third.orderId),
        request_dto=UpdateOrderStatusRequest(status="CANCELLED", cancel_reason="changed mind"),
        actor=ActorContext(actor_id=None),
        trace_ctx=TRACE,
    )

    preview = PreviewOpenBill(
        SqlAlchemyOrderRepository(engine),
        SqlAlchemyRestaurantRepository(engine),
    ).execute(RestaurantId("rst_001"), TableId("tbl_001"))
    assert [order.orderId for order in preview.orders] == [first.orderId, second.orderId]
    assert preview.totalAmount.amountCents == 35000

    bill = _close(engine, publisher)

    assert bill.orderIds == [first.orderId, second.orderId]
    assert [(line.name, line.quantity, line.lineTotal.amountCents) for line in bill.lines] == [
        ("Burger", 3, 30000),
        ("Fries", 1, 5000),
    ]
    assert bill.grandTotal.amountCents == 35000
    assert bill.closedBy == "usr_cashier"

    orders = SqlAlchemyOrderRepository(engine)
    for order_id in (first.orderId, second.orderId):
        order = orders.get(OrderId(order_id))
        assert order.billed is True
        assert order.bill_id == bill.billId
    assert orders.get(OrderId(third.orderId)).billed is False

    live = LiveOrdersByTable(orders).execute(RestaurantId("rst_001"))
    assert [table.tableId for table in live.tables] == ["tbl_002"]

    history = GetBillHistory(SqlAlchemyBillRepository(engine)).execute(
        RestaurantId("rst_001"),
        TableId("tbl_001"),
    )
    assert [entry.billId for entry in history.bills] == [bill.billId]

    closed_events = [call for call in publisher.calls if call[1] == "billing_closed"]
    assert len(closed_events) == 1
    assert closed_events[0][0] == "restaurant:rst_001"
    assert json.loads(closed_events[0][2])["payload"]["billId"] == bill.billId


def test_second_close_finds_no_open_orders(engine, publisher) -> None:
    _place(engine, publisher, "tbl_001", [("itm_burger", 1)])
    _close(engine, publisher)

    with pytest.raises(NoOpenOrdersError):
        _close(engine, publisher)

    assert len(SqlAlchemyBillRepository(engine).list_recent(RestaurantId("rst_001"), 10)) == 1


def test_billed_orders_refuse_status_changes(engine, publisher) -> None:
    placed = _place(engine, publisher, "tbl_001", [("itm_burger", 1)])
    _close(engine, publisher)

    with pytest.raises(InvalidTransitionError):
        UpdateOrderStatus(SqlAlchemyOrderRepository(engine), publisher).execute(
            order_id=OrderId(placed.orderId),
            request_dto=UpdateOrderStatusRequest(status="SERVED"),
            actor=ActorContext(actor_id=None),
            trace_ctx=TRACE,
        )


def test_closed_bill_shows_up_in_local_day_revenue(engine, publisher) -> None:
    _place(engine, publisher, "tbl_001", [("itm_burger", 2), ("itm_fries", 1)])
    bill = _close(engine, publisher)

    summary = RevenueSummary(
        SqlAlchemyBillRepository(engine),
        SqlAlchemyRestaurantRepository(engine),
        now=lambda: datetime.now(timezone.utc),
    ).execute(RestaurantId("rst_001"), "today")

    assert summary.currency == "INR"
    assert summary.totalBills == 1
    assert summary.totalRevenue == 250.0
    assert bill.grandTotal.amountCents == 25000


def test_inactive_table_and_unavailable_items_are_refused(engine, publisher) -> None:
    with pytest.raises(TableInactiveError):
        _place(engine, publisher, "tbl_003", [("itm_burger", 1)])
    with pytest.raises(MenuItemUnavailableError):
        _place(engine, publisher, "tbl_001", [("itm_soup", 1)])
    assert publisher.calls == []


class RendezvousOrderRepository(SqlAlchemyOrderRepository):
    """Holds each closer after its first billable read until all closers have read."""

    def __init__(self, engine, barrier: threading.Barrier) -> None:
        super().__init__(engine)
        self._barrier = barrier
        self._waited = False

    def find_billable_orders(self, restaurant_id, table_id):
        orders = super().find_billable_orders(restaurant_id, table_id)
        if not self._waited:
            self._waited = True
            self._barrier.wait(timeout=10)
        return orders


def test_readers_never_observe_a_half_written_close(file_engine, publisher, monkeypatch) -> None:
    _place(file_engine, publisher, "tbl_001", [("itm_burger", 1)])
    seen: dict[str, int] = {}

    def observe_then_flip(session, order_ids, bill_id):
        seen["bills"] = len(
            SqlAlchemyBillRepository(file_engine).find_bills_by_table(
                RestaurantId("rst_001"),
                TableId("tbl_001"),
            )
        )
        seen["billable"] = len(
            SqlAlchemyOrderRepository(file_engine).find_billable_orders(
                RestaurantId("rst_001"),
                TableId("tbl_001"),
            )
        )
        return mark_orders_billed(session, order_ids, bill_id)

    monkeypatch.setattr(bill_repo_module, "mark_orders_billed", observe_then_flip)

    bill = _close(file_engine, publisher)

    assert seen == {"bills": 0, "billable": 1}
    history = SqlAlchemyBillRepository(file_engine).find_bills_by_table(
        RestaurantId("rst_001"),
        TableId("tbl_001"),
    )
    assert [entry.bill_id for entry in history] == [bill.billId]
    assert SqlAlchemyOrderRepository(file_engine).find_billable_orders(
        RestaurantId("rst_001"),
        TableId("tbl_001"),
    ) == []


def test_close_interrupted_before_flip_leaves_no_bill_behind(engine, publisher, monkeypatch) -> None:
    placed = _place(engine, publisher, "tbl_001", [("itm_burger", 1)])

    def worker_stops(session, order_ids, bill_id):
        raise RuntimeError("worker stopped")

    monkeypatch.setattr(bill_repo_module, "mark_orders_billed", worker_stops)
    with pytest.raises(RuntimeError):
        _close(engine, publisher)
    monkeypatch.undo()

    bills = SqlAlchemyBillRepository(engine)
    assert bills.find_bills_by_table(RestaurantId("rst_001"), TableId("tbl_001")) == []
    assert SqlAlchemyOrderRepository(engine).get(OrderId(placed.orderId)).billed is False
    assert not [call for call in publisher.calls if call[1] == "billing_closed"]

    bill = _close(engine, publisher)

    stored = bills.find_bills_by_table(RestaurantId("rst_001"), TableId("tbl_001"))
    assert [entry.bill_id for entry in stored] == [bill.billId]
    assert stored[0].order_ids == [placed.orderId]


def test_concurrent_closes_of_one_table_bill_each_order_once(file_engine, publisher) -> None:
    first = _place(file_engine, publisher, "tbl_001", [("itm_burger", 2)])
    second = _place(file_engine, publisher, "tbl_001", [("itm_fries", 1)])
    barrier = threading.Barrier(2)
    outcomes: list[object] = []
    outcomes_lock = threading.Lock()

    def close() -> None:
        use_case = CloseBill(
            order_repository=RendezvousOrderRepository(file_engine, barrier),
            bill_repository=SqlAlchemyBillRepository(file_engine),
            publisher=publisher,
        )
        try:
            result: object = use_case.execute(
                CloseBillRequest(restaurant_id="rst_001", table_id="tbl_001"),
                TRACE,
            )
        except Exception as exc:
            result = exc
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=close) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert len(outcomes) == 2
    closed = [outcome for outcome in outcomes if not isinstance(outcome, Exception)]
    refused = [outcome for outcome in outcomes if isinstance(outcome, Exception)]
    assert len(closed) == 1
    assert len(refused) == 1
    assert isinstance(refused[0], NoOpenOrdersError)

    bills = SqlAlchemyBillRepository(file_engine).list_recent(RestaurantId("rst_001"), 10)
    assert [bill.bill_id for bill in bills] == [closed[0].billId]
    billed_order_ids = [order_id for bill in bills for order_id in bill.order_ids]
    assert sorted(billed_order_ids) == sorted([first.orderId, second.orderId])
    with Session(file_engine) as session:
        assert session.scalar(select(func.count()).select_from(BillOrderModel)) == 2
    for order_id in (first.orderId, second.orderId):
        order = SqlAlchemyOrderRepository(file_engine).get(OrderId(order_id))
        assert order.bill_id == closed[0].billId

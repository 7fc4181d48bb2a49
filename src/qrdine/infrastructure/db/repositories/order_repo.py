from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import Engine, Select, select, update
from sqlalchemy.orm import Session, joinedload

from qrdine.application.ports.repositories import OptimisticConcurrencyError, OrderRepository
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
from qrdine.domain.order.entities import (
    NON_BILLABLE_STATUSES,
    Order,
    OrderLine,
    OrderStatus,
)
from qrdine.infrastructure.db.models.order import OrderLineModel, OrderModel
from qrdine.infrastructure.db.session import get_engine
from qrdine.infrastructure.db.support import optional_utc, storage_errors, to_utc

_NON_BILLABLE_VALUES = sorted(status.value for status in NON_BILLABLE_STATUSES)


def _billable(statement: Select) -> Select:
    return statement.where(
        OrderModel.billed.is_(False),
        OrderModel.status.not_in(_NON_BILLABLE_VALUES),
    )


def mark_orders_billed(session: Session, order_ids: Sequence[OrderId], bill_id: BillId) -> int:
    """Flips the orders to billed and COMPLETED inside the caller's transaction.

    The update only touches orders that are still billable at write time. When
    fewer rows match than were asked for, ``OptimisticConcurrencyError`` is
    raised and nothing from the caller's transaction may be committed.
    """
    wanted = sorted({str(order_id) for order_id in order_ids})
    if not wanted:
        return 0

    statement = (
        update(OrderModel)
        .where(
            OrderModel.id.in_(wanted),
            OrderModel.billed.is_(False),
            OrderModel.status.not_in(_NON_BILLABLE_VALUES),
        )
        .values(
            billed=True,
            bill_id=str(bill_id),
            status=OrderStatus.COMPLETED.value,
            version=OrderModel.version + 1,
            updated_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )

    result = session.execute(statement)
    if result.rowcount != len(wanted):
        raise OptimisticConcurrencyError(
            f"{len(wanted) - result.rowcount} of {len(wanted)} orders "
            f"were no longer billable for bill {bill_id}"
        )
    return len(wanted)


class SqlAlchemyOrderRepository(OrderRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def add(self, order: Order) -> None:
        order_model = self._to_model(order)
        with storage_errors("add_order"), Session(self._engine) as session:
            session.add(order_model)
            session.commit()

    def get(self, order_id: OrderId) -> Order | None:
        statement = (
            select(OrderModel)
            .options(joinedload(OrderModel.lines))
            .where(OrderModel.id == str(order_id))
            .limit(1)
        )
        with storage_errors("get_order"), Session(self._engine) as session:
            model = session.execute(statement).unique().scalar_one_or_none()

        if model is None:
            return None

        return self._to_domain(model)

    def find_billable_orders(
        self,
        restaurant_id: RestaurantId,
        table_id: TableId,
    ) -> list[Order]:
        statement = _billable(
            select(OrderModel)
            .options(joinedload(OrderModel.lines))
            .where(
                OrderModel.restaurant_id == str(restaurant_id),
                OrderModel.table_id == str(table_id),
            )
        ).order_by(OrderModel.created_at.asc(), OrderModel.id.asc())
        return self._fetch("find_billable_orders", statement)

    def find_billable_for_restaurant(self, restaurant_id: RestaurantId) -> list[Order]:
        statement = _billable(
            select(OrderModel)
            .options(joinedload(OrderModel.lines))
            .where(OrderModel.restaurant_id == str(restaurant_id))
        ).order_by(OrderModel.created_at.asc(), OrderModel.id.asc())
        return self._fetch("find_billable_for_restaurant", statement)

    def list_for_session(self, session_id: SessionId) -> list[Order]:
        statement = (
            select(OrderModel)
            .options(joinedload(OrderModel.lines))
            .where(OrderModel.session_id == str(session_id))
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        return self._fetch("list_for_session", statement)

    def update_status_with_version(
        self,
        order_id: OrderId,
        new_status: OrderStatus,
        expected_version: int,
        cancel_reason: str | None = None,
    ) -> Order:
        statement = (
            update(OrderModel)
            .where(
                OrderModel.id == str(order_id),
                OrderModel.version == expected_version,
            )
            .values(
                status=new_status.value,
                cancel_reason=cancel_reason,
                version=OrderModel.version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        with storage_errors("update_order_status"), Session(self._engine) as session:
            result = session.execute(statement)
            if result.rowcount != 1:
                session.rollback()
                raise OptimisticConcurrencyError(f"order {order_id} version conflict")
            session.commit()

        updated = self.get(order_id)
        if updated is None:
            raise RuntimeError(f"order {order_id} not found after status update")
        return updated

    def _fetch(self, operation: str, statement: Select) -> list[Order]:
        with storage_errors(operation), Session(self._engine) as session:
            models = list(session.execute(statement).unique().scalars().all())
        return [self._to_domain(model) for model in models]

    def _to_model(self, order: Order) -> OrderModel:
        order_model = OrderModel(
            id=str(order.order_id),
            restaurant_id=str(order.restaurant_id),
            table_id=str(order.table_id),
            session_id=str(order.session_id),
            status=order.status.value,
            version=order.version,
            created_at=to_utc(order.created_at),
            updated_at=optional_utc(order.updated_at),
            total_cents=order.total.amount_cents,
            currency=order.total.currency,
            note=order.note,
            cancel_reason=order.cancel_reason,
            billed=order.billed,
            bill_id=str(order.bill_id) if order.bill_id is not None else None,
        )
        order_model.lines = [
            OrderLineModel(
                id=str(line.line_id),
                order_id=str(order.order_id),
                position=position,
                item_id=str(line.item_id),
                name=line.name,
                quantity=line.quantity,
                unit_price_cents=line.unit_price.amount_cents,
                currency=line.unit_price.currency,
                line_total_cents=line.line_total.amount_cents,
                notes=line.notes,
            )
            for position, line in enumerate(order.lines)
        ]
        return order_model

    def _to_domain(self, model: OrderModel) -> Order:
        lines = [
            OrderLine(
                line_id=OrderLineId(line.id),
                item_id=MenuItemId(line.item_id),
                name=line.name,
                quantity=line.quantity,
                unit_price=Money(amount_cents=line.unit_price_cents, currency=line.currency),
                line_total=Money(amount_cents=line.line_total_cents, currency=line.currency),
                notes=line.notes,
            )
            for line in model.lines
        ]
        return Order(
            order_id=OrderId(model.id),
            restaurant_id=RestaurantId(model.restaurant_id),
            table_id=TableId(model.table_id),
            session_id=SessionId(model.session_id),
            status=OrderStatus(model.status),
            lines=lines,
            total=Money(amount_cents=model.total_cents, currency=model.currency),
            created_at=to_utc(model.created_at),
            updated_at=optional_utc(model.updated_at),
            note=model.note,
            cancel_reason=model.cancel_reason,
            billed=model.billed,
            bill_id=BillId(model.bill_id) if model.bill_id is not None else None,
            version=model.version,
        )

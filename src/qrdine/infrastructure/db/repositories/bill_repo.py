from __future__ import annotations

from datetime import datetime

from sqlalchemy import Engine, Select, select
from sqlalchemy.orm import Session, joinedload

from qrdine.application.ports.repositories import BillRepository
from qrdine.domain.bill.entities import Bill, BillLine, BillStatus
from qrdine.domain.common.ids import ActorId, BillId, MenuItemId, OrderId, RestaurantId, TableId
from qrdine.domain.common.money import Money
from qrdine.infrastructure.db.models.bill import BillLineModel, BillModel, BillOrderModel
from qrdine.infrastructure.db.repositories.order_repo import mark_orders_billed
from qrdine.infrastructure.db.session import get_engine
from qrdine.infrastructure.db.support import storage_errors, to_utc


def _with_children(statement: Select) -> Select:
    return statement.options(joinedload(BillModel.lines), joinedload(BillModel.orders))


class SqlAlchemyBillRepository(BillRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def close_with_orders(self, bill: Bill) -> Bill:
        # bill rows and the order flip commit together or not at all
        with storage_errors("close_bill"), Session(self._engine) as session, session.begin():
            session.add(self._to_model(bill))
            session.flush()
            mark_orders_billed(session, bill.order_ids, bill.bill_id)
        return bill

    def get(self, restaurant_id: RestaurantId, bill_id: BillId) -> Bill | None:
        statement = _with_children(
            select(BillModel).where(
                BillModel.id == str(bill_id),
                BillModel.restaurant_id == str(restaurant_id),
            )
        )
        bills = self._fetch("get_bill", statement)
        return bills[0] if bills else None

    def find_bills_in_window(
        self,
        restaurant_id: RestaurantId,
        start_utc: datetime,
        end_utc: datetime,
    ) -> list[Bill]:
        statement = _with_children(
            select(BillModel)
            .where(
                BillModel.restaurant_id == str(restaurant_id),
                BillModel.status == BillStatus.CLOSED.value,
                BillModel.closed_at >= to_utc(start_utc),
                BillModel.closed_at <= to_utc(end_utc),
            )
            .order_by(BillModel.closed_at.asc(), BillModel.id.asc())
        )
        return self._fetch("find_bills_in_window", statement)

    def find_bills_by_table(self, restaurant_id: RestaurantId, table_id: TableId) -> list[Bill]:
        statement = _with_children(
            select(BillModel)
            .where(
                BillModel.restaurant_id == str(restaurant_id),
                BillModel.table_id == str(table_id),
            )
            .order_by(BillModel.closed_at.desc(), BillModel.id.desc())
        )
        return self._fetch("find_bills_by_table", statement)

    def list_recent(self, restaurant_id: RestaurantId, limit: int) -> list[Bill]:
        recent_ids = (
            select(BillModel.id)
            .where(BillModel.restaurant_id == str(restaurant_id))
            .order_by(BillModel.closed_at.desc(), BillModel.id.desc())
            .limit(limit)
        )
        statement = _with_children(
            select(BillModel)
            .where(BillModel.id.in_(recent_ids.scalar_subquery()))
            .order_by(BillModel.closed_at.desc(), BillModel.id.desc())
        )
        return self._fetch("list_recent_bills", statement)

    def _fetch(self, operation: str, statement: Select) -> list[Bill]:
        with storage_errors(operation), Session(self._engine) as session:
            models = list(session.execute(statement).unique().scalars().all())
            return [self._to_domain(model) for model in models]

    def _to_model(self, bill: Bill) -> BillModel:
        currency = bill.grand_total.currency
        model = BillModel(
            id=str(bill.bill_id),
            restaurant_id=str(bill.restaurant_id),
            table_id=str(bill.table_id),
            status=bill.status.value,
            subtotal_cents=bill.subtotal.amount_cents,
            tax_cents=bill.tax_amount.amount_cents,
            grand_total_cents=bill.grand_total.amount_cents,
            currency=currency,
            closed_at=to_utc(bill.closed_at),
            closed_by=str(bill.closed_by) if bill.closed_by is not None else None,
        )
        model.lines = [
            BillLineModel(
                position=position,
                item_id=str(line.item_id),
                name=line.name,
                quantity=line.quantity,
                unit_price_cents=line.unit_price.amount_cents,
                line_total_cents=line.line_total.amount_cents,
            )
            for position, line in enumerate(bill.lines)
        ]
        model.orders = [
            BillOrderModel(order_id=str(order_id), position=position)
            for position, order_id in enumerate(bill.order_ids)
        ]
        return model

    def _to_domain(self, model: BillModel) -> Bill:
        currency = model.currency
        return Bill(
            bill_id=BillId(model.id),
            restaurant_id=RestaurantId(model.restaurant_id),
            table_id=TableId(model.table_id),
            order_ids=[OrderId(link.order_id) for link in model.orders],
            lines=[
                BillLine(
                    item_id=MenuItemId(line.item_id),
                    name=line.name,
                    unit_price=Money(amount_cents=line.unit_price_cents, currency=currency),
                    quantity=line.quantity,
                    line_total=Money(amount_cents=line.line_total_cents, currency=currency),
                )
                for line in model.lines
            ],
            subtotal=Money(amount_cents=model.subtotal_cents, currency=currency),
            tax_amount=Money(amount_cents=model.tax_cents, currency=currency),
            grand_total=Money(amount_cents=model.grand_total_cents, currency=currency),
            closed_at=to_utc(model.closed_at),
            closed_by=ActorId(model.closed_by) if model.closed_by is not None else None,
            status=BillStatus(model.status),
        )

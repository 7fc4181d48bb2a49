from __future__ import annotations

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from qrdine.application.ports.repositories import TableRepository
from qrdine.domain.common.ids import RestaurantId, TableId
from qrdine.domain.table.entities import Table
from qrdine.infrastructure.db.models.table import TableModel
from qrdine.infrastructure.db.session import get_engine
from qrdine.infrastructure.db.support import storage_errors


class SqlAlchemyTableRepository(TableRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get(self, table_id: TableId, restaurant_id: RestaurantId) -> Table | None:
        statement = select(TableModel).where(
            TableModel.id == str(table_id),
            TableModel.restaurant_id == str(restaurant_id),
        )
        with storage_errors("get_table"), Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()

        if model is None:
            return None

        return Table(
            table_id=TableId(model.id),
            restaurant_id=RestaurantId(model.restaurant_id),
            table_code=model.table_code,
            is_active=model.is_active,
        )

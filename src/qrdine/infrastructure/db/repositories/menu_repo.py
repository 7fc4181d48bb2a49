from __future__ import annotations

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session, joinedload

from qrdine.application.ports.repositories import MenuRepository
from qrdine.domain.common.ids import MenuId, MenuItemId, RestaurantId
from qrdine.domain.common.money import Money
from qrdine.domain.menu.entities import Menu, MenuItem
from qrdine.infrastructure.db.models.menu import MenuModel
from qrdine.infrastructure.db.session import get_engine
from qrdine.infrastructure.db.support import storage_errors


class SqlAlchemyMenuRepository(MenuRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get_menu_by_restaurant_id(self, restaurant_id: RestaurantId) -> Menu | None:
        statement = (
            select(MenuModel)
            .options(joinedload(MenuModel.items))
            .where(MenuModel.restaurant_id == str(restaurant_id))
            .order_by(MenuModel.version.desc())
            .limit(1)
        )

        with storage_errors("get_menu"), Session(self._engine) as session:
            menu_model = session.execute(statement).unique().scalar_one_or_none()

        if menu_model is None:
            return None

        items = [
            MenuItem(
                item_id=MenuItemId(item.id),
                name=item.name,
                price_money=Money(amount_cents=item.price_cents, currency=item.currency),
                is_available=item.is_available,
                category_id=item.category_id,
            )
            for item in menu_model.items
        ]

        return Menu(
            menu_id=MenuId(menu_model.id),
            restaurant_id=RestaurantId(menu_model.restaurant_id),
            items=items,
        )

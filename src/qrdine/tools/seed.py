from __future__ import annotations

from sqlalchemy import inspect
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from qrdine.infrastructure.db.models.menu import MenuItemModel, MenuModel, RestaurantModel
from qrdine.infrastructure.db.models.table import TableModel
from qrdine.infrastructure.db.session import get_engine

RESTAURANT = {
    "id": "rst_001",
    "name": "Spice Route Bistro",
    "currency": "INR",
    "utc_offset_minutes": 330,
}

MENU_ITEMS = [
    ("itm_001", "Paneer Tikka", "cat_starters", 24000, True),
    ("itm_002", "Butter Chicken", "cat_mains", 36000, True),
    ("itm_003", "Garlic Naan", "cat_breads", 6000, True),
    ("itm_004", "Masala Chai", "cat_drinks", 4000, True),
    ("itm_005", "Gulab Jamun", "cat_desserts", 12000, False),
]

TABLE_CODES = ["T1", "T2", "T3", "T4", "T5", "T6"]


def main() -> None:
    engine = get_engine(timeout_seconds=2.0)
    inspector = inspect(engine)
    required_tables = {"restaurants", "menus", "menu_items", "tables"}
    if not required_tables.issubset(set(inspector.get_table_names(schema="public"))):
        print("no schema yet")
        return

    with Session(engine) as session:
        session.execute(
            insert(RestaurantModel)
            .values(**RESTAURANT)
            .on_conflict_do_update(
                index_elements=[RestaurantModel.id],
                set_={key: value for key, value in RESTAURANT.items() if key != "id"},
            )
        )

        session.execute(
            insert(MenuModel)
            .values(id="men_001", restaurant_id=RESTAURANT["id"], version=1)
            .on_conflict_do_update(
                index_elements=[MenuModel.id],
                set_={"restaurant_id": RESTAURANT["id"], "version": 1},
            )
        )

        for item_id, name, category_id, price_cents, is_available in MENU_ITEMS:
            values = {
                "menu_id": "men_001",
                "name": name,
                "category_id": category_id,
                "price_cents": price_cents,
                "currency": RESTAURANT["currency"],
                "is_available": is_available,
            }
            session.execute(
                insert(MenuItemModel)
                .values(id=item_id, **values)
                .on_conflict_do_update(index_elements=[MenuItemModel.id], set_=values)
            )

        for position, table_code in enumerate(TABLE_CODES, start=1):
            session.execute(
                insert(TableModel)
                .values(
                    id=f"tbl_{position:03d}",
                    restaurant_id=RESTAURANT["id"],
                    table_code=table_code,
                    is_active=True,
                )
                .on_conflict_do_update(
                    index_elements=[TableModel.id],
                    set_={"table_code": table_code, "is_active": True},
                )
            )

        session.commit()
        print("seed complete")


if __name__ == "__main__":
    main()

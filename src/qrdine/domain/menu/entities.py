from __future__ import annotations

from dataclasses import dataclass, field

from qrdine.domain.common.ids import MenuId, MenuItemId, RestaurantId
from qrdine.domain.common.money import Money


@dataclass(frozen=True)
class MenuItem:
    item_id: MenuItemId
    name: str
    price_money: Money
    is_available: bool
    category_id: str | None = None

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("name must be non-empty")


@dataclass(frozen=True)
class Menu:
    menu_id: MenuId
    restaurant_id: RestaurantId
    items: list[MenuItem] = field(default_factory=list)

    def find_item(self, item_id: str) -> MenuItem | None:
        for item in self.items:
            if str(item.item_id) == item_id:
                return item
        return None

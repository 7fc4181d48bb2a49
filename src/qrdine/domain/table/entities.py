from __future__ import annotations

from dataclasses import dataclass

from qrdine.domain.common.ids import RestaurantId, TableId


@dataclass(frozen=True)
class Table:
    table_id: TableId
    restaurant_id: RestaurantId
    table_code: str
    is_active: bool = True

    def __post_init__(self) -> None:
        if not self.table_code.strip():
            raise ValueError("table_code must be non-empty")

    def ensure_active(self) -> None:
        if not self.is_active:
            raise TableInactiveError(f"table {self.table_id} is not accepting orders")


class TableInactiveError(Exception):
    pass

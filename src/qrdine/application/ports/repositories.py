from __future__ import annotations

from datetime import datetime
from typing import Protocol

from qrdine.domain.bill.entities import Bill
from qrdine.domain.common.ids import (
    BillId,
    OrderId,
    RestaurantId,
    ServiceRequestId,
    SessionId,
    TableId,
)
from qrdine.domain.menu.entities import Menu
from qrdine.domain.order.entities import Order, OrderStatus
from qrdine.domain.restaurant.entities import RestaurantSettings
from qrdine.domain.service_request.entities import (
    ServiceRequest,
    ServiceRequestStatus,
    ServiceRequestType,
)
from qrdine.domain.table.entities import Table


class MenuRepository(Protocol):
    def get_menu_by_restaurant_id(self, restaurant_id: RestaurantId) -> Menu | None: ...


class TableRepository(Protocol):
    def get(self, table_id: TableId, restaurant_id: RestaurantId) -> Table | None: ...


class RestaurantRepository(Protocol):
    def get_settings(self, restaurant_id: RestaurantId) -> RestaurantSettings | None: ...


class OrderRepository(Protocol):
    def add(self, order: Order) -> None: ...

    def get(self, order_id: OrderId) -> Order | None: ...

    def find_billable_orders(
        self,
        restaurant_id: RestaurantId,
        table_id: TableId,
    ) -> list[Order]: ...

    def find_billable_for_restaurant(self, restaurant_id: RestaurantId) -> list[Order]: ...

    def list_for_session(self, session_id: SessionId) -> list[Order]: ...

    def update_status_with_version(
        self,
        order_id: OrderId,
        new_status: OrderStatus,
        expected_version: int,
        cancel_reason: str | None = None,
    ) -> Order: ...


class BillRepository(Protocol):
    def close_with_orders(self, bill: Bill) -> Bill:
        """Stores the bill and flips its orders to billed as one atomic write.

        Raises ``OptimisticConcurrencyError`` when any order stopped being
        billable; nothing is stored in that case.
        """
        ...

    def get(self, restaurant_id: RestaurantId, bill_id: BillId) -> Bill | None: ...

    def find_bills_in_window(
        self,
        restaurant_id: RestaurantId,
        start_utc: datetime,
        end_utc: datetime,
    ) -> list[Bill]: ...

    def find_bills_by_table(self, restaurant_id: RestaurantId, table_id: TableId) -> list[Bill]: ...

    def list_recent(self, restaurant_id: RestaurantId, limit: int) -> list[Bill]: ...


class ServiceRequestRepository(Protocol):
    def add(self, request: ServiceRequest) -> None: ...

    def get(self, request_id: ServiceRequestId) -> ServiceRequest | None: ...

    def update(self, request: ServiceRequest) -> None: ...

    def find_open(
        self,
        restaurant_id: RestaurantId,
        table_id: TableId,
        request_type: ServiceRequestType,
    ) -> ServiceRequest | None: ...

    def list_for_restaurant(
        self,
        restaurant_id: RestaurantId,
        status: ServiceRequestStatus | None,
        request_type: ServiceRequestType | None,
        limit: int,
    ) -> list[ServiceRequest]: ...


class StorageError(Exception):
    pass


class OptimisticConcurrencyError(Exception):
    pass

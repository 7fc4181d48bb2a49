from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from qrdine.domain.common.ids import RestaurantId, ServiceRequestId, TableId


class ServiceRequestType(str, Enum):
    BILL = "BILL"
    WAITER = "WAITER"


class ServiceRequestStatus(str, Enum):
    OPEN = "OPEN"
    ACK = "ACK"
    CLOSED = "CLOSED"


class ServiceRequestClosedError(Exception):
    pass


@dataclass(frozen=True)
class ServiceRequest:
    request_id: ServiceRequestId
    restaurant_id: RestaurantId
    table_id: TableId
    table_code: str
    type: ServiceRequestType
    status: ServiceRequestStatus
    created_at: datetime
    ack_at: datetime | None = None
    closed_at: datetime | None = None

    def acknowledge(self, now: datetime) -> ServiceRequest:
        if self.status == ServiceRequestStatus.CLOSED:
            raise ServiceRequestClosedError(f"service request {self.request_id} already closed")
        return replace(self, status=ServiceRequestStatus.ACK, ack_at=now)

    def close(self, now: datetime) -> ServiceRequest:
        return replace(self, status=ServiceRequestStatus.CLOSED, closed_at=now)

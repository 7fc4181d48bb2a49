from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from qrdine.application.dto.requests import CreateServiceRequestRequest
from qrdine.application.dto.responses import (
    ServiceRequestListResponse,
    ServiceRequestResponse,
    ServiceRequestResultResponse,
)
from qrdine.application.errors import storage_guard
from qrdine.application.mappers.event_envelope import serialize_service_request_event
from qrdine.application.mappers.service_request_mapper import to_service_request_response
from qrdine.application.metrics.order_lifecycle import record_service_request
from qrdine.application.notifications import publish_best_effort
from qrdine.application.ports.publisher import EventPublisher, staff_channel
from qrdine.application.ports.repositories import ServiceRequestRepository, TableRepository
from qrdine.application.use_cases.context import TraceContext
from qrdine.application.use_cases.place_order import TableNotFoundError
from qrdine.domain.common.ids import RestaurantId, ServiceRequestId, TableId
from qrdine.domain.service_request.entities import (
    ServiceRequest,
    ServiceRequestStatus,
    ServiceRequestType,
)

MAX_LISTED_REQUESTS = 200


class InvalidServiceRequestError(Exception):
    pass


class ServiceRequestNotFoundError(Exception):
    pass


def parse_request_type(raw: str) -> ServiceRequestType:
    try:
        return ServiceRequestType((raw or "").strip().upper())
    except ValueError as exc:
        raise InvalidServiceRequestError("type must be BILL or WAITER") from exc


def parse_request_status(raw: str) -> ServiceRequestStatus:
    try:
        return ServiceRequestStatus((raw or "").strip().upper())
    except ValueError as exc:
        raise InvalidServiceRequestError("status must be OPEN, ACK or CLOSED") from exc


def _publish(
    publisher: EventPublisher,
    event_type: str,
    request: ServiceRequest,
    occurred_at: datetime,
    trace_ctx: TraceContext,
) -> None:
    publish_best_effort(
        publisher,
        channel=staff_channel(str(request.restaurant_id)),
        event_name=event_type,
        message=serialize_service_request_event(
            event_type=event_type,
            occurred_at=occurred_at,
            request=request,
            trace_id=trace_ctx.trace_id,
            request_id=trace_ctx.request_id,
        ),
    )


class CreateServiceRequest:
    def __init__(
        self,
        table_repository: TableRepository,
        service_request_repository: ServiceRequestRepository,
        publisher: EventPublisher,
    ) -> None:
        self._table_repository = table_repository
        self._service_request_repository = service_request_repository
        self._publisher = publisher

    def execute(
        self,
        restaurant_id: RestaurantId,
        table_id: TableId,
        request_dto: CreateServiceRequestRequest,
        trace_ctx: TraceContext,
    ) -> ServiceRequestResultResponse:
        request_type = parse_request_type(request_dto.type)

        with storage_guard("create_service_request", restaurant_id=str(restaurant_id)):
            table = self._table_repository.get(table_id=table_id, restaurant_id=restaurant_id)
            if table is None:
                raise TableNotFoundError(
                    f"table not found for restaurant_id={restaurant_id}, table_id={table_id}"
                )

            existing = self._service_request_repository.find_open(
                restaurant_id=restaurant_id,
                table_id=table_id,
                request_type=request_type,
            )
            if existing is not None:
                return ServiceRequestResultResponse(
                    created=False,
                    request=to_service_request_response(existing),
                )

            now = datetime.now(timezone.utc)
            request = ServiceRequest(
                request_id=ServiceRequestId(f"srq_{uuid4().hex[:12]}"),
                restaurant_id=restaurant_id,
                table_id=table_id,
                table_code=table.table_code,
                type=request_type,
                status=ServiceRequestStatus.OPEN,
                created_at=now,
            )
            self._service_request_repository.add(request)

        record_service_request(restaurant_id=str(restaurant_id), request_type=request_type.value)
        _publish(self._publisher, "service_request", request, now, trace_ctx)
        return ServiceRequestResultResponse(
            created=True,
            request=to_service_request_response(request),
        )


class _ServiceRequestUpdate:
    operation = "update_service_request"

    def __init__(
        self,
        service_request_repository: ServiceRequestRepository,
        publisher: EventPublisher,
    ) -> None:
        self._service_request_repository = service_request_repository
        self._publisher = publisher

    def _apply(self, request: ServiceRequest, now: datetime) -> ServiceRequest:
        raise NotImplementedError

    def execute(
        self,
        request_id: ServiceRequestId,
        trace_ctx: TraceContext,
    ) -> ServiceRequestResponse:
        with storage_guard(self.operation, service_request_id=str(request_id)):
            current = self._service_request_repository.get(request_id)
            if current is None:
                raise ServiceRequestNotFoundError(f"service request {request_id} not found")

            now = datetime.now(timezone.utc)
            updated = self._apply(current, now)
            self._service_request_repository.update(updated)

        _publish(self._publisher, "service_request_update", updated, now, trace_ctx)
        return to_service_request_response(updated)


class AcknowledgeServiceRequest(_ServiceRequestUpdate):
    operation = "acknowledge_service_request"

    def _apply(self, request: ServiceRequest, now: datetime) -> ServiceRequest:
        return request.acknowledge(now)


class CloseServiceRequest(_ServiceRequestUpdate):
    operation = "close_service_request"

    def _apply(self, request: ServiceRequest, now: datetime) -> ServiceRequest:
        return request.close(now)


class ListServiceRequests:
    def __init__(self, service_request_repository: ServiceRequestRepository) -> None:
        self._service_request_repository = service_request_repository

    def execute(
        self,
        restaurant_id: RestaurantId,
        status: str | None = None,
        request_type: str | None = None,
    ) -> ServiceRequestListResponse:
        status_filter = parse_request_status(status) if status else None
        type_filter = parse_request_type(request_type) if request_type else None

        with storage_guard("list_service_requests", restaurant_id=str(restaurant_id)):
            requests = self._service_request_repository.list_for_restaurant(
                restaurant_id=restaurant_id,
                status=status_filter,
                request_type=type_filter,
                limit=MAX_LISTED_REQUESTS,
            )
        ordered = sorted(requests, key=lambda request: request.created_at, reverse=True)
        return ServiceRequestListResponse(
            requests=[
                to_service_request_response(request)
                for request in ordered[:MAX_LISTED_REQUESTS]
            ]
        )

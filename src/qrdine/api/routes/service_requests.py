from __future__ import annotations

from fastapi import APIRouter, Query, Response, status

from qrdine.api.request_context import trace_context
from qrdine.application.dto.requests import CreateServiceRequestRequest
from qrdine.application.dto.responses import (
    ServiceRequestListResponse,
    ServiceRequestResponse,
    ServiceRequestResultResponse,
)
from qrdine.application.use_cases.service_requests import (
    AcknowledgeServiceRequest,
    CloseServiceRequest,
    CreateServiceRequest,
    ListServiceRequests,
)
from qrdine.domain.common.ids import RestaurantId, ServiceRequestId, TableId
from qrdine.infrastructure.db.repositories.service_request_repo import (
    SqlAlchemyServiceRequestRepository,
)
from qrdine.infrastructure.db.repositories.table_repo import SqlAlchemyTableRepository
from qrdine.infrastructure.messaging.redis_publisher import RedisEventPublisher

router = APIRouter()


def _create_service_request_use_case() -> CreateServiceRequest:
    return CreateServiceRequest(
        table_repository=SqlAlchemyTableRepository(),
        service_request_repository=SqlAlchemyServiceRequestRepository(),
        publisher=RedisEventPublisher(),
    )


def _acknowledge_service_request_use_case() -> AcknowledgeServiceRequest:
    return AcknowledgeServiceRequest(
        service_request_repository=SqlAlchemyServiceRequestRepository(),
        publisher=RedisEventPublisher(),
    )


def _close_service_request_use_case() -> CloseServiceRequest:
    return CloseServiceRequest(
        service_request_repository=SqlAlchemyServiceRequestRepository(),
        publisher=RedisEventPublisher(),
    )


def _list_service_requests_use_case() -> ListServiceRequests:
    return ListServiceRequests(service_request_repository=SqlAlchemyServiceRequestRepository())


@router.post(
    "/v1/restaurants/{restaurant_id}/tables/{table_id}/service-requests",
    response_model=ServiceRequestResultResponse,
)
def create_service_request(
    restaurant_id: str,
    table_id: str,
    request_dto: CreateServiceRequestRequest,
    response: Response,
) -> ServiceRequestResultResponse:
    result = _create_service_request_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        table_id=TableId(table_id),
        request_dto=request_dto,
        trace_ctx=trace_context(),
    )
    response.status_code = status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
    return result


@router.get(
    "/v1/restaurants/{restaurant_id}/service-requests",
    response_model=ServiceRequestListResponse,
)
def list_service_requests(
    restaurant_id: str,
    status_filter: str | None = Query(default=None, alias="status"),
    type_filter: str | None = Query(default=None, alias="type"),
) -> ServiceRequestListResponse:
    return _list_service_requests_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        status=status_filter,
        request_type=type_filter,
    )


@router.post("/v1/service-requests/{request_id}/ack", response_model=ServiceRequestResponse)
def acknowledge_service_request(request_id: str) -> ServiceRequestResponse:
    return _acknowledge_service_request_use_case().execute(
        request_id=ServiceRequestId(request_id),
        trace_ctx=trace_context(),
    )


@router.post("/v1/service-requests/{request_id}/close", response_model=ServiceRequestResponse)
def close_service_request(request_id: str) -> ServiceRequestResponse:
    return _close_service_request_use_case().execute(
        request_id=ServiceRequestId(request_id),
        trace_ctx=trace_context(),
    )

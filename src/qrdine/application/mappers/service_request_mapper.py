from __future__ import annotations

from qrdine.application.dto.responses import ServiceRequestResponse
from qrdine.domain.service_request.entities import ServiceRequest


def to_service_request_response(request: ServiceRequest) -> ServiceRequestResponse:
    return ServiceRequestResponse(
        requestId=str(request.request_id),
        restaurantId=str(request.restaurant_id),
        tableId=str(request.table_id),
        tableCode=request.table_code,
        type=request.type.value,
        status=request.status.value,
        createdAt=request.created_at,
        ackAt=request.ack_at,
        closedAt=request.closed_at,
    )

from __future__ import annotations

from sqlalchemy import Engine, select, update
from sqlalchemy.orm import Session

from qrdine.application.ports.repositories import ServiceRequestRepository
from qrdine.domain.common.ids import RestaurantId, ServiceRequestId, TableId
from qrdine.domain.service_request.entities import (
    ServiceRequest,
    ServiceRequestStatus,
    ServiceRequestType,
)
from qrdine.infrastructure.db.models.service_request import ServiceRequestModel
from qrdine.infrastructure.db.session import get_engine
from qrdine.infrastructure.db.support import optional_utc, storage_errors, to_utc


class SqlAlchemyServiceRequestRepository(ServiceRequestRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def add(self, request: ServiceRequest) -> None:
        model = ServiceRequestModel(
            id=str(request.request_id),
            restaurant_id=str(request.restaurant_id),
            table_id=str(request.table_id),
            table_code=request.table_code,
            type=request.type.value,
            status=request.status.value,
            created_at=to_utc(request.created_at),
            ack_at=optional_utc(request.ack_at),
            closed_at=optional_utc(request.closed_at),
        )
        with storage_errors("add_service_request"), Session(self._engine) as session:
            session.add(model)
            session.commit()

    def get(self, request_id: ServiceRequestId) -> ServiceRequest | None:
        statement = select(ServiceRequestModel).where(ServiceRequestModel.id == str(request_id))
        with storage_errors("get_service_request"), Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    def update(self, request: ServiceRequest) -> None:
        statement = (
            update(ServiceRequestModel)
            .where(ServiceRequestModel.id == str(request.request_id))
            .values(
                status=request.status.value,
                ack_at=optional_utc(request.ack_at),
                closed_at=optional_utc(request.closed_at),
            )
        )
        with storage_errors("update_service_request"), Session(self._engine) as session:
            session.execute(statement)
            session.commit()

    def find_open(
        self,
        restaurant_id: RestaurantId,
        table_id: TableId,
        request_type: ServiceRequestType,
    ) -> ServiceRequest | None:
        statement = (
            select(ServiceRequestModel)
            .where(
                ServiceRequestModel.restaurant_id == str(restaurant_id),
                ServiceRequestModel.table_id == str(table_id),
                ServiceRequestModel.type == request_type.value,
                ServiceRequestModel.status == ServiceRequestStatus.OPEN.value,
            )
            .order_by(ServiceRequestModel.created_at.desc())
            .limit(1)
        )
        with storage_errors("find_open_service_request"), Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    def list_for_restaurant(
        self,
        restaurant_id: RestaurantId,
        status: ServiceRequestStatus | None,
        request_type: ServiceRequestType | None,
        limit: int,
    ) -> list[ServiceRequest]:
        statement = select(ServiceRequestModel).where(
            ServiceRequestModel.restaurant_id == str(restaurant_id)
        )
        if status is not None:
            statement = statement.where(ServiceRequestModel.status == status.value)
        if request_type is not None:
            statement = statement.where(ServiceRequestModel.type == request_type.value)
        statement = statement.order_by(
            ServiceRequestModel.created_at.desc(),
            ServiceRequestModel.id.desc(),
        ).limit(limit)

        with storage_errors("list_service_requests"), Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [self._to_domain(model) for model in models]

    def _to_domain(self, model: ServiceRequestModel) -> ServiceRequest:
        return ServiceRequest(
            request_id=ServiceRequestId(model.id),
            restaurant_id=RestaurantId(model.restaurant_id),
            table_id=TableId(model.table_id),
            table_code=model.table_code,
            type=ServiceRequestType(model.type),
            status=ServiceRequestStatus(model.status),
            created_at=to_utc(model.created_at),
            ack_at=optional_utc(model.ack_at),
            closed_at=optional_utc(model.closed_at),
        )

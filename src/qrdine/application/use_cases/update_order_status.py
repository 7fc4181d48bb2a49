from __future__ import annotations

import logging
from datetime import datetime, timezone

from qrdine.application.dto.requests import UpdateOrderStatusRequest
from qrdine.application.dto.responses import OrderResponse
from qrdine.application.errors import storage_guard
from qrdine.application.mappers.event_envelope import (
    serialize_customer_orders_updated_event,
    serialize_order_status_event,
    serialize_order_updated_event,
)
from qrdine.application.mappers.order_mapper import to_order_response
from qrdine.application.metrics.order_lifecycle import (
    record_order_status,
    record_transition,
    record_transition_rejected,
)
from qrdine.application.notifications import publish_best_effort
from qrdine.application.ports.publisher import (
    EventPublisher,
    order_channel,
    session_channel,
    staff_channel,
)
from qrdine.application.ports.repositories import OptimisticConcurrencyError, OrderRepository
from qrdine.application.use_cases.context import ActorContext, TraceContext
from qrdine.application.use_cases.get_order import OrderNotFoundError
from qrdine.domain.common.ids import OrderId
from qrdine.domain.order.entities import InvalidTransitionError, Order, parse_order_status
from qrdine.domain.order.events import OrderStatusChanged

logger = logging.getLogger(__name__)


class OrderConflictError(Exception):
    pass


class UpdateOrderStatus:
    def __init__(self, order_repository: OrderRepository, publisher: EventPublisher) -> None:
        self._order_repository = order_repository
        self._publisher = publisher

    def execute(
        self,
        order_id: OrderId,
        request_dto: UpdateOrderStatusRequest,
        actor: ActorContext,
        trace_ctx: TraceContext,
    ) -> OrderResponse:
        target = parse_order_status(request_dto.status)

        with storage_guard("update_order_status", order_id=str(order_id)):
            order = self._order_repository.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"order {order_id} not found")

        if order.status == target and not order.is_terminal:
            return to_order_response(order)

        now = datetime.now(timezone.utc)
        try:
            changed = order.transition_to(target, now=now, reason=request_dto.cancel_reason)
        except InvalidTransitionError:
            record_transition_rejected(from_status=order.status, to_status=target)
            raise

        try:
            with storage_guard("update_order_status", order_id=str(order_id)):
                persisted = self._order_repository.update_status_with_version(
                    order_id=order.order_id,
                    new_status=changed.status,
                    expected_version=order.version,
                    cancel_reason=changed.cancel_reason,
                )
        except OptimisticConcurrencyError:
            with storage_guard("update_order_status", order_id=str(order_id)):
                current = self._order_repository.get(order_id)
            if current is None:
                raise OrderNotFoundError(f"order {order_id} not found")
            if current.status == target:
                return to_order_response(current)
            raise OrderConflictError(f"order {order_id} status update conflict")

        event = OrderStatusChanged(
            order_id=persisted.order_id,
            restaurant_id=persisted.restaurant_id,
            table_id=persisted.table_id,
            session_id=persisted.session_id,
            from_status=order.status,
            to_status=persisted.status,
            occurred_at=now,
        )
        logger.info(
            "order_status_changed",
            extra={
                "order_id": str(event.order_id),
                "restaurant_id": str(event.restaurant_id),
                "from_status": event.from_status.value,
                "to_status": event.to_status.value,
                "actor_id": str(actor.actor_id) if actor.actor_id else None,
            },
        )
        record_transition(from_status=event.from_status, to_status=event.to_status)
        record_order_status(persisted)
        self._publish(persisted, event.occurred_at, trace_ctx)

        return to_order_response(persisted)

    def _publish(self, order: Order, occurred_at: datetime, trace_ctx: TraceContext) -> None:
        publish_best_effort(
            self._publisher,
            channel=staff_channel(str(order.restaurant_id)),
            event_name="order_updated",
            message=serialize_order_updated_event(
                update_type="STATUS_CHANGED",
                occurred_at=occurred_at,
                order=order,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )
        publish_best_effort(
            self._publisher,
            channel=order_channel(str(order.order_id)),
            event_name="order_status",
            message=serialize_order_status_event(
                occurred_at=occurred_at,
                order=order,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )
        publish_best_effort(
            self._publisher,
            channel=session_channel(str(order.session_id)),
            event_name="customer_orders_updated",
            message=serialize_customer_orders_updated_event(
                occurred_at=occurred_at,
                order=order,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )

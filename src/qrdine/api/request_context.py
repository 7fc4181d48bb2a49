from __future__ import annotations

from opentelemetry import trace

from qrdine.api.middleware.request_id import get_request_id
from qrdine.application.use_cases.context import ActorContext, TraceContext
from qrdine.domain.common.ids import ActorId

ACTOR_ID_HEADER = "X-Actor-Id"


def current_trace_id() -> str | None:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return format(span_context.trace_id, "032x")


def trace_context() -> TraceContext:
    return TraceContext(trace_id=current_trace_id(), request_id=get_request_id())


def actor_context(actor_id: str | None) -> ActorContext:
    cleaned = (actor_id or "").strip()
    return ActorContext(actor_id=ActorId(cleaned) if cleaned else None)

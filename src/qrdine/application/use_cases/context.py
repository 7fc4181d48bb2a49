from __future__ import annotations

from dataclasses import dataclass

from qrdine.domain.common.ids import ActorId


@dataclass(frozen=True)
class TraceContext:
    trace_id: str | None
    request_id: str | None


@dataclass(frozen=True)
class ActorContext:
    actor_id: ActorId | None
    role: str = "STAFF"

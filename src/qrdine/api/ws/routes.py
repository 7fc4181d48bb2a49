from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from qrdine.api.ws.manager import ConnectionManager
from qrdine.application.ports.publisher import order_channel, session_channel, staff_channel

router = APIRouter()
logger = logging.getLogger(__name__)


def resolve_room(query_params: dict[str, str]) -> tuple[str, str] | None:
    restaurant_id = query_params.get("restaurant_id")
    if restaurant_id:
        return staff_channel(restaurant_id), "STAFF"
    order_id = query_params.get("order_id")
    if order_id:
        return order_channel(order_id), "CUSTOMER"
    session_id = query_params.get("session_id")
    if session_id:
        return session_channel(session_id), "CUSTOMER"
    return None


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    resolved = resolve_room(dict(websocket.query_params))
    if resolved is None:
        await websocket.close(
            code=1008,
            reason="one of restaurant_id, order_id or session_id is required",
        )
        return
    room, default_role = resolved
    role = websocket.query_params.get("role", default_role)

    manager: ConnectionManager = websocket.app.state.ws_manager
    await manager.register(websocket=websocket, room=room, role=role)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await manager.unregister(websocket)
    except Exception:
        logger.exception("ws_connection_error", extra={"room": room})
        await manager.unregister(websocket)

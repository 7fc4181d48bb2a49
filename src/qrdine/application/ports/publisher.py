from __future__ import annotations

from typing import Protocol


class EventPublisher(Protocol):
    def publish(self, channel: str, event_name: str, message: str) -> None: ...


def staff_channel(restaurant_id: str) -> str:
    return f"restaurant:{restaurant_id}"


def order_channel(order_id: str) -> str:
    return f"order:{order_id}"


def session_channel(session_id: str) -> str:
    return f"session:{session_id}"

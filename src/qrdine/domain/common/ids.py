from __future__ import annotations

from typing import NewType

RestaurantId = NewType("RestaurantId", str)
MenuId = NewType("MenuId", str)
MenuItemId = NewType("MenuItemId", str)
TableId = NewType("TableId", str)
OrderId = NewType("OrderId", str)
OrderLineId = NewType("OrderLineId", str)
BillId = NewType("BillId", str)
SessionId = NewType("SessionId", str)
ActorId = NewType("ActorId", str)
ServiceRequestId = NewType("ServiceRequestId", str)

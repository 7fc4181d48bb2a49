from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class MoneyResponse(BaseModel):
    amountCents: int
    currency: str


class OrderLineResponse(BaseModel):
    lineId: str
    itemId: str
    name: str
    quantity: int
    unitPrice: MoneyResponse
    lineTotal: MoneyResponse
    notes: str | None = None


class OrderResponse(BaseModel):
    orderId: str
    restaurantId: str
    tableId: str
    sessionId: str
    status: str
    lines: list[OrderLineResponse] = Field(default_factory=list)
    total: MoneyResponse
    note: str | None = None
    cancelReason: str | None = None
    billed: bool
    billId: str | None = None
    createdAt: datetime
    updatedAt: datetime | None = None


class SessionOrdersResponse(BaseModel):
    sessionId: str
    orders: list[OrderResponse] = Field(default_factory=list)


class LiveTableResponse(BaseModel):
    tableId: str
    lastOrderAt: datetime
    totalOpenAmount: MoneyResponse
    orders: list[OrderResponse] = Field(default_factory=list)


class LiveOrdersResponse(BaseModel):
    count: int
    tables: list[LiveTableResponse] = Field(default_factory=list)


class BillLineResponse(BaseModel):
    itemId: str
    name: str
    unitPrice: MoneyResponse
    quantity: int
    lineTotal: MoneyResponse


class BillResponse(BaseModel):
    billId: str
    restaurantId: str
    tableId: str
    orderIds: list[str] = Field(default_factory=list)
    lines: list[BillLineResponse] = Field(default_factory=list)
    subtotal: MoneyResponse
    taxAmount: MoneyResponse
    grandTotal: MoneyResponse
    status: str
    closedAt: datetime
    closedBy: str | None = None


class OpenBillResponse(BaseModel):
    restaurantId: str
    tableId: str
    orders: list[OrderResponse] = Field(default_factory=list)
    totalAmount: MoneyResponse


class BillHistoryResponse(BaseModel):
    tableId: str
    count: int
    bills: list[BillResponse] = Field(default_factory=list)


class RecentBillsResponse(BaseModel):
    count: int
    bills: list[BillResponse] = Field(default_factory=list)


class DailyRevenueResponse(BaseModel):
    date: str
    revenue: float
    bills: int


class RevenueSummaryResponse(BaseModel):
    range: str
    currency: str
    totalBills: int
    totalRevenue: float
    averageBillValue: float
    averageBill: float
    dailyBreakdown: list[DailyRevenueResponse] = Field(default_factory=list)


class RevenueTrendResponse(BaseModel):
    range: str
    currency: str
    daily: list[DailyRevenueResponse] = Field(default_factory=list)


class TopItemResponse(BaseModel):
    itemId: str
    name: str
    quantity: int
    revenue: float


class TopItemsResponse(BaseModel):
    range: str
    currency: str
    items: list[TopItemResponse] = Field(default_factory=list)


class ServiceRequestResponse(BaseModel):
    requestId: str
    restaurantId: str
    tableId: str
    tableCode: str
    type: str
    status: str
    createdAt: datetime
    ackAt: datetime | None = None
    closedAt: datetime | None = None


class ServiceRequestResultResponse(BaseModel):
    created: bool
    request: ServiceRequestResponse


class ServiceRequestListResponse(BaseModel):
    requests: list[ServiceRequestResponse] = Field(default_factory=list)

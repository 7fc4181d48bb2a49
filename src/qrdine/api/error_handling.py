from __future__ import annotations

from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from qrdine.api.middleware.request_id import get_request_id
from qrdine.application.errors import DependencyFailureError
from qrdine.application.use_cases.billing import (
    BillCloseConflictError,
    BillNotFoundError,
    InvalidBillQueryError,
    NoOpenOrdersError,
)
from qrdine.application.use_cases.get_order import OrderNotFoundError
from qrdine.application.use_cases.place_order import (
    MenuItemUnavailableError,
    MenuNotFoundError,
    TableNotFoundError,
)
from qrdine.application.use_cases.revenue import (
    InvalidRevenueQueryError,
    RestaurantNotFoundError,
)
from qrdine.application.use_cases.service_requests import (
    InvalidServiceRequestError,
    ServiceRequestNotFoundError,
)
from qrdine.application.use_cases.update_order_status import OrderConflictError
from qrdine.domain.order.entities import InvalidTransitionError, UnknownStatusError
from qrdine.domain.reporting.revenue import InvalidRangeError
from qrdine.domain.service_request.entities import ServiceRequestClosedError
from qrdine.domain.table.entities import TableInactiveError


def _error_response(
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
            },
            "requestId": get_request_id(),
        },
    )


def _exception_handler(status_code: int, code: str):
    async def handler(_: Request, exc: Exception) -> JSONResponse:
        details = getattr(exc, "details", None)
        return _error_response(
            status_code=status_code,
            code=code,
            message=str(exc),
            details=details if isinstance(details, dict) else None,
        )

    return handler


async def _http_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)
    message = str(http_exc.detail) if http_exc.detail else "request failed"
    code = "HTTP_ERROR"
    if http_exc.status_code == 404:
        code = "NOT_FOUND"
    elif http_exc.status_code == 400:
        code = "BAD_REQUEST"
    elif http_exc.status_code == 409:
        code = "CONFLICT"
    return _error_response(
        status_code=http_exc.status_code,
        code=code,
        message=message,
    )


async def _validation_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    validation_exc = cast(RequestValidationError, exc)
    return _error_response(
        status_code=400,
        code="INVALID_REQUEST",
        message="request validation failed",
        details={"errors": validation_exc.errors()},
    )


def register_exception_handlers(app: FastAPI) -> None:
    mappings: list[tuple[type[Exception], int, str]] = [
        (RestaurantNotFoundError, 404, "RESTAURANT_NOT_FOUND"),
        (TableNotFoundError, 404, "TABLE_NOT_FOUND"),
        (MenuNotFoundError, 404, "MENU_NOT_FOUND"),
        (OrderNotFoundError, 404, "ORDER_NOT_FOUND"),
        (BillNotFoundError, 404, "BILL_NOT_FOUND"),
        (ServiceRequestNotFoundError, 404, "SERVICE_REQUEST_NOT_FOUND"),
        (TableInactiveError, 409, "TABLE_INACTIVE"),
        (MenuItemUnavailableError, 400, "MENU_ITEM_UNAVAILABLE"),
        (UnknownStatusError, 400, "UNKNOWN_ORDER_STATUS"),
        (InvalidTransitionError, 409, "INVALID_ORDER_TRANSITION"),
        (OrderConflictError, 409, "CONFLICT"),
        (NoOpenOrdersError, 409, "NO_OPEN_ORDERS"),
        (BillCloseConflictError, 409, "CONFLICT"),
        (InvalidBillQueryError, 400, "INVALID_BILL_QUERY"),
        (InvalidRangeError, 400, "INVALID_RANGE"),
        (InvalidRevenueQueryError, 400, "INVALID_REVENUE_QUERY"),
        (InvalidServiceRequestError, 400, "INVALID_SERVICE_REQUEST"),
        (ServiceRequestClosedError, 409, "SERVICE_REQUEST_CLOSED"),
        (DependencyFailureError, 503, "DEPENDENCY_FAILURE"),
    ]

    for exc_cls, status_code, code in mappings:
        app.add_exception_handler(exc_cls, _exception_handler(status_code, code))

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)

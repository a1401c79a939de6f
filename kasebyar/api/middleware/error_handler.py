"""
Error responses.

Every failure leaves the API as an ``ErrorResponse`` carrying a stable
``error_code``, the message, a recovery hint and the request path.

Coordinator operations report failures as an ``OperationResult`` rather
than raising; routes pass those through ``raise_for_result`` so both kinds
of failure resolve their status and hint from ``ERROR_CODES``.
"""

import traceback
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from kasebyar.application.dto.responses import ErrorResponse, OperationResult
from kasebyar.config import get_logger
from kasebyar.core.exceptions import (
    ConfigurationError,
    NotFoundError,
    PersistenceError,
    PosError,
    ValidationError,
)

logger = get_logger(__name__)

# error_code -> (HTTP status, hint)
ERROR_CODES: dict[str, tuple[int, str]] = {
    "VALIDATION_ERROR": (400, "Check the request body against the API schema."),
    "EMPTY_CART": (400, "Add at least one product or service before checking out."),
    "INVALID_EXCHANGE_RATE": (400, "Exchange rates must be greater than zero."),
    "PRODUCT_NOT_FOUND": (404, "Check the product ID; GET /api/products lists the catalogue."),
    "PARTY_NOT_FOUND": (404, "Check the party ID; GET /api/parties lists parties by type."),
    "INVOICE_NOT_FOUND": (404, "Check the invoice ID and its prefix: F sale, R return, P/PR purchase, T shipment."),
    "RECORD_NOT_FOUND": (404, "Check the ID; GET /api/services and /api/accounting/expenses list the records."),
    "INSUFFICIENT_STOCK": (409, "Reduce the quantity or receive more stock first."),
    "DUPLICATE_LOT": (409, "Lot numbers are unique across all products and open shipments."),
    "OVER_RETURN": (409, "Only units sold or received and not yet returned can be returned."),
    "PURCHASE_EDIT_CONFLICT": (409, "Units from this lot were already sold; record a purchase return instead."),
    "OPERATION_IN_PROGRESS": (409, "Another operation on the same record is running. Retry shortly."),
    "PERSISTENCE_ERROR": (500, "A database write failed and nothing was committed. Check server logs."),
    "CURRENCY_NOT_CONFIGURED": (500, "Add the currency to CURRENCY_CONFIGS and restart."),
}

# Fallback for codes missing above, most specific family first
FAMILY_STATUS: tuple[tuple[type[PosError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)

STATUS_HINTS: dict[int, str] = {
    400: "Check the request parameters and body.",
    404: "The requested resource was not found.",
    405: "Check the HTTP method for this endpoint.",
    409: "The request conflicts with current stock or ledger state.",
    422: "The request could not be processed. Check the input format.",
    500: "An internal error occurred. Check server logs.",
}


class OperationFailedError(Exception):
    """A coordinator operation returned a failed ``OperationResult``."""

    def __init__(self, result: OperationResult):
        self.result = result
        super().__init__(result.message)


def raise_for_result(result: OperationResult) -> OperationResult:
    """Return a successful result unchanged; raise for a failed one."""
    if not result.success:
        raise OperationFailedError(result)
    return result


def status_for_error(exc: PosError) -> int:
    if exc.code in ERROR_CODES:
        return ERROR_CODES[exc.code][0]
    for family, status_code in FAMILY_STATUS:
        if isinstance(exc, family):
            return status_code
    return status.HTTP_409_CONFLICT


def _error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    hint = ERROR_CODES[error_code][1] if error_code in ERROR_CODES else STATUS_HINTS.get(status_code, "")
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        hint=hint,
        details=details or {},
        path=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last line of defence: anything no handler claimed becomes a logged 500."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                "unhandled_exception",
                request_id=getattr(request.state, "request_id", None),
                path=request.url.path,
                error_type=type(e).__name__,
                error=str(e),
                traceback=traceback.format_exc(),
            )
            return _error_response(request, 500, "INTERNAL_ERROR", str(e))


def setup_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(OperationFailedError)
    async def operation_failed_handler(request: Request, exc: OperationFailedError) -> JSONResponse:
        result = exc.result
        error_code = result.error_code or "OPERATION_FAILED"
        status_code = ERROR_CODES.get(error_code, (status.HTTP_400_BAD_REQUEST, ""))[0]
        return _error_response(request, status_code, error_code, result.message, result.details)

    @app.exception_handler(PosError)
    async def pos_error_handler(request: Request, exc: PosError) -> JSONResponse:
        status_code = status_for_error(exc)
        if status_code >= 500:
            logger.error("pos_error", path=request.url.path, error_code=exc.code, error=exc.message)
        return _error_response(request, status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            f"{' -> '.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        return _error_response(
            request,
            422,
            "VALIDATION_ERROR",
            "Request validation failed",
            {"errors": errors},
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        # Only routing errors land here; handlers raise PosError subclasses
        error_code = {404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED"}.get(exc.status_code, "HTTP_ERROR")
        return _error_response(request, exc.status_code, error_code, str(exc.detail))

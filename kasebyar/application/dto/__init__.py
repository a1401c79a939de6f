"""Data transfer objects."""

from kasebyar.application.dto.requests import (
    CartItemRequest,
    CartPriceRequest,
    CartQuantityRequest,
    CheckoutRequest,
    CustomerNameRequest,
    PayrollRequest,
    PurchaseReturnRequest,
    SaleReturnRequest,
    ServiceItemRequest,
)
from kasebyar.application.dto.responses import (
    AlertsResponse,
    BalanceCheckResponse,
    ErrorResponse,
    ExpiryAlertResponse,
    HealthResponse,
    OperationResult,
    ProfitSummaryResponse,
    StockAlertResponse,
)

__all__ = [
    "CartItemRequest",
    "CartQuantityRequest",
    "CartPriceRequest",
    "CheckoutRequest",
    "CustomerNameRequest",
    "PayrollRequest",
    "ServiceItemRequest",
    "SaleReturnRequest",
    "PurchaseReturnRequest",
    "OperationResult",
    "AlertsResponse",
    "StockAlertResponse",
    "ExpiryAlertResponse",
    "ProfitSummaryResponse",
    "BalanceCheckResponse",
    "HealthResponse",
    "ErrorResponse",
]

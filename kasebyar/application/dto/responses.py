"""Response DTOs for the coordinator and API endpoints.

Pydantic v2 models for response serialization.
"""

from datetime import date, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from kasebyar.core.exceptions import PosError

T = TypeVar("T")


class OperationResult(BaseModel, Generic[T]):
    """Outcome of a coordinator operation."""

    success: bool = Field(..., description="Whether the operation was committed")
    message: str = Field(default="", description="Human-readable outcome")
    error_code: str | None = Field(default=None, description="Stable error code on failure")
    details: dict[str, Any] = Field(default_factory=dict, description="Error context")
    payload: T | None = Field(default=None, description="Result of a successful operation")

    @classmethod
    def ok(cls, message: str, payload: Any = None) -> "OperationResult":
        return cls(success=True, message=message, payload=payload)

    @classmethod
    def fail(cls, error: PosError) -> "OperationResult":
        return cls(
            success=False,
            message=error.message,
            error_code=error.code,
            details=error.details,
        )


class StockAlertResponse(BaseModel):
    product_id: str
    product_name: str
    stock: int


class ExpiryAlertResponse(BaseModel):
    product_id: str
    product_name: str
    batch_id: str
    lot_number: str
    stock: int
    expiry_date: date
    expired: bool


class AlertsResponse(BaseModel):
    """Low-stock and expiry alerts."""

    low_stock: list[StockAlertResponse] = Field(default_factory=list)
    expiring: list[ExpiryAlertResponse] = Field(default_factory=list)


class ProfitSummaryResponse(BaseModel):
    """Gross profit on sales in the window, less expenses booked in it. Base currency."""

    revenue: float
    cost: float
    profit: float
    expenses: float = 0.0
    net_profit: float = 0.0
    inventory_value: float = 0.0
    invoices: int
    returns: int


class BalanceCheckResponse(BaseModel):
    """Parties whose stored balances disagree with their ledger."""

    consistent: bool
    mismatched_party_ids: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall health status")
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Deployment environment")
    database: dict[str, Any] | None = Field(default=None, description="Database status")


class ErrorResponse(BaseModel):
    """Standardized error response DTO.

    Every error response includes:
    - error_code: machine-readable code (e.g. INSUFFICIENT_STOCK)
    - message: human-readable description
    - hint: suggested recovery action
    - path: request path that triggered the error
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    hint: str | None = Field(default=None, description="Suggested recovery action")
    details: dict[str, Any] = Field(default_factory=dict, description="Error context")
    path: str | None = Field(default=None, description="Request path")
    timestamp: datetime = Field(default_factory=datetime.now)

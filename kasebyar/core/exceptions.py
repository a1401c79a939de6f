"""
Domain exceptions for the Kasebyar POS core.

Every failure a settlement operation can report is a PosError subclass with a
stable code; the coordinator turns them into failure results.
"""

from typing import Any


class PosError(Exception):
    """Base exception for all POS errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Validation Exceptions
class ValidationError(PosError):
    """Input validation failed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value is not None else None,
            },
        )


class EmptyCartError(ValidationError):
    """Sale draft has no lines."""

    def __init__(self):
        super().__init__(field="items", message="Cart is empty")
        self.code = "EMPTY_CART"


class InvalidExchangeRateError(ValidationError):
    """Exchange rate is zero or negative."""

    def __init__(self, currency: str, rate: float):
        super().__init__(
            field="exchange_rate",
            message=f"Exchange rate for {currency} must be positive",
            value=rate,
        )
        self.code = "INVALID_EXCHANGE_RATE"
        self.details.update({"currency": currency, "rate": rate})


class PurchaseEditConflictError(ValidationError):
    """Purchase edit would drive an already-consumed batch below zero."""

    def __init__(self, invoice_id: str, lot_number: str, available: int, required: int):
        super().__init__(
            field="items",
            message=(
                f"Lot {lot_number} holds {available} units but the edit removes {required}; "
                "stock from this purchase has already been sold"
            ),
        )
        self.code = "PURCHASE_EDIT_CONFLICT"
        self.details.update(
            {
                "invoice_id": invoice_id,
                "lot_number": lot_number,
                "available": available,
                "required": required,
            }
        )


class OperationInProgressError(ValidationError):
    """Another mutation on the same entity has not finished yet."""

    def __init__(self, entity_id: str):
        super().__init__(field="entity", message=f"Operation already in progress for {entity_id}")
        self.code = "OPERATION_IN_PROGRESS"
        self.details["entity_id"] = entity_id


# Lookup Exceptions
class NotFoundError(PosError):
    """Referenced entity does not exist."""

    pass


class ProductNotFoundError(NotFoundError):
    """Product not found in the catalogue."""

    def __init__(self, product_id: str):
        super().__init__(
            f"Product not found: {product_id}",
            code="PRODUCT_NOT_FOUND",
            details={"product_id": product_id},
        )


class PartyNotFoundError(NotFoundError):
    """Customer, supplier or other party not found."""

    def __init__(self, party_id: str, party_type: str | None = None):
        label = party_type or "party"
        super().__init__(
            f"{label.replace('_', ' ').capitalize()} not found: {party_id}",
            code="PARTY_NOT_FOUND",
            details={"party_id": party_id, "party_type": party_type},
        )


class InvoiceNotFoundError(NotFoundError):
    """Invoice not found in storage."""

    def __init__(self, invoice_id: str):
        super().__init__(
            f"Invoice not found: {invoice_id}",
            code="INVOICE_NOT_FOUND",
            details={"invoice_id": invoice_id},
        )


class RecordNotFoundError(NotFoundError):
    """Service, expense or other catalogue record not found."""

    def __init__(self, record_type: str, record_id: str):
        super().__init__(
            f"{record_type.capitalize()} not found: {record_id}",
            code="RECORD_NOT_FOUND",
            details={"record_type": record_type, "record_id": record_id},
        )


# Inventory Exceptions
class InsufficientStockError(PosError):
    """Requested quantity exceeds available stock."""

    def __init__(self, product_id: str, requested: int, available: int, lot_number: str | None = None):
        where = f"lot {lot_number}" if lot_number else f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {where}: requested {requested}, available {available}",
            code="INSUFFICIENT_STOCK",
            details={
                "product_id": product_id,
                "lot_number": lot_number,
                "requested": requested,
                "available": available,
            },
        )


class DuplicateLotError(PosError):
    """Lot number already used by a batch or an in-transit line."""

    def __init__(self, lot_number: str):
        super().__init__(
            f"Lot number already exists: {lot_number}",
            code="DUPLICATE_LOT",
            details={"lot_number": lot_number},
        )


class OverReturnError(PosError):
    """Return quantity exceeds what remains returnable."""

    def __init__(self, invoice_id: str, item_id: str, requested: int, returnable: int):
        super().__init__(
            f"Cannot return {requested} of {item_id} on {invoice_id}: only {returnable} returnable",
            code="OVER_RETURN",
            details={
                "invoice_id": invoice_id,
                "item_id": item_id,
                "requested": requested,
                "returnable": returnable,
            },
        )


# Storage Exceptions
class PersistenceError(PosError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="PERSISTENCE_ERROR",
            details={"operation": operation, "error": error},
        )


class ConfigurationError(PosError):
    """Configuration error."""

    pass


class CurrencyNotConfiguredError(ConfigurationError):
    """No conversion config exists for a currency."""

    def __init__(self, currency: str):
        super().__init__(
            f"Currency is not configured: {currency}",
            code="CURRENCY_NOT_CONFIGURED",
            details={"currency": currency},
        )

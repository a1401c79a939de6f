"""Request DTOs for coordinator operations that are not plain drafts."""

from pydantic import BaseModel, Field

from kasebyar.core.entities.currency import Currency
from kasebyar.core.entities.drafts import PurchaseReturnLineDraft, SaleReturnLineDraft


class CartItemRequest(BaseModel):
    """Add a product to the cart."""

    product_id: str = Field(..., description="Product to add")
    quantity: int = Field(default=1, gt=0, description="Units to add")


class ServiceItemRequest(BaseModel):
    """Add a catalogue service to the cart."""

    service_id: str
    quantity: int = Field(default=1, gt=0)


class CustomerNameRequest(BaseModel):
    """Name the walk-in buyer of a sale."""

    customer_name: str = Field(..., min_length=1, max_length=200)


class PayrollRequest(BaseModel):
    period: str | None = Field(default=None, description="YYYY-MM; the current month when omitted")


class SaleReturnRequest(BaseModel):
    items: list[SaleReturnLineDraft] = Field(..., min_length=1)
    cashier: str = ""


class PurchaseReturnRequest(BaseModel):
    items: list[PurchaseReturnLineDraft] = Field(..., min_length=1)


class CartQuantityRequest(BaseModel):
    """Set a cart line's quantity; zero removes the line."""

    quantity: int = Field(..., ge=0)


class CartPriceRequest(BaseModel):
    final_price: float | None = Field(default=None, ge=0, description="Discounted unit price; null clears it")


class CheckoutRequest(BaseModel):
    """Settle the server-side cart."""

    customer_id: str | None = None
    customer_name: str | None = Field(default=None, description="Walk-in buyer, when there is no customer account")
    currency: Currency = Currency.AFN
    exchange_rate: float = 1.0
    cashier: str | None = None

"""Purchase and in-transit invoice domain entities."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from kasebyar.core.entities.currency import Currency


class PurchaseType(str, Enum):
    """Purchase invoice direction."""

    PURCHASE = "purchase"
    RETURN = "return"


class InTransitStatus(str, Enum):
    """Lifecycle of an in-transit shipment."""

    ACTIVE = "active"
    CLOSED = "closed"


class PurchaseLine(BaseModel):
    """
    A product line bought from a supplier.

    Units sit in exactly one logistics stage. A line with no stage
    quantities set is a plain purchase and counts as fully received.
    """

    product_id: str
    product_name: str = ""
    quantity: int = Field(gt=0)
    purchase_price: float = Field(ge=0)  # transactional currency
    lot_number: str
    expiry_date: date | None = None
    at_factory_qty: int = Field(default=0, ge=0)
    in_transit_qty: int = Field(default=0, ge=0)
    received_qty: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_stages(self) -> "PurchaseLine":
        staged = self.at_factory_qty + self.in_transit_qty + self.received_qty
        if staged == 0:
            self.received_qty = self.quantity
        elif staged != self.quantity:
            raise ValueError(
                f"stage quantities ({staged}) must add up to quantity ({self.quantity})"
            )
        return self

    @property
    def line_total(self) -> float:
        return self.quantity * self.purchase_price


class PurchaseInvoice(BaseModel):
    """A supplier purchase or a return of purchased stock."""

    id: str
    type: PurchaseType = PurchaseType.PURCHASE
    original_invoice_id: str | None = None
    supplier_id: str
    invoice_number: str = ""
    items: list[PurchaseLine] = Field(default_factory=list)
    total_amount: float = 0.0  # transactional currency
    total_amount_base: float = 0.0
    additional_cost: float = 0.0  # transactional currency, landed into batch cost
    timestamp: datetime = Field(default_factory=datetime.now)
    currency: Currency = Currency.AFN
    exchange_rate: float = 1.0
    source_in_transit_id: str | None = None

    @property
    def is_return(self) -> bool:
        return self.type == PurchaseType.RETURN


class InTransitInvoice(BaseModel):
    """A supplier order whose units move factory -> transit -> received."""

    id: str
    supplier_id: str
    invoice_number: str = ""
    items: list[PurchaseLine] = Field(default_factory=list)
    total_amount: float = 0.0
    currency: Currency = Currency.AFN
    exchange_rate: float = 1.0
    timestamp: datetime = Field(default_factory=datetime.now)
    expected_arrival_date: date | None = None
    paid_amount: float = 0.0  # invoice currency
    description: str = ""
    status: InTransitStatus = InTransitStatus.ACTIVE

    @property
    def has_movement(self) -> bool:
        return any(line.at_factory_qty < line.quantity for line in self.items)

    @property
    def has_received(self) -> bool:
        return any(line.received_qty > 0 for line in self.items)

    @property
    def is_fully_received(self) -> bool:
        return all(line.received_qty == line.quantity for line in self.items)

    @property
    def remaining_amount(self) -> float:
        return self.total_amount - self.paid_amount

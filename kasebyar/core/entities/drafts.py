"""
Validated drafts handed to the settlement engine.

A draft is what a caller intends to happen; the engine turns it into
invoices, batch changes and postings.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

from kasebyar.core.entities.currency import Currency
from kasebyar.core.entities.ledger import TransactionType
from kasebyar.core.entities.party import PartyType
from kasebyar.core.entities.sale import LineKind


class SaleLineDraft(BaseModel):
    """A cart line. Prices are in base currency; unit_price defaults to the catalogue price."""

    kind: LineKind = LineKind.PRODUCT
    item_id: str
    name: str = ""
    quantity: int = Field(gt=0)
    unit_price: float | None = Field(default=None, ge=0)
    final_price: float | None = Field(default=None, ge=0)


class SaleDraft(BaseModel):
    items: list[SaleLineDraft] = Field(default_factory=list)
    customer_id: str | None = None
    customer_name: str | None = None
    currency: Currency = Currency.AFN
    exchange_rate: float = 1.0
    cashier: str = ""


class SaleReturnLineDraft(BaseModel):
    item_id: str
    quantity: int = Field(gt=0)


class PurchaseLineDraft(BaseModel):
    """A supplier line. ``purchase_price`` is in the draft's currency."""

    product_id: str
    quantity: int = Field(gt=0)
    purchase_price: float = Field(ge=0)
    lot_number: str = Field(min_length=1)
    expiry_date: date | None = None


class PurchaseDraft(BaseModel):
    supplier_id: str
    invoice_number: str = ""
    items: list[PurchaseLineDraft] = Field(default_factory=list)
    currency: Currency = Currency.AFN
    exchange_rate: float = 1.0
    additional_cost: float = Field(default=0.0, ge=0)
    timestamp: datetime | None = None


class PurchaseReturnLineDraft(BaseModel):
    product_id: str
    lot_number: str
    quantity: int = Field(gt=0)


class InTransitDraft(BaseModel):
    supplier_id: str
    invoice_number: str = ""
    items: list[PurchaseLineDraft] = Field(default_factory=list)
    currency: Currency = Currency.AFN
    exchange_rate: float = 1.0
    expected_arrival_date: date | None = None
    description: str = ""


class StageMovement(BaseModel):
    """
    Units to move for one in-transit line, identified by product and lot.

    Received units become a batch under ``received_lot`` (the line's lot
    when omitted).
    """

    product_id: str
    lot_number: str
    to_transit: int = Field(default=0, ge=0)
    to_received: int = Field(default=0, ge=0)
    received_lot: str | None = None
    expiry_date: date | None = None


class MovementDraft(BaseModel):
    movements: list[StageMovement] = Field(default_factory=list)
    additional_cost: float = Field(default=0.0, ge=0)
    description: str = ""


class PaymentDraft(BaseModel):
    """A standalone balance movement: payment, advance, salary, deposit or withdrawal."""

    party_id: str
    party_type: PartyType
    kind: TransactionType = TransactionType.PAYMENT
    amount: float = Field(gt=0)
    currency: Currency = Currency.AFN
    exchange_rate: float = 1.0
    description: str = ""


class PartyDraft(BaseModel):
    id: str | None = None
    name: str = Field(min_length=1)
    party_type: PartyType
    phone: str | None = None
    address: str | None = None
    contact_person: str | None = None
    position: str | None = None
    monthly_salary: float = Field(default=0.0, ge=0)
    opening_balance: float = Field(default=0.0, ge=0)
    opening_side: Literal["debtor", "creditor"] = "debtor"
    opening_currency: Currency = Currency.AFN
    opening_rate: float = 1.0


class OpeningBatchDraft(BaseModel):
    """Stock a new product starts with. ``purchase_price`` is the base-currency unit cost."""

    lot_number: str = Field(min_length=1)
    quantity: int = Field(gt=0)
    purchase_price: float = Field(default=0.0, ge=0)
    purchase_date: datetime | None = None
    expiry_date: date | None = None


class ProductDraft(BaseModel):
    id: str | None = None
    name: str = Field(min_length=1)
    sale_price: float = Field(default=0.0, ge=0)
    barcode: str | None = None
    manufacturer: str | None = None
    items_per_package: int | None = Field(default=None, gt=0)
    first_batch: OpeningBatchDraft | None = None


class ProductUpdate(BaseModel):
    """Catalogue fields to change; fields left out keep their value."""

    name: str | None = Field(default=None, min_length=1)
    sale_price: float | None = Field(default=None, ge=0)
    barcode: str | None = None
    manufacturer: str | None = None
    items_per_package: int | None = Field(default=None, gt=0)


class ServiceDraft(BaseModel):
    id: str | None = None
    name: str = Field(min_length=1)
    price: float = Field(default=0.0, ge=0)


class ExpenseDraft(BaseModel):
    category: str = Field(min_length=1)
    description: str = ""
    amount: float = Field(gt=0)
    currency: Currency = Currency.AFN
    exchange_rate: float = 1.0
    date: datetime | None = None

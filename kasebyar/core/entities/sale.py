"""Sale invoice domain entities."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from kasebyar.core.entities.currency import Currency
from kasebyar.core.entities.product import BatchDeduction


class LineKind(str, Enum):
    """What a sale line sells."""

    PRODUCT = "product"
    SERVICE = "service"


class SaleType(str, Enum):
    """Sale invoice direction."""

    SALE = "sale"
    RETURN = "return"


class SaleLine(BaseModel):
    """A single line on a sale or sale-return invoice. Prices in base currency."""

    kind: LineKind = LineKind.PRODUCT
    item_id: str
    name: str
    quantity: int = Field(gt=0)
    unit_price: float = Field(ge=0)  # list price
    final_price: float | None = Field(default=None, ge=0)  # discounted unit price
    batch_deductions: list[BatchDeduction] = Field(default_factory=list)
    cost_basis: float = 0.0  # sum of deducted qty * batch cost
    purchase_price: float = 0.0  # average unit cost of the line
    line_total: float = 0.0
    profit: float = 0.0

    @model_validator(mode="after")
    def compute_line(self) -> "SaleLine":
        """Derive cost, line total and profit from deductions and prices."""
        if self.batch_deductions:
            self.cost_basis = sum(d.cost for d in self.batch_deductions)
            self.purchase_price = self.cost_basis / self.quantity
        self.line_total = self.quantity * self.effective_price
        self.profit = self.line_total - self.cost_basis
        return self

    @property
    def effective_price(self) -> float:
        return self.unit_price if self.final_price is None else self.final_price

    @property
    def list_total(self) -> float:
        return self.quantity * self.unit_price

    @property
    def is_product(self) -> bool:
        return self.kind == LineKind.PRODUCT


class SaleInvoice(BaseModel):
    """
    A completed sale or a return against one.

    Totals are in the transactional currency except ``total_amount_base``;
    ``exchange_rate`` is the snapshot taken at completion and is never
    recalculated.
    """

    id: str
    type: SaleType = SaleType.SALE
    original_invoice_id: str | None = None
    items: list[SaleLine] = Field(default_factory=list)
    subtotal: float = 0.0
    total_discount: float = 0.0
    total_amount: float = 0.0
    total_amount_base: float = 0.0
    timestamp: datetime = Field(default_factory=datetime.now)
    cashier: str = ""
    customer_id: str | None = None
    customer_name: str | None = None  # walk-in buyer without an account
    currency: Currency = Currency.AFN
    exchange_rate: float = 1.0

    @property
    def total_cost(self) -> float:
        return sum(line.cost_basis for line in self.items)

    @property
    def total_profit(self) -> float:
        return self.total_amount_base - self.total_cost

    @property
    def is_return(self) -> bool:
        return self.type == SaleType.RETURN

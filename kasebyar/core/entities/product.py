"""Product catalogue and inventory batch entities."""

from datetime import date, datetime

from pydantic import BaseModel, Field


class ProductBatch(BaseModel):
    """
    A lot of a product received at one landed unit cost.

    Depleted batches stay in the catalogue with stock 0 so sale and
    purchase history keeps resolving.
    """

    id: str
    lot_number: str
    stock: int = Field(default=0, ge=0)
    purchase_price: float = Field(default=0.0, ge=0)  # landed unit cost, base currency
    purchase_date: datetime = Field(default_factory=datetime.now)
    expiry_date: date | None = None


class Product(BaseModel):
    """
    A sellable product with its FIFO batches.

    Deleting a product only clears ``active``: invoices keep resolving it,
    but it leaves the catalogue listing and can no longer be added to a cart.
    """

    id: str
    name: str
    sale_price: float = Field(default=0.0, ge=0)  # base currency
    barcode: str | None = None
    manufacturer: str | None = None
    items_per_package: int | None = None
    active: bool = True
    batches: list[ProductBatch] = Field(default_factory=list)

    @property
    def stock(self) -> int:
        """Total units across all batches."""
        return sum(b.stock for b in self.batches)

    @property
    def stock_value(self) -> float:
        """Stock on hand at landed cost, base currency."""
        return sum(b.stock * b.purchase_price for b in self.batches)

    def find_batch(self, batch_id: str) -> ProductBatch | None:
        for batch in self.batches:
            if batch.id == batch_id:
                return batch
        return None

    def find_lot(self, lot_number: str) -> ProductBatch | None:
        for batch in self.batches:
            if batch.lot_number == lot_number:
                return batch
        return None


class BatchDeduction(BaseModel):
    """Units taken from one batch by a sale line."""

    batch_id: str
    quantity: int = Field(gt=0)
    unit_cost: float = 0.0

    @property
    def cost(self) -> float:
        return self.quantity * self.unit_cost


class BatchChange(BaseModel):
    """Absolute post-operation state of a batch, created or updated."""

    product_id: str
    batch: ProductBatch


class Service(BaseModel):
    """A catalogue service sold without stock, such as delivery or repair."""

    id: str
    name: str
    price: float = Field(default=0.0, ge=0)  # base currency

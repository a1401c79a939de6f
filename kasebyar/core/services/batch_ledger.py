"""
FIFO batch inventory ledger.

Works on a copy-on-write view of the catalogue: a product's batches are
copied the first time an operation touches them, so the snapshot it was
built from is never mutated and an abandoned operation leaves no trace.
"""

from collections.abc import Iterable
from datetime import date, datetime
from uuid import uuid4

from kasebyar.config import get_logger
from kasebyar.core.entities.product import BatchChange, BatchDeduction, Product, ProductBatch
from kasebyar.core.exceptions import (
    DuplicateLotError,
    InsufficientStockError,
    ProductNotFoundError,
    ValidationError,
)

logger = get_logger(__name__)


class BatchLedger:
    """
    Scratch inventory for one settlement operation.

    Deductions consume the oldest ``purchase_date`` first; batches with equal
    dates keep their catalogue order.
    """

    def __init__(self, products: Iterable[Product], reserved_lots: Iterable[str] = ()) -> None:
        self._source: dict[str, Product] = {p.id: p for p in products}
        self._working: dict[str, list[ProductBatch]] = {}
        self._original_stock: dict[str, int] = {}
        self._touched: set[str] = set()
        self._new: list[str] = []
        self._reserved = {lot.strip() for lot in reserved_lots}

    def _batches(self, product_id: str) -> list[ProductBatch]:
        if product_id not in self._working:
            product = self._source.get(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            copies = [b.model_copy() for b in product.batches]
            self._working[product_id] = copies
            for batch in copies:
                self._original_stock[batch.id] = batch.stock
        return self._working[product_id]

    def _all_batches(self, product_id: str) -> list[ProductBatch]:
        """Working copy if touched, catalogue batches otherwise. Read only."""
        if product_id in self._working:
            return self._working[product_id]
        return self._source[product_id].batches

    def _owner_of(self, batch_id: str, hint: str | None = None) -> str | None:
        if hint is not None and hint in self._source:
            if any(b.id == batch_id for b in self._all_batches(hint)):
                return hint
        for product_id in self._source:
            if any(b.id == batch_id for b in self._all_batches(product_id)):
                return product_id
        return None

    def batches(self, product_id: str) -> list[ProductBatch]:
        """Current state of a product's batches."""
        return list(self._batches(product_id))

    def available(self, product_id: str) -> int:
        return sum(b.stock for b in self._batches(product_id))

    def find_lot(self, product_id: str, lot_number: str) -> ProductBatch | None:
        for batch in self._batches(product_id):
            if batch.lot_number == lot_number:
                return batch
        return None

    def lot_exists(self, lot_number: str) -> bool:
        """True if any product's batch or any reserved in-transit line uses the lot."""
        lot = lot_number.strip()
        if lot in self._reserved:
            return True
        return any(
            b.lot_number == lot
            for product_id in self._source
            for b in self._all_batches(product_id)
        )

    def append_batch(
        self,
        product_id: str,
        lot_number: str,
        quantity: int,
        unit_cost: float,
        purchase_date: datetime | None = None,
        expiry_date: date | None = None,
    ) -> ProductBatch:
        """Add a new lot to a product. ``unit_cost`` is the landed base-currency cost."""
        lot = lot_number.strip()
        if not lot:
            raise ValidationError("lot_number", "Lot number is required")
        if quantity <= 0:
            raise ValidationError("quantity", "Quantity must be positive", quantity)
        batches = self._batches(product_id)
        if self.lot_exists(lot):
            raise DuplicateLotError(lot)

        batch = ProductBatch(
            id=uuid4().hex,
            lot_number=lot,
            stock=quantity,
            purchase_price=unit_cost,
            purchase_date=purchase_date or datetime.now(),
            expiry_date=expiry_date,
        )
        batches.append(batch)
        self._new.append(batch.id)
        return batch

    def deduct_fifo(self, product_id: str, quantity: int) -> list[BatchDeduction]:
        """Take ``quantity`` units oldest batch first. Nothing changes on failure."""
        if quantity <= 0:
            raise ValidationError("quantity", "Quantity must be positive", quantity)
        batches = self._batches(product_id)
        available = sum(b.stock for b in batches)
        if available < quantity:
            raise InsufficientStockError(product_id, quantity, available)

        deductions: list[BatchDeduction] = []
        remaining = quantity
        for batch in sorted(batches, key=lambda b: b.purchase_date):
            if remaining == 0:
                break
            if batch.stock <= 0:
                continue
            take = min(batch.stock, remaining)
            batch.stock -= take
            self._touched.add(batch.id)
            deductions.append(
                BatchDeduction(batch_id=batch.id, quantity=take, unit_cost=batch.purchase_price)
            )
            remaining -= take
        return deductions

    def restore(self, deductions: Iterable[BatchDeduction], product_id: str | None = None) -> None:
        """Put deducted units back into the batches they came from."""
        for deduction in deductions:
            owner = self._owner_of(deduction.batch_id, product_id)
            if owner is None:
                logger.warning(
                    "restore_batch_missing",
                    batch_id=deduction.batch_id,
                    quantity=deduction.quantity,
                )
                continue
            for batch in self._batches(owner):
                if batch.id == deduction.batch_id:
                    batch.stock += deduction.quantity
                    self._touched.add(batch.id)
                    break

    def deduct_lot(self, product_id: str, lot_number: str, quantity: int) -> ProductBatch:
        """Take units from one named lot, as purchase returns do."""
        batch = self.find_lot(product_id, lot_number)
        if batch is None:
            raise ValidationError("lot_number", f"Lot {lot_number} not found for product {product_id}")
        if batch.stock < quantity:
            raise InsufficientStockError(product_id, quantity, batch.stock, lot_number=lot_number)
        batch.stock -= quantity
        self._touched.add(batch.id)
        return batch

    def adjust_lot(
        self,
        product_id: str,
        lot_number: str,
        delta: int,
        unit_cost: float | None = None,
        expiry_date: date | None = None,
    ) -> ProductBatch | None:
        """
        Shift a lot's stock by ``delta`` without a floor.

        Used by purchase edits, which check ``negative_batches()`` once all
        old and new lines are applied.
        """
        batch = self.find_lot(product_id, lot_number)
        if batch is None:
            logger.warning("adjust_lot_missing", product_id=product_id, lot_number=lot_number)
            return None
        batch.stock += delta
        if unit_cost is not None:
            batch.purchase_price = unit_cost
        if expiry_date is not None:
            batch.expiry_date = expiry_date
        self._touched.add(batch.id)
        return batch

    def negative_batches(self) -> list[tuple[ProductBatch, int]]:
        """Touched batches below zero, with the stock they started from."""
        found = []
        for batches in self._working.values():
            for batch in batches:
                if batch.id in self._touched and batch.stock < 0:
                    found.append((batch, self._original_stock.get(batch.id, 0)))
        return found

    def stock_updates(self) -> list[BatchChange]:
        """Absolute new state of every pre-existing batch this operation changed."""
        new_ids = set(self._new)
        changes = []
        for product_id, batches in self._working.items():
            for batch in batches:
                if batch.id not in self._touched or batch.id in new_ids:
                    continue
                if batch != self._source[product_id].find_batch(batch.id):
                    changes.append(BatchChange(product_id=product_id, batch=batch))
        return changes

    def new_batches(self) -> list[BatchChange]:
        """Batches created by this operation, in creation order."""
        changes = []
        for batch_id in self._new:
            for product_id, batches in self._working.items():
                batch = next((b for b in batches if b.id == batch_id), None)
                if batch is not None:
                    changes.append(BatchChange(product_id=product_id, batch=batch))
                    break
        return changes

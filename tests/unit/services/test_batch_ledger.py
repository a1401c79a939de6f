"""Tests for the FIFO batch ledger."""

from datetime import datetime

import pytest

from kasebyar.core.entities import BatchDeduction
from kasebyar.core.exceptions import (
    DuplicateLotError,
    InsufficientStockError,
    ProductNotFoundError,
    ValidationError,
)
from kasebyar.core.services import BatchLedger


@pytest.fixture
def ledger(rice, oil):
    return BatchLedger([rice, oil])


class TestDeductFifo:
    def test_oldest_batch_first(self, ledger):
        deductions = ledger.deduct_fifo("rice", 12)
        assert [(d.batch_id, d.quantity, d.unit_cost) for d in deductions] == [
            ("batch-a", 10, 100.0),
            ("batch-b", 2, 110.0),
        ]
        assert sum(d.cost for d in deductions) == 1220.0
        stock = {b.id: b.stock for b in ledger.batches("rice")}
        assert stock == {"batch-a": 0, "batch-b": 3}

    def test_order_follows_purchase_date_not_position(self, rice):
        rice.batches.reverse()
        deductions = BatchLedger([rice]).deduct_fifo("rice", 3)
        assert deductions[0].batch_id == "batch-a"

    def test_insufficient_stock_changes_nothing(self, ledger):
        with pytest.raises(InsufficientStockError) as exc:
            ledger.deduct_fifo("rice", 16)
        assert exc.value.details["available"] == 15
        assert ledger.available("rice") == 15
        assert ledger.stock_updates() == []

    def test_snapshot_is_not_mutated(self, rice):
        BatchLedger([rice]).deduct_fifo("rice", 12)
        assert rice.stock == 15

    def test_unknown_product(self, ledger):
        with pytest.raises(ProductNotFoundError):
            ledger.deduct_fifo("missing", 1)

    def test_quantity_must_be_positive(self, ledger):
        with pytest.raises(ValidationError):
            ledger.deduct_fifo("rice", 0)

    def test_stock_updates_are_absolute(self, ledger):
        ledger.deduct_fifo("rice", 12)
        updates = {c.batch.id: c.batch.stock for c in ledger.stock_updates()}
        assert updates == {"batch-a": 0, "batch-b": 3}


class TestRestore:
    def test_restore_returns_units_to_their_batch(self, ledger):
        deductions = ledger.deduct_fifo("rice", 12)
        ledger.restore(deductions, "rice")
        assert ledger.available("rice") == 15
        assert ledger.stock_updates() == []

    def test_restore_finds_owner_without_hint(self, ledger):
        ledger.restore([BatchDeduction(batch_id="batch-o", quantity=2, unit_cost=60.0)])
        assert ledger.available("oil") == 22

    def test_restore_skips_unknown_batch(self, ledger):
        ledger.restore([BatchDeduction(batch_id="gone", quantity=1)], "rice")
        assert ledger.available("rice") == 15


class TestAppendBatch:
    def test_new_batch(self, ledger):
        batch = ledger.append_batch("rice", " LOT-C ", 7, 95.0, purchase_date=datetime(2024, 3, 1))
        assert batch.lot_number == "LOT-C"
        assert ledger.available("rice") == 22
        assert [c.batch.id for c in ledger.new_batches()] == [batch.id]
        assert ledger.stock_updates() == []

    def test_duplicate_lot_across_products(self, ledger):
        with pytest.raises(DuplicateLotError):
            ledger.append_batch("oil", "LOT-A", 1, 1.0)

    def test_reserved_lot_is_duplicate(self, rice):
        ledger = BatchLedger([rice], reserved_lots=["SHIP-1"])
        with pytest.raises(DuplicateLotError):
            ledger.append_batch("rice", "SHIP-1", 1, 1.0)

    def test_empty_lot_rejected(self, ledger):
        with pytest.raises(ValidationError):
            ledger.append_batch("rice", "  ", 1, 1.0)


class TestLotOperations:
    def test_deduct_lot(self, ledger):
        batch = ledger.deduct_lot("rice", "LOT-B", 5)
        assert batch.stock == 0

    def test_deduct_lot_insufficient(self, ledger):
        with pytest.raises(InsufficientStockError) as exc:
            ledger.deduct_lot("rice", "LOT-B", 6)
        assert exc.value.details["lot_number"] == "LOT-B"

    def test_deduct_unknown_lot(self, ledger):
        with pytest.raises(ValidationError):
            ledger.deduct_lot("rice", "LOT-Z", 1)

    def test_adjust_lot_can_go_negative(self, ledger):
        ledger.adjust_lot("rice", "LOT-B", -8)
        negative = ledger.negative_batches()
        assert len(negative) == 1
        batch, started = negative[0]
        assert batch.stock == -3
        assert started == 5

    def test_adjust_lot_updates_cost_and_expiry(self, ledger):
        batch = ledger.adjust_lot("rice", "LOT-A", 2, unit_cost=99.0)
        assert batch.stock == 12
        assert batch.purchase_price == 99.0

    def test_adjust_missing_lot(self, ledger):
        assert ledger.adjust_lot("rice", "LOT-Z", 1) is None

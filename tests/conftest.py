"""Pytest configuration and shared fixtures."""

from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from kasebyar.config import CurrencyConfig, reset_settings
from kasebyar.core.entities import (
    AppState,
    Party,
    PartyType,
    Product,
    ProductBatch,
)
from kasebyar.core.interfaces import IPosStore
from kasebyar.core.services import CurrencyConverter


@pytest.fixture(autouse=True)
def fresh_settings():
    """Every test starts from default settings."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def converter() -> CurrencyConverter:
    """AFN base; USD multiplies, IRT divides."""
    return CurrencyConverter(
        base_currency="AFN",
        configs={
            "AFN": CurrencyConfig(code="AFN", name="Afghani", symbol="؋", method="multiply"),
            "USD": CurrencyConfig(code="USD", name="US Dollar", symbol="$", method="multiply"),
            "IRT": CurrencyConfig(code="IRT", name="Iranian Toman", symbol="T", method="divide"),
        },
    )


def make_batch(
    batch_id: str,
    lot: str,
    stock: int,
    cost: float,
    purchased: datetime,
) -> ProductBatch:
    return ProductBatch(
        id=batch_id,
        lot_number=lot,
        stock=stock,
        purchase_price=cost,
        purchase_date=purchased,
    )


@pytest.fixture
def rice() -> Product:
    """Two batches: A (10 @ 100, Jan 1) and B (5 @ 110, Jan 5)."""
    return Product(
        id="rice",
        name="Rice 5kg",
        sale_price=150.0,
        batches=[
            make_batch("batch-a", "LOT-A", 10, 100.0, datetime(2024, 1, 1)),
            make_batch("batch-b", "LOT-B", 5, 110.0, datetime(2024, 1, 5)),
        ],
    )


@pytest.fixture
def oil() -> Product:
    return Product(
        id="oil",
        name="Cooking Oil 1L",
        sale_price=80.0,
        batches=[make_batch("batch-o", "LOT-O", 20, 60.0, datetime(2024, 2, 1))],
    )


@pytest.fixture
def parties() -> list[Party]:
    return [
        Party(id="cust-1", name="Ahmad", party_type=PartyType.CUSTOMER),
        Party(id="sup-1", name="Kabul Traders", party_type=PartyType.SUPPLIER),
        Party(id="emp-1", name="Farid", party_type=PartyType.EMPLOYEE),
        Party(id="dep-1", name="Safe Box", party_type=PartyType.DEPOSIT_HOLDER),
    ]


@pytest.fixture
def state(rice: Product, oil: Product, parties: list[Party]) -> AppState:
    return AppState(products=[rice, oil], parties=parties)


@pytest.fixture
def mock_store() -> AsyncMock:
    """Store double whose writes echo back the record they were given."""
    store = AsyncMock(spec=IPosStore)

    async def first_arg(record, *args, **kwargs):
        return record

    async def second_arg(_id, record, *args, **kwargs):
        return record

    async def transaction_arg(_update, txn, *args, **kwargs):
        return txn

    for name in (
        "add_product",
        "add_party",
        "create_sale",
        "create_sale_return",
        "create_purchase",
        "create_purchase_return",
        "create_in_transit",
        "update_in_transit",
        "update_product",
        "add_service",
        "add_expense",
    ):
        getattr(store, name).side_effect = first_arg
    store.update_sale.side_effect = second_arg
    store.update_purchase.side_effect = second_arg
    store.process_payment.side_effect = transaction_arg
    store.delete_in_transit.return_value = True
    for name in ("deactivate_product", "deactivate_party", "delete_service", "delete_expense", "set_sale_customer_name"):
        getattr(store, name).return_value = True
    store.get_services.return_value = []
    store.get_expenses.return_value = []
    return store

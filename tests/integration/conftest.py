"""Fixtures running the coordinator against a real SQLite database."""

from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

import kasebyar.infrastructure.storage.sqlite.connection as conn_module
from kasebyar.application.use_cases import PointOfSale
from kasebyar.core.entities import (
    PartyDraft,
    PartyType,
    ProductDraft,
    PurchaseDraft,
    PurchaseLineDraft,
)
from kasebyar.infrastructure.storage.sqlite import (
    SQLiteActivitySink,
    SQLitePosStore,
    close_pool,
)
from kasebyar.infrastructure.storage.sqlite.migrations.migrator import initialize_database


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Path, None]:
    db_path = tmp_path / "pos.db"
    await initialize_database(db_path, create_backup_before=False)

    settings = MagicMock()
    settings.storage.db_path = db_path
    settings.storage.pool_size = 2
    settings.storage.busy_timeout = 5000

    conn_module._pool = None
    with patch.object(conn_module, "get_settings", return_value=settings):
        try:
            yield db_path
        finally:
            await close_pool()


@pytest.fixture
async def pos(database: Path, converter) -> PointOfSale:
    """Coordinator with one product, one stocked lot and one party of each type."""
    pos = PointOfSale(store=SQLitePosStore(), activity_sink=SQLiteActivitySink(), converter=converter)
    await pos.refresh()

    assert (await pos.add_product(ProductDraft(id="rice", name="Rice 5kg", sale_price=250.0))).success
    for party_id, name, party_type in [
        ("cust-1", "Ahmad", PartyType.CUSTOMER),
        ("sup-1", "Kabul Traders", PartyType.SUPPLIER),
        ("emp-1", "Farid", PartyType.EMPLOYEE),
        ("dep-1", "Safe Box", PartyType.DEPOSIT_HOLDER),
    ]:
        assert (await pos.add_party(PartyDraft(id=party_id, name=name, party_type=party_type))).success

    stocked = await pos.create_purchase(
        PurchaseDraft(
            supplier_id="sup-1",
            items=[PurchaseLineDraft(product_id="rice", quantity=20, purchase_price=100.0, lot_number="LOT-1")],
        )
    )
    assert stocked.success
    await pos.drain_activity()
    return pos

"""Fixtures serving the API over a coordinator backed by a store double."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from kasebyar.api.dependencies import get_pos
from kasebyar.api.main import create_app
from kasebyar.application.use_cases import PointOfSale
from kasebyar.core.entities import InvoiceBundle
from kasebyar.core.interfaces import IActivitySink


@pytest.fixture
async def api_pos(mock_store, converter, state) -> PointOfSale:
    mock_store.get_products.return_value = state.products
    mock_store.get_entities.return_value = state.parties
    mock_store.get_transactions.return_value = []
    mock_store.get_invoices.return_value = InvoiceBundle()
    pos = PointOfSale(
        store=mock_store,
        activity_sink=AsyncMock(spec=IActivitySink),
        converter=converter,
    )
    await pos.refresh()
    return pos


@pytest.fixture
async def client(api_pos):
    app = create_app(use_lifespan=False)
    app.dependency_overrides[get_pos] = lambda: api_pos
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await api_pos.drain_activity()
    app.dependency_overrides.clear()

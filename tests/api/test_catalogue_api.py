"""API tests for health and product endpoints."""


async def test_health(client):
    response = await client.get("/api/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert response.headers["X-Request-ID"]


async def test_list_products(client):
    response = await client.get("/api/products")
    assert response.status_code == 200

    data = response.json()
    assert [p["id"] for p in data] == ["rice", "oil"]
    assert len(data[0]["batches"]) == 2


async def test_search_products(client):
    response = await client.get("/api/products", params={"search": "oil"})
    assert [p["id"] for p in response.json()] == ["oil"]


async def test_get_unknown_product(client):
    response = await client.get("/api/products/tea")
    assert response.status_code == 404

    data = response.json()
    assert data["error_code"] == "PRODUCT_NOT_FOUND"
    assert data["path"] == "/api/products/tea"
    assert data["hint"]


async def test_create_product(client, mock_store):
    response = await client.post(
        "/api/products", json={"id": "tea", "name": "Green Tea", "sale_price": 40.0}
    )
    assert response.status_code == 201

    data = response.json()
    assert data["success"] is True
    assert data["payload"]["name"] == "Green Tea"
    mock_store.add_product.assert_awaited_once()


async def test_create_duplicate_product(client):
    response = await client.post("/api/products", json={"id": "rice", "name": "Rice again"})
    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


async def test_create_product_invalid_body(client):
    response = await client.post("/api/products", json={"name": ""})
    assert response.status_code == 422

    data = response.json()
    assert data["error_code"] == "VALIDATION_ERROR"
    assert data["details"]["errors"]


async def test_alerts(client):
    response = await client.get("/api/products/alerts")
    assert response.status_code == 200
    assert set(response.json()) == {"low_stock", "expiring"}


async def test_unknown_route(client):
    response = await client.get("/api/nowhere")
    assert response.status_code == 404
    assert response.json()["error_code"] == "NOT_FOUND"


async def test_unknown_shipment(client):
    response = await client.get("/api/in-transit/T9")
    assert response.status_code == 404

    data = response.json()
    assert data["error_code"] == "INVOICE_NOT_FOUND"
    assert data["details"] == {"invoice_id": "T9"}


async def test_update_product(client, mock_store):
    response = await client.put("/api/products/rice", json={"sale_price": 175.0})
    assert response.status_code == 200
    assert response.json()["payload"]["sale_price"] == 175.0
    assert mock_store.update_product.call_args.args[0].name == "Rice 5kg"


async def test_delete_product(client, mock_store):
    response = await client.delete("/api/products/oil")
    assert response.status_code == 200
    mock_store.deactivate_product.assert_awaited_once_with("oil")


async def test_list_hides_inactive_products(client, api_pos, mock_store, rice, oil):
    mock_store.get_products.return_value = [rice, oil.model_copy(update={"active": False})]
    await api_pos.refresh()

    response = await client.get("/api/products")
    assert [p["id"] for p in response.json()] == ["rice"]

    response = await client.get("/api/products", params={"include_inactive": True})
    assert [p["id"] for p in response.json()] == ["rice", "oil"]


async def test_services(client, mock_store):
    response = await client.post("/api/services", json={"id": "svc-1", "name": "Delivery", "price": 50.0})
    assert response.status_code == 201
    mock_store.add_service.assert_awaited_once()

    response = await client.delete("/api/services/svc-9")
    assert response.status_code == 404
    assert response.json()["error_code"] == "RECORD_NOT_FOUND"


async def test_delete_party(client, mock_store):
    response = await client.delete("/api/parties/sup-1")
    assert response.status_code == 200
    mock_store.deactivate_party.assert_awaited_once_with("sup-1")

    response = await client.delete("/api/parties/nobody")
    assert response.status_code == 404

"""
POS and inventory API integration tests
"""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def product_id(client: TestClient, org_headers) -> str:
    response = client.post(
        "/api/v1/inventory/products",
        json={"sku": "BRK-010", "name": "Brake pads", "selling_price": "20.00", "current_stock": 5},
        headers=org_headers,
    )
    assert response.status_code == 201
    return response.json()["data"]["id"]


class TestInventoryAPI:

    def test_get_product(self, client: TestClient, org_headers, product_id):
        response = client.get(f"/api/v1/inventory/products/{product_id}", headers=org_headers)

        assert response.status_code == 200
        assert response.json()["data"]["current_stock"] == 5

    def test_adjustment_and_movements(self, client: TestClient, org_headers, product_id):
        response = client.post(
            "/api/v1/inventory/adjustments",
            json={"product_id": product_id, "movement_type": "in", "quantity": 4, "reference": "PO-1"},
            headers=org_headers,
        )
        assert response.status_code == 201
        assert response.json()["data"]["new_quantity"] == 9

        history = client.get("/api/v1/inventory/movements", params={"product_id": product_id},
                             headers=org_headers).json()["data"]
        assert [m["movement_type"] for m in history] == ["in", "in"]
        assert history[0]["reference"] == "PO-1"

    def test_out_beyond_stock(self, client: TestClient, org_headers, product_id):
        response = client.post(
            "/api/v1/inventory/adjustments",
            json={"product_id": product_id, "movement_type": "out", "quantity": 50},
            headers=org_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "InsufficientStock"

    def test_transfer_is_not_a_manual_adjustment(self, client: TestClient, org_headers, product_id):
        response = client.post(
            "/api/v1/inventory/adjustments",
            json={"product_id": product_id, "movement_type": "transfer", "quantity": 1},
            headers=org_headers,
        )
        assert response.status_code == 400


class TestTransactionsAPI:

    def test_sale_and_void(self, client: TestClient, org_headers, product_id):
        created = client.post(
            "/api/v1/pos/transactions",
            json={"items": [{"product_id": product_id, "quantity": 3}],
                  "payments": [{"method": "cash", "amount": "60.00"}]},
            headers=org_headers,
        )
        assert created.status_code == 201
        txn = created.json()["data"]
        assert txn["total_amount"] == "60.00"
        assert txn["cashier_id"] == "user-1"

        stock = client.get(f"/api/v1/inventory/products/{product_id}", headers=org_headers)
        assert stock.json()["data"]["current_stock"] == 2

        voided = client.post(f"/api/v1/pos/transactions/{txn['id']}/void",
                             json={"reason": "Duplicate"}, headers=org_headers)
        assert voided.status_code == 200
        assert voided.json()["data"]["status"] == "voided"

        stock = client.get(f"/api/v1/inventory/products/{product_id}", headers=org_headers)
        assert stock.json()["data"]["current_stock"] == 5

    def test_insufficient_stock(self, client: TestClient, org_headers, product_id):
        response = client.post(
            "/api/v1/pos/transactions",
            json={"items": [{"product_id": product_id, "quantity": 6}]},
            headers=org_headers,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "InsufficientStock"
        assert body["details"]["available"] == 5

    def test_item_needs_product_or_service(self, client: TestClient, org_headers):
        response = client.post("/api/v1/pos/transactions", json={"items": [{"quantity": 1}]},
                               headers=org_headers)
        assert response.status_code == 400

    def test_list_transactions_paginates(self, client: TestClient, org_headers, product_id):
        for _ in range(3):
            client.post("/api/v1/pos/transactions",
                        json={"items": [{"product_id": product_id, "quantity": 1}]},
                        headers=org_headers)

        page = client.get("/api/v1/pos/transactions", params={"limit": 2}, headers=org_headers).json()["data"]
        assert page["total"] == 3
        assert len(page["items"]) == 2

        completed = client.get("/api/v1/pos/transactions", params={"status": "voided"},
                               headers=org_headers).json()["data"]
        assert completed["total"] == 0


class TestCashDrawersAPI:

    def test_open_and_close(self, client: TestClient, org_headers, product_id):
        opened = client.post("/api/v1/pos/cash-drawers", json={"terminal_id": "T1", "opening_amount": "100.00"},
                             headers=org_headers)
        assert opened.status_code == 201

        client.post(
            "/api/v1/pos/transactions",
            json={"terminal_id": "T1", "items": [{"product_id": product_id, "quantity": 1}],
                  "payments": [{"method": "cash", "amount": "20.00"}]},
            headers=org_headers,
        )

        closed = client.post(f"/api/v1/pos/cash-drawers/{opened.json()['data']['id']}/close",
                             json={"closing_amount": "120.00"}, headers=org_headers)
        assert closed.status_code == 200
        assert closed.json()["data"]["expected_amount"] == "120.00"
        assert closed.json()["data"]["variance"] == "0.00"

        duplicate = client.post("/api/v1/pos/cash-drawers", json={"terminal_id": "T1"}, headers=org_headers)
        assert duplicate.status_code == 201

        open_drawers = client.get("/api/v1/pos/cash-drawers", params={"status": "open"},
                                  headers=org_headers).json()["data"]
        assert len(open_drawers) == 1

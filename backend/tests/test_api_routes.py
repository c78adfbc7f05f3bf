"""
HTTP API tests through the Flask test client.

Verifies:
- Requests without a known forwarded user return 401
- Admin-only routes return 403 for regular users
- Discriminated {success: ...} results and status codes per error kind
"""

import pytest


def user_headers(user_id: str) -> dict:
    return {"X-User-Id": user_id}


class TestIdentity:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("GET", "/api/suppliers"),
            ("GET", "/api/families"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("POST", "/api/prices/bulk-update"),
        ],
    )
    def test_requires_user(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401
        assert resp.json["success"] is False

    def test_unknown_user(self, client, db_session):
        resp = client.get("/api/products", headers=user_headers("stranger"))
        assert resp.status_code == 401

    def test_inactive_user(self, client, sql_store, clerk_user, admin_headers):
        client.put(f"/api/users/{clerk_user['id']}", json={"is_active": False}, headers=admin_headers)
        resp = client.get("/api/products", headers=user_headers(clerk_user["id"]))
        assert resp.status_code == 401

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/prices/bulk-update"),
            ("DELETE", "/api/suppliers/x"),
            ("DELETE", "/api/families/x"),
            ("DELETE", "/api/products/x"),
            ("GET", "/api/users"),
        ],
    )
    def test_admin_only(self, client, clerk_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=clerk_headers)
        assert resp.status_code == 403
        assert resp.json["required_role"] == "admin"


class TestSalesApi:

    def test_register_sale(self, client, clerk_headers, product):
        resp = client.post("/api/sales", json={
            "lines": [{"product_id": product["id"], "name": "Crackers", "unit_price": 15.0, "quantity": 2}],
            "total": 30.0,
        }, headers=clerk_headers)

        assert resp.status_code == 201
        assert resp.json["success"] is True
        assert resp.json["total"] == 30.0

        sale = client.get(f"/api/sales/{resp.json['sale_id']}", headers=clerk_headers).json["sale"]
        assert sale["user_id"] == "clerk"
        assert sale["sold_at"].endswith("Z")

        stock = client.get(f"/api/products/{product['id']}", headers=clerk_headers).json["product"]["stock"]
        assert stock == 3

    def test_insufficient_stock(self, client, clerk_headers, product):
        resp = client.post("/api/sales", json={
            "lines": [{"product_id": product["id"], "name": "Crackers", "unit_price": 15.0, "quantity": 9}],
        }, headers=clerk_headers)

        assert resp.status_code == 409
        assert resp.json["details"]["available"] == 5

    def test_validation_error(self, client, clerk_headers, product):
        resp = client.post("/api/sales", json={
            "lines": [{"product_id": product["id"], "name": "Crackers", "unit_price": 15.0, "quantity": 0}],
        }, headers=clerk_headers)

        assert resp.status_code == 400
        assert resp.json["error"] == "Invalid quantity for product Crackers"

    def test_idempotent_retry(self, client, clerk_headers, product):
        body = {
            "lines": [{"product_id": product["id"], "name": "Crackers", "unit_price": 15.0, "quantity": 1}],
            "idempotency_key": "retry-me",
        }
        first = client.post("/api/sales", json=body, headers=clerk_headers)
        second = client.post("/api/sales", json=body, headers=clerk_headers)

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json["replayed"] is True
        assert second.json["sale_id"] == first.json["sale_id"]

    def test_history(self, client, clerk_headers, product):
        for _ in range(2):
            client.post("/api/sales", json={
                "lines": [{"product_id": product["id"], "name": "Crackers", "unit_price": 15.0, "quantity": 1}],
            }, headers=clerk_headers)

        resp = client.get("/api/sales?limit=1", headers=clerk_headers)
        assert resp.json["count"] == 1
        assert client.get("/api/sales?limit=0", headers=clerk_headers).status_code == 400


class TestPricingApi:

    def _body(self, supplier, value, mode="percentage"):
        return {"scope": {"kind": "supplier", "id": supplier["id"]}, "adjustment": {"mode": mode, "value": value}}

    def test_bulk_update(self, client, admin_headers, supplier, product):
        resp = client.post("/api/prices/bulk-update", json=self._body(supplier, 10), headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json["updated_count"] == 1

        updated = client.get(f"/api/products/{product['id']}", headers=admin_headers).json["product"]
        assert updated["purchase_price"] == 11.0
        assert updated["sale_price"] == 16.0

    def test_non_positive_rejected_by_default(self, client, admin_headers, supplier, product):
        resp = client.post("/api/prices/bulk-update", json=self._body(supplier, -5), headers=admin_headers)
        assert resp.status_code == 400

    def test_discounts_when_enabled(self, app, client, admin_headers, supplier, product):
        app.config["PRICE_UPDATE_ALLOW_DISCOUNTS"] = True
        resp = client.post("/api/prices/bulk-update", json=self._body(supplier, -1, "fixed"), headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["updated_count"] == 1

    def test_out_of_range_value(self, client, admin_headers, supplier, product):
        resp = client.post("/api/prices/bulk-update", json=self._body(supplier, 1e30, "fixed"), headers=admin_headers)

        assert resp.status_code == 400
        assert resp.json["success"] is False

    def test_bad_scope(self, client, admin_headers):
        resp = client.post("/api/prices/bulk-update", json={
            "scope": {"kind": "brand", "id": "x"}, "adjustment": {"mode": "fixed", "value": 1},
        }, headers=admin_headers)
        assert resp.status_code == 400


class TestCatalogApi:

    def test_create_product(self, client, clerk_headers, supplier):
        resp = client.post("/api/products", json={
            "name": "Soda",
            "purchase_price": 1.2,
            "sale_price": 2,
            "stock": 4,
            "barcode": "0012345",
            "supplier_id": supplier["id"],
        }, headers=clerk_headers)

        assert resp.status_code == 201
        assert resp.json["product"]["purchase_price"] == 1.2

        found = client.get("/api/products/barcode/0012345", headers=clerk_headers)
        assert found.json["product"]["name"] == "Soda"

    def test_create_product_invalid(self, client, clerk_headers, supplier):
        resp = client.post("/api/products", json={
            "name": "Soda", "purchase_price": 2, "sale_price": 1, "stock": 4, "supplier_id": supplier["id"],
        }, headers=clerk_headers)
        assert resp.status_code == 400

    def test_missing_product(self, client, clerk_headers):
        assert client.get("/api/products/nope", headers=clerk_headers).status_code == 404

    def test_stock_adjustment(self, client, clerk_headers, product):
        resp = client.post(f"/api/products/{product['id']}/stock", json={"delta": -6}, headers=clerk_headers)
        assert resp.status_code == 409

    def test_supplier_delete_guard(self, client, admin_headers, supplier, product):
        resp = client.delete(f"/api/suppliers/{supplier['id']}", headers=admin_headers)
        assert resp.status_code == 409
        assert resp.json["details"]["product_count"] == 1

    def test_family_delete_follows_policy(self, app, client, admin_headers, family, product):
        assert client.delete(f"/api/families/{family['id']}", headers=admin_headers).status_code == 409

        app.config["FAMILY_DELETE_POLICY"] = "cascade_null"
        resp = client.delete(f"/api/families/{family['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["detached_products"] == 1


def test_health(client, db_session):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json["checks"]["document_store"]["status"] == "healthy"


def test_unexpected_error_returns_json(client, admin_headers, supplier, monkeypatch):
    from stockroom.services.pricing_service import PriceUpdateEngine

    def explode(self, scope, adjustment):
        raise RuntimeError("boom")

    monkeypatch.setattr(PriceUpdateEngine, "apply_bulk_price_update", explode)

    resp = client.post("/api/prices/bulk-update", json={
        "scope": {"kind": "supplier", "id": supplier["id"]},
        "adjustment": {"mode": "percentage", "value": 5},
    }, headers=admin_headers)

    assert resp.status_code == 500
    assert resp.json == {"success": False, "error": "Unexpected error"}


def test_unknown_route_keeps_404(client, db_session):
    assert client.get("/api/nowhere").status_code == 404

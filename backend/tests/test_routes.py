"""
API and CLI tests.

Each failure class maps to one status and one "kind" so the UI can pick the
right message: validation 400, not_found 404, conflict/duplicate 409.
State is checked through the API itself, not the test session.
"""

import pytest

from bevpos.cli import DEMO_PRODUCTS, WALK_IN_CUSTOMER


@pytest.fixture
def ids(water, cola, alice, bob):
    return {
        "water": water.id,
        "cola": cola.id,
        "alice": alice.id,
        "bob": bob.id,
    }


def _checkout(client, ids, transaction_id="TXN-1", payment_type="CREDIT", quantity=2, customer="alice"):
    return client.post("/api/sales", json={
        "transaction_id": transaction_id,
        "customer_id": ids[customer],
        "payment_type": payment_type,
        "lines": [{"product_id": ids["water"], "quantity": quantity, "unit_price_cents": 5000}],
    })


def _stock(client, product_id):
    return client.get(f"/api/products/{product_id}").get_json()["product"]["stock"]


def _credit(client, customer_id):
    return client.get(f"/api/customers/{customer_id}").get_json()["customer"]["credit_balance_cents"]


class TestHealth:

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"


class TestSalesApi:

    def test_checkout_applies_side_effects(self, client, db_session, ids):
        resp = _checkout(client, ids)
        assert resp.status_code == 201

        body = resp.get_json()
        assert body["sale"]["total_amount_cents"] == 10000
        assert len(body["sale"]["items"]) == 1
        assert body["workflow"]["consistent"] is True
        assert _stock(client, ids["water"]) == 48
        assert _credit(client, ids["alice"]) == 10000

    def test_duplicate_transaction_is_409(self, client, db_session, ids):
        assert _checkout(client, ids).status_code == 201

        resp = _checkout(client, ids, quantity=5)
        assert resp.status_code == 409
        assert resp.get_json()["kind"] == "duplicate"
        assert _stock(client, ids["water"]) == 48
        assert _credit(client, ids["alice"]) == 10000

    def test_overselling_is_400(self, client, db_session, ids):
        resp = _checkout(client, ids, quantity=51)
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["kind"] == "validation"
        assert "Only 50 units" in body["error"]
        assert client.get("/api/sales").get_json()["count"] == 0

    def test_listing_filters_and_summary(self, client, db_session, ids):
        _checkout(client, ids, transaction_id="TXN-A", payment_type="CASH")
        _checkout(client, ids, transaction_id="TXN-B", payment_type="CREDIT", customer="bob")

        body = client.get("/api/sales?payment_type=CREDIT").get_json()
        assert [s["transaction_id"] for s in body["items"]] == ["TXN-B"]

        body = client.get("/api/sales?search=alice&date_range=today").get_json()
        assert [s["transaction_id"] for s in body["items"]] == ["TXN-A"]

        body = client.get("/api/sales/today").get_json()
        assert body["summary"]["total_sales_cents"] == 20000
        assert body["summary"]["cash_transactions"] == 1

    def test_bad_date_range_is_400(self, client, db_session):
        resp = client.get("/api/sales?date_range=fortnight")
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "validation"

    def test_delete_restores_and_reports_workflow(self, client, db_session, ids):
        sale_id = _checkout(client, ids).get_json()["sale"]["id"]

        resp = client.delete(f"/api/sales/{sale_id}")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["sale"]["transaction_id"] == "TXN-1"
        assert body["workflow"]["consistent"] is True
        assert _stock(client, ids["water"]) == 50
        assert _credit(client, ids["alice"]) == 0

        assert client.get(f"/api/sales/{sale_id}").status_code == 404
        assert client.delete(f"/api/sales/{sale_id}").get_json()["kind"] == "not_found"


class TestPaymentsApi:

    def test_partial_payment_then_void(self, client, db_session, ids):
        sale_id = _checkout(client, ids).get_json()["sale"]["id"]

        resp = client.post("/api/payments", json={
            "customer_id": ids["alice"],
            "amount_cents": 6000,
            "payment_method": "CASH",
            "sale_id": sale_id,
            "notes": "first instalment",
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["payment"]["customer"]["credit_balance_cents"] == 4000
        assert body["payment"]["sale_transaction_id"] == "TXN-1"

        client.delete(f"/api/sales/{sale_id}")
        assert _credit(client, ids["alice"]) == 0

        payments = client.get(f"/api/payments?customer_id={ids['alice']}").get_json()
        assert payments["count"] == 1
        assert payments["summary"]["today_payments_cents"] == 6000

    @pytest.mark.parametrize("amount,method", [
        (0, "CASH"),
        (10001, "CASH"),
        (100, "BARTER"),
        ("ten", "CASH"),
    ])
    def test_invalid_payment_is_400(self, client, db_session, ids, amount, method):
        _checkout(client, ids)

        resp = client.post("/api/payments", json={
            "customer_id": ids["alice"],
            "amount_cents": amount,
            "payment_method": method,
        })
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "validation"
        assert _credit(client, ids["alice"]) == 10000

    def test_unknown_customer_is_404(self, client, db_session):
        resp = client.post("/api/payments", json={
            "customer_id": 999,
            "amount_cents": 100,
            "payment_method": "CASH",
        })
        assert resp.status_code == 404

    @pytest.mark.parametrize("target", ["missing", "other_customer", "cash_sale"])
    def test_sale_reference_must_be_own_credit_sale(self, client, db_session, ids, target):
        _checkout(client, ids, transaction_id="A-CREDIT")
        sale_ids = {
            "missing": 999999,
            "other_customer": _checkout(
                client, ids, transaction_id="B-CREDIT", customer="bob", quantity=1
            ).get_json()["sale"]["id"],
            "cash_sale": _checkout(
                client, ids, transaction_id="A-CASH", payment_type="CASH", quantity=1
            ).get_json()["sale"]["id"],
        }

        resp = client.post("/api/payments", json={
            "customer_id": ids["alice"],
            "amount_cents": 1000,
            "payment_method": "CASH",
            "sale_id": sale_ids[target],
        })
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "validation"
        assert _credit(client, ids["alice"]) == 10000
        assert client.get("/api/payments").get_json()["count"] == 0

    def test_overlong_notes_rejected(self, client, db_session, ids):
        _checkout(client, ids)

        resp = client.post("/api/payments", json={
            "customer_id": ids["alice"],
            "amount_cents": 1000,
            "payment_method": "CASH",
            "notes": "x" * 256,
        })
        assert resp.status_code == 400
        assert "notes exceeds max length 255" in resp.get_json()["error"]
        assert _credit(client, ids["alice"]) == 10000


class TestCatalogApi:

    def test_product_crud(self, client, db_session):
        resp = client.post("/api/products", json={"name": "Soda 250ml", "category": "Drinks", "stock": 12})
        assert resp.status_code == 201
        product_id = resp.get_json()["product"]["id"]

        resp = client.put(f"/api/products/{product_id}", json={"name": "Soda 0.25L"})
        assert resp.get_json()["product"]["name"] == "Soda 0.25L"

        resp = client.put(f"/api/products/{product_id}", json={"stock": 99})
        assert resp.status_code == 400

        resp = client.post(f"/api/products/{product_id}/restock", json={"quantity": 10})
        assert resp.get_json()["product"]["stock"] == 22

        assert client.delete(f"/api/products/{product_id}").status_code == 200
        assert client.get(f"/api/products/{product_id}").status_code == 404

    def test_invalid_product_is_400(self, client, db_session):
        resp = client.post("/api/products", json={"name": "Chips", "category": "Snacks"})
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "validation"

    def test_product_listing_statuses(self, client, db_session, ids):
        body = client.get("/api/products?status=IN_STOCK").get_json()
        assert {p["name"] for p in body["items"]} == {"Water 500ml", "Cola 330ml"}
        assert all(p["stock_status"] == "IN_STOCK" for p in body["items"])
        assert body["summary"]["total_products"] == 2

        assert client.get("/api/products?status=BOGUS").status_code == 400
        assert client.get("/api/products/low-stock").get_json()["count"] == 0

    def test_sold_product_delete_is_409(self, client, db_session, ids):
        _checkout(client, ids)
        resp = client.delete(f"/api/products/{ids['water']}")
        assert resp.status_code == 409
        assert resp.get_json()["kind"] == "conflict"

    def test_customer_crud(self, client, db_session, ids):
        resp = client.post("/api/customers", json={"name": "Dana", "phone": "", "address": "Block B"})
        assert resp.status_code == 201
        customer = resp.get_json()["customer"]
        assert customer["phone"] is None
        assert customer["credit_balance_cents"] == 0

        resp = client.put(f"/api/customers/{customer['id']}", json={"credit_balance_cents": 0})
        assert resp.status_code == 400

        body = client.get("/api/customers?search=dan").get_json()
        assert [c["name"] for c in body["items"]] == ["Dana"]

        assert client.delete(f"/api/customers/{customer['id']}").status_code == 200

    def test_customer_detail_and_conflict(self, client, db_session, ids):
        _checkout(client, ids)

        body = client.get(f"/api/customers/{ids['alice']}").get_json()
        assert len(body["credit_sales"]) == 1
        assert body["payments"] == []

        debtors = client.get("/api/customers?with_credit=true").get_json()
        assert [c["name"] for c in debtors["items"]] == ["Alice"]

        resp = client.delete(f"/api/customers/{ids['alice']}")
        assert resp.status_code == 409


class TestRequestBodies:

    @pytest.mark.parametrize("path", [
        "/api/sales",
        "/api/payments",
        "/api/products",
        "/api/customers",
        "/api/products/{water}/restock",
    ])
    @pytest.mark.parametrize("body", [[1], "text", 42])
    def test_non_object_json_is_400(self, client, db_session, ids, path, body):
        resp = client.post(path.format(**ids), json=body)
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Invalid JSON payload", "kind": "validation"}

    @pytest.mark.parametrize("path,service,attr", [
        ("/api/products/{water}", "products_service", "delete_product"),
        ("/api/customers/{bob}", "customers_service", "delete_customer"),
    ])
    def test_unexpected_delete_failure_is_500(self, client, db_session, ids, monkeypatch, path, service, attr):
        from bevpos import services

        def explode(_id):
            raise RuntimeError("disk full")

        monkeypatch.setattr(getattr(services, service), attr, explode)

        resp = client.delete(path.format(**ids))
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Internal server error", "kind": "remote"}


class TestReportsApi:

    def test_dashboard_and_reports(self, client, db_session, ids):
        _checkout(client, ids, quantity=35)

        board = client.get("/api/reports/dashboard").get_json()
        assert board["today"]["credit_cents"] == 175000
        assert board["outstanding_credit_cents"] == 175000
        assert [p["name"] for p in board["low_stock"]] == ["Water 500ml"]

        report = client.get("/api/reports/sales?date_range=week").get_json()
        assert report["summary"]["total_transactions"] == 1
        assert report["top_products"][0]["quantity"] == 35
        assert report["categories"] == [{"category": "Water", "revenue_cents": 175000, "quantity": 35}]

        inventory = client.get("/api/reports/inventory").get_json()
        assert inventory["low_stock_threshold"] == 20
        assert inventory["summary"]["low_stock"] == 1

        assert client.get("/api/reports/sales?date_range=forever").status_code == 400


class TestCli:

    def test_seed_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["system", "seed"])
        assert result.exit_code == 0
        assert f"Seeded {len(DEMO_PRODUCTS)} product(s)" in result.output
        assert WALK_IN_CUSTOMER in result.output

        result = runner.invoke(args=["system", "seed"])
        assert "Seeded 0 product(s)" in result.output

        result = runner.invoke(args=["products", "list", "--status", "LOW_STOCK"])
        assert "Water 19L Refill" in result.output
        assert "Water 500ml" not in result.output

    def test_summary(self, app, client, db_session, ids):
        _checkout(client, ids)
        runner = app.test_cli_runner()

        result = runner.invoke(args=["reports", "summary", "--date-range", "today"])
        assert result.exit_code == 0
        assert "1 transaction(s)" in result.output
        assert "Credit: 100.00" in result.output

        result = runner.invoke(args=["customers", "list", "--with-credit"])
        assert "Alice" in result.output
        assert "Bob" not in result.output

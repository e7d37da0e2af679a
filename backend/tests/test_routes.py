# Overview: Pytest coverage for the HTTP API; status codes and JSON shapes.

"""
API Route Tests

Exercises every blueprint through the Flask test client: success paths,
the error-to-status mapping, and the X-Actor-Id requirement on writes.
"""

import pytest

from tradebook.extensions import db
from tradebook.models import Item, Order


def _sale_body(item, quantity=1, **extra):
    body = {"items": [{"item_id": item.id, "quantity": quantity, "unit_price_cents": item.selling_price_cents}]}
    body.update(extra)
    return body


class TestSystemRoutes:

    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["status"] == "healthy"
        assert data["checks"]["database"]["details"] == {"items": 0, "orders": 0}

    def test_version(self, client):
        resp = client.get("/api/version")
        assert resp.status_code == 200
        assert resp.get_json()["api_version"] == "1.0.0"


class TestActorHeader:

    @pytest.mark.parametrize("headers", [{}, {"X-Actor-Id": "abc"}, {"X-Actor-Id": "0"}])
    def test_writes_require_actor(self, client, db_session, headers):
        resp = client.post("/api/items/", json={"sku": "A", "name": "A"}, headers=headers)
        assert resp.status_code == 401
        assert db.session.query(Item).count() == 0

    def test_reads_do_not(self, client, db_session):
        assert client.get("/api/items/").status_code == 200


class TestItemRoutes:

    def test_crud(self, client, db_session, actor_headers):
        resp = client.post(
            "/api/items/",
            json={"sku": "RICE-5", "name": "Rice 5kg", "opening_stock": 12, "selling_price_cents": 1250},
            headers=actor_headers,
        )
        assert resp.status_code == 201
        item = resp.get_json()["item"]
        assert item["current_stock"] == 12
        assert item["stock_status"] == "ok"

        resp = client.patch(f"/api/items/{item['id']}", json={"name": "Rice 5 kg"}, headers=actor_headers)
        assert resp.status_code == 200
        assert resp.get_json()["item"]["name"] == "Rice 5 kg"

        resp = client.get(f"/api/items/{item['id']}")
        assert resp.get_json()["item"]["sku"] == "RICE-5"

        resp = client.delete(f"/api/items/{item['id']}", headers=actor_headers)
        assert resp.status_code == 200
        assert resp.get_json()["ok"] is True
        assert resp.get_json()["item"]["is_active"] is False

        listed = client.get("/api/items/").get_json()
        assert listed["count"] == 0
        listed = client.get("/api/items/?include_inactive=true").get_json()
        assert listed["count"] == 1

    def test_stock_cannot_be_patched(self, client, make_item, actor_headers):
        item = make_item(stock=4)
        resp = client.patch(f"/api/items/{item.id}", json={"current_stock": 100}, headers=actor_headers)
        assert resp.status_code == 400
        assert db.session.get(Item, item.id).current_stock == 4

    def test_validation_errors(self, client, db_session, make_item, actor_headers):
        resp = client.post("/api/items/", json={"sku": "X"}, headers=actor_headers)
        assert resp.status_code == 400
        resp = client.post(
            "/api/items/", json={"sku": "X", "name": "X", "selling_price_cents": -5}, headers=actor_headers
        )
        assert resp.status_code == 400

        item = make_item(stock=2)
        resp = client.patch(f"/api/items/{item.id}", json={"is_active": "false"}, headers=actor_headers)
        assert resp.status_code == 400
        assert db.session.get(Item, item.id).is_active is True

    def test_duplicate_sku_conflict(self, client, make_item, actor_headers):
        make_item(sku="DUP")
        resp = client.post("/api/items/", json={"sku": "DUP", "name": "Again"}, headers=actor_headers)
        assert resp.status_code == 409

    def test_missing_item(self, client, db_session):
        resp = client.get("/api/items/999")
        assert resp.status_code == 404
        assert resp.get_json()["type"] == "NotFoundError"

    def test_low_stock(self, client, make_item):
        make_item(stock=1, reorder_level=5)
        make_item(stock=50, reorder_level=5)
        data = client.get("/api/items/low-stock").get_json()
        assert data["count"] == 1
        assert data["items"][0]["needs_reorder"] is True


class TestInventoryRoutes:

    def test_adjust_and_ledger(self, client, make_item, actor_headers):
        item = make_item(stock=10)

        resp = client.post(
            "/api/inventory/adjust",
            json={"item_id": item.id, "adjustment_type": "decrease", "quantity": 2, "reason": "Damaged"},
            headers=actor_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["adjustment"]["quantity_after"] == 8

        txs = client.get(f"/api/inventory/transactions?item_id={item.id}").get_json()
        assert txs["count"] == 1
        assert txs["transactions"][0]["quantity_change"] == -2

        assert client.get("/api/inventory/adjustments").get_json()["count"] == 1

        recon = client.get(f"/api/inventory/reconcile/{item.id}").get_json()
        assert recon["balanced"] is True
        assert recon["current_stock"] == 8

    def test_adjust_errors(self, client, make_item, actor_headers):
        item = make_item(stock=1)
        resp = client.post("/api/inventory/adjust", json={"item_id": item.id}, headers=actor_headers)
        assert resp.status_code == 400

        resp = client.post(
            "/api/inventory/adjust",
            json={"item_id": item.id, "adjustment_type": "decrease", "quantity": 5, "reason": "Lost"},
            headers=actor_headers,
        )
        assert resp.status_code == 409
        assert resp.get_json()["type"] == "InvalidAdjustmentError"


class TestCounterpartyRoutes:

    @pytest.mark.parametrize("prefix,key", [("/api/customers", "customer"), ("/api/suppliers", "supplier")])
    def test_crud(self, client, db_session, actor_headers, prefix, key):
        resp = client.post(f"{prefix}/", json={"name": "Omar Saleh", "phone": "0912000000"}, headers=actor_headers)
        assert resp.status_code == 201
        created = resp.get_json()[key]
        assert created["current_balance_cents"] == 0

        resp = client.patch(f"{prefix}/{created['id']}", json={"city": "Khartoum"}, headers=actor_headers)
        assert resp.get_json()[key]["city"] == "Khartoum"

        listed = client.get(f"{prefix}/?search=omar").get_json()
        assert listed["count"] == 1
        assert listed[f"{key}s"][0]["id"] == created["id"]

        resp = client.delete(f"{prefix}/{created['id']}", headers=actor_headers)
        assert resp.get_json()[key]["is_active"] is False

    def test_balance_is_not_writable(self, client, customer, actor_headers):
        resp = client.patch(
            f"/api/customers/{customer.id}", json={"current_balance_cents": 5}, headers=actor_headers
        )
        assert resp.status_code == 400

    def test_name_required(self, client, db_session, actor_headers):
        resp = client.post("/api/suppliers/", json={"phone": "1"}, headers=actor_headers)
        assert resp.status_code == 400


class TestSalesRoutes:

    def test_create_and_pay(self, client, make_item, customer, actor_headers):
        item = make_item(stock=5, price_cents=1000)

        resp = client.post(
            "/api/sales/",
            json=_sale_body(item, customer_id=customer.id, paid_amount_cents=400, payment_method="credit"),
            headers=actor_headers,
        )
        assert resp.status_code == 201
        sale = resp.get_json()["sale"]
        assert sale["order_number"].startswith("SO-")
        assert sale["total_amount_cents"] == 1000
        assert sale["remaining_amount_cents"] == 600
        assert sale["items"][0]["quantity"] == 1
        assert len(sale["payments"]) == 1

        resp = client.post(
            f"/api/sales/{sale['id']}/payments",
            json={"amount_cents": 700, "payment_method": "cash"},
            headers=actor_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["type"] == "OverpaymentError"

        resp = client.post(
            f"/api/sales/{sale['id']}/payments",
            json={"amount_cents": 600, "payment_method": "cash"},
            headers=actor_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["order"]["status"] == "completed"

        summary = client.get(f"/api/sales/{sale['id']}/payments").get_json()
        assert summary["payment_count"] == 2
        assert summary["remaining_amount_cents"] == 0

    def test_insufficient_stock(self, client, make_item, actor_headers):
        item = make_item(stock=1)
        resp = client.post("/api/sales/", json=_sale_body(item, quantity=3), headers=actor_headers)
        assert resp.status_code == 409
        data = resp.get_json()
        assert data["type"] == "InsufficientStockError"
        assert data["details"]["items"][0]["available"] == 1
        assert db.session.get(Item, item.id).current_stock == 1

    def test_bad_lines(self, client, db_session, actor_headers):
        resp = client.post("/api/sales/", json={"items": []}, headers=actor_headers)
        assert resp.status_code == 400

    def test_payment_amount_required(self, client, make_item, actor_headers):
        item = make_item(stock=1)
        sale = client.post("/api/sales/", json=_sale_body(item), headers=actor_headers).get_json()["sale"]
        resp = client.post(f"/api/sales/{sale['id']}/payments", json={"payment_method": "cash"}, headers=actor_headers)
        assert resp.status_code == 400

    def test_idempotency_header(self, client, make_item, actor_headers):
        item = make_item(stock=5)
        headers = dict(actor_headers, **{"Idempotency-Key": "checkout-42"})

        first = client.post("/api/sales/", json=_sale_body(item), headers=headers)
        second = client.post("/api/sales/", json=_sale_body(item), headers=headers)

        assert first.status_code == 201
        assert second.status_code == 201
        assert first.get_json()["sale"]["id"] == second.get_json()["sale"]["id"]
        assert db.session.get(Item, item.id).current_stock == 4
        assert db.session.query(Order).count() == 1

    def test_list_and_get(self, client, make_item, actor_headers):
        item = make_item(stock=5)
        sale = client.post("/api/sales/", json=_sale_body(item), headers=actor_headers).get_json()["sale"]

        listed = client.get("/api/sales/").get_json()
        assert [s["id"] for s in listed["sales"]] == [sale["id"]]

        assert client.get(f"/api/sales/{sale['id']}").status_code == 200
        assert client.get("/api/sales/999").status_code == 404


class TestPurchaseRoutes:

    def test_create_receive_pay(self, client, make_item, supplier, actor_headers):
        item = make_item(stock=0, cost_cents=300)

        resp = client.post(
            "/api/purchases/",
            json={
                "supplier_id": supplier.id,
                "items": [{"item_id": item.id, "quantity": 4, "unit_price_cents": 300}],
            },
            headers=actor_headers,
        )
        assert resp.status_code == 201
        purchase = resp.get_json()["purchase"]
        assert purchase["order_number"].startswith("PO-")
        assert purchase["status"] == "pending"

        resp = client.put(
            f"/api/purchases/{purchase['id']}/receive",
            json={"items": [{"item_id": item.id, "received_quantity": 4}], "received_date": "2026-10-18"},
            headers=actor_headers,
        )
        assert resp.status_code == 200
        received = resp.get_json()["purchase"]
        assert received["status"] == "received"
        assert received["received_date"] == "2026-10-18"
        assert db.session.get(Item, item.id).current_stock == 4

        resp = client.put(
            f"/api/purchases/{purchase['id']}/receive",
            json={"items": [{"item_id": item.id, "received_quantity": 4}]},
            headers=actor_headers,
        )
        assert resp.status_code == 409

        resp = client.post(
            f"/api/purchases/{purchase['id']}/payments",
            json={"amount_cents": 1200, "payment_method": "bank"},
            headers=actor_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["order"]["payment_status"] == "paid"

    def test_supplier_required(self, client, make_item, actor_headers):
        item = make_item(stock=0)
        resp = client.post(
            "/api/purchases/",
            json={"items": [{"item_id": item.id, "quantity": 1, "unit_price_cents": 100}]},
            headers=actor_headers,
        )
        assert resp.status_code == 400

    def test_sale_is_not_a_purchase(self, client, make_item, actor_headers):
        item = make_item(stock=2)
        sale = client.post("/api/sales/", json=_sale_body(item), headers=actor_headers).get_json()["sale"]
        assert client.get(f"/api/purchases/{sale['id']}").status_code == 404
        resp = client.put(
            f"/api/purchases/{sale['id']}/receive",
            json={"items": [{"item_id": item.id, "received_quantity": 1}]},
            headers=actor_headers,
        )
        assert resp.status_code == 404

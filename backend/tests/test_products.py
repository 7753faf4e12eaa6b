"""
Product catalog and stock adjustment tests (service + routes).
"""

import pytest

from tillpoint.models import ActionLog, Product
from tillpoint.errors import ConflictError
from tillpoint.services import products_service, sales_service


def test_create_product_with_decimal_price(client, admin_headers):
    response = client.post("/api/products", headers=admin_headers, json={
        "name": "Espresso",
        "price": "3.75",
        "quantity": 12,
        "barcode": "",
    })

    assert response.status_code == 201
    body = response.get_json()
    assert body["price_cents"] == 375
    assert body["quantity"] == 12
    assert body["barcode"] is None


def test_create_product_validation(client, admin_headers):
    missing = client.post("/api/products", headers=admin_headers, json={"name": "No price"})
    assert missing.status_code == 400

    negative = client.post("/api/products", headers=admin_headers, json={
        "name": "Negative", "price_cents": 100, "quantity": -1,
    })
    assert negative.status_code == 400

    unknown = client.post("/api/products", headers=admin_headers, json={
        "name": "Sneaky", "price_cents": 100, "id": 5,
    })
    assert unknown.status_code == 400


def test_duplicate_barcode_is_conflict(client, admin_headers, widget):
    response = client.post("/api/products", headers=admin_headers, json={
        "name": "Other Widget", "price_cents": 100, "barcode": "W-001",
    })
    assert response.status_code == 409
    assert "barcode" in response.get_json()["error"]


def test_cashier_cannot_write_products(client, cashier_headers, widget):
    assert client.post("/api/products", headers=cashier_headers, json={
        "name": "X", "price_cents": 1,
    }).status_code == 403
    assert client.put(f"/api/products/{widget.id}", headers=cashier_headers, json={
        "name": "Y",
    }).status_code == 403
    assert client.post(f"/api/products/{widget.id}/adjust-stock", headers=cashier_headers, json={
        "adjustment": 1,
    }).status_code == 403


def test_update_cannot_touch_quantity(client, admin_headers, widget):
    response = client.put(f"/api/products/{widget.id}", headers=admin_headers, json={"quantity": 99})
    assert response.status_code == 400

    response = client.put(f"/api/products/{widget.id}", headers=admin_headers, json={"price": "3.00"})
    assert response.status_code == 200
    assert response.get_json()["price_cents"] == 300
    assert response.get_json()["quantity"] == 10


def test_list_search_and_pagination(client, cashier_headers, make_product):
    for name in ("Apple", "Banana", "Cherry"):
        make_product(name, barcode=f"B-{name}")

    everything = client.get("/api/products", headers=cashier_headers).get_json()
    assert [p["name"] for p in everything["items"]] == ["Apple", "Banana", "Cherry"]

    by_barcode = client.get("/api/products?search=B-Cherry", headers=cashier_headers).get_json()
    assert [p["name"] for p in by_barcode["items"]] == ["Cherry"]

    page = client.get("/api/products?page=2&per_page=2", headers=cashier_headers).get_json()
    assert [p["name"] for p in page["items"]] == ["Cherry"]
    assert page["pagination"]["has_prev"] is True
    assert page["pagination"]["has_next"] is False


def test_low_stock(client, cashier_headers, make_product):
    make_product("Plenty", quantity=50)
    make_product("Few", quantity=2)
    make_product("None", quantity=0)

    body = client.get("/api/products/low-stock", headers=cashier_headers).get_json()
    assert [p["name"] for p in body["items"]] == ["Few"]

    body = client.get("/api/products/low-stock?threshold=60", headers=cashier_headers).get_json()
    assert [p["name"] for p in body["items"]] == ["Few", "Plenty"]


def test_adjust_stock_route(client, admin_headers, widget):
    response = client.post(f"/api/products/{widget.id}/adjust-stock", headers=admin_headers, json={
        "adjustment": -4, "note": "breakage",
    })
    assert response.status_code == 200
    assert response.get_json()["quantity"] == 6

    response = client.post(f"/api/products/{widget.id}/adjust-stock", headers=admin_headers, json={
        "adjustment": -7,
    })
    assert response.status_code == 409
    assert response.get_json()["details"]["quantity"] == 6

    assert client.post(f"/api/products/{widget.id}/adjust-stock", headers=admin_headers, json={
        "adjustment": "1.5",
    }).status_code == 400
    assert client.post(f"/api/products/{widget.id}/adjust-stock", headers=admin_headers, json={
        "adjustment": 0,
    }).status_code == 400
    assert client.post("/api/products/9999/adjust-stock", headers=admin_headers, json={
        "adjustment": 1,
    }).status_code == 404


def test_delete_product_without_history(client, admin_headers, db_session, widget):
    response = client.delete(f"/api/products/{widget.id}", headers=admin_headers)
    assert response.status_code == 200
    assert db_session.get(Product, widget.id) is None
    assert db_session.query(ActionLog).filter_by(action_type="PRODUCT_DELETED").count() == 1


def test_delete_product_with_sales_history_is_refused(db_session, admin, cashier, widget):
    sales_service.create_sale(
        cashier_id=cashier.id,
        items=[{"product_id": widget.id, "quantity": 1, "unit_price_cents": 250}],
        payment_method="card",
    )

    with pytest.raises(ConflictError):
        products_service.delete_product(product_id=widget.id, actor_id=admin.id)
    assert db_session.get(Product, widget.id) is not None


def test_product_changes_are_logged(db_session, admin, widget):
    products_service.update_product(product_id=widget.id, patch={"name": "Widget XL"}, actor_id=admin.id)
    products_service.update_product(product_id=widget.id, patch={"name": "Widget XL"}, actor_id=admin.id)

    entries = db_session.query(ActionLog).filter_by(action_type="PRODUCT_UPDATED").all()
    assert len(entries) == 1
    assert "name" in entries[0].details


def test_ids_beyond_storage_range_are_not_found(client, admin_headers, cashier_headers):
    huge = 10**19
    assert client.get(f"/api/products/{huge}", headers=cashier_headers).status_code == 404
    assert client.post(f"/api/products/{huge}/adjust-stock", headers=admin_headers, json={
        "adjustment": 1,
    }).status_code == 404
    assert client.put(f"/api/users/{huge}/role", headers=admin_headers, json={
        "role": "admin",
    }).status_code == 404


def test_adjustment_beyond_storage_range_rejected(client, admin_headers, widget):
    response = client.post(f"/api/products/{widget.id}/adjust-stock", headers=admin_headers, json={
        "adjustment": 2**63 - 5,
    })
    assert response.status_code == 400
    assert client.get(f"/api/products/{widget.id}", headers=admin_headers).get_json()["quantity"] == 10


def test_create_product_quantity_beyond_storage_range(client, admin_headers):
    response = client.post("/api/products", headers=admin_headers, json={
        "name": "Bottomless", "price_cents": 100, "quantity": 10**19,
    })
    assert response.status_code == 400
    assert "too large" in response.get_json()["error"]

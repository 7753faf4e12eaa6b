from datetime import date, datetime

import pytest

from tillpoint.models import Sale
from tillpoint.errors import ValidationError
from tillpoint.services import reporting_service, sales_service


def _sell(cashier, product, quantity, when=None, db_session=None):
    sale = sales_service.create_sale(
        cashier_id=cashier.id,
        items=[{"product_id": product.id, "quantity": quantity, "unit_price_cents": product.price_cents}],
        payment_method="card",
    )
    if when is not None:
        sale.created_at = when
        db_session.commit()
    return sale


@pytest.fixture
def history(db_session, admin, cashier, widget, gadget):
    """Two days of sales: 2024-03-01 (widget x2, gadget x1), 2024-03-02 (widget x3 by admin)."""
    _sell(cashier, widget, 2, datetime(2024, 3, 1, 9, 0), db_session)
    _sell(cashier, gadget, 1, datetime(2024, 3, 1, 15, 30), db_session)
    _sell(admin, widget, 3, datetime(2024, 3, 2, 23, 59), db_session)


def test_daily_sales(db_session, history):
    report = reporting_service.daily_sales(start="2024-03-01", end="2024-03-02")
    assert report == [
        {"date": "2024-03-02", "sales_count": 1, "revenue_cents": 750, "items_sold": 3},
        {"date": "2024-03-01", "sales_count": 2, "revenue_cents": 1500, "items_sold": 3},
    ]


def test_daily_sales_end_is_inclusive(db_session, history):
    report = reporting_service.daily_sales(start="2024-03-02", end="2024-03-02")
    assert [r["date"] for r in report] == ["2024-03-02"]


def test_bad_range_rejected(db_session):
    with pytest.raises(ValidationError):
        reporting_service.daily_sales(start="03/01/2024")
    with pytest.raises(ValidationError):
        reporting_service.daily_sales(start="2024-03-05", end="2024-03-01")


def test_top_selling(db_session, history, widget):
    top = reporting_service.top_selling(limit=1)
    assert top == [{"product_id": widget.id, "name": "Widget", "total_sold": 5, "revenue_cents": 1250}]


def test_cashier_performance(db_session, history):
    rows = reporting_service.cashier_performance(start="2024-03-01", end="2024-03-01")
    assert rows == [
        {"user_id": rows[0]["user_id"], "username": "cashier", "sales_count": 2, "revenue_cents": 1500},
    ]


def test_dashboard_summary(db_session, history, make_product):
    make_product("Sold Out", quantity=0)

    summary = reporting_service.dashboard_summary(today=date(2024, 3, 1))

    assert summary["sales_count"] == 2
    assert summary["revenue_cents"] == 1500
    assert summary["total_products"] == 3
    # widget 5 left, gadget 4 left, both under the default threshold of 10
    assert summary["low_stock_count"] == 2
    assert summary["out_of_stock_count"] == 1


def test_history_search_by_id(db_session, history):
    newest = db_session.query(Sale).order_by(Sale.created_at.desc()).first()

    found = reporting_service.list_sales(search=f"#{newest.id}")
    assert [s["id"] for s in found["items"]] == [newest.id]

    assert reporting_service.list_sales(search="abc")["items"] == []


def test_report_routes_are_admin_only(client, admin_headers, cashier_headers, history):
    assert client.get("/api/reports/dashboard", headers=cashier_headers).status_code == 403

    daily = client.get("/api/reports/daily?start=2024-03-01&end=2024-03-01", headers=admin_headers)
    assert daily.status_code == 200
    assert daily.get_json()["items"][0]["revenue_cents"] == 1500

    bad = client.get("/api/reports/top-selling?start=yesterday", headers=admin_headers)
    assert bad.status_code == 400

    cashiers = client.get("/api/reports/cashiers", headers=admin_headers)
    assert {r["username"] for r in cashiers.get_json()["items"]} == {"admin", "cashier"}

# Overview: Service-layer operations for sales history and reports; read-only.

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from sqlalchemy import func

from tillpoint.extensions import db
from tillpoint.models import Sale, SaleItem, Product, User
from tillpoint.errors import SaleNotFound, ValidationError
from tillpoint.services import settings_service
from tillpoint.time_utils import parse_iso_date, utcnow
from tillpoint.validation import fits_db_integer


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    """
    Inclusive YYYY-MM-DD bounds -> half-open [start 00:00, end+1 00:00) datetimes.
    """
    try:
        start_day = parse_iso_date(start)
        end_day = parse_iso_date(end)
    except ValueError:
        raise ValidationError("start and end must be YYYY-MM-DD dates")

    if start_day and end_day and start_day > end_day:
        raise ValidationError("start must not be after end")

    start_dt = datetime.combine(start_day, time.min) if start_day else None
    end_dt = datetime.combine(end_day + timedelta(days=1), time.min) if end_day else None
    return start_dt, end_dt


def _filter_range(query, start_dt: datetime | None, end_dt: datetime | None):
    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at < end_dt)
    return query


def _items_by_sale(sale_ids: list[int]) -> dict[int, list[dict]]:
    if not sale_ids:
        return {}
    items = (
        db.session.query(SaleItem)
        .filter(SaleItem.sale_id.in_(sale_ids))
        .order_by(SaleItem.sale_id, SaleItem.id)
        .all()
    )
    grouped: dict[int, list[dict]] = {}
    for item in items:
        grouped.setdefault(item.sale_id, []).append(item.to_dict())
    return grouped


def list_sales(*, page: int = 1, limit: int = 10, search: str | None = None) -> dict:
    """
    Newest-first sales history with cashier names and line items.

    search is a sale id; non-numeric searches match nothing.
    """
    limit = min(max(limit, 1), 100)
    page = max(page, 1)

    query = db.session.query(Sale)
    if search:
        search = str(search).strip().lstrip("#")
        if not search.isdigit() or not fits_db_integer(int(search)):
            return {
                "items": [],
                "pagination": {"page": page, "per_page": limit, "total": 0, "total_pages": 1},
            }
        query = query.filter(Sale.id == int(search))

    total = query.count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1

    sales = (
        query.order_by(Sale.created_at.desc(), Sale.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    items = _items_by_sale([s.id for s in sales])

    return {
        "items": [dict(s.to_dict(), items=items.get(s.id, [])) for s in sales],
        "pagination": {
            "page": page,
            "per_page": limit,
            "total": total,
            "total_pages": total_pages,
        },
    }


def get_sale(sale_id: int) -> dict:
    """Receipt detail: header + line items."""
    sale = db.session.get(Sale, sale_id) if fits_db_integer(sale_id) else None
    if sale is None:
        raise SaleNotFound(sale_id)
    return dict(sale.to_dict(), items=[item.to_dict() for item in sale.items])


def daily_sales(*, start: str | None = None, end: str | None = None) -> list[dict]:
    """
    Per-day sale count, revenue and units sold, newest day first.

    Revenue and units are aggregated separately so that joining line items
    never multiplies sale totals.
    """
    start_dt, end_dt = _parse_range(start, end)
    day = func.date(Sale.created_at)

    revenue_rows = _filter_range(
        db.session.query(
            day.label("day"),
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.total_cents), 0).label("revenue_cents"),
        ),
        start_dt,
        end_dt,
    ).group_by(day).all()

    unit_rows = _filter_range(
        db.session.query(
            day.label("day"),
            func.coalesce(func.sum(SaleItem.quantity), 0).label("items_sold"),
        ).join(SaleItem, SaleItem.sale_id == Sale.id),
        start_dt,
        end_dt,
    ).group_by(day).all()
    units = {str(row.day): int(row.items_sold) for row in unit_rows}

    report = [
        {
            "date": str(row.day),
            "sales_count": int(row.sales_count),
            "revenue_cents": int(row.revenue_cents),
            "items_sold": units.get(str(row.day), 0),
        }
        for row in revenue_rows
    ]
    report.sort(key=lambda r: r["date"], reverse=True)
    return report


def dashboard_summary(today: date | None = None) -> dict:
    today = today or utcnow().date()
    start_dt = datetime.combine(today, time.min)
    end_dt = start_dt + timedelta(days=1)

    row = _filter_range(
        db.session.query(
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.total_cents), 0).label("revenue_cents"),
        ),
        start_dt,
        end_dt,
    ).one()

    threshold = settings_service.get_low_stock_threshold()
    low_stock = db.session.query(Product).filter(
        Product.quantity <= threshold,
        Product.quantity > 0,
    ).count()
    out_of_stock = db.session.query(Product).filter(Product.quantity == 0).count()

    return {
        "date": today.isoformat(),
        "sales_count": int(row.sales_count),
        "revenue_cents": int(row.revenue_cents),
        "total_products": db.session.query(Product).count(),
        "low_stock_count": low_stock,
        "out_of_stock_count": out_of_stock,
        "low_stock_threshold": threshold,
    }


def top_selling(*, start: str | None = None, end: str | None = None, limit: int = 10) -> list[dict]:
    start_dt, end_dt = _parse_range(start, end)
    total_sold = func.sum(SaleItem.quantity)

    rows = _filter_range(
        db.session.query(
            Product.id,
            Product.name,
            total_sold.label("total_sold"),
            func.sum(SaleItem.quantity * SaleItem.price_at_sale_cents).label("revenue_cents"),
        )
        .join(SaleItem, SaleItem.product_id == Product.id)
        .join(Sale, Sale.id == SaleItem.sale_id),
        start_dt,
        end_dt,
    ).group_by(Product.id, Product.name).order_by(total_sold.desc(), Product.name.asc()).limit(
        min(max(limit, 1), 100)
    ).all()

    return [
        {
            "product_id": row.id,
            "name": row.name,
            "total_sold": int(row.total_sold),
            "revenue_cents": int(row.revenue_cents),
        }
        for row in rows
    ]


def cashier_performance(*, start: str | None = None, end: str | None = None) -> list[dict]:
    start_dt, end_dt = _parse_range(start, end)
    revenue = func.coalesce(func.sum(Sale.total_cents), 0)

    rows = _filter_range(
        db.session.query(
            User.id,
            User.username,
            func.count(Sale.id).label("sales_count"),
            revenue.label("revenue_cents"),
        ).join(Sale, Sale.user_id == User.id),
        start_dt,
        end_dt,
    ).group_by(User.id, User.username).order_by(revenue.desc()).all()

    return [
        {
            "user_id": row.id,
            "username": row.username,
            "sales_count": int(row.sales_count),
            "revenue_cents": int(row.revenue_cents),
        }
        for row in rows
    ]

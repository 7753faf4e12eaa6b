# backend/tillpoint/services/products_service.py
"""
Products Service

Catalog CRUD. Quantity is set once at creation; afterwards stock only moves
through inventory_service (adjust_stock, sales, voids). PRODUCT_MUTABLE_FIELDS
therefore never contains "quantity".

DELETION POLICY:
A product referenced by any sale line item cannot be deleted (ConflictError).
Historical receipts keep resolving product names, and the FK stays intact.
"""
from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, SaleItem
from ..errors import ConflictError, ProductNotFound
from ..validation import fits_db_integer
from . import activity_service, broadcast_service, settings_service

PRODUCT_MUTABLE_FIELDS = {"name", "barcode", "price_cents"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _conflict_from_integrity_error(exc: IntegrityError) -> ConflictError:
    # Raw driver text stays in the server log; callers get a stable message
    message = str(exc.orig).lower()
    if "barcode" in message:
        return ConflictError("A product with this barcode already exists")
    if "name" in message:
        return ConflictError("A product with this name already exists")
    return ConflictError("Product conflicts with an existing product")


def _commit_product_change() -> None:
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise _conflict_from_integrity_error(e)


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id) if fits_db_integer(product_id) else None
    if product is None:
        raise ProductNotFound(product_id)
    return product


def list_products(
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing ordered by name, with optional search and pagination.

    search matches name (substring, case-insensitive) or exact barcode.
    If page is None, returns all items.
    """
    base_query = db.session.query(Product)
    if search:
        term = f"%{search.strip()}%"
        base_query = base_query.filter(or_(
            Product.name.ilike(term),
            Product.barcode == search.strip(),
        ))
    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    # If no pagination requested, return all items
    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    # Pagination logic
    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)  # Ensure page >= 1

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def list_low_stock(threshold: int | None = None) -> list[dict]:
    """Products with 0 < quantity <= threshold, lowest first."""
    if threshold is None:
        threshold = settings_service.get_low_stock_threshold()
    products = (
        db.session.query(Product)
        .filter(Product.quantity <= threshold, Product.quantity > 0)
        .order_by(Product.quantity.asc(), Product.name.asc())
        .all()
    )
    return [
        {"id": p.id, "name": p.name, "quantity": p.quantity}
        for p in products
    ]


def create_product(*, patch: dict, actor_id: int | None = None) -> dict:
    """Create product using a validated patch dict (name, price_cents, barcode, quantity)."""
    product = Product(
        name=patch["name"],
        price_cents=patch.get("price_cents") or 0,
        barcode=patch.get("barcode"),
        quantity=patch.get("quantity") or 0,
    )
    db.session.add(product)
    _commit_product_change()

    activity_service.log_action(
        actor_id,
        activity_service.PRODUCT_CREATED,
        f"Created product '{product.name}' (ID {product.id}) with stock {product.quantity}",
    )
    broadcast_service.notify_changes(broadcast_service.PRODUCTS_UPDATED)
    return product.to_dict()


def update_product(*, product_id: int, patch: dict, actor_id: int | None = None) -> dict:
    """Update catalog fields. Stock changes must use inventory_service.adjust_stock."""
    product = get_product(product_id)
    changed = sorted(k for k in patch if k in PRODUCT_MUTABLE_FIELDS and getattr(product, k) != patch[k])
    apply_product_patch(product, patch)
    _commit_product_change()

    if changed:
        activity_service.log_action(
            actor_id,
            activity_service.PRODUCT_UPDATED,
            f"Updated product '{product.name}' (ID {product.id}): {', '.join(changed)}",
        )
        broadcast_service.notify_changes(broadcast_service.PRODUCTS_UPDATED)
    return product.to_dict()


def delete_product(*, product_id: int, actor_id: int | None = None) -> None:
    product = get_product(product_id)

    in_use = db.session.query(SaleItem.id).filter_by(product_id=product_id).first()
    if in_use is not None:
        raise ConflictError(
            "Product has sales history and cannot be deleted",
            {"product_id": product_id},
        )

    name = product.name
    db.session.delete(product)
    try:
        db.session.commit()
    except IntegrityError:
        # A sale referencing the product committed between the check and the delete
        db.session.rollback()
        raise ConflictError(
            "Product has sales history and cannot be deleted",
            {"product_id": product_id},
        )

    activity_service.log_action(
        actor_id,
        activity_service.PRODUCT_DELETED,
        f"Deleted product '{name}' (ID {product_id})",
    )
    broadcast_service.notify_changes(broadcast_service.PRODUCTS_UPDATED)

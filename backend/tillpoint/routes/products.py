# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/tillpoint/routes/products.py
"""
Product catalog and stock-adjustment routes.

SECURITY:
- Listing and lookup require authentication (cashiers need the catalog)
- Write operations and stock adjustments require the admin role
"""
from flask import Blueprint, request, g, current_app

from ..services import products_service, inventory_service
from ..models import Product
from ..errors import PosError, ValidationError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    coerce_int,
    parse_money,
)
from ..decorators import require_auth, require_admin

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "barcode", "price_cents", "quantity"},
    required_on_create={"name", "price_cents"},
)

# Quantity is not writable after creation; use /adjust-stock
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "barcode", "price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _product_payload() -> dict:
    """JSON body with a decimal `price` accepted in place of price_cents."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    if "price" in payload:
        price = payload.pop("price")
        if "price_cents" not in payload:
            payload["price_cents"] = parse_money(price, "price")
    return payload


@products_bp.get("")
@require_auth
def list_products():
    """
    List all products ordered by name.

    Query params:
    - search: str (optional) - name substring or exact barcode
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return products_service.list_products(
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/low-stock")
@require_auth
def low_stock_products():
    """Products at or below the low-stock threshold (query param `threshold` overrides)."""
    threshold = request.args.get("threshold", type=int)
    return {"items": products_service.list_low_stock(threshold)}


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        return products_service.get_product(product_id).to_dict()
    except PosError as e:
        return e.to_dict(), e.status_code


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    """Create a new product (admin)."""
    try:
        patch = validate_payload(
            model=Product,
            payload=_product_payload(),
            policy=PRODUCT_CREATE_POLICY,
            partial=False,
        )
        enforce_rules_product(patch)
        created = products_service.create_product(patch=patch, actor_id=g.current_user.id)
    except PosError as e:
        return e.to_dict(), e.status_code

    return created, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    """Update name, barcode or price (admin)."""
    try:
        payload = _product_payload()
        if "quantity" in payload:
            raise ValidationError("quantity cannot be edited directly; use adjust-stock")
        patch = validate_payload(
            model=Product,
            payload=payload,
            policy=PRODUCT_UPDATE_POLICY,
            partial=True,
        )
        enforce_rules_product(patch)
        updated = products_service.update_product(
            product_id=product_id,
            patch=patch,
            actor_id=g.current_user.id,
        )
    except PosError as e:
        return e.to_dict(), e.status_code

    return updated, 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    """Delete a product without sales history (admin)."""
    try:
        products_service.delete_product(product_id=product_id, actor_id=g.current_user.id)
    except PosError as e:
        return e.to_dict(), e.status_code

    return {"ok": True}, 200


@products_bp.post("/<int:product_id>/adjust-stock")
@require_auth
@require_admin
def adjust_stock_route(product_id: int):
    """
    Signed stock correction (admin).

    Body: {"adjustment": int, "note": str?}
    409 if the result would be negative.
    """
    payload = request.get_json(silent=True) or {}

    try:
        if "adjustment" not in payload:
            raise ValidationError("adjustment is required")
        delta = coerce_int(payload["adjustment"], "adjustment")
        if delta == 0:
            raise ValidationError("adjustment must be non-zero")

        note = payload.get("note")
        result = inventory_service.adjust_stock(
            product_id,
            delta,
            actor_id=g.current_user.id,
            note=str(note).strip()[:255] if note else None,
        )
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return {"error": "Internal server error"}, 500

    return result, 200

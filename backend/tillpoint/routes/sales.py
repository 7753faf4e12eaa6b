# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/tillpoint/routes/sales.py
"""Sales API routes: create, void, history, receipt"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service, reporting_service
from ..errors import InvalidSaleData, PosError
from ..validation import money_field
from ..decorators import require_auth, require_admin


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _cart_items(raw_items) -> list:
    """
    Accept cart items as {product_id, quantity, unit_price_cents} or the
    register's {id, quantity, price} shape (price as a decimal amount).
    """
    if not isinstance(raw_items, list):
        raise InvalidSaleData("items must be a list")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise InvalidSaleData(f"Item {index + 1} is not an object")
        try:
            unit_price = money_field(raw, "unit_price")
            if unit_price is None:
                unit_price = money_field(raw, "price")
        except PosError as e:
            raise InvalidSaleData(f"Item {index + 1}: {e.message}", {"index": index})
        items.append({
            "product_id": raw.get("product_id", raw.get("id")),
            "quantity": raw.get("quantity"),
            "unit_price_cents": unit_price,
        })
    return items


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Complete a sale.

    Body: items[], payment_method, total_amount (client display total,
    recomputed server-side), customer_name?, cash_tendered?, change_due?,
    reference_number?. Money fields accept `<field>_cents` integers too.

    Available to: admin, cashier
    """
    try:
        data = request.get_json(silent=True) or {}

        items = data.get("items")
        if not items:
            raise InvalidSaleData("Invalid sale data: cart is empty")

        client_total = money_field(data, "total_amount")
        if client_total is None:
            raise InvalidSaleData("Invalid sale data: total_amount is required")

        sale = sales_service.create_sale(
            cashier_id=g.current_user.id,
            items=_cart_items(items),
            payment_method=data.get("payment_method"),
            customer_name=data.get("customer_name"),
            cash_tendered_cents=money_field(data, "cash_tendered"),
            change_due_cents=money_field(data, "change_due"),
            reference_number=data.get("reference_number"),
            client_total_cents=client_total,
        )

        return jsonify({
            "message": "Sale completed successfully!",
            "sale_id": sale.id,
            "sale": sale.to_dict(),
        }), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to complete sale")
        return jsonify({"error": "Failed to complete sale."}), 500


@sales_bp.get("/history")
@require_auth
@require_admin
def sales_history_route():
    """
    Paginated sales history.

    Query params: page (default 1), limit (default 10, max 100), search (sale id)
    """
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", 10, type=int)
    search = request.args.get("search", "")

    return jsonify(reporting_service.list_sales(page=page, limit=limit, search=search)), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    """Receipt detail for one sale."""
    try:
        return jsonify({"sale": reporting_service.get_sale(sale_id)}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.post("/<int:sale_id>/void")
@require_auth
@require_admin
def void_sale_route(sale_id: int):
    """
    Void a sale: restore stock and remove the sale.

    Available to: admin
    """
    try:
        result = sales_service.void_sale(sale_id, actor_id=g.current_user.id)
        return jsonify(result), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to void sale")
        return jsonify({"error": "Internal server error"}), 500


"""
Sales Service - atomic sale creation and voiding

WHY: A sale touches three tables (sales, sale_items, products). Both
directions run as ONE write transaction so that no caller can ever observe
a sale without its items, items without their stock decrement, or a
restored stock level whose sale still exists.

ORDER OF WORK (create):
1. Validate the cart and payment data (no transaction yet).
2. Open a write-serialized transaction.
3. reserve() every product (duplicate product ids are summed first).
4. Insert the header, then each line item followed by its decrement.
5. Commit; only then broadcast PRODUCTS_UPDATED / SALES_UPDATED.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..models import Sale, SaleItem, PAYMENT_METHODS
from ..errors import InvalidSaleData, ProductNotFound, SaleNotFound, ValidationError
from ..validation import MAX_PRICE_CENTS, coerce_int, fits_db_integer
from . import inventory_service, activity_service, broadcast_service
from .concurrency import run_with_retry, write_transaction


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents


def normalize_cart(items) -> list[CartLine]:
    """
    Validate raw cart items into CartLines.

    Each item needs product_id (> 0), quantity (integer > 0) and
    unit_price_cents (integer >= 0). Raises InvalidSaleData; an id beyond
    the storage integer range cannot exist and raises ProductNotFound.
    """
    if not isinstance(items, (list, tuple)) or not items:
        raise InvalidSaleData("Sale must contain at least one item")

    lines = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidSaleData(f"Item {index + 1} is not an object")

        try:
            product_id = coerce_int(item.get("product_id"), "product_id")
            quantity = coerce_int(item.get("quantity"), "quantity")
            unit_price = coerce_int(item.get("unit_price_cents"), "unit_price_cents")
        except ValidationError as e:
            raise InvalidSaleData(f"Item {index + 1}: {e.message}", {"index": index})

        if product_id <= 0:
            raise InvalidSaleData(f"Item {index + 1}: invalid product_id", {"index": index})
        if not fits_db_integer(product_id):
            raise ProductNotFound(product_id)
        if quantity <= 0:
            raise InvalidSaleData(f"Item {index + 1}: quantity must be greater than zero", {"index": index})
        if not fits_db_integer(quantity):
            raise InvalidSaleData(f"Item {index + 1}: quantity is too large", {"index": index})
        if unit_price < 0 or unit_price > MAX_PRICE_CENTS:
            raise InvalidSaleData(f"Item {index + 1}: invalid unit price", {"index": index})

        lines.append(CartLine(product_id, quantity, unit_price))

    return lines


def _requested_by_product(lines: list[CartLine]) -> dict[int, int]:
    """Sum quantities per product so duplicate lines share one stock check."""
    totals: dict[int, int] = {}
    for line in lines:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
    return totals


def _normalize_payment(
    *,
    payment_method: str | None,
    total_cents: int,
    cash_tendered_cents: int | None,
    change_due_cents: int | None,
    reference_number: str | None,
) -> dict:
    if not payment_method:
        raise InvalidSaleData("payment_method is required")
    method = str(payment_method).strip().lower()
    if method not in PAYMENT_METHODS:
        raise InvalidSaleData(
            f"payment_method must be one of {', '.join(PAYMENT_METHODS)}",
            {"payment_method": payment_method},
        )

    if method != "cash":
        reference = (reference_number or "").strip() or None
        if reference and len(reference) > 128:
            raise InvalidSaleData("reference_number exceeds max length 128")
        return {
            "payment_method": method,
            "cash_tendered_cents": None,
            "change_due_cents": None,
            "reference_number": reference,
        }

    if cash_tendered_cents is None:
        raise InvalidSaleData("cash_tendered is required for cash payments")
    if not fits_db_integer(cash_tendered_cents):
        raise InvalidSaleData("cash_tendered is too large", {"cash_tendered_cents": cash_tendered_cents})
    if cash_tendered_cents < total_cents:
        raise InvalidSaleData(
            "Cash tendered is less than the sale total",
            {"total_cents": total_cents, "cash_tendered_cents": cash_tendered_cents},
        )

    expected_change = cash_tendered_cents - total_cents
    if change_due_cents is not None and change_due_cents != expected_change:
        raise InvalidSaleData(
            "change_due does not match cash tendered minus total",
            {"expected_change_due_cents": expected_change, "change_due_cents": change_due_cents},
        )

    return {
        "payment_method": method,
        "cash_tendered_cents": cash_tendered_cents,
        "change_due_cents": expected_change,
        "reference_number": None,
    }


def create_sale(
    *,
    cashier_id: int | None,
    items,
    payment_method: str | None,
    customer_name: str | None = None,
    cash_tendered_cents: int | None = None,
    change_due_cents: int | None = None,
    reference_number: str | None = None,
    client_total_cents: int | None = None,
) -> Sale:
    """
    Create a sale, its line items and the stock decrements atomically.

    total_cents is computed here; client_total_cents is only compared for
    diagnostics and never stored.

    Raises InvalidSaleData, ProductNotFound or InsufficientStock; in every
    failure case nothing has been written.
    """
    lines = normalize_cart(items)
    total_cents = sum(line.line_total_cents for line in lines)
    if not fits_db_integer(total_cents):
        raise InvalidSaleData("Sale total is too large", {"total_cents": total_cents})

    payment = _normalize_payment(
        payment_method=payment_method,
        total_cents=total_cents,
        cash_tendered_cents=cash_tendered_cents,
        change_due_cents=change_due_cents,
        reference_number=reference_number,
    )

    customer = (customer_name or "").strip() or None
    if customer and len(customer) > 255:
        raise InvalidSaleData("customer_name exceeds max length 255")

    if client_total_cents is not None and client_total_cents != total_cents:
        current_app.logger.warning(
            "Client total %s differs from computed total %s; using computed total",
            client_total_cents,
            total_cents,
        )

    requested = _requested_by_product(lines)

    def _op():
        with write_transaction() as session:
            for product_id, quantity in requested.items():
                inventory_service.reserve(session, product_id, quantity)

            sale = Sale(
                user_id=cashier_id,
                total_cents=total_cents,
                customer_name=customer,
                **payment,
            )
            session.add(sale)
            session.flush()  # assigns sale.id

            for line in lines:
                session.add(SaleItem(
                    sale_id=sale.id,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price_at_sale_cents=line.unit_price_cents,
                ))
                inventory_service.decrement(session, line.product_id, line.quantity)

            session.flush()
            return sale

    sale = run_with_retry(_op)

    broadcast_service.notify_changes(
        broadcast_service.PRODUCTS_UPDATED,
        broadcast_service.SALES_UPDATED,
    )
    return sale


def void_sale(sale_id: int, *, actor_id: int | None = None) -> dict:
    """
    Void a sale: restore every line item's quantity, then delete the items
    and the header, as one atomic unit.

    Not idempotent: a second void of the same id raises SaleNotFound.
    Returns {"sale_id", "restored_items": [{product_id, name, quantity, stock}]}.
    """
    if not fits_db_integer(sale_id):
        raise SaleNotFound(sale_id)

    def _op():
        with write_transaction() as session:
            items = session.query(SaleItem).filter_by(sale_id=sale_id).order_by(SaleItem.id).all()
            if not items:
                raise SaleNotFound(sale_id)

            restored = []
            for item in items:
                stock = inventory_service.increment(session, item.product_id, item.quantity)
                restored.append({
                    "product_id": item.product_id,
                    "name": item.product.name,
                    "quantity": item.quantity,
                    "stock": stock,
                })

            session.query(SaleItem).filter_by(sale_id=sale_id).delete(synchronize_session="fetch")
            if session.query(Sale).filter_by(id=sale_id).delete(synchronize_session="fetch") != 1:
                raise SaleNotFound(sale_id)

            return restored

    restored = run_with_retry(_op)

    summary = ", ".join(f"{r['name']} x{r['quantity']}" for r in restored)
    activity_service.log_action(
        actor_id,
        activity_service.SALE_VOIDED,
        f"Voided sale #{sale_id}; restored {summary}",
    )
    broadcast_service.notify_changes(
        broadcast_service.PRODUCTS_UPDATED,
        broadcast_service.SALES_UPDATED,
    )

    return {"sale_id": sale_id, "restored_items": restored}

# Overview: Inventory ledger; the only code path that mutates Product.quantity.

# backend/tillpoint/services/inventory_service.py

from __future__ import annotations

from ..models import Product
from ..errors import InsufficientStock, NegativeStockError, ProductNotFound, ValidationError
from ..validation import fits_db_integer
from .concurrency import lock_for_update, run_with_retry, write_transaction
from . import activity_service, broadcast_service
"""
Tillpoint Inventory Invariants (authoritative)

Stock model:
- Product.quantity is quantity-on-hand and must be >= 0 between transactions.
- Every mutation goes through this module. Raw "SET quantity = ..." updates
  elsewhere are forbidden (product edits never touch quantity).

Session handling:
- The ledger functions take the caller's session explicitly and never commit.
  The caller owns the atomic unit (concurrency.write_transaction), so a
  failure anywhere rolls back every quantity change made in that unit.

Guards (defense in depth):
1. reserve() checks availability inside the caller's write-serialized
   transaction, so the check and the following decrement see the same view.
2. decrement()/adjust() are conditional UPDATEs that only match when the
   result stays >= 0; zero matched rows means the guard fired.
3. products.quantity carries CHECK (quantity >= 0).
"""


def _get_product(session, product_id: int, *, lock: bool = False) -> Product:
    if not fits_db_integer(product_id):
        raise ProductNotFound(product_id)
    query = session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise ProductNotFound(product_id)
    return product


def get_quantity(session, product_id: int) -> int:
    """Current quantity-on-hand; ProductNotFound if the product is unknown."""
    return _get_product(session, product_id).quantity


def reserve(session, product_id: int, quantity: int) -> Product:
    """
    Check that `quantity` units are available, locking the product row.

    Raises InsufficientStock (with product name and available quantity) when
    they are not. Does not modify anything.
    """
    product = _get_product(session, product_id, lock=True)
    if quantity > product.quantity:
        raise InsufficientStock([{
            "product_id": product.id,
            "name": product.name,
            "requested": quantity,
            "available": product.quantity,
        }])
    return product


def _guarded_update(session, product_id: int, delta: int) -> int:
    """Apply delta only if the result stays >= 0. Returns rows matched."""
    query = session.query(Product).filter(Product.id == product_id)
    if delta < 0:
        query = query.filter(Product.quantity >= -delta)
    return query.update(
        {Product.quantity: Product.quantity + delta},
        synchronize_session="evaluate",
    )


def decrement(session, product_id: int, quantity: int) -> int:
    """
    Remove `quantity` units inside the caller's transaction.

    The caller is expected to have reserve()d first; the conditional update
    still refuses to go below zero. Returns the new quantity.
    """
    if quantity <= 0:
        raise ValidationError("decrement quantity must be positive")

    if _guarded_update(session, product_id, -quantity) != 1:
        product = _get_product(session, product_id)
        raise InsufficientStock([{
            "product_id": product.id,
            "name": product.name,
            "requested": quantity,
            "available": product.quantity,
        }])
    return get_quantity(session, product_id)


def increment(session, product_id: int, quantity: int) -> int:
    """Add `quantity` units (voids, receiving). Returns the new quantity."""
    if quantity <= 0:
        raise ValidationError("increment quantity must be positive")

    if _guarded_update(session, product_id, quantity) != 1:
        raise ProductNotFound(product_id)
    return get_quantity(session, product_id)


def adjust(session, product_id: int, delta: int) -> int:
    """
    Signed stock correction inside the caller's transaction.

    Raises NegativeStockError if current + delta < 0; quantity is unchanged.
    Returns the new quantity.
    """
    product = _get_product(session, product_id, lock=True)
    if delta == 0:
        return product.quantity
    if not fits_db_integer(product.quantity + delta):
        raise ValidationError("adjustment is too large")

    if product.quantity + delta < 0 or _guarded_update(session, product_id, delta) != 1:
        raise NegativeStockError(product_id, product.quantity, delta)
    return get_quantity(session, product_id)


def adjust_stock(
    product_id: int,
    delta: int,
    *,
    actor_id: int | None = None,
    note: str | None = None,
) -> dict:
    """
    Admin stock correction as its own atomic unit.

    After commit: activity log entry + PRODUCTS_UPDATED broadcast.
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("adjustment must be an integer")
    if not fits_db_integer(delta):
        raise ValidationError("adjustment is too large")

    def _op():
        with write_transaction() as session:
            before = get_quantity(session, product_id)
            after = adjust(session, product_id, delta)
            product = _get_product(session, product_id)
            return {
                "product_id": product_id,
                "name": product.name,
                "previous_quantity": before,
                "quantity": after,
                "delta": delta,
            }

    result = run_with_retry(_op)

    detail = f"Adjusted stock of '{result['name']}' (ID {product_id}) by {delta:+d}: {result['previous_quantity']} -> {result['quantity']}"
    if note:
        detail = f"{detail} ({note})"
    activity_service.log_action(actor_id, activity_service.STOCK_ADJUSTED, detail)
    broadcast_service.notify_changes(broadcast_service.PRODUCTS_UPDATED)

    return result

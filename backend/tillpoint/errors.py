# Overview: Exception hierarchy shared by services and routes.

"""
Every domain error carries the HTTP status the route layer answers with and
an optional ``details`` dict that is safe to show to the caller.

Unclassified exceptions (including raw SQLAlchemy errors) are NOT part of
this hierarchy; routes log them and answer a generic 500.
"""

from __future__ import annotations


class PosError(Exception):
    """Base class for caller-visible errors."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(PosError):
    """400-level input problem."""
    status_code = 400


class InvalidSaleData(ValidationError):
    """Empty cart, non-positive quantity, bad payment data."""


class AuthError(PosError):
    status_code = 401


class ForbiddenError(PosError):
    status_code = 403


class NotFoundError(PosError):
    status_code = 404


class ProductNotFound(NotFoundError):
    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found", {"product_id": product_id})


class SaleNotFound(NotFoundError):
    def __init__(self, sale_id: int):
        super().__init__(f"Sale {sale_id} not found", {"sale_id": sale_id})


class UserNotFound(NotFoundError):
    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found", {"user_id": user_id})


class ConflictError(PosError):
    """409-level business rule conflict (e.g., duplicate barcode)."""
    status_code = 409


class InsufficientStock(ConflictError):
    """Requested quantity exceeds stock for one or more products."""

    def __init__(self, items: list[dict]):
        first = items[0]
        message = (
            f"Not enough stock for {first['name']}, "
            f"only {first['available']} available"
        )
        super().__init__(message, {"items": items})
        self.items = items


class NegativeStockError(ConflictError):
    """A stock adjustment would take quantity below zero."""

    def __init__(self, product_id: int, quantity: int, delta: int):
        super().__init__(
            f"Adjustment of {delta} would make stock negative (current {quantity})",
            {"product_id": product_id, "quantity": quantity, "delta": delta},
        )

from __future__ import annotations

from ..extensions import db
from tillpoint.time_utils import to_utc_z, utcnow

PAYMENT_METHODS = ("cash", "card", "e-wallet", "other")


class Sale(db.Model):
    """
    Completed sale header.

    total_cents is always computed server-side from the line items; it is
    never taken from the client. A sale only exists together with its line
    items: both are written and deleted in one transaction
    (services/sales_service.py).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("total_cents >= 0", name="ck_sales_total_non_negative"),
        db.Index("ix_sales_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    total_cents = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # Payment metadata (cash_* only for cash, reference_number only for the others)
    payment_method = db.Column(db.String(16), nullable=False, default="cash")
    customer_name = db.Column(db.String(255), nullable=True)
    cash_tendered_cents = db.Column(db.Integer, nullable=True)
    change_due_cents = db.Column(db.Integer, nullable=True)
    reference_number = db.Column(db.String(128), nullable=True)

    cashier = db.relationship("User")
    items = db.relationship("SaleItem", back_populates="sale", lazy=True, order_by="SaleItem.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "cashier_name": self.cashier.username if self.cashier else None,
            "total_cents": self.total_cents,
            "created_at": to_utc_z(self.created_at),
            "payment_method": self.payment_method,
            "customer_name": self.customer_name,
            "cash_tendered_cents": self.cash_tendered_cents,
            "change_due_cents": self.change_due_cents,
            "reference_number": self.reference_number,
        }


class SaleItem(db.Model):
    """
    Line item on a sale.

    price_at_sale_cents is a snapshot: later product price changes never alter
    historical totals.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        db.CheckConstraint("price_at_sale_cents >= 0", name="ck_sale_items_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    price_at_sale_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product")

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.price_at_sale_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "price_at_sale_cents": self.price_at_sale_cents,
            "line_total_cents": self.line_total_cents,
        }

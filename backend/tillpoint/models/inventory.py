from __future__ import annotations

from ..extensions import db
from tillpoint.time_utils import to_utc_z, utcnow

class Product(db.Model):
    """
    Product master data with quantity-on-hand.

    STOCK DESIGN DECISION:
    Product.quantity is the single source of truth for stock. After creation it
    is only mutated through services/inventory_service.py (guarded, conditional
    updates). The CHECK constraint is the storage-level backstop.

    BARCODE:
    Optional and unique. Blank barcodes are stored as NULL so that many
    products can have none.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False, unique=True)
    barcode = db.Column(db.String(64), nullable=True, unique=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "barcode": self.barcode,
            "price_cents": self.price_cents,
            "quantity": self.quantity,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

from __future__ import annotations

from ..extensions import db
from tillpoint.time_utils import utcnow


class StoreSetting(db.Model):
    """Store-wide key/value setting (receipt text, tax rate, thresholds)."""
    __tablename__ = "store_settings"

    key = db.Column(db.String(64), primary_key=True)
    value_json = db.Column(db.JSON, nullable=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

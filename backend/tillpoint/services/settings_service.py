# Overview: Service-layer operations for store settings; encapsulates validation and persistence.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import StoreSetting
from ..errors import ValidationError
from ..validation import coerce_int
from . import activity_service, broadcast_service

"""
Settings are a flat key/value store. Every key must be registered in
SETTING_TYPES; unregistered keys are rejected. Missing rows resolve to
their default. low_stock_threshold defaults to the LOW_STOCK_THRESHOLD
config value.
"""

TEXT_MAX_LENGTH = 500

SETTING_TYPES = {
    "receipt_header": "text",
    "receipt_footer": "text",
    "business_address": "text",
    "business_phone": "text",
    "business_tin": "text",
    "pos_header_title": "text",
    "tax_rate": "percent",
    "low_stock_threshold": "count",
}


def _defaults() -> dict:
    return {
        "receipt_header": "",
        "receipt_footer": "Thank you for your purchase!",
        "business_address": "",
        "business_phone": "",
        "business_tin": "",
        "pos_header_title": "Point of Sale",
        "tax_rate": 0,
        "low_stock_threshold": current_app.config.get("LOW_STOCK_THRESHOLD", 10),
    }


def _coerce_setting(key: str, value):
    kind = SETTING_TYPES[key]

    if kind == "text":
        if value is None:
            return ""
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise ValidationError(f"{key} must be text")
        text = str(value).strip()
        if len(text) > TEXT_MAX_LENGTH:
            raise ValidationError(f"{key} exceeds max length {TEXT_MAX_LENGTH}")
        return text

    if kind == "percent":
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise ValidationError(f"{key} must be a number")
        try:
            number = float(value)
        except ValueError:
            raise ValidationError(f"{key} must be a number")
        if not 0 <= number <= 100:
            raise ValidationError(f"{key} must be between 0 and 100")
        return number

    number = coerce_int(value, key)
    if number < 0:
        raise ValidationError(f"{key} must be >= 0")
    return number


def get_settings() -> dict:
    resolved = _defaults()
    for row in db.session.query(StoreSetting).all():
        if row.key in SETTING_TYPES:
            resolved[row.key] = row.value_json
    return resolved


def get_low_stock_threshold() -> int:
    row = db.session.get(StoreSetting, "low_stock_threshold")
    if row is not None and row.value_json is not None:
        return int(row.value_json)
    return int(current_app.config.get("LOW_STOCK_THRESHOLD", 10))


def update_settings(patch: dict, *, actor_id: int | None = None) -> dict:
    """Validate and upsert the given keys. Returns the full resolved settings."""
    if not isinstance(patch, dict) or not patch:
        raise ValidationError("No settings provided")

    unknown = sorted(k for k in patch if k not in SETTING_TYPES)
    if unknown:
        raise ValidationError(f"Unknown settings: {', '.join(unknown)}")

    cleaned = {key: _coerce_setting(key, value) for key, value in patch.items()}

    for key, value in cleaned.items():
        row = db.session.get(StoreSetting, key)
        if row is None:
            row = StoreSetting(key=key)
            db.session.add(row)
        row.value_json = value
        row.updated_by_user_id = actor_id
    db.session.commit()

    activity_service.log_action(
        actor_id,
        activity_service.SETTINGS_UPDATED,
        f"Updated settings: {', '.join(sorted(cleaned))}",
    )
    broadcast_service.notify_changes(broadcast_service.SETTINGS_UPDATED)
    return get_settings()

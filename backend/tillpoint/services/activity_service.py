# Overview: Service-layer operations for the admin activity log.

from __future__ import annotations

from datetime import timedelta

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import ActionLog, User
from tillpoint.time_utils import utcnow

"""
Activity log invariants

- Entries are written AFTER the audited change has committed, in their own
  short transaction.
- A failed log write is logged and rolled back; it never raises into the
  caller and never undoes the audited change.
"""

PRODUCT_CREATED = "PRODUCT_CREATED"
PRODUCT_UPDATED = "PRODUCT_UPDATED"
PRODUCT_DELETED = "PRODUCT_DELETED"
STOCK_ADJUSTED = "STOCK_ADJUSTED"
SALE_VOIDED = "SALE_VOIDED"
USER_CREATED = "USER_CREATED"
USER_ROLE_UPDATED = "USER_ROLE_UPDATED"
SETTINGS_UPDATED = "SETTINGS_UPDATED"


def log_action(actor_id: int | None, action_type: str, details: str = "") -> ActionLog | None:
    """Best-effort insert of one activity entry. Returns None on failure."""
    try:
        entry = ActionLog(user_id=actor_id, action_type=action_type, details=details)
        db.session.add(entry)
        db.session.commit()
        return entry
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to log action %s", action_type)
        return None


def list_actions(*, page: int | None = None, limit: int = 25, search: str = "") -> dict:
    """
    Newest-first activity listing.

    search matches (case-insensitive) username, action type or details.
    If page is None, returns every matching row.
    """
    query = db.session.query(ActionLog).outerjoin(User, ActionLog.user_id == User.id)

    if search:
        term = f"%{search.lower()}%"
        query = query.filter(or_(
            func.lower(User.username).like(term),
            func.lower(ActionLog.action_type).like(term),
            func.lower(ActionLog.details).like(term),
        ))

    query = query.order_by(ActionLog.occurred_at.desc(), ActionLog.id.desc())

    if page is None:
        return {"items": [row.to_dict() for row in query.all()]}

    limit = min(max(limit, 1), 100)
    page = max(page, 1)
    total = query.count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1
    rows = query.offset((page - 1) * limit).limit(limit).all()

    return {
        "items": [row.to_dict() for row in rows],
        "pagination": {
            "page": page,
            "per_page": limit,
            "total": total,
            "total_pages": total_pages,
        },
    }


def cleanup_old_actions(*, retention_days: int = 90) -> int:
    """Delete activity entries older than retention_days."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(ActionLog).filter(
        ActionLog.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted

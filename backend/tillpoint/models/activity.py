from __future__ import annotations

from ..extensions import db
from tillpoint.time_utils import to_utc_z, utcnow


class ActionLog(db.Model):
    """
    Admin activity log (who did what, free-text detail).

    Written best-effort after the audited change commits; see
    services/activity_service.py. Rows older than ACTION_LOG_RETENTION_DAYS
    are pruned by `flask maintenance cleanup-logs`.
    """
    __tablename__ = "action_logs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    action_type = db.Column(db.String(64), nullable=False, index=True)
    details = db.Column(db.Text, nullable=True)
    occurred_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "username": self.user.username if self.user else None,
            "action_type": self.action_type,
            "details": self.details,
            "occurred_at": to_utc_z(self.occurred_at),
        }

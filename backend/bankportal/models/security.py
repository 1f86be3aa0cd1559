from __future__ import annotations

from ..extensions import db
from bankportal.time_utils import to_utc_z, utcnow


class SecurityEvent(db.Model):
    """
    Security event audit log.

    WHY: Track logins, logouts, denied authorizations and rate-limit hits.
    Critical for detecting credential stuffing and role probing.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_user_type", "user_id", "event_type"),
        db.Index("ix_security_events_occurred", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)  # Nullable for anonymous

    # LOGIN_SUCCESS, LOGIN_FAILED, LOGOUT, PERMISSION_DENIED, RATE_LIMITED
    event_type = db.Column(db.String(64), nullable=False, index=True)
    resource = db.Column(db.String(128), nullable=True)  # e.g., "/api/bankpayments"
    action = db.Column(db.String(64), nullable=True)     # e.g., "POST"

    success = db.Column(db.Boolean, nullable=False)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    user = db.relationship("User", backref=db.backref("security_events", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class RateLimitWindow(db.Model):
    """
    Request counter for one client in one fixed window.

    One row per (client_key, window_start). The counter is bumped with an
    atomic UPDATE so concurrent requests share the budget.
    """
    __tablename__ = "rate_limit_windows"
    __table_args__ = (
        db.UniqueConstraint("client_key", "window_start", name="uq_rate_limit_client_window"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    client_key = db.Column(db.String(128), nullable=False)
    window_start = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    request_count = db.Column(db.Integer, nullable=False, default=0)

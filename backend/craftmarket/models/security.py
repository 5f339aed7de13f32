from __future__ import annotations

from ..extensions import db
from craftmarket.time_utils import to_utc_z, utcnow

class SecurityEvent(db.Model):
    """
    Security event audit log.

    WHY: Track failed logins, failed OTP checks, role/ownership denials and
    admin account changes. Login and OTP throttling count rows in this table.

    IMMUTABLE: Never update or delete (except retention cleanup). Append-only
    for audit integrity.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_user_type", "user_id", "event_type"),
        db.Index("ix_security_events_type_action_occurred", "event_type", "action", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)  # Nullable for anonymous

    # Event classification
    event_type = db.Column(db.String(64), nullable=False, index=True)  # LOGIN_FAILED, OTP_FAILED, PERMISSION_DENIED, etc.
    resource = db.Column(db.String(128), nullable=True)  # e.g., "/api/v1/orders/3/status"
    action = db.Column(db.String(255), nullable=True)    # e.g., "PUT", throttle identifier

    # Event details
    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    # Client context
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

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

# Overview: Retention cleanup for the security event log and stale verification codes.

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent, User
from craftmarket.time_utils import utcnow


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """
    Delete security events older than retention_days.

    Throttling only looks back minutes, so anything past retention is audit
    history only.
    """
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted


def clear_expired_otps() -> int:
    """Null out verification codes past their expiry. Returns the number of users touched."""
    cleared = db.session.query(User).filter(
        User.otp_expires_at.isnot(None),
        User.otp_expires_at < utcnow(),
    ).update(
        {User.otp_hash: None, User.otp_expires_at: None},
        synchronize_session=False,
    )
    db.session.commit()
    return cleared

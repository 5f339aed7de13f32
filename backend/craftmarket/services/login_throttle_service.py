"""
Login & OTP Throttling Service

WHY: Prevent brute-force attacks on passwords and on 6-digit email codes.
After too many failures the identifier is temporarily locked.

SECURITY FEATURES:
- Tracks failed attempts per identifier (email for login, "otp:<user_id>"
  for verification codes)
- Lockout after max_attempts failures within the window
- Uses security_events table for tracking
- A successful login resets the lockout clock
"""

from dataclasses import dataclass
from datetime import timedelta

from ..errors import TooManyAttemptsError
from ..extensions import db
from ..models import SecurityEvent
from .permission_service import log_security_event
from craftmarket.time_utils import utcnow


@dataclass(frozen=True)
class ThrottlePolicy:
    failure_event: str
    success_event: str | None
    max_attempts: int
    window: timedelta
    lockout: timedelta


LOGIN_POLICY = ThrottlePolicy(
    failure_event="LOGIN_FAILED",
    success_event="LOGIN_SUCCESS",
    max_attempts=10,  # Lock after 10 failed attempts
    window=timedelta(minutes=15),  # Within 15 minutes
    lockout=timedelta(minutes=15),  # Lockout for 15 minutes
)

# An OTP lives 10 minutes; 5 guesses out of a million per code
OTP_POLICY = ThrottlePolicy(
    failure_event="OTP_FAILED",
    success_event=None,
    max_attempts=5,
    window=timedelta(minutes=10),
    lockout=timedelta(minutes=10),
)


def otp_identifier(user_id: int) -> str:
    return f"otp:{user_id}"


def _last_success_at(identifier: str, policy: ThrottlePolicy):
    if policy.success_event is None:
        return None
    event = db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == policy.success_event,
        SecurityEvent.action == identifier,
    ).order_by(SecurityEvent.occurred_at.desc()).first()
    return event.occurred_at if event else None


def get_recent_failed_attempts(identifier: str, policy: ThrottlePolicy = LOGIN_POLICY) -> int:
    """
    Count failed attempts within the policy window, ignoring failures that
    happened before the most recent success.
    """
    cutoff = utcnow() - policy.window
    last_success = _last_success_at(identifier, policy)
    if last_success is not None and last_success > cutoff:
        cutoff = last_success

    return db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == policy.failure_event,
        SecurityEvent.action == identifier,
        SecurityEvent.occurred_at >= cutoff
    ).count()


def is_locked(identifier: str, policy: ThrottlePolicy = LOGIN_POLICY) -> tuple[bool, int | None]:
    """
    Returns:
    - (True, seconds_remaining) if locked
    - (False, None) if not locked
    """
    if get_recent_failed_attempts(identifier, policy) < policy.max_attempts:
        return False, None

    most_recent = db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == policy.failure_event,
        SecurityEvent.action == identifier
    ).order_by(SecurityEvent.occurred_at.desc()).first()

    if most_recent:
        lockout_end = most_recent.occurred_at + policy.lockout
        now = utcnow()
        if now < lockout_end:
            return True, max(int((lockout_end - now).total_seconds()), 1)

    return False, None


def ensure_not_locked(identifier: str, policy: ThrottlePolicy = LOGIN_POLICY, what: str = "Account") -> None:
    locked, seconds_remaining = is_locked(identifier, policy)
    if locked:
        raise TooManyAttemptsError(
            f"{what} temporarily locked due to too many failed attempts",
            retry_after_seconds=seconds_remaining,
        )


def record_failed_attempt(
    identifier: str,
    policy: ThrottlePolicy = LOGIN_POLICY,
    user_id: int | None = None,
    reason: str = "Invalid credentials"
) -> int:
    """
    Record a failed attempt.

    Returns the total number of recent failed attempts.
    """
    log_security_event(
        user_id=user_id,
        event_type=policy.failure_event,
        success=False,
        action=identifier,  # Store the identifier for tracking
        reason=reason,
    )
    return get_recent_failed_attempts(identifier, policy)


def record_success(identifier: str, user_id: int, policy: ThrottlePolicy = LOGIN_POLICY) -> None:
    """
    Record a successful attempt. Old failures are kept for audit, but the
    lockout clock restarts from here.
    """
    if policy.success_event is None:
        return
    log_security_event(
        user_id=user_id,
        event_type=policy.success_event,
        success=True,
        action=identifier,
    )


def get_lockout_status(identifier: str, policy: ThrottlePolicy = LOGIN_POLICY) -> dict:
    failed_count = get_recent_failed_attempts(identifier, policy)
    locked, seconds_remaining = is_locked(identifier, policy)

    return {
        "locked": locked,
        "failed_attempts": failed_count,
        "max_attempts": policy.max_attempts,
        "seconds_until_unlock": seconds_remaining,
        "lockout_window_minutes": int(policy.window.total_seconds() / 60),
        "lockout_duration_minutes": int(policy.lockout.total_seconds() / 60),
    }

# Overview: Role gate, ownership checks and the security event audit trail.

"""
Access control for authenticated identities.

WHY: One place decides whether an identity may act. Routes declare the role
set they need (see roles.py); resources owned by a user are checked by
comparing owner id and identity id.

Denials are logged to security_events (policy: no granted logs).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from flask import has_request_context, request

from ..errors import PermissionDeniedError
from ..extensions import db
from ..models import SecurityEvent
from ..roles import Role
from craftmarket.time_utils import utcnow


@dataclass(frozen=True)
class Identity:
    """
    Decoded bearer token, attached to flask.g by @require_auth.

    Built from token claims only; no database round trip.
    """
    user_id: int
    email: str
    role: Role
    full_name: str | None = None
    external_id: str | None = None

    @classmethod
    def from_claims(cls, claims: dict) -> "Identity | None":
        user_id = claims.get("userId")
        role = Role.parse(claims.get("role"))
        if not isinstance(user_id, int) or isinstance(user_id, bool) or role is None:
            return None
        return cls(
            user_id=user_id,
            email=claims.get("email") or "",
            role=role,
            full_name=claims.get("fullName"),
            external_id=claims.get("externalId"),
        )


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    commit: bool = True,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    Client context (resource, ip, user agent) is filled from the current
    request when the caller doesn't pass it.

    event_type examples:
    - LOGIN_FAILED / LOGIN_SUCCESS
    - OTP_FAILED
    - PERMISSION_DENIED
    - OWNERSHIP_DENIED
    - ROLE_CHANGED / ROLE_APPROVED / STATUS_CHANGED
    """
    if has_request_context():
        resource = resource or request.path
        ip_address = ip_address or request.remote_addr
        user_agent = user_agent or request.headers.get("User-Agent")

    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    if commit:
        db.session.commit()

    return event


def check_role(identity: Identity, allowed: Iterable[Role]) -> None:
    """
    The role gate. Raise PermissionDeniedError unless identity.role is in
    the allowed set.
    """
    allowed = frozenset(allowed)
    if identity.role in allowed:
        return

    log_security_event(
        user_id=identity.user_id,
        event_type="PERMISSION_DENIED",
        success=False,
        action=identity.role.value,
        reason=f"Requires one of: {', '.join(sorted(r.value for r in allowed))}",
    )
    raise PermissionDeniedError("You do not have access to this resource")


def is_owner(identity: Identity, owner_id: int | None) -> bool:
    return owner_id is not None and identity.user_id == owner_id


def require_owner(
    identity: Identity,
    owner_id: int | None,
    allow_roles: Iterable[Role] = (),
    message: str = "You can only access your own resources",
) -> None:
    """
    Ownership check for path-addressed resources.

    Passes if identity owns the resource or holds one of allow_roles.
    Role is ignored unless allow_roles is given.
    """
    if is_owner(identity, owner_id) or identity.role in frozenset(allow_roles):
        return

    log_security_event(
        user_id=identity.user_id,
        event_type="OWNERSHIP_DENIED",
        success=False,
        action=str(owner_id),
        reason=message,
    )
    raise PermissionDeniedError(message)

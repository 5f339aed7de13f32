# Overview: Account lifecycle; registration, verification, login, password and role management.

"""
Account Lifecycle Service

WHY: Every state change of a user account goes through this module so the
rules stay in one place:

    unregistered -> pending (awaiting OTP) -> active
    active -> deactivate | baned | deleted   (admin status endpoint)

RULES:
- New accounts are customers; artisan/merchant are requested, then approved
- Assigning the artisan role puts the account back to "pending" until an
  admin activates it (_apply_role)
- Passwords are hashed here, never in model hooks
- Email/mobile uniqueness is enforced by the database; the lookups below are
  a fast path and IntegrityError is translated to ConflictError
- Mail is sent after commit; a failed send never fails the request
"""

from __future__ import annotations

import re

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..config import Settings
from ..errors import (
    AuthenticationError,
    ConflictError,
    ExpiredError,
    NotFoundError,
    PermissionDeniedError,
    TokenExpiredError,
    ValidationError,
)
from ..extensions import db
from ..models import User
from ..roles import (
    ADMIN_ROLES,
    BLOCKED_STATUSES,
    REQUESTABLE_ROLES,
    ROLE_GRANTORS,
    ROLES_REQUIRING_ACTIVATION,
    Role,
    UserStatus,
)
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_profile,
    normalize_email,
    validate_full_name,
    validate_mobile,
    validate_payload,
)
from . import credential_service, login_throttle_service, mail_service, token_service
from .permission_service import Identity, log_security_event
from craftmarket.time_utils import utcnow


PROFILE_POLICY = ModelValidationPolicy(
    writable_fields={"full_name", "date_of_birth", "gender", "mobile", "image_url"},
)

# Client field names accepted for the profile columns
PROFILE_ALIASES = {
    "fullName": "full_name",
    "dateOfBirth": "date_of_birth",
    "image": "image_url",
    "imageUrl": "image_url",
}

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


# =============================================================================
# HELPERS
# =============================================================================

def get_user(user_id: int, include_deleted: bool = False) -> User:
    user = db.session.get(User, user_id) if isinstance(user_id, int) else None
    if user is None or (not include_deleted and user.status == UserStatus.DELETED.value):
        raise NotFoundError("User not found")
    return user


def find_by_email(email: str) -> User | None:
    return db.session.query(User).filter(User.email == email).first()


def unique_username(email: str) -> str:
    base = re.sub(r"[^a-z0-9_.]", "", email.split("@", 1)[0].lower())[:50] or "user"
    candidate = base
    suffix = 1
    while db.session.query(User.id).filter(User.username == candidate).first() is not None:
        suffix += 1
        candidate = f"{base}{suffix}"
    return candidate


def _is_blocked(user: User) -> bool:
    return UserStatus.parse(user.status) in BLOCKED_STATUSES


def _apply_role(user: User, role: Role) -> None:
    """
    Set role; artisan accounts wait in "pending" for admin activation.

    Status of a deactivated, banned or deleted account is left alone.
    """
    user.role = role.value
    if role in ROLES_REQUIRING_ACTIVATION and not _is_blocked(user):
        user.status = UserStatus.PENDING.value


def _parse_role(value, allowed=None) -> Role:
    role = Role.parse(value)
    allowed = allowed or frozenset(Role)
    if role is None or role not in allowed:
        raise ValidationError(
            f"role must be one of: {', '.join(sorted(r.value for r in allowed))}"
        )
    return role


def _commit_unique(message: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(message)


def _issue_otp(settings: Settings, user: User) -> str:
    code, expires_at = credential_service.generate_otp(settings.otp_ttl)
    user.otp_hash = credential_service.hash_otp(code)
    user.otp_expires_at = expires_at
    return code


def _send_otp(settings: Settings, user: User, code: str) -> None:
    sent, reason = mail_service.send_verification_email(settings, user.email, user.full_name, code)
    if not sent:
        current_app.logger.warning("Verification mail for user %s not delivered: %s", user.id, reason)


# =============================================================================
# REGISTRATION & VERIFICATION
# =============================================================================

def register(
    settings: Settings,
    email,
    full_name,
    mobile,
    password,
    requested_role=None,
) -> User:
    """
    Create a pending customer account and mail its verification code.

    A requested artisan/merchant role is stored for admin approval; the
    account itself always starts as a customer.
    """
    email = normalize_email(email)
    full_name = validate_full_name(full_name)
    mobile = validate_mobile(mobile)
    credential_service.validate_password_strength(password)

    pending_role = None
    if requested_role not in (None, "", Role.CUSTOMER.value):
        pending_role = _parse_role(requested_role, REQUESTABLE_ROLES).value

    if find_by_email(email) is not None:
        raise ConflictError("Email already registered")
    if db.session.query(User.id).filter(User.mobile == mobile).first() is not None:
        raise ConflictError("Mobile number already registered")

    user = User(
        username=unique_username(email),
        email=email,
        mobile=mobile,
        full_name=full_name,
        password_hash=credential_service.hash_password(password, rounds=settings.bcrypt_rounds),
        role=Role.CUSTOMER.value,
        requested_role=pending_role,
        status=UserStatus.PENDING.value,
    )
    code = _issue_otp(settings, user)

    db.session.add(user)
    _commit_unique("Email or mobile number already registered")

    current_app.logger.info("Registered user %s (requested role: %s)", user.id, pending_role)
    _send_otp(settings, user, code)
    return user


def resend_otp(settings: Settings, email) -> User:
    user = find_by_email(normalize_email(email))
    if user is None:
        raise NotFoundError("User not found")
    if user.is_verified:
        raise ValidationError("User is already verified")

    code = _issue_otp(settings, user)
    db.session.commit()

    _send_otp(settings, user, code)
    return user


def verify(user_id: int, otp) -> User:
    """
    Confirm the emailed code.

    Raises:
        NotFoundError: unknown user
        ValidationError: "Invalid OTP" (counted toward the OTP lockout)
        ExpiredError: "OTP expired"
        TooManyAttemptsError: too many wrong codes for this user
    """
    user = get_user(user_id)
    if user.is_verified:
        raise ValidationError("User is already verified")

    identifier = login_throttle_service.otp_identifier(user.id)
    login_throttle_service.ensure_not_locked(
        identifier, login_throttle_service.OTP_POLICY, what="Verification"
    )

    if not credential_service.otp_matches(otp, user.otp_hash):
        login_throttle_service.record_failed_attempt(
            identifier,
            login_throttle_service.OTP_POLICY,
            user_id=user.id,
            reason="Invalid OTP",
        )
        raise ValidationError("Invalid OTP")

    if user.otp_expires_at is None or user.otp_expires_at < utcnow():
        raise ExpiredError("OTP expired")

    user.otp_hash = None
    user.otp_expires_at = None
    user.verified_at = utcnow()
    if not _is_blocked(user):
        if Role.parse(user.role) in ROLES_REQUIRING_ACTIVATION:
            user.status = UserStatus.PENDING.value
        else:
            user.status = UserStatus.ACTIVE.value
    db.session.commit()

    current_app.logger.info("User %s verified", user.id)
    return user


# =============================================================================
# LOGIN
# =============================================================================

def login(settings: Settings, email, password) -> tuple[str, User]:
    """
    Check credentials and issue an access token.

    Unknown email and wrong password get the same 401 so the endpoint can't
    be used to enumerate accounts.
    """
    if not isinstance(password, str) or not password:
        raise ValidationError("email and password are required")
    email = normalize_email(email)

    login_throttle_service.ensure_not_locked(email)

    user = find_by_email(email)
    if user is None or not credential_service.verify_password(password, user.password_hash):
        login_throttle_service.record_failed_attempt(email, user_id=user.id if user else None)
        raise AuthenticationError("Invalid email or password")

    if not user.is_verified:
        raise PermissionDeniedError("Please verify your email before logging in")

    status = UserStatus.parse(user.status)
    if status in BLOCKED_STATUSES:
        raise PermissionDeniedError(f"Your account is {status.value}. Contact support.")

    login_throttle_service.record_success(email, user.id)

    user.last_login_at = utcnow()
    db.session.commit()

    token = token_service.issue_token(
        token_service.access_claims_for(user),
        settings.jwt_private_key,
        ttl=settings.access_token_ttl,
    )
    return token, user


# =============================================================================
# PASSWORDS
# =============================================================================

def request_password_reset(settings: Settings, email) -> str:
    """
    Mail a 15 minute reset token. Raises NotFoundError for unknown emails;
    the route hides that from the client.
    """
    user = find_by_email(normalize_email(email))
    if user is None or user.status == UserStatus.DELETED.value:
        raise NotFoundError("User not found")

    token = token_service.issue_token(
        {"userId": user.id, "email": user.email},
        settings.jwt_private_key,
        ttl=settings.reset_token_ttl,
        token_type=token_service.TOKEN_TYPE_PASSWORD_RESET,
    )

    sent, reason = mail_service.send_password_reset_email(
        settings, user.email, user.full_name, user.id, token
    )
    if not sent:
        current_app.logger.warning("Password reset mail for user %s not delivered: %s", user.id, reason)
    return token


def reset_password(settings: Settings, token, new_password) -> User:
    try:
        claims = token_service.verify_token(
            token,
            settings.jwt_public_key,
            expected_type=token_service.TOKEN_TYPE_PASSWORD_RESET,
        )
    except TokenExpiredError:
        raise ExpiredError("Reset token expired")
    except AuthenticationError:
        raise ValidationError("Invalid reset token")

    user = get_user(claims.get("userId"))
    if user.email != claims.get("email"):
        raise ValidationError("Invalid reset token")

    user.password_hash = credential_service.hash_password(new_password, rounds=settings.bcrypt_rounds)
    db.session.commit()

    current_app.logger.info("Password reset for user %s", user.id)
    return user


def change_password(settings: Settings, user_id: int, old_password, new_password) -> User:
    if not old_password or not new_password:
        raise ValidationError("oldPassword and newPassword are required")

    user = get_user(user_id)
    if not credential_service.verify_password(old_password, user.password_hash):
        raise AuthenticationError("Old password is incorrect")

    if old_password == new_password:
        raise ValidationError("New password must be different from the old password")

    user.password_hash = credential_service.hash_password(new_password, rounds=settings.bcrypt_rounds)
    db.session.commit()
    return user


# =============================================================================
# ROLES & STATUS (admin)
# =============================================================================

def request_role(user_id: int, role) -> User:
    user = get_user(user_id)
    role = _parse_role(role, REQUESTABLE_ROLES)
    if user.role == role.value:
        raise ValidationError(f"You already have the {role.value} role")

    user.requested_role = role.value
    db.session.commit()
    return user


def _ensure_can_manage(actor: Identity, user: User) -> None:
    # Admin accounts are managed by super admins only
    if Role.parse(user.role) in ADMIN_ROLES and actor.role != Role.SUPER_ADMIN:
        raise PermissionDeniedError("Only a super admin can manage admin accounts")


def update_role(user_id: int, new_role, actor: Identity) -> User:
    role = _parse_role(new_role)
    user = get_user(user_id)

    if actor.role not in ROLE_GRANTORS[role]:
        raise PermissionDeniedError(f"Only a super admin can assign the {role.value} role")
    _ensure_can_manage(actor, user)

    previous = user.role
    _apply_role(user, role)
    if user.requested_role == role.value:
        user.requested_role = None

    log_security_event(
        user_id=actor.user_id,
        event_type="ROLE_CHANGED",
        success=True,
        action=str(user.id),
        reason=f"{previous} -> {role.value}",
        commit=False,
    )
    db.session.commit()
    return user


def approve_role_change(user_id: int, actor: Identity) -> User:
    user = get_user(user_id)
    if not user.requested_role:
        raise ValidationError("No requested role to approve")
    if _is_blocked(user):
        raise ValidationError(f"Cannot approve a role request for a {user.status} account")

    role = _parse_role(user.requested_role)
    previous = user.role
    _apply_role(user, role)
    if role not in ROLES_REQUIRING_ACTIVATION:
        user.status = UserStatus.ACTIVE.value
    user.requested_role = None

    log_security_event(
        user_id=actor.user_id,
        event_type="ROLE_APPROVED",
        success=True,
        action=str(user.id),
        reason=f"{previous} -> {role.value}",
        commit=False,
    )
    db.session.commit()
    return user


def set_status(user_id: int, status, actor: Identity) -> User:
    new_status = UserStatus.parse(status)
    if new_status is None:
        raise ValidationError(
            f"status must be one of: {', '.join(s.value for s in UserStatus)}"
        )

    user = get_user(user_id, include_deleted=True)
    if user.id == actor.user_id:
        raise ValidationError("You cannot change your own status")
    _ensure_can_manage(actor, user)

    previous = user.status
    user.status = new_status.value

    log_security_event(
        user_id=actor.user_id,
        event_type="STATUS_CHANGED",
        success=True,
        action=str(user.id),
        reason=f"{previous} -> {new_status.value}",
        commit=False,
    )
    db.session.commit()
    return user


def list_users(page=1, limit=DEFAULT_PAGE_SIZE, search: str | None = None) -> tuple[list[User], dict]:
    try:
        page = max(int(page), 1)
        limit = min(max(int(limit), 1), MAX_PAGE_SIZE)
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")

    query = db.session.query(User)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            User.email.ilike(pattern),
            User.full_name.ilike(pattern),
            User.username.ilike(pattern),
        ))

    total = query.count()
    users = query.order_by(User.id.asc()).offset((page - 1) * limit).limit(limit).all()
    return users, {"page": page, "limit": limit, "total": total}


def list_role_requests() -> list[User]:
    return db.session.query(User).filter(
        User.requested_role.isnot(None),
        User.status != UserStatus.DELETED.value,
    ).order_by(User.updated_at.asc()).all()


# =============================================================================
# PROFILE
# =============================================================================

def update_profile(user_id: int, payload) -> User:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = {PROFILE_ALIASES.get(k, k): v for k, v in payload.items()}

    patch = validate_payload(model=User, payload=payload, policy=PROFILE_POLICY, partial=True)
    enforce_rules_profile(patch)

    user = get_user(user_id)
    if patch.get("mobile") and patch["mobile"] != user.mobile:
        taken = db.session.query(User.id).filter(User.mobile == patch["mobile"], User.id != user.id).first()
        if taken is not None:
            raise ConflictError("Mobile number already registered")

    for key, value in patch.items():
        setattr(user, key, value)
    _commit_unique("Mobile number already registered")
    return user


def delete_account(user_id: int) -> User:
    """Soft delete. The row stays for orders and audit; login is blocked."""
    user = get_user(user_id)
    user.status = UserStatus.DELETED.value
    db.session.commit()
    current_app.logger.info("User %s deleted their account", user.id)
    return user

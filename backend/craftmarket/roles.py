"""
Role and account-status definitions.

WHY: Role checks used to be string comparisons scattered across routes.
Every role lives in one closed enum, and every role-gated route names one of
the frozen sets below instead of spelling out its own list.

DESIGN PRINCIPLES:
- Role (what you may do) and UserStatus (whether you may do anything) are
  independent axes
- Route role sets are declared once here and checked in one gate
  (permission_service.check_role)
"""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    CUSTOMER = "customer"
    ARTISAN = "artisan"
    MERCHANT = "merchant"

    @classmethod
    def parse(cls, value) -> "Role | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class UserStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    DEACTIVATED = "deactivate"
    BANNED = "baned"
    DELETED = "deleted"

    @classmethod
    def parse(cls, value) -> "UserStatus | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


# =============================================================================
# ROUTE ROLE SETS
# =============================================================================

# User administration, role approval, order status management
ADMIN_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN})

# Only a super admin may hand out admin-level roles
ROLE_GRANTORS = {
    Role.SUPER_ADMIN: frozenset({Role.SUPER_ADMIN}),
    Role.ADMIN: frozenset({Role.SUPER_ADMIN}),
    Role.CUSTOMER: ADMIN_ROLES,
    Role.ARTISAN: ADMIN_ROLES,
    Role.MERCHANT: ADMIN_ROLES,
}

# Roles a user may ask for themselves; anything else is assigned by an admin
REQUESTABLE_ROLES = frozenset({Role.ARTISAN, Role.MERCHANT})

# Roles whose accounts stay pending until an admin activates them
ROLES_REQUIRING_ACTIVATION = frozenset({Role.ARTISAN})

# Statuses that block login
BLOCKED_STATUSES = frozenset({UserStatus.DEACTIVATED, UserStatus.BANNED, UserStatus.DELETED})

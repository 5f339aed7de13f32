# Overview: Flask API routes for user administration; listing, role assignment, approvals and status.

# backend/craftmarket/routes/admin.py
"""
Admin API routes

SECURITY:
- admin or super_admin role required on every route (ADMIN_ROLES)
- Assigning admin/super_admin, or touching an admin account, requires
  super_admin (enforced in account_service)
- Role and status changes are written to security_events
"""

from flask import Blueprint, g, request

from ..decorators import require_auth, require_role
from ..errors import ApiError
from ..responses import error_response, internal_error_response, json_body, success_response
from ..roles import ADMIN_ROLES
from ..services import account_service


admin_bp = Blueprint("admin", __name__, url_prefix="/api/v1/admin")


@admin_bp.get("/users")
@require_auth
@require_role(ADMIN_ROLES)
def list_users_route():
    """
    Query params:
        page   (default 1)
        limit  (default 10, max 100)
        search (matches email, full name, username)
    """
    try:
        users, meta = account_service.list_users(
            page=request.args.get("page", 1),
            limit=request.args.get("limit", account_service.DEFAULT_PAGE_SIZE),
            search=request.args.get("search"),
        )
        return success_response("Users retrieved successfully", [u.to_dict() for u in users], meta=meta)
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to list users")


@admin_bp.get("/role-requests")
@require_auth
@require_role(ADMIN_ROLES)
def list_role_requests_route():
    try:
        users = account_service.list_role_requests()
        return success_response("Role requests retrieved successfully", [u.to_dict() for u in users])
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to list role requests")


@admin_bp.patch("/update-role/<int:user_id>")
@require_auth
@require_role(ADMIN_ROLES)
def update_role_route(user_id: int):
    """Request body: {"role": "merchant"}"""
    try:
        user = account_service.update_role(user_id, json_body().get("role"), g.identity)
        return success_response("User role updated successfully", user.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to update user role")


@admin_bp.post("/approved-role/<int:user_id>")
@require_auth
@require_role(ADMIN_ROLES)
def approve_role_route(user_id: int):
    try:
        user = account_service.approve_role_change(user_id, g.identity)
        return success_response("Role request approved", user.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to approve role request")


@admin_bp.patch("/users/<int:user_id>/status")
@require_auth
@require_role(ADMIN_ROLES)
def update_status_route(user_id: int):
    """Request body: {"status": "active" | "pending" | "deactivate" | "baned" | "deleted"}"""
    try:
        user = account_service.set_status(user_id, json_body().get("status"), g.identity)
        return success_response("User status updated successfully", user.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to update user status")

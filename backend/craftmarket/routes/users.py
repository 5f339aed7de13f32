# Overview: Flask API routes for the signed-in user's profile, password, role requests, addresses and artisan profile.

# backend/craftmarket/routes/users.py
"""
User self-service API routes

SECURITY:
- Every route requires a bearer token, except reading an artisan profile
- Path-addressed profiles and addresses are owner-only; admins may read
  any profile but never edit someone else's
"""

from flask import Blueprint, g, request

from .. import current_settings
from ..decorators import require_auth
from ..errors import ApiError
from ..responses import error_response, internal_error_response, json_body, success_response
from ..roles import ADMIN_ROLES
from ..services import account_service, address_service, artisan_service
from ..services.permission_service import require_owner


users_bp = Blueprint("users", __name__, url_prefix="/api/v1/users")


# =============================================================================
# OWN ACCOUNT
# =============================================================================

@users_bp.get("/me")
@require_auth
def me_route():
    try:
        user = account_service.get_user(g.identity.user_id)
        return success_response("User retrieved successfully", user.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to get current user")


@users_bp.post("/me/role-request")
@require_auth
def role_request_route():
    """Request body: {"role": "artisan" | "merchant"}"""
    try:
        user = account_service.request_role(g.identity.user_id, json_body().get("role"))
        return success_response("Role request submitted", user.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to submit role request")


@users_bp.post("/update-password")
@require_auth
def update_password_route():
    """Request body: {"oldPassword": "...", "newPassword": "..."}"""
    try:
        data = json_body()
        account_service.change_password(
            current_settings(),
            g.identity.user_id,
            old_password=data.get("oldPassword", data.get("old_password")),
            new_password=data.get("newPassword", data.get("new_password")),
        )
        return success_response("Password updated successfully")
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to update password")


# =============================================================================
# PROFILE BY ID
# =============================================================================

@users_bp.get("/<int:user_id>")
@require_auth
def get_user_route(user_id: int):
    try:
        require_owner(g.identity, user_id, allow_roles=ADMIN_ROLES)
        user = account_service.get_user(user_id)
        return success_response("User retrieved successfully", user.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to get user")


@users_bp.put("/<int:user_id>")
@require_auth
def update_user_route(user_id: int):
    """
    Update own profile.

    Writable: fullName, dateOfBirth, gender, mobile, image (snake_case
    column names are accepted as well). Anything else is rejected.
    """
    try:
        require_owner(g.identity, user_id, message="You can only update your own profile")
        user = account_service.update_profile(user_id, request.get_json(silent=True))
        return success_response("User updated successfully", user.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to update user")


@users_bp.delete("/<int:user_id>")
@require_auth
def delete_user_route(user_id: int):
    try:
        require_owner(g.identity, user_id, message="You can only delete your own account")
        account_service.delete_account(user_id)
        return success_response("User deleted successfully")
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to delete user")


# =============================================================================
# ADDRESSES
# =============================================================================

@users_bp.get("/<int:user_id>/addresses")
@require_auth
def list_addresses_route(user_id: int):
    try:
        require_owner(g.identity, user_id, message="You can only manage your own addresses")
        addresses = address_service.list_addresses(user_id)
        return success_response("Addresses retrieved successfully", [a.to_dict() for a in addresses])
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to list addresses")


@users_bp.post("/<int:user_id>/addresses")
@require_auth
def create_address_route(user_id: int):
    """
    Request body:
    {
        "street": "12 Loom Lane",
        "city": "Dhaka",
        "state": "Dhaka",
        "zip": "1207",
        "country": "Bangladesh",
        "isDefault": true   (optional)
    }
    """
    try:
        require_owner(g.identity, user_id, message="You can only manage your own addresses")
        address = address_service.create_address(user_id, request.get_json(silent=True))
        return success_response("Address created successfully", address.to_dict(), status_code=201)
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to create address")


@users_bp.put("/<int:user_id>/addresses/<int:address_id>")
@require_auth
def update_address_route(user_id: int, address_id: int):
    try:
        require_owner(g.identity, user_id, message="You can only manage your own addresses")
        address = address_service.update_address(user_id, address_id, request.get_json(silent=True))
        return success_response("Address updated successfully", address.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to update address")


@users_bp.delete("/<int:user_id>/addresses/<int:address_id>")
@require_auth
def delete_address_route(user_id: int, address_id: int):
    try:
        require_owner(g.identity, user_id, message="You can only manage your own addresses")
        address_service.delete_address(user_id, address_id)
        return success_response("Address deleted successfully")
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to delete address")


# =============================================================================
# ARTISAN PROFILE
# =============================================================================

@users_bp.post("/<int:user_id>/artisan")
@require_auth
def create_artisan_profile_route(user_id: int):
    """
    Request body: {"name", "district", "city", "productType", optional
    "tagLine", "socialMedia", "about", "images"}
    """
    try:
        require_owner(g.identity, user_id, message="You can only manage your own artisan profile")
        profile = artisan_service.create_profile(user_id, request.get_json(silent=True))
        return success_response("Artisan profile created successfully", profile.to_dict(), status_code=201)
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to create artisan profile")


@users_bp.get("/<int:user_id>/artisan")
def get_artisan_profile_route(user_id: int):
    try:
        profile = artisan_service.get_profile(user_id)
        return success_response("Artisan profile retrieved successfully", profile.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to get artisan profile")


@users_bp.put("/<int:user_id>/artisan")
@require_auth
def update_artisan_profile_route(user_id: int):
    try:
        require_owner(g.identity, user_id, message="You can only manage your own artisan profile")
        profile = artisan_service.update_profile(user_id, request.get_json(silent=True))
        return success_response("Artisan profile updated successfully", profile.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to update artisan profile")

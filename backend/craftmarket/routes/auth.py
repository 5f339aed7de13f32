# Overview: Flask API routes for registration, verification, login and password reset.

# backend/craftmarket/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on registration and reset
- Email verification with a 6-digit code before first login
- Login and OTP throttling (429 with retry_after_seconds)
- Forgot-password answers the same for known and unknown emails
"""

from flask import Blueprint, request

from .. import current_settings
from ..errors import ApiError, NotFoundError
from ..responses import error_response, internal_error_response, json_body, success_response
from ..services import account_service, login_throttle_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")

FORGET_PASS_MESSAGE = "If the email is registered, a password reset link has been sent"


@auth_bp.post("/register")
def register_route():
    """
    Request body:
    {
        "email": "alice@example.com",
        "fullName": "Alice",
        "mobile": "01700000001",
        "password": "Str0ng!Pw",
        "role": "artisan"   (optional; stored as a request for admin approval)
    }

    Returns:
        201: account created, verification code mailed
        400: invalid input
        409: email or mobile already registered
    """
    try:
        data = json_body()
        user = account_service.register(
            current_settings(),
            email=data.get("email"),
            full_name=data.get("fullName", data.get("full_name")),
            mobile=data.get("mobile"),
            password=data.get("password"),
            requested_role=data.get("role"),
        )
        return success_response(
            "User registered successfully. Check your email for the verification code.",
            user.to_dict(),
            status_code=201,
        )
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to register user")


@auth_bp.post("/verify-user/<int:user_id>")
def verify_user_route(user_id: int):
    """Request body: {"otp": "123456"}"""
    try:
        user = account_service.verify(user_id, json_body().get("otp"))
        return success_response("User verified successfully", user.to_dict())
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to verify user")


@auth_bp.post("/resend-otp")
def resend_otp_route():
    try:
        user = account_service.resend_otp(current_settings(), json_body().get("email"))
        return success_response("A new verification code has been sent", {"id": user.id})
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to resend OTP")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and issue an access token.

    SECURITY:
    - Locked identifiers get 429 before the password is checked
    - Failed attempts are recorded for throttling
    - Unverified accounts get 403
    """
    try:
        data = json_body()
        token, user = account_service.login(
            current_settings(),
            email=data.get("email"),
            password=data.get("password"),
        )
        return success_response("User logged in successfully", {
            "accessToken": token,
            "user": user.to_dict(),
        })
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to login user")


@auth_bp.get("/lockout-status/<identifier>")
def lockout_status_route(identifier: str):
    try:
        status = login_throttle_service.get_lockout_status(identifier.strip().lower())
        return success_response("Lockout status retrieved", status)
    except Exception:
        return internal_error_response("Failed to get lockout status")


@auth_bp.post("/forget-pass")
def forget_password_route():
    try:
        account_service.request_password_reset(current_settings(), json_body().get("email"))
    except NotFoundError:
        pass
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to process password reset request")
    return success_response(FORGET_PASS_MESSAGE)


@auth_bp.post("/reset-pass")
def reset_password_route():
    """
    Request body: {"token": "...", "password": "N3w!Passw0rd"}

    The token may also come as "Authorization: Bearer <token>".
    """
    try:
        data = json_body()
        token = data.get("token")
        if not token:
            scheme, _, bearer = request.headers.get("Authorization", "").partition(" ")
            token = bearer.strip() if scheme == "Bearer" else None

        account_service.reset_password(
            current_settings(),
            token=token,
            new_password=data.get("password", data.get("newPassword")),
        )
        return success_response("Password reset successfully")
    except ApiError as e:
        return error_response(e)
    except Exception:
        return internal_error_response("Failed to reset password")

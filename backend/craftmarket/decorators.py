# Overview: Request decorators for bearer authentication and role gating.

from functools import wraps
from typing import Iterable

from flask import current_app, g, request

from . import current_settings
from .errors import ApiError, AuthenticationError
from .responses import error_response
from .services import permission_service, token_service
from .services.permission_service import Identity


def current_identity() -> Identity | None:
    return getattr(g, "identity", None)


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme != "Bearer" or not token.strip():
        return None
    return token.strip()


def require_auth(f):
    """
    Require a valid access token.

    Sets g.identity (user_id, email, role, full_name, external_id) from the
    token claims.

    SECURITY: Returns 401 if:
    - No Authorization header, or not "Bearer <token>"
    - Bad signature, expired token, or a non-access token
    - Claims without a usable userId/role
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return error_response(AuthenticationError("Authentication required"))

        try:
            claims = token_service.verify_token(token, current_settings().jwt_public_key)
        except ApiError as e:
            if not isinstance(e, AuthenticationError):
                current_app.logger.error("Token verification misconfigured: %s", e.message)
            return error_response(AuthenticationError("Invalid or expired token"))

        identity = Identity.from_claims(claims)
        if identity is None:
            return error_response(AuthenticationError("Invalid or expired token"))

        g.identity = identity
        return f(*args, **kwargs)

    return decorated_function


def require_role(allowed_roles: Iterable):
    """
    Require the authenticated identity to hold one of allowed_roles.
    Stack under @require_auth.
    """
    allowed_roles = frozenset(allowed_roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            identity = current_identity()
            if identity is None:
                return error_response(AuthenticationError("Authentication required"))

            try:
                permission_service.check_role(identity, allowed_roles)
            except ApiError as e:
                return error_response(e)

            return f(*args, **kwargs)

        return decorated_function

    return decorator

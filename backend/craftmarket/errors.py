# Overview: Domain error hierarchy; each error carries the HTTP status it maps to.

"""
Domain errors raised by the service layer.

Services never build HTTP responses. They raise one of these and the error
handlers in responses.py turn it into the uniform error envelope. The
message is always safe to show to the client.
"""


class ApiError(Exception):
    """Base class for errors that map onto an HTTP status."""
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None, details: dict | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details or {}


class ValidationError(ApiError, ValueError):
    """400-level input problem or business rule violation."""
    status_code = 400
    default_message = "Invalid input"


class ExpiredError(ValidationError):
    """400: a time-boxed credential (OTP, reset token) is past its expiry."""
    default_message = "Expired"


class AuthenticationError(ApiError):
    """401: missing, invalid or expired credential."""
    status_code = 401
    default_message = "Authentication required"


class TokenExpiredError(AuthenticationError):
    """401: a bearer or reset token is past its exp claim."""
    default_message = "Token has expired"


class PermissionDeniedError(ApiError):
    """403: authenticated but not allowed (role or ownership)."""
    status_code = 403
    default_message = "You do not have access to this resource"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ApiError, ValueError):
    """409-level business rule conflict (e.g., duplicate email)."""
    status_code = 409
    default_message = "Conflict"


class TooManyAttemptsError(ApiError):
    """429: identifier locked by login/OTP throttling."""
    status_code = 429
    default_message = "Too many failed attempts"

    def __init__(self, message: str | None = None, retry_after_seconds: int | None = None):
        super().__init__(message, details={"retry_after_seconds": retry_after_seconds})
        self.retry_after_seconds = retry_after_seconds


class InternalError(ApiError):
    status_code = 500


class ServiceUnavailableError(ApiError):
    """503: a backing service (the database) failed its health check."""
    status_code = 503
    default_message = "Service is unhealthy"

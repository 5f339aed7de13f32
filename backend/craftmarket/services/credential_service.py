# Overview: Password hashing, password strength rules and one-time codes.

"""
Credential primitives

WHY: Passwords and OTPs are the only secrets users hand us. Both are hashed
before they touch the database and compared with timing-safe functions.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters
- Must contain uppercase, lowercase, digit, and a special char from !@#$%^&*
- OTPs are 6 digits from the secrets module, valid for 10 minutes,
  stored as SHA-256 hex
"""

import bcrypt
import hashlib
import hmac
import re
import secrets
from datetime import datetime, timedelta

from ..errors import ValidationError
from craftmarket.time_utils import utcnow


DEFAULT_BCRYPT_ROUNDS = 12
OTP_DIGITS = 6
OTP_TTL = timedelta(minutes=10)


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters, maximum 100
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or not password:
        raise PasswordValidationError("Password is required")

    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if len(password) > 100:
        raise PasswordValidationError("Password must be at most 100 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*]", password):
        raise PasswordValidationError("Password must contain at least one special character (!@#$%^&*)")


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing, so every stored hash
    belongs to a password that met the rules at the time it was set.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise (including a
    missing or malformed hash). bcrypt.checkpw() is timing-safe.
    """
    if not password or not password_hash:
        return False

    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash ("Invalid salt")
        return False


# =============================================================================
# ONE-TIME CODES
# =============================================================================

def hash_otp(code: str) -> str:
    return hashlib.sha256(code.encode('utf-8')).hexdigest()


def generate_otp(ttl: timedelta = OTP_TTL) -> tuple[str, datetime]:
    """
    Generate a numeric one-time code and its expiry.

    Returns (plaintext_code, expires_at). Only hash_otp(code) is stored; the
    plaintext goes to the user's mailbox.
    """
    code = f"{secrets.randbelow(10 ** OTP_DIGITS):0{OTP_DIGITS}d}"
    return code, utcnow() + ttl


def otp_matches(code: str | None, otp_hash: str | None) -> bool:
    if not code or not otp_hash:
        return False
    return hmac.compare_digest(hash_otp(str(code).strip()), otp_hash)

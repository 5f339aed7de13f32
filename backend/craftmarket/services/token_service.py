# Overview: RS256 bearer token issuance and verification.

"""
Signed Token Service

WHY: Bearer tokens carry identity and role so every request can be
authorized without a session table. Tokens are signed with an RSA private
key and verified with the matching public key, so a separate process can
verify tokens holding only the public key.

TOKEN TYPES:
- access:          issued at login, TTL ACCESS_TOKEN_TTL (default 1 day)
- password_reset:  issued by forget-pass, TTL 15 minutes

A token of one type is rejected where the other is expected.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Mapping

from jose import ExpiredSignatureError, JOSEError, jwt

from ..errors import AuthenticationError, TokenExpiredError, ValidationError
from craftmarket.time_utils import utcnow


ALGORITHM = "RS256"

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_PASSWORD_RESET = "password_reset"

ACCESS_TOKEN_TTL = timedelta(days=1)
PASSWORD_RESET_TTL = timedelta(minutes=15)

# Claims the issuer controls; callers can't smuggle these in
_RESERVED_CLAIMS = {"exp", "iat", "nbf"}


def issue_token(
    claims: Mapping,
    signing_key: str,
    ttl: timedelta = ACCESS_TOKEN_TTL,
    token_type: str = TOKEN_TYPE_ACCESS,
) -> str:
    """
    Sign claims into a time-boxed RS256 token.

    Raises ValidationError if claims are empty or the signing key is missing.
    """
    if not isinstance(claims, Mapping) or not claims:
        raise ValidationError("Payload must be a non empty object")

    if not isinstance(signing_key, str) or not signing_key.strip():
        raise ValidationError("Signing key is not configured")

    if ttl.total_seconds() <= 0:
        raise ValidationError("Token lifetime must be positive")

    now = utcnow()
    payload = {k: v for k, v in claims.items() if k not in _RESERVED_CLAIMS}
    payload["type"] = token_type
    payload["iat"] = now
    payload["exp"] = now + ttl

    try:
        return jwt.encode(payload, signing_key, algorithm=ALGORITHM)
    except JOSEError as exc:
        # Malformed PEM, wrong key type
        raise ValidationError(f"Failed to sign the token: {exc}")


def verify_token(
    token: str,
    verify_key: str,
    expected_type: str | None = TOKEN_TYPE_ACCESS,
) -> dict:
    """
    Verify signature, expiry and type. Returns the claims.

    Raises:
        ValidationError: token or key empty
        TokenExpiredError: past exp
        AuthenticationError: bad signature, malformed, or wrong type
    """
    if not isinstance(token, str) or not token.strip():
        raise ValidationError("Invalid token")

    if not isinstance(verify_key, str) or not verify_key.strip():
        raise ValidationError("Verification key is not configured")

    try:
        claims = jwt.decode(token, verify_key, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except JOSEError:
        raise AuthenticationError("Invalid or expired token")

    if expected_type is not None and claims.get("type") != expected_type:
        raise AuthenticationError("Invalid or expired token")

    return claims


def access_claims_for(user) -> dict:
    """Identity claims embedded in access tokens."""
    return {
        "userId": user.id,
        "email": user.email,
        "role": user.role,
        "fullName": user.full_name,
        "externalId": user.external_id,
    }

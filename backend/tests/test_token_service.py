"""
Signed token tests: RS256 issuance, verification, expiry and token types.
"""

from datetime import timedelta

import pytest

from craftmarket.cli import generate_key_pair
from craftmarket.errors import AuthenticationError, TokenExpiredError, ValidationError
from craftmarket.services import token_service
from craftmarket.time_utils import utcnow


CLAIMS = {"userId": 7, "email": "alice@example.com", "role": "customer"}


class TestIssueAndVerify:

    def test_round_trip_returns_claims(self, key_pair):
        private_pem, public_pem = key_pair
        token = token_service.issue_token(CLAIMS, private_pem)
        claims = token_service.verify_token(token, public_pem)
        assert claims["userId"] == 7
        assert claims["email"] == "alice@example.com"
        assert claims["role"] == "customer"
        assert claims["type"] == token_service.TOKEN_TYPE_ACCESS
        assert claims["exp"] > claims["iat"]

    def test_reserved_claims_are_not_taken_from_caller(self, key_pair):
        private_pem, public_pem = key_pair
        token = token_service.issue_token({**CLAIMS, "exp": 1}, private_pem)
        claims = token_service.verify_token(token, public_pem)
        assert claims["exp"] > 1

    @pytest.mark.parametrize("claims", [{}, None, "userId=7"])
    def test_empty_claims_rejected(self, key_pair, claims):
        with pytest.raises(ValidationError):
            token_service.issue_token(claims, key_pair[0])

    def test_missing_signing_key_rejected(self):
        with pytest.raises(ValidationError):
            token_service.issue_token(CLAIMS, "")

    def test_empty_token_rejected(self, key_pair):
        with pytest.raises(ValidationError):
            token_service.verify_token("", key_pair[1])

    def test_missing_verify_key_rejected(self, key_pair):
        token = token_service.issue_token(CLAIMS, key_pair[0])
        with pytest.raises(ValidationError):
            token_service.verify_token(token, "")


class TestRejectedTokens:

    def test_expired_token(self, key_pair, monkeypatch):
        private_pem, public_pem = key_pair
        issued_at = utcnow() - timedelta(days=2)
        with monkeypatch.context() as m:
            m.setattr(token_service, "utcnow", lambda: issued_at)
            token = token_service.issue_token(CLAIMS, private_pem, ttl=timedelta(days=1))

        with pytest.raises(TokenExpiredError):
            token_service.verify_token(token, public_pem)

    def test_token_signed_by_another_key(self, key_pair):
        other_private, _ = generate_key_pair()
        token = token_service.issue_token(CLAIMS, other_private)
        with pytest.raises(AuthenticationError):
            token_service.verify_token(token, key_pair[1])

    def test_tampered_token(self, key_pair):
        token = token_service.issue_token(CLAIMS, key_pair[0])
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload[:-2] + ("AA" if payload[-2:] != "AA" else "BB"), signature])
        with pytest.raises(AuthenticationError):
            token_service.verify_token(tampered, key_pair[1])

    def test_garbage_token(self, key_pair):
        with pytest.raises(AuthenticationError):
            token_service.verify_token("not.a.token", key_pair[1])

    def test_reset_token_not_accepted_as_access_token(self, key_pair):
        token = token_service.issue_token(
            CLAIMS, key_pair[0],
            ttl=token_service.PASSWORD_RESET_TTL,
            token_type=token_service.TOKEN_TYPE_PASSWORD_RESET,
        )
        with pytest.raises(AuthenticationError):
            token_service.verify_token(token, key_pair[1])

        claims = token_service.verify_token(
            token, key_pair[1], expected_type=token_service.TOKEN_TYPE_PASSWORD_RESET
        )
        assert claims["userId"] == 7

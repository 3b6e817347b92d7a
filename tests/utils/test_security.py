"""Caller token tests."""

from datetime import timedelta

import pytest
from jose import jwt

from tournament_ledger.config import get_settings
from tournament_ledger.utils.security import (
    TokenError,
    create_access_token,
    verify_access_token,
)


class TestAccessTokens:
    def test_round_trip(self):
        token = create_access_token("0xalice")
        payload = verify_access_token(token)
        assert payload["sub"] == "0xalice"
        assert payload["type"] == "access"

    def test_additional_claims(self):
        token = create_access_token("0xalice", additional_claims={"role": "player"})
        assert verify_access_token(token)["role"] == "player"

    def test_expired(self):
        token = create_access_token("0xalice", expires_delta=timedelta(seconds=-1))
        with pytest.raises(TokenError) as exc_info:
            verify_access_token(token)
        assert exc_info.value.code == "TOKEN_EXPIRED"

    def test_wrong_signature(self):
        settings = get_settings()
        token = jwt.encode(
            {"sub": "0xalice", "type": "access", "exp": 4102444800},
            "a-completely-different-signing-key-value",
            algorithm=settings.jwt_algorithm,
        )
        assert verify_access_token(token) is None

    def test_wrong_type(self):
        token = create_access_token("0xalice", additional_claims={"type": "refresh"})
        assert verify_access_token(token) is None

    def test_empty(self):
        assert verify_access_token("") is None

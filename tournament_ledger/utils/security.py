"""Caller identity tokens.

The ledger trusts whatever identity the transport hands it, so the HTTP
layer derives the caller from the `sub` claim of a signed JWT access token.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from ..config import get_settings
from ..logging_config import get_logger

logger = get_logger(__name__)


class TokenError(Exception):
    """Token validation error with specific code."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


def create_access_token(
    identity: str,
    additional_claims: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token whose subject is the caller identity.

    Args:
        identity: Caller identity to encode in token
        additional_claims: Additional claims to include
        expires_delta: Custom expiration time

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_access_token_expire_minutes)

    now = datetime.now(timezone.utc)
    payload = {
        "sub": identity,
        "type": "access",
        "iat": now,
        "exp": now + expires_delta,
    }

    if additional_claims:
        payload.update(additional_claims)

    return jwt.encode(
        payload,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def verify_access_token(token: str) -> dict[str, Any] | None:
    """Verify an access token and return its payload.

    Returns:
        Token payload if valid, None otherwise

    Raises:
        TokenError: If the token has expired
    """
    if not token:
        return None

    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require_exp": True, "require_sub": True},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("TOKEN_EXPIRED", "Token has expired") from None
    except jwt.JWTClaimsError as e:
        logger.debug("token_invalid_claims", error=str(e))
        return None
    except JWTError as e:
        logger.warning("token_decode_failed", error_type=type(e).__name__)
        return None

    if payload.get("type") != "access":
        logger.debug("token_wrong_type", token_type=payload.get("type"))
        return None

    return payload

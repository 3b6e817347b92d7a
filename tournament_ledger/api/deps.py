"""API dependencies for caller identity and the shared engine."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..tournament.engine import TournamentEngine
from ..utils.security import TokenError, verify_access_token

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


def _unauthenticated(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "error": {
                "code": code,
                "message": message,
                "details": {},
            }
        },
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_caller(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """Caller identity from the bearer token (required).

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    if not credentials:
        raise _unauthenticated("AUTH_REQUIRED", "Authentication required")

    try:
        payload = verify_access_token(credentials.credentials)
    except TokenError as e:
        raise _unauthenticated(e.code, e.message) from None

    if not payload or not payload.get("sub"):
        raise _unauthenticated("AUTH_INVALID_TOKEN", "Invalid or expired token")

    return payload["sub"]


def get_engine(request: Request) -> TournamentEngine:
    """Engine built during application startup."""
    engine = getattr(request.app.state, "tournament_engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tournament engine not initialized",
        )
    return engine


CurrentCaller = Annotated[str, Depends(get_current_caller)]
Engine = Annotated[TournamentEngine, Depends(get_engine)]

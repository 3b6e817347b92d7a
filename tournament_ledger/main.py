"""FastAPI application entry point.

Tournament Ledger API - owner-governed tournament lifecycle
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from .config import get_settings
from .logging_config import configure_logging, get_logger, log_context
from .tournament.api import router as tournament_router
from .tournament.distributed_lock import LockAcquisitionError
from .tournament.engine import TournamentEngine
from .utils.errors import ErrorCode, InvalidState, LedgerError, Unauthorized
from .utils.json_utils import ORJSONResponse
from .utils.redis_client import close_redis, get_redis_client, init_redis

settings = get_settings()

configure_logging(log_level=settings.log_level, app_env=settings.app_env)
logger = get_logger(__name__)


# =============================================================================
# Lifespan Events
# =============================================================================


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Build the engine on startup; release locks and snapshot on shutdown."""
    logger.info("application_starting", env=settings.app_env)

    redis_instance = await init_redis()
    if redis_instance is None:
        logger.info("redis_not_configured", lock_backend=settings.lock_backend)

    _app.state.tournament_engine = await TournamentEngine.bootstrap(
        settings.owner_identity,
        redis_instance,
        lock_backend=settings.lock_backend,
        lock_timeout_ms=settings.lock_timeout_ms,
        lock_acquire_timeout_ms=settings.lock_acquire_timeout_ms,
        event_history_size=settings.event_history_size,
        event_stream_enabled=settings.event_stream_enabled,
        snapshot_enabled=settings.snapshot_enabled,
        snapshot_hmac_key=settings.snapshot_hmac_key,
    )
    logger.info("application_started")

    yield

    logger.info("application_stopping")
    await _app.state.tournament_engine.shutdown()
    await close_redis()
    logger.info("application_stopped")


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="Tournament Ledger API",
    version="1.0.0",
    description="Owner-governed tournament lifecycle ledger",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)


# =============================================================================
# Middleware
# =============================================================================


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add X-Request-ID header to all requests and responses."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = datetime.now(timezone.utc)

        with log_context(request_id=request_id):
            response = await call_next(request)

        response.headers["X-Request-ID"] = request_id

        duration = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration=round(duration, 3),
            request_id=request_id,
        )
        return response


app.add_middleware(RequestIDMiddleware)

cors_origins = [origin.strip() for origin in settings.cors_origins.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# Error Handlers
# =============================================================================


def get_request_id(request: Request) -> str:
    """Get request ID from request state or headers."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return request.headers.get("X-Request-ID", str(uuid.uuid4()))


def create_error_response(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    trace_id: str | None = None,
) -> dict[str, Any]:
    """Create standardized error response."""
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        },
        "traceId": trace_id,
    }


def ledger_error_status(exc: LedgerError) -> int:
    """HTTP status for a ledger rejection."""
    if isinstance(exc, Unauthorized):
        return status.HTTP_403_FORBIDDEN
    if exc.code == ErrorCode.UNKNOWN_ID.value:
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, InvalidState):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> ORJSONResponse:
    """Handle rejected ledger operations."""
    trace_id = get_request_id(request)

    return ORJSONResponse(
        status_code=ledger_error_status(exc),
        content=create_error_response(
            code=exc.code,
            message=exc.message,
            details=exc.details,
            trace_id=trace_id,
        ),
    )


@app.exception_handler(LockAcquisitionError)
async def lock_error_handler(request: Request, exc: LockAcquisitionError) -> ORJSONResponse:
    """Handle record lock timeouts."""
    trace_id = get_request_id(request)
    logger.warning("lock_timeout", message=str(exc), trace_id=trace_id)

    return ORJSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=create_error_response(
            code="LOCK_TIMEOUT",
            message="Tournament is busy, retry later",
            trace_id=trace_id,
        ),
        headers={"Retry-After": "1"},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    """Handle malformed request bodies and query strings."""
    return ORJSONResponse(
        status_code=422,
        content=create_error_response(
            code="VALIDATION_ERROR",
            message="Request validation failed",
            details={"errors": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                for err in exc.errors()
            ]},
            trace_id=get_request_id(request),
        ),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(
    request: Request, exc: HTTPException
) -> ORJSONResponse:
    """Handle HTTP exceptions."""
    trace_id = get_request_id(request)

    # Check if detail is already formatted
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = dict(exc.detail)
        content["traceId"] = trace_id
    else:
        content = create_error_response(
            code="HTTP_ERROR",
            message=str(exc.detail),
            trace_id=trace_id,
        )

    return ORJSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Handle unexpected exceptions."""
    trace_id = get_request_id(request)

    logger.error(
        "unexpected_error",
        error_type=type(exc).__name__,
        error_message=str(exc),
        trace_id=trace_id,
        exc_info=True,
    )

    # Don't expose internal error details in production
    message = "Internal server error"
    if settings.app_debug:
        message = f"{type(exc).__name__}: {exc}"

    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=create_error_response(
            code="INTERNAL_ERROR",
            message=message,
            trace_id=trace_id,
        ),
    )


# =============================================================================
# Health Check
# =============================================================================


@app.get("/health", tags=["Health"], response_model=dict)
async def health_check() -> dict[str, Any]:
    """Liveness plus Redis connectivity and ledger counters."""
    health_status: dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
        "services": {"redis": "not_configured"},
    }

    redis_client = get_redis_client()
    if redis_client is not None:
        try:
            await redis_client.ping()
            health_status["services"]["redis"] = "healthy"
        except Exception as e:
            logger.warning("redis_health_check_failed", error=str(e))
            health_status["services"]["redis"] = "unhealthy"
            health_status["status"] = "degraded"

    engine = getattr(app.state, "tournament_engine", None)
    if engine is not None:
        health_status["ledger"] = {
            "counter": engine.counter,
            "events": engine.event_bus.metrics.to_dict(),
        }

    return health_status


# =============================================================================
# Routers
# =============================================================================

app.include_router(tournament_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tournament_ledger.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
    )

"""
Fadetrack Backend: FastAPI Application Factory
==============================================

What:  Builds the FastAPI app: middleware, exception handlers, routers and
       the startup/shutdown lifecycle.
Who:   uvicorn (`uvicorn fadetrack.main:app`) and the test suite.

Lifecycle:
    Startup:
    1. Configure logging
    2. Report missing credentials (logged, not fatal: health checks must
       still answer on a half-configured deployment)
    3. Create the storage bucket directory

    Shutdown:
    1. Dispose the database engine

Error envelope (every handled error):
    {"error": "<code>", "message": "...", "details": {...}, "request_id": "..."}
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from fadetrack import __version__
from fadetrack.config import settings
from fadetrack.database import dispose_engine
from fadetrack.exceptions import (
    CircuitBreakerOpenError,
    ConflictError,
    DatabaseError,
    FadetrackError,
    FileStorageError,
    NotFoundError,
    RateLimitExceededError,
    ServiceMisconfiguredError,
    UpstreamServiceError,
    UsageLimitExceededError,
    ValidationError,
)
from fadetrack.middleware.logging import RequestLoggingMiddleware
from fadetrack.middleware.rate_limit import RateLimitMiddleware
from fadetrack.middleware.request_id import RequestIDMiddleware, request_id_var
from fadetrack.routes import (
    account,
    chatkit,
    health,
    offerings,
    professionals,
    reminders,
    reviews,
    roles,
    search,
    uploads,
)
from fadetrack.services.storage_service import storage_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("Fadetrack backend %s starting", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.warning("%s", e)

    storage_service.bucket_root.mkdir(parents=True, exist_ok=True)
    logger.info("Object storage: %s", storage_service.bucket_root)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    logger.info("Fadetrack backend shutting down")
    await dispose_engine()


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _describe_validation_error(exc: RequestValidationError) -> tuple:
    """First offending field and a readable message for it."""
    errors = exc.errors()
    if not errors:
        return None, "Invalid request"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ())]
    # Only the leading element names the request location; a field may be called "query"
    if loc and loc[0] in ("body", "query", "path", "header", "cookie"):
        loc = loc[1:]
    field = loc[-1] if loc else None
    if first.get("type") == "missing" and field:
        return field, f"Missing required field: {field}"
    message = str(first.get("msg", "Invalid request")).removeprefix("Value error, ")
    return field, message


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the error hierarchy onto HTTP responses.

        RequestValidationError / ValidationError → 400
        NotFoundError                            → 404
        ConflictError                            → 409
        UsageLimitExceededError                  → 429 + Retry-After
        RateLimitExceededError                   → 429 + Retry-After
        UpstreamServiceError                     → its status_code (500 default)
        CircuitBreakerOpenError                  → 503 + Retry-After
        ServiceMisconfiguredError                → 500
        DatabaseError / FileStorageError         → 500, message kept
        anything else                            → 500, generic message
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        field, message = _describe_validation_error(exc)
        logger.warning("[%s] Invalid request to %s: %s", request_id_var.get(""), request.url.path, message)
        return _error_response(400, "validation_error", message, {"field": field} if field else None)

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return _error_response(409, "conflict", exc.message, exc.context)

    @app.exception_handler(UsageLimitExceededError)
    async def handle_usage_limit(request: Request, exc: UsageLimitExceededError):
        return _error_response(
            429,
            "usage_limit_exceeded",
            exc.message,
            exc.context,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(
            429,
            "rate_limit_exceeded",
            exc.message,
            exc.context,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return _error_response(
            503,
            "service_unavailable",
            exc.message,
            {"recovery_time": exc.recovery_time},
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(UpstreamServiceError)
    async def handle_upstream_error(request: Request, exc: UpstreamServiceError):
        logger.error("[%s] %s upstream error: %s", request_id_var.get(""), exc.service, exc.message)
        return _error_response(exc.status_code, "upstream_error", exc.message, exc.context)

    @app.exception_handler(ServiceMisconfiguredError)
    async def handle_misconfigured(request: Request, exc: ServiceMisconfiguredError):
        logger.error("[%s] %s", request_id_var.get(""), exc.message)
        return _error_response(500, "misconfigured", exc.message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "database_error", exc.message)

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error("[%s] File storage error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "storage_error", exc.message)

    @app.exception_handler(FadetrackError)
    async def handle_app_error(request: Request, exc: FadetrackError):
        logger.error("[%s] %s: %s", request_id_var.get(""), type(exc).__name__, exc.message)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), exc, exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Fadetrack API",
        description=(
            "Reviews, directory and AI-assisted search for barbers, stylists, "
            "makeup artists and other beauty professionals."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    for module in (
        reviews,
        roles,
        professionals,
        offerings,
        uploads,
        search,
        chatkit,
        account,
        reminders,
        health,
    ):
        app.include_router(module.router)

    return app


app = create_app()

"""TechSpec API main application module.

This module initializes the FastAPI application and configures
logging, core middleware, routers, and startup/shutdown events.
"""

import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from techspec.api.admin import router as admin_router
from techspec.api.auth import router as auth_router
from techspec.api.dependencies import AdminAPIError
from techspec.api.health import router as health_router
from techspec.api.middleware import setup_middleware
from techspec.api.products import router as products_router
from techspec.api.profiles import router as profiles_router
from techspec.api.reviews import router as reviews_router
from techspec.api.shops import router as shops_router
from techspec.api.stats import router as stats_router
from techspec.application.stats_service import StatsAggregator
from techspec.domain.exceptions import (
    BackendCallError,
    ConfigurationError,
    ConflictError,
    DomainError,
    InvalidStateTransitionError,
    NotAuthenticatedError,
    NotFoundError,
    ValidationFailedError,
)
from techspec.infrastructure.backend_client import BackendClient
from techspec.infrastructure.config import Settings, settings

# ============================================================================
# Logging
# ============================================================================

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(message)s",
    stream=sys.stderr,
)
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


# ============================================================================
# Backend Lifecycle
# ============================================================================


def configure_backend(app: FastAPI, config: Settings) -> None:
    """Create the backend clients and the stats aggregator on ``app.state``.

    Missing secrets are logged and leave the clients unset; endpoints
    that need the backend then answer with a configuration error.
    """
    app.state.backend = None
    app.state.admin_backend = None
    app.state.stats = None
    app.state.missing_configuration = []

    try:
        backend = BackendClient.from_settings(config)
    except ConfigurationError as e:
        app.state.missing_configuration = e.details["missing"]
        logger.error(
            "Backend service is not configured",
            missing=app.state.missing_configuration,
        )
        return

    app.state.backend = backend
    app.state.admin_backend = (
        BackendClient.from_settings(config, admin=True)
        if config.backend_service_key
        else backend
    )
    app.state.stats = StatsAggregator(backend, ttl=config.stats_cache_ttl_seconds)
    logger.info(
        "Backend service configured",
        url=config.backend_url,
        service_key=bool(config.backend_service_key),
    )


async def close_backend(app: FastAPI) -> None:
    """Close the backend clients created by ``configure_backend``."""
    backend = getattr(app.state, "backend", None)
    admin_backend = getattr(app.state, "admin_backend", None)
    if admin_backend is not None and admin_backend is not backend:
        await admin_backend.close()
    if backend is not None:
        await backend.close()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    # Startup
    logger.info(
        "Starting TechSpec API",
        version=settings.api_version,
        debug=settings.debug,
    )
    configure_backend(app, settings)

    poller = None
    if app.state.stats is not None and settings.stats_poll_interval_seconds > 0:
        poller = asyncio.create_task(
            app.state.stats.run_poller(settings.stats_poll_interval_seconds)
        )

    yield

    # Shutdown
    logger.info("Shutting down TechSpec API")
    if poller is not None:
        poller.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await poller
    await close_backend(app)


app = FastAPI(
    title="TechSpec API",
    description="Technology product catalog and storefront backend",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request id, log context and unhandled errors
setup_middleware(app)

# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(products_router)
app.include_router(reviews_router)
app.include_router(shops_router)
app.include_router(auth_router)
app.include_router(profiles_router)
app.include_router(stats_router)
app.include_router(admin_router)


# ============================================================================
# Custom Exception Handlers
# ============================================================================

_ERROR_STATUS: list[tuple[type[DomainError], int, str]] = [
    (NotAuthenticatedError, 401, "NOT_AUTHENTICATED"),
    (ValidationFailedError, 400, "VALIDATION_ERROR"),
    (NotFoundError, 404, "NOT_FOUND"),
    (InvalidStateTransitionError, 409, "INVALID_STATE_TRANSITION"),
    (ConflictError, 409, "CONFLICT"),
    (ConfigurationError, 500, "CONFIGURATION_ERROR"),
]


def domain_error_status(exc: DomainError) -> tuple[int, str]:
    """HTTP status and error code for a domain error."""
    if isinstance(exc, BackendCallError):
        # Client errors (bad credentials, duplicate rows) keep their status.
        if 400 <= exc.status_code < 500:
            return exc.status_code, exc.error_code
        return (504 if exc.status_code == 504 else 502), exc.error_code
    for error_type, status_code, error_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code, error_code
    return 400, "DOMAIN_ERROR"


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    """Handle domain errors with consistent format."""
    request_id = getattr(request.state, "request_id", None)
    status_code, error_code = domain_error_status(exc)

    if status_code >= 500:
        logger.error(
            "Request failed",
            path=request.url.path,
            error_code=error_code,
            error=exc.message,
        )

    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "message": exc.message,
            "details": exc.details,
            "request_id": request_id,
        },
    )


@app.exception_handler(AdminAPIError)
async def admin_error_handler(request: Request, exc: AdminAPIError):
    """Admin endpoints answer with a bare ``{"error": ...}`` body."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent format."""
    request_id = getattr(request.state, "request_id", None)

    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error_code", "ERROR")
        message = detail.get("message", str(detail))
        details = detail.get("details", [])
    else:
        error_code = "ERROR"
        message = str(detail)
        details = []

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": details,
            "request_id": request_id,
        },
        headers=getattr(exc, "headers", None),
    )

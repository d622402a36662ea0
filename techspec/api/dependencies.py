"""Shared FastAPI dependencies.

The backend clients live on ``app.state`` (created in the lifespan);
services are built per request on top of them.
"""

import hmac
from typing import Annotated

import structlog
from fastapi import Depends, Request

from techspec.application.auth_service import AuthService
from techspec.application.import_service import ProductImportService
from techspec.application.profile_service import ProfileService
from techspec.application.review_service import ReviewService
from techspec.application.shop_service import ShopService
from techspec.application.stats_service import StatsAggregator
from techspec.application.visitor_service import VisitorTracker
from techspec.catalog.service import CatalogService
from techspec.domain.entities import AuthUser
from techspec.domain.exceptions import ConfigurationError, NotAuthenticatedError
from techspec.infrastructure.backend_client import BackendClient
from techspec.infrastructure.config import settings

logger = structlog.get_logger()


class AdminAPIError(Exception):
    """Error returned by the admin endpoints as ``{"error": message}``."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


# ============================================================================
# Backend Clients
# ============================================================================


def _missing_configuration(request: Request) -> list[str]:
    return getattr(request.app.state, "missing_configuration", None) or [
        "BACKEND_URL",
        "BACKEND_ANON_KEY",
    ]


def get_backend(request: Request) -> BackendClient:
    """Backend client acting with the public key.

    Raises:
        ConfigurationError: If the backend secrets were not configured.
    """
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise ConfigurationError(_missing_configuration(request))
    return backend


def get_optional_backend(request: Request) -> BackendClient | None:
    """Backend client, or None when unconfigured, for best-effort endpoints."""
    return getattr(request.app.state, "backend", None)


def get_admin_backend(request: Request) -> BackendClient:
    """Backend client for admin endpoints (service key when configured).

    Raises:
        AdminAPIError: 500 if the backend secrets were not configured.
    """
    backend = getattr(request.app.state, "admin_backend", None)
    if backend is None:
        error = ConfigurationError(_missing_configuration(request))
        logger.error(
            "Admin request without backend configuration",
            missing=error.details["missing"],
        )
        raise AdminAPIError(500, error.message)
    return backend


def get_stats_aggregator(request: Request) -> StatsAggregator:
    aggregator = getattr(request.app.state, "stats", None)
    if aggregator is None:
        raise ConfigurationError(_missing_configuration(request))
    return aggregator


Backend = Annotated[BackendClient, Depends(get_backend)]
AdminBackend = Annotated[BackendClient, Depends(get_admin_backend)]
OptionalBackend = Annotated[BackendClient | None, Depends(get_optional_backend)]


# ============================================================================
# Services
# ============================================================================


def get_catalog_service(backend: Backend) -> CatalogService:
    return CatalogService(backend)


def get_review_service(backend: Backend) -> ReviewService:
    return ReviewService(backend)


def get_shop_service(backend: Backend) -> ShopService:
    return ShopService(backend)


def get_profile_service(backend: Backend) -> ProfileService:
    return ProfileService(backend)


def get_auth_service(backend: Backend) -> AuthService:
    return AuthService(backend)


def get_visitor_tracker(backend: OptionalBackend) -> VisitorTracker | None:
    return VisitorTracker(backend) if backend is not None else None


def get_admin_review_service(backend: AdminBackend) -> ReviewService:
    return ReviewService(backend)


def get_admin_shop_service(backend: AdminBackend) -> ShopService:
    return ShopService(backend)


def get_admin_catalog_service(backend: AdminBackend) -> CatalogService:
    return CatalogService(backend)


def get_import_service(backend: AdminBackend) -> ProductImportService:
    return ProductImportService(backend)


# ============================================================================
# Authentication
# ============================================================================


def bearer_token(request: Request) -> str | None:
    """Token from an ``Authorization: Bearer <token>`` header."""
    header = request.headers.get("Authorization")
    if not header:
        return None
    parts = header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()


async def get_optional_user(
    request: Request,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthUser | None:
    """Signed-in user, or None for anonymous callers and invalid tokens."""
    token = bearer_token(request)
    if token is None:
        return None
    user = await auth.get_user(token)
    if user is None:
        logger.info("Ignoring invalid access token", path=request.url.path)
    return user


async def get_current_user(
    user: Annotated[AuthUser | None, Depends(get_optional_user)],
) -> AuthUser:
    """Signed-in user.

    Raises:
        NotAuthenticatedError: If the caller is anonymous.
    """
    if user is None:
        raise NotAuthenticatedError()
    return user


def require_access_token(request: Request) -> str:
    """Raw access token of the caller.

    Raises:
        NotAuthenticatedError: If no bearer token was sent.
    """
    token = bearer_token(request)
    if token is None:
        raise NotAuthenticatedError()
    return token


OptionalUser = Annotated[AuthUser | None, Depends(get_optional_user)]
CurrentUser = Annotated[AuthUser, Depends(get_current_user)]


def require_admin_token(request: Request) -> None:
    """Gate for admin endpoints.

    The Authorization header must equal ``Bearer {ADMIN_API_TOKEN}``
    exactly. Without a configured token every request is rejected.

    Raises:
        AdminAPIError: 401 if the header does not match.
    """
    expected = settings.admin_api_token
    provided = request.headers.get("Authorization", "")
    if not expected or not hmac.compare_digest(
        provided.encode("utf-8"), f"Bearer {expected}".encode("utf-8")
    ):
        logger.warning(
            "Rejected admin request",
            path=request.url.path,
            token_configured=bool(expected),
        )
        raise AdminAPIError(401, "Unauthorized")
